from cardledger.invocation.commands import Command, CommandName, parse_command
from cardledger.invocation.dispatcher import (
    Dispatcher,
    memory_store_factory,
    sql_store_factory,
    to_wire,
)

__all__ = [
    "Command",
    "CommandName",
    "Dispatcher",
    "memory_store_factory",
    "parse_command",
    "sql_store_factory",
    "to_wire",
]
