"""
Command-line entry point.

    cardledger init
    cardledger invoke <function> <caller> [args...]

Each invoke runs one invocation against the configured database and prints
the JSON response envelope.
"""

import argparse
import asyncio
import logging
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from typing import Any

from cardledger.config import settings
from cardledger.db.database import init_db
from cardledger.invocation.dispatcher import Dispatcher, sql_store_factory
from cardledger.models.failure import ApiResponse, OutcomeType, create_success

logger = logging.getLogger(__name__)


def _version() -> str:
    try:
        return pkg_version("cardledger")
    except PackageNotFoundError:
        return "unknown"


def create_dispatcher() -> Dispatcher:
    return Dispatcher(sql_store_factory())


async def run_init(dispatcher: Dispatcher) -> ApiResponse[Any]:
    """Create tables, empty registries and the administrator."""
    await init_db()
    admin = await dispatcher.bootstrap()
    logger.info("Ledger initialized with administrator %s", admin.identity)
    return create_success(admin.model_dump(mode="json", by_alias=True))


async def run_invoke(dispatcher: Dispatcher, function: str, args: list[str]) -> ApiResponse[Any]:
    return await dispatcher.invoke_safely(function, args)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cardledger", description=settings.app_name)
    parser.add_argument("--version", action="version", version=f"%(prog)s {_version()}")
    subcommands = parser.add_subparsers(dest="command", required=True)

    subcommands.add_parser("init", help="Create tables and bootstrap the administrator")

    invoke = subcommands.add_parser("invoke", help="Run one ledger function")
    invoke.add_argument("function", help="Function name, e.g. create_card_template")
    invoke.add_argument(
        "args",
        nargs=argparse.REMAINDER,
        help="Positional arguments; the first is always the caller",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    dispatcher = create_dispatcher()
    if args.command == "init":
        response = asyncio.run(run_init(dispatcher))
    else:
        response = asyncio.run(run_invoke(dispatcher, args.function, args.args))

    print(response.model_dump_json(indent=2, exclude_none=True))
    return 0 if response.outcome == OutcomeType.SUCCESS else 1


if __name__ == "__main__":
    sys.exit(main())
