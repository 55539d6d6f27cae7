from cardledger.db.database import get_session, init_db
from cardledger.db.repository import LedgerRepository, encode
from cardledger.db.store import InMemoryLedgerStore, LedgerStore, SqlLedgerStore
from cardledger.db.unit_of_work import LedgerTransaction

__all__ = [
    "InMemoryLedgerStore",
    "LedgerRepository",
    "LedgerStore",
    "LedgerTransaction",
    "SqlLedgerStore",
    "encode",
    "get_session",
    "init_db",
]
