"""
Ledger store adapters.

The store contract is deliberately tiny: get, put and delete of raw bytes by
key, one value per key, no range queries and no multi-key transactions.
Failures surface as StorageFailureError.
"""

import logging
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cardledger.models.db import LedgerStateDB
from cardledger.models.failure import StorageFailureError

logger = logging.getLogger(__name__)


class LedgerStore(Protocol):
    """Minimal key-value contract every ledger backend must satisfy."""

    # True when a failed write is undone by the backend's own transaction
    transactional: bool

    async def get(self, key: str) -> bytes | None:  # pragma: no cover - Protocol
        ...

    async def put(self, key: str, value: bytes) -> None:  # pragma: no cover - Protocol
        ...

    async def delete(self, key: str) -> None:  # pragma: no cover - Protocol
        ...


class SqlLedgerStore:
    """
    Ledger store backed by the ``ledger_state`` table.

    Writes join the session's transaction; the caller owns commit/rollback.
    """

    transactional = True

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, key: str) -> bytes | None:
        try:
            result = await self._session.execute(
                select(LedgerStateDB.value).where(LedgerStateDB.key == key)
            )
        except SQLAlchemyError as e:
            logger.error("Store get failed for %s: %s", key, e)
            raise StorageFailureError("get", key, detail=type(e).__name__) from e
        return result.scalar_one_or_none()

    async def put(self, key: str, value: bytes) -> None:
        try:
            row = await self._session.get(LedgerStateDB, key)
            if row is None:
                self._session.add(LedgerStateDB(key=key, value=value))
            else:
                row.value = value
            await self._session.flush()
        except SQLAlchemyError as e:
            logger.error("Store put failed for %s: %s", key, e)
            raise StorageFailureError("put", key, detail=type(e).__name__) from e

    async def delete(self, key: str) -> None:
        try:
            await self._session.execute(delete(LedgerStateDB).where(LedgerStateDB.key == key))
        except SQLAlchemyError as e:
            logger.error("Store delete failed for %s: %s", key, e)
            raise StorageFailureError("delete", key, detail=type(e).__name__) from e


class InMemoryLedgerStore:
    """
    Dict-backed ledger store.

    Substitutes for the SQL store in tests and one-shot tooling.
    """

    transactional = False

    def __init__(self, initial: dict[str, bytes] | None = None) -> None:
        self._data: dict[str, bytes] = dict(initial or {})

    async def get(self, key: str) -> bytes | None:
        return self._data.get(key)

    async def put(self, key: str, value: bytes) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> dict[str, bytes]:
        """Copy of the full state, for assertions."""
        return dict(self._data)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)
