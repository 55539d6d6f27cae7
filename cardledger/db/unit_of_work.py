"""
Staged, all-or-nothing writes over a LedgerStore.

An invocation reads and writes through a LedgerTransaction. Writes are only
staged; reads see the staged values. commit() applies them in staging order.
If the store fails part-way, every key already applied is restored from the
snapshot taken just before it was written. Transactional stores skip the
restore: their own rollback undoes every write.

INVARIANT: after commit() returns or raises, the store holds either every
staged write or none of them. The only exception is a failed restore, which
is reported as a StorageFailureError naming the keys left torn.
"""

import logging
from dataclasses import dataclass

from cardledger.db.store import LedgerStore
from cardledger.models.failure import KnownError, StorageFailureError

logger = logging.getLogger(__name__)

# Marker for a staged delete
_DELETED = None


@dataclass(slots=True)
class _Applied:
    key: str
    previous: bytes | None


class LedgerTransaction:
    """One invocation's view of the ledger."""

    def __init__(self, store: LedgerStore) -> None:
        self._store = store
        self._staged: dict[str, bytes | None] = {}
        self._committed = False

    async def get(self, key: str) -> bytes | None:
        if key in self._staged:
            return self._staged[key]
        return await self._store.get(key)

    def put(self, key: str, value: bytes) -> None:
        self._ensure_open()
        self._staged[key] = value

    def delete(self, key: str) -> None:
        self._ensure_open()
        self._staged[key] = _DELETED

    async def commit(self) -> None:
        """Apply staged writes to the store, restoring on partial failure."""
        self._ensure_open()
        applied: list[_Applied] = []
        try:
            for key, value in self._staged.items():
                previous = await self._store.get(key)
                applied.append(_Applied(key=key, previous=previous))
                if value is _DELETED:
                    await self._store.delete(key)
                else:
                    await self._store.put(key, value)
        except KnownError as e:
            logger.warning("Commit failed after %d of %d writes", len(applied), len(self._staged))
            if self._store.transactional:
                logger.info("Restore skipped; the store transaction rolls back every write")
            else:
                await self._restore(applied, cause=e)
            raise
        finally:
            self._committed = True
        logger.debug("Committed %d writes", len(self._staged))

    async def _restore(self, applied: list[_Applied], cause: KnownError) -> None:
        torn: list[str] = []
        for entry in reversed(applied):
            try:
                if entry.previous is None:
                    await self._store.delete(entry.key)
                else:
                    await self._store.put(entry.key, entry.previous)
            except KnownError:
                torn.append(entry.key)
        if torn:
            logger.error("Restore failed, torn keys: %s", ", ".join(torn))
            raise StorageFailureError(
                "restore", torn[0], detail=f"torn keys: {', '.join(torn)}"
            ) from cause

    def _ensure_open(self) -> None:
        if self._committed:
            raise RuntimeError("LedgerTransaction already committed")
