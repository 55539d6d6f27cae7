"""
Registry index maintenance.

Registries only enumerate ids. The keyed record is authoritative: an id whose
record has gone missing is reported and skipped when resolving, never fatal.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from cardledger.db.repository import LedgerRepository
from cardledger.models.registry import RegistrySpec

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")


class Registries:
    """Add, remove and resolve ids in the four registries."""

    def __init__(self, repo: LedgerRepository) -> None:
        self._repo = repo

    async def list_ids(self, spec: RegistrySpec) -> list[str]:
        index = await self._repo.get_registry(spec)
        return list(index.ids)

    async def add(self, spec: RegistrySpec, *entity_ids: str) -> None:
        """Append ids in one registry write."""
        index = await self._repo.get_registry(spec)
        index.add(*entity_ids)
        self._repo.save_registry(spec, index)

    async def remove(self, spec: RegistrySpec, entity_id: str) -> None:
        index = await self._repo.get_registry(spec)
        if not index.remove(entity_id):
            logger.warning("Registry %s did not list %s", spec.key, entity_id)
            return
        self._repo.save_registry(spec, index)

    async def replace(self, spec: RegistrySpec, old_id: str, new_id: str) -> None:
        index = await self._repo.get_registry(spec)
        index.replace(old_id, new_id)
        self._repo.save_registry(spec, index)

    async def ensure(self, spec: RegistrySpec) -> None:
        """Stage an empty registry if none is stored yet."""
        if not await self._repo.exists(spec.key):
            self._repo.save_registry(spec, await self._repo.get_registry(spec))

    async def resolve(
        self,
        spec: RegistrySpec,
        loader: Callable[[str], Awaitable[RecordT | None]],
    ) -> list[RecordT]:
        """Load every listed record, skipping ids with no record."""
        records: list[RecordT] = []
        for entity_id in await self.list_ids(spec):
            record = await loader(entity_id)
            if record is None:
                logger.warning("Registry %s lists %s but no record exists", spec.key, entity_id)
                continue
            records.append(record)
        return records
