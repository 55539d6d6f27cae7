"""
Registry index records.

A registry is an ordered list of entity ids stored under one well-known key.
It only supports "list all" queries; the per-key record stays authoritative.
"""

from dataclasses import dataclass

from pydantic import BaseModel, Field

from cardledger.config import (
    CARD_REGISTRY_KEY,
    SHOP_REGISTRY_KEY,
    TEMPLATE_REGISTRY_KEY,
    USER_REGISTRY_KEY,
)


@dataclass(frozen=True, slots=True)
class RegistrySpec:
    """
    Where a registry lives and how its list field is named.

    Attributes:
        key: Store key of the registry record
        field: Name of the single list field in the serialized record
    """

    key: str
    field: str


USERS = RegistrySpec(key=USER_REGISTRY_KEY, field="users")
SHOPS = RegistrySpec(key=SHOP_REGISTRY_KEY, field="shops")
TEMPLATES = RegistrySpec(key=TEMPLATE_REGISTRY_KEY, field="cards")
CARDS = RegistrySpec(key=CARD_REGISTRY_KEY, field="cards")

ALL_REGISTRIES = (USERS, SHOPS, TEMPLATES, CARDS)


class RegistryIndex(BaseModel):
    """Ordered, duplicate-free list of ids."""

    ids: list[str] = Field(default_factory=list)

    def add(self, *entity_ids: str) -> None:
        listed = set(self.ids)
        for entity_id in entity_ids:
            if entity_id not in listed:
                listed.add(entity_id)
                self.ids.append(entity_id)

    def remove(self, entity_id: str) -> bool:
        """Remove an id. Returns False if it was not listed."""
        if entity_id not in self.ids:
            return False
        self.ids.remove(entity_id)
        return True

    def replace(self, old_id: str, new_id: str) -> None:
        """Swap an id in place, keeping its position."""
        if old_id in self.ids:
            self.ids[self.ids.index(old_id)] = new_id
        else:
            self.add(new_id)
