"""
Typed record access over a LedgerTransaction.

Every record is serialized by pydantic using its wire (alias) names. Stored
bytes that do not parse into the expected record raise CorruptRecordError
rather than being silently replaced.
"""

import logging
from typing import TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from cardledger.db.unit_of_work import LedgerTransaction
from cardledger.models.card import Card
from cardledger.models.directory import Shop, User, shop_key, user_key
from cardledger.models.failure import CorruptRecordError, NotFoundError
from cardledger.models.registry import RegistryIndex, RegistrySpec
from cardledger.models.shop_ledger import ShopLedger, shop_ledger_key

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

_registry_adapter = TypeAdapter(dict[str, list[str]])


def encode(record: BaseModel) -> bytes:
    """Serialize a record with its wire names."""
    return record.model_dump_json(by_alias=True).encode("utf-8")


class LedgerRepository:
    """
    Record-level reads and staged writes for one invocation.

    Writes go to the transaction; nothing reaches the store until the
    transaction commits.
    """

    def __init__(self, tx: LedgerTransaction) -> None:
        self.tx = tx

    # =========================================================================
    # GENERIC ACCESS
    # =========================================================================

    async def exists(self, key: str) -> bool:
        return await self.tx.get(key) is not None

    async def load(self, key: str, model: type[RecordT]) -> RecordT | None:
        raw = await self.tx.get(key)
        if raw is None:
            return None
        try:
            return model.model_validate_json(raw)
        except ValidationError as e:
            logger.error("Corrupt %s record at %s", model.__name__, key)
            raise CorruptRecordError(key, detail=f"{e.error_count()} validation error(s)") from e

    def stage(self, key: str, record: BaseModel) -> None:
        self.tx.put(key, encode(record))

    def remove(self, key: str) -> None:
        self.tx.delete(key)

    # =========================================================================
    # CARDS AND TEMPLATES
    # =========================================================================

    async def get_card(self, key: str) -> Card | None:
        return await self.load(key, Card)

    async def require_card(self, key: str) -> Card:
        card = await self.get_card(key)
        if card is None:
            raise NotFoundError("Card", key)
        return card

    async def require_template(self, template_id: str) -> Card:
        card = await self.get_card(template_id)
        if card is None or not card.is_template:
            raise NotFoundError("Card template", template_id)
        return card

    def save_card(self, card: Card) -> None:
        self.stage(card.key, card)

    # =========================================================================
    # SHOP LEDGERS
    # =========================================================================

    async def get_ledger(self, shop_id: str, template_id: str) -> ShopLedger | None:
        return await self.load(shop_ledger_key(shop_id, template_id), ShopLedger)

    def save_ledger(self, ledger: ShopLedger) -> None:
        self.stage(ledger.key, ledger)

    # =========================================================================
    # DIRECTORY
    # =========================================================================

    async def get_user(self, identity: str) -> User | None:
        return await self.load(user_key(identity), User)

    async def require_user(self, identity: str) -> User:
        user = await self.get_user(identity)
        if user is None:
            raise NotFoundError("User", identity)
        return user

    def save_user(self, user: User) -> None:
        self.stage(user_key(user.identity), user)

    def delete_user(self, identity: str) -> None:
        self.tx.delete(user_key(identity))

    async def get_shop(self, shop_id: str) -> Shop | None:
        return await self.load(shop_key(shop_id), Shop)

    async def require_shop(self, shop_id: str) -> Shop:
        shop = await self.get_shop(shop_id)
        if shop is None:
            raise NotFoundError("Shop", shop_id)
        return shop

    def save_shop(self, shop: Shop) -> None:
        self.stage(shop_key(shop.shop_id), shop)

    def delete_shop(self, shop_id: str) -> None:
        self.tx.delete(shop_key(shop_id))

    # =========================================================================
    # REGISTRIES
    # =========================================================================

    async def get_registry(self, spec: RegistrySpec) -> RegistryIndex:
        """Load a registry; an absent registry reads as empty."""
        raw = await self.tx.get(spec.key)
        if raw is None:
            return RegistryIndex()
        try:
            payload = _registry_adapter.validate_json(raw)
        except ValidationError as e:
            raise CorruptRecordError(spec.key, detail="registry is not an id list") from e
        if spec.field not in payload:
            raise CorruptRecordError(spec.key, detail=f"missing field '{spec.field}'")
        return RegistryIndex(ids=payload[spec.field])

    def save_registry(self, spec: RegistrySpec, index: RegistryIndex) -> None:
        self.tx.put(spec.key, _registry_adapter.dump_json({spec.field: index.ids}))
