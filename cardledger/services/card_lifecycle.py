"""
Card Entity & State Machine.

Ownership transfers, retirement (scrap) and field-level updates of a single
card. Transfers are table-driven: each TransferKind names its source status,
target status and the roles the caller and recipient must hold.

INVARIANTS:
- A scrapped card is never mutated again
- Owner, status, release date and acquisition date change only via transfer
- Every guard is checked before anything is staged
"""

import logging
from dataclasses import dataclass
from enum import Enum

from cardledger.db.repository import LedgerRepository
from cardledger.models.card import (
    SHOP_RELEASE_FIELDS,
    Card,
    CardStatus,
    is_instance_id,
    is_reserved_card_id,
)
from cardledger.models.directory import Role
from cardledger.models.failure import (
    AlreadyExistsError,
    InvalidArgumentError,
    PermissionDeniedError,
)
from cardledger.models.registry import CARDS
from cardledger.services.clock import Clock, ledger_timestamp
from cardledger.services.registry_index import Registries
from cardledger.services.roles import RoleLookup, require_role
from cardledger.services.shop_ledger import ShopLedgerAccounting

logger = logging.getLogger(__name__)


# =============================================================================
# TRANSITION TABLE
# =============================================================================


@dataclass(frozen=True, slots=True)
class TransferRule:
    """
    Guard and effect of one ownership transfer.

    Attributes:
        source: Status the card must be in
        target: Status after the transfer; None keeps the current status
        caller_role: Role the current owner must hold
        recipient_role: Role the new owner must hold
        required_fields: Card fields that must be non-empty
        stamps_release: Whether the release date is set to now
    """

    source: CardStatus
    target: CardStatus | None
    caller_role: Role
    recipient_role: Role
    required_fields: tuple[str, ...] = ()
    stamps_release: bool = False


class TransferKind(str, Enum):
    TEMPLATE_TO_SHOP = "template_to_shop"
    SHOP_TO_CONSUMER = "shop_to_consumer"
    CONSUMER_TO_CONSUMER = "consumer_to_consumer"
    CONSUMER_TO_SHOP = "consumer_to_shop"


TRANSFER_RULES: dict[TransferKind, TransferRule] = {
    TransferKind.TEMPLATE_TO_SHOP: TransferRule(
        source=CardStatus.TEMPLATE,
        target=CardStatus.AT_SHOP,
        caller_role=Role.AUTHORITY,
        recipient_role=Role.SHOP,
        required_fields=("template_id",),
        stamps_release=True,
    ),
    TransferKind.SHOP_TO_CONSUMER: TransferRule(
        source=CardStatus.AT_SHOP,
        target=CardStatus.AT_CONSUMER,
        caller_role=Role.SHOP,
        recipient_role=Role.CONSUMER,
        required_fields=SHOP_RELEASE_FIELDS,
        stamps_release=True,
    ),
    TransferKind.CONSUMER_TO_CONSUMER: TransferRule(
        source=CardStatus.AT_CONSUMER,
        target=CardStatus.AT_CONSUMER,
        caller_role=Role.CONSUMER,
        recipient_role=Role.CONSUMER,
    ),
    # Status stays AT_CONSUMER while the owner becomes a shop
    TransferKind.CONSUMER_TO_SHOP: TransferRule(
        source=CardStatus.AT_CONSUMER,
        target=None,
        caller_role=Role.CONSUMER,
        recipient_role=Role.SHOP,
    ),
}


class CardField(str, Enum):
    """Updatable card fields, keyed by their invocation suffix."""

    SHOP_NAME = "shopname"
    SHOP_ID = "shopid"
    CARD_ID = "cardid"
    CATEGORY = "category"
    LEVEL = "cardlevel"
    CARD_CLASS = "cardclass"
    PHONE = "tel"
    PASSWORD = "password"
    MONEY = "money"
    POINT = "point"
    EXPIRY_DATE = "expdate"
    EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class SetterRule:
    attribute: str
    status: CardStatus | None = None
    role: Role | None = None
    issuer_only: bool = False


SETTER_RULES: dict[CardField, SetterRule] = {
    CardField.SHOP_NAME: SetterRule("issuer_shop_name", CardStatus.AT_SHOP, Role.SHOP),
    CardField.SHOP_ID: SetterRule("issuer_shop_id", CardStatus.AT_SHOP, Role.SHOP),
    CardField.CARD_ID: SetterRule("card_id", CardStatus.AT_SHOP, Role.SHOP),
    CardField.LEVEL: SetterRule("level", CardStatus.AT_SHOP, Role.SHOP),
    CardField.CARD_CLASS: SetterRule("card_class", CardStatus.AT_SHOP, Role.SHOP),
    CardField.EXPIRY_DATE: SetterRule("expiry_date", CardStatus.AT_SHOP, Role.SHOP),
    CardField.CATEGORY: SetterRule("category", CardStatus.AT_CONSUMER, Role.CONSUMER),
    CardField.PHONE: SetterRule("phone", CardStatus.AT_CONSUMER, Role.CONSUMER),
    CardField.PASSWORD: SetterRule("password"),
    CardField.EXPIRED: SetterRule("expired"),
    CardField.MONEY: SetterRule("money", role=Role.SHOP, issuer_only=True),
    CardField.POINT: SetterRule("point", role=Role.SHOP, issuer_only=True),
}


# =============================================================================
# VALUE PARSING
# =============================================================================


def parse_flag(raw: str) -> bool:
    """Accept exactly "true" or "false"."""
    if raw == "true":
        return True
    if raw == "false":
        return False
    raise InvalidArgumentError("Expected 'true' or 'false'", detail=f"value={raw!r}")


def parse_amount(raw: str) -> int:
    """Parse a non-negative integer amount."""
    try:
        value = int(raw)
    except ValueError as e:
        raise InvalidArgumentError("Expected an integer amount", detail=f"value={raw!r}") from e
    if value < 0:
        raise InvalidArgumentError("Amount must be non-negative", detail=f"value={value}")
    return value


# =============================================================================
# GUARDS
# =============================================================================


def ensure_not_scrapped(card: Card) -> None:
    if card.scrapped:
        raise PermissionDeniedError(f"Card '{card.key}' is scrapped", detail="scrapped=true")


def ensure_owner(card: Card, caller: str) -> None:
    if card.owner != caller:
        raise PermissionDeniedError(
            f"'{caller}' does not own card '{card.key}'",
            detail=f"owner={card.owner}",
        )


def ensure_status(card: Card, status: CardStatus) -> None:
    if card.status != status:
        raise PermissionDeniedError(
            f"Card '{card.key}' must be {status.name}",
            detail=f"status={card.status.name}",
        )


# =============================================================================
# LIFECYCLE OPERATIONS
# =============================================================================


class CardLifecycle:
    """Transfers, scrap and field updates of one card per call."""

    def __init__(self, repo: LedgerRepository, roles: RoleLookup, clock: Clock) -> None:
        self._repo = repo
        self._roles = roles
        self._clock = clock
        self._ledgers = ShopLedgerAccounting(repo)
        self._registries = Registries(repo)

    async def transfer(
        self, caller: str, card_key: str, recipient: str, kind: TransferKind
    ) -> Card:
        """Move a card to ``recipient`` according to the rule for ``kind``."""
        rule = TRANSFER_RULES[kind]
        card = await self._repo.require_card(card_key)

        ensure_not_scrapped(card)
        ensure_status(card, rule.source)
        ensure_owner(card, caller)
        await require_role(self._roles, caller, rule.caller_role)
        await require_role(self._roles, recipient, rule.recipient_role)
        missing = card.missing_fields(rule.required_fields)
        if missing:
            raise PermissionDeniedError(
                f"Card '{card_key}' is not fully defined",
                detail=f"missing: {', '.join(missing)}",
            )

        ledger = None
        if kind is TransferKind.CONSUMER_TO_SHOP:
            ledger = await self._ledgers.lookup(card.issuer_shop_id, card.template_id)

        now = ledger_timestamp(self._clock)
        card.owner = recipient
        card.acquired_date = now
        if rule.stamps_release:
            card.release_date = now
        if rule.target is not None:
            card.status = rule.target
        self._repo.save_card(card)

        if kind is TransferKind.CONSUMER_TO_SHOP:
            logger.info("Card %s returned to shop %s with status AT_CONSUMER", card_key, recipient)
            if ledger is None:
                logger.warning("No shop ledger for returned card %s", card_key)
            else:
                self._ledgers.record_return(ledger)

        logger.info(
            "Transferred card %s (%s) from %s to %s", card_key, kind.value, caller, recipient
        )
        return card

    async def scrap(self, caller: str, card_key: str) -> Card:
        """Retire a card permanently."""
        card = await self._repo.require_card(card_key)
        ensure_not_scrapped(card)
        ensure_owner(card, caller)

        ledger = None
        if not card.is_template:
            ledger = await self._ledgers.lookup(card.issuer_shop_id, card.template_id)

        card.scrapped = True
        self._repo.save_card(card)
        if ledger is not None:
            self._ledgers.record_scrap(ledger)
        elif not card.is_template:
            logger.warning("No shop ledger for scrapped card %s", card_key)

        logger.info("Scrapped card %s", card_key)
        return card

    async def set_field(self, caller: str, card_key: str, field: CardField, raw: str) -> Card:
        """Update one field from its string form."""
        rule = SETTER_RULES[field]
        card = await self._repo.require_card(card_key)

        ensure_not_scrapped(card)
        if rule.issuer_only:
            await require_role(self._roles, caller, Role.SHOP)
            if card.issuer_shop_id != caller:
                raise PermissionDeniedError(
                    f"Only issuing shop may set {field.value} of card '{card_key}'",
                    detail=f"issuer={card.issuer_shop_id}",
                )
        else:
            ensure_owner(card, caller)
            if rule.status is not None:
                ensure_status(card, rule.status)
            if rule.role is not None:
                await require_role(self._roles, caller, rule.role)

        if field is CardField.CARD_ID:
            return await self._rekey(card, raw)
        if field is CardField.EXPIRED:
            return await self._set_expired(card, parse_flag(raw))
        if field in (CardField.MONEY, CardField.POINT):
            value = parse_amount(raw)
            logger.warning(
                "Direct %s set on card %s by %s bypasses the shop ledger",
                field.value,
                card_key,
                caller,
            )
            setattr(card, rule.attribute, value)
        else:
            setattr(card, rule.attribute, raw)

        self._repo.save_card(card)
        logger.info("Updated %s of card %s", field.value, card_key)
        return card

    async def _set_expired(self, card: Card, expired: bool) -> Card:
        ledger = None
        if expired and not card.expired and not card.is_template:
            ledger = await self._ledgers.lookup(card.issuer_shop_id, card.template_id)
        card.expired = expired
        self._repo.save_card(card)
        if ledger is not None:
            self._ledgers.record_expiry(ledger)
        logger.info("Set expired=%s on card %s", expired, card.key)
        return card

    async def _rekey(self, card: Card, new_id: str) -> Card:
        """Assign a new instance id, moving the record to its new key."""
        if card.is_template:
            raise PermissionDeniedError(
                f"Template '{card.key}' cannot be assigned a card id",
                detail="issue cards from the template instead",
            )
        if not is_instance_id(new_id):
            raise InvalidArgumentError("Card id must contain '-'", detail=f"cardid={new_id!r}")
        if new_id == card.card_id:
            return card
        if is_reserved_card_id(new_id):
            raise InvalidArgumentError(
                "Card id is reserved for issuance or other records",
                detail=f"cardid={new_id!r}",
            )
        if await self._repo.exists(new_id):
            raise AlreadyExistsError("Card", new_id)

        old_key = card.key
        card.card_id = new_id
        self._repo.save_card(card)
        self._repo.remove(old_key)
        await self._registries.replace(CARDS, old_key, new_id)
        logger.info("Re-keyed card %s to %s", old_key, new_id)
        return card
