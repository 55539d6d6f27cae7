"""
Card record: the tradable, balance-bearing asset.

A card with an empty card_id is a template; issued instances carry an id of
the form "<template>-A<number>" and are stored under that id.
"""

import re
from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field

from cardledger.config import (
    CARD_ID_BASE,
    CARD_ID_SEPARATOR,
    SHOP_KEY_PREFIX,
    SHOP_LEDGER_KEY_PREFIX,
    USER_KEY_PREFIX,
)


class CardStatus(IntEnum):
    """Lifecycle position of a card. Values are the stored integers."""

    TEMPLATE = 0
    AT_SHOP = 1
    AT_CONSUMER = 2
    AT_MAILBOX = 3


# Fields that must be populated before a template can be issued from
TEMPLATE_ISSUE_FIELDS = ("issuer_shop_id", "issuer_shop_name", "card_class", "expiry_date")

# Fields that must be populated before a shop can hand a card to a consumer
SHOP_RELEASE_FIELDS = ("issuer_shop_name", "card_id", "level", "card_class", "expiry_date")


class Card(BaseModel):
    """
    A card template or issued card instance.

    Attribute names are Pythonic; the serialized (wire) names are the aliases
    and must stay stable across versions.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    template_id: str = Field(default="", alias="kakaid")
    issuer_shop_name: str = Field(default="", alias="shop")
    issuer_shop_id: str = Field(default="", alias="shopid")
    card_id: str = Field(default="", alias="cardid")
    category: str = ""
    level: str = Field(default="", alias="cardlevel")
    card_class: str = Field(default="", alias="cardclass")
    owner: str = ""
    phone: str = Field(default="", alias="tel")
    password: str = ""
    money: int = Field(default=0, ge=0)
    point: int = Field(default=0, ge=0)
    expiry_date: str = Field(default="", alias="expdate")
    acquired_date: str = Field(default="", alias="getdate")
    release_date: str = Field(default="", alias="releasedate")
    expired: bool = False
    scrapped: bool = False
    status: CardStatus = CardStatus.TEMPLATE

    @property
    def is_template(self) -> bool:
        """True while no instance id has been assigned."""
        return self.card_id == ""

    @property
    def key(self) -> str:
        """Store key: the instance id, or the template id for templates."""
        return self.template_id if self.is_template else self.card_id

    @property
    def is_active(self) -> bool:
        """Held by a consumer and usable for balance movement."""
        return (
            self.status == CardStatus.AT_CONSUMER and not self.scrapped and not self.expired
        )

    def missing_fields(self, names: tuple[str, ...]) -> list[str]:
        """Names of the given fields that are still empty."""
        return [name for name in names if getattr(self, name) == ""]

    def issue_copy(self, card_id: str) -> "Card":
        """Copy this template into a new instance carrying ``card_id``."""
        return self.model_copy(update={"card_id": card_id})


def generate_card_id(template_id: str, index: int) -> str:
    """
    Derive the deterministic id of the ``index``-th card issued from a template.

    >>> generate_card_id("ABC001", 1)
    'ABC001-A1000001'
    """
    return f"{template_id}{CARD_ID_SEPARATOR}{CARD_ID_BASE + index}"


def is_instance_id(card_id: str) -> bool:
    """Instance ids always contain a dash; template ids never do."""
    return "-" in card_id


# Ids issuance hands out, for any template
GENERATED_CARD_ID_PATTERN = re.compile(rf"^[A-Za-z]{{3}}[A-Za-z0-9_]*{CARD_ID_SEPARATOR}\d+$")

# Key prefixes owned by other record kinds
RESERVED_KEY_PREFIXES = (SHOP_LEDGER_KEY_PREFIX, USER_KEY_PREFIX, SHOP_KEY_PREFIX)


def is_reserved_card_id(card_id: str) -> bool:
    """
    Whether ``card_id`` is off limits for a manually assigned card id.

    Generated ids belong to future issuance of their template, and prefixed
    keys belong to ledgers and directory records.

    >>> is_reserved_card_id("ABC001-A1000002")
    True
    >>> is_reserved_card_id("ABC001-VIP7")
    False
    """
    return card_id.startswith(RESERVED_KEY_PREFIXES) or bool(
        GENERATED_CARD_ID_PATTERN.match(card_id)
    )


class TemplateFields(BaseModel):
    """
    Descriptive fields a template may be created with.

    Identity and lifecycle fields (template id, card id, owner, dates, flags,
    status) are assigned by issuance and cannot be supplied.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid", strict=True)

    issuer_shop_name: str = Field(default="", alias="shop")
    issuer_shop_id: str = Field(default="", alias="shopid")
    category: str = ""
    level: str = Field(default="", alias="cardlevel")
    card_class: str = Field(default="", alias="cardclass")
    phone: str = Field(default="", alias="tel")
    password: str = ""
    money: int = Field(default=0, ge=0)
    point: int = Field(default=0, ge=0)
    expiry_date: str = Field(default="", alias="expdate")
