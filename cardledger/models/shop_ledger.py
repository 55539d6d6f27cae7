"""
Shop ledger: aggregate counters for one (issuing shop, template) pair.

INVARIANT: every counter is non-negative and only ever increases.
The card_index counter is the single source of issued card ids for a
template, shared by batch and single issuance.
"""

from pydantic import BaseModel, ConfigDict, Field

from cardledger.config import SHOP_LEDGER_KEY_PREFIX


class ShopLedger(BaseModel):
    """Issuer-side accounting for one template."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    template_id: str = Field(alias="templateid")
    shop_id: str = Field(alias="shopid")
    card_index: int = Field(default=0, ge=0, alias="cardIdIndex")
    quantity: int = Field(default=0, ge=0, alias="qty")
    expired_count: int = Field(default=0, ge=0, alias="expiredNum")
    scrapped_count: int = Field(default=0, ge=0, alias="scrapNum")
    returned_count: int = Field(default=0, ge=0, alias="backNum")
    init_money: int = Field(default=0, ge=0, alias="initmoney")
    init_point: int = Field(default=0, ge=0, alias="initpoint")
    deposit_money: int = Field(default=0, ge=0, alias="depositMoney")
    deposit_point: int = Field(default=0, ge=0, alias="depositPoint")
    consume_money: int = Field(default=0, ge=0, alias="consumeMoney")
    consume_point: int = Field(default=0, ge=0, alias="consumePoint")

    @property
    def key(self) -> str:
        return shop_ledger_key(self.shop_id, self.template_id)


def shop_ledger_key(shop_id: str, template_id: str) -> str:
    """Store key for the ledger of a (shop, template) pair."""
    return f"{SHOP_LEDGER_KEY_PREFIX}-{shop_id}-{template_id}"
