"""
Shop Ledger Accounting.

INVARIANTS:
- Counters only ever increase
- One ledger per (issuing shop, template); created on first issuance
- card_index is the only source of issued card ids for its template

Every mutator works on an already-loaded ledger and stages it once, so the
ledger write lands in the same unit of work as the card writes it accounts for.
"""

import logging

from cardledger.db.repository import LedgerRepository
from cardledger.models.failure import InvalidArgumentError
from cardledger.models.shop_ledger import ShopLedger

logger = logging.getLogger(__name__)


def _check_non_negative(**amounts: int) -> None:
    for name, value in amounts.items():
        if value < 0:
            raise InvalidArgumentError(f"{name} must be non-negative", detail=f"{name}={value}")


class ShopLedgerAccounting:
    """Reads and advances shop ledgers."""

    def __init__(self, repo: LedgerRepository) -> None:
        self._repo = repo

    async def lookup(self, shop_id: str, template_id: str) -> ShopLedger | None:
        return await self._repo.get_ledger(shop_id, template_id)

    async def ensure(self, shop_id: str, template_id: str) -> ShopLedger:
        """Existing ledger, or a zero-initialized one staged for write."""
        ledger = await self.lookup(shop_id, template_id)
        if ledger is None:
            ledger = ShopLedger(template_id=template_id, shop_id=shop_id)
            self._repo.save_ledger(ledger)
            logger.info("Opened shop ledger %s", ledger.key)
        return ledger

    def record_issuance(
        self, ledger: ShopLedger, count: int, unit_money: int, unit_point: int
    ) -> None:
        if count < 1:
            raise InvalidArgumentError("Issuance count must be at least 1", detail=f"count={count}")
        _check_non_negative(unit_money=unit_money, unit_point=unit_point)
        ledger.quantity += count
        ledger.card_index += count
        ledger.init_money += count * unit_money
        ledger.init_point += count * unit_point
        self._repo.save_ledger(ledger)

    def record_deposit(self, ledger: ShopLedger, money: int, point: int) -> None:
        _check_non_negative(money=money, point=point)
        ledger.deposit_money += money
        ledger.deposit_point += point
        self._repo.save_ledger(ledger)

    def record_consumption(self, ledger: ShopLedger, money: int, point: int) -> None:
        _check_non_negative(money=money, point=point)
        ledger.consume_money += money
        ledger.consume_point += point
        self._repo.save_ledger(ledger)

    def record_scrap(self, ledger: ShopLedger) -> None:
        ledger.scrapped_count += 1
        self._repo.save_ledger(ledger)

    def record_return(self, ledger: ShopLedger) -> None:
        ledger.returned_count += 1
        self._repo.save_ledger(ledger)

    def record_expiry(self, ledger: ShopLedger) -> None:
        ledger.expired_count += 1
        self._repo.save_ledger(ledger)
