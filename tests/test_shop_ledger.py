"""Tests for shop ledger accounting."""

import pytest

from cardledger.db.repository import LedgerRepository
from cardledger.db.store import InMemoryLedgerStore
from cardledger.db.unit_of_work import LedgerTransaction
from cardledger.models.failure import InvalidArgumentError
from cardledger.services.shop_ledger import ShopLedgerAccounting


@pytest.fixture
def repo(store: InMemoryLedgerStore) -> LedgerRepository:
    return LedgerRepository(LedgerTransaction(store))


@pytest.fixture
def accounting(repo: LedgerRepository) -> ShopLedgerAccounting:
    return ShopLedgerAccounting(repo)


class TestEnsureAndLookup:
    async def test_lookup_missing(self, accounting: ShopLedgerAccounting) -> None:
        """No ledger exists before first issuance."""
        assert await accounting.lookup("S1", "ABC001") is None

    async def test_ensure_creates_zeroed_ledger(self, accounting: ShopLedgerAccounting) -> None:
        """ensure stages a zero-initialized ledger."""
        ledger = await accounting.ensure("S1", "ABC001")

        assert ledger.shop_id == "S1"
        assert ledger.template_id == "ABC001"
        assert ledger.card_index == 0
        assert await accounting.lookup("S1", "ABC001") == ledger

    async def test_ensure_is_idempotent(self, accounting: ShopLedgerAccounting) -> None:
        """A second ensure returns the existing ledger with its counters."""
        ledger = await accounting.ensure("S1", "ABC001")
        accounting.record_issuance(ledger, 2, 10, 5)

        again = await accounting.ensure("S1", "ABC001")

        assert again.card_index == 2

    async def test_writes_are_staged_only(
        self, accounting: ShopLedgerAccounting, store: InMemoryLedgerStore
    ) -> None:
        """Nothing reaches the store until the transaction commits."""
        await accounting.ensure("S1", "ABC001")

        assert "shopledger-S1-ABC001" not in store


class TestCounters:
    async def test_record_issuance(self, accounting: ShopLedgerAccounting) -> None:
        """Issuance advances quantity, index and initial grants."""
        ledger = await accounting.ensure("S1", "ABC001")

        accounting.record_issuance(ledger, 3, 100, 50)

        assert ledger.quantity == 3
        assert ledger.card_index == 3
        assert ledger.init_money == 300
        assert ledger.init_point == 150

    async def test_record_issuance_requires_positive_count(
        self, accounting: ShopLedgerAccounting
    ) -> None:
        ledger = await accounting.ensure("S1", "ABC001")

        with pytest.raises(InvalidArgumentError):
            accounting.record_issuance(ledger, 0, 100, 50)

    async def test_deposit_and_consumption(self, accounting: ShopLedgerAccounting) -> None:
        ledger = await accounting.ensure("S1", "ABC001")

        accounting.record_deposit(ledger, 20, 5)
        accounting.record_deposit(ledger, 10, 0)
        accounting.record_consumption(ledger, 30, 10)

        assert (ledger.deposit_money, ledger.deposit_point) == (30, 5)
        assert (ledger.consume_money, ledger.consume_point) == (30, 10)

    async def test_negative_amounts_rejected(self, accounting: ShopLedgerAccounting) -> None:
        """Counters never decrease."""
        ledger = await accounting.ensure("S1", "ABC001")

        with pytest.raises(InvalidArgumentError):
            accounting.record_consumption(ledger, -1, 0)
        assert ledger.consume_money == 0

    async def test_scrap_return_expiry(self, accounting: ShopLedgerAccounting) -> None:
        ledger = await accounting.ensure("S1", "ABC001")

        accounting.record_scrap(ledger)
        accounting.record_return(ledger)
        accounting.record_return(ledger)
        accounting.record_expiry(ledger)

        assert ledger.scrapped_count == 1
        assert ledger.returned_count == 2
        assert ledger.expired_count == 1
