"""Tests for the invocation dispatcher and its response envelope."""

import asyncio
from unittest.mock import patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cardledger.invocation.dispatcher import Dispatcher, sql_store_factory, to_wire
from cardledger.models.db import Base
from cardledger.models.failure import FailureKind, OutcomeType
from cardledger.models.shop_ledger import ShopLedger


class TestEnvelope:
    async def test_success(self, dispatcher: Dispatcher) -> None:
        response = await dispatcher.invoke_safely("get_user_detail", ["admin", "C1"])

        assert response.outcome == OutcomeType.SUCCESS
        assert response.data["identity"] == "C1"
        assert response.failure is None

    async def test_known_failure_verbatim(self, dispatcher: Dispatcher) -> None:
        """Known failures surface their kind and message unchanged."""
        response = await dispatcher.invoke_safely("get_user_detail", ["admin", "ghost"])

        assert response.outcome == OutcomeType.KNOWN_FAILURE
        assert response.failure.kind == FailureKind.NOT_FOUND
        assert response.failure.message == "User 'ghost' not found"

    async def test_invalid_argument(self, dispatcher: Dispatcher) -> None:
        response = await dispatcher.invoke_safely("no_such_function", ["admin"])

        assert response.failure.kind == FailureKind.INVALID_ARGUMENT

    async def test_unexpected_error(self, dispatcher: Dispatcher) -> None:
        """Unexpected exceptions become unknown failures naming only the type."""
        with patch(
            "cardledger.services.queries.LedgerQueries.users",
            side_effect=ZeroDivisionError("boom"),
        ):
            response = await dispatcher.invoke_safely("get_users", ["admin"])

        assert response.outcome == OutcomeType.UNKNOWN_FAILURE
        assert response.failure.kind == FailureKind.UNKNOWN
        assert response.failure.detail == "ZeroDivisionError"
        assert "boom" not in response.failure.message


class TestAtomicity:
    async def test_failed_invocation_applies_nothing(
        self, dispatcher: Dispatcher, template: str, store
    ) -> None:
        """A guard failing late in an operation leaves the store untouched."""
        before = store.snapshot()

        response = await dispatcher.invoke_safely(
            "create_batch_card_by_template", ["S2", template, "5"]
        )

        assert response.outcome == OutcomeType.KNOWN_FAILURE
        assert store.snapshot() == before

    async def test_queries_never_write(self, dispatcher: Dispatcher, store) -> None:
        before = store.snapshot()

        await dispatcher.invoke("get_users", ["admin"])
        await dispatcher.invoke("get_cards", ["admin"])

        assert store.snapshot() == before

    async def test_concurrent_invocations_serialize(
        self, dispatcher: Dispatcher, template: str
    ) -> None:
        """Concurrent issuance never hands out the same id twice."""
        results = await asyncio.gather(
            *(
                dispatcher.invoke("push_card_by_template", ["S1", consumer, template])
                for consumer in ("C1", "C2", "C3", "C1", "C2")
            )
        )

        ids = [card["cardid"] for card in results]
        assert len(set(ids)) == 5
        ledger = await dispatcher.invoke("get_shopLedger", ["admin", "S1", template])
        assert ledger["cardIdIndex"] == 5


class TestSqlBackedDispatcher:
    @pytest.fixture
    async def sql_dispatcher(self, clock, config):
        engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        dispatcher = Dispatcher(sql_store_factory(factory), clock=clock, config=config)
        await dispatcher.bootstrap()
        yield dispatcher
        await engine.dispose()

    async def test_end_to_end(self, sql_dispatcher: Dispatcher) -> None:
        """Issue and spend against the SQL store."""
        await sql_dispatcher.invoke("add_user", ["admin", "S1", "Shop", "", "2", ""])
        await sql_dispatcher.invoke("add_user", ["admin", "C1", "Kim", "", "3", ""])
        await sql_dispatcher.invoke(
            "create_card_template_by_shop",
            [
                "S1",
                "ABC001",
                '{"shop": "Shop One", "shopid": "S1", "cardclass": "gold", '
                '"expdate": "2030", "money": 100, "point": 50}',
            ],
        )
        card = await sql_dispatcher.invoke("request_card_by_template", ["C1", "ABC001"])

        spent = await sql_dispatcher.invoke(
            "spend_mp_consumer_to_shop", ["C1", "30", "10", card["cardid"], "S1"]
        )

        assert (spent["money"], spent["point"]) == (70, 40)
        ledger = await sql_dispatcher.invoke("get_shopLedger", ["admin", "S1", "ABC001"])
        assert ledger["consumeMoney"] == 30

    async def test_failure_rolls_back(self, sql_dispatcher: Dispatcher) -> None:
        await sql_dispatcher.invoke("add_user", ["admin", "C1", "Kim", "", "3", ""])

        response = await sql_dispatcher.invoke_safely(
            "add_user", ["admin", "C1", "Kim", "", "3", ""]
        )

        assert response.failure.kind == FailureKind.ALREADY_EXISTS
        users = await sql_dispatcher.invoke("get_users", ["admin"])
        assert [u["identity"] for u in users] == ["admin", "C1"]


class TestToWire:
    def test_models_use_wire_names(self) -> None:
        data = to_wire(ShopLedger(template_id="ABC001", shop_id="S1"))

        assert data["templateid"] == "ABC001"

    def test_sequences(self) -> None:
        ledger = ShopLedger(template_id="ABC001", shop_id="S1")

        assert to_wire((ledger, ledger))[1]["shopid"] == "S1"
        assert to_wire(None) is None
