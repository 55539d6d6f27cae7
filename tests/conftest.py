import json
from datetime import UTC, datetime

import pytest

from cardledger.config import Settings
from cardledger.db.store import InMemoryLedgerStore
from cardledger.invocation.dispatcher import Dispatcher, memory_store_factory

FIXED_NOW = datetime(2017, 3, 2, 13, 4, 5, tzinfo=UTC)
FIXED_STAMP = "2017-03-02 01:04:05 PM"

# identity -> role (affiliation)
DIRECTORY = {
    "S1": 2,
    "S2": 2,
    "C1": 3,
    "C2": 3,
    "C3": 3,
    "M1": 4,
}

TEMPLATE_FIELDS = {
    "shop": "Shop One",
    "shopid": "S1",
    "cardlevel": "1",
    "cardclass": "gold",
    "expdate": "2030-12-31",
    "money": 100,
    "point": 50,
}


@pytest.fixture
def clock():
    """Clock frozen at FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def config() -> Settings:
    return Settings(
        admin_identity="admin",
        admin_name="Administrator",
        admin_auth_id="authority-center",
        database_url="sqlite+aiosqlite:///:memory:",
    )


@pytest.fixture
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
async def bare_dispatcher(store, clock, config) -> Dispatcher:
    """Dispatcher over an empty store, bootstrapped with only the administrator."""
    dispatcher = Dispatcher(memory_store_factory(store), clock=clock, config=config)
    await dispatcher.bootstrap()
    return dispatcher


@pytest.fixture
async def dispatcher(bare_dispatcher) -> Dispatcher:
    """Dispatcher with two shops, three consumers and one mailbox registered."""
    for identity, role in DIRECTORY.items():
        await bare_dispatcher.invoke(
            "add_user", ["admin", identity, f"User {identity}", "", str(role), ""]
        )
    return bare_dispatcher


@pytest.fixture
async def template(dispatcher) -> str:
    """Template ABC001 issued by S1 with 100 money / 50 point per card."""
    await dispatcher.invoke(
        "create_card_template_by_shop", ["S1", "ABC001", json.dumps(TEMPLATE_FIELDS)]
    )
    return "ABC001"


@pytest.fixture
async def consumer_card(dispatcher, template) -> str:
    """Card pushed by S1 to C1, holding 100 money / 50 point."""
    card = await dispatcher.invoke("push_card_by_template", ["S1", "C1", template])
    return card["cardid"]


@pytest.fixture
def fixed_stamp() -> str:
    """FIXED_NOW in ledger date format."""
    return FIXED_STAMP
