"""
Invocation dispatcher.

Maps a parsed command onto one service operation. Invocations are serialized:
each one opens a store, stages its writes in a LedgerTransaction and commits
them before the next invocation starts. Queries never commit.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardledger.config import Settings, settings
from cardledger.db.database import async_session_factory, get_session
from cardledger.db.repository import LedgerRepository
from cardledger.db.store import InMemoryLedgerStore, LedgerStore, SqlLedgerStore
from cardledger.db.unit_of_work import LedgerTransaction
from cardledger.invocation.commands import (
    FIELD_SETTERS,
    TRANSFERS,
    Command,
    CommandName,
    parse_command,
)
from cardledger.models.directory import Role, User
from cardledger.models.failure import (
    ApiResponse,
    KnownError,
    create_known_failure,
    create_success,
    create_unknown_failure,
)
from cardledger.services.card_lifecycle import CardLifecycle
from cardledger.services.clock import Clock, utc_now
from cardledger.services.directory import Directory, bootstrap
from cardledger.services.issuance import IssuanceEngine
from cardledger.services.queries import LedgerQueries
from cardledger.services.roles import DirectoryRoles, RoleLookup
from cardledger.services.transfers import TransferProtocol

logger = logging.getLogger(__name__)

StoreFactory = Callable[[], AbstractAsyncContextManager[LedgerStore]]
RolesFactory = Callable[[LedgerRepository], RoleLookup]


def sql_store_factory(
    session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
) -> StoreFactory:
    """Each invocation runs in its own database transaction."""

    @asynccontextmanager
    async def open_store() -> AsyncIterator[LedgerStore]:
        async with get_session(session_factory) as session:
            yield SqlLedgerStore(session)

    return open_store


def memory_store_factory(store: InMemoryLedgerStore) -> StoreFactory:
    @asynccontextmanager
    async def open_store() -> AsyncIterator[LedgerStore]:
        yield store

    return open_store


def to_wire(result: Any) -> Any:
    """Convert operation results to JSON-ready data using wire names."""
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json", by_alias=True)
    if isinstance(result, list | tuple):
        return [to_wire(item) for item in result]
    return result


class Dispatcher:
    """
    Runs invocations one at a time against a ledger store.

    Args:
        store_factory: Opens the store for one invocation
        clock: Time source for transition timestamps
        config: Settings providing the administrator identity
        roles_factory: Builds the role lookup for an invocation
    """

    def __init__(
        self,
        store_factory: StoreFactory,
        clock: Clock = utc_now,
        config: Settings = settings,
        roles_factory: RolesFactory = DirectoryRoles,
    ) -> None:
        self._store_factory = store_factory
        self._clock = clock
        self._config = config
        self._roles_factory = roles_factory
        self._lock = asyncio.Lock()

    async def bootstrap(self) -> User:
        """Create empty registries and the administrator."""
        async with self._lock, self._store_factory() as store:
            tx = LedgerTransaction(store)
            admin = await bootstrap(LedgerRepository(tx), self._config)
            await tx.commit()
        return admin

    async def invoke(self, function: str, args: list[str]) -> Any:
        """
        Run one invocation and return its result as wire data.

        Raises:
            KnownError: Any classified failure; nothing was applied
        """
        command = parse_command(function, args)
        async with self._lock, self._store_factory() as store:
            tx = LedgerTransaction(store)
            repo = LedgerRepository(tx)
            result = await self._execute(repo, command)
            if not command.is_query:
                await tx.commit()
        logger.info("Invocation %s by %s succeeded", function, command.payload.caller)
        return to_wire(result)

    async def invoke_safely(self, function: str, args: list[str]) -> ApiResponse[Any]:
        """Run one invocation and wrap the outcome in the response envelope."""
        try:
            result = await self.invoke(function, args)
        except KnownError as e:
            logger.info("Invocation %s failed: %s (%s)", function, e.message, e.kind.value)
            return create_known_failure(e)
        except Exception as e:
            logger.exception("Invocation %s failed unexpectedly", function)
            return create_unknown_failure(e)
        return create_success(result)

    async def _execute(self, repo: LedgerRepository, command: Command) -> Any:
        roles = self._roles_factory(repo)
        name = command.name
        args = command.payload

        if name in FIELD_SETTERS:
            return await CardLifecycle(repo, roles, self._clock).set_field(
                args.caller, args.card_key, FIELD_SETTERS[name], args.value
            )
        if name in TRANSFERS:
            return await CardLifecycle(repo, roles, self._clock).transfer(
                args.caller, args.card_key, args.recipient, TRANSFERS[name]
            )

        if name == CommandName.ADD_USER:
            return await Directory(repo, roles).add_user(args.caller, args.to_user())
        elif name == CommandName.UPDATE_USER:
            return await Directory(repo, roles).update_user(args.caller, args.to_user())
        elif name == CommandName.DELETE_USER:
            return await Directory(repo, roles).delete_user(args.caller, args.identity)
        elif name == CommandName.ADD_SHOP:
            return await Directory(repo, roles).add_shop(args.caller, args.to_shop())
        elif name == CommandName.UPDATE_SHOP:
            return await Directory(repo, roles).update_shop(args.caller, args.to_shop())
        elif name == CommandName.DELETE_SHOP:
            return await Directory(repo, roles).delete_shop(args.caller, args.shop_id)
        elif name == CommandName.CREATE_CARD_TEMPLATE:
            return await IssuanceEngine(repo, roles, self._clock).create_template(
                args.caller, args.template_id, allowed_roles=(Role.AUTHORITY,)
            )
        elif name == CommandName.CREATE_CARD_TEMPLATE_BY_SHOP:
            return await IssuanceEngine(repo, roles, self._clock).create_template(
                args.caller, args.template_id, fields=args.fields
            )
        elif name == CommandName.CREATE_BATCH_CARD_BY_TEMPLATE:
            return await IssuanceEngine(repo, roles, self._clock).issue_batch(
                args.caller, args.template_id, args.count
            )
        elif name == CommandName.REQUEST_CARD_BY_TEMPLATE:
            return await IssuanceEngine(repo, roles, self._clock).request_card(
                args.caller, args.template_id
            )
        elif name == CommandName.PUSH_CARD_BY_TEMPLATE:
            return await IssuanceEngine(repo, roles, self._clock).push_card(
                args.caller, args.owner_id, args.template_id
            )
        elif name == CommandName.SCRAP_CARD:
            return await CardLifecycle(repo, roles, self._clock).scrap(args.caller, args.card_key)
        elif name == CommandName.TRANSFER_MP_CONSUMER_TO_CONSUMER:
            return await TransferProtocol(repo, roles).peer_transfer(
                args.caller,
                args.money,
                args.point,
                args.source_card,
                args.receiver,
                args.target_card,
            )
        elif name == CommandName.DEPOSIT_MP_SHOP_TO_CONSUMER:
            return await TransferProtocol(repo, roles).deposit(
                args.caller, args.money, args.point, args.receiver, args.target_card
            )
        elif name == CommandName.SPEND_MP_CONSUMER_TO_SHOP:
            return await TransferProtocol(repo, roles).spend(
                args.caller, args.money, args.point, args.source_card, args.shop_id
            )
        elif name == CommandName.GET_USERS:
            return await LedgerQueries(repo, roles).users(args.caller)
        elif name == CommandName.GET_USER_DETAIL:
            return await LedgerQueries(repo, roles).user_detail(args.caller, args.identity)
        elif name == CommandName.GET_SHOPS:
            return await LedgerQueries(repo, roles).shops(args.caller)
        elif name == CommandName.GET_SHOP_DETAIL:
            return await LedgerQueries(repo, roles).shop_detail(args.caller, args.shop_id)
        elif name == CommandName.GET_CARD_DETAILS:
            return await LedgerQueries(repo, roles).card_details(args.caller, args.card_key)
        elif name == CommandName.GET_CARDS:
            return await LedgerQueries(repo, roles).cards(args.caller)
        elif name == CommandName.GET_CARD_TEMPLATES:
            return await LedgerQueries(repo, roles).card_templates(args.caller)
        elif name == CommandName.GET_SHOP_LEDGER:
            return await LedgerQueries(repo, roles).shop_ledger(
                args.caller, args.shop_id, args.template_id
            )
        else:
            raise ValueError(f"Unhandled command: {name.value}")
