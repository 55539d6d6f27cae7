"""
Read-only queries.

Queries never stage writes. Card visibility: the owner, any Authority and any
Shop may read a card. Listings return only what the caller may read.
"""

import logging

from cardledger.db.repository import LedgerRepository
from cardledger.models.card import Card
from cardledger.models.directory import Role, Shop, User
from cardledger.models.failure import NotFoundError, PermissionDeniedError
from cardledger.models.registry import CARDS, SHOPS, TEMPLATES, USERS
from cardledger.models.shop_ledger import ShopLedger, shop_ledger_key
from cardledger.services.registry_index import Registries
from cardledger.services.roles import RoleLookup

logger = logging.getLogger(__name__)

PRIVILEGED_READERS = (Role.AUTHORITY, Role.SHOP)


def can_read_card(card: Card, caller: str, role: Role) -> bool:
    return card.owner == caller or role in PRIVILEGED_READERS


class LedgerQueries:
    def __init__(self, repo: LedgerRepository, roles: RoleLookup) -> None:
        self._repo = repo
        self._roles = roles
        self._registries = Registries(repo)

    async def card_details(self, caller: str, card_key: str) -> Card:
        role = await self._roles.role_of(caller)
        card = await self._repo.require_card(card_key)
        if not can_read_card(card, caller, role):
            raise PermissionDeniedError(
                f"'{caller}' may not read card '{card_key}'", detail=f"role={role.name}"
            )
        return card

    async def cards(self, caller: str) -> list[Card]:
        role = await self._roles.role_of(caller)
        cards = await self._registries.resolve(CARDS, self._repo.get_card)
        return [card for card in cards if can_read_card(card, caller, role)]

    async def card_templates(self, caller: str) -> list[Card]:
        role = await self._roles.role_of(caller)
        templates = await self._registries.resolve(TEMPLATES, self._repo.get_card)
        return [card for card in templates if can_read_card(card, caller, role)]

    async def shop_ledger(self, caller: str, shop_id: str, template_id: str) -> ShopLedger:
        """
        Read one shop ledger.

        Visible to any Authority, and to a Shop that is either the ledger's
        shop or the current owner of the template.
        """
        role = await self._roles.role_of(caller)
        ledger = await self._repo.get_ledger(shop_id, template_id)
        if ledger is None:
            raise NotFoundError("Shop ledger", shop_ledger_key(shop_id, template_id))
        if role == Role.AUTHORITY:
            return ledger
        if role == Role.SHOP:
            if caller == shop_id:
                return ledger
            template = await self._repo.get_card(template_id)
            if template is not None and template.owner == caller:
                return ledger
        raise PermissionDeniedError(
            f"'{caller}' may not read ledger of '{shop_id}' for '{template_id}'",
            detail=f"role={role.name}",
        )

    async def users(self, caller: str) -> list[User]:
        await self._roles.role_of(caller)
        return await self._registries.resolve(USERS, self._repo.get_user)

    async def user_detail(self, caller: str, identity: str) -> User:
        await self._roles.role_of(caller)
        return await self._repo.require_user(identity)

    async def shops(self, caller: str) -> list[Shop]:
        await self._roles.role_of(caller)
        return await self._registries.resolve(SHOPS, self._repo.get_shop)

    async def shop_detail(self, caller: str, shop_id: str) -> Shop:
        await self._roles.role_of(caller)
        return await self._repo.require_shop(shop_id)
