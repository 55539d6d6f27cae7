"""
Transfer & Balance Protocol.

Money and point move between cards (peer transfer), from a shop onto a card
(deposit), and from a card to its issuing shop (spend). Deposits and spends
are mirrored in the shop ledger in the same unit of work.

INVARIANTS:
- Amounts are non-negative integers
- Balances never go negative; an over-debit fails before anything is staged
- A peer transfer conserves the combined money and point of both cards
"""

import logging

from cardledger.db.repository import LedgerRepository
from cardledger.models.card import Card, CardStatus
from cardledger.models.directory import Role
from cardledger.models.failure import (
    InsufficientFundsError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
)
from cardledger.models.shop_ledger import ShopLedger, shop_ledger_key
from cardledger.services.card_lifecycle import ensure_owner
from cardledger.services.roles import RoleLookup, require_role
from cardledger.services.shop_ledger import ShopLedgerAccounting

logger = logging.getLogger(__name__)


def check_amounts(money: int, point: int) -> None:
    if money < 0 or point < 0:
        raise InvalidArgumentError(
            "Amounts must be non-negative", detail=f"money={money} point={point}"
        )


def ensure_active(card: Card) -> None:
    """Card is held by a consumer and neither scrapped nor expired."""
    if card.scrapped:
        raise PermissionDeniedError(f"Card '{card.key}' is scrapped", detail="scrapped=true")
    if card.expired:
        raise PermissionDeniedError(f"Card '{card.key}' is expired", detail="expired=true")
    if card.status != CardStatus.AT_CONSUMER:
        raise PermissionDeniedError(
            f"Card '{card.key}' is not held by a consumer",
            detail=f"status={card.status.name}",
        )


def ensure_funds(card: Card, money: int, point: int) -> None:
    if card.money < money or card.point < point:
        raise InsufficientFundsError(card.key, money, point, card.money, card.point)


class TransferProtocol:
    """Balance-moving operations."""

    def __init__(self, repo: LedgerRepository, roles: RoleLookup) -> None:
        self._repo = repo
        self._roles = roles
        self._ledgers = ShopLedgerAccounting(repo)

    async def _issuer_ledger(self, shop_id: str, card: Card) -> ShopLedger:
        """Ledger of (shop_id, card's template), which must belong to the card's issuer."""
        ledger = await self._ledgers.lookup(shop_id, card.template_id)
        if ledger is None:
            raise NotFoundError("Shop ledger", shop_ledger_key(shop_id, card.template_id))
        if ledger.shop_id != card.issuer_shop_id:
            raise PermissionDeniedError(
                f"Card '{card.key}' was not issued by shop '{shop_id}'",
                detail=f"issuer={card.issuer_shop_id}",
            )
        return ledger

    async def peer_transfer(
        self,
        caller: str,
        money: int,
        point: int,
        source_key: str,
        receiver: str,
        target_key: str,
    ) -> tuple[Card, Card]:
        """Move balance from the caller's card to the receiver's card."""
        check_amounts(money, point)
        if source_key == target_key:
            raise InvalidArgumentError(
                "Source and target must be different cards", detail=f"card={source_key}"
            )
        await require_role(self._roles, caller, Role.CONSUMER)
        await require_role(self._roles, receiver, Role.CONSUMER)

        source = await self._repo.require_card(source_key)
        target = await self._repo.require_card(target_key)
        if source.issuer_shop_id != target.issuer_shop_id:
            raise PermissionDeniedError(
                "Cards must be issued by the same shop",
                detail=f"{source.issuer_shop_id} != {target.issuer_shop_id}",
            )
        ensure_active(source)
        ensure_active(target)
        ensure_owner(source, caller)
        ensure_owner(target, receiver)
        ensure_funds(source, money, point)

        source.money -= money
        source.point -= point
        target.money += money
        target.point += point
        self._repo.save_card(source)
        self._repo.save_card(target)
        logger.info(
            "Moved money=%d point=%d from %s to %s", money, point, source_key, target_key
        )
        return source, target

    async def deposit(
        self, caller: str, money: int, point: int, receiver: str, target_key: str
    ) -> Card:
        """The issuing shop credits a consumer's card."""
        check_amounts(money, point)
        await require_role(self._roles, caller, Role.SHOP)
        await require_role(self._roles, receiver, Role.CONSUMER)

        target = await self._repo.require_card(target_key)
        ledger = await self._issuer_ledger(caller, target)
        ensure_active(target)
        ensure_owner(target, receiver)

        target.money += money
        target.point += point
        self._repo.save_card(target)
        self._ledgers.record_deposit(ledger, money, point)
        logger.info("Shop %s deposited money=%d point=%d on %s", caller, money, point, target_key)
        return target

    async def spend(
        self, caller: str, money: int, point: int, source_key: str, shop_id: str
    ) -> Card:
        """A consumer pays the issuing shop from their card."""
        check_amounts(money, point)
        await require_role(self._roles, caller, Role.CONSUMER)

        source = await self._repo.require_card(source_key)
        ensure_owner(source, caller)
        ensure_active(source)
        ledger = await self._issuer_ledger(shop_id, source)
        ensure_funds(source, money, point)

        source.money -= money
        source.point -= point
        self._repo.save_card(source)
        self._ledgers.record_consumption(ledger, money, point)
        logger.info("Card %s spent money=%d point=%d at %s", source_key, money, point, shop_id)
        return source
