"""
Issuance Engine: templates and the cards issued from them.

Card ids are derived from the shop ledger's card_index, never chosen by the
caller. Batch and single issuance advance the same counter, so the ids issued
for a template are strictly increasing and never reused.

INVARIANTS:
- Only the template's issuing shop may issue from it
- An issued card never overwrites an existing key
- The ledger advances by exactly the number of cards issued
"""

import logging
import re

from cardledger.db.repository import LedgerRepository
from cardledger.models.card import (
    TEMPLATE_ISSUE_FIELDS,
    Card,
    CardStatus,
    TemplateFields,
    generate_card_id,
)
from cardledger.models.directory import Role
from cardledger.models.failure import (
    AlreadyExistsError,
    InvalidArgumentError,
    PermissionDeniedError,
)
from cardledger.models.registry import CARDS, TEMPLATES
from cardledger.services.clock import Clock, ledger_timestamp
from cardledger.services.registry_index import Registries
from cardledger.services.roles import RoleLookup, require_role
from cardledger.services.shop_ledger import ShopLedgerAccounting

logger = logging.getLogger(__name__)

# Three letters, then letters, digits or underscores
TEMPLATE_ID_PATTERN = re.compile(r"^[A-Za-z]{3}[A-Za-z0-9_]*$")


def validate_template_id(template_id: str) -> None:
    if not TEMPLATE_ID_PATTERN.match(template_id):
        raise InvalidArgumentError(
            "Template id must start with three letters and contain no '-'",
            detail=f"templateid={template_id!r}",
        )


class IssuanceEngine:
    """Creates templates and issues card instances from them."""

    def __init__(self, repo: LedgerRepository, roles: RoleLookup, clock: Clock) -> None:
        self._repo = repo
        self._roles = roles
        self._clock = clock
        self._ledgers = ShopLedgerAccounting(repo)
        self._registries = Registries(repo)

    # =========================================================================
    # TEMPLATES
    # =========================================================================

    async def create_template(
        self,
        caller: str,
        template_id: str,
        fields: TemplateFields | None = None,
        allowed_roles: tuple[Role, ...] = (Role.AUTHORITY, Role.SHOP),
    ) -> Card:
        """
        Persist a new template owned by the caller.

        Args:
            caller: Identity creating the template
            template_id: Key of the new template
            fields: Descriptive fields; blank when omitted
            allowed_roles: Roles permitted to create through this entry point

        Raises:
            PermissionDeniedError: Caller role not allowed
            InvalidArgumentError: Malformed template id
            AlreadyExistsError: Key already taken
        """
        await require_role(self._roles, caller, *allowed_roles)
        validate_template_id(template_id)
        if await self._repo.exists(template_id):
            raise AlreadyExistsError("Card template", template_id)

        values = fields.model_dump() if fields is not None else {}
        template = Card(
            template_id=template_id,
            owner=caller,
            status=CardStatus.TEMPLATE,
            **values,
        )
        self._repo.save_card(template)
        await self._registries.add(TEMPLATES, template_id)
        logger.info("Created template %s for %s", template_id, caller)
        return template

    # =========================================================================
    # ISSUANCE
    # =========================================================================

    async def _issuable_template(self, shop_id: str, template_id: str) -> Card:
        template = await self._repo.require_template(template_id)
        if template.scrapped:
            raise PermissionDeniedError(
                f"Template '{template_id}' is scrapped", detail="scrapped=true"
            )
        missing = template.missing_fields(TEMPLATE_ISSUE_FIELDS)
        if missing:
            raise PermissionDeniedError(
                f"Template '{template_id}' is not ready for issuance",
                detail=f"missing: {', '.join(missing)}",
            )
        if template.issuer_shop_id != shop_id:
            raise PermissionDeniedError(
                f"'{shop_id}' is not the issuing shop of template '{template_id}'",
                detail=f"issuer={template.issuer_shop_id}",
            )
        return template

    async def _claim_ids(self, template_id: str, start: int, count: int) -> list[str]:
        card_ids = [generate_card_id(template_id, start + i) for i in range(1, count + 1)]
        for card_id in card_ids:
            if await self._repo.exists(card_id):
                raise AlreadyExistsError("Card", card_id)
        return card_ids

    async def issue_batch(self, caller: str, template_id: str, count: int) -> list[Card]:
        """
        Issue ``count`` cards held by the issuing shop.

        Returns:
            The issued cards, in id order
        """
        await require_role(self._roles, caller, Role.SHOP)
        if count < 1:
            raise InvalidArgumentError("Batch size must be at least 1", detail=f"count={count}")
        template = await self._issuable_template(caller, template_id)

        ledger = await self._ledgers.ensure(caller, template_id)
        card_ids = await self._claim_ids(template_id, ledger.card_index, count)

        now = ledger_timestamp(self._clock)
        cards = []
        for card_id in card_ids:
            card = template.issue_copy(card_id)
            card.owner = caller
            card.status = CardStatus.AT_SHOP
            card.acquired_date = now
            self._repo.save_card(card)
            cards.append(card)

        await self._registries.add(CARDS, *card_ids)
        self._ledgers.record_issuance(ledger, count, template.money, template.point)
        logger.info(
            "Issued %d cards from %s (%s .. %s)", count, template_id, card_ids[0], card_ids[-1]
        )
        return cards

    async def issue_single(self, shop_id: str, owner_id: str, template_id: str) -> Card:
        """Issue one card straight to a consumer."""
        template = await self._issuable_template(shop_id, template_id)
        ledger = await self._ledgers.ensure(shop_id, template_id)
        (card_id,) = await self._claim_ids(template_id, ledger.card_index, 1)

        now = ledger_timestamp(self._clock)
        card = template.issue_copy(card_id)
        card.owner = owner_id
        card.status = CardStatus.AT_CONSUMER
        card.release_date = now
        card.acquired_date = now
        self._repo.save_card(card)

        await self._registries.add(CARDS, card_id)
        self._ledgers.record_issuance(ledger, 1, template.money, template.point)
        logger.info("Issued card %s to %s", card_id, owner_id)
        return card

    async def request_card(self, caller: str, template_id: str) -> Card:
        """A consumer asks for a card from a template."""
        await require_role(self._roles, caller, Role.CONSUMER)
        template = await self._repo.require_template(template_id)
        return await self.issue_single(template.issuer_shop_id, caller, template_id)

    async def push_card(self, caller: str, owner_id: str, template_id: str) -> Card:
        """
        A shop hands a new card to a consumer.

        Like a request, the card is issued under the template's issuing shop
        and its ledger; only the caller's role and the owner differ.
        """
        await require_role(self._roles, caller, Role.SHOP)
        await require_role(self._roles, owner_id, Role.CONSUMER)
        template = await self._repo.require_template(template_id)
        return await self.issue_single(template.issuer_shop_id, owner_id, template_id)
