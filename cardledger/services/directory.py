"""
User and shop directory.

Only the Authority role may change the directory. Users are keyed by their
identity and shops by their shop id; each create or delete keeps the matching
registry in step within the same unit of work.
"""

import logging

from cardledger.config import Settings
from cardledger.db.repository import LedgerRepository
from cardledger.models.directory import Role, Shop, User
from cardledger.models.failure import AlreadyExistsError
from cardledger.models.registry import ALL_REGISTRIES, SHOPS, USERS
from cardledger.services.registry_index import Registries
from cardledger.services.roles import RoleLookup, require_role

logger = logging.getLogger(__name__)


class Directory:
    """Administers users and shops."""

    def __init__(self, repo: LedgerRepository, roles: RoleLookup) -> None:
        self._repo = repo
        self._roles = roles
        self._registries = Registries(repo)

    async def add_user(self, caller: str, user: User) -> User:
        await require_role(self._roles, caller, Role.AUTHORITY)
        if await self._repo.get_user(user.identity) is not None:
            raise AlreadyExistsError("User", user.identity)
        self._repo.save_user(user)
        await self._registries.add(USERS, user.identity)
        logger.info("Added user %s as %s", user.identity, user.affiliation.name)
        return user

    async def update_user(self, caller: str, user: User) -> User:
        await require_role(self._roles, caller, Role.AUTHORITY)
        await self._repo.require_user(user.identity)
        self._repo.save_user(user)
        logger.info("Updated user %s", user.identity)
        return user

    async def delete_user(self, caller: str, identity: str) -> None:
        await require_role(self._roles, caller, Role.AUTHORITY)
        await self._repo.require_user(identity)
        self._repo.delete_user(identity)
        await self._registries.remove(USERS, identity)
        logger.info("Deleted user %s", identity)

    async def add_shop(self, caller: str, shop: Shop) -> Shop:
        await require_role(self._roles, caller, Role.AUTHORITY)
        if await self._repo.get_shop(shop.shop_id) is not None:
            raise AlreadyExistsError("Shop", shop.shop_id)
        self._repo.save_shop(shop)
        await self._registries.add(SHOPS, shop.shop_id)
        logger.info("Added shop %s", shop.shop_id)
        return shop

    async def update_shop(self, caller: str, shop: Shop) -> Shop:
        await require_role(self._roles, caller, Role.AUTHORITY)
        await self._repo.require_shop(shop.shop_id)
        self._repo.save_shop(shop)
        logger.info("Updated shop %s", shop.shop_id)
        return shop

    async def delete_shop(self, caller: str, shop_id: str) -> None:
        await require_role(self._roles, caller, Role.AUTHORITY)
        await self._repo.require_shop(shop_id)
        self._repo.delete_shop(shop_id)
        await self._registries.remove(SHOPS, shop_id)
        logger.info("Deleted shop %s", shop_id)


async def bootstrap(repo: LedgerRepository, config: Settings) -> User:
    """
    Create the empty registries and the administrator user.

    Idempotent: an existing administrator is returned unchanged.
    """
    registries = Registries(repo)
    for spec in ALL_REGISTRIES:
        await registries.ensure(spec)

    existing = await repo.get_user(config.admin_identity)
    if existing is not None:
        return existing

    admin = User(
        identity=config.admin_identity,
        name=config.admin_name,
        affiliation=Role.AUTHORITY,
        auth_id=config.admin_auth_id,
    )
    repo.save_user(admin)
    await registries.add(USERS, admin.identity)
    logger.info("Bootstrapped administrator %s", admin.identity)
    return admin
