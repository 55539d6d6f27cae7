"""
Caller role resolution.

Identities arrive already authenticated; this module only answers "what role
does this identity hold". The default lookup reads the user directory.
"""

import logging
from typing import Protocol

from cardledger.db.repository import LedgerRepository
from cardledger.models.directory import Role
from cardledger.models.failure import PermissionDeniedError

logger = logging.getLogger(__name__)


class RoleLookup(Protocol):
    """Resolves an identity to its role. Unknown identities raise NotFoundError."""

    async def role_of(self, identity: str) -> Role:  # pragma: no cover - Protocol
        ...


class DirectoryRoles:
    """RoleLookup backed by the user records' affiliation."""

    def __init__(self, repo: LedgerRepository) -> None:
        self._repo = repo

    async def role_of(self, identity: str) -> Role:
        user = await self._repo.require_user(identity)
        return user.affiliation


async def require_role(roles: RoleLookup, identity: str, *allowed: Role) -> Role:
    """
    Resolve ``identity`` and check it holds one of ``allowed``.

    Returns:
        The resolved role

    Raises:
        NotFoundError: Identity is not registered
        PermissionDeniedError: Role is not in ``allowed``
    """
    role = await roles.role_of(identity)
    if role not in allowed:
        expected = " or ".join(r.name for r in allowed)
        logger.info("Role check failed for %s: %s not %s", identity, role.name, expected)
        raise PermissionDeniedError(
            f"'{identity}' must have role {expected}",
            detail=f"role={role.name}",
        )
    return role
