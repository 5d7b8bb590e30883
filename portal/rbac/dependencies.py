"""
RBAC dependencies: the heart of permission enforcement.

- `get_current_active_user`: decode the JWT, reload the principal,
  refuse inactive accounts.
- `require_admin`: the above, plus access kind ADMIN.
- `require_content_permission`: a *dependency factory* for the
  contracts / trainings / invoices sections.

Failures are intentionally vague: they never reveal which permission
was missing.

Usage in a route:
    @router.get("/users")
    async def list_users(admin: User = Depends(require_admin)): ...
"""

import logging
import uuid
from typing import Any

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.database import get_db
from portal.core.errors import Unauthorized
from portal.core.security import get_current_user_token
from portal.models.user import User

logger = logging.getLogger("rbac")

# Section name → User flag.
CONTENT_PERMISSIONS: dict[str, str] = {
    "contracts": "can_view_contracts",
    "trainings": "can_view_trainings",
    "invoices": "can_view_invoices",
}


async def _load_user(user_id: str, db: AsyncSession) -> User:
    try:
        key = uuid.UUID(str(user_id))
    except ValueError:
        raise Unauthorized("Invalid token payload")
    user = await db.get(User, key)
    if user is None:
        raise Unauthorized("User not found")
    return user


async def get_current_active_user(
    token_payload: dict[str, Any] = Depends(get_current_user_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Authentication only: no authorization beyond `active`."""
    user = await _load_user(token_payload["sub"], db)
    if not user.active:
        raise Unauthorized("Account disabled", status_code=403)
    return user


async def require_admin(user: User = Depends(get_current_active_user)) -> User:
    if not user.is_admin:
        logger.warning(
            "Admin access denied for user %s (access kind %s)",
            user.id,
            user.access_kind.value,
        )
        raise Unauthorized("Insufficient permissions", status_code=403)
    return user


def has_content_permission(user: User, section: str) -> bool:
    flag = CONTENT_PERMISSIONS.get(section)
    return flag is not None and bool(getattr(user, flag))


class require_content_permission:
    """
    Dependency factory.

    Can be used as:
        Depends(require_content_permission("contracts"))
        Depends(require_content_permission("contracts", "invoices"))
    """

    def __init__(self, *sections: str):
        unknown = set(sections) - CONTENT_PERMISSIONS.keys()
        if unknown:
            raise ValueError(f"Unknown content sections: {sorted(unknown)}")
        self.sections = sections

    async def __call__(self, user: User = Depends(get_current_active_user)) -> User:
        missing = [s for s in self.sections if not has_content_permission(user, s)]
        if missing:
            logger.warning("Content access denied for user %s, missing: %s", user.id, missing)
            raise Unauthorized("Insufficient permissions", status_code=403)
        return user
