"""
Authentication service.

Handles:
- Login (email + password → JWT carrying the access grant)
- Password change, the only change a principal may make to their
  own account

Unknown email, wrong password and inactive account all produce the
same 401 so the response does not reveal which accounts exist.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.errors import PortalError, Unauthorized
from portal.core.security import create_access_token, hash_password, verify_password
from portal.models.activity_log import ActivityAction
from portal.models.user import User
from portal.services.activity_service import AuditContext, record_activity

logger = logging.getLogger(__name__)


def _build_access_payload(user: User) -> dict:
    return {
        "sub": str(user.id),
        "user_id": str(user.id),
        "access_kind": user.access_kind.value,
        "access_id": user.access_id,
        "can_view_contracts": user.can_view_contracts,
        "can_view_trainings": user.can_view_trainings,
        "can_view_invoices": user.can_view_invoices,
    }


async def authenticate_user(
    email: str,
    password: str,
    db: AsyncSession,
    context: AuditContext | None = None,
) -> dict:
    stmt = select(User).where(User.email == email)
    user = (await db.execute(stmt)).scalar_one_or_none()

    if user is None or not user.active or not verify_password(password, user.password_hash):
        logger.warning("Failed login for %s", email)
        raise Unauthorized("Invalid email or password")

    user.last_login_at = datetime.now(timezone.utc)
    await db.flush()
    await record_activity(db, ActivityAction.LOGIN, user.id, {"email": user.email}, context)

    logger.info("Login successful for %s (%s:%s)", user.email, user.access_kind.value, user.access_id)
    return {
        "access_token": create_access_token(_build_access_payload(user)),
        "token_type": "bearer",
        "user_id": str(user.id),
        "access_kind": user.access_kind,
        "access_id": user.access_id,
    }


async def change_password(
    user: User,
    current_password: str,
    new_password: str,
    db: AsyncSession,
    context: AuditContext | None = None,
) -> None:
    if not verify_password(current_password, user.password_hash):
        raise PortalError("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    user.updated_by = user.email
    await db.flush()
    await record_activity(db, ActivityAction.CHANGE_PASSWORD, user.id, None, context)
