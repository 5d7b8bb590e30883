"""
User service: admin CRUD & search over portal principals.

Access grants are never written directly: every create/update goes
through `resolve_access_grant`, which turns the selected internal ids
into the business keys stored on the principal.

Self-protection: an admin can neither deactivate nor delete their own
account (an update setting `active=False` on oneself counts too).
"""

import logging
import uuid
from typing import Any

from sqlalchemy import String, cast, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.config import settings
from portal.core.errors import Conflict, NotFound, QueryTooShort, SelfActionForbidden
from portal.core.security import hash_password
from portal.models.activity_log import ActivityAction
from portal.models.user import AccessKind, User
from portal.rbac.reference_resolver import AccessGrant, resolve_access_grant
from portal.services.activity_service import AuditContext, record_activity

logger = logging.getLogger(__name__)

# Plain columns an admin may change as-is.
_EDITABLE_FIELDS = (
    "email",
    "first_name",
    "last_name",
    "can_view_contracts",
    "can_view_trainings",
    "can_view_invoices",
    "active",
)
# Any of these in an update re-runs the reference resolution.
_GRANT_FIELDS = {"access_kind", "group_id", "company_id", "device_id"}
# Sort on the stored string value, not the enum declaration order.
_ACCESS_KIND_ORDER = cast(User.access_kind, String).asc()


async def get_user_by_id(user_id: uuid.UUID, db: AsyncSession) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("user")
    return user


async def _ensure_email_available(
    email: str,
    db: AsyncSession,
    exclude_id: uuid.UUID | None = None,
) -> None:
    stmt = select(User.id).where(User.email == email)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    if (await db.execute(stmt)).first() is not None:
        raise Conflict()


def _apply_grant(user: User, grant: AccessGrant) -> list[str]:
    """Copy a resolved grant onto the user; return the fields that changed."""
    changed: list[str] = []
    for field in ("access_kind", "access_id", "group_key", "group_id", "company_id", "device_id"):
        value = getattr(grant, field)
        if getattr(user, field) != value:
            setattr(user, field, value)
            changed.append(field)
    return changed


async def list_users(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 50,
) -> list[User]:
    """All users, admins first, newest first within each access kind."""
    stmt = (
        select(User)
        .order_by(_ACCESS_KIND_ORDER, User.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def create_user(
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    access_kind: AccessKind,
    actor: User,
    db: AsyncSession,
    group_id: uuid.UUID | None = None,
    company_id: uuid.UUID | None = None,
    device_id: uuid.UUID | None = None,
    can_view_contracts: bool = True,
    can_view_trainings: bool = True,
    can_view_invoices: bool = True,
    context: AuditContext | None = None,
) -> User:
    await _ensure_email_available(email, db)

    grant = await resolve_access_grant(
        access_kind,
        db,
        group_id=group_id,
        company_id=company_id,
        device_id=device_id,
    )

    user = User(
        id=uuid.uuid4(),
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        can_view_contracts=can_view_contracts,
        can_view_trainings=can_view_trainings,
        can_view_invoices=can_view_invoices,
        active=True,
        created_by=actor.email,
    )
    _apply_grant(user, grant)
    db.add(user)
    await db.flush()

    await record_activity(
        db,
        ActivityAction.CREATE_USER,
        actor.id,
        {
            "target_user_id": str(user.id),
            "target_email": user.email,
            "access_kind": user.access_kind.value,
            "access_id": user.access_id,
        },
        context,
    )
    return user


async def update_user(
    user_id: uuid.UUID,
    changes: dict[str, Any],
    actor: User,
    db: AsyncSession,
    context: AuditContext | None = None,
) -> User:
    """
    Apply a partial update.  `changes` holds only the fields the caller
    sent; `None` values are treated as "not sent".
    """
    changes = {k: v for k, v in changes.items() if v is not None}
    user = await get_user_by_id(user_id, db)

    if changes.get("active") is False and user.id == actor.id:
        raise SelfActionForbidden()

    if "email" in changes and changes["email"] != user.email:
        await _ensure_email_available(changes["email"], db, exclude_id=user.id)

    changed: list[str] = []
    for field in _EDITABLE_FIELDS:
        if field in changes and getattr(user, field) != changes[field]:
            setattr(user, field, changes[field])
            changed.append(field)

    if _GRANT_FIELDS & changes.keys():
        grant = await resolve_access_grant(
            changes.get("access_kind", user.access_kind),
            db,
            group_id=changes.get("group_id", user.group_id),
            company_id=changes.get("company_id", user.company_id),
            device_id=changes.get("device_id", user.device_id),
        )
        changed.extend(_apply_grant(user, grant))

    if "password" in changes:
        user.password_hash = hash_password(changes["password"])
        changed.append("password")

    if not changed:
        logger.info("Update of user %s had no effective changes", user.id)
        return user

    user.updated_by = actor.email
    await db.flush()

    await record_activity(
        db,
        ActivityAction.UPDATE_USER,
        actor.id,
        {
            "target_user_id": str(user.id),
            "target_email": user.email,
            "changed_fields": changed,
        },
        context,
    )
    return user


async def deactivate_user(
    user_id: uuid.UUID,
    actor: User,
    db: AsyncSession,
    context: AuditContext | None = None,
) -> User:
    """Soft delete: the row stays, the principal can no longer log in."""
    user = await get_user_by_id(user_id, db)
    if user.id == actor.id:
        raise SelfActionForbidden()

    user.active = False
    user.updated_by = actor.email
    await db.flush()

    await record_activity(
        db,
        ActivityAction.DEACTIVATE_USER,
        actor.id,
        {"target_user_id": str(user.id), "target_email": user.email},
        context,
    )
    return user


async def delete_user(
    user_id: uuid.UUID,
    actor: User,
    db: AsyncSession,
    context: AuditContext | None = None,
) -> None:
    """Hard delete: removes the row permanently."""
    user = await get_user_by_id(user_id, db)
    if user.id == actor.id:
        raise SelfActionForbidden()

    details = {"target_user_id": str(user.id), "target_email": user.email}
    await db.delete(user)
    await db.flush()

    await record_activity(db, ActivityAction.DELETE_USER, actor.id, details, context)


async def search_users(
    query: str,
    db: AsyncSession,
    min_length: int = settings.USER_SEARCH_MIN_LENGTH,
    limit: int = settings.USER_SEARCH_LIMIT,
) -> list[User]:
    """
    Substring search over email, first name and last name.

    Case sensitivity follows the database collation (SQLite LIKE is
    case-insensitive for ASCII, PostgreSQL LIKE is not).
    Surrounding whitespace is ignored by the length check only; the
    query is matched as sent.
    """
    term = query or ""
    if len(term.strip()) < min_length:
        raise QueryTooShort(min_length)

    stmt = (
        select(User)
        .where(
            or_(
                User.email.contains(term, autoescape=True),
                User.first_name.contains(term, autoescape=True),
                User.last_name.contains(term, autoescape=True),
            )
        )
        .order_by(_ACCESS_KIND_ORDER, User.email.asc())
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())
