"""
Activity service: append-only audit trail.

Recorded in the same transaction as the action it describes, so a
rolled-back admin action leaves no log entry behind.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.models.activity_log import ActivityAction, ActivityLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditContext:
    """Who-and-where of the request that triggered an action."""

    ip_address: str | None = None
    user_agent: str | None = None


def audit_context(request: Request) -> AuditContext:
    """FastAPI dependency: honours X-Forwarded-For behind a proxy."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else None
    return AuditContext(ip_address=ip, user_agent=request.headers.get("user-agent"))


async def record_activity(
    db: AsyncSession,
    action: ActivityAction,
    actor_id: uuid.UUID | None,
    details: dict[str, Any] | None = None,
    context: AuditContext | None = None,
) -> ActivityLog:
    context = context or AuditContext()
    entry = ActivityLog(
        id=uuid.uuid4(),
        user_id=actor_id,
        action=action.value,
        details=details or {},
        ip_address=context.ip_address,
        user_agent=context.user_agent,
    )
    db.add(entry)
    await db.flush()
    logger.info("%s by %s %s", action.value, actor_id, details or "")
    return entry


async def list_activity(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 50,
) -> list[ActivityLog]:
    """Newest first (admin only: enforced at controller)."""
    stmt = (
        select(ActivityLog)
        .order_by(ActivityLog.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())
