"""
Auth controller: login & password change.

Login is PUBLIC (no permission dependency).
Password change requires a valid token for an active account.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.database import get_db
from portal.models.user import User
from portal.rbac.dependencies import get_current_active_user
from portal.schemas import ChangePasswordRequest, LoginRequest, MessageResponse, TokenResponse
from portal.services import auth_service
from portal.services.activity_service import AuditContext, audit_context

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
    context: AuditContext = Depends(audit_context),
):
    """Authenticate with email + password → receive a bearer JWT."""
    return await auth_service.authenticate_user(body.email, body.password, db, context)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    context: AuditContext = Depends(audit_context),
):
    await auth_service.change_password(
        user, body.current_password, body.new_password, db, context,
    )
    return MessageResponse(detail="Password updated successfully")
