"""
Admin controller: user management, reference selectors, activity log.

Every route depends on `require_admin`.  Controllers are THIN: they
delegate to services and return schemas.

Architecture note:
    We inject `admin: User` from `require_admin` so services know who
    is acting (self-protection rules, audit trail) without a second
    DB call.
"""

import uuid

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.database import get_db
from portal.models.user import User
from portal.rbac.dependencies import require_admin
from portal.rbac.reference_resolver import hydrate_selection
from portal.schemas import (
    ActivityOut,
    CompanyOut,
    CreateUserRequest,
    DeviceOut,
    GroupOut,
    SelectionOut,
    UpdateUserRequest,
    UserOut,
)
from portal.services import activity_service, device_service, directory_service, user_service
from portal.services.activity_service import AuditContext, audit_context

router = APIRouter(prefix="/api/admin", tags=["Admin"])


# ── Users ────────────────────────────────────────────────────────────
@router.get("/users", response_model=list[UserOut])
async def list_users(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    users = await user_service.list_users(db, skip, limit)
    return [UserOut.model_validate(u) for u in users]


# Declared before /users/{user_id} so "search" is not parsed as an id.
@router.get("/users/search", response_model=list[UserOut])
async def search_users(
    q: str = Query(""),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    users = await user_service.search_users(q, db)
    return [UserOut.model_validate(u) for u in users]


@router.get("/users/{user_id}", response_model=UserOut)
async def get_user(
    user_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_user_by_id(user_id, db)
    return UserOut.model_validate(user)


@router.get("/users/{user_id}/selection", response_model=SelectionOut)
async def get_user_selection(
    user_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Selector state for the edit form, with warnings for stale keys."""
    user = await user_service.get_user_by_id(user_id, db)
    selection = await hydrate_selection(user, db)
    return SelectionOut.model_validate(selection)


@router.post("/users", response_model=UserOut, status_code=201)
async def create_user(
    body: CreateUserRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    context: AuditContext = Depends(audit_context),
):
    user = await user_service.create_user(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        access_kind=body.access_kind,
        group_id=body.group_id,
        company_id=body.company_id,
        device_id=body.device_id,
        can_view_contracts=body.can_view_contracts,
        can_view_trainings=body.can_view_trainings,
        can_view_invoices=body.can_view_invoices,
        actor=admin,
        db=db,
        context=context,
    )
    return UserOut.model_validate(user)


@router.patch("/users/{user_id}", response_model=UserOut)
async def update_user(
    user_id: uuid.UUID,
    body: UpdateUserRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    context: AuditContext = Depends(audit_context),
):
    user = await user_service.update_user(
        user_id,
        body.model_dump(exclude_unset=True),
        admin,
        db,
        context,
    )
    return UserOut.model_validate(user)


@router.post("/users/{user_id}/deactivate", response_model=UserOut)
async def deactivate_user(
    user_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    context: AuditContext = Depends(audit_context),
):
    user = await user_service.deactivate_user(user_id, admin, db, context)
    return UserOut.model_validate(user)


@router.delete("/users/{user_id}", status_code=204)
async def delete_user(
    user_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    context: AuditContext = Depends(audit_context),
):
    await user_service.delete_user(user_id, admin, db, context)
    return Response(status_code=204)


# ── Reference selectors ─────────────────────────────────────────────
@router.get("/groups", response_model=list[GroupOut])
async def list_groups(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    groups = await directory_service.list_groups(db)
    return [GroupOut.model_validate(g) for g in groups]


@router.get("/companies", response_model=list[CompanyOut])
async def list_companies(
    group_id: uuid.UUID | None = None,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    companies = await directory_service.list_companies(db, group_id)
    return [CompanyOut.model_validate(c) for c in companies]


@router.get("/devices", response_model=list[DeviceOut])
async def list_assignable_devices(
    company_id: uuid.UUID | None = None,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    devices = await device_service.list_assignable_devices(db, company_id)
    return [DeviceOut.model_validate(d) for d in devices]


# ── Activity ─────────────────────────────────────────────────────────
@router.get("/activity", response_model=list[ActivityOut])
async def list_activity(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    entries = await activity_service.list_activity(db, skip, limit)
    return [ActivityOut.model_validate(e) for e in entries]
