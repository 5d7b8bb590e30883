"""
Portal controller: what a logged-in customer sees.

Every route enforces:
1. Authentication (via `get_current_active_user`)
2. Data scope (via the device services: locks GROUP / COMPANY /
   DEVICE principals to their own devices)
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.database import get_db
from portal.models.user import User
from portal.rbac.dependencies import (
    CONTENT_PERMISSIONS,
    get_current_active_user,
    has_content_permission,
    require_content_permission,
)
from portal.schemas import ContractOut, DeviceOut, PrincipalOut, SectionsOut
from portal.services import device_service

router = APIRouter(prefix="/api/portal", tags=["Portal"])


@router.get("/me", response_model=PrincipalOut)
async def get_me(user: User = Depends(get_current_active_user)):
    return PrincipalOut(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        access_kind=user.access_kind,
        access_id=user.access_id,
        permissions={s: has_content_permission(user, s) for s in CONTENT_PERMISSIONS},
    )


@router.get("/sections", response_model=SectionsOut)
async def list_sections(user: User = Depends(get_current_active_user)):
    """Dashboard sections the principal may open, in menu order."""
    sections = ["devices"]
    sections += [s for s in CONTENT_PERMISSIONS if has_content_permission(user, s)]
    if user.is_admin:
        sections.append("admin")
    return SectionsOut(sections=sections)


@router.get("/devices", response_model=list[DeviceOut])
async def list_my_devices(
    user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    devices = await device_service.list_devices_for_principal(user, db)
    return [DeviceOut.model_validate(d) for d in devices]


@router.get("/devices/{device_id}", response_model=DeviceOut)
async def get_my_device(
    device_id: uuid.UUID,
    user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    device = await device_service.get_device_for_principal(device_id, user, db)
    return DeviceOut.model_validate(device)


@router.get("/contracts", response_model=list[ContractOut])
async def list_my_contracts(
    user: User = Depends(require_content_permission("contracts")),
    db: AsyncSession = Depends(get_db),
):
    contracts = await device_service.list_contracts_for_principal(user, db)
    return [ContractOut(contract_id=c, serial_numbers=s) for c, s in contracts.items()]
