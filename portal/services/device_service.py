"""
Device service.

All principal-facing queries are scope-filtered through the
DeviceScope built by `resolve_data_scope`:
- Admin sees everything.
- GROUP / COMPANY principals see their group's / company's devices,
  soonest review first.
- DEVICE principals see at most their one device.
"""

import logging
import uuid
from collections import defaultdict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.errors import NotFound
from portal.models.company import Company
from portal.models.device import Device, DeviceStatus
from portal.models.user import User
from portal.rbac.context_resolver import resolve_data_scope
from portal.rbac.reference_resolver import available_devices

logger = logging.getLogger(__name__)


async def list_devices_for_principal(user: User, db: AsyncSession) -> list[Device]:
    """Devices visible to the principal.  An empty list is a valid answer."""
    scope = await resolve_data_scope(user, db)
    stmt = scope.devices.apply(select(Device))
    result = await db.execute(stmt)
    devices = list(result.scalars().all())
    logger.info(
        "Found %d devices for user %s (%s)",
        len(devices),
        user.id,
        scope.access_kind.value,
    )
    return devices


async def get_device_for_principal(
    device_id: uuid.UUID,
    user: User,
    db: AsyncSession,
) -> Device:
    """
    A single device: enforcing data scope.

    Out-of-scope devices are reported as missing so their existence
    is not disclosed.
    """
    scope = await resolve_data_scope(user, db)
    device = await db.get(Device, device_id)
    if device is None or not scope.devices.matches(device):
        raise NotFound("device")
    return device


async def list_contracts_for_principal(user: User, db: AsyncSession) -> dict[str, list[str]]:
    """Contract id → serial numbers of the principal's devices under it."""
    contracts: dict[str, list[str]] = defaultdict(list)
    for device in await list_devices_for_principal(user, db):
        if device.contract_id:
            contracts[device.contract_id].append(device.serial_number)
    return dict(sorted(contracts.items()))


async def list_assignable_devices(
    db: AsyncSession,
    company_id: uuid.UUID | None = None,
) -> list[Device]:
    """Active devices an admin can grant access to, optionally for one company."""
    company_name = None
    if company_id is not None:
        company = await db.get(Company, company_id)
        if company is None:
            raise NotFound("company")
        company_name = company.name

    stmt = (
        select(Device)
        .where(Device.status == DeviceStatus.ACTIVE)
        .order_by(Device.group_name.asc(), Device.serial_number.asc())
    )
    result = await db.execute(stmt)
    return available_devices(result.scalars().all(), company_name)
