"""
Reference resolver: internal id ↔ business key mapping.

The admin UI selects groups, companies and devices by their surrogate
ids, but a principal's `access_id` must hold the *business key* the
device table understands.  Both directions live here so the create,
update and edit-form paths share one implementation:

- `resolve_access_grant`: selected ids → AccessGrant (business keys).
- `hydrate_selection`: stored business keys → selected ids, reporting
  every key that no longer matches a reference row.
- `available_companies` / `available_devices`: the cascading selector
  options, derived from the current selection.
"""

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.errors import InvalidAccessKind, MissingRequiredField, NotFound
from portal.models.company import Company
from portal.models.device import Device
from portal.models.group import Group
from portal.models.user import ADMIN_ACCESS_ID, AccessKind, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessGrant:
    access_kind: AccessKind
    access_id: str
    group_key: str | None = None
    group_id: uuid.UUID | None = None
    company_id: uuid.UUID | None = None
    device_id: uuid.UUID | None = None


@dataclass
class ReferenceSelection:
    """Selector state for the user edit form."""

    access_kind: AccessKind
    group_id: uuid.UUID | None = None
    company_id: uuid.UUID | None = None
    device_id: uuid.UUID | None = None
    warnings: list[str] = field(default_factory=list)


# ── Forward: ids → business keys ────────────────────────────────────


async def _get_group(group_id: uuid.UUID, db: AsyncSession) -> Group:
    group = await db.get(Group, group_id)
    if group is None:
        raise NotFound("group")
    return group


async def _get_company(company_id: uuid.UUID, db: AsyncSession) -> Company:
    company = await db.get(Company, company_id)
    if company is None:
        raise NotFound("company")
    return company


async def _get_device(device_id: uuid.UUID, db: AsyncSession) -> Device:
    device = await db.get(Device, device_id)
    if device is None:
        raise NotFound("device")
    return device


def _check_required(
    kind: AccessKind,
    group_id: uuid.UUID | None,
    company_id: uuid.UUID | None,
    device_id: uuid.UUID | None,
) -> None:
    if kind == AccessKind.GROUP and group_id is None:
        raise MissingRequiredField("group")
    if kind == AccessKind.COMPANY:
        if group_id is None:
            raise MissingRequiredField("group")
        if company_id is None:
            raise MissingRequiredField("company")
    if kind == AccessKind.DEVICE and device_id is None:
        raise MissingRequiredField("device")


async def resolve_access_grant(
    access_kind: AccessKind | str,
    db: AsyncSession,
    group_id: uuid.UUID | None = None,
    company_id: uuid.UUID | None = None,
    device_id: uuid.UUID | None = None,
) -> AccessGrant:
    """
    Validate the selectors and map them to business keys.

    Required selectors are checked before anything is looked up, so a
    missing field is reported even when another id is also stale.
    Every supplied id must exist; the ones the role does not use are
    then dropped from the grant.
    """
    kind = AccessKind.lookup(access_kind)
    if kind is None:
        raise InvalidAccessKind(access_kind)

    _check_required(kind, group_id, company_id, device_id)

    group = await _get_group(group_id, db) if group_id is not None else None
    company = await _get_company(company_id, db) if company_id is not None else None
    device = await _get_device(device_id, db) if device_id is not None else None

    if kind == AccessKind.ADMIN:
        return AccessGrant(access_kind=kind, access_id=ADMIN_ACCESS_ID)

    if kind == AccessKind.GROUP:
        return AccessGrant(
            access_kind=kind,
            access_id=group.group_code,
            group_key=group.group_code,
            group_id=group.id,
        )

    if kind == AccessKind.COMPANY:
        if company.group_code != group.group_code:
            raise NotFound("company", "Company not found in the selected group")
        return AccessGrant(
            access_kind=kind,
            access_id=company.company_code,
            group_key=group.group_code,
            group_id=group.id,
            company_id=company.id,
        )

    return AccessGrant(
        access_kind=kind,
        access_id=device.serial_number,
        device_id=device.id,
    )


# ── Reverse: business keys → ids ────────────────────────────────────


async def _lookup_id(stmt, db: AsyncSession) -> uuid.UUID | None:
    # First match wins if a business key is ever duplicated.
    return (await db.execute(stmt.limit(1))).scalars().first()


async def hydrate_selection(user: User, db: AsyncSession) -> ReferenceSelection:
    """
    Pre-populate the edit form's selectors from the stored business keys.

    A key with no matching row leaves its selector unset and adds a
    warning, so the admin sees the desync instead of losing it silently.
    """
    kind = AccessKind.lookup(user.access_kind)
    if kind is None:
        raise InvalidAccessKind(user.access_kind)

    selection = ReferenceSelection(access_kind=kind)
    if kind == AccessKind.ADMIN:
        return selection

    if kind in (AccessKind.GROUP, AccessKind.COMPANY):
        group_key = user.group_key or (user.access_id if kind == AccessKind.GROUP else None)
        if not group_key:
            selection.warnings.append("No group is stored for this user")
        else:
            selection.group_id = await _lookup_id(
                select(Group.id).where(Group.group_code == group_key), db
            )
            if selection.group_id is None:
                selection.warnings.append(f"Group '{group_key}' no longer exists")

    if kind == AccessKind.COMPANY:
        selection.company_id = await _lookup_id(
            select(Company.id).where(Company.company_code == user.access_id), db
        )
        if selection.company_id is None:
            selection.warnings.append(f"Company '{user.access_id}' no longer exists")

    if kind == AccessKind.DEVICE:
        selection.device_id = await _lookup_id(
            select(Device.id).where(Device.serial_number == user.access_id), db
        )
        if selection.device_id is None:
            selection.warnings.append(f"Device '{user.access_id}' no longer exists")

    for warning in selection.warnings:
        logger.warning("Edit form for user %s: %s", user.id, warning)

    return selection


# ── Cascading selectors ─────────────────────────────────────────────


def available_companies(companies: Iterable[Company], group_code: str | None) -> list[Company]:
    """Companies selectable once a group is chosen (none before)."""
    if not group_code:
        return []
    return [c for c in companies if c.group_code == group_code]


def available_devices(devices: Iterable[Device], company_name: str | None = None) -> list[Device]:
    if company_name is None:
        return list(devices)
    return [d for d in devices if d.company_name == company_name]
