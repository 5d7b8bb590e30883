"""
Context resolver: device data-scope enforcement.

Every device query made on behalf of a principal MUST pass through a
`DeviceScope` so that:
- GROUP principals see only their group's devices.
- COMPANY principals see only their company's devices.
- DEVICE principals see only their own device.
- Admins get unrestricted access.

`device_scope_for` is the pure mapping from an access grant to a
filter.  `resolve_data_scope` wraps it for a loaded principal, after
translating the stored group/company code into the name the devices
table carries.

Usage in a service:
    scope = await resolve_data_scope(current_user, db)
    stmt = scope.devices.apply(select(Device))
"""

import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.errors import InvalidAccessKind, Unauthorized
from portal.models.company import Company
from portal.models.device import Device
from portal.models.group import Group
from portal.models.user import AccessKind, User

logger = logging.getLogger("rbac")

# Device attribute each non-admin access kind filters on.
_SCOPE_COLUMNS: dict[AccessKind, str] = {
    AccessKind.GROUP: "group_name",
    AccessKind.COMPANY: "company_name",
    AccessKind.DEVICE: "serial_number",
}


@dataclass(frozen=True)
class DeviceScope:
    """
    A row-level filter over the devices table.

    - column / value: `None` for the unrestricted admin scope.
    - ordered: whether results are sorted by next review date.
    """

    access_kind: AccessKind
    column: str | None = None
    value: str | None = None
    ordered: bool = True

    @property
    def is_unrestricted(self) -> bool:
        return self.column is None

    def apply(self, stmt: Select) -> Select:
        if not self.is_unrestricted:
            stmt = stmt.where(getattr(Device, self.column) == self.value)
        if self.ordered:
            stmt = stmt.order_by(Device.next_review_at.asc(), Device.serial_number.asc())
        return stmt

    def matches(self, device: Device) -> bool:
        if self.is_unrestricted:
            return True
        return getattr(device, self.column) == self.value


def device_scope_for(access_kind: AccessKind | str, access_id: str | None) -> DeviceScope:
    """Translate an access grant into a device filter.  Pure: no I/O."""
    kind = AccessKind.lookup(access_kind)
    if kind is None:
        raise InvalidAccessKind(access_kind)

    if kind == AccessKind.ADMIN:
        return DeviceScope(access_kind=kind)

    if not access_id:
        raise Unauthorized(
            f"Access grant {kind.value} has no identifier",
            status_code=403,
        )

    return DeviceScope(
        access_kind=kind,
        column=_SCOPE_COLUMNS[kind],
        value=access_id,
        ordered=kind != AccessKind.DEVICE,
    )


@dataclass
class DataScope:
    """
    Encapsulates the data-access boundaries for the current request.

    - is_admin: full access, no filters needed.
    - devices: the filter every device query must go through.
    """

    user_id: uuid.UUID
    access_kind: AccessKind
    devices: DeviceScope
    is_admin: bool = False
    permissions: dict[str, bool] = field(default_factory=dict)


async def _device_side_key(kind: AccessKind, access_id: str, db: AsyncSession) -> str:
    """
    Devices reference groups and companies by name.  Map the stored
    business code to that name when the reference row exists, otherwise
    use the stored key as-is.
    """
    if kind == AccessKind.GROUP:
        stmt = select(Group.name).where(Group.group_code == access_id)
    elif kind == AccessKind.COMPANY:
        stmt = select(Company.name).where(Company.company_code == access_id)
    else:
        return access_id

    name = (await db.execute(stmt)).scalar_one_or_none()
    return name if name is not None else access_id


async def resolve_data_scope(user: User, db: AsyncSession) -> DataScope:
    """Build a DataScope from the authenticated principal's access grant."""
    if not user.active:
        raise Unauthorized("Account disabled", status_code=403)

    kind = AccessKind.lookup(user.access_kind)
    if kind is None:
        logger.warning("User %s has unknown access kind %r", user.id, user.access_kind)
        raise InvalidAccessKind(user.access_kind)

    access_id = user.access_id
    if kind != AccessKind.ADMIN and access_id:
        access_id = await _device_side_key(kind, access_id, db)

    devices = device_scope_for(kind, access_id)
    logger.debug("Scope for user %s: %s", user.id, devices)

    return DataScope(
        user_id=user.id,
        access_kind=kind,
        devices=devices,
        is_admin=devices.is_unrestricted,
        permissions={
            "contracts": user.can_view_contracts,
            "trainings": user.can_view_trainings,
            "invoices": user.can_view_invoices,
        },
    )
