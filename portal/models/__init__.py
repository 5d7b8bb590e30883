"""
Models package: import every model so SQLAlchemy's Base.metadata
knows about all tables (critical for Alembic autogenerate and tests).
"""

from portal.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from portal.models.group import Group
from portal.models.company import Company
from portal.models.device import Device, DeviceStatus
from portal.models.user import ADMIN_ACCESS_ID, AccessKind, User
from portal.models.activity_log import ActivityAction, ActivityLog

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "Group",
    "Company",
    "Device",
    "DeviceStatus",
    "User",
    "AccessKind",
    "ADMIN_ACCESS_ID",
    "ActivityLog",
    "ActivityAction",
]
