"""
Device model: an installed defibrillator.

Devices are denormalized: they carry the *names* of their company and
group (as the spreadsheets do) rather than foreign keys.  Access scopes
therefore filter on `group_name` / `company_name` / `serial_number`.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, Float, String
from sqlalchemy.orm import Mapped, mapped_column

from portal.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class DeviceStatus(str, enum.Enum):
    ACTIVE = "ACTIVO"
    INACTIVE = "INACTIVO"
    CANCELLED = "CANCELADO"


class Device(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "devices"

    serial_number: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    contract_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    company_name: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    group_name: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    location: Mapped[str] = mapped_column(String(512), default="", nullable=False)
    province: Mapped[str] = mapped_column(String(128), default="", nullable=False)
    installed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    next_review_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[DeviceStatus] = mapped_column(
        Enum(
            DeviceStatus,
            name="device_status",
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=DeviceStatus.ACTIVE,
        nullable=False,
    )
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    report_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    audit_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    def __repr__(self) -> str:
        return f"<Device {self.serial_number} ({self.group_name})>"
