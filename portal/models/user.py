"""
User model: the portal principal.

Design decisions:
- The access grant is a single (access_kind, access_id) pair.
  `access_id` is always a *business key* (group code, company code,
  device serial) because that is what the device table references;
  the internal ids the admin picked are kept alongside in
  group_id / company_id / device_id.
- `group_key` keeps the group's business key for GROUP and COMPANY
  grants so the edit form can re-select the group.
- Deactivation is a soft delete (`active = False`).
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from portal.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class AccessKind(str, enum.Enum):
    ADMIN = "ADMIN"
    GROUP = "GRUPO"
    COMPANY = "EMPRESA"
    DEVICE = "DISPOSITIVO"

    @classmethod
    def lookup(cls, value: object) -> AccessKind | None:
        """Case-insensitive match on the stored value or the member name."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        key = value.strip().upper()
        for kind in cls:
            if key in (kind.value, kind.name):
                return kind
        return None


ADMIN_ACCESS_ID = "ADMIN"


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(256), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(512), nullable=False)
    first_name: Mapped[str] = mapped_column(String(128), nullable=False)
    last_name: Mapped[str] = mapped_column(String(128), nullable=False)

    # ── Access grant ─────────────────────────────────────────────────
    access_kind: Mapped[AccessKind] = mapped_column(
        Enum(
            AccessKind,
            name="access_kind",
            values_callable=lambda kinds: [k.value for k in kinds],
        ),
        nullable=False,
    )
    access_id: Mapped[str] = mapped_column(String(256), nullable=False)
    group_key: Mapped[str | None] = mapped_column(String(256), nullable=True)
    group_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("groups.id", ondelete="SET NULL"),
        nullable=True,
    )
    company_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("companies.id", ondelete="SET NULL"),
        nullable=True,
    )
    device_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("devices.id", ondelete="SET NULL"),
        nullable=True,
    )

    # ── Content permissions ──────────────────────────────────────────
    can_view_contracts: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    can_view_trainings: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    can_view_invoices: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # ── Lifecycle ────────────────────────────────────────────────────
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(256), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(256), nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.access_kind == AccessKind.ADMIN

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User {self.email} [{self.access_kind.value}:{self.access_id}]>"
