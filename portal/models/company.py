"""
Company model.

A company belongs to exactly one Group, referenced by the group's
*business key* (`group_code`), not by its surrogate id: that is how
the spreadsheet imports link them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portal.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from portal.models.group import Group


class Company(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "companies"

    company_code: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    group_code: Mapped[str] = mapped_column(
        ForeignKey("groups.group_code", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )
    device_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    mrr: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), default=0, nullable=False)

    # ── Relationships ────────────────────────────────────────────────
    group: Mapped["Group"] = relationship(  # noqa: F821
        foreign_keys=[group_code],
        lazy="selectin",
    )

    @property
    def group_name(self) -> str | None:
        return self.group.name if self.group is not None else None

    def __repr__(self) -> str:
        return f"<Company {self.company_code} {self.name}>"
