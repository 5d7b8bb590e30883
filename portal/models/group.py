"""
Group model: a customer group (holding) owning one or more companies.

`group_code` is the business key: companies reference it and GROUP
principals store it as their `access_id`.
"""

from __future__ import annotations

from sqlalchemy import Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from portal.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Group(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "groups"

    group_code: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(256), unique=True, nullable=False)
    device_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    training_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    mrr_total: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<Group {self.group_code} {self.name}>"
