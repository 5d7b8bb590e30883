"""
Pydantic schemas for request / response serialization.

Kept in a single file: split per-domain when it grows.
Schemas are deliberately decoupled from SQLAlchemy models so the
API surface can evolve independently of the DB layer.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from portal.models.user import AccessKind


def _parse_access_kind(value: object) -> AccessKind:
    kind = AccessKind.lookup(value)
    if kind is None:
        raise ValueError(f"Unknown access type: {value!r}")
    return kind


# ── Auth ─────────────────────────────────────────────────────────────
class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    access_kind: AccessKind
    access_id: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=8)


# ── User ─────────────────────────────────────────────────────────────
class UserOut(BaseModel):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    access_kind: AccessKind
    access_id: str
    group_key: str | None = None
    group_id: uuid.UUID | None = None
    company_id: uuid.UUID | None = None
    device_id: uuid.UUID | None = None
    can_view_contracts: bool
    can_view_trainings: bool
    can_view_invoices: bool
    active: bool
    last_login_at: datetime | None = None
    created_by: str | None = None
    updated_by: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CreateUserRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    access_kind: AccessKind
    group_id: uuid.UUID | None = None
    company_id: uuid.UUID | None = None
    device_id: uuid.UUID | None = None
    can_view_contracts: bool = True
    can_view_trainings: bool = True
    can_view_invoices: bool = True

    @field_validator("access_kind", mode="before")
    @classmethod
    def parse_kind(cls, value: object) -> AccessKind:
        return _parse_access_kind(value)


class UpdateUserRequest(BaseModel):
    """Partial update: only the fields sent are applied."""

    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=8)
    first_name: str | None = None
    last_name: str | None = None
    access_kind: AccessKind | None = None
    group_id: uuid.UUID | None = None
    company_id: uuid.UUID | None = None
    device_id: uuid.UUID | None = None
    can_view_contracts: bool | None = None
    can_view_trainings: bool | None = None
    can_view_invoices: bool | None = None
    active: bool | None = None

    @field_validator("access_kind", mode="before")
    @classmethod
    def parse_kind(cls, value: object) -> AccessKind | None:
        if value is None:
            return None
        return _parse_access_kind(value)

    @field_validator("password", mode="before")
    @classmethod
    def blank_password_is_unchanged(cls, value: object) -> object:
        # The edit form sends "" when the password is left untouched.
        if isinstance(value, str) and not value.strip():
            return None
        return value


class SelectionOut(BaseModel):
    access_kind: AccessKind
    group_id: uuid.UUID | None = None
    company_id: uuid.UUID | None = None
    device_id: uuid.UUID | None = None
    warnings: list[str] = []

    model_config = {"from_attributes": True}


# ── Reference data ──────────────────────────────────────────────────
class GroupOut(BaseModel):
    id: uuid.UUID
    group_code: str
    name: str
    device_count: int
    training_count: int
    mrr_total: float

    model_config = {"from_attributes": True}


class CompanyOut(BaseModel):
    id: uuid.UUID
    company_code: str
    name: str
    group_code: str
    group_name: str | None = None
    device_count: int
    mrr: float

    model_config = {"from_attributes": True}


class DeviceOut(BaseModel):
    id: uuid.UUID
    serial_number: str
    contract_id: str | None = None
    company_name: str
    group_name: str
    location: str
    province: str
    installed_at: datetime
    next_review_at: datetime
    status: str
    latitude: float | None = None
    longitude: float | None = None
    report_url: str | None = None
    audit_url: str | None = None

    model_config = {"from_attributes": True}

    @field_validator("status", mode="before")
    @classmethod
    def status_value(cls, value: object) -> object:
        return getattr(value, "value", value)


class ContractOut(BaseModel):
    contract_id: str
    serial_numbers: list[str]


# ── Portal ───────────────────────────────────────────────────────────
class PrincipalOut(BaseModel):
    id: uuid.UUID
    email: str
    full_name: str
    access_kind: AccessKind
    access_id: str
    permissions: dict[str, bool]


class SectionsOut(BaseModel):
    sections: list[str]


# ── Activity ────────────────────────────────────────────────────────
class ActivityOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID | None = None
    action: str
    details: dict
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


# ── Generic ──────────────────────────────────────────────────────────
class MessageResponse(BaseModel):
    detail: str
