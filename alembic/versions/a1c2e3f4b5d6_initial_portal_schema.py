"""initial portal schema

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a1c2e3f4b5d6"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

access_kind = sa.Enum("ADMIN", "GRUPO", "EMPRESA", "DISPOSITIVO", name="access_kind")
device_status = sa.Enum("ACTIVO", "INACTIVO", "CANCELADO", name="device_status")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create reference tables (groups, companies, devices), users and activity log."""
    op.create_table(
        "groups",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("group_code", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.Column("device_count", sa.Integer(), nullable=False),
        sa.Column("training_count", sa.Integer(), nullable=False),
        sa.Column("mrr_total", sa.Numeric(12, 2), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
        sa.UniqueConstraint("name", name="uq_groups_name"),
    )
    op.create_index("ix_groups_group_code", "groups", ["group_code"], unique=True)

    op.create_table(
        "companies",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("company_code", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.Column("group_code", sa.String(length=128), nullable=False),
        sa.Column("device_count", sa.Integer(), nullable=False),
        sa.Column("mrr", sa.Numeric(12, 2), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["group_code"],
            ["groups.group_code"],
            name="fk_companies_group_code_groups",
            onupdate="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_companies"),
    )
    op.create_index("ix_companies_company_code", "companies", ["company_code"], unique=True)
    op.create_index("ix_companies_name", "companies", ["name"])
    op.create_index("ix_companies_group_code", "companies", ["group_code"])

    op.create_table(
        "devices",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("serial_number", sa.String(length=128), nullable=False),
        sa.Column("contract_id", sa.String(length=128), nullable=True),
        sa.Column("company_name", sa.String(length=256), nullable=False),
        sa.Column("group_name", sa.String(length=256), nullable=False),
        sa.Column("location", sa.String(length=512), nullable=False),
        sa.Column("province", sa.String(length=128), nullable=False),
        sa.Column("installed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("next_review_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", device_status, nullable=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("report_url", sa.String(length=1024), nullable=True),
        sa.Column("audit_url", sa.String(length=1024), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_devices"),
    )
    op.create_index("ix_devices_serial_number", "devices", ["serial_number"], unique=True)
    op.create_index("ix_devices_company_name", "devices", ["company_name"])
    op.create_index("ix_devices_group_name", "devices", ["group_name"])

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=256), nullable=False),
        sa.Column("password_hash", sa.String(length=512), nullable=False),
        sa.Column("first_name", sa.String(length=128), nullable=False),
        sa.Column("last_name", sa.String(length=128), nullable=False),
        sa.Column("access_kind", access_kind, nullable=False),
        sa.Column("access_id", sa.String(length=256), nullable=False),
        sa.Column("group_key", sa.String(length=256), nullable=True),
        sa.Column("group_id", sa.Uuid(), nullable=True),
        sa.Column("company_id", sa.Uuid(), nullable=True),
        sa.Column("device_id", sa.Uuid(), nullable=True),
        sa.Column("can_view_contracts", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("can_view_trainings", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("can_view_invoices", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(length=256), nullable=True),
        sa.Column("updated_by", sa.String(length=256), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"], name="fk_users_group_id_groups", ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["company_id"], ["companies.id"], name="fk_users_company_id_companies", ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(["device_id"], ["devices.id"], name="fk_users_device_id_devices", ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_active", "users", ["active"])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_activity_logs_user_id_users", ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_activity_logs"),
    )
    op.create_index("ix_activity_logs_user_id", "activity_logs", ["user_id"])
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])
    op.create_index("ix_activity_logs_created_at", "activity_logs", ["created_at"])


def downgrade() -> None:
    """Drop everything created in upgrade(), dependents first."""
    op.drop_table("activity_logs")
    op.drop_table("users")
    op.drop_table("devices")
    op.drop_table("companies")
    op.drop_table("groups")
    access_kind.drop(op.get_bind(), checkfirst=True)
    device_status.drop(op.get_bind(), checkfirst=True)
