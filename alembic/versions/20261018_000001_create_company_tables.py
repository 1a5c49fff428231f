"""Create companies, company_members and cars tables

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18

One company per owner (uq_companies_owner_id); balances may never go negative.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261018_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


verification_status = sa.Enum(
    "pending", "verified", "rejected", "suspended",
    name="verification_status",
)
company_member_role = sa.Enum("owner", "admin", "member", name="company_member_role")


def upgrade() -> None:
    op.create_table(
        "companies",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("legal_name", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("website", sa.String(255), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("postal_code", sa.String(20), nullable=True),
        sa.Column("tax_id", sa.String(100), nullable=True),
        sa.Column("logo", sa.String(500), nullable=True),
        sa.Column("owner_id", sa.String(36), nullable=True),
        sa.Column("available_balance", sa.Numeric(12, 2), server_default="0", nullable=False),
        sa.Column("pending_payout_amount", sa.Numeric(12, 2), server_default="0", nullable=False),
        sa.Column("verification_status", verification_status, server_default="pending", nullable=False),
        sa.Column("timezone", sa.String(64), server_default="UTC", nullable=False),
        sa.Column("currency", sa.String(3), server_default="USD", nullable=False),
        sa.Column("language", sa.String(8), server_default="en", nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("owner_id", name="uq_companies_owner_id"),
        sa.CheckConstraint("available_balance >= 0", name="ck_companies_available_balance_non_negative"),
        sa.CheckConstraint("pending_payout_amount >= 0", name="ck_companies_pending_payout_non_negative"),
    )
    op.create_index("ix_companies_owner_id", "companies", ["owner_id"])

    op.create_table(
        "company_members",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("company_id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("role", company_member_role, server_default="member", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["company_id"],
            ["companies.id"],
            name="fk_company_members_company_id",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("company_id", "user_id", name="uq_company_members_company_user"),
    )
    op.create_index("ix_company_members_company_id", "company_members", ["company_id"])
    op.create_index("ix_company_members_user_id", "company_members", ["user_id"])

    op.create_table(
        "cars",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("company_id", sa.String(36), nullable=True),
        sa.Column("owner_id", sa.String(36), nullable=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], name="fk_cars_company_id"),
    )
    op.create_index("ix_cars_company_id", "cars", ["company_id"])
    op.create_index("ix_cars_owner_id", "cars", ["owner_id"])


def downgrade() -> None:
    op.drop_index("ix_cars_owner_id", table_name="cars")
    op.drop_index("ix_cars_company_id", table_name="cars")
    op.drop_table("cars")
    op.drop_index("ix_company_members_user_id", table_name="company_members")
    op.drop_index("ix_company_members_company_id", table_name="company_members")
    op.drop_table("company_members")
    op.drop_index("ix_companies_owner_id", table_name="companies")
    op.drop_table("companies")
    company_member_role.drop(op.get_bind(), checkfirst=True)
    verification_status.drop(op.get_bind(), checkfirst=True)
