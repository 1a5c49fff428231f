"""Create payout_requests table

Revision ID: 20261018_000002
Revises: 20261018_000001
Create Date: 2026-10-18

Rows are inserted by the payout transaction together with the balance debit.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261018_000002"
down_revision: Union[str, None] = "20261018_000001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


payout_status = sa.Enum(
    "pending", "approved", "confirmed", "paid", "processed", "rejected",
    name="payout_status",
)


def upgrade() -> None:
    op.create_table(
        "payout_requests",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("company_id", sa.String(36), nullable=True),
        sa.Column("invoice_url", sa.String(500), server_default="", nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", payout_status, server_default="pending", nullable=False),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["company_id"],
            ["companies.id"],
            name="fk_payout_requests_company_id",
            ondelete="RESTRICT",
        ),
        sa.CheckConstraint("amount IS NULL OR amount >= 0", name="ck_payout_requests_amount_non_negative"),
    )
    op.create_index("ix_payout_requests_user_id", "payout_requests", ["user_id"])
    op.create_index("ix_payout_requests_company_id", "payout_requests", ["company_id"])
    op.create_index("ix_payout_requests_status", "payout_requests", ["status"])


def downgrade() -> None:
    op.drop_index("ix_payout_requests_status", table_name="payout_requests")
    op.drop_index("ix_payout_requests_company_id", table_name="payout_requests")
    op.drop_index("ix_payout_requests_user_id", table_name="payout_requests")
    op.drop_table("payout_requests")
    payout_status.drop(op.get_bind(), checkfirst=True)
