"""Create rate_limit_counters and rate_limit_blocks tables

Revision ID: 20261018_000003
Revises: 20261018_000002
Create Date: 2026-10-18

Shared rate limit state for every server process.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261018_000003"
down_revision: Union[str, None] = "20261018_000002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "rate_limit_counters",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("key", sa.String(255), nullable=False),
        sa.Column("window_start", sa.BigInteger(), nullable=False),
        sa.Column("count", sa.Integer(), server_default="0", nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key", "window_start", name="uq_rate_limit_counters_key_window"),
    )
    op.create_index("ix_rate_limit_counters_key", "rate_limit_counters", ["key"])

    op.create_table(
        "rate_limit_blocks",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("key", sa.String(255), nullable=False),
        sa.Column("blocked_until", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key", name="uq_rate_limit_blocks_key"),
    )


def downgrade() -> None:
    op.drop_table("rate_limit_blocks")
    op.drop_index("ix_rate_limit_counters_key", table_name="rate_limit_counters")
    op.drop_table("rate_limit_counters")
