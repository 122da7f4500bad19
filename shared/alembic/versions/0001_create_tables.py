"""Create delivery_attempts and dispatch_outcomes tables.

Revision ID: 0001
Revises: -
Create Date: 2026-10-19
"""

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "delivery_attempts",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("request_id", sa.String(64), nullable=False),
        sa.Column("attempt_number", sa.Integer, nullable=False),
        sa.Column("outcome", sa.String(32), nullable=False),
        sa.Column("provider_status", sa.Integer, nullable=True),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "recorded_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_delivery_attempts_request_id", "delivery_attempts", ["request_id"]
    )

    op.create_table(
        "dispatch_outcomes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("request_id", sa.String(64), nullable=False),
        sa.Column("channel", sa.String(16), nullable=True),
        sa.Column("final_state", sa.String(16), nullable=False),
        sa.Column("error", sa.String(32), nullable=True),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column(
            "attempt_count", sa.Integer, nullable=False, server_default="0"
        ),
        sa.Column(
            "finalized_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_dispatch_outcomes_request_id", "dispatch_outcomes", ["request_id"]
    )
    op.create_index(
        "ix_dispatch_outcomes_final_state", "dispatch_outcomes", ["final_state"]
    )


def downgrade() -> None:
    op.drop_index("ix_dispatch_outcomes_final_state", table_name="dispatch_outcomes")
    op.drop_index("ix_dispatch_outcomes_request_id", table_name="dispatch_outcomes")
    op.drop_table("dispatch_outcomes")
    op.drop_index("ix_delivery_attempts_request_id", table_name="delivery_attempts")
    op.drop_table("delivery_attempts")
