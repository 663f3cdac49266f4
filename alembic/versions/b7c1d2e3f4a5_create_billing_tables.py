"""Create usage_event, balance and balance_transaction tables.

Revision ID: b7c1d2e3f4a5
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision = "b7c1d2e3f4a5"
down_revision = None
branch_labels = None
depends_on = None


def _audit_columns() -> list:
    return [
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("organization_id", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("modified_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    """Create the billing tables.

    Usage events move PENDING -> QUEUING -> QUEUED -> PROCESSED; the CHECK on
    ``batch_id`` keeps it set exactly when an event has left PENDING. Ledger
    entries hold both credit layers and job-keyed debit records.
    """
    op.create_table(
        "usage_event",
        *_audit_columns(),
        sa.Column("idempotency_key", sa.String(128), nullable=False),
        sa.Column("cost_units", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("batch_id", sa.Uuid(), nullable=True),
        sa.Column("claimed_at", sa.DateTime(), nullable=True),
        sa.Column("model", sa.String(255), nullable=True),
        sa.Column("input_tokens", sa.Integer(), nullable=True),
        sa.Column("output_tokens", sa.Integer(), nullable=True),
        sa.Column("connection_type", sa.String(20), nullable=True),
        sa.Column("event_metadata", postgresql.JSONB(), nullable=True),
        sa.UniqueConstraint("idempotency_key", name="uq_usage_event_idempotency_key"),
        sa.CheckConstraint("cost_units >= 0", name="ck_usage_event_cost_units_non_negative"),
        sa.CheckConstraint(
            "(status = 'PENDING') = (batch_id IS NULL)",
            name="ck_usage_event_batch_id_matches_status",
        ),
    )
    op.create_index("idx_usage_event_status_created_at", "usage_event", ["status", "created_at"])
    op.create_index("idx_usage_event_batch_id_status", "usage_event", ["batch_id", "status"])
    op.create_index("idx_usage_event_status_claimed_at", "usage_event", ["status", "claimed_at"])

    op.create_table(
        "balance",
        *_audit_columns(),
        sa.Column("balance_in_usd_cents", sa.BigInteger(), nullable=False, server_default="0"),
        sa.UniqueConstraint("organization_id", name="uq_balance_organization_id"),
    )

    op.create_table(
        "balance_transaction",
        *_audit_columns(),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("amount_in_usd_cents", sa.BigInteger(), nullable=False),
        sa.Column("remaining_in_usd_cents", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("fee_in_usd_cents", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("job_id", sa.Uuid(), nullable=True),
        sa.Column("batch_id", sa.Uuid(), nullable=True),
        sa.UniqueConstraint("job_id", name="uq_balance_transaction_job_id"),
        sa.CheckConstraint(
            "remaining_in_usd_cents >= 0 "
            "AND remaining_in_usd_cents <= GREATEST(amount_in_usd_cents, 0)",
            name="ck_balance_transaction_remaining_within_amount",
        ),
        sa.CheckConstraint(
            "type <> 'usage_fee' OR job_id IS NOT NULL",
            name="ck_balance_transaction_usage_fee_has_job_id",
        ),
    )
    op.create_index(
        "idx_balance_transaction_open_layers",
        "balance_transaction",
        ["organization_id", "created_at"],
        postgresql_where=sa.text("remaining_in_usd_cents > 0"),
    )
    op.create_index(
        "idx_balance_transaction_batch_id_type", "balance_transaction", ["batch_id", "type"]
    )


def downgrade():
    """Drop the billing tables."""
    op.drop_index("idx_balance_transaction_batch_id_type", table_name="balance_transaction")
    op.drop_index("idx_balance_transaction_open_layers", table_name="balance_transaction")
    op.drop_table("balance_transaction")
    op.drop_table("balance")
    op.drop_index("idx_usage_event_status_claimed_at", table_name="usage_event")
    op.drop_index("idx_usage_event_batch_id_status", table_name="usage_event")
    op.drop_index("idx_usage_event_status_created_at", table_name="usage_event")
    op.drop_table("usage_event")
