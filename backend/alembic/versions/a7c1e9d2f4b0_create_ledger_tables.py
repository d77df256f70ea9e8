"""Create account, processed_event and usage_reservation tables.

Revision ID: a7c1e9d2f4b0
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "a7c1e9d2f4b0"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create the ledger tables."""
    op.create_table(
        "account",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("modified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("credit_balance", sa.Integer(), nullable=False),
        sa.Column("images_generated", sa.Integer(), nullable=False),
        sa.Column("daily_limit", sa.Integer(), nullable=False),
        sa.Column("daily_usage_count", sa.Integer(), nullable=False),
        sa.Column("daily_usage_window_start", sa.Date(), nullable=True),
        sa.Column("tier", sa.String(length=32), nullable=False),
        sa.Column("subscription_active", sa.Boolean(), nullable=False),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=False),
        sa.Column("subscription_started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("external_customer_ref", sa.String(length=255), nullable=True),
        sa.CheckConstraint(
            "credit_balance >= 0", name=op.f("ck_account_credit_balance_non_negative")
        ),
        sa.CheckConstraint(
            "daily_usage_count >= 0", name=op.f("ck_account_daily_usage_non_negative")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_account")),
        sa.UniqueConstraint("email", name=op.f("uq_account_email")),
        sa.UniqueConstraint(
            "external_customer_ref", name=op.f("uq_account_external_customer_ref")
        ),
    )
    op.create_index("idx_account_tier", "account", ["tier"])

    op.create_table(
        "processed_event",
        sa.Column("event_id", sa.String(length=255), nullable=False),
        sa.Column("event_type", sa.String(length=128), nullable=False),
        sa.Column("account_id", sa.Uuid(), nullable=True),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["account_id"],
            ["account.id"],
            name=op.f("fk_processed_event_account_id_account"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("event_id", name=op.f("pk_processed_event")),
    )

    op.create_table(
        "usage_reservation",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("modified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("account_id", sa.Uuid(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("settled_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["account_id"],
            ["account.id"],
            name=op.f("fk_usage_reservation_account_id_account"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_usage_reservation")),
    )
    op.create_index(
        "idx_usage_reservation_status_expires_at",
        "usage_reservation",
        ["status", "expires_at"],
    )
    op.create_index("idx_usage_reservation_account_id", "usage_reservation", ["account_id"])


def downgrade():
    """Drop the ledger tables."""
    op.drop_index("idx_usage_reservation_account_id", table_name="usage_reservation")
    op.drop_index("idx_usage_reservation_status_expires_at", table_name="usage_reservation")
    op.drop_table("usage_reservation")
    op.drop_table("processed_event")
    op.drop_index("idx_account_tier", table_name="account")
    op.drop_table("account")
