"""initial payment gateway ledger schema

Revision ID: 0001_payment_gateway
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_payment_gateway"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "pending_transactions",
        sa.Column("transaction_id", sa.String(), nullable=False),
        sa.Column("card_fingerprint", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.Column("expires_at", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("transaction_id"),
    )
    op.create_index(
        "ix_pending_transactions_card_fingerprint",
        "pending_transactions",
        ["card_fingerprint"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index("ix_pending_transactions_card_fingerprint", table_name="pending_transactions")
    op.drop_table("pending_transactions")
