"""gift cards

Revision ID: 20261017_gift_cards
Revises:
Create Date: 2026-10-17

Creates the gift_cards table:
- code: unique, the insert-time uniqueness guarantee for generated codes
- payment_id: unique, one verified payment mints at most one card
- status: active | redeemed | expired (forward-only, enforced by conditional UPDATE)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_gift_cards"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "gift_cards",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("sender_email", sa.String(255), nullable=False),
        sa.Column("recipient_email", sa.String(255), nullable=True),
        sa.Column("recipient_name", sa.String(255), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(8), nullable=False),
        sa.Column("currency_symbol", sa.String(8), nullable=True),
        sa.Column("denom_type", sa.String(16), nullable=False, server_default="fixed"),
        sa.Column("balance", sa.Numeric(12, 2), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("payment_order_id", sa.String(64), nullable=True),
        sa.Column("payment_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("redeemed_at", sa.DateTime(), nullable=True),
        sa.Column("redemption_details", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("payment_id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("gift_cards", schema=None) as batch_op:
        batch_op.create_index("ix_gift_cards_code", ["code"], unique=True)
        batch_op.create_index("ix_gift_cards_status", ["status"], unique=False)


def downgrade():
    with op.batch_alter_table("gift_cards", schema=None) as batch_op:
        batch_op.drop_index("ix_gift_cards_status")
        batch_op.drop_index("ix_gift_cards_code")

    op.drop_table("gift_cards")
