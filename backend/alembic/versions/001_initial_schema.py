"""Initial schema

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

movement_type = sa.Enum(
    "ADDED", "RETURNED", "SOLD", "EXPIRED", "DAMAGED", "ADJUSTMENT",
    name="stock_movement_type",
)


def upgrade() -> None:
    # Venues table
    op.create_table(
        "venues",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(200), unique=True, nullable=False),
        sa.Column("code", sa.String(50), unique=True, nullable=True),
        sa.Column("active", sa.Boolean(), default=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Products table
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("venue_id", sa.Integer(), sa.ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False, index=True),
        sa.Column("sku", sa.String(50), nullable=True, index=True),
        sa.Column("unit", sa.String(20), default="pcs", nullable=False),
        sa.Column("track_stock", sa.Boolean(), default=True, nullable=False),
        sa.Column("current_stock", sa.Numeric(12, 2), default=0, nullable=False),
        sa.Column("min_stock", sa.Numeric(12, 2), default=0, nullable=False),
        sa.Column("active", sa.Boolean(), default=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Monthly stock ledgers - one per venue/product/month
    op.create_table(
        "monthly_stock_ledgers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("venue_id", sa.Integer(), sa.ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month_number", sa.Integer(), nullable=False),
        sa.Column("month_name", sa.String(12), nullable=False),
        sa.Column("carry_forward", sa.Numeric(12, 2), default=0, nullable=False),
        sa.Column("expired_carry_forward_stock", sa.Numeric(12, 2), default=0, nullable=False),
        sa.Column("total_added", sa.Numeric(12, 2), default=0, nullable=False),
        sa.Column("total_used", sa.Numeric(12, 2), default=0, nullable=False),
        sa.Column("total_expired", sa.Numeric(12, 2), default=0, nullable=False),
        sa.Column("total_damaged", sa.Numeric(12, 2), default=0, nullable=False),
        sa.Column("closing_balance", sa.Numeric(12, 2), default=0, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("venue_id", "product_id", "year", "month_number", name="uq_stock_ledger_period"),
        sa.CheckConstraint("month_number BETWEEN 1 AND 12", name="ck_monthly_stock_ledgers_month"),
    )

    # Ledger entries
    op.create_table(
        "stock_ledger_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ledger_id", sa.Integer(), sa.ForeignKey("monthly_stock_ledgers.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("position", sa.Integer(), default=0, nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("type", movement_type, nullable=False),
        sa.Column("quantity", sa.Numeric(12, 2), nullable=False),
        sa.Column("stock_added", sa.Numeric(12, 2), default=0, nullable=False),
        sa.Column("used_stock", sa.Numeric(12, 2), default=0, nullable=False),
        sa.Column("expired_stock", sa.Numeric(12, 2), default=0, nullable=False),
        sa.Column("damage_stock", sa.Numeric(12, 2), default=0, nullable=False),
        sa.Column("opening_balance", sa.Numeric(12, 2), default=0, nullable=False),
        sa.Column("balance", sa.Numeric(12, 2), default=0, nullable=False),
        sa.Column("expire_date", sa.Date(), nullable=True, index=True),
        sa.Column("batch_number", sa.String(100), nullable=True),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("expiry_recognized_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Cross-month expiry bookings
    op.create_table(
        "stock_expiry_carryovers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("entry_id", sa.Integer(), sa.ForeignKey("stock_ledger_entries.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("ledger_id", sa.Integer(), sa.ForeignKey("monthly_stock_ledgers.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("quantity", sa.Numeric(12, 2), nullable=False),
        sa.Column("recognized_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("stock_expiry_carryovers")
    op.drop_table("stock_ledger_entries")
    op.drop_table("monthly_stock_ledgers")
    op.drop_table("products")
    op.drop_table("venues")
    movement_type.drop(op.get_bind(), checkfirst=True)
