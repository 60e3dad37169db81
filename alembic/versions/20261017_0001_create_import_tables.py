"""create customers and orders import tables

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _address_columns() -> list[sa.Column]:
    return [
        sa.Column("address", sa.String(length=500), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("postcode", sa.String(length=20), nullable=True),
        sa.Column("state", sa.String(length=120), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "customers",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column(
            "dedupe_key",
            sa.String(length=255),
            nullable=False,
            comment="Identity key used by import duplicate suppression",
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=False),
        sa.Column("fb_name", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("repeat_customer", sa.String(length=16), nullable=True, comment="new, returning"),
        *_address_columns(),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id", name="pk_customers"),
        sa.UniqueConstraint("dedupe_key", name="uq_customers_dedupe_key"),
    )
    op.create_index("ix_customers_phone", "customers", ["phone"], unique=False)

    op.create_table(
        "orders",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column(
            "dedupe_key",
            sa.String(length=255),
            nullable=False,
            comment="Identity key used by import duplicate suppression",
        ),
        sa.Column(
            "order_id",
            sa.String(length=120),
            nullable=True,
            comment="External order reference from the source sheet",
        ),
        sa.Column("order_date", sa.Date(), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=False),
        sa.Column("fb_name", sa.String(length=255), nullable=True),
        sa.Column("payment_method", sa.String(length=64), nullable=True),
        sa.Column(
            "status",
            sa.String(length=16),
            nullable=True,
            comment="pending, paid, shipped, delivered, cancelled",
        ),
        sa.Column("package_type", sa.String(length=120), nullable=True),
        sa.Column("package_amount", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("postage", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("website_charges", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("total", sa.Numeric(precision=12, scale=2), nullable=False),
        *_address_columns(),
        sa.Column("customer_type", sa.String(length=64), nullable=True),
        sa.Column("agent", sa.String(length=120), nullable=True),
        sa.Column("remark", sa.Text(), nullable=True),
        sa.Column("currency", sa.String(length=8), nullable=True),
        sa.Column("tracking_number", sa.String(length=120), nullable=True),
        sa.Column("courier_company", sa.String(length=120), nullable=True),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id", name="pk_orders"),
        sa.UniqueConstraint("dedupe_key", name="uq_orders_dedupe_key"),
    )
    op.create_index("ix_orders_phone", "orders", ["phone"], unique=False)
    op.create_index("ix_orders_order_date", "orders", ["order_date"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_orders_order_date", table_name="orders")
    op.drop_index("ix_orders_phone", table_name="orders")
    op.drop_table("orders")
    op.drop_index("ix_customers_phone", table_name="customers")
    op.drop_table("customers")
