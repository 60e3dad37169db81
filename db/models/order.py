"""
db/models/order.py

Order rows written by the import pipeline.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Index, Numeric, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class Order(Base, TimestampMixin):
    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    dedupe_key: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Identity key used by import duplicate suppression",
    )
    order_id: Mapped[str | None] = mapped_column(
        String(120),
        nullable=True,
        comment="External order reference from the source sheet",
    )
    order_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    fb_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str | None] = mapped_column(
        String(16),
        nullable=True,
        comment="pending, paid, shipped, delivered, cancelled",
    )
    package_type: Mapped[str | None] = mapped_column(String(120), nullable=True)
    package_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    postage: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    website_charges: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    postcode: Mapped[str | None] = mapped_column(String(20), nullable=True)
    state: Mapped[str | None] = mapped_column(String(120), nullable=True)
    customer_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    agent: Mapped[str | None] = mapped_column(String(120), nullable=True)
    remark: Mapped[str | None] = mapped_column(Text, nullable=True)
    currency: Mapped[str | None] = mapped_column(String(8), nullable=True)
    tracking_number: Mapped[str | None] = mapped_column(String(120), nullable=True)
    courier_company: Mapped[str | None] = mapped_column(String(120), nullable=True)

    __table_args__ = (
        UniqueConstraint("dedupe_key", name="uq_orders_dedupe_key"),
        Index("ix_orders_phone", "phone"),
        Index("ix_orders_order_date", "order_date"),
    )
