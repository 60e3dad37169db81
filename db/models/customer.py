"""
db/models/customer.py

Customer rows written by the import pipeline.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class Customer(Base, TimestampMixin):
    __tablename__ = "customers"

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
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    fb_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    repeat_customer: Mapped[str | None] = mapped_column(
        String(16),
        nullable=True,
        comment="new, returning",
    )
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    postcode: Mapped[str | None] = mapped_column(String(20), nullable=True)
    state: Mapped[str | None] = mapped_column(String(120), nullable=True)

    __table_args__ = (
        UniqueConstraint("dedupe_key", name="uq_customers_dedupe_key"),
        Index("ix_customers_phone", "phone"),
    )
