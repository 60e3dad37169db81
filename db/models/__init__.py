"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.customer import Customer
from db.models.order import Order

__all__ = [
    "Customer",
    "Order",
]
