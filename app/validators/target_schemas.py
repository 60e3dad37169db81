"""
app/validators/target_schemas.py

Closed field schemas for each import target, plus duplicate-key rules.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from sqlalchemy import Numeric, String, Table

from app.domain.import_records import CustomerRecord, ImportTarget, OrderRecord, TargetRecord
from db.models import Customer, Order


class FieldKind:
    STRING = "string"
    PHONE = "phone"
    EMAIL = "email"
    AMOUNT = "amount"
    DATE = "date"
    ENUM = "enum"


@dataclass(frozen=True)
class FieldSpec:
    """
    Rules for one schema field.
    """

    name: str
    kind: str = FieldKind.STRING
    required: bool = False
    choices: tuple[str, ...] = ()
    aliases: tuple[str, ...] = ()
    sample: str = ""
    max_length: int | None = None
    max_amount: Decimal | None = None


@dataclass(frozen=True)
class TargetSchema:
    """
    Ordered field list for one import target.
    """

    target: ImportTarget
    fields: tuple[FieldSpec, ...]

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(spec.name for spec in self.fields)

    @property
    def required_fields(self) -> tuple[str, ...]:
        return tuple(spec.name for spec in self.fields if spec.required)


def bind_column_limits(fields: tuple[FieldSpec, ...], table: Table) -> tuple[FieldSpec, ...]:
    """
    Copy string lengths and numeric precision from ``table`` onto matching fields.

    Values that pass validation must also fit the columns they are stored in.
    """

    bound: list[FieldSpec] = []
    for spec in fields:
        column = table.columns.get(spec.name)
        column_type = column.type if column is not None else None
        if isinstance(column_type, Numeric) and column_type.precision is not None:
            scale = column_type.scale or 0
            max_amount = Decimal(10) ** (column_type.precision - scale) - Decimal(1).scaleb(-scale)
            spec = replace(spec, max_amount=max_amount)
        elif isinstance(column_type, String) and column_type.length:
            spec = replace(spec, max_length=column_type.length)
        bound.append(spec)
    return tuple(bound)


_ADDRESS_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("address", aliases=("street", "address_line", "shipping_address"), sample="12 Jalan Ampang"),
    FieldSpec("city", aliases=("town",), sample="Kuala Lumpur"),
    FieldSpec("postcode", aliases=("postal_code", "zip", "zipcode", "zip_code"), sample="50450"),
    FieldSpec("state", aliases=("region", "province"), sample="WP Kuala Lumpur"),
)

_CUSTOMER_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("name", required=True, aliases=("customer_name", "full_name"), sample="Alice Tan"),
    FieldSpec(
        "phone",
        kind=FieldKind.PHONE,
        required=True,
        aliases=("phone_number", "mobile", "contact_number", "whatsapp"),
        sample="60123456789",
    ),
    FieldSpec("fb_name", aliases=("facebook_name", "fbname"), sample="alice.tan"),
    FieldSpec("email", kind=FieldKind.EMAIL, aliases=("email_address", "e_mail"), sample="alice@example.com"),
    FieldSpec(
        "repeat_customer",
        kind=FieldKind.ENUM,
        choices=("new", "returning"),
        aliases=("customer_status", "repeat"),
        sample="new",
    ),
    *_ADDRESS_FIELDS,
)

CUSTOMER_SCHEMA = TargetSchema(
    target=ImportTarget.CUSTOMER,
    fields=bind_column_limits(_CUSTOMER_FIELDS, Customer.__table__),
)

ORDER_STATUSES: tuple[str, ...] = ("pending", "paid", "shipped", "delivered", "cancelled")

_ORDER_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("order_id", aliases=("order_no", "order_number", "reference", "external_id"), sample="ORD-1001"),
    FieldSpec("order_date", kind=FieldKind.DATE, aliases=("date", "ordered_at"), sample="2024-03-15"),
    FieldSpec("name", required=True, aliases=("customer_name", "full_name"), sample="Alice Tan"),
    FieldSpec(
        "phone",
        kind=FieldKind.PHONE,
        required=True,
        aliases=("phone_number", "mobile", "contact_number", "whatsapp"),
        sample="60123456789",
    ),
    FieldSpec("fb_name", aliases=("facebook_name", "fbname"), sample="alice.tan"),
    FieldSpec("payment_method", aliases=("payment", "payment_type"), sample="online banking"),
    FieldSpec("status", kind=FieldKind.ENUM, choices=ORDER_STATUSES, aliases=("order_status",), sample="paid"),
    FieldSpec("package_type", aliases=("package",), sample="starter"),
    FieldSpec("package_amount", kind=FieldKind.AMOUNT, aliases=("package_price",), sample="20.00"),
    FieldSpec("postage", kind=FieldKind.AMOUNT, aliases=("shipping", "shipping_fee"), sample="5.00"),
    FieldSpec("website_charges", kind=FieldKind.AMOUNT, aliases=("website_charge", "platform_fee"), sample="0.00"),
    FieldSpec("total", kind=FieldKind.AMOUNT, required=True, aliases=("total_amount", "amount", "grand_total"), sample="25.00"),
    *_ADDRESS_FIELDS,
    FieldSpec("customer_type", aliases=("customer_category",), sample="retail"),
    FieldSpec("agent", aliases=("sales_agent", "agent_name"), sample="Siti"),
    FieldSpec("remark", aliases=("remarks", "note", "notes"), sample=""),
    FieldSpec("currency", sample="MYR"),
    FieldSpec("tracking_number", aliases=("tracking_no", "awb"), sample=""),
    FieldSpec("courier_company", aliases=("courier",), sample=""),
)

ORDER_SCHEMA = TargetSchema(
    target=ImportTarget.ORDER,
    fields=bind_column_limits(_ORDER_FIELDS, Order.__table__),
)

SCHEMAS: dict[ImportTarget, TargetSchema] = {
    ImportTarget.CUSTOMER: CUSTOMER_SCHEMA,
    ImportTarget.ORDER: ORDER_SCHEMA,
}


def get_schema(target: ImportTarget | str) -> TargetSchema:
    return SCHEMAS[ImportTarget(target)]


def duplicate_key(record: TargetRecord) -> str:
    """
    Identity key used to detect a record already present in the store.

    Customers are identified by phone. Orders use their external reference
    when the file carries one; otherwise phone, order date and total.
    """

    if isinstance(record, CustomerRecord):
        return f"customer:{record.phone}"
    if isinstance(record, OrderRecord):
        if record.order_id:
            return f"order:ref:{record.order_id.strip().lower()}"
        order_date = record.order_date.isoformat() if record.order_date else "-"
        return f"order:{record.phone}:{order_date}:{record.total:.2f}"
    raise TypeError(f"Unsupported record type: {type(record).__name__}")
