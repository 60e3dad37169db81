from __future__ import annotations

import unittest

from app.mappers.header_mapper import normalize_header, resolve_headers
from app.validators.target_schemas import CUSTOMER_SCHEMA, ORDER_SCHEMA


class TestHeaderMapper(unittest.TestCase):
    def test_normalizes_case_spacing_and_punctuation(self) -> None:
        self.assertEqual(normalize_header(" Phone Number "), "phonenumber")
        self.assertEqual(normalize_header("fb_name"), "fbname")
        self.assertEqual(normalize_header("paymentMethod"), "paymentmethod")

    def test_matches_exact_names_and_aliases(self) -> None:
        mapping = resolve_headers(
            ["Customer Name", "Phone Number", "paymentMethod", "Grand Total", "Order No"],
            ORDER_SCHEMA,
        )

        self.assertEqual(
            mapping.header_to_field,
            {
                "Customer Name": "name",
                "Phone Number": "phone",
                "paymentMethod": "payment_method",
                "Grand Total": "total",
                "Order No": "order_id",
            },
        )
        self.assertEqual(mapping.unmapped_headers, ())

    def test_unknown_headers_are_unmapped(self) -> None:
        mapping = resolve_headers(["name", "phone", "total", "Loyalty Tier"], CUSTOMER_SCHEMA)

        self.assertEqual(mapping.unmapped_headers, ("total", "Loyalty Tier"))
        self.assertEqual(mapping.field_to_header, {"name": "name", "phone": "phone"})

    def test_first_header_claims_a_field(self) -> None:
        mapping = resolve_headers(["mobile", "phone", "name"], CUSTOMER_SCHEMA)

        self.assertEqual(mapping.field_to_header["phone"], "mobile")
        self.assertIn("phone", mapping.unmapped_headers)

    def test_exact_name_beats_alias_of_another_field(self) -> None:
        # "date" is an alias of order_date only; "amount" an alias of total.
        mapping = resolve_headers(["date", "amount", "package_amount"], ORDER_SCHEMA)

        self.assertEqual(mapping.header_to_field["date"], "order_date")
        self.assertEqual(mapping.header_to_field["amount"], "total")
        self.assertEqual(mapping.header_to_field["package_amount"], "package_amount")

    def test_source_headers_keep_file_order(self) -> None:
        headers = ["phone", "name", "extra"]

        mapping = resolve_headers(headers, CUSTOMER_SCHEMA)

        self.assertEqual(mapping.source_headers, ("phone", "name", "extra"))


if __name__ == "__main__":
    unittest.main()
