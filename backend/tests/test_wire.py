import unittest
from datetime import datetime

from retailpos import wire
from retailpos.validation import ValidationError


class MoneyTests(unittest.TestCase):
    def test_parses_decimals_exactly(self):
        self.assertEqual(wire.money_to_cents(25), 2500)
        self.assertEqual(wire.money_to_cents(0.1), 10)
        self.assertEqual(wire.money_to_cents("19.99"), 1999)
        self.assertEqual(wire.money_to_cents("10.500"), 1050)

    def test_rejects_fractions_of_a_cent(self):
        for bad in ("10.005", 1.005, "0.001"):
            with self.assertRaises(ValidationError):
                wire.money_to_cents(bad)

    def test_rejects_non_numbers(self):
        for bad in (None, True, "abc", float("nan"), float("inf"), [1]):
            with self.assertRaises(ValidationError):
                wire.money_to_cents(bad)

    def test_cents_to_money(self):
        self.assertEqual(wire.cents_to_money(2500), 25.0)
        self.assertEqual(wire.cents_to_money(1999), 19.99)
        self.assertIsNone(wire.cents_to_money(None))


class EntityMapTests(unittest.TestCase):
    def test_product_round_trip(self):
        payload = {
            "name": "Coffee 500g",
            "price": 18.9,
            "cost": 11.0,
            "stock": 40,
            "minStock": 10,
            "category": "Groceries",
            "customCategory": None,
            "imageUrl": "https://img.example/coffee.png",
            "supplierId": 3,
            "barcode": "7890000000011",
        }
        self.assertEqual(wire.PRODUCT.to_wire(wire.PRODUCT.from_wire(payload)), payload)

    def test_customer_round_trip_renames_tax_id(self):
        payload = {"name": "Ana", "phone": "1", "email": "a@b.co", "cpf": "123.456.789-00"}
        patch = wire.CUSTOMER.from_wire(payload)
        self.assertEqual(patch["tax_id"], "123.456.789-00")
        self.assertEqual(wire.CUSTOMER.to_wire(patch), payload)

    def test_expense_round_trip_dates(self):
        payload = {"date": "2024-05-01T13:30:00Z", "description": "Rent", "amount": 1200.5, "category": "Fixed"}
        patch = wire.EXPENSE.from_wire(payload)
        self.assertEqual(patch["date"], datetime(2024, 5, 1, 13, 30))
        self.assertEqual(patch["amount_cents"], 120050)
        self.assertEqual(wire.EXPENSE.to_wire(patch), payload)

    def test_read_only_aggregates_rejected(self):
        for key in ("points", "totalSpent", "totalPurchases", "id"):
            with self.assertRaises(ValidationError):
                wire.CUSTOMER.from_wire({"name": "Ana", key: 1})

    def test_unknown_keys_rejected(self):
        with self.assertRaises(ValidationError):
            wire.PRODUCT.from_wire({"name": "x", "price_cents": 100})

    def test_integers_reject_floats_and_bools(self):
        with self.assertRaises(ValidationError):
            wire.PRODUCT.from_wire({"stock": 1.5})
        with self.assertRaises(ValidationError):
            wire.PRODUCT.from_wire({"stock": True})

    def test_bad_date_rejected(self):
        with self.assertRaises(ValidationError):
            wire.EXPENSE.from_wire({"date": "yesterday"})

    def test_permissions_list(self):
        patch = wire.USER.from_wire({"permissions": ["/pos", "/dashboard"]})
        self.assertEqual(patch["permissions"], ["/pos", "/dashboard"])
        with self.assertRaises(ValidationError):
            wire.USER.from_wire({"permissions": "/pos"})


class SaleMappingTests(unittest.TestCase):
    def test_sale_round_trip_with_nested_rows(self):
        payload = {
            "id": 7,
            "date": "2024-05-01T10:00:00Z",
            "total": 25.0,
            "customerId": 2,
            "userId": 1,
            "pointsEarned": 2,
            "items": [
                {"productId": 1, "quantity": 2, "price": 10.0, "subtotal": 20.0},
                {"productId": 2, "quantity": 1, "price": 5.0, "subtotal": 5.0},
            ],
            "payments": [
                {"method": "cash", "amount": 25.0, "transactionId": None, "change": 5.0},
            ],
        }
        self.assertEqual(wire.sale_to_wire(wire.sale_from_wire(payload)), payload)

    def test_storage_row_to_wire(self):
        row = {
            "id": 1,
            "date": datetime(2024, 5, 1, 10, 0),
            "total_cents": 2500,
            "points_earned": None,
            "customer_id": None,
            "user_id": 1,
            "items": [{"product_id": 1, "quantity": 1, "unit_price_cents": 2500, "subtotal_cents": 2500}],
            "payments": [{"method": "pix", "amount_cents": 2500, "transaction_id": "E123", "change_cents": 0}],
        }
        out = wire.sale_to_wire(row)
        self.assertEqual(out["date"], "2024-05-01T10:00:00Z")
        self.assertEqual(out["total"], 25.0)
        self.assertIsNone(out["pointsEarned"])
        self.assertEqual(out["items"][0]["price"], 25.0)
        self.assertEqual(out["payments"][0], {"method": "pix", "amount": 25.0, "transactionId": "E123", "change": 0.0})


class ReportMappingTests(unittest.TestCase):
    def test_report_keys_and_money(self):
        out = wire.report_to_wire({
            "sales_count": 2,
            "average_ticket_cents": 1250,
            "sales_per_day": [{"date": datetime(2024, 5, 1).date(), "total_cents": 0}],
        })
        self.assertEqual(out, {
            "salesCount": 2,
            "averageTicket": 12.5,
            "salesPerDay": [{"date": "2024-05-01", "total": 0.0}],
        })
