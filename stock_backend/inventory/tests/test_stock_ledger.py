# inventory/tests/test_stock_ledger.py

from decimal import Decimal

from django.test import TestCase

from inventory.models import LocationStock
from inventory.services.exceptions import InsufficientStockError, NotFoundError, ValidationError
from inventory.services.numbering import next_document_number
from inventory.services.snapshot import build_snapshot, current_stock_value
from inventory.services.stock_ledger import current_wac, deduct_stock, receive_stock, set_stock
from inventory.services.stock_validation import (
    get_current_stock_level,
    has_stock,
    validate_and_raise_if_insufficient,
    validate_sufficient_stock,
    validate_sufficient_stock_bulk,
)
from inventory.tests.fixtures import make_item, make_location, stock
from ncr.models import NCR


class StockValidationTests(TestCase):
    """
    GUARANTEES:
    - Missing stock rows count as zero
    - Bulk validation reports EVERY short line
    - Repeated items are checked on their total
    """

    def setUp(self):
        self.kitchen = make_location()
        self.rice = make_item()
        self.oil = make_item(code="OIL", name="Oil")
        self.salt = make_item(code="SALT", name="Salt")
        stock(self.kitchen, self.rice, 10, "2.5")
        stock(self.kitchen, self.oil, 1, "8")

    def test_missing_row_is_zero(self):
        self.assertEqual(get_current_stock_level(self.kitchen.id, self.salt.id), Decimal("0"))
        self.assertFalse(has_stock(self.kitchen.id, self.salt.id, 1))

    def test_single_item(self):
        result = validate_sufficient_stock(self.kitchen.id, self.rice.id, 4)
        self.assertTrue(result.is_valid)
        self.assertIsNone(result.shortfall)

        result = validate_sufficient_stock(self.kitchen.id, self.rice.id, 12)
        self.assertFalse(result.is_valid)
        self.assertEqual(result.shortfall, Decimal("2"))

    def test_bulk_reports_all_short_lines(self):
        lines = [
            {"item_id": self.rice.id, "quantity": 5},
            {"item_id": self.oil.id, "quantity": 3},
            {"item_id": self.salt.id, "quantity": 1},
        ]
        with self.assertRaises(InsufficientStockError) as ctx:
            validate_and_raise_if_insufficient(self.kitchen.id, lines, lock=False)

        codes = [it.item_code for it in ctx.exception.items]
        self.assertEqual(codes, ["OIL", "SALT"])

        payload = ctx.exception.to_dict()
        self.assertEqual(payload["code"], "INSUFFICIENT_STOCK")
        self.assertEqual(payload["location_name"], "Kitchen One")
        self.assertEqual(len(payload["insufficient_items"]), 2)

    def test_duplicate_items_are_summed(self):
        lines = [
            {"item_id": self.rice.id, "quantity": 6},
            {"item_id": self.rice.id, "quantity": 6},
        ]
        results = validate_sufficient_stock_bulk(self.kitchen.id, lines)
        self.assertEqual(len(results), 1)
        self.assertFalse(results[0].is_valid)
        self.assertEqual(results[0].requested_quantity, Decimal("12"))

    def test_non_positive_quantity_rejected(self):
        with self.assertRaises(ValidationError):
            validate_sufficient_stock_bulk(self.kitchen.id, [{"item_id": self.rice.id, "quantity": 0}])

    def test_unknown_location(self):
        other = make_location(code="GONE")
        other_id = other.id
        other.delete()
        with self.assertRaises(NotFoundError):
            validate_and_raise_if_insufficient(other_id, [{"item_id": self.rice.id, "quantity": 1}])


class StockLedgerTests(TestCase):
    def setUp(self):
        self.kitchen = make_location()
        self.rice = make_item()

    def test_receive_recalculates_wac(self):
        receive_stock(location=self.kitchen, item=self.rice, quantity=100, unit_cost="10")
        row, result = receive_stock(location=self.kitchen, item=self.rice, quantity=50, unit_cost="12")

        self.assertEqual(row.on_hand, Decimal("150.0000"))
        self.assertEqual(row.wac, Decimal("10.6667"))
        self.assertEqual(result.previous_wac, Decimal("10.0000"))

    def test_deduct_keeps_wac(self):
        stock(self.kitchen, self.rice, 10, "3.3333")
        row = deduct_stock(location=self.kitchen, item=self.rice, quantity=4)

        self.assertEqual(row.on_hand, Decimal("6.0000"))
        self.assertEqual(current_wac(location=self.kitchen, item=self.rice), Decimal("3.3333"))

    def test_deduct_never_goes_negative(self):
        stock(self.kitchen, self.rice, 2, "1")
        with self.assertRaises(InsufficientStockError):
            deduct_stock(location=self.kitchen, item=self.rice, quantity=3)

        row = LocationStock.objects.get(location=self.kitchen, item=self.rice)
        self.assertEqual(row.on_hand, Decimal("2.0000"))

    def test_deduct_without_row(self):
        with self.assertRaises(InsufficientStockError):
            deduct_stock(location=self.kitchen, item=self.rice, quantity=1)

    def test_set_stock_overwrites(self):
        stock(self.kitchen, self.rice, 5, "2")
        row = set_stock(location=self.kitchen, item=self.rice, quantity="7.5", wac="4.25")
        self.assertEqual(row.on_hand, Decimal("7.5000"))
        self.assertEqual(row.wac, Decimal("4.2500"))

        with self.assertRaises(ValidationError):
            set_stock(location=self.kitchen, item=self.rice, quantity=-1, wac=1)


class SnapshotTests(TestCase):
    def test_values_are_rounded_per_item(self):
        kitchen = make_location()
        a = make_item(code="A", name="A")
        b = make_item(code="B", name="B")
        c = make_item(code="C", name="C")
        stock(kitchen, a, 3, "1.3333")   # 3.9999 -> 4.00
        stock(kitchen, b, 1, "0.005")    # 0.005  -> 0.01
        stock(kitchen, c, 0, "9")        # skipped

        rows = LocationStock.objects.filter(location=kitchen).select_related("item").order_by("item__code")
        snapshot = build_snapshot(rows)

        self.assertEqual([i["item_code"] for i in snapshot["items"]], ["A", "B"])
        self.assertEqual(snapshot["total_value"], "4.01")
        self.assertEqual(current_stock_value(location=kitchen), Decimal("4.01"))


class NumberingTests(TestCase):
    def test_sequence_per_prefix_and_year(self):
        kitchen = make_location()
        self.assertEqual(
            next_document_number(model=NCR, field="ncr_no", prefix="NCR", year=2025), "NCR-2025-001"
        )
        NCR.objects.create(ncr_no="NCR-2025-009", location=kitchen, reason="x")
        NCR.objects.create(ncr_no="NCR-2025-010", location=kitchen, reason="x")
        self.assertEqual(
            next_document_number(model=NCR, field="ncr_no", prefix="NCR", year=2025), "NCR-2025-011"
        )
        self.assertEqual(
            next_document_number(model=NCR, field="ncr_no", prefix="NCR", year=2026), "NCR-2026-001"
        )
