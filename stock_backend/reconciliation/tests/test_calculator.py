# reconciliation/tests/test_calculator.py

from decimal import Decimal

from django.test import SimpleTestCase

from inventory.services.exceptions import ValidationError
from reconciliation.services.calculator import (
    ConsumptionInput,
    calculate_consumption,
    calculate_manday_cost,
    calculate_reconciliation,
    validate_reconciliation_inputs,
)


def _month():
    return ConsumptionInput(
        opening_stock=125000,
        receipts=45000,
        transfers_in=5000,
        transfers_out=3000,
        closing_stock=137000,
        back_charges=1000,
        credits=500,
        condemnations=1000,
    )


class ConsumptionTests(SimpleTestCase):
    """
    consumption = opening + receipts + in - out - closing
                  + (back_charges - credits - condemnations + adjustments)
    """

    def test_month_end_figure(self):
        result = calculate_consumption(_month())

        self.assertEqual(result.consumption, Decimal("34500.00"))
        self.assertEqual(result.total_adjustments, Decimal("-500.00"))
        self.assertEqual(result.breakdown["opening_stock"], Decimal("125000.00"))
        self.assertEqual(result.breakdown["consumption"], Decimal("34500.00"))

    def test_issues_are_informational(self):
        base = calculate_consumption(ConsumptionInput(opening_stock=100, closing_stock=40))
        with_issues = calculate_consumption(
            ConsumptionInput(opening_stock=100, closing_stock=40, issues=60)
        )
        self.assertEqual(base.consumption, with_issues.consumption)

    def test_adjustments_may_be_negative(self):
        result = calculate_consumption(
            ConsumptionInput(opening_stock=100, closing_stock=0, adjustments="-25.50")
        )
        self.assertEqual(result.consumption, Decimal("74.50"))

    def test_negative_stock_figures_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            calculate_consumption(ConsumptionInput(receipts=-1))
        self.assertEqual(ctx.exception.field, "receipts")

    def test_validation_collects_every_error(self):
        ok, errors = validate_reconciliation_inputs(
            ConsumptionInput(receipts=-1, closing_stock="abc"), total_mandays=0
        )
        self.assertFalse(ok)
        self.assertEqual(len(errors), 3)

        ok, errors = validate_reconciliation_inputs(_month(), total_mandays=2100)
        self.assertTrue(ok)
        self.assertEqual(errors, [])


class MandayCostTests(SimpleTestCase):
    def test_cost_per_manday(self):
        result = calculate_manday_cost(34500, 2100)
        self.assertEqual(result.manday_cost, Decimal("16.43"))

    def test_zero_mandays_rejected(self):
        for consumption in (0, 100, -5):
            with self.subTest(consumption=consumption):
                with self.assertRaises(ValidationError):
                    calculate_manday_cost(consumption, 0)

    def test_reconciliation_without_mandays(self):
        self.assertIsNone(calculate_reconciliation(_month()).manday)

    def test_reconciliation_rejects_non_positive_mandays(self):
        for mandays in (0, -5):
            with self.subTest(mandays=mandays):
                with self.assertRaises(ValidationError) as ctx:
                    calculate_reconciliation(_month(), mandays)
                self.assertEqual(ctx.exception.field, "total_mandays")

    def test_reconciliation_with_mandays(self):

        full = calculate_reconciliation(_month(), 2100)
        self.assertEqual(full.consumption.consumption, Decimal("34500.00"))
        self.assertEqual(full.manday.manday_cost, Decimal("16.43"))
