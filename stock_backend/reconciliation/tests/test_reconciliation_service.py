# reconciliation/tests/test_reconciliation_service.py

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase

from inventory.services.exceptions import PeriodConflictError
from inventory.tests.fixtures import make_item, make_location, make_open_period, stock
from issues.services.issue_service import create_issue, post_issue
from ncr.services.ncr_lifecycle import create_manual_ncr
from periods.models import PeriodLocation
from periods.services.pob import record_pob
from reconciliation.models import Reconciliation
from reconciliation.services.reconciliation_service import (
    finalize_reconciliation,
    get_consolidated_reconciliation,
    get_movements,
    get_reconciliation,
    get_total_mandays,
    save_adjustments,
)


class ReconciliationServiceTests(TestCase):
    def setUp(self):
        self.kitchen = make_location()
        self.rice = make_item()
        stock(self.kitchen, self.rice, 100, "2")  # 200.00 opening
        self.period = make_open_period([self.kitchen])

    def _issue(self, qty):
        issue = create_issue(location=self.kitchen, lines=[{"item": self.rice, "quantity": qty}])
        return post_issue(issue=issue)

    # ======================================================
    # LIVE FIGURES
    # ======================================================

    def test_live_figures_follow_the_ledger(self):
        self._issue(30)

        movements = get_movements(period=self.period, location=self.kitchen)
        self.assertEqual(movements["issues"], Decimal("60.00"))

        data = get_reconciliation(period=self.period, location=self.kitchen)
        self.assertEqual(data["opening_stock"], Decimal("200.00"))
        self.assertEqual(data["closing_stock"], Decimal("140.00"))
        self.assertEqual(data["consumption"], Decimal("60.00"))
        self.assertFalse(data["is_final"])
        self.assertFalse(data["saved"])
        self.assertIsNone(data["manday_cost"])

    def test_mandays_and_cost(self):
        self._issue(30)
        start = self.period.start_date
        record_pob(period=self.period, location=self.kitchen, date=start, crew_count=8, extra_count=2)
        record_pob(period=self.period, location=self.kitchen, date=start + timedelta(days=1), crew_count=10)
        # re-entering a day overwrites it
        record_pob(period=self.period, location=self.kitchen, date=start, crew_count=5)

        self.assertEqual(get_total_mandays(period=self.period, location=self.kitchen), 15)

        data = get_reconciliation(period=self.period, location=self.kitchen)
        self.assertEqual(data["manday_cost"], Decimal("4.00"))

    def test_ncr_buckets_attached(self):
        create_manual_ncr(location=self.kitchen, reason="Damaged", value="12.50")
        data = get_reconciliation(period=self.period, location=self.kitchen)
        self.assertEqual(data["ncr_summary"]["open"].count, 1)
        self.assertEqual(data["ncr_summary"]["open"].total, Decimal("12.50"))

    # ======================================================
    # ADJUSTMENTS
    # ======================================================

    def test_save_adjustments_recomputes(self):
        self._issue(30)
        rec = save_adjustments(
            period=self.period,
            location=self.kitchen,
            back_charges="10",
            credits="4",
            condemnations="1",
            adjustments="-2",
            notes="month end",
        )
        self.assertEqual(rec.total_adjustments, Decimal("3.00"))
        self.assertEqual(rec.consumption, Decimal("63.00"))

        # partial update keeps the other fields
        rec = save_adjustments(period=self.period, location=self.kitchen, credits="0")
        self.assertEqual(rec.back_charges, Decimal("10.00"))
        self.assertEqual(rec.total_adjustments, Decimal("7.00"))
        self.assertEqual(rec.notes, "month end")
        self.assertEqual(Reconciliation.objects.count(), 1)

    def test_final_reconciliation_is_frozen(self):
        finalize_reconciliation(
            period=self.period, location=self.kitchen, closing_stock=Decimal("200.00")
        )
        with self.assertRaises(PeriodConflictError):
            save_adjustments(period=self.period, location=self.kitchen, credits="1")

        data = get_reconciliation(period=self.period, location=self.kitchen)
        self.assertTrue(data["is_final"])
        self.assertEqual(data["consumption"], Decimal("0.00"))

    def test_closed_location_cannot_be_adjusted(self):
        PeriodLocation.objects.filter(period=self.period, location=self.kitchen).update(
            status=PeriodLocation.Status.CLOSED
        )
        with self.assertRaises(PeriodConflictError):
            save_adjustments(period=self.period, location=self.kitchen, credits="1")


class ConsolidatedReconciliationTests(TestCase):
    """
    GUARANTEES:
    - One row per period location, ordered by location code
    - Grand totals add up the rows; average manday cost uses the totals
    - Saved, computed and final rows are counted separately
    """

    def setUp(self):
        self.kitchen = make_location()
        self.store = make_location(code="ST", name="Main Store")
        self.rice = make_item()
        stock(self.kitchen, self.rice, 100, "2")  # 200.00
        stock(self.store, self.rice, 50, "2")  # 100.00
        self.period = make_open_period([self.kitchen, self.store])

        issue = create_issue(location=self.kitchen, lines=[{"item": self.rice, "quantity": 30}])
        post_issue(issue=issue)
        record_pob(
            period=self.period, location=self.kitchen, date=self.period.start_date, crew_count=10
        )

    def test_rows_and_grand_totals(self):
        save_adjustments(period=self.period, location=self.store, back_charges="5")

        data = get_consolidated_reconciliation(period=self.period)

        self.assertEqual([r["location_code"] for r in data["locations"]], ["K1", "ST"])
        kitchen, store = data["locations"]

        self.assertEqual(kitchen["consumption"], Decimal("60.00"))
        self.assertEqual(kitchen["manday_cost"], Decimal("6.00"))
        self.assertFalse(kitchen["saved"])
        self.assertEqual(store["consumption"], Decimal("5.00"))
        self.assertIsNone(store["manday_cost"])
        self.assertTrue(store["saved"])

        totals = data["grand_totals"]
        self.assertEqual(totals["opening_stock"], Decimal("300.00"))
        self.assertEqual(totals["closing_stock"], Decimal("240.00"))
        self.assertEqual(totals["issues"], Decimal("60.00"))
        self.assertEqual(totals["consumption"], Decimal("65.00"))
        self.assertEqual(totals["total_mandays"], 10)
        self.assertEqual(totals["average_manday_cost"], Decimal("6.50"))

        self.assertEqual(data["summary"], {"total_locations": 2, "saved": 1, "computed": 1, "final": 0})

    def test_final_rows_come_from_storage(self):
        finalize_reconciliation(
            period=self.period, location=self.kitchen, closing_stock=Decimal("150.00")
        )

        data = get_consolidated_reconciliation(period=self.period)
        kitchen = data["locations"][0]

        self.assertTrue(kitchen["is_final"])
        # stored closing, not the live 140.00
        self.assertEqual(kitchen["closing_stock"], Decimal("150.00"))
        self.assertEqual(kitchen["consumption"], Decimal("50.00"))
        self.assertEqual(data["summary"]["final"], 1)
