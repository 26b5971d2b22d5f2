# periods/tests/test_roll_forward.py

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase

from inventory.services.exceptions import (
    PeriodConflictError,
    StateTransitionError,
    ValidationError,
)
from inventory.tests.fixtures import make_item, make_location, make_open_period, make_user, stock
from periods.models import ItemPrice, Period, PeriodLocation, POBEntry
from periods.services.period_lifecycle import execute_close, mark_location_ready, request_close
from periods.services.pob import record_pob
from periods.services.roll_forward import roll_forward
from reconciliation.services.reconciliation_service import save_adjustments


class RollForwardTests(TestCase):
    def setUp(self):
        self.kitchen = make_location()
        self.rice = make_item()
        self.user = make_user()
        stock(self.kitchen, self.rice, 10, "4")
        self.period = make_open_period([self.kitchen], prices={self.rice: "4.25"})

    def _close(self):
        save_adjustments(period=self.period, location=self.kitchen)
        mark_location_ready(period=self.period, location=self.kitchen)
        request_close(period=self.period)
        execute_close(period=self.period)
        self.period.refresh_from_db()

    def test_only_closed_periods(self):
        with self.assertRaises(StateTransitionError):
            roll_forward(period=self.period)

    def test_roll_forward(self):
        self._close()
        nxt = roll_forward(period=self.period)

        self.assertEqual(nxt.status, Period.Status.DRAFT)
        self.assertEqual(nxt.start_date, self.period.end_date + timedelta(days=1))
        self.assertEqual(nxt.end_date.month, nxt.start_date.month)

        pl = PeriodLocation.objects.get(period=nxt, location=self.kitchen)
        self.assertEqual(pl.opening_value, Decimal("40.00"))
        self.assertEqual(ItemPrice.objects.get(period=nxt, item=self.rice).price, Decimal("4.2500"))

        with self.assertRaises(PeriodConflictError):
            roll_forward(period=self.period)

    def test_without_prices(self):
        self._close()
        nxt = roll_forward(period=self.period, name="Quarter", copy_prices=False)
        self.assertEqual(nxt.name, "Quarter")
        self.assertFalse(ItemPrice.objects.filter(period=nxt).exists())


class POBTests(TestCase):
    def setUp(self):
        self.kitchen = make_location()
        self.period = make_open_period([self.kitchen])

    def test_overwrites_same_day(self):
        day = self.period.start_date
        record_pob(period=self.period, location=self.kitchen, date=day, crew_count=10)
        entry = record_pob(
            period=self.period, location=self.kitchen, date=day, crew_count=12, extra_count=2
        )

        self.assertEqual(POBEntry.objects.count(), 1)
        self.assertEqual(entry.total, 14)

    def test_validation(self):
        with self.assertRaises(ValidationError):
            record_pob(
                period=self.period,
                location=self.kitchen,
                date=self.period.end_date + timedelta(days=1),
                crew_count=1,
            )
        with self.assertRaises(ValidationError):
            record_pob(
                period=self.period, location=self.kitchen, date=self.period.start_date, crew_count=-1
            )

        other = make_location(code="K2", name="Kitchen Two")
        with self.assertRaises(PeriodConflictError):
            record_pob(
                period=self.period, location=other, date=self.period.start_date, crew_count=1
            )
