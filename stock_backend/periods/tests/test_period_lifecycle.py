# periods/tests/test_period_lifecycle.py

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase

from inventory.services.exceptions import (
    CloseNotReadyError,
    PartialCloseError,
    PeriodConflictError,
    StateTransitionError,
    ValidationError,
)
from inventory.tests.fixtures import (
    make_item,
    make_location,
    make_open_period,
    make_user,
    month_bounds,
    stock,
)
from issues.services.issue_service import create_issue, post_issue
from ncr.services.ncr_lifecycle import create_manual_ncr
from periods.models import Period, PeriodLocation
from periods.services.period_lifecycle import (
    create_period,
    execute_close,
    get_close_readiness,
    mark_location_ready,
    mark_location_unready,
    open_period,
    request_close,
)
from periods.services.period_prices import set_item_price
from permissions.roles import ROLE_ADMIN, ROLE_SUPERVISOR
from reconciliation.models import Reconciliation
from reconciliation.services.reconciliation_service import (
    finalize_reconciliation,
    save_adjustments,
)
from transfers.services.transfer_service import create_transfer, submit_transfer


def _next_month():
    _, end = month_bounds()
    return month_bounds(end + timedelta(days=1))


class PeriodOpeningTests(TestCase):
    """
    GUARANTEES:
    - At most one OPEN period
    - Prices lock when the period opens
    - Opening values come from live stock for never-closed locations
    """

    def setUp(self):
        self.kitchen = make_location()
        self.rice = make_item()
        stock(self.kitchen, self.rice, 100, "2")

    def test_opening_value_from_live_stock(self):
        period = make_open_period([self.kitchen])
        pl = PeriodLocation.objects.get(period=period, location=self.kitchen)
        self.assertEqual(pl.opening_value, Decimal("200.00"))
        self.assertEqual(pl.status, PeriodLocation.Status.OPEN)
        self.assertIsNotNone(period.opened_at)

    def test_single_open_period(self):
        make_open_period([self.kitchen])
        start, end = _next_month()
        nxt = create_period(name="Next", start_date=start, end_date=end, locations=[self.kitchen])

        with self.assertRaises(PeriodConflictError):
            open_period(period=nxt)

        nxt.refresh_from_db()
        self.assertEqual(nxt.status, Period.Status.DRAFT)
        self.assertEqual(Period.objects.filter(status=Period.Status.OPEN).count(), 1)

    def test_overlapping_dates(self):
        start, end = month_bounds()
        create_period(name="A", start_date=start, end_date=end, locations=[self.kitchen])
        with self.assertRaises(PeriodConflictError):
            create_period(name="B", start_date=end, end_date=end, locations=[self.kitchen])

    def test_bad_dates(self):
        start, end = month_bounds()
        with self.assertRaises(ValidationError):
            create_period(name="Backwards", start_date=end, end_date=start)

    def test_prices_locked_after_open(self):
        period = make_open_period([self.kitchen], prices={self.rice: "2.00"})
        with self.assertRaises(PeriodConflictError):
            set_item_price(period=period, item=self.rice, price="3")

    def test_open_twice(self):
        period = make_open_period([self.kitchen])
        with self.assertRaises(StateTransitionError):
            open_period(period=period)


class PeriodCloseTests(TestCase):
    """
    GUARANTEES:
    - Close readiness is enforced and deterministic
    - Every location closes in one transaction, or none does
    - Closing values carry into the next period's opening values
    """

    def setUp(self):
        self.kitchen = make_location()
        self.store = make_location(code="ST", name="Main Store")
        self.rice = make_item()
        self.admin = make_user(email="admin@example.com", role=ROLE_ADMIN)
        self.supervisor = make_user(email="sup@example.com", role=ROLE_SUPERVISOR)

        stock(self.kitchen, self.rice, 100, "2")
        stock(self.store, self.rice, 50, "4")

        self.period = make_open_period([self.kitchen, self.store])

    def _ready(self, *locations):
        for location in locations:
            save_adjustments(period=self.period, location=location, user=self.supervisor)
            mark_location_ready(period=self.period, location=location, user=self.supervisor)

    def _pl(self, location):
        return PeriodLocation.objects.get(period=self.period, location=location)

    # ======================================================
    # READINESS
    # ======================================================

    def test_ready_requires_saved_reconciliation(self):
        with self.assertRaises(ValidationError):
            mark_location_ready(period=self.period, location=self.kitchen)

        self._ready(self.kitchen)
        first = self._pl(self.kitchen)
        self.assertEqual(first.status, PeriodLocation.Status.READY)
        self.assertEqual(first.ready_by, self.supervisor)

        again = mark_location_ready(period=self.period, location=self.kitchen)
        self.assertEqual(again.ready_at, first.ready_at)

    def test_ready_location_blocks_postings(self):
        self._ready(self.kitchen)
        with self.assertRaises(PeriodConflictError):
            create_issue(location=self.kitchen, lines=[{"item": self.rice, "quantity": 1}])

        mark_location_unready(period=self.period, location=self.kitchen)
        create_issue(location=self.kitchen, lines=[{"item": self.rice, "quantity": 1}])

    def test_unready_requires_ready(self):
        with self.assertRaises(StateTransitionError):
            mark_location_unready(period=self.period, location=self.kitchen)

    def test_readiness_lists_blockers(self):
        create_issue(location=self.kitchen, lines=[{"item": self.rice, "quantity": 1}])
        submit_transfer(
            transfer=create_transfer(
                from_location=self.store,
                to_location=self.kitchen,
                lines=[{"item": self.rice, "quantity": 1}],
            )
        )
        create_manual_ncr(location=self.kitchen, reason="Short weight", value="5")

        readiness = get_close_readiness(self.period)

        self.assertFalse(readiness.is_ready)
        self.assertEqual(
            [b.kind for b in readiness.blocking_items],
            ["issue", "transfer", "location", "location"],
        )
        self.assertEqual([w.kind for w in readiness.warnings], ["ncr"])
        self.assertEqual(readiness.to_dict(), get_close_readiness(self.period).to_dict())

    def test_open_ncr_is_only_a_warning(self):
        create_manual_ncr(location=self.kitchen, reason="Short weight", value="5")
        self._ready(self.kitchen, self.store)

        readiness = request_close(period=self.period, user=self.admin)

        self.assertTrue(readiness.is_ready)
        self.assertEqual(len(readiness.warnings), 1)
        self.period.refresh_from_db()
        self.assertEqual(self.period.status, Period.Status.PENDING_CLOSE)

    def test_request_close_with_blockers(self):
        self._ready(self.kitchen)

        with self.assertRaises(CloseNotReadyError) as ctx:
            request_close(period=self.period, user=self.admin)

        self.assertEqual([b.reference for b in ctx.exception.blocking_items], ["ST"])
        self.period.refresh_from_db()
        self.assertEqual(self.period.status, Period.Status.OPEN)

    # ======================================================
    # EXECUTE CLOSE
    # ======================================================

    def test_execute_requires_pending_close(self):
        with self.assertRaises(StateTransitionError):
            execute_close(period=self.period, user=self.admin)

    def test_execute_close(self):
        start, end = _next_month()
        nxt = create_period(
            name="Next", start_date=start, end_date=end, locations=[self.kitchen, self.store]
        )
        self.assertEqual(
            PeriodLocation.objects.get(period=nxt, location=self.kitchen).opening_value,
            Decimal("200.00"),
        )

        post_issue(
            issue=create_issue(location=self.kitchen, lines=[{"item": self.rice, "quantity": 20}])
        )
        save_adjustments(
            period=self.period, location=self.kitchen, user=self.supervisor, condemnations="5"
        )
        self._ready(self.kitchen, self.store)
        request_close(period=self.period, user=self.admin)

        result = execute_close(period=self.period, user=self.admin)

        self.assertEqual(result.locations_closed, 2)
        self.assertEqual(result.total_closing_value, Decimal("360.00"))
        self.assertEqual(result.next_period.id, nxt.id)

        self.period.refresh_from_db()
        self.assertEqual(self.period.status, Period.Status.CLOSED)
        self.assertEqual(self.period.closed_by, self.admin)

        kitchen = self._pl(self.kitchen)
        self.assertEqual(kitchen.status, PeriodLocation.Status.CLOSED)
        self.assertEqual(kitchen.closing_value, Decimal("160.00"))
        self.assertEqual(kitchen.snapshot_data["total_value"], "160.00")
        self.assertEqual(kitchen.snapshot_data["items"][0]["quantity"], "80.0000")
        self.assertEqual(self._pl(self.store).closing_value, Decimal("200.00"))

        rec = Reconciliation.objects.get(period=self.period, location=self.kitchen)
        self.assertTrue(rec.is_final)
        self.assertEqual(rec.opening_stock, Decimal("200.00"))
        self.assertEqual(rec.closing_stock, Decimal("160.00"))
        self.assertEqual(rec.issues, Decimal("40.00"))
        self.assertEqual(rec.consumption, Decimal("35.00"))

        self.assertEqual(
            PeriodLocation.objects.get(period=nxt, location=self.kitchen).opening_value,
            Decimal("160.00"),
        )

    def test_failure_rolls_back_every_location(self):
        self._ready(self.kitchen, self.store)
        request_close(period=self.period, user=self.admin)

        closed = []

        def fail_on_second(**kwargs):
            if closed:
                raise DatabaseError("disk full")
            closed.append(kwargs["location"].code)
            return finalize_reconciliation(**kwargs)

        with patch(
            "periods.services.period_lifecycle.finalize_reconciliation",
            side_effect=fail_on_second,
        ):
            with self.assertRaises(PartialCloseError):
                execute_close(period=self.period, user=self.admin)

        self.assertEqual(closed, ["K1"])
        self.period.refresh_from_db()
        self.assertEqual(self.period.status, Period.Status.PENDING_CLOSE)
        for location in (self.kitchen, self.store):
            pl = self._pl(location)
            self.assertEqual(pl.status, PeriodLocation.Status.READY)
            self.assertIsNone(pl.closing_value)
            self.assertIsNone(pl.snapshot_data)
        self.assertFalse(Reconciliation.objects.filter(is_final=True).exists())

        # the close can be retried once the cause is fixed
        result = execute_close(period=self.period, user=self.admin)
        self.assertEqual(result.locations_closed, 2)
