# ncr/tests/test_ncr_summary.py

from datetime import datetime, time, timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from inventory.tests.fixtures import make_location, make_open_period, month_bounds
from ncr.models import NCR
from ncr.services.ncr_summary import (
    get_all_ncr_summary_for_period,
    get_credited_ncrs_for_period,
    get_lost_ncrs_for_period,
    get_open_ncrs_for_period,
    get_pending_ncrs_for_period,
    summary_to_dict,
)
from periods.models import Period
from purchases.models import Delivery, Supplier


class NCRSummaryTests(TestCase):
    """
    Buckets:
        credited = CREDITED, or RESOLVED + CREDIT
        losses   = REJECTED, or RESOLVED + LOSS
        pending  = SENT
        open     = OPEN
    RESOLVED + NONE belongs to no bucket.
    """

    def setUp(self):
        self.kitchen = make_location()
        self.store = make_location(code="S1", name="Store One")
        self.period = make_open_period([self.kitchen, self.store])
        self.seq = 0

    def _ncr(self, status, value, *, impact=None, location=None, delivery=None):
        self.seq += 1
        return NCR.objects.create(
            ncr_no=f"NCR-T-{self.seq:03d}",
            location=location or self.kitchen,
            status=status,
            financial_impact=impact,
            value=Decimal(value),
            reason="test",
            delivery=delivery,
        )

    def _summary(self):
        return get_all_ncr_summary_for_period(period=self.period, location=self.kitchen)

    # ======================================================
    # CLASSIFICATION
    # ======================================================

    def test_classification(self):
        S, F = NCR.Status, NCR.FinancialImpact
        self._ncr(S.CREDITED, "100.00")
        self._ncr(S.RESOLVED, "50.00", impact=F.CREDIT)
        self._ncr(S.REJECTED, "30.00")
        self._ncr(S.RESOLVED, "20.00", impact=F.LOSS)
        self._ncr(S.SENT, "15.00")
        self._ncr(S.OPEN, "5.25")
        self._ncr(S.RESOLVED, "999.00", impact=F.NONE)

        summary = self._summary()

        self.assertEqual(summary["credited"].total, Decimal("150.00"))
        self.assertEqual(summary["credited"].count, 2)
        self.assertEqual(summary["losses"].total, Decimal("50.00"))
        self.assertEqual(summary["losses"].count, 2)
        self.assertEqual(summary["pending"].total, Decimal("15.00"))
        self.assertEqual(summary["open"].total, Decimal("5.25"))
        self.assertEqual(
            {i.financial_impact for i in summary["credited"].ncrs}, {None, F.CREDIT}
        )

        counted = sum(c.count for c in summary.values())
        self.assertEqual(counted, 6)

    def test_single_bucket_helpers_agree(self):
        S, F = NCR.Status, NCR.FinancialImpact
        self._ncr(S.CREDITED, "10.00")
        self._ncr(S.RESOLVED, "7.00", impact=F.LOSS)
        self._ncr(S.SENT, "3.00")
        self._ncr(S.OPEN, "1.00")

        summary = self._summary()
        kw = {"period": self.period, "location": self.kitchen}
        self.assertEqual(get_credited_ncrs_for_period(**kw).total, summary["credited"].total)
        self.assertEqual(get_lost_ncrs_for_period(**kw).total, summary["losses"].total)
        self.assertEqual(get_pending_ncrs_for_period(**kw).total, summary["pending"].total)
        self.assertEqual(get_open_ncrs_for_period(**kw).total, summary["open"].total)

    def test_empty_period(self):
        summary = self._summary()
        for category in summary.values():
            self.assertEqual(category.total, Decimal("0.00"))
            self.assertEqual(category.count, 0)

        payload = summary_to_dict(summary)
        self.assertEqual(payload["open"], {"total": "0.00", "count": 0, "ncrs": []})

    # ======================================================
    # PERIOD MEMBERSHIP
    # ======================================================

    def test_other_location_excluded(self):
        self._ncr(NCR.Status.OPEN, "10.00", location=self.store)
        self.assertEqual(self._summary()["open"].count, 0)

    def test_manual_ncr_uses_creation_date(self):
        ncr = self._ncr(NCR.Status.OPEN, "10.00")
        start, _ = month_bounds()
        before = timezone.make_aware(datetime.combine(start - timedelta(days=1), time.min))
        NCR.objects.filter(pk=ncr.pk).update(created_at=before)

        self.assertEqual(self._summary()["open"].count, 0)

    def test_delivery_ncr_uses_delivery_period(self):
        start, _ = month_bounds()
        old_end = start - timedelta(days=1)
        old_period = Period.objects.create(
            name="Old", start_date=old_end.replace(day=1), end_date=old_end
        )
        supplier = Supplier.objects.create(code="SUP", name="Supplier")

        in_period = Delivery.objects.create(
            delivery_no="DLV-T-001", location=self.kitchen, supplier=supplier, period=self.period
        )
        other_period = Delivery.objects.create(
            delivery_no="DLV-T-002", location=self.kitchen, supplier=supplier, period=old_period
        )

        self._ncr(NCR.Status.OPEN, "4.00", delivery=in_period)
        # created today but tied to last period's delivery
        self._ncr(NCR.Status.OPEN, "6.00", delivery=other_period)

        open_bucket = self._summary()["open"]
        self.assertEqual(open_bucket.count, 1)
        self.assertEqual(open_bucket.ncrs[0].delivery_no, "DLV-T-001")
