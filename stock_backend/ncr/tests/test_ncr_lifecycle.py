# ncr/tests/test_ncr_lifecycle.py

from decimal import Decimal

from django.test import TestCase

from inventory.services.exceptions import StateTransitionError, ValidationError
from inventory.tests.fixtures import make_location, make_user
from ncr.models import NCR
from ncr.services.ncr_lifecycle import can_transition, create_manual_ncr, update_ncr_status


class NCRLifecycleTests(TestCase):
    def setUp(self):
        self.kitchen = make_location()
        self.user = make_user()

    def _ncr(self):
        return create_manual_ncr(
            location=self.kitchen, reason=" Damaged cartons ", value="12.345", user=self.user
        )

    def test_manual_ncr(self):
        ncr = self._ncr()
        self.assertTrue(ncr.ncr_no.startswith("NCR-"))
        self.assertEqual(ncr.type, NCR.NCRType.MANUAL)
        self.assertEqual(ncr.status, NCR.Status.OPEN)
        self.assertEqual(ncr.value, Decimal("12.35"))
        self.assertEqual(ncr.reason, "Damaged cartons")
        self.assertFalse(ncr.auto_generated)

        second = self._ncr()
        self.assertNotEqual(ncr.ncr_no, second.ncr_no)

    def test_manual_ncr_validation(self):
        with self.assertRaises(ValidationError):
            create_manual_ncr(location=self.kitchen, reason="  ", value="1")
        with self.assertRaises(ValidationError):
            create_manual_ncr(location=self.kitchen, reason="x", value="-1")

    def test_transitions(self):
        S = NCR.Status
        self.assertTrue(can_transition(from_status=S.OPEN, to_status=S.SENT))
        self.assertTrue(can_transition(from_status=S.SENT, to_status=S.CREDITED))
        self.assertFalse(can_transition(from_status=S.SENT, to_status=S.OPEN))
        self.assertFalse(can_transition(from_status=S.CREDITED, to_status=S.REJECTED))

    def test_send_then_credit(self):
        ncr = update_ncr_status(ncr=self._ncr(), status=NCR.Status.SENT)
        self.assertIsNone(ncr.resolved_at)

        ncr = update_ncr_status(ncr=ncr, status=NCR.Status.CREDITED, resolution_notes="CN 77")
        self.assertIsNotNone(ncr.resolved_at)
        self.assertEqual(ncr.resolution_notes, "CN 77")

        with self.assertRaises(StateTransitionError):
            update_ncr_status(ncr=ncr, status=NCR.Status.REJECTED)

    def test_resolve_requires_impact(self):
        ncr = self._ncr()
        with self.assertRaises(ValidationError):
            update_ncr_status(ncr=ncr, status=NCR.Status.RESOLVED)

        ncr = update_ncr_status(
            ncr=ncr, status=NCR.Status.RESOLVED, financial_impact=NCR.FinancialImpact.LOSS
        )
        self.assertEqual(ncr.financial_impact, NCR.FinancialImpact.LOSS)

    def test_impact_only_with_resolved(self):
        with self.assertRaises(ValidationError):
            update_ncr_status(
                ncr=self._ncr(),
                status=NCR.Status.SENT,
                financial_impact=NCR.FinancialImpact.CREDIT,
            )
