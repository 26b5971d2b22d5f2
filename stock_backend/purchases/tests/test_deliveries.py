# purchases/tests/test_deliveries.py

from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase, override_settings

from inventory.models import LocationStock
from inventory.services.exceptions import (
    PeriodConflictError,
    PermissionDeniedError,
    StateTransitionError,
    ValidationError,
)
from inventory.tests.fixtures import make_item, make_location, make_open_period, make_user, stock
from ncr.models import NCR
from periods.models import PeriodLocation
from permissions.roles import ROLE_SUPERVISOR
from purchases.models import Delivery, PurchaseOrder, Supplier
from purchases.services import delivery_service
from purchases.services.delivery_service import (
    approve_over_delivery,
    create_delivery,
    delete_delivery,
    detect_over_delivery,
    post_delivery,
    reject_over_delivery,
    update_delivery,
)
from purchases.services.purchase_order_service import create_purchase_order


@override_settings(PRICE_VARIANCE_THRESHOLD_PERCENT="0", PRICE_VARIANCE_THRESHOLD_AMOUNT="0")
class DeliveryPostingTests(TestCase):
    """
    GUARANTEES:
    - Posting receives stock and recalculates WAC per line
    - Price variances against the locked period price raise an NCR
    - Over-deliveries wait for supervisor approval, nothing posted meanwhile
    - Posted / rejected deliveries are immutable; drafts can be edited or deleted
    - The PO check reads the PO lines under lock, so postings racing for
      the same PO quantity cannot both go through unapproved
    """

    def setUp(self):
        self.kitchen = make_location()
        self.rice = make_item()
        self.oil = make_item(code="OIL", name="Oil")
        self.supplier = Supplier.objects.create(code="SUP1", name="Fresh Foods")
        self.operator = make_user()
        self.supervisor = make_user(email="sup@example.com", role=ROLE_SUPERVISOR)
        self.period = make_open_period([self.kitchen], prices={self.rice: "10.00"})

    def _delivery(self, lines, purchase_order=None):
        return create_delivery(
            location=self.kitchen,
            supplier=self.supplier,
            lines=lines,
            purchase_order=purchase_order,
            user=self.operator,
        )

    def _po(self, qty="10"):
        return create_purchase_order(
            location=self.kitchen,
            supplier=self.supplier,
            lines=[{"item": self.rice, "quantity": qty, "unit_price": "10"}],
        )

    def _on_hand(self, item):
        row = LocationStock.objects.filter(location=self.kitchen, item=item).first()
        return row.on_hand if row else Decimal("0")

    # ======================================================
    # BASIC POSTING
    # ======================================================

    def test_create_stamps_period_price(self):
        delivery = self._delivery([{"item": self.rice, "quantity": 5, "unit_price": "10"}])
        self.assertEqual(delivery.status, Delivery.STATUS_DRAFT)
        self.assertEqual(delivery.period_id, self.period.id)
        self.assertTrue(delivery.delivery_no.startswith("DLV-"))

        line = delivery.lines.get()
        self.assertEqual(line.period_price, Decimal("10.0000"))
        self.assertEqual(self._on_hand(self.rice), Decimal("0"))

    def test_post_receives_stock_and_updates_wac(self):
        stock(self.kitchen, self.rice, 100, "10")
        delivery = self._delivery([{"item": self.rice, "quantity": 50, "unit_price": "10"}])
        delivery = post_delivery(delivery=delivery, user=self.operator)

        self.assertEqual(delivery.status, Delivery.STATUS_POSTED)
        self.assertIsNotNone(delivery.posted_at)
        self.assertEqual(delivery.total_amount, Decimal("500.00"))
        self.assertFalse(delivery.has_variance)
        self.assertEqual(self._on_hand(self.rice), Decimal("150.0000"))
        self.assertEqual(NCR.objects.count(), 0)

    def test_wac_audit_trail(self):
        stock(self.kitchen, self.oil, 100, "10")
        delivery = self._delivery([{"item": self.oil, "quantity": 50, "unit_price": "12"}])
        post_delivery(delivery=delivery)

        line = delivery.lines.get()
        self.assertEqual(line.wac_before, Decimal("10.0000"))
        self.assertEqual(line.wac_after, Decimal("10.6667"))
        # no period price for oil: no variance check
        self.assertIsNone(line.period_price)
        self.assertEqual(NCR.objects.count(), 0)

    def test_price_variance_raises_ncr(self):
        delivery = self._delivery([{"item": self.rice, "quantity": 10, "unit_price": "12"}])
        delivery = post_delivery(delivery=delivery, user=self.operator)

        self.assertTrue(delivery.has_variance)
        ncr = NCR.objects.get()
        self.assertEqual(ncr.type, NCR.NCRType.PRICE_VARIANCE)
        self.assertEqual(ncr.status, NCR.Status.OPEN)
        self.assertTrue(ncr.auto_generated)
        self.assertEqual(ncr.value, Decimal("20.00"))
        self.assertEqual(ncr.delivery_id, delivery.id)
        self.assertIn("Rice (RICE)", ncr.reason)

    def test_posting_twice_fails(self):
        delivery = post_delivery(
            delivery=self._delivery([{"item": self.rice, "quantity": 1, "unit_price": "10"}])
        )
        with self.assertRaises(StateTransitionError):
            post_delivery(delivery=delivery)
        self.assertEqual(self._on_hand(self.rice), Decimal("1.0000"))

    def test_posted_delivery_is_immutable(self):
        delivery = post_delivery(
            delivery=self._delivery([{"item": self.rice, "quantity": 1, "unit_price": "10"}])
        )
        with self.assertRaises(StateTransitionError):
            update_delivery(delivery=delivery, invoice_no="CHANGED")
        with self.assertRaises(StateTransitionError):
            delete_delivery(delivery=delivery)

        delivery.invoice_no = "CHANGED"
        with self.assertRaises(StateTransitionError):
            delivery.save()

        line = delivery.lines.get()
        line.quantity = Decimal("99")
        with self.assertRaises(StateTransitionError):
            line.save()
        with self.assertRaises(StateTransitionError):
            line.delete()

        delivery.refresh_from_db()
        self.assertEqual(delivery.invoice_no, "")
        self.assertEqual(delivery.lines.get().quantity, Decimal("1.0000"))

    # ======================================================
    # DRAFT EDITS
    # ======================================================

    def test_draft_edit_replaces_lines(self):
        delivery = self._delivery([{"item": self.rice, "quantity": 1, "unit_price": "10"}])

        delivery = update_delivery(
            delivery=delivery,
            user=self.operator,
            invoice_no=" INV-9 ",
            lines=[
                {"item": self.oil, "quantity": 2, "unit_price": "5"},
                {"item": self.rice, "quantity": 3, "unit_price": "10"},
            ],
        )

        self.assertEqual(delivery.status, Delivery.STATUS_DRAFT)
        self.assertEqual(delivery.invoice_no, "INV-9")
        lines = {line.item.code: line for line in delivery.lines.all()}
        self.assertEqual(set(lines), {"OIL", "RICE"})
        self.assertEqual(lines["RICE"].quantity, Decimal("3.0000"))
        self.assertEqual(lines["RICE"].period_price, Decimal("10.0000"))
        self.assertIsNone(lines["OIL"].period_price)

        with self.assertRaises(ValidationError):
            update_delivery(delivery=delivery, user=self.operator, lines=[])

    def test_only_creator_or_approver_edits_a_draft(self):
        delivery = self._delivery([{"item": self.rice, "quantity": 1, "unit_price": "10"}])
        other = make_user(email="other@example.com")

        with self.assertRaises(PermissionDeniedError):
            update_delivery(delivery=delivery, user=other, invoice_no="X")
        with self.assertRaises(PermissionDeniedError):
            delete_delivery(delivery=delivery, user=other)

        update_delivery(delivery=delivery, user=self.supervisor, invoice_no="SUP")
        delivery.refresh_from_db()
        self.assertEqual(delivery.invoice_no, "SUP")

    def test_delete_draft(self):
        delivery = self._delivery([{"item": self.rice, "quantity": 1, "unit_price": "10"}])
        delete_delivery(delivery=delivery, user=self.operator)
        self.assertFalse(Delivery.objects.filter(pk=delivery.pk).exists())

    def test_pending_approval_cannot_be_edited(self):
        _, delivery = self._over_delivered()
        with self.assertRaises(StateTransitionError):
            update_delivery(delivery=delivery, user=self.supervisor, invoice_no="X")

    def test_location_must_be_open(self):
        delivery = self._delivery([{"item": self.rice, "quantity": 1, "unit_price": "10"}])
        PeriodLocation.objects.filter(period=self.period, location=self.kitchen).update(
            status=PeriodLocation.Status.READY
        )
        with self.assertRaises(PeriodConflictError):
            post_delivery(delivery=delivery)

    def test_needs_lines(self):
        with self.assertRaises(ValidationError):
            self._delivery([])

    # ======================================================
    # PURCHASE ORDERS
    # ======================================================

    def test_full_delivery_closes_po(self):
        po = self._po("10")
        delivery = self._delivery(
            [{"item": self.rice, "quantity": 10, "unit_price": "10"}], purchase_order=po
        )
        post_delivery(delivery=delivery)

        po.refresh_from_db()
        self.assertEqual(po.status, PurchaseOrder.STATUS_CLOSED)
        self.assertEqual(po.lines.get().delivered_qty, Decimal("10.0000"))

        with self.assertRaises(ValidationError):
            self._delivery([{"item": self.rice, "quantity": 1, "unit_price": "10"}], purchase_order=po)

    def test_partial_delivery_keeps_po_open(self):
        po = self._po("10")
        post_delivery(
            delivery=self._delivery(
                [{"item": self.rice, "quantity": 4, "unit_price": "10"}], purchase_order=po
            )
        )
        po.refresh_from_db()
        self.assertEqual(po.status, PurchaseOrder.STATUS_OPEN)
        self.assertEqual(po.lines.get().remaining_qty, Decimal("6.0000"))

    # ======================================================
    # OVER-DELIVERY
    # ======================================================

    def _over_delivered(self):
        po = self._po("10")
        delivery = self._delivery(
            [{"item": self.rice, "quantity": 12, "unit_price": "10"}], purchase_order=po
        )
        return po, post_delivery(delivery=delivery, user=self.operator)

    def test_over_delivery_waits_for_approval(self):
        _, delivery = self._over_delivered()

        self.assertEqual(delivery.status, Delivery.STATUS_PENDING_APPROVAL)
        self.assertEqual(self._on_hand(self.rice), Decimal("0"))

        over = detect_over_delivery(delivery)
        self.assertEqual(len(over), 1)
        self.assertEqual(over[0].excess_qty, Decimal("2.0000"))

        with self.assertRaises(StateTransitionError):
            post_delivery(delivery=delivery)

    def test_supervisor_approves(self):
        po, delivery = self._over_delivered()
        delivery = approve_over_delivery(delivery=delivery, user=self.supervisor)

        self.assertEqual(delivery.status, Delivery.STATUS_POSTED)
        self.assertEqual(delivery.approved_by, self.supervisor)
        self.assertTrue(all(line.over_delivery_approved for line in delivery.lines.all()))
        self.assertEqual(self._on_hand(self.rice), Decimal("12.0000"))

        po.refresh_from_db()
        self.assertEqual(po.status, PurchaseOrder.STATUS_CLOSED)

    def test_operator_cannot_approve(self):
        _, delivery = self._over_delivered()
        with self.assertRaises(PermissionDeniedError):
            approve_over_delivery(delivery=delivery, user=self.operator)
        with self.assertRaises(PermissionDeniedError):
            reject_over_delivery(delivery=delivery, user=self.operator, reason="no")

    def test_reject(self):
        _, delivery = self._over_delivered()
        with self.assertRaises(ValidationError):
            reject_over_delivery(delivery=delivery, user=self.supervisor, reason=" ")

        delivery = reject_over_delivery(
            delivery=delivery, user=self.supervisor, reason="Not ordered"
        )
        self.assertEqual(delivery.status, Delivery.STATUS_REJECTED)
        self.assertEqual(delivery.rejection_reason, "Not ordered")
        self.assertEqual(self._on_hand(self.rice), Decimal("0"))

        with self.assertRaises(StateTransitionError):
            approve_over_delivery(delivery=delivery, user=self.supervisor)

    def test_draft_cannot_be_rejected(self):
        delivery = self._delivery([{"item": self.rice, "quantity": 1, "unit_price": "10"}])
        with self.assertRaises(StateTransitionError):
            reject_over_delivery(delivery=delivery, user=self.supervisor, reason="x")
        with self.assertRaises(StateTransitionError):
            approve_over_delivery(delivery=delivery, user=self.supervisor)

    def test_competing_post_is_seen_by_the_po_check(self):
        po = create_purchase_order(
            location=self.kitchen,
            supplier=self.supplier,
            lines=[
                {"item": self.rice, "quantity": "10", "unit_price": "10"},
                {"item": self.oil, "quantity": "5", "unit_price": "4"},
            ],
        )
        first = self._delivery(
            [{"item": self.rice, "quantity": 10, "unit_price": "10"}], purchase_order=po
        )
        second = self._delivery(
            [{"item": self.rice, "quantity": 10, "unit_price": "10"}], purchase_order=po
        )

        real_lock = delivery_service._lock_purchase_order
        competing = {}

        def post_first_then_lock(delivery):
            # the first posting commits while the second waits for the PO lock
            if delivery.pk == second.pk and not competing:
                competing["first"] = None
                competing["first"] = post_delivery(delivery=first, user=self.operator)
            return real_lock(delivery)

        with patch(
            "purchases.services.delivery_service._lock_purchase_order",
            side_effect=post_first_then_lock,
        ):
            second = post_delivery(delivery=second, user=self.operator)

        self.assertEqual(competing["first"].status, Delivery.STATUS_POSTED)
        self.assertEqual(second.status, Delivery.STATUS_PENDING_APPROVAL)
        self.assertEqual(po.lines.get(item=self.rice).delivered_qty, Decimal("10.0000"))
        self.assertEqual(self._on_hand(self.rice), Decimal("10.0000"))
        po.refresh_from_db()
        self.assertEqual(po.status, PurchaseOrder.STATUS_OPEN)
