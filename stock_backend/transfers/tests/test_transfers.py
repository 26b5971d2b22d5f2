# transfers/tests/test_transfers.py

from decimal import Decimal
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase

from inventory.models import LocationStock
from inventory.services.exceptions import (
    InsufficientStockError,
    PermissionDeniedError,
    StateTransitionError,
    ValidationError,
)
from inventory.tests.fixtures import make_item, make_location, make_open_period, make_user, stock
from permissions.roles import ROLE_SUPERVISOR
from transfers.models import Transfer
from transfers.services.transfer_service import (
    approve_transfer,
    create_transfer,
    reject_transfer,
    submit_transfer,
)


class TransferTests(TestCase):
    """
    GUARANTEES:
    - Only APPROVED moves stock, both legs in one transaction
    - Destination receives at the source WAC
    - Only supervisors/admins decide
    """

    def setUp(self):
        self.store = make_location(code="ST", name="Main Store")
        self.kitchen = make_location()
        self.rice = make_item()
        self.oil = make_item(code="OIL", name="Oil")
        self.operator = make_user()
        self.supervisor = make_user(email="sup@example.com", role=ROLE_SUPERVISOR)
        make_open_period([self.store, self.kitchen])

        stock(self.store, self.rice, 100, "3")
        stock(self.store, self.oil, 20, "10")
        stock(self.kitchen, self.rice, 10, "6")

    def _on_hand(self, location, item):
        row = LocationStock.objects.filter(location=location, item=item).first()
        return row.on_hand if row else Decimal("0")

    def _pending(self, lines=None):
        transfer = create_transfer(
            from_location=self.store,
            to_location=self.kitchen,
            lines=lines or [{"item": self.rice, "quantity": 30}, {"item": self.oil, "quantity": 5}],
            user=self.operator,
        )
        return submit_transfer(transfer=transfer, user=self.operator)

    def test_request_does_not_move_stock(self):
        transfer = self._pending()
        self.assertEqual(transfer.status, Transfer.Status.PENDING_APPROVAL)
        self.assertEqual(transfer.total_value, Decimal("140.00"))
        self.assertEqual(self._on_hand(self.store, self.rice), Decimal("100.0000"))

    def test_approve_moves_stock_at_source_wac(self):
        transfer = approve_transfer(transfer=self._pending(), user=self.supervisor)

        self.assertEqual(transfer.status, Transfer.Status.APPROVED)
        self.assertEqual(transfer.approved_by, self.supervisor)
        self.assertEqual(self._on_hand(self.store, self.rice), Decimal("70.0000"))
        self.assertEqual(self._on_hand(self.store, self.oil), Decimal("15.0000"))
        self.assertEqual(self._on_hand(self.kitchen, self.oil), Decimal("5.0000"))

        # (10 * 6 + 30 * 3) / 40
        kitchen_rice = LocationStock.objects.get(location=self.kitchen, item=self.rice)
        self.assertEqual(kitchen_rice.on_hand, Decimal("40.0000"))
        self.assertEqual(kitchen_rice.wac, Decimal("3.7500"))

        store_rice = LocationStock.objects.get(location=self.store, item=self.rice)
        self.assertEqual(store_rice.wac, Decimal("3.0000"))

    def test_stock_short_at_approval(self):
        transfer = self._pending()
        stock(self.store, self.oil, 2, "10")

        with self.assertRaises(InsufficientStockError):
            approve_transfer(transfer=transfer, user=self.supervisor)

        transfer.refresh_from_db()
        self.assertEqual(transfer.status, Transfer.Status.PENDING_APPROVAL)
        self.assertEqual(self._on_hand(self.store, self.rice), Decimal("100.0000"))
        self.assertEqual(self._on_hand(self.kitchen, self.rice), Decimal("10.0000"))

    def test_failure_rolls_back_both_legs(self):
        transfer = self._pending()

        with patch(
            "transfers.services.transfer_service.receive_stock",
            side_effect=DatabaseError("write failed"),
        ):
            with self.assertRaises(DatabaseError):
                approve_transfer(transfer=transfer, user=self.supervisor)

        transfer.refresh_from_db()
        self.assertEqual(transfer.status, Transfer.Status.PENDING_APPROVAL)
        self.assertEqual(self._on_hand(self.store, self.rice), Decimal("100.0000"))
        self.assertEqual(self._on_hand(self.store, self.oil), Decimal("20.0000"))

    def test_operator_cannot_decide(self):
        transfer = self._pending()
        with self.assertRaises(PermissionDeniedError):
            approve_transfer(transfer=transfer, user=self.operator)
        with self.assertRaises(PermissionDeniedError):
            reject_transfer(transfer=transfer, user=self.operator, reason="no")

    def test_reject(self):
        transfer = reject_transfer(
            transfer=self._pending(), user=self.supervisor, reason=" Wrong items "
        )
        self.assertEqual(transfer.status, Transfer.Status.REJECTED)
        self.assertEqual(transfer.rejection_reason, "Wrong items")
        self.assertEqual(self._on_hand(self.store, self.rice), Decimal("100.0000"))

        with self.assertRaises(StateTransitionError):
            approve_transfer(transfer=transfer, user=self.supervisor)

    def test_draft_cannot_be_approved(self):
        transfer = create_transfer(
            from_location=self.store,
            to_location=self.kitchen,
            lines=[{"item": self.rice, "quantity": 1}],
        )
        with self.assertRaises(StateTransitionError):
            approve_transfer(transfer=transfer, user=self.supervisor)

    def test_same_location(self):
        with self.assertRaises(ValidationError):
            create_transfer(
                from_location=self.store,
                to_location=self.store,
                lines=[{"item": self.rice, "quantity": 1}],
            )
