# purchases/tests/test_delivery_api.py

from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from inventory.tests.fixtures import make_item, make_location, make_open_period, make_user
from permissions.roles import ROLE_SUPERVISOR
from purchases.models import Supplier


@override_settings(PRICE_VARIANCE_THRESHOLD_PERCENT="0", PRICE_VARIANCE_THRESHOLD_AMOUNT="0")
class DeliveryAPITests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.operator = make_user()
        self.supervisor = make_user(email="sup@example.com", role=ROLE_SUPERVISOR)
        self.kitchen = make_location()
        self.rice = make_item()
        self.supplier = Supplier.objects.create(code="SUP1", name="Fresh Foods")
        make_open_period([self.kitchen], prices={self.rice: "10"})

        self.client.force_authenticate(user=self.operator)

    def _order(self, qty="10"):
        res = self.client.post(
            "/api/purchases/orders/",
            {
                "supplier_id": str(self.supplier.id),
                "location_id": str(self.kitchen.id),
                "lines": [{"item_id": str(self.rice.id), "quantity": qty, "unit_price": "10"}],
            },
            format="json",
        )
        self.assertEqual(res.status_code, 201)
        return res.data

    def _deliver(self, qty, price="10", po=None):
        body = {
            "supplier_id": str(self.supplier.id),
            "location_id": str(self.kitchen.id),
            "invoice_no": "INV-1",
            "lines": [{"item_id": str(self.rice.id), "quantity": qty, "unit_price": price}],
        }
        if po:
            body["purchase_order_id"] = po["id"]
        res = self.client.post("/api/purchases/deliveries/", body, format="json")
        self.assertEqual(res.status_code, 201)
        return res.data

    def test_post_with_variance(self):
        delivery = self._deliver("5", price="11")
        self.assertEqual(delivery["status"], "DRAFT")
        self.assertEqual(delivery["lines"][0]["period_price"], "10.0000")

        res = self.client.post(f"/api/purchases/deliveries/{delivery['id']}/post/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "POSTED")
        self.assertTrue(res.data["has_variance"])
        self.assertEqual(res.data["total_amount"], "55.00")

        res = self.client.get("/api/ncr/", {"type": "PRICE_VARIANCE"})
        self.assertEqual(res.data["count"], 1)

    def test_over_delivery_approval(self):
        po = self._order("10")
        delivery = self._deliver("12", po=po)

        res = self.client.post(f"/api/purchases/deliveries/{delivery['id']}/post/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "PENDING_APPROVAL")
        self.assertEqual(res.data["over_delivery"][0]["excess_qty"], "2.0000")

        approve_url = f"/api/purchases/deliveries/{delivery['id']}/approve/"
        self.assertEqual(self.client.post(approve_url).status_code, 403)

        self.client.force_authenticate(user=self.supervisor)
        res = self.client.post(approve_url)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "POSTED")

        res = self.client.get("/api/purchases/orders/", {"status": "CLOSED"})
        self.assertEqual(res.data["count"], 1)

    def test_unknown_item(self):
        res = self.client.post(
            "/api/purchases/deliveries/",
            {
                "supplier_id": str(self.supplier.id),
                "location_id": str(self.kitchen.id),
                "lines": [{"item_id": str(self.kitchen.id), "quantity": "1", "unit_price": "1"}],
            },
            format="json",
        )
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["code"], "NOT_FOUND")

    def test_edit_and_delete_draft(self):
        delivery = self._deliver("5")
        url = f"/api/purchases/deliveries/{delivery['id']}/"

        res = self.client.patch(
            url,
            {
                "invoice_no": "INV-2",
                "lines": [{"item_id": str(self.rice.id), "quantity": "7", "unit_price": "10"}],
            },
            format="json",
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["invoice_no"], "INV-2")
        self.assertEqual(len(res.data["lines"]), 1)
        self.assertEqual(res.data["lines"][0]["quantity"], "7.0000")

        res = self.client.delete(url)
        self.assertEqual(res.status_code, 204)
        self.assertEqual(self.client.get(url).status_code, 404)

    def test_posted_delivery_cannot_be_changed(self):
        delivery = self._deliver("5")
        url = f"/api/purchases/deliveries/{delivery['id']}/"
        self.client.post(f"{url}post/")

        res = self.client.patch(url, {"invoice_no": "LATE"}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["code"], "INVALID_TRANSITION")

        res = self.client.delete(url)
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["code"], "INVALID_TRANSITION")
        self.assertEqual(self.client.get(url).data["status"], "POSTED")
