# inventory/tests/test_inventory_api.py

from django.test import TestCase
from rest_framework.test import APIClient

from inventory.tests.fixtures import make_item, make_location, make_user, stock


class InventoryAPITests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.kitchen = make_location()
        self.rice = make_item()
        stock(self.kitchen, self.rice, 100, "10")

    def test_requires_authentication(self):
        self.assertEqual(self.client.get("/api/inventory/stock/").status_code, 401)

    def test_stock_list(self):
        self.client.force_authenticate(user=make_user())
        res = self.client.get("/api/inventory/stock/", {"location__code": "K1"})

        self.assertEqual(res.status_code, 200)
        row = res.data["results"][0]
        self.assertEqual(row["item_code"], "RICE")
        self.assertEqual(row["stock_value"], "1000.00")

    def test_stock_check_does_not_mutate(self):
        self.client.force_authenticate(user=make_user())
        res = self.client.post(
            "/api/inventory/stock/check/",
            {
                "location_id": str(self.kitchen.id),
                "lines": [{"item_id": str(self.rice.id), "quantity": "120"}],
            },
            format="json",
        )

        self.assertEqual(res.status_code, 200)
        self.assertFalse(res.data["is_valid"])
        self.assertEqual(res.data["lines"][0]["shortfall"], "20.0000")

    def test_wac_preview(self):
        self.client.force_authenticate(user=make_user())
        res = self.client.post(
            "/api/inventory/wac/preview/",
            {
                "location_id": str(self.kitchen.id),
                "item_id": str(self.rice.id),
                "quantity": "50",
                "unit_price": "12",
            },
            format="json",
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["new_wac"], "10.6667")
