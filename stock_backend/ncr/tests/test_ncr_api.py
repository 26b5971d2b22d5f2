# ncr/tests/test_ncr_api.py

from django.test import TestCase
from rest_framework.test import APIClient

from inventory.tests.fixtures import make_location, make_open_period, make_user
from permissions.roles import ROLE_SUPERVISOR


class NCRAPITests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.operator = make_user()
        self.supervisor = make_user(email="sup@example.com", role=ROLE_SUPERVISOR)
        self.kitchen = make_location()
        self.period = make_open_period([self.kitchen])

    def _create(self):
        return self.client.post(
            "/api/ncr/",
            {"location_id": str(self.kitchen.id), "reason": "Crushed boxes", "value": "7.50"},
            format="json",
        )

    def test_operator_cannot_raise(self):
        self.client.force_authenticate(user=self.operator)
        self.assertEqual(self._create().status_code, 403)

    def test_credit_flow_and_summary(self):
        self.client.force_authenticate(user=self.supervisor)
        res = self._create()
        self.assertEqual(res.status_code, 201)
        ncr_id = res.data["id"]
        status_url = f"/api/ncr/{ncr_id}/status/"

        self.assertEqual(
            self.client.patch(status_url, {"status": "SENT"}, format="json").status_code, 200
        )
        self.assertEqual(
            self.client.patch(status_url, {"status": "CREDITED"}, format="json").status_code, 200
        )

        res = self.client.patch(status_url, {"status": "SENT"}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["code"], "INVALID_TRANSITION")

        res = self.client.get(
            "/api/ncr/summary/",
            {"period": str(self.period.id), "location": str(self.kitchen.id)},
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["credited"]["total"], "7.50")
        self.assertEqual(res.data["credited"]["count"], 1)
        self.assertEqual(res.data["open"]["count"], 0)

    def test_summary_needs_period_and_location(self):
        self.client.force_authenticate(user=self.operator)
        res = self.client.get("/api/ncr/summary/", {"period": str(self.period.id)})
        self.assertEqual(res.status_code, 400)
