# users/tests/test_permissions.py

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from permissions.roles import (
    ALL_CAPABILITIES,
    CAP_DELIVERY_APPROVE,
    CAP_PERIOD_CLOSE,
    CAP_PERIOD_READY,
    CAP_STOCK_VIEW,
    ROLE_ADMIN,
    ROLE_OPERATOR,
    ROLE_SUPERVISOR,
    capabilities_for,
    is_approver,
    user_has_capability,
)

User = get_user_model()


class RoleCapabilityTests(TestCase):
    """
    GUARANTEES:
    - Operators capture, supervisors approve, admins close
    - Anonymous users hold no capability
    """

    def setUp(self):
        self.operator = User.objects.create_user(email="op@example.com", password="x")
        self.supervisor = User.objects.create_user(
            email="sup@example.com", password="x", role=ROLE_SUPERVISOR
        )
        self.admin = User.objects.create_user(
            email="admin@example.com", password="x", role=ROLE_ADMIN
        )

    def test_default_role_is_operator(self):
        self.assertEqual(self.operator.role, ROLE_OPERATOR)
        self.assertEqual(self.operator.username, "op")

    def test_operator(self):
        self.assertTrue(user_has_capability(self.operator, CAP_STOCK_VIEW))
        self.assertFalse(user_has_capability(self.operator, CAP_DELIVERY_APPROVE))
        self.assertFalse(user_has_capability(self.operator, CAP_PERIOD_READY))
        self.assertFalse(is_approver(self.operator))

    def test_supervisor(self):
        self.assertTrue(user_has_capability(self.supervisor, CAP_DELIVERY_APPROVE))
        self.assertTrue(user_has_capability(self.supervisor, CAP_PERIOD_READY))
        self.assertFalse(user_has_capability(self.supervisor, CAP_PERIOD_CLOSE))
        self.assertTrue(is_approver(self.supervisor))

    def test_admin_and_superuser(self):
        self.assertEqual(capabilities_for(self.admin), ALL_CAPABILITIES)
        self.assertTrue(is_approver(self.admin))

        root = User.objects.create_superuser(email="root@example.com", password="x")
        root.role = ROLE_OPERATOR
        self.assertEqual(capabilities_for(root), ALL_CAPABILITIES)
        self.assertTrue(is_approver(root))

    def test_anonymous(self):
        self.assertFalse(user_has_capability(None, CAP_STOCK_VIEW))

    def test_me_endpoint(self):
        client = APIClient()
        self.assertEqual(client.get("/api/auth/me/").status_code, 401)

        client.force_authenticate(user=self.supervisor)
        res = client.get("/api/auth/me/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["role"], ROLE_SUPERVISOR)
        self.assertTrue(res.data["is_approver"])
        self.assertIn(CAP_PERIOD_READY, res.data["capabilities"])
        self.assertNotIn(CAP_PERIOD_CLOSE, res.data["capabilities"])
