# permissions/roles.py

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import BasePermission


# =========================================================
# ROLE CONSTANTS (STAFF JOB ROLES)
# =========================================================
# Operators capture documents at a location.
# Supervisors approve exceptions and mark locations ready.
# Admins manage prices and run the period close.
ROLE_OPERATOR = "operator"
ROLE_SUPERVISOR = "supervisor"
ROLE_ADMIN = "admin"

STAFF_ROLES = {
    ROLE_OPERATOR,
    ROLE_SUPERVISOR,
    ROLE_ADMIN,
}


# =========================================================
# CAPABILITIES (THE REAL PERMISSION LANGUAGE)
# =========================================================
# Views should protect capabilities, not raw roles.
CAP_STOCK_VIEW = "stock.view"

CAP_DELIVERY_POST = "delivery.post"
CAP_DELIVERY_APPROVE = "delivery.approve"     # over-delivery approve/reject

CAP_ISSUE_POST = "issue.post"

CAP_TRANSFER_REQUEST = "transfer.request"
CAP_TRANSFER_APPROVE = "transfer.approve"

CAP_NCR_VIEW = "ncr.view"
CAP_NCR_EDIT = "ncr.edit"

CAP_RECONCILIATION_VIEW = "reconciliation.view"
CAP_RECONCILIATION_EDIT = "reconciliation.edit"   # manual adjustments
CAP_RECONCILIATION_CONSOLIDATED = "reconciliation.consolidated"  # all locations at once

CAP_PERIOD_MANAGE = "period.manage"           # create/open/prices/roll-forward
CAP_PERIOD_READY = "period.ready"             # mark a location ready
CAP_PERIOD_CLOSE = "period.close"             # request + execute close

ALL_CAPABILITIES = {
    CAP_STOCK_VIEW,
    CAP_DELIVERY_POST,
    CAP_DELIVERY_APPROVE,
    CAP_ISSUE_POST,
    CAP_TRANSFER_REQUEST,
    CAP_TRANSFER_APPROVE,
    CAP_NCR_VIEW,
    CAP_NCR_EDIT,
    CAP_RECONCILIATION_VIEW,
    CAP_RECONCILIATION_EDIT,
    CAP_RECONCILIATION_CONSOLIDATED,
    CAP_PERIOD_MANAGE,
    CAP_PERIOD_READY,
    CAP_PERIOD_CLOSE,
}


# =========================================================
# ROLE → CAPABILITY MAP (DEFAULT)
# =========================================================
ROLE_CAPABILITIES: dict[str, set[str]] = {
    ROLE_ADMIN: {
        *ALL_CAPABILITIES,
    },
    ROLE_SUPERVISOR: {
        CAP_STOCK_VIEW,
        CAP_DELIVERY_POST,
        CAP_DELIVERY_APPROVE,
        CAP_ISSUE_POST,
        CAP_TRANSFER_REQUEST,
        CAP_TRANSFER_APPROVE,
        CAP_NCR_VIEW,
        CAP_NCR_EDIT,
        CAP_RECONCILIATION_VIEW,
        CAP_RECONCILIATION_EDIT,
        CAP_RECONCILIATION_CONSOLIDATED,
        CAP_PERIOD_READY,
    },
    ROLE_OPERATOR: {
        CAP_STOCK_VIEW,
        CAP_DELIVERY_POST,
        CAP_ISSUE_POST,
        CAP_TRANSFER_REQUEST,
        CAP_NCR_VIEW,
        CAP_RECONCILIATION_VIEW,
    },
}


# =========================================================
# Helpers
# =========================================================
def get_user_role(user) -> Optional[str]:
    return getattr(user, "role", None)


def capabilities_for(user) -> set[str]:
    if getattr(user, "is_superuser", False):
        return set(ALL_CAPABILITIES)
    return set(ROLE_CAPABILITIES.get(get_user_role(user), set()))


def user_has_capability(user, capability: str) -> bool:
    if not user or not getattr(user, "is_authenticated", False):
        return False
    return capability in capabilities_for(user)


def is_approver(user) -> bool:
    """Supervisors and admins may approve over-deliveries and transfers."""
    return get_user_role(user) in {ROLE_SUPERVISOR, ROLE_ADMIN} or bool(
        getattr(user, "is_superuser", False)
    )


# =========================================================
# Capability Permission
# =========================================================
class HasCapability(BasePermission):
    """
    Require a specific capability.

    Usage:
        permission_classes = [IsAuthenticated, HasCapability]
        view.required_capability = CAP_PERIOD_CLOSE
    """

    def has_permission(self, request, view):
        required = getattr(view, "required_capability", None)
        if not required:
            # If not set, deny-by-default to avoid accidental open endpoints
            return False

        return user_has_capability(request.user, required)
