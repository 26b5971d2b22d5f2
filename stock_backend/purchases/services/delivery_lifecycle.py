"""
DELIVERY LIFECYCLE DOMAIN RULES

    DRAFT -> POSTED
    DRAFT -> PENDING_APPROVAL -> POSTED | REJECTED

Only DRAFT deliveries are editable.

No database writes here.
"""

from inventory.services.exceptions import StateTransitionError
from purchases.models import Delivery

# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    Delivery.STATUS_POSTED,
    Delivery.STATUS_REJECTED,
}

ALLOWED_TRANSITIONS = {
    Delivery.STATUS_DRAFT: {
        Delivery.STATUS_POSTED,
        Delivery.STATUS_PENDING_APPROVAL,
    },
    Delivery.STATUS_PENDING_APPROVAL: {
        Delivery.STATUS_POSTED,
        Delivery.STATUS_REJECTED,
    },
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, delivery: Delivery, target_status: str):
    if not can_transition(from_status=delivery.status, to_status=target_status):
        raise StateTransitionError(
            f"Delivery {delivery.delivery_no} cannot transition from "
            f"'{delivery.status}' to '{target_status}'"
        )


def validate_editable(*, delivery: Delivery):
    if delivery.status != Delivery.STATUS_DRAFT:
        raise StateTransitionError(
            f"Delivery {delivery.delivery_no} is {delivery.status}; only DRAFT deliveries can be changed"
        )
