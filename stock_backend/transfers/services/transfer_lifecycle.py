"""
TRANSFER LIFECYCLE DOMAIN RULES

    DRAFT -> PENDING_APPROVAL -> APPROVED | REJECTED

Only APPROVED moves stock. No database writes here.
"""

from inventory.services.exceptions import StateTransitionError
from transfers.models import Transfer

# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    Transfer.Status.APPROVED,
    Transfer.Status.REJECTED,
}

ALLOWED_TRANSITIONS = {
    Transfer.Status.DRAFT: {
        Transfer.Status.PENDING_APPROVAL,
    },
    Transfer.Status.PENDING_APPROVAL: {
        Transfer.Status.APPROVED,
        Transfer.Status.REJECTED,
    },
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, transfer: Transfer, target_status: str):
    if not can_transition(from_status=transfer.status, to_status=target_status):
        raise StateTransitionError(
            f"Transfer {transfer.transfer_no} cannot transition from "
            f"'{transfer.status}' to '{target_status}'"
        )
