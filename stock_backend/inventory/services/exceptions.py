# inventory/services/exceptions.py

"""
STOCK ENGINE ERRORS

Centralized domain errors for the valuation / reconciliation engine.
Every service in inventory, periods, purchases, issues, transfers, ncr and
reconciliation raises one of these; the API layer maps them to HTTP codes.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base exception for all stock engine failures."""

    code = "ENGINE_ERROR"

    def to_dict(self) -> dict:
        return {"code": self.code, "detail": str(self)}


class ValidationError(EngineError):
    """Malformed or out-of-range calculation input (carries the offending field)."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        return data


class NotFoundError(EngineError):
    """A referenced entity (location, period, item...) does not exist."""

    code = "NOT_FOUND"


class InsufficientStockError(EngineError):
    """
    Raised when a deduction would drive on-hand below zero.

    Carries EVERY insufficient line of the request, not just the first.
    """

    code = "INSUFFICIENT_STOCK"

    def __init__(self, *, location_id, location_name: str, items: list):
        self.location_id = location_id
        self.location_name = location_name
        self.items = list(items)

        if len(self.items) == 1:
            it = self.items[0]
            message = (
                f"Insufficient stock for {it.item_name} at {location_name}: "
                f"requested {it.requested_quantity}, available {it.available_quantity}"
            )
        else:
            message = (
                f"Insufficient stock for {len(self.items)} items at {location_name}"
            )
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "detail": str(self),
            "location_id": str(self.location_id),
            "location_name": self.location_name,
            "insufficient_items": [
                {
                    "item_id": str(it.item_id),
                    "item_code": it.item_code,
                    "item_name": it.item_name,
                    "unit": it.unit,
                    "requested": str(it.requested_quantity),
                    "available": str(it.available_quantity),
                    "shortfall": str(it.shortfall),
                }
                for it in self.items
            ],
        }


class PeriodConflictError(EngineError):
    """
    Period state forbids the operation: a second OPEN period, posting into a
    non-OPEN period / location, or editing locked period prices.
    """

    code = "PERIOD_CONFLICT"


class StateTransitionError(EngineError):
    """Illegal status transition for a period, delivery, transfer or NCR."""

    code = "INVALID_TRANSITION"


class CloseNotReadyError(StateTransitionError):
    """Close preconditions failed; carries the blocking items."""

    code = "CLOSE_NOT_READY"

    def __init__(self, message: str, *, blocking_items: list):
        super().__init__(message)
        self.blocking_items = list(blocking_items)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["blocking_items"] = [b.to_dict() for b in self.blocking_items]
        return data


class PartialCloseError(EngineError):
    """Fatal integrity failure during period close; everything was rolled back."""

    code = "PARTIAL_CLOSE"


class PermissionDeniedError(EngineError):
    """The acting user may not perform this transition (e.g. approvals)."""

    code = "FORBIDDEN"
