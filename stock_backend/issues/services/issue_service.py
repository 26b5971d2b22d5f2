# issues/services/issue_service.py

"""
======================================================
PATH: issues/services/issue_service.py
======================================================
STOCK ISSUE SERVICE

Posting (atomic):
1) Lock the issue and its period; period + location must be OPEN
2) Validate ALL lines against locked stock (one error lists every shortfall)
3) Deduct each line at the current WAC; WAC itself never moves
4) Mark POSTED with the total value
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from inventory.services.exceptions import (
    NotFoundError,
    StateTransitionError,
    ValidationError,
)
from inventory.services.money import ZERO, quantize_money, quantize_qty, require_positive
from inventory.services.numbering import next_document_number
from inventory.services.stock_ledger import deduct_stock
from inventory.services.stock_validation import validate_and_raise_if_insufficient
from issues.models import Issue, IssueLine
from periods.models import Period
from periods.services.period_guard import assert_period_open_for_location

logger = logging.getLogger(__name__)


@transaction.atomic
def create_issue(
    *,
    location,
    lines: list[dict],
    cost_centre: str = Issue.CostCentre.FOOD,
    issue_date=None,
    user=None,
) -> Issue:
    """
    Each line: {"item": Item, "quantity": ...}

    Stock is checked (unlocked) so obviously impossible issues are rejected
    early; posting checks again under lock.
    """
    if not lines:
        raise ValidationError("An issue needs at least one line", field="lines")

    period_location = assert_period_open_for_location(location=location)

    prepared = []
    for idx, raw in enumerate(lines):
        item = raw.get("item")
        if item is None:
            raise ValidationError(f"lines[{idx}].item is required", field="item")
        qty = quantize_qty(require_positive(raw.get("quantity"), field="quantity"))
        prepared.append({"item": item, "item_id": item.id, "quantity": qty})

    validate_and_raise_if_insufficient(location.id, prepared, lock=False)

    issue = Issue.objects.create(
        issue_no=next_document_number(model=Issue, field="issue_no", prefix="ISS"),
        location=location,
        period=period_location.period,
        cost_centre=cost_centre,
        issue_date=issue_date or timezone.localdate(),
        created_by=user,
    )
    IssueLine.objects.bulk_create(
        [IssueLine(issue=issue, item=p["item"], quantity=p["quantity"]) for p in prepared]
    )
    return issue


@transaction.atomic
def post_issue(*, issue: Issue, user=None) -> Issue:
    try:
        issue = Issue.objects.select_for_update().get(pk=issue.pk)
    except Issue.DoesNotExist as exc:
        raise NotFoundError("Issue not found") from exc

    if issue.status != Issue.Status.DRAFT:
        raise StateTransitionError(
            f"Issue {issue.issue_no} cannot transition from '{issue.status}' to 'POSTED'"
        )

    period = Period.objects.select_for_update().get(pk=issue.period_id)
    assert_period_open_for_location(location=issue.location, period=period)

    lines = list(issue.lines.select_related("item").order_by("item__code", "id"))
    if not lines:
        raise ValidationError("Issue has no lines", field="lines")

    validate_and_raise_if_insufficient(issue.location_id, lines, lock=True)

    total = ZERO
    for line in lines:
        stock = deduct_stock(location=issue.location, item=line.item, quantity=line.quantity)
        line.wac_at_issue = stock.wac
        line.line_value = quantize_money(line.quantity * stock.wac)
        line.save(update_fields=["wac_at_issue", "line_value"])
        total += line.line_value

    issue.total_value = quantize_money(total)
    issue.status = Issue.Status.POSTED
    issue.posted_at = timezone.now()
    issue.save()

    logger.info(
        "Issue %s posted at %s (%s)", issue.issue_no, issue.location.code, issue.total_value
    )
    return issue
