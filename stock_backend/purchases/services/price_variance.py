# purchases/services/price_variance.py

"""
======================================================
PATH: purchases/services/price_variance.py
======================================================
PRICE VARIANCE (delivery price vs locked period price)

    variance         = unit_price - period_price          (4dp)
    variance_percent = variance / period_price * 100      (2dp; 100 when period_price is 0)
    variance_amount  = variance * quantity                (2dp)

A variance is flagged (and a PRICE_VARIANCE NCR raised) when it is non-zero
AND either:
- no threshold is configured, or
- |variance_percent| > PRICE_VARIANCE_THRESHOLD_PERCENT, or
- |variance_amount|  > PRICE_VARIANCE_THRESHOLD_AMOUNT

A price variance is an expected business event, never an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings

from inventory.services.money import (
    ZERO,
    quantize_cost,
    quantize_money,
    require_non_negative,
    require_positive,
    to_decimal,
)
from ncr.models import NCR
from ncr.services.ncr_lifecycle import notify_ncr_created, next_ncr_number

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PriceVarianceResult:
    has_variance: bool
    exceeds_threshold: bool
    variance: Decimal
    variance_percent: Decimal
    variance_amount: Decimal
    actual_price: Decimal
    expected_price: Decimal


def _thresholds() -> tuple[Decimal, Decimal]:
    percent = to_decimal(
        getattr(settings, "PRICE_VARIANCE_THRESHOLD_PERCENT", "0") or "0",
        field="PRICE_VARIANCE_THRESHOLD_PERCENT",
    )
    amount = to_decimal(
        getattr(settings, "PRICE_VARIANCE_THRESHOLD_AMOUNT", "0") or "0",
        field="PRICE_VARIANCE_THRESHOLD_AMOUNT",
    )
    return percent, amount


def check_price_variance(
    unit_price,
    period_price,
    quantity,
    *,
    threshold_percent=None,
    threshold_amount=None,
) -> PriceVarianceResult:
    actual = require_non_negative(unit_price, field="unit_price")
    expected = require_non_negative(period_price, field="period_price")
    qty = require_positive(quantity, field="quantity")

    if threshold_percent is None or threshold_amount is None:
        default_percent, default_amount = _thresholds()
        threshold_percent = default_percent if threshold_percent is None else threshold_percent
        threshold_amount = default_amount if threshold_amount is None else threshold_amount
    threshold_percent = to_decimal(threshold_percent, field="threshold_percent")
    threshold_amount = to_decimal(threshold_amount, field="threshold_amount")

    variance = actual - expected
    if expected > ZERO:
        variance_percent = variance / expected * HUNDRED
    else:
        variance_percent = HUNDRED if actual > ZERO else ZERO
    variance_amount = variance * qty

    has_variance = variance != ZERO
    has_percent = threshold_percent > ZERO
    has_amount = threshold_amount > ZERO

    exceeds = has_variance and (
        (not has_percent and not has_amount)
        or (has_percent and abs(variance_percent) > threshold_percent)
        or (has_amount and abs(variance_amount) > threshold_amount)
    )

    return PriceVarianceResult(
        has_variance=has_variance,
        exceeds_threshold=exceeds,
        variance=quantize_cost(variance),
        variance_percent=quantize_money(variance_percent),
        variance_amount=quantize_money(variance_amount),
        actual_price=quantize_cost(actual),
        expected_price=quantize_cost(expected),
    )


def create_price_variance_ncr(*, delivery, line, result: PriceVarianceResult, user=None) -> NCR:
    """
    Runs inside the delivery posting transaction.
    """
    item = line.item
    direction = "increase" if result.variance > ZERO else "decrease"
    reason = (
        "Automatic NCR for price variance detected on delivery.\n\n"
        f"Item: {item.name} ({item.code})\n"
        f"Quantity: {line.quantity}\n"
        f"Expected Price (Period): {result.expected_price}\n"
        f"Actual Price (Delivery): {result.actual_price}\n"
        f"Variance: {result.variance} ({result.variance_percent}% {direction})\n"
        f"Total Variance Amount: {result.variance_amount}"
    )

    ncr = NCR.objects.create(
        ncr_no=next_ncr_number(),
        location=delivery.location,
        type=NCR.NCRType.PRICE_VARIANCE,
        status=NCR.Status.OPEN,
        value=abs(result.variance_amount),
        quantity=line.quantity,
        reason=reason,
        delivery=delivery,
        delivery_line=line,
        auto_generated=True,
        created_by=user,
    )
    notify_ncr_created(ncr)

    logger.info(
        "Price variance NCR %s raised for %s on %s (%s)",
        ncr.ncr_no,
        item.code,
        delivery.delivery_no,
        result.variance_amount,
    )
    return ncr
