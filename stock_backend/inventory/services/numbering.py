# inventory/services/numbering.py

"""
DOCUMENT NUMBERS

Simple sequential generator: <PREFIX>-<YYYY>-<NNN>, e.g. NCR-2025-007.
The sequence restarts every calendar year. Uniqueness is enforced by the
unique constraint on the number column of each document model.
"""

from __future__ import annotations

from django.db.models.functions import Length
from django.utils import timezone


def next_document_number(*, model, field: str, prefix: str, year: int | None = None) -> str:
    year = year or timezone.localdate().year
    stem = f"{prefix}-{year}-"

    last = (
        model.objects.filter(**{f"{field}__startswith": stem})
        .order_by(Length(field).desc(), f"-{field}")
        .values_list(field, flat=True)
        .first()
    )

    seq = 0
    if last:
        tail = last[len(stem):]
        if tail.isdigit():
            seq = int(tail)

    return f"{stem}{seq + 1:03d}"
