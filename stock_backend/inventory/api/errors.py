# inventory/api/errors.py

"""
ENGINE ERROR -> HTTP

    ValidationError / InsufficientStockError / StateTransitionError  400
    PermissionDeniedError                                            403
    NotFoundError                                                    404
    PeriodConflictError                                              409
    PartialCloseError                                                500

Body is always the error's to_dict(): {"code", "detail", ...}.
"""

from rest_framework import status
from rest_framework.response import Response

from inventory.services.exceptions import (
    EngineError,
    NotFoundError,
    PartialCloseError,
    PeriodConflictError,
    PermissionDeniedError,
)

STATUS_BY_ERROR = (
    (PartialCloseError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PeriodConflictError, status.HTTP_409_CONFLICT),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
)


def status_for(exc: EngineError) -> int:
    for error_class, code in STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            return code
    return status.HTTP_400_BAD_REQUEST


def engine_error_response(exc: EngineError) -> Response:
    return Response(exc.to_dict(), status=status_for(exc))


def get_or_404(model, pk, *, label: str | None = None, **filters):
    """
    Fetch by primary key or raise NotFoundError (rendered as 404).
    """
    obj = model.objects.filter(pk=pk, **filters).first()
    if obj is None:
        raise NotFoundError(f"{label or model.__name__} not found")
    return obj
