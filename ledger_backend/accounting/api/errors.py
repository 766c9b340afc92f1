# accounting/api/errors.py

"""
Maps accounting service error categories onto HTTP responses.

- validation  -> 400
- not_found   -> 404
- state       -> 409
- consistency -> 409
- concurrency -> 503 (retryable)
"""

from rest_framework import status
from rest_framework.response import Response

from accounting.services.exceptions import (
    CONCURRENCY,
    CONSISTENCY,
    NOT_FOUND,
    STATE,
    VALIDATION,
    AccountingServiceError,
)

STATUS_BY_CATEGORY = {
    VALIDATION: status.HTTP_400_BAD_REQUEST,
    NOT_FOUND: status.HTTP_404_NOT_FOUND,
    STATE: status.HTTP_409_CONFLICT,
    CONSISTENCY: status.HTTP_409_CONFLICT,
    CONCURRENCY: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(exc: AccountingServiceError) -> Response:
    return Response(
        {
            "detail": str(exc),
            "error": type(exc).__name__,
            "category": exc.category,
            "retryable": exc.retryable,
        },
        status=STATUS_BY_CATEGORY.get(exc.category, status.HTTP_400_BAD_REQUEST),
    )
