import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

# Store error codes
UNIQUE_VIOLATION = "unique_violation"
NOT_FOUND = "not_found"
MULTIPLE_ROWS = "multiple_rows"
UNKNOWN_FIELD = "unknown_field"
INVALID_INPUT = "invalid_input"
READ_ONLY = "read_only"
UNKNOWN_COLLECTION = "unknown_collection"
STORAGE_ERROR = "storage_error"
UNKNOWN = "unknown"


class BackofficeError(Exception):
    """Base for every error raised by the back office core."""


class ValidationError(BackofficeError):
    """A draft or patch failed boundary validation; no remote call was made."""

    def __init__(self, message, field=None):
        super().__init__(message)
        self.message = message
        self.field = field


class StoreError(BackofficeError):
    """The remote store reported a failure.

    ``code`` is machine-readable so callers can tell a uniqueness conflict
    apart from a missing row or a generic failure.
    """

    def __init__(self, message, code=UNKNOWN):
        super().__init__(message)
        self.message = message
        self.code = code


class ConflictError(StoreError):
    def __init__(self, message, code=UNIQUE_VIOLATION):
        super().__init__(message, code)


class NotFoundError(StoreError):
    def __init__(self, message, code=NOT_FOUND):
        super().__init__(message, code)


class AssetError(StoreError):
    def __init__(self, message, code=STORAGE_ERROR):
        super().__init__(message, code)


class AlreadySubscribedError(ConflictError):
    pass


def classify(err, label):
    """Re-raise-ready translation of a raw store error for entity ``label``."""
    if isinstance(err, (ConflictError, NotFoundError, AssetError)):
        return err
    if err.code == UNIQUE_VIOLATION:
        return ConflictError(f"{label} already exists: {err.message}")
    if err.code == NOT_FOUND:
        return NotFoundError(f"{label} not found")
    return StoreError(f"{label}: {err.message}", err.code)


_STATUS_BY_TYPE = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (AssetError, status.HTTP_400_BAD_REQUEST),
    (StoreError, status.HTTP_502_BAD_GATEWAY),
)


def backoffice_exception_handler(exc, context):
    """DRF ``EXCEPTION_HANDLER`` that maps the core taxonomy onto HTTP."""
    response = exception_handler(exc, context)
    if response is not None or not isinstance(exc, BackofficeError):
        return response

    view = context.get("view")
    view_name = type(view).__name__ if view is not None else "unknown view"
    for exc_type, http_status in _STATUS_BY_TYPE:
        if isinstance(exc, exc_type):
            if http_status >= 500:
                logger.exception("%s failed", view_name)
            else:
                logger.warning("%s rejected: %s", view_name, exc)
            body = {"error": str(exc)}
            code = getattr(exc, "code", None)
            if code:
                body["code"] = code
            if getattr(exc, "field", None):
                body["field"] = exc.field
            return Response(body, status=http_status)

    logger.exception("%s failed", view_name)
    return Response({"error": str(exc)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
