"""Structured error taxonomy for the check-in API.

Provides a canonical set of error codes that clients can switch on, ensuring
consistent error handling across all endpoints and middleware layers.

Usage::

    from checkin.api.errors import ErrorCode, error_response

    return JSONResponse(
        status_code=409,
        content=error_response(ErrorCode.NO_DATA, "No hay datos para exportar"),
    )
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Canonical error codes for API responses.

    Client applications should switch on ``error.code`` (not HTTP status)
    to differentiate error handling paths.
    """

    VALIDATION_ERROR = "validation_error"
    INVALID_CONFIG = "invalid_config"
    NO_DATA = "no_data"
    STORE_UNAVAILABLE = "store_unavailable"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    INTERNAL_ERROR = "internal_error"


def error_response(code: ErrorCode, message: str) -> dict:
    """Build a structured error response body.

    Args:
        code: One of the ``ErrorCode`` enum values.
        message: Human-readable error description.

    Returns:
        Dict with ``error`` object containing ``code`` and ``message``.
    """
    return {"error": {"code": code.value, "message": message}}
