"""
Error types and helpers for sanitizing user-facing messages and logging.

Provides consistent error handling across the application:
- A small exception hierarchy that maps onto HTTP status codes
- Sanitizes error messages to prevent information leakage
- Logs detailed error information for debugging
"""

from __future__ import annotations
from typing import Any, Dict, Optional
from flask import current_app, has_app_context
import logging

logger = logging.getLogger(__name__)

# User-friendly generic error messages
GENERIC_MESSAGES = {
    "database": "We're experiencing technical difficulties. Please try again.",
    "validation": "The information provided is invalid. Please check and try again.",
    "permission": "You don't have permission to perform this action.",
    "not_found": "The requested item was not found.",
    "conflict": "This item can no longer be changed.",
    "network": "Network error occurred. Please check your connection and try again.",
}


class PlantCareError(Exception):
    """
    Base exception for plant care errors.

    `message` is logged server-side; `detail` carries optional structured
    context for logs. `http_status` is used by the blueprint error handlers.
    """

    http_status: int = 500
    error_type: str = "database"

    def __init__(self, message: str = "", *, detail: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class ValidationError(PlantCareError):
    """Malformed input on a create/update path (HTTP 400)."""

    http_status = 400
    error_type = "validation"

    def __init__(self, message: str = "", *, field: Optional[str] = None,
                 detail: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, detail=detail)
        self.field = field


class NotFoundError(PlantCareError):
    """Record is absent or not owned by the caller (HTTP 404)."""

    http_status = 404
    error_type = "not_found"


class ConflictError(PlantCareError):
    """Requested state transition is not allowed (HTTP 409)."""

    http_status = 409
    error_type = "conflict"


class PersistenceError(PlantCareError):
    """Store read/write failed (HTTP 500). Not retried."""

    http_status = 500
    error_type = "database"


class UpstreamUnavailable(PlantCareError):
    """Weather provider failed or timed out. Never shown to end users."""

    http_status = 502
    error_type = "network"


def public_message(error: PlantCareError) -> str:
    """
    Message safe to return to the client.

    Client errors (4xx) describe the caller's mistake, so their own message is
    returned. Server errors always collapse to a generic message.
    """
    if error.http_status < 500 and error.message:
        return error.message
    return GENERIC_MESSAGES.get(error.error_type, GENERIC_MESSAGES["database"])


def sanitize_error(
    error: Exception,
    error_type: str = "database",
    log_prefix: str = ""
) -> str:
    """
    Sanitize error message for user display and log full details.

    Args:
        error: The exception that occurred
        error_type: Type of error (database, validation, permission, not_found, conflict, network)
        log_prefix: Optional prefix for log message context

    Returns:
        User-friendly error message
    """
    error_message = str(error)
    log_message = f"{log_prefix}: {error_message}" if log_prefix else error_message
    log = current_app.logger if has_app_context() else logger

    if error_type in ["validation", "not_found", "conflict"]:
        # Expected errors (user mistakes), log as info
        log.info(f"Expected error - {log_message}")
    else:
        log.error(f"Unexpected error - {log_message}", exc_info=True)

    return GENERIC_MESSAGES.get(error_type, GENERIC_MESSAGES["database"])


def log_warning(message: str, **context) -> None:
    """
    Log a warning with optional context.

    Examples:
        >>> log_warning("Weather unavailable", user_id="123", city="Lisbon")
    """
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        message = f"{message} | Context: {context_str}"

    (current_app.logger if has_app_context() else logger).warning(message)


def log_info(message: str, **context) -> None:
    """Log an info message with optional context."""
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        message = f"{message} | Context: {context_str}"

    (current_app.logger if has_app_context() else logger).info(message)
