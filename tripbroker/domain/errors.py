"""Typed failures raised by the assignment engine.

Every error carries an HTTP ``status_code`` and a short ``code`` so the API
layer can render it with a single exception handler.  ``extra`` holds any
structured payload the caller may need (e.g. the id of a conflicting request).
"""

from __future__ import annotations

from typing import Any, Optional


class BrokerError(Exception):
    status_code = 400
    code = "broker_error"

    def __init__(self, message: str, extra: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}


class NotFound(BrokerError):
    """Raised when a trip, driver, company or request does not exist."""

    status_code = 404
    code = "not_found"


class Unauthorized(BrokerError):
    """Raised when the actor is not a party allowed to perform the operation."""

    status_code = 403
    code = "unauthorized"


class InvalidOperation(Unauthorized):
    """Raised when a party attempts a transition reserved for its counterparty."""

    status_code = 400
    code = "invalid_operation"


class InvalidState(BrokerError):
    """Raised when the entity's current status does not allow the operation."""

    status_code = 409
    code = "invalid_state"


class Conflict(BrokerError):
    """Raised on scheduling overlaps and duplicate requests or visa numbers."""

    status_code = 409
    code = "conflict"


class ValidationError(BrokerError):
    status_code = 422
    code = "validation_error"
