# Overview: Typed error taxonomy shared by services and routes.

"""
Every rejected operation raises one of these. Routes render them as

    {"error": <message>, "kind": <kind>, "details": {...}}

with the class's HTTP status, so clients can tell a short-stock rejection
from a duplicate invoice or a database outage without parsing messages.

StorageFault is the only retryable kind: the caller should back off and
resubmit. Everything else is a client-side problem and must not be retried
unchanged.
"""

from __future__ import annotations

from flask import jsonify


class PosError(Exception):
    """Base class for all domain errors."""

    kind = "error"
    status_code = 400
    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "kind": self.kind}
        if self.details:
            payload["details"] = self.details
        if self.retryable:
            payload["retryable"] = True
        return payload


class ValidationError(PosError, ValueError):
    """400-level input problem."""

    kind = "validation_error"
    status_code = 400


class AuthenticationError(PosError):
    kind = "authentication_error"
    status_code = 401


class AuthorizationError(PosError):
    kind = "authorization_error"
    status_code = 403


class NotFoundError(PosError):
    kind = "not_found"
    status_code = 404


class ItemNotFoundError(NotFoundError):
    """A sale line references an inventory item that does not exist."""

    kind = "item_not_found"


class ConflictError(PosError):
    """409-level business rule conflict (e.g., duplicate username)."""

    kind = "conflict"
    status_code = 409


class DuplicateInvoiceError(ConflictError):
    kind = "duplicate_invoice"


class InsufficientStockError(ConflictError):
    kind = "insufficient_stock"


class StorageFault(PosError):
    """Database unavailable or persistently locked. Safe to retry."""

    kind = "storage_fault"
    status_code = 503
    retryable = True


def error_response(exc: PosError):
    """(body, status) tuple for a Flask view."""
    return jsonify(exc.to_dict()), exc.status_code
