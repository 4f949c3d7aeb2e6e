# Overview: Domain error taxonomy shared by services and routes.

"""
Every error a workflow can raise derives from CylinderHubError.

Routes translate these into JSON responses using ``status_code`` and
``to_dict()``; anything that is not a CylinderHubError is an unexpected
failure and becomes a generic 500.
"""

from __future__ import annotations


class CylinderHubError(Exception):
    """Base class for domain errors (carries a message and structured details)."""
    status_code = 400
    code = "ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class ValidationError(CylinderHubError):
    """400-level input problem. details may carry a per-field breakdown."""
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: dict | None = None, *, field: str | None = None):
        if field is not None:
            details = {**(details or {}), "field": field}
        super().__init__(message, details)


class NotFoundError(CylinderHubError):
    status_code = 404
    code = "NOT_FOUND"


class DuplicateKeyError(CylinderHubError):
    """Unique key collision (serial number, QR code, invoice or license number)."""
    status_code = 409
    code = "DUPLICATE_KEY"


class InvalidTransitionError(CylinderHubError):
    """A requested state change is not an edge of the lifecycle table."""
    status_code = 409
    code = "INVALID_TRANSITION"

    def __init__(self, current: str | None, requested: str, message: str | None = None, details: dict | None = None):
        self.current = current
        self.requested = requested
        merged = {"current_status": current, "requested_status": requested}
        merged.update(details or {})
        super().__init__(
            message or f"Cannot transition from {current or 'NONE'} to {requested}",
            merged,
        )


class PreconditionFailedError(CylinderHubError):
    """Business precondition not met (truck busy, signature missing, reason missing...)."""
    status_code = 412
    code = "PRECONDITION_FAILED"


class CapacityExceededError(CylinderHubError):
    status_code = 422
    code = "CAPACITY_EXCEEDED"


class UnauthorizedError(CylinderHubError):
    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(CylinderHubError):
    """Authenticated caller whose role lacks the permission."""
    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, message: str, details: dict | None = None, *, required_permission: str | None = None):
        super().__init__(message, details)
        self.required_permission = required_permission

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.required_permission:
            data["required_permission"] = self.required_permission
        return data


class StoreError(CylinderHubError):
    """Underlying transaction or connectivity failure. Safe for the caller to retry."""
    status_code = 503
    code = "STORE_ERROR"

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["retryable"] = True
        return data
