"""
Error taxonomy of the shipping service.

Client faults (validation, not found, conflict) are raised where they are
detected and reach the caller unchanged. Dependency faults are raised by
the data-access layer after logging the internal detail, so their
``message`` is always generic.
"""

from typing import Any, Dict, Optional


class ShippingError(Exception):
    status_code = 500
    code = "internal_error"
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "code": self.code, "message": self.message}

    def headers(self) -> Optional[Dict[str, str]]:
        return None


class ValidationError(ShippingError):
    status_code = 400
    code = "validation_error"

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"Invalid value for '{field}'")

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["field"] = self.field
        return payload


class Unauthorized(ShippingError):
    status_code = 401
    code = "unauthorized"
    message = "Invalid or missing credentials"


class NotFound(ShippingError):
    status_code = 404
    code = "not_found"
    message = "Resource not found"


class TariffNotFound(NotFound):
    code = "tariff_not_found"
    message = "No tariff found for the requested route"


class ShipmentNotFound(NotFound):
    code = "shipment_not_found"
    message = "Shipment not found"


class Conflict(ShippingError):
    status_code = 409
    code = "conflict"
    message = "Request conflicts with the current state"


class EmailAlreadyRegistered(Conflict):
    code = "email_exists"
    message = "Email already registered"


class InvalidStatusTransition(Conflict):
    code = "invalid_status_transition"

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move shipment from '{current}' to '{requested}'")


class RateLimited(ShippingError):
    status_code = 429
    code = "rate_limited"
    message = "Too many requests, try again later"

    def __init__(self, retry_after: int, limit: int, message: Optional[str] = None):
        self.retry_after = retry_after
        self.limit = limit
        super().__init__(message)

    def headers(self) -> Optional[Dict[str, str]]:
        return {
            "Retry-After": str(self.retry_after),
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(self.retry_after),
        }


class DependencyFailure(ShippingError):
    status_code = 503
    code = "dependency_failure"
    message = "Service temporarily unavailable"


class DependencyTimeout(DependencyFailure):
    status_code = 504
    code = "dependency_timeout"
    message = "Upstream dependency timed out"
