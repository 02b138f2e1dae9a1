"""Domain error taxonomy.

Every error carries a machine-readable ``code`` and a human-readable
``message``. They subclass ``ValueError`` so callers that only care about
"the request was rejected" can keep catching ``ValueError``.
"""

from typing import Any

from fastapi import HTTPException


class OrderingError(ValueError):
    """Base class for rejected operations."""

    code = "ordering_error"
    status_code = 400

    def __init__(self, message: str, code: str | None = None, **details: Any):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            data.update(self.details)
        return data


class ValidationFailed(OrderingError):
    """Malformed input, rejected before any side effect."""

    code = "validation_error"
    status_code = 422

    def __init__(self, field: str, message: str):
        super().__init__(message, field=field)
        self.field = field


class NotFound(OrderingError):
    code = "not_found"
    status_code = 404


class BusinessRuleViolation(OrderingError):
    """A well-formed request that the business rules do not allow."""

    status_code = 400


class CouponRejected(BusinessRuleViolation):
    """A coupon failed one of the eligibility checks."""

    def __init__(self, reason: str, message: str, **details: Any):
        super().__init__(message, code=reason, **details)
        self.reason = reason


class ProductUnavailable(BusinessRuleViolation):
    code = "product_unavailable"

    def __init__(self, product_id: Any):
        super().__init__(f"Product {product_id} not available", product_id=str(product_id))
        self.product_id = product_id


class InvalidTransition(BusinessRuleViolation):
    code = "invalid_transition"


class DuplicateCode(BusinessRuleViolation):
    code = "duplicate_code"
    status_code = 409


class ConcurrencyConflict(OrderingError):
    """An optimistic check lost a race; the caller may retry."""

    code = "concurrency_conflict"
    status_code = 409


def http_error(error: OrderingError) -> HTTPException:
    """Translate a domain error into the HTTP error routers raise."""
    return HTTPException(status_code=error.status_code, detail=error.to_dict())
