"""
Domain error taxonomy.

Every business failure carries a stable machine-checkable `code`, the HTTP status
used by the JSON binding, a human-readable message and structured details the
client can use to self-correct. They are expected outcomes, not faults.
"""
from typing import Any, Optional

from fastapi import status


class DomainError(Exception):
    code = "domain_error"
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class NotFound(DomainError):
    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND


class Unauthorized(DomainError):
    code = "unauthorized"
    http_status = status.HTTP_403_FORBIDDEN


class Forbidden(DomainError):
    code = "forbidden"
    http_status = status.HTTP_403_FORBIDDEN


class InvalidTransition(DomainError):
    code = "invalid_transition"
    http_status = status.HTTP_409_CONFLICT

    def __init__(self, current: str, requested: str, role: str, allowed: list[str]):
        super().__init__(
            f"Cannot move booking from '{current}' to '{requested}' as {role}",
            {
                "current_status": current,
                "requested_status": requested,
                "role": role,
                "allowed_transitions": allowed,
            },
        )


class InvalidState(DomainError):
    code = "invalid_state"
    http_status = status.HTTP_409_CONFLICT


class DuplicatePayment(DomainError):
    code = "duplicate_payment"
    http_status = status.HTTP_409_CONFLICT


class DuplicateReview(DomainError):
    code = "duplicate_review"
    http_status = status.HTTP_409_CONFLICT


class InvalidMethod(DomainError):
    code = "invalid_method"
    http_status = 422


class MissingReference(DomainError):
    code = "missing_reference"
    http_status = 422


class InvalidRating(DomainError):
    code = "invalid_rating"
    http_status = 422


class ValidationError(DomainError):
    code = "validation_error"
    http_status = 422


class StorageError(DomainError):
    """Store fault not attributable to a business rule. Never retried here."""

    code = "storage_error"
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
