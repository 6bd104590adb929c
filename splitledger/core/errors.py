"""Service-layer error taxonomy.

Workflows raise these; the exception handlers in ``splitledger.main`` turn them
into the JSON error envelope with the matching HTTP status code.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional


class ServiceError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def details(self) -> Dict[str, Any]:
        return {}


class ValidationError(ServiceError):
    """Bad input or an illegal state transition."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, field_errors: Dict[str, List[str]], message: str = "Validation failed"):
        super().__init__(message)
        self.field_errors = field_errors

    @classmethod
    def field(cls, field: str, message: str) -> "ValidationError":
        return cls({field: [message]}, message)

    @property
    def details(self) -> Dict[str, Any]:
        return dict(self.field_errors)


class NotFoundError(ServiceError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: Optional[Any] = None):
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(message)
        self.resource = resource
        self.resource_id = str(resource_id) if resource_id is not None else None

    @property
    def details(self) -> Dict[str, Any]:
        return {"resource": self.resource, "id": self.resource_id}


class ForbiddenError(ServiceError):
    code = "FORBIDDEN"
    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class ServerError(ServiceError):
    # The message is for logs only; clients get a generic one.
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(message)


class UnauthorizedError(ServiceError):
    code = "UNAUTHORIZED"
    status_code = 401

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class RateLimitedError(ServiceError):
    code = "RATE_LIMITED"
    status_code = 429

    def __init__(self, retry_after: int, message: str = "Too many requests"):
        super().__init__(message)
        self.retry_after = retry_after

    @property
    def details(self) -> Dict[str, Any]:
        return {"retry_after": self.retry_after}
