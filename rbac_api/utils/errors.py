"""Domain errors and the standardized error payload."""
from typing import Any


def error_response(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return a standardized error payload."""

    payload: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        payload["error"]["details"] = details
    return payload


class DomainError(Exception):
    """Base class for failures raised by the service layer.

    Routers never catch these; the exception handlers in ``rbac_api.main``
    translate them into HTTP responses using ``status_code``.
    """

    status_code = 500
    default_code = "DOMAIN_ERROR"

    def __init__(self, message: str, *, code: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        return error_response(self.code, self.message, self.details)


class ValidationError(DomainError):
    status_code = 400
    default_code = "VALIDATION_ERROR"


class NotFoundError(DomainError):
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(DomainError):
    status_code = 409
    default_code = "CONFLICT"


class DependencyConflictError(DomainError):
    """A delete was refused because other rows still reference the target."""

    status_code = 400
    default_code = "DEPENDENCY_CONFLICT"


__all__ = [
    "ConflictError",
    "DependencyConflictError",
    "DomainError",
    "NotFoundError",
    "ValidationError",
    "error_response",
]
