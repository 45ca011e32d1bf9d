"""
Domain errors - Closed error taxonomy shared by every request path.

A single tagged exception type carries the error kind plus a structured
payload. The kind fixes the wire status and machine-readable error code;
nothing outside this table decides a status code from a domain error.

    kind                 status  errorCode
    NOT_FOUND            404     RESOURCE_NOT_FOUND
    VALIDATION           400     VALIDATION_ERROR
    UNAUTHORIZED         401     UNAUTHORIZED
    FORBIDDEN            403     FORBIDDEN
    CONFLICT             409     CONFLICT
    RATE_LIMIT           429     RATE_LIMIT_EXCEEDED
    SERVICE_UNAVAILABLE  503     SERVICE_UNAVAILABLE
    INTERNAL             500     INTERNAL_ERROR
"""

from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any


class ErrorKind(Enum):
    """Error kinds with their (status, errorCode, error name, default message)."""

    NOT_FOUND = (404, "RESOURCE_NOT_FOUND", "NotFoundError", "Resource not found")
    VALIDATION = (400, "VALIDATION_ERROR", "ValidationError", "Validation failed")
    UNAUTHORIZED = (401, "UNAUTHORIZED", "UnauthorizedError", "Unauthorized")
    FORBIDDEN = (403, "FORBIDDEN", "ForbiddenError", "Forbidden")
    CONFLICT = (409, "CONFLICT", "ConflictError", "Conflict")
    RATE_LIMIT = (429, "RATE_LIMIT_EXCEEDED", "RateLimitError", "Too many requests")
    SERVICE_UNAVAILABLE = (
        503,
        "SERVICE_UNAVAILABLE",
        "ServiceUnavailableError",
        "Service unavailable",
    )
    INTERNAL = (500, "INTERNAL_ERROR", "InternalError", "Internal server error")

    def __init__(self, status_code: int, error_code: str, error_name: str, default_message: str):
        self.status_code = status_code
        self.error_code = error_code
        self.error_name = error_name
        self.default_message = default_message

    @classmethod
    def for_status(cls, status_code: int) -> "ErrorKind | None":
        """Return the kind mapped to an HTTP status, if any."""
        for kind in cls:
            if kind.status_code == status_code:
                return kind
        return None


def _freeze(value: Any) -> Any:
    """Return a read-only view of a details payload."""
    if isinstance(value, dict):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    """Convert a frozen details payload back into JSON-compatible containers."""
    if isinstance(value, MappingProxyType):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


class DomainError(Exception):
    """
    Structured business-rule violation.

    Attributes are read-only once constructed. ``cause`` is kept for
    diagnostics and is never serialized beyond a one-line summary.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str | None = None,
        details: Any = None,
        cause: BaseException | None = None,
    ) -> None:
        message = message or kind.default_message
        super().__init__(message)
        self._kind = kind
        self._message = message
        self._details = _freeze(details if details is not None else {})
        self._timestamp = datetime.now(timezone.utc)
        self._cause = cause

    @property
    def kind(self) -> ErrorKind:
        return self._kind

    @property
    def message(self) -> str:
        return self._message

    @property
    def details(self) -> Any:
        return self._details

    @property
    def timestamp(self) -> datetime:
        return self._timestamp

    @property
    def cause(self) -> BaseException | None:
        return self._cause

    @property
    def status_code(self) -> int:
        return self._kind.status_code

    @property
    def error_code(self) -> str:
        return self._kind.error_code

    def cause_summary(self) -> str | None:
        """One-line description of the wrapped cause, if any."""
        if self._cause is None:
            return None
        return f"{type(self._cause).__name__}: {self._cause}"

    def to_dict(self) -> dict[str, Any]:
        """Canonical error body fields (the boundary adds ``path``)."""
        return {
            "statusCode": self.status_code,
            "error": self._kind.error_name,
            "errorCode": self.error_code,
            "message": self._message,
            "details": _thaw(self._details),
            "timestamp": self._timestamp.isoformat(),
        }

    def __repr__(self) -> str:
        return f"DomainError({self._kind.name}, {self._message!r})"

    # Factories, one per kind

    @classmethod
    def not_found(cls, message: str | None = None, details: Any = None) -> "DomainError":
        return cls(ErrorKind.NOT_FOUND, message, details)

    @classmethod
    def validation(cls, message: str | None = None, details: Any = None) -> "DomainError":
        return cls(ErrorKind.VALIDATION, message, details)

    @classmethod
    def unauthorized(
        cls, message: str | None = None, details: Any = None, cause: BaseException | None = None
    ) -> "DomainError":
        return cls(ErrorKind.UNAUTHORIZED, message, details, cause)

    @classmethod
    def forbidden(cls, message: str | None = None, details: Any = None) -> "DomainError":
        return cls(ErrorKind.FORBIDDEN, message, details)

    @classmethod
    def conflict(
        cls, message: str | None = None, details: Any = None, cause: BaseException | None = None
    ) -> "DomainError":
        return cls(ErrorKind.CONFLICT, message, details, cause)

    @classmethod
    def rate_limit(cls, message: str | None = None, details: Any = None) -> "DomainError":
        return cls(ErrorKind.RATE_LIMIT, message, details)

    @classmethod
    def service_unavailable(
        cls, message: str | None = None, details: Any = None, cause: BaseException | None = None
    ) -> "DomainError":
        return cls(ErrorKind.SERVICE_UNAVAILABLE, message, details, cause)

    @classmethod
    def internal(
        cls, message: str | None = None, details: Any = None, cause: BaseException | None = None
    ) -> "DomainError":
        return cls(ErrorKind.INTERNAL, message, details, cause)
