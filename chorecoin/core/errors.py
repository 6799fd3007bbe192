"""Error types and result classification for core operations.

Services raise the typed errors below. The operations facade converts them into
``OperationResult`` values so the presentation layer can branch on a success flag
instead of catching exceptions. Anything else (store unreachable, timeouts) is an
infrastructure failure and keeps propagating.
"""

from enum import Enum
from typing import Any

import pydantic
from pydantic import BaseModel


class ChorecoinError(Exception):
    """Base class for expected business-rule failures."""

    code: str = "ERR_UNKNOWN"


class ValidationError(ChorecoinError):
    """Malformed input: non-integer points, unparseable date, empty name."""

    code = "ERR_VALIDATION"


class NotFoundError(ChorecoinError):
    """A referenced group, member or task does not exist."""

    code = "ERR_NOT_FOUND"


class InvalidStateError(ChorecoinError):
    """The operation is not permitted in the task's current status."""

    code = "ERR_INVALID_STATE"


class ConflictError(ChorecoinError):
    """A conditional write found the record changed since it was read."""

    code = "ERR_CONFLICT"


class PermissionDeniedError(ChorecoinError):
    """An admin-only operation was attempted without admin rights."""

    code = "ERR_PERMISSION_DENIED"


def validation_error_from(exc: pydantic.ValidationError) -> ValidationError:
    """Flatten a pydantic validation failure into a single readable ValidationError."""
    reasons = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()))
        reason = error["msg"].removeprefix("Value error, ")
        reasons.append(f"{field}: {reason}" if field else reason)
    return ValidationError("; ".join(reasons) or "Invalid input")


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_VALIDATION = ValidationError.code
    ERR_NOT_FOUND = NotFoundError.code
    ERR_INVALID_STATE = InvalidStateError.code
    ERR_CONFLICT = ConflictError.code
    ERR_PERMISSION_DENIED = PermissionDeniedError.code
    ERR_UNKNOWN = ChorecoinError.code


_SEVERITY_BY_CODE: dict[str, ErrorSeverity] = {
    ErrorCode.ERR_VALIDATION: ErrorSeverity.LOW,
    ErrorCode.ERR_NOT_FOUND: ErrorSeverity.LOW,
    ErrorCode.ERR_INVALID_STATE: ErrorSeverity.LOW,
    ErrorCode.ERR_CONFLICT: ErrorSeverity.MEDIUM,
    ErrorCode.ERR_PERMISSION_DENIED: ErrorSeverity.MEDIUM,
}


class OperationResult(BaseModel):
    """Structured outcome of a facade operation."""

    success: bool
    data: Any = None
    error_code: str | None = None
    message: str | None = None
    severity: ErrorSeverity | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        """Build a successful result."""
        return cls(success=True, data=data)


def to_operation_result(exception: ChorecoinError) -> OperationResult:
    """Convert an expected business-rule failure into a failed result.

    Args:
        exception: The error raised by a service

    Returns:
        OperationResult with success=False, the error code and a human-readable reason
    """
    return OperationResult(
        success=False,
        error_code=exception.code,
        message=str(exception) or "Operation failed",
        severity=_SEVERITY_BY_CODE.get(exception.code, ErrorSeverity.MEDIUM),
    )
