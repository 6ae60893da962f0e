"""Domain error types and the structured result returned by public operations.

Services raise these internally and convert them into an ``OperationResult``
at their public boundary. Anything that is not an ``HRError`` (driver or
connection failures, programming errors) propagates to the caller unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class HRError(Exception):
    """Base class for business-rule failures."""

    code = "hr_error"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}
        super().__init__(message)


class ValidationError(HRError):
    """Input failed validation (bad month, missing settings, empty chain)."""

    code = "validation_error"


class StateError(HRError):
    """Operation is not allowed in the entity's current state."""

    code = "invalid_state"


class ConcurrencyConflictError(StateError):
    """A concurrent writer holds the entity or changed it underneath us."""

    code = "concurrency_conflict"


class AuthorizationError(HRError):
    """Actor is not allowed to perform the operation."""

    code = "not_authorized"


class NotFoundError(HRError):
    """Referenced entity does not exist."""

    code = "not_found"


@dataclass
class OperationResult(Generic[T]):
    """Outcome of a public service operation."""

    ok: bool
    value: T | None = None
    error: HRError | None = None
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def success(cls, value: T, warnings: list[str] | None = None) -> OperationResult[T]:
        return cls(ok=True, value=value, warnings=warnings or [])

    @classmethod
    def failure(cls, error: HRError) -> OperationResult[T]:
        return cls(ok=False, error=error)

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error else None

    @property
    def message(self) -> str | None:
        return self.error.message if self.error else None
