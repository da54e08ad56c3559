"""Error taxonomy and result type for the Inkasso engine.

Validation failures are returned to the caller as typed results instead of
being raised through the engine, so a rejected transition can never leave a
half-updated case behind.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class InkassoError(Exception):
    """Base exception for all Inkasso engine errors."""

    code = "inkasso_error"

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, object]:
        return {"error": self.code, "detail": self.message, **self.context}


class InvalidTransitionError(InkassoError):
    """Status pair not in the process graph, target equals source, or source is terminal."""

    code = "invalid_transition"


class UnauthorizedRoleError(InkassoError):
    """Actor role may not perform the requested action."""

    code = "unauthorized_role"


class InvalidFinancialInputError(InkassoError):
    """Negative amount or inconsistent interest window."""

    code = "invalid_financial_input"


class InvalidInquiryAnswerError(InkassoError):
    """Inquiry answer is empty, too short or too long."""

    code = "invalid_inquiry_answer"


class ConcurrencyConflictError(InkassoError):
    """Stored version differs from the version the caller loaded."""

    code = "concurrency_conflict"


class NotFoundError(InkassoError):
    """Referenced case or inquiry does not exist."""

    code = "not_found"


# HTTP status hints for the API layer; conflicts ask the caller to reload and retry
ERROR_HTTP_STATUS: dict[type[InkassoError], int] = {
    InvalidTransitionError: 409,
    UnauthorizedRoleError: 403,
    InvalidFinancialInputError: 422,
    InvalidInquiryAnswerError: 422,
    ConcurrencyConflictError: 409,
    NotFoundError: 404,
}


def http_status_for(error: InkassoError) -> int:
    """Map an engine error to the 4xx status the API layer should answer with."""
    for error_type, status in ERROR_HTTP_STATUS.items():
        if isinstance(error, error_type):
            return status
    return 400


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an engine call: either a value or a typed error."""

    value: T | None = None
    error: InkassoError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: InkassoError) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or raise the carried error.

        Raises:
            InkassoError: If the result is a failure
        """
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
