"""Domain error taxonomy and the result type returned by workflow calls.

The user directory raises :class:`DomainError` subclasses.  Services catch
them and hand back a :class:`Failure` value instead, so expected outcomes
(duplicate email, bad credentials, missing user) never travel as exceptions
through the workflow layer.  The HTTP layer converts a ``Failure`` back into
a ``DomainError`` that the registered exception handler renders.
"""

import enum
from dataclasses import dataclass
from typing import TypeVar


class ErrorKind(enum.StrEnum):
    """Machine-readable error categories."""

    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION_FAILED = "validation_failed"
    INTERNAL = "internal"

    @property
    def status_code(self) -> int:
        """HTTP status code for this error kind."""
        return _STATUS_CODES[self]


_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.CONFLICT: 409,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION_FAILED: 400,
    ErrorKind.INTERNAL: 500,
}


class DomainError(Exception):
    """Base class for typed domain errors."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, *, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    @property
    def status_code(self) -> int:
        return self.kind.status_code


class ConflictError(DomainError):
    """Resource already exists (409)."""

    kind = ErrorKind.CONFLICT


class UnauthorizedError(DomainError):
    """Missing or invalid credentials (401)."""

    kind = ErrorKind.UNAUTHORIZED


class ForbiddenError(DomainError):
    """Authenticated but not allowed (403)."""

    kind = ErrorKind.FORBIDDEN


class NotFoundError(DomainError):
    """Entity absent (404)."""

    kind = ErrorKind.NOT_FOUND


class ValidationFailedError(DomainError):
    """Malformed or rejected input (400)."""

    kind = ErrorKind.VALIDATION_FAILED


@dataclass(frozen=True)
class Failure:
    """Expected, typed failure returned by a workflow call."""

    kind: ErrorKind
    message: str

    @classmethod
    def from_error(cls, error: DomainError) -> "Failure":
        return cls(kind=error.kind, message=error.message)

    def to_error(self) -> DomainError:
        return DomainError(self.message, kind=self.kind)


T = TypeVar("T")

Result = T | Failure


def unwrap(result: "Result[T]") -> T:
    """Return the success value or raise the failure as a :class:`DomainError`."""
    if isinstance(result, Failure):
        raise result.to_error()
    return result
