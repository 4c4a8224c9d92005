# Overview: Error taxonomy shared by the access layer and the time-off workflow.

"""
Workflow errors and lifecycle results.

Every failure carries a stable ``kind`` and a stable, human-readable default
message. Services raise these exceptions; the request lifecycle interface
converts them into a ``Result`` so callers branch on ``kind`` instead of
catching exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar


NOT_FOUND = "NOT_FOUND"
UNAUTHORIZED = "UNAUTHORIZED"
FORBIDDEN = "FORBIDDEN"
INVALID_STATE = "INVALID_STATE"
OVERLAPPING_REQUEST = "OVERLAPPING_REQUEST"
CONFLICT = "CONFLICT"
VALIDATION_ERROR = "VALIDATION_ERROR"
STORAGE_ERROR = "STORAGE_ERROR"


class WorkflowError(Exception):
    """Base class for every expected access or workflow failure."""
    kind = "ERROR"
    default_message = "The operation could not be completed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(WorkflowError):
    kind = NOT_FOUND
    default_message = "Time-off request not found"


class UnauthorizedError(WorkflowError):
    kind = UNAUTHORIZED
    default_message = "Authentication required"


class ForbiddenError(WorkflowError):
    kind = FORBIDDEN
    default_message = "You don't have permission to perform this action"


class InvalidStateError(WorkflowError):
    kind = INVALID_STATE
    default_message = "This request can no longer be changed"


class OverlappingRequestError(WorkflowError):
    kind = OVERLAPPING_REQUEST
    default_message = "You already have a time-off request for overlapping dates"

    def __init__(self, existing_status: str | None = None, message: str | None = None):
        self.existing_status = existing_status
        if message is None and existing_status:
            status = existing_status.lower()
            article = "an" if status[:1] in "aeiou" else "a"
            message = (
                f"You already have {article} {status} time-off request "
                "for overlapping dates"
            )
        super().__init__(message)


class ConflictError(WorkflowError):
    kind = CONFLICT
    default_message = (
        "This request was modified by another user. Please refresh and try again."
    )


class ValidationError(WorkflowError):
    kind = VALIDATION_ERROR
    default_message = "Invalid fields"


class StorageError(WorkflowError):
    kind = STORAGE_ERROR
    default_message = "A storage error occurred. Please try again."


T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Discriminated lifecycle result.

    ok=True carries ``value``; ok=False carries ``kind`` and ``message``.
    """
    ok: bool
    value: Optional[T] = None
    kind: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: str, message: str) -> "Result[Any]":
        return cls(ok=False, kind=kind, message=message)

    @classmethod
    def from_error(cls, error: WorkflowError) -> "Result[Any]":
        return cls.failure(error.kind, error.message)

    def to_dict(self) -> dict:
        if self.ok:
            value = self.value.to_dict() if hasattr(self.value, "to_dict") else self.value
            return {"ok": True, "value": value}
        return {"ok": False, "kind": self.kind, "message": self.message}
