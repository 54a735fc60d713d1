"""
Uniform outcome type for every mutating settings and event operation.

Business-rule failures travel back to the caller as a failed OperationResult
carrying a short human-readable message; only environmental failures (see
StorageError) are raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class OperationStatus(Enum):
    """Outcome of an operation."""

    SUCCESS = "success"
    INVALID_STATE = "invalid_state"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class OperationResult(Generic[T]):
    """Result of an operation: a status, an optional message and a value on success."""

    status: OperationStatus
    message: Optional[str] = None
    value: Optional[T] = None

    @property
    def is_success(self) -> bool:
        return self.status is OperationStatus.SUCCESS

    @classmethod
    def success(cls, value: Optional[T] = None) -> "OperationResult[T]":
        return cls(OperationStatus.SUCCESS, None, value)

    @classmethod
    def fail(cls, status: OperationStatus, message: str) -> "OperationResult[T]":
        if status is OperationStatus.SUCCESS:
            raise ValueError("A failed result needs a failure status")
        return cls(status, message)
