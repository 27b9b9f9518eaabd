"""Error taxonomy and the best-effort read result type."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class HealthHubError(Exception):
    """Base class for all HealthHub domain errors."""


class BackupValidationError(HealthHubError):
    """A backup document failed structural validation."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Invalid backup: " + "; ".join(self.errors))


class PersistenceError(HealthHubError):
    """The document or blob store failed to read or write."""

    def __init__(self, operation: str, path: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{operation} failed for {path}{detail}")


class RestoreFailure(HealthHubError):
    """A restore sub-step failed; the remaining steps were not applied."""

    def __init__(self, step: str, cause: BaseException):
        self.step = step
        self.cause = cause
        super().__init__(f"Failed to restore backup: {step} step failed: {cause}")


class UploadFailure(HealthHubError):
    """Uploading a backup blob failed. Local backups are unaffected."""


class LayoutError(HealthHubError):
    """An illegal layout operation was requested."""


class NotFoundError(HealthHubError):
    """A referenced record does not exist."""


class ErrorKind(str, Enum):
    DEGRADED = "degraded"
    FATAL = "fatal"


@dataclass
class ReadResult(Generic[T]):
    """Result of a read that may have been substituted with a default.

    ``value`` is always usable. When ``ok`` is false, ``error`` holds the
    swallowed failure. ``kind`` is ``DEGRADED`` when the store could not be
    reached and ``FATAL`` when the stored record could not be read at all.
    """

    value: T
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def degraded(cls, value: T, error: BaseException | str) -> "ReadResult[T]":
        return cls(value=value, error=str(error), kind=ErrorKind.DEGRADED)

    @classmethod
    def fatal(cls, value: T, error: BaseException | str) -> "ReadResult[T]":
        """The stored record itself is unreadable; ``value`` is a stand-in."""
        return cls(value=value, error=str(error), kind=ErrorKind.FATAL)
