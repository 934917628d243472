"""Error taxonomy and tagged results used across the scoring core."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ScorecardError(Exception):
    """Base class for errors raised by the scoring core."""


class ValidationError(ScorecardError, ValueError):
    """Malformed input or a request that breaks a business rule."""

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class NotFoundError(ScorecardError, LookupError):
    """A referenced tournament, player or identity does not exist."""


class AuthorizationError(ScorecardError):
    """Credential mismatch. Raised by transport callers, never by the core."""


class StorageError(ScorecardError):
    """The record store is unavailable."""


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: ScorecardError

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return str(self.error)


Result = Union[Ok[T], Err]
