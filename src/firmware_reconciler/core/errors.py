"""
Error taxonomy.

We separate error types so callers can react correctly.
Example:
SettingError is a user facing validation result and never aborts a pass.
PersistenceConflict is transient and the pass may be retried from the same reading.
NotFound and PersistenceUnavailable propagate uninterpreted and no status is written.
"""

from __future__ import annotations

from dataclasses import dataclass


class ReconcilerError(Exception):
    """Base class for all reconciler exceptions."""


@dataclass(frozen=True)
class SettingError(ReconcilerError):
    """
    A single desired setting failed validation.

    These are collected into the Valid condition, not raised.
    message is the operator visible text.
    """

    setting: str
    message: str

    def __str__(self) -> str:
        return self.message


class PersistenceError(ReconcilerError):
    """Raised by an object store when an operation does not land."""


class PersistenceConflict(PersistenceError):
    """Raised when an update is made against a stale resource version."""


class AlreadyExists(PersistenceConflict):
    """Raised when a create loses the race against another writer."""


class NotFound(PersistenceError):
    """Raised when the requested object does not exist."""


class PersistenceUnavailable(PersistenceError):
    """Raised when the store cannot be reached at all."""


class ReadFailed(ReconcilerError):
    """Raised by a firmware reader when the management controller read fails."""
