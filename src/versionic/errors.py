"""
Exception hierarchy for versionic.

Resolution and migration failures are raised straight to the caller.
Validation failures are returned as ``False`` from ``save``-style methods and
raised from their ``*_or_raise`` counterparts.
"""

from __future__ import annotations

from typing import Any


class VersioningError(Exception):
    """Base class for every error raised by versionic."""


class ArgumentError(VersioningError, ValueError):
    """Missing or malformed selector, number or time."""


class VersionNotFoundError(VersioningError):
    """The requested version is neither stored nor the current one."""


class MigrationError(VersioningError):
    """``migrate`` has no target or targets the current version."""


class RecordNotFoundError(VersioningError, KeyError):
    """No committed row exists for the requested record."""


class ValidationFailed(VersioningError):
    """A record or snapshot could not be persisted."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


class RecordValidationError(ValidationFailed):
    def __init__(self, record: Any):
        errors = list(getattr(record, "errors", []) or [])
        super().__init__(
            f"{record.__class__.__name__} {record.id} could not be saved", errors
        )
        self.record = record


class SnapshotValidationError(ValidationFailed):
    def __init__(self, snapshot: Any):
        errors = list(getattr(snapshot, "errors", []) or [])
        super().__init__(
            f"snapshot {snapshot.number} of {snapshot.owner_kind} "
            f"{snapshot.owner_id} could not be saved",
            errors,
        )
        self.snapshot = snapshot


class DuplicateSnapshotNumber(VersioningError):
    """The (owner id, owner kind, number) triple is already taken."""
