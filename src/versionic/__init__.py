"""
Public surface for versionic.
Importing this module does **not** touch the database; call
`versionic.init_versionic(engine)` during application start-up.
"""

from .bootstrap import init_from_env, init_versionic
from .core.options import VersioningOptions
from .core.record import Record
from .core.resolver import Selector
from .core.snapshot import Snapshot
from .errors import (
    ArgumentError,
    MigrationError,
    RecordNotFoundError,
    RecordValidationError,
    SnapshotValidationError,
    ValidationFailed,
    VersioningError,
    VersionNotFoundError,
)
from .events import on

__all__ = [
    "ArgumentError",
    "MigrationError",
    "Record",
    "RecordNotFoundError",
    "RecordValidationError",
    "Selector",
    "Snapshot",
    "SnapshotValidationError",
    "ValidationFailed",
    "VersionNotFoundError",
    "VersioningError",
    "VersioningOptions",
    "init_from_env",
    "init_versionic",
    "on",
]
