"""
Per-operation scratch state for version resolution.

Never persisted. A fresh cache is started for every resolution and dropped
after every successful save of the record it belongs to.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict

if TYPE_CHECKING:
    from .snapshot import Snapshot


@dataclass
class VersionCache:
    version_args: tuple[Any, Dict[str, Any]] | None = None
    wanted_attributes: Dict[str, Any] = field(default_factory=dict)
    wanted_version_number: int | None = None
    # number of the record the resolution started from, kept across resolutions
    original_version_number: int | None = None
    existing_version_wanted: bool = False
    new_version_number: int | None = None
    version_obj: Snapshot | None = None
    original_version_obj: Snapshot | None = None
    self_version: bool | None = None

    def fresh(self) -> "VersionCache":
        """Start a new resolution, keeping only the record's provenance."""
        return VersionCache(original_version_number=self.original_version_number)

    @property
    def resolved(self) -> bool:
        return self.wanted_version_number is not None
