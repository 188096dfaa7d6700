"""
Capabilities the versioning algorithms need from a host record.

Resolver, migration engine and persistence coordinator only talk to this
protocol; ``versionic.Record`` is the stock implementation.
"""

from __future__ import annotations

import datetime as dt
from typing import TYPE_CHECKING, Any, Dict, Iterable, Protocol, runtime_checkable

from .options import VersioningOptions

if TYPE_CHECKING:
    from .snapshot import SnapshotCollection


@runtime_checkable
class Versionable(Protocol):
    version_number: int
    version_updated_at: dt.datetime | None
    updated_at: dt.datetime | None

    @property
    def snapshots(self) -> SnapshotCollection: ...

    @classmethod
    def field_names(cls) -> Iterable[str]: ...

    @classmethod
    def versioning_config(cls) -> VersioningOptions: ...

    def is_new_record(self) -> bool: ...

    def attribute_was(self, name: str) -> Any: ...

    def versioned_attributes(self) -> Dict[str, Any]: ...

    def original_attributes(self) -> Dict[str, Any]: ...

    def filter_versioned_attributes(self, attrs: Dict[str, Any]) -> Dict[str, Any]: ...

    def assign_attributes(self, attrs: Dict[str, Any]) -> None: ...

    def versioned_attributes_changed(self) -> bool: ...

    def unversioned_attributes_changed(self) -> bool: ...
