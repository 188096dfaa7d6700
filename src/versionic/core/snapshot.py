"""
Snapshot – one immutable past state of a Record.

* Numbered per owner, starting at 1; the next free number is assigned on the
  first save when none was given.
* ``versioned_attributes`` holds the JSON-ready versioned fields of the owner.
* ``SnapshotCollection`` is the owner-bound accessor exposed as
  ``record.snapshots``.
"""

from __future__ import annotations

import datetime as dt
import logging
import uuid
from typing import TYPE_CHECKING, Any, ClassVar, Dict, Iterator, List
from uuid import UUID

from pydantic import BaseModel, Field, PrivateAttr

from . import clock
from ..errors import DuplicateSnapshotNumber, SnapshotValidationError
from .registry import registry

if TYPE_CHECKING:
    from ..persistence.store import SnapshotStore
    from .record import Record

logger = logging.getLogger(__name__)


class Snapshot(BaseModel):
    id: int | None = None
    uuid: str = Field(default_factory=lambda: uuid.uuid4().hex)
    owner_id: UUID
    owner_kind: str
    owner_uuid: str | None = None
    number: int | None = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    versioned_attributes: Dict[str, Any] = Field(default_factory=dict)

    _store: ClassVar["SnapshotStore | None"] = None  # injected by init_versionic()
    _owner: "Record | None" = PrivateAttr(default=None)
    _errors: List[Dict[str, Any]] = PrivateAttr(default_factory=list)

    model_config = {"arbitrary_types_allowed": True}

    # ---- state ---------------------------------------------------------
    def is_new_record(self) -> bool:
        return self.id is None

    def is_past(self) -> bool:
        return bool(self.created_at and self.created_at < clock.now_utc())

    def is_future(self) -> bool:
        return bool(self.created_at and self.created_at >= clock.now_utc())

    @property
    def errors(self) -> List[Dict[str, Any]]:
        return list(self._errors)

    @property
    def owner(self) -> "Record":
        """The owning record, loaded through the kind registry if needed."""
        if self._owner is None:
            record_cls = registry.resolve(self.owner_kind)
            self._owner = record_cls.find(self.owner_id)
        return self._owner

    # ---- persistence ---------------------------------------------------
    def save(self, touch_owner: bool = True) -> bool:
        """Write the snapshot. Returns False when it fails validation."""
        store = self._ensure_store()
        self._assign_number(store)
        if self.owner_uuid is None and self._owner is not None:
            self.owner_uuid = self._owner.uuid
        if not self.is_valid():
            return False

        now = clock.now_utc()
        if self.created_at is None:
            self.created_at = now
        self.updated_at = now
        values = self.model_dump(mode="python")
        try:
            if self.is_new_record():
                self.id = store.insert(values)
            else:
                store.update(self.id, values)
        except DuplicateSnapshotNumber as exc:
            self._errors = [{"loc": ("number",), "msg": str(exc), "type": "unique"}]
            logger.warning("%s", exc)
            return False
        logger.debug(
            "saved snapshot %s of %s %s", self.number, self.owner_kind, self.owner_id
        )

        if touch_owner:
            self.owner.save()
        return True

    def save_or_raise(self, touch_owner: bool = True) -> None:
        if not self.save(touch_owner=touch_owner):
            raise SnapshotValidationError(self)

    def update(self, touch_owner: bool = True, **attrs: Any) -> bool:
        for name, value in attrs.items():
            setattr(self, name, value)
        return self.save(touch_owner=touch_owner)

    def delete(self) -> bool:
        if self.is_new_record():
            return True
        removed = self._ensure_store().delete(self.id)
        if removed:
            logger.info(
                "deleted snapshot %s of %s %s", self.number, self.owner_kind, self.owner_id
            )
        return removed

    def destroy(self) -> bool:
        return self.delete()

    def is_valid(self) -> bool:
        errors = []
        for name in ("owner_uuid", "number"):
            if getattr(self, name) in (None, ""):
                errors.append({"loc": (name,), "msg": "can't be blank", "type": "presence"})
        self._errors = errors
        return not errors

    # ---- internal ------------------------------------------------------
    def _assign_number(self, store: "SnapshotStore") -> None:
        if self.number is not None:
            return
        previous = store.latest(self.owner_id, self.owner_kind)
        self.number = previous["number"] + 1 if previous else 1

    @classmethod
    def from_row(cls, row: Dict[str, Any], owner: "Record | None" = None) -> "Snapshot":
        obj = cls.model_validate(row)
        obj._owner = owner
        return obj

    @classmethod
    def _ensure_store(cls) -> "SnapshotStore":
        if cls._store is None:
            raise RuntimeError("Call init_versionic(engine) before using Snapshot")
        return cls._store


class SnapshotCollection:
    """Snapshots of one record, bound to the record instance."""

    def __init__(self, owner: "Record"):
        self._owner = owner

    @property
    def _key(self) -> tuple[UUID, str]:
        return self._owner.id, self._owner.kind

    def _wrap(self, row: Dict[str, Any] | None) -> Snapshot | None:
        return Snapshot.from_row(row, owner=self._owner) if row else None

    def find(self, number: int) -> Snapshot | None:
        return self._wrap(Snapshot._ensure_store().find(*self._key, number))

    def latest(self) -> Snapshot | None:
        return self._wrap(Snapshot._ensure_store().latest(*self._key))

    def at_or_before(self, at: dt.datetime) -> Snapshot | None:
        return self._wrap(Snapshot._ensure_store().latest_at(*self._key, at))

    def all(self) -> List[Snapshot]:
        return list(self)

    def numbers(self) -> List[int]:
        return [snapshot.number for snapshot in self]

    def count(self) -> int:
        return Snapshot._ensure_store().count(*self._key)

    def build(self, **attrs: Any) -> Snapshot:
        """Instantiate an unsaved snapshot owned by the record."""
        owner_id, owner_kind = self._key
        obj = Snapshot(
            owner_id=owner_id,
            owner_kind=owner_kind,
            owner_uuid=self._owner.uuid,
            **attrs,
        )
        obj._owner = self._owner
        return obj

    def delete_all(self) -> int:
        return Snapshot._ensure_store().delete_for_owner(*self._key)

    def __iter__(self) -> Iterator[Snapshot]:
        for row in Snapshot._ensure_store().stream(*self._key):
            yield Snapshot.from_row(row, owner=self._owner)

    def __len__(self) -> int:
        return self.count()

    def __getitem__(self, index: int) -> Snapshot:
        return self.all()[index]
