"""
Record – a mutable pydantic model with a history of snapshots.

* ``save()`` runs the versioning pipeline: changing versioned attributes
  closes out the current version into a Snapshot and bumps
  ``version_number``.
* ``version(...)`` returns a detached copy showing another version,
  ``apply_version(...)`` does the same in place.
* ``migrate(...)`` makes a version current, ``undo()``/``redo()`` step back
  and forth.
* Subclasses register themselves under a snake_case kind at class-creation
  time.
"""

from __future__ import annotations

import copy
import datetime as dt
import logging
from typing import TYPE_CHECKING, Any, ClassVar, Dict, Iterable, List, Type, TypeVar
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    Field,
    PrivateAttr,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic_core import to_jsonable_python

from . import clock, coordinator, migration, resolver
from .. import events
from ..errors import ArgumentError, RecordNotFoundError, RecordValidationError
from .cache import VersionCache
from .options import VersioningOptions
from .registry import registry, snake
from .snapshot import Snapshot, SnapshotCollection

if TYPE_CHECKING:
    from ..persistence.store import RecordStore

T_Record = TypeVar("T_Record", bound="Record")
ModelMeta = BaseModel.__class__

logger = logging.getLogger(__name__)

_MISSING: Any = object()


# metaclass that registers the kind and normalises class config
class RecordMeta(ModelMeta):
    """Attach ``record_kind`` and coerce versioning config at class-creation time."""

    def __new__(mcls, name: str, bases, ns, **kw):
        cls = super().__new__(mcls, name, bases, ns, **kw)  # create class first
        if name == "Record" and ns.get("__module__") == __name__:  # skip abstract base
            return cls

        cls.record_kind = ns.get("record_kind") or snake(name)
        registry.register(cls.record_kind, cls)

        options = cls.__dict__.get("versioning_options")
        if isinstance(options, dict):
            cls.versioning_options = VersioningOptions(**options)
        names = cls.__dict__.get("versioned_attribute_names")
        if names is not None:
            cls.versioned_attribute_names = [str(n) for n in names]
        return cls


# Record base
class Record(BaseModel, metaclass=RecordMeta):
    """Base class – saving a versioned change snapshots the previous state."""

    id: UUID | None = None
    kind: str = ""
    uuid: str = Field(default_factory=lambda: uuid4().hex)
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    version_number: int = 1
    version_updated_at: dt.datetime | None = None

    record_kind: ClassVar[str] = "record"
    versioned_attribute_names: ClassVar[List[str]] = []
    unversioned_attribute_names: ClassVar[tuple[str, ...]] = (
        "id",
        "kind",
        "uuid",
        "updated_at",
        "created_at",
        "version_number",
        "version_updated_at",
    )
    versioning_options: ClassVar[VersioningOptions] = VersioningOptions()

    _store: ClassVar["RecordStore | None"] = None  # injected by init_versionic()
    _adapters: ClassVar[Dict[tuple[type, str], TypeAdapter]] = {}

    _persisted: Dict[str, Any] | None = PrivateAttr(default=None)
    _version_cache: VersionCache = PrivateAttr(default_factory=VersionCache)
    _errors: List[Dict[str, Any]] = PrivateAttr(default_factory=list)

    model_config = {"extra": "ignore", "arbitrary_types_allowed": True}

    @field_validator("created_at", "updated_at", "version_updated_at")
    @classmethod
    def _utc(cls, value: dt.datetime | None) -> dt.datetime | None:
        return clock.as_utc(value) if value is not None else None

    # ensure identity, kind & version timestamp exist
    def model_post_init(self, _ctx):
        if self.id is None:
            object.__setattr__(self, "id", uuid4())
        if not self.kind:
            object.__setattr__(self, "kind", self.__class__.record_kind)
        if self.version_updated_at is None:
            object.__setattr__(
                self, "version_updated_at", self.updated_at or clock.now_utc()
            )

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.attributes() == other.attributes()

    __hash__ = None  # type: ignore[assignment]

    # ------------------------------------------------------------------ #
    # class configuration
    # ------------------------------------------------------------------ #
    @classmethod
    def versioned(cls, *names: str, **options: Any) -> None:
        """Declare versioned attributes and options.

            Article.versioned("title", "text", editing_time=300)
        """
        if names:
            cls.versioned_attribute_names = [str(n) for n in names]
        if options:
            cls.versioning_options = VersioningOptions(**options)

    @classmethod
    def versioning_config(cls) -> VersioningOptions:
        options = cls.versioning_options
        if isinstance(options, dict):
            return VersioningOptions(**options)
        return options

    @classmethod
    def field_names(cls) -> Iterable[str]:
        return list(cls.model_fields)

    # ------------------------------------------------------------------ #
    # loading
    # ------------------------------------------------------------------ #
    @classmethod
    def find(cls: Type[T_Record], rec_id: UUID) -> T_Record:
        data = cls._ensure_store().load(cls.record_kind, rec_id)
        if data is None:
            raise RecordNotFoundError(f"{cls.__name__} {rec_id} not found")
        obj = cls.model_validate(data)
        obj._mark_persisted()
        return obj

    @classmethod
    def all(cls: Type[T_Record]) -> List[T_Record]:
        return [cls.find(rec_id) for rec_id in cls._ensure_store().ids(cls.record_kind)]

    @classmethod
    def create(cls: Type[T_Record], **attrs: Any) -> T_Record:
        """Instantiate and save; check ``is_new_record()`` for the outcome."""
        obj = cls(**attrs)
        obj.save()
        return obj

    def reload(self: T_Record) -> T_Record:
        """Replace local state with the stored one and forget any loaded version."""
        fresh = type(self).find(self.id)
        for name in self.field_names():
            setattr(self, name, getattr(fresh, name))
        self._mark_persisted()
        return self

    # ------------------------------------------------------------------ #
    # attributes & dirty tracking
    # ------------------------------------------------------------------ #
    def attributes(self) -> Dict[str, Any]:
        """All fields, JSON-ready."""
        return {
            name: to_jsonable_python(getattr(self, name)) for name in self.field_names()
        }

    def filter_versioned_attributes(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        """Keep the allow-list if one is declared, else drop the unversioned names."""
        allowed = type(self).versioned_attribute_names
        if allowed:
            return {k: v for k, v in attrs.items() if k in allowed}
        excluded = type(self).unversioned_attribute_names
        return {k: v for k, v in attrs.items() if k not in excluded}

    def versioned_attributes(self) -> Dict[str, Any]:
        return self.filter_versioned_attributes(self.attributes())

    def original_attributes(self) -> Dict[str, Any]:
        """Versioned attributes as last loaded or saved."""
        if self._persisted is None:
            return self.versioned_attributes()
        return self.filter_versioned_attributes(
            {k: to_jsonable_python(v) for k, v in self._persisted.items()}
        )

    def attribute_was(self, name: str) -> Any:
        if self._persisted is None:
            return getattr(self, name)
        return self._persisted.get(name)

    def changes(self) -> Dict[str, tuple[Any, Any]]:
        """``{name: (before, after)}`` for every field changed since load/save."""
        before = self._persisted or {}
        result = {}
        for name, value in self.attributes().items():
            old = to_jsonable_python(before.get(name))
            if old != value:
                result[name] = (old, value)
        return result

    def versioned_attributes_changed(self) -> bool:
        return self.versioned_attributes() != self.original_attributes()

    def unversioned_changes(self) -> Dict[str, tuple[Any, Any]]:
        """Changes to fields that are neither versioned nor bookkeeping.

        Those apply to every version alike.
        """
        skip = set(self.versioned_attributes()) | set(type(self).unversioned_attribute_names)
        return {k: v for k, v in self.changes().items() if k not in skip}

    def unversioned_attributes_changed(self) -> bool:
        return bool(self.unversioned_changes())

    def assign_attributes(self, attrs: Dict[str, Any]) -> None:
        fields = type(self).model_fields
        unknown = sorted(set(attrs) - set(fields))
        if unknown:
            raise ArgumentError(f"unknown attributes: {', '.join(unknown)}")
        for name, value in attrs.items():
            if value is not None:
                try:
                    value = self._adapter(name).validate_python(value)
                    if isinstance(value, dt.datetime):
                        value = clock.as_utc(value)
                except ValidationError:
                    # kept as given, is_valid() reports it on save
                    pass
            setattr(self, name, value)

    def is_new_record(self) -> bool:
        return self._persisted is None

    # ------------------------------------------------------------------ #
    # validation & persistence
    # ------------------------------------------------------------------ #
    @property
    def errors(self) -> List[Dict[str, Any]]:
        return list(self._errors)

    def is_valid(self) -> bool:
        """Run the model's pydantic validation against the current values."""
        try:
            type(self).model_validate(
                {name: getattr(self, name) for name in self.field_names()}
            )
        except ValidationError as exc:
            self._errors = exc.errors(include_url=False)
            return False
        self._errors = []
        return True

    def save(self) -> bool:
        """Save with version handling. False if validation fails."""
        if not self.is_valid():
            return False
        return coordinator.run_save(self, self._version_cache, self._persist)

    def save_or_raise(self) -> None:
        if not self.save():
            raise RecordValidationError(self)

    def update(self, **attrs: Any) -> bool:
        self.assign_attributes(attrs)
        return self.save()

    def update_or_raise(self, **attrs: Any) -> None:
        self.assign_attributes(attrs)
        self.save_or_raise()

    def delete(self) -> bool:
        """Delete the loaded version, or the record and all its snapshots."""
        removed = coordinator.remove_version(self, self._version_cache)
        if removed is not None:
            return removed
        return self._remove()

    def destroy(self) -> bool:
        removed = coordinator.remove_version(self, self._version_cache)
        if removed is not None:
            return removed
        if not self._remove():
            return False
        events.emit("destroy", self)
        return True

    # ------------------------------------------------------------------ #
    # versions
    # ------------------------------------------------------------------ #
    @property
    def snapshots(self) -> SnapshotCollection:
        return SnapshotCollection(self)

    def version(self: T_Record, selector: Any = _MISSING, /, **attrs: Any) -> T_Record:
        """Return a stored copy of this record with the selected version applied.

        Valid selectors are ``"new"``, ``"next"``, ``"previous"``, a version
        number or a time; ``attrs`` are set on top of the version's attributes.
        """
        if selector is _MISSING:
            raise ArgumentError("a version selector is required")
        copy_ = type(self).find(self.id)
        copy_.apply_version(selector, **attrs)
        return copy_

    def apply_version(self, selector: Any = _MISSING, /, **attrs: Any) -> None:
        """Apply the selected version on this instance. See ``version``."""
        if selector is _MISSING:
            raise ArgumentError("a version selector is required")
        self._version_cache = resolver.resolve(
            self, self._version_cache, selector, attrs
        )

    def has_version(self, number: int) -> bool:
        return resolver.has_version(self, number)

    def version_at(self: T_Record, at: dt.datetime | str) -> T_Record:
        """Version in effect at ``at``; self when that is the current state."""
        match = resolver.locate_at(self, at)
        if match is None:
            return self
        return self.version(match.number)

    def migrate(self, selector: Any = None) -> None:
        """Make the given (or loaded) version current and save.

        The state being replaced is kept as a snapshot.
        """
        self._version_cache = migration.prepare(self, self._version_cache, selector)
        self.save_or_raise()

    def undo(self) -> None:
        self.apply_version(resolver.Selector.PREVIOUS)
        self.migrate()

    def redo(self) -> None:
        self.apply_version(resolver.Selector.NEXT)
        self.migrate()

    def reload_version(self: T_Record) -> T_Record:
        """Reload from the store and re-apply the loaded version, if any."""
        args = self._version_cache.version_args
        self.reload()
        if args is not None:
            selector, attrs = args
            self.apply_version(selector, **attrs)
        return self

    @property
    def version_object(self) -> Snapshot | None:
        """Snapshot of the currently loaded version, if any."""
        return self._version_cache.version_obj

    def is_new_version(self) -> bool:
        """True if the loaded version does not exist yet."""
        if not self._version_cache.resolved:
            return False
        obj = resolver.version_obj(self, self._version_cache)
        return obj is not None and obj.is_new_record()

    def original_version_number(self) -> int:
        return self._version_cache.original_version_number or self.version_number

    # ------------------------------------------------------------------ #
    # internal
    # ------------------------------------------------------------------ #
    def _persist(self) -> bool:
        """Write the record row, keeping document-store timestamps."""
        store = self._ensure_store()
        now = clock.now_utc()
        created = self.is_new_record()
        if created:
            if self.created_at is None:
                self.created_at = now
            if self.updated_at is None:
                self.updated_at = now
        elif self.changes() and self.updated_at == self.attribute_was("updated_at"):
            self.updated_at = now

        store.upsert(self.kind, self.id, self.attributes())
        self._mark_persisted()
        events.emit("create" if created else "update", self)
        return True

    def _remove(self) -> bool:
        removed = self._ensure_store().delete(self.kind, self.id)
        if removed:
            self._persisted = None
            self._version_cache = VersionCache()
        return removed

    def _mark_persisted(self) -> None:
        self._persisted = {
            name: copy.deepcopy(getattr(self, name)) for name in self.field_names()
        }
        self._version_cache = VersionCache()

    def _adapter(self, name: str) -> TypeAdapter:
        key = (type(self), name)
        adapter = Record._adapters.get(key)
        if adapter is None:
            adapter = TypeAdapter(type(self).model_fields[name].annotation)
            Record._adapters[key] = adapter
        return adapter

    # internal util
    @classmethod
    def _ensure_store(cls) -> "RecordStore":
        if cls._store is None:
            raise RuntimeError("Call init_versionic(engine) before using Record")
        return cls._store
