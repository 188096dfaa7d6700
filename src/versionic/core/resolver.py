"""
Version resolution: selector ➜ target number ➜ snapshot ➜ attributes.

Selectors
---------
* ``Selector.NEW``       one past the highest number ever used
* ``Selector.NEXT``      current number + 1, may be new as well
* ``Selector.PREVIOUS``  current number - 1
* ``48`` / ``"48"``      that exact version, which must exist
* a datetime / ISO time  the version in effect at that moment

Computed numbers below 1 clamp to 1.
"""

from __future__ import annotations

import datetime as dt
import logging
from datetime import timedelta
from enum import StrEnum
from typing import Any, Dict

from pydantic import TypeAdapter, ValidationError

from . import clock
from ..errors import ArgumentError, VersionNotFoundError
from .cache import VersionCache
from .interfaces import Versionable
from .snapshot import Snapshot

logger = logging.getLogger(__name__)

_datetime_adapter = TypeAdapter(dt.datetime)


class Selector(StrEnum):
    NEW = "new"
    NEXT = "next"
    PREVIOUS = "previous"


def parse_time(value: Any) -> dt.datetime:
    """Accept a datetime or anything pydantic can parse into one."""
    if isinstance(value, dt.datetime):
        return clock.as_utc(value)
    if isinstance(value, str):
        try:
            return clock.as_utc(_datetime_adapter.validate_python(value))
        except ValidationError as exc:
            raise ArgumentError(f"unparsable time {value!r}") from exc
    raise ArgumentError(f"expected a time, got {type(value).__name__}")


def _is_number(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True


def resolve(
    record: Versionable,
    cache: VersionCache,
    selector: Any,
    attributes: Dict[str, Any],
) -> VersionCache:
    """Apply the selected version onto ``record`` in place.

    Returns the cache describing the resolution; the record's own version
    leaves every attribute untouched.
    """
    cache = cache.fresh()
    _set_version_args(record, cache, selector, attributes)

    if record.version_number == cache.wanted_version_number:
        cache.self_version = True
        return cache
    cache.self_version = False

    obj = version_obj(record, cache)
    if obj is None:
        raise VersionNotFoundError(
            f"version {cache.wanted_version_number} does not exist"
        )
    if cache.original_version_number is None:
        cache.original_version_number = record.version_number

    record.assign_attributes(version_attributes(record, cache))
    record.version_number = cache.wanted_version_number
    if obj.created_at is not None:
        record.updated_at = obj.created_at
        record.version_updated_at = obj.created_at
    logger.debug(
        "resolved version %s (%s)",
        cache.wanted_version_number,
        "new" if obj.is_new_record() else "stored",
    )
    return cache


def _set_version_args(
    record: Versionable,
    cache: VersionCache,
    selector: Any,
    attributes: Dict[str, Any],
) -> None:
    known = set(record.field_names())
    unknown = sorted(set(attributes) - known)
    if unknown:
        raise ArgumentError(f"unknown attributes: {', '.join(unknown)}")

    cache.version_args = (selector, dict(attributes))
    cache.wanted_attributes = dict(attributes)

    if isinstance(selector, bool) or selector is None:
        raise ArgumentError(f"invalid version selector {selector!r}")

    if isinstance(selector, str):
        try:
            selector = Selector(selector.lower())
        except ValueError:
            text = selector.strip()
            if text.lstrip("-").isdigit():
                selector = int(text)
            elif _is_number(text):
                raise ArgumentError(
                    f"version number must be an integer, got {selector!r}"
                ) from None
            else:
                selector = parse_time(selector)

    if selector == Selector.NEW:
        number = new_version_number(record, cache)
    elif selector == Selector.NEXT:
        number = record.version_number + 1
    elif selector == Selector.PREVIOUS:
        number = record.version_number - 1
    elif isinstance(selector, int):
        cache.existing_version_wanted = True
        number = selector
    elif isinstance(selector, dt.datetime):
        cache.existing_version_wanted = True
        match = locate_at(record, selector)
        number = record.version_number if match is None else match.number
    else:
        raise ArgumentError(f"invalid version selector {selector!r}")

    cache.wanted_version_number = max(number, 1)


def new_version_number(record: Versionable, cache: VersionCache) -> int:
    """Next number that collides with neither the record nor a stored snapshot."""
    if cache.new_version_number is None:
        latest = record.snapshots.latest()
        highest = latest.number if latest else 0
        cache.new_version_number = max(highest, record.version_number) + 1
    return cache.new_version_number


def version_obj(record: Versionable, cache: VersionCache) -> Snapshot | None:
    """Snapshot the current operation works on.

    * A wanted version is looked up, or built from the record's current
      attributes unless it is the record itself or had to exist already.
    * Without a wanted version a fresh snapshot is built, unless an editing
      window is configured and has not passed yet. Future-dated records
      always get one.
    """
    if cache.version_obj is not None:
        return cache.version_obj

    obj: Snapshot | None = None
    if cache.wanted_version_number is not None:
        obj = record.snapshots.find(cache.wanted_version_number)
        if obj is None and not (cache.self_version or cache.existing_version_wanted):
            obj = record.snapshots.build(
                number=cache.wanted_version_number,
                versioned_attributes=record.versioned_attributes(),
                created_at=record.attribute_was("updated_at"),
            )
    else:
        editing_time = record.versioning_config().get("editing_time")
        now = clock.now_utc()
        if (
            not editing_time
            or record.version_updated_at <= now - timedelta(seconds=editing_time)
            or (record.updated_at is not None and record.updated_at > now)
        ):
            obj = record.snapshots.build(created_at=record.attribute_was("updated_at"))

    cache.version_obj = obj
    return obj


def version_attributes(record: Versionable, cache: VersionCache) -> Dict[str, Any]:
    """Versioned attributes of the wanted version, overrides merged last."""
    obj = version_obj(record, cache)
    # fields missing from the snapshot must come out as None, not stay as they are
    attrs: Dict[str, Any] = dict.fromkeys(record.field_names())
    if obj is not None:
        attrs.update(
            (name, value)
            for name, value in obj.versioned_attributes.items()
            if name in attrs
        )
    filtered = record.filter_versioned_attributes(attrs)
    filtered.update(cache.wanted_attributes)
    return filtered


def locate_at(record: Versionable, at: Any) -> Snapshot | None:
    """Snapshot in effect at ``at``, or None when the current state is.

    Raises VersionNotFoundError when ``at`` predates everything known.
    """
    at = parse_time(at)
    current = record.updated_at is not None and record.updated_at <= at
    match = record.snapshots.at_or_before(at)
    if match is not None:
        if current and record.updated_at >= match.created_at:
            return None
        return match
    if current:
        return None
    raise VersionNotFoundError(f"no version at {at.isoformat()}")


def has_version(record: Versionable, number: Any) -> bool:
    if isinstance(number, bool) or not isinstance(number, int):
        raise ArgumentError(f"version number must be an integer, got {number!r}")
    if record.version_number == number:
        return True
    return record.snapshots.find(number) is not None
