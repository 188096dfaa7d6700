"""
Migration: make a resolved version the record's current state.

The state being left behind is always captured first, in a snapshot keyed by
the record's pre-migration number, so nothing is lost by rolling back or
forward. Persisting the record is left to the caller.
"""

from __future__ import annotations

import logging
from typing import Any

from . import clock, resolver
from ..errors import MigrationError
from .cache import VersionCache
from .interfaces import Versionable

logger = logging.getLogger(__name__)


def prepare(record: Versionable, cache: VersionCache, selector: Any = None) -> VersionCache:
    """Resolve (if needed) and apply the target version onto ``record``.

    Returns the cache the following save has to run with.
    """
    if selector is None and cache.wanted_version_number is None:
        raise MigrationError("no version given")
    if selector is not None and selector != cache.wanted_version_number:
        cache = resolver.resolve(record, cache, selector, {})
    if cache.self_version:
        raise MigrationError("cannot migrate to current version")

    capture_original(record, cache)

    target = resolver.version_obj(record, cache)
    # a migration always happens now, even towards a scheduled version
    if target is not None and target.is_future():
        target.created_at = clock.now_utc()
        target.save_or_raise(touch_owner=False)

    record.assign_attributes(resolver.version_attributes(record, cache))
    record.version_number = cache.wanted_version_number
    logger.info(
        "migrating to version %s from %s",
        cache.wanted_version_number,
        record.attribute_was("version_number"),
    )
    return cache


def capture_original(record: Versionable, cache: VersionCache) -> None:
    """Find or build the snapshot holding the record's persisted state."""
    number = record.attribute_was("version_number")
    obj = record.snapshots.find(number)
    if obj is None:
        obj = record.snapshots.build(number=number)
    obj.versioned_attributes = record.original_attributes()
    if obj.is_new_record():
        obj.created_at = record.attribute_was("updated_at")
    cache.original_version_obj = obj
