"""
Persistence coordination for versioned saves.

A save runs through three named stages, each returning a StageResult:

    before_version_save ➜ persist_version ➜ (base save) ➜ after_version_save

``persist_version`` decides, in order:

1. new record                       ➜ plain save
2. versioned attributes unchanged   ➜ plain save, reserved number rolled back
3. migration pending                ➜ store the captured pre-migration state
4. a version was resolved           ➜ write that snapshot; a non-self version
                                      finishes here unless unversioned fields
                                      changed as well
5. otherwise                        ➜ close out the current version
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from . import clock, resolver
from .. import events
from .cache import VersionCache
from .interfaces import Versionable

logger = logging.getLogger(__name__)


class StageResult(Enum):
    CONTINUE = "continue"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def before_version_save(record: Versionable, cache: VersionCache) -> StageResult:
    if not events.emit("before_version_save", record):
        return StageResult.FAILED
    return StageResult.CONTINUE


def persist_version(record: Versionable, cache: VersionCache) -> StageResult:
    if record.is_new_record():
        return StageResult.CONTINUE

    if not record.versioned_attributes_changed():
        if cache.new_version_number is not None:
            record.version_number = record.attribute_was("version_number")
        return StageResult.CONTINUE

    if cache.original_version_obj is not None:
        cache.original_version_obj.save_or_raise(touch_owner=False)
        return StageResult.CONTINUE

    if cache.wanted_version_number is not None:
        obj = resolver.version_obj(record, cache)
        saved = None
        if obj is not None:
            obj.versioned_attributes = record.versioned_attributes()
            obj.created_at = record.updated_at
            saved = obj.save(touch_owner=False)
        if not cache.self_version:
            if saved is False:
                logger.warning(
                    "snapshot %s rejected, %s %s not saved",
                    cache.wanted_version_number,
                    type(record).__name__,
                    getattr(record, "id", None),
                )
                return StageResult.FAILED
            if not record.unversioned_attributes_changed():
                return StageResult.SUCCEEDED
        return StageResult.CONTINUE

    obj = resolver.version_obj(record, cache)
    if obj is None:
        logger.debug("inside editing window, no snapshot for %s", getattr(record, "id", None))
        return StageResult.CONTINUE
    obj.versioned_attributes = record.original_attributes()
    obj.save_or_raise(touch_owner=False)
    record.version_number = obj.number + 1
    record.version_updated_at = clock.now_utc()
    logger.debug("closed out version %s of %s", obj.number, getattr(record, "id", None))
    return StageResult.CONTINUE


def after_version_save(record: Versionable, cache: VersionCache) -> StageResult:
    events.emit("after_version_save", record)
    return StageResult.SUCCEEDED


def run_save(
    record: Versionable,
    cache: VersionCache,
    persist_record: Callable[[], bool],
) -> bool:
    """Run the save pipeline; ``persist_record`` writes the record itself."""
    result = before_version_save(record, cache)
    if result is StageResult.FAILED:
        return False

    result = persist_version(record, cache)
    if result is StageResult.CONTINUE:
        result = StageResult.SUCCEEDED if persist_record() else StageResult.FAILED
    if result is StageResult.FAILED:
        return False

    return after_version_save(record, cache) is StageResult.SUCCEEDED


def remove_version(record: Versionable, cache: VersionCache) -> bool | None:
    """Delete the resolved snapshot instead of the record.

    Returns None when no other version is loaded and the record itself has
    to go.
    """
    if cache.wanted_version_number is None or cache.self_version:
        return None
    obj = resolver.version_obj(record, cache)
    if obj is None:
        return None
    return obj.delete()
