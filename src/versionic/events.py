"""
versionic.events  ──  Observers for Record lifecycle and version saves

    @on.update(Book)
    def audit(book): ...

    @on.before_version_save(Book)
    def freeze_published(book):
        return not book.locked      # returning False vetoes the save
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Any, Callable, Dict, Set, Type

if TYPE_CHECKING:
    from .core.record import Record

logger = logging.getLogger(__name__)

EVENT_TYPES = (
    "create",
    "update",
    "destroy",
    "before_version_save",
    "after_version_save",
)


class EventRegistry:
    """Central registry for event handlers"""

    def __init__(self):
        # Maps event type -> record class name -> set of handlers
        self._handlers: Dict[str, Dict[str, Set[Callable[[Any], Any]]]] = {
            event_type: defaultdict(set) for event_type in EVENT_TYPES
        }

    def register(
        self,
        event_type: str,
        record_classes: tuple[Type[Record], ...],
        handler: Callable[[Any], Any],
    ) -> None:
        """Register a handler for specific record classes"""
        if event_type not in self._handlers:
            raise ValueError(f"unknown event type {event_type!r}")
        for cls in record_classes:
            self._handlers[event_type][cls.__name__].add(handler)

    def unregister(self, event_type: str, handler: Callable[[Any], Any]) -> None:
        for handlers in self._handlers[event_type].values():
            handlers.discard(handler)

    def emit(self, event_type: str, instance: Record) -> bool:
        """Call every matching handler; False if any of them returned False."""
        handlers = set()

        # Also check parent classes
        for cls in instance.__class__.__mro__:
            handlers.update(self._handlers[event_type].get(cls.__name__, ()))

        vetoed = False
        for handler in handlers:
            if handler(instance) is False:
                logger.debug(
                    "%s handler %s vetoed %s %s",
                    event_type,
                    getattr(handler, "__name__", handler),
                    instance.__class__.__name__,
                    instance.id,
                )
                vetoed = True
        return not vetoed


# Global registry instance
_registry = EventRegistry()


class OnDecorator:
    """Namespace for event decorators"""

    @staticmethod
    def _decorator(event_type: str, record_classes: tuple[Type[Record], ...]) -> Callable:
        def decorator(func: Callable) -> Callable:
            _registry.register(event_type, record_classes, func)
            return func

        return decorator

    def create(self, *record_classes: Type[Record]) -> Callable:
        """Decorator for handling record creation events"""
        return self._decorator("create", record_classes)

    def update(self, *record_classes: Type[Record]) -> Callable:
        """Decorator for handling record update events"""
        return self._decorator("update", record_classes)

    def destroy(self, *record_classes: Type[Record]) -> Callable:
        return self._decorator("destroy", record_classes)

    def before_version_save(self, *record_classes: Type[Record]) -> Callable:
        """Handlers may veto the save by returning False."""
        return self._decorator("before_version_save", record_classes)

    def after_version_save(self, *record_classes: Type[Record]) -> Callable:
        return self._decorator("after_version_save", record_classes)


# Export the decorator interface
on = OnDecorator()


def registry() -> EventRegistry:
    return _registry


# Hook into Record lifecycle
def emit(event_type: str, instance: Record) -> bool:
    return _registry.emit(event_type, instance)
