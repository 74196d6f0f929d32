"""
nsasa.engine.events — Entity Change Notifications
===================================================

Every committed transition publishes an :class:`EntityChanged` on the
process-wide :class:`ChangeBus`.  Consumers (response caches, the audit
logger, a future push channel) subscribe by entity kind instead of
guessing which endpoint strings to invalidate.

Publishing happens **after** commit, so a subscriber never sees a change
that was rolled back.  A failing subscriber is logged and skipped; it
never fails the command that triggered it.
"""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

logger = logging.getLogger(__name__)

__all__ = ["ChangeBus", "EntityChanged", "EntityKind", "get_change_bus"]


class EntityKind(enum.StrEnum):
    ACCOUNT = "account"
    CONTENT = "content"
    POLL = "poll"


@dataclass(frozen=True, slots=True)
class EntityChanged:
    """Entity *entity_id* of *kind* changed via *change* (e.g. ``"approval"``)."""

    kind: EntityKind
    entity_id: int
    change: str
    actor_id: int | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


Subscriber = Callable[[EntityChanged], None]


class ChangeBus:
    """Thread-safe fan-out of :class:`EntityChanged` notifications.

    Usage::

        bus = get_change_bus()
        bus.subscribe(EntityKind.POLL, lambda evt: cache.pop(evt.entity_id, None))
        bus.subscribe(None, audit_logger)      # every kind
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[EntityKind | None, list[Subscriber]] = {}

    def subscribe(self, kind: EntityKind | None, callback: Subscriber) -> None:
        """Register *callback* for *kind*, or for every kind when None."""
        with self._lock:
            self._subscribers.setdefault(kind, []).append(callback)
        logger.debug("Subscribed %r to %s changes", callback, kind or "all")

    def unsubscribe(self, kind: EntityKind | None, callback: Subscriber) -> None:
        with self._lock:
            callbacks = self._subscribers.get(kind, [])
            if callback in callbacks:
                callbacks.remove(callback)

    def publish(self, event: EntityChanged) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(event.kind, []))
            callbacks += self._subscribers.get(None, [])
        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Change subscriber %r failed on %s %s (%s)",
                    callback, event.kind, event.entity_id, event.change,
                )

    def clear(self) -> None:
        with self._lock:
            self._subscribers.clear()


# Module-level singleton, one per process
_bus = ChangeBus()


def get_change_bus() -> ChangeBus:
    return _bus
