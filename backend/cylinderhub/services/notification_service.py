# Overview: In-process publish/subscribe for lifecycle notifications.

"""
Workflows announce what happened (a cylinder was created, a batch finished,
a sale changed status) without knowing who listens. The hub is created per
application in create_app and stored in ``app.extensions``; tests build
their own.

Delivery is best effort: a failing subscriber is logged and skipped, and
never changes the outcome of the operation that published.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections import deque

from flask import current_app, has_app_context

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


EXTENSION_KEY = "cylinderhub.notifications"

CYLINDER_CREATED = "cylinder_created"
CYLINDER_UPDATED = "cylinder_updated"
CYLINDER_DELETED = "cylinder_deleted"
CYLINDER_STATUS_UPDATED = "cylinder_status_updated"
FILLING_STARTED = "filling_started"
FILLING_COMPLETED = "filling_completed"
INSPECTION_COMPLETED = "inspection_completed"
SALE_CREATED = "sale_created"
SALE_STATUS_UPDATED = "sale_status_updated"

EVENT_TYPES = frozenset({
    CYLINDER_CREATED,
    CYLINDER_UPDATED,
    CYLINDER_DELETED,
    CYLINDER_STATUS_UPDATED,
    FILLING_STARTED,
    FILLING_COMPLETED,
    INSPECTION_COMPLETED,
    SALE_CREATED,
    SALE_STATUS_UPDATED,
})

_PENDING_KEY = "cylinderhub.pending_notifications"


class NotificationHub:
    """Fan-out of event dicts to subscriber callables."""

    def __init__(self, logger: logging.Logger | None = None):
        self._subscribers = []
        self._lock = threading.Lock()
        self._logger = logger or logging.getLogger(__name__)

    def subscribe(self, callback) -> None:
        with self._lock:
            if callback not in self._subscribers:
                self._subscribers.append(callback)

    def unsubscribe(self, callback) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    @property
    def subscribers(self) -> list:
        with self._lock:
            return list(self._subscribers)

    def publish(self, event_type: str, data: dict) -> dict:
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown notification type: {event_type}")

        event = {
            "type": event_type,
            "data": data,
            "timestamp": to_utc_z(utcnow()),
        }
        for callback in self.subscribers:
            try:
                callback(event)
            except Exception:
                self._logger.warning(
                    "Notification subscriber %r failed for %s",
                    callback,
                    event_type,
                    exc_info=True,
                )
        return event


class RecentEventBuffer:
    """
    Bounded in-memory tail of published events for polling observers.

    Each event gets a monotonically increasing ``seq`` so a client can ask
    for everything after the last one it saw. Nothing is persisted; a
    restart empties the buffer.
    """

    def __init__(self, limit: int = 200):
        self._events = deque(maxlen=limit)
        self._seq = itertools.count(1)
        self._lock = threading.Lock()

    def __call__(self, event: dict) -> None:
        with self._lock:
            self._events.append({"seq": next(self._seq), **event})

    def since(self, seq: int = 0, limit: int | None = None) -> list[dict]:
        with self._lock:
            rows = [e for e in self._events if e["seq"] > seq]
        if limit is not None:
            rows = rows[-limit:]
        return rows

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


def init_app(app) -> NotificationHub:
    hub = NotificationHub(logger=app.logger)
    buffer = RecentEventBuffer(limit=app.config.get("RECENT_EVENTS_LIMIT", 200))
    hub.subscribe(buffer)
    app.extensions[EXTENSION_KEY] = hub
    app.extensions[EXTENSION_KEY + ".recent"] = buffer
    return hub


def get_hub() -> NotificationHub | None:
    if not has_app_context():
        return None
    return current_app.extensions.get(EXTENSION_KEY)


def get_recent_buffer() -> RecentEventBuffer | None:
    if not has_app_context():
        return None
    return current_app.extensions.get(EXTENSION_KEY + ".recent")


def queue(event_type: str, data: dict) -> None:
    """
    Stage a notification on the current DB session.

    run_in_transaction publishes the staged events after commit and drops
    them on rollback, so observers never hear about work that did not land.
    """
    if event_type not in EVENT_TYPES:
        raise ValueError(f"Unknown notification type: {event_type}")
    db.session.info.setdefault(_PENDING_KEY, []).append((event_type, data))


def discard_pending() -> None:
    db.session.info.pop(_PENDING_KEY, None)


def flush_pending() -> None:
    pending = db.session.info.pop(_PENDING_KEY, [])
    hub = get_hub()
    if hub is None:
        return
    for event_type, data in pending:
        try:
            hub.publish(event_type, data)
        except Exception:
            current_app.logger.warning("Failed to publish %s", event_type, exc_info=True)
