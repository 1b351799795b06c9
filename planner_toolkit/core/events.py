from __future__ import annotations

"""Typed notification channel between the planner core and its consumers.

The core publishes a small, fixed set of notifications; any number of
subscribers (rendering layer, autosave wiring, tests) may observe them.
Notifications are fire-and-forget signals: ``emit`` never raises because of
a subscriber, and subscribers must not assume a synchronous re-render.
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
import logging
import time
from typing import Any, Callable, Deque, Dict, List, Optional

__all__ = ["NotificationType", "Notification", "EventBus"]

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    DRAG_STARTED = "drag_started"
    DRAG_MOVED = "drag_moved"
    DRAG_ENDED = "drag_ended"
    DRAG_CANCELLED = "drag_cancelled"
    ITEM_MOVED = "item_moved"
    SECTION_MOVED = "section_moved"
    HISTORY_CHANGED = "history_changed"
    STATE_LOADED = "state_loaded"
    STATE_SAVED = "state_saved"
    STATE_RESET = "state_reset"
    STATE_ERROR = "state_error"


@dataclass(frozen=True)
class Notification:
    """A published signal carrying only the minimal identifying data."""

    type: NotificationType
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


Callback = Callable[[Notification], None]


@dataclass
class _Subscription:
    callback: Callback
    priority: int
    once: bool


class EventBus:
    """Publish/subscribe hub for :class:`Notification` objects.

    Parameters
    ----------
    max_history : int, default=100
        Number of recent notifications kept for debugging.
    """

    def __init__(self, max_history: int = 100) -> None:
        self._subscribers: Dict[NotificationType, List[_Subscription]] = {}
        self._history: Deque[Notification] = deque(maxlen=max(1, int(max_history)))

    def subscribe(
        self,
        notification_type: NotificationType,
        callback: Callback,
        priority: int = 0,
        once: bool = False,
    ) -> Callable[[], None]:
        """Register ``callback``; higher priorities run first. Returns an unsubscribe function."""
        subs = self._subscribers.setdefault(notification_type, [])
        subs.append(_Subscription(callback, priority, once))
        # stable sort keeps registration order among equal priorities
        subs.sort(key=lambda s: -s.priority)
        return lambda: self.unsubscribe(notification_type, callback)

    def unsubscribe(self, notification_type: NotificationType, callback: Callback) -> None:
        subs = self._subscribers.get(notification_type)
        if not subs:
            return
        for idx, sub in enumerate(subs):
            if sub.callback is callback:
                del subs[idx]
                break
        if not subs:
            del self._subscribers[notification_type]

    def emit(self, notification_type: NotificationType, **payload: Any) -> Notification:
        """Publish a notification to every subscriber of its type."""
        notification = Notification(notification_type, dict(payload))
        self._history.append(notification)
        logger.debug("Notify %s %s", notification_type.value, payload)

        for sub in list(self._subscribers.get(notification_type, [])):
            if sub.once:
                self.unsubscribe(notification_type, sub.callback)
            try:
                sub.callback(notification)
            except Exception:
                logger.exception("Subscriber failed for notification '%s'", notification_type.value)
        return notification

    def subscriber_count(self, notification_type: NotificationType) -> int:
        return len(self._subscribers.get(notification_type, []))

    def history(self, notification_type: Optional[NotificationType] = None) -> List[Notification]:
        if notification_type is None:
            return list(self._history)
        return [n for n in self._history if n.type is notification_type]

    def clear(self) -> None:
        self._subscribers.clear()
        self._history.clear()
