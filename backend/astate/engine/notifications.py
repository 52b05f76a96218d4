"""Batch extremum alerts into at most one notification per window.

Every event handed to `notify` ends up in exactly one notification: either
the one sent right away (window open) or the one a single scheduled flush
sends when the current window closes.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from astate.core.constants import NOTIFICATION_WINDOW_S
from astate.engine.extremes import ExtremeEvent
from astate.engine.notifiers import Notifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Notification:
    title: str
    body: str


def build_notification(events: list[ExtremeEvent]) -> Notification:
    if len(events) == 1:
        return Notification("New Extreme Found", events[0].description)
    return Notification("New Extremes Found", ", ".join(e.description for e in events))


class NotificationDebouncer:
    """
    `clock` returns seconds (monotonic). `scheduler` needs
    `call_later(delay, callback)` returning a handle with `cancel()`; by
    default the running asyncio loop is used.
    """

    def __init__(
        self,
        notifier: Notifier,
        window_s: float = NOTIFICATION_WINDOW_S,
        clock: Callable[[], float] = time.monotonic,
        scheduler=None,
    ):
        self.notifier = notifier
        self.window_s = window_s
        self.clock = clock
        self.scheduler = scheduler
        self.last_notification_time: Optional[float] = None
        self.pending_events: list[ExtremeEvent] = []
        self.scheduled_flush = None

    def notify(self, event: ExtremeEvent) -> None:
        self.pending_events.append(event)
        now = self.clock()
        if self.last_notification_time is None or now - self.last_notification_time >= self.window_s:
            self.flush()
            return
        if self.scheduled_flush is None:
            delay = self.last_notification_time + self.window_s - now
            scheduler = self.scheduler or asyncio.get_running_loop()
            self.scheduled_flush = scheduler.call_later(delay, self._scheduled_flush)
            logger.debug("Notification deferred %.0fs", delay)

    def _scheduled_flush(self) -> None:
        self.scheduled_flush = None
        self.flush()

    def flush(self) -> Optional[Notification]:
        """Send everything pending as one notification; no-op when nothing is pending."""
        if self.scheduled_flush is not None:
            self.scheduled_flush.cancel()
            self.scheduled_flush = None
        if not self.pending_events:
            return None
        notification = build_notification(self.pending_events)
        self.pending_events = []
        self.last_notification_time = self.clock()
        self.notifier.send(notification.title, notification.body)
        return notification
