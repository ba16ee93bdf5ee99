"""Single-slot FIFO notification sequencer.

Messages are shown one at a time through a ``NotificationView``. Each gets
its own full dwell, or less if the user dismisses it. At most one timer is
pending: every transition cancels the previous timer and bumps a generation
counter, and a timer firing with a stale generation is ignored.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Callable, Optional

from interfaces import NotificationView, Scheduler, TimerHandle
from logger import get_logger
from models import NotificationMessage, NotificationState

logger = get_logger(__name__)


class ThreadingScheduler:
    def schedule(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay_s, callback)
        timer.daemon = True
        timer.start()
        return timer


class NotificationQueue:
    def __init__(
        self,
        view: NotificationView,
        dwell_s: float = 3.0,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self._view = view
        self._dwell_s = dwell_s
        self._scheduler = scheduler or ThreadingScheduler()
        self._lock = threading.RLock()
        self._pending: deque[NotificationMessage] = deque()
        self._current: Optional[NotificationMessage] = None
        self._timer: Optional[TimerHandle] = None
        self._generation = 0

    @property
    def state(self) -> NotificationState:
        with self._lock:
            return NotificationState.SHOWING if self._current else NotificationState.EMPTY

    def enqueue(self, text: str) -> NotificationMessage:
        message = NotificationMessage(text=text)
        with self._lock:
            self._pending.append(message)
            if self._current is None:
                self._advance()
        return message

    def dismiss_current(self) -> None:
        with self._lock:
            if self._current is None:
                return
            self._advance()

    def close(self) -> None:
        with self._lock:
            self._pending.clear()
            self._cancel_timer()
            self._generation += 1
            if self._current is not None:
                self._current = None
                self._view.clear()

    def _on_dwell_elapsed(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._current is None:
                return
            self._advance()

    def _advance(self) -> None:
        """Close the current message and show the next one, or go empty."""
        self._cancel_timer()
        self._generation += 1
        if not self._pending:
            self._current = None
            self._view.clear()
            return

        self._current = self._pending.popleft()
        generation = self._generation
        try:
            self._view.show_message(self._current.text)
        except Exception:
            logger.exception("Notification view failed to show a message")
        self._timer = self._scheduler.schedule(
            self._dwell_s, lambda: self._on_dwell_elapsed(generation)
        )

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
