"""State-machine for one press-and-hold recording gesture."""

from __future__ import annotations

import threading
import time
from concurrent.futures import Executor, Future
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Callable, Optional

from errors import CAPTURE_UNAVAILABLE
from interfaces import AudioCapture, ScreenCapture
from logger import get_logger
from models import CaptureResult, RecordingHandle, SessionState

logger = get_logger(__name__)

StateCallback = Callable[[str, SessionState, SessionState], None]
ErrorCallback = Callable[[str, str], None]


class CaptureSession:
    """Audio capture plus a parallel focused-window screenshot.

    ``begin`` starts audio synchronously and fires the screenshot off on
    ``executor``; ``end`` stops audio and joins the screenshot for at most
    ``screenshot_timeout_s``. Calls made in the wrong state are no-ops.
    """

    def __init__(
        self,
        chord: str,
        audio_capture: AudioCapture,
        screen_capture: ScreenCapture,
        executor: Executor,
        screenshot_timeout_s: float = 1.5,
        on_state_change: Optional[StateCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self.chord = chord
        self._audio_capture = audio_capture
        self._screen_capture = screen_capture
        self._executor = executor
        self._screenshot_timeout_s = screenshot_timeout_s
        self._on_state_change = on_state_change
        self._on_error = on_error

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._started_at = 0.0
        self._handle: Optional[RecordingHandle] = None
        self._screenshot: Optional[Future] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state in (SessionState.RECORDING, SessionState.STOPPING)

    def begin(self) -> bool:
        with self._lock:
            if self._state != SessionState.IDLE:
                return False
            self._started_at = time.monotonic()
            self._transition(SessionState.RECORDING)
            try:
                self._handle = self._audio_capture.start()
            except Exception as exc:
                logger.warning("[%s] audio capture failed to start: %s", self.chord, exc)
                self._fail(str(exc))
                return False
            self._screenshot = self._executor.submit(self._grab_window)
            return True

    def end(self) -> Optional[CaptureResult]:
        with self._lock:
            if self._state != SessionState.RECORDING:
                return None
            self._transition(SessionState.STOPPING)
            handle = self._handle

        try:
            audio = self._audio_capture.stop(handle)
        except Exception as exc:
            logger.warning("[%s] audio capture failed to stop: %s", self.chord, exc)
            with self._lock:
                self._fail(str(exc))
            return None

        image = self._join_screenshot()

        with self._lock:
            self._transition(SessionState.DONE)
            return CaptureResult(
                chord=self.chord,
                audio=audio,
                image=image,
                started_at=self._started_at,
                duration_s=time.monotonic() - self._started_at,
            )

    def _grab_window(self) -> Optional[Any]:
        try:
            return self._screen_capture.capture_focused_window(self._screenshot_timeout_s)
        except Exception as exc:
            logger.info("[%s] screenshot skipped: %s", self.chord, exc)
            return None

    def _join_screenshot(self) -> Optional[Any]:
        future = self._screenshot
        if future is None:
            return None
        try:
            return future.result(timeout=self._screenshot_timeout_s)
        except FutureTimeout:
            future.cancel()
            logger.info(
                "[%s] screenshot not ready after %.2fs, continuing without image",
                self.chord,
                self._screenshot_timeout_s,
            )
            return None

    def _fail(self, message: str) -> None:
        self._transition(SessionState.FAILED)
        if self._on_error:
            self._on_error(CAPTURE_UNAVAILABLE, message)

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        logger.debug("[%s] %s -> %s", self.chord, from_state.value, to_state.value)
        if self._on_state_change:
            self._on_state_change(self.chord, from_state, to_state)
