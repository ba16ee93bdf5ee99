"""Routes chord press/release events to recording and OCR flows."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Mapping, Optional

from capture_session import CaptureSession, StateCallback
from errors import NO_ACTIVE_WINDOW, RECOGNITION_FAILED, MicGptError, format_error
from interfaces import AudioCapture, ClipboardSink, Notifier, ScreenCapture, TextRecognizer
from logger import get_logger
from models import FlowKind
from response_pipeline import FlowSpec, ResponsePipeline

logger = get_logger(__name__)

OCR_PREFIX = "📋 Copied text:\n\n"

BusyCallback = Callable[[bool], None]


class HotkeyDispatcher:
    """One CaptureSession per chord; sessions on different chords are independent.

    Listener callbacks (``key_down``/``key_up``) return immediately; stopping,
    transcription, the response call and OCR all run on worker threads.
    """

    def __init__(
        self,
        flows: Mapping[str, FlowSpec],
        audio_capture: AudioCapture,
        screen_capture: ScreenCapture,
        text_recognizer: TextRecognizer,
        pipeline: ResponsePipeline,
        notifier: Notifier,
        clipboard: ClipboardSink,
        screenshot_timeout_s: float = 1.5,
        max_workers: int = 4,
        on_state_change: Optional[StateCallback] = None,
        on_busy_change: Optional[BusyCallback] = None,
    ) -> None:
        self._flows = dict(flows)
        self._audio_capture = audio_capture
        self._screen_capture = screen_capture
        self._text_recognizer = text_recognizer
        self._pipeline = pipeline
        self._notifier = notifier
        self._clipboard = clipboard
        self._screenshot_timeout_s = screenshot_timeout_s
        self._on_state_change = on_state_change
        self._on_busy_change = on_busy_change

        self._lock = threading.Lock()
        self._sessions: dict[str, CaptureSession] = {}
        self._ocr_in_flight: set[str] = set()
        self._jobs_in_flight = 0
        self._capture_pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="capture")
        self._worker_pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="pipeline")

    @property
    def chords(self) -> list[str]:
        return list(self._flows)

    def session_for(self, chord: str) -> Optional[CaptureSession]:
        with self._lock:
            return self._sessions.get(chord)

    def key_down(self, chord: str) -> None:
        flow = self._flows.get(chord)
        if flow is None:
            return
        if flow.kind == FlowKind.OCR:
            self._start_ocr(chord)
            return

        with self._lock:
            existing = self._sessions.get(chord)
            if existing is not None and existing.is_active:
                logger.debug("[%s] key-down ignored, session already active", chord)
                return
            session = CaptureSession(
                chord=chord,
                audio_capture=self._audio_capture,
                screen_capture=self._screen_capture,
                executor=self._capture_pool,
                screenshot_timeout_s=self._screenshot_timeout_s,
                on_state_change=self._on_state_change,
                on_error=self._on_session_error,
            )
            self._sessions[chord] = session
            session.begin()

    def key_up(self, chord: str) -> None:
        flow = self._flows.get(chord)
        if flow is None or flow.kind == FlowKind.OCR:
            return
        session = self.session_for(chord)
        if session is None or not session.is_active:
            return
        self._submit(self._finish_session, session, flow)

    def toggle(self, chord: str) -> None:
        """Menu-driven gesture: the first call acts as key-down, the next as key-up."""
        session = self.session_for(chord)
        if session is not None and session.is_active:
            self.key_up(chord)
        else:
            self.key_down(chord)

    def shutdown(self, wait: bool = False) -> None:
        self._worker_pool.shutdown(wait=wait)
        self._capture_pool.shutdown(wait=wait)

    def _finish_session(self, session: CaptureSession, flow: FlowSpec) -> None:
        result = session.end()
        with self._lock:
            if self._sessions.get(session.chord) is session:
                del self._sessions[session.chord]
        if result is None:
            return
        logger.info(
            "[%s] captured %.2fs of audio (image=%s)",
            session.chord,
            result.audio.duration_s,
            result.image is not None,
        )
        outcome = self._pipeline.run(result, flow)
        logger.info("[%s] pipeline finished (error=%s)", session.chord, outcome.error_code or "none")

    def _start_ocr(self, chord: str) -> None:
        with self._lock:
            if chord in self._ocr_in_flight:
                logger.debug("[%s] OCR already running, key-down ignored", chord)
                return
            self._ocr_in_flight.add(chord)
        self._submit(self._run_ocr, chord)

    def _run_ocr(self, chord: str) -> None:
        try:
            self._recognize_focused_window(chord)
        finally:
            with self._lock:
                self._ocr_in_flight.discard(chord)

    def _recognize_focused_window(self, chord: str) -> None:
        try:
            image = self._screen_capture.capture_focused_window(self._screenshot_timeout_s)
        except Exception as exc:
            logger.warning("[%s] screenshot failed: %s", chord, exc)
            self._notify(format_error(NO_ACTIVE_WINDOW, str(exc)))
            return
        if image is None:
            self._notify(format_error(NO_ACTIVE_WINDOW))
            return
        try:
            text = self._text_recognizer.recognize(image)
        except MicGptError as exc:
            logger.info("[%s] OCR failed: %s", chord, exc)
            self._notify(format_error(RECOGNITION_FAILED, str(exc)))
            return
        except Exception as exc:
            logger.exception("[%s] OCR crashed", chord)
            self._notify(format_error(RECOGNITION_FAILED, str(exc)))
            return
        self._clipboard.write(text)
        self._notify(OCR_PREFIX + text)

    def _submit(self, fn: Callable[..., None], *args: object) -> None:
        with self._lock:
            self._jobs_in_flight += 1
            busy = self._jobs_in_flight == 1
        if busy and self._on_busy_change:
            self._on_busy_change(True)
        self._worker_pool.submit(self._guarded, fn, *args)

    def _guarded(self, fn: Callable[..., None], *args: object) -> None:
        try:
            fn(*args)
        except Exception:
            logger.exception("Worker job %s failed", getattr(fn, "__name__", fn))
        finally:
            with self._lock:
                self._jobs_in_flight -= 1
                idle = self._jobs_in_flight == 0
            if idle and self._on_busy_change:
                self._on_busy_change(False)

    def _on_session_error(self, code: str, message: str) -> None:
        self._notify(format_error(code, message))

    def _notify(self, text: str) -> None:
        try:
            self._notifier.enqueue(text)
        except Exception:
            logger.exception("Failed to enqueue notification")
