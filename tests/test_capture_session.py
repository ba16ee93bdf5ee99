from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from capture_session import CaptureSession
from errors import CAPTURE_UNAVAILABLE, DeviceUnavailable
from models import AudioClip, RecordingHandle, SessionState


class FakeAudioCapture:
    def __init__(self, fail_start: bool = False, fail_stop: bool = False) -> None:
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.starts = 0
        self.stops = 0

    def start(self) -> RecordingHandle:
        if self.fail_start:
            raise DeviceUnavailable("no input device")
        self.starts += 1
        return RecordingHandle(recording_id=self.starts)

    def stop(self, handle: RecordingHandle) -> AudioClip:
        self.stops += 1
        if self.fail_stop:
            raise DeviceUnavailable("device vanished")
        return AudioClip(pcm16_bytes=b"\x01\x00" * 1600)


class FakeScreenCapture:
    def __init__(self, image: object = None, delay_s: float = 0.0, error: Exception | None = None) -> None:
        self.image = image
        self.delay_s = delay_s
        self.error = error
        self.calls = 0
        self.done = threading.Event()

    def capture_focused_window(self, timeout_s: float) -> object:
        self.calls += 1
        try:
            if self.delay_s:
                time.sleep(self.delay_s)
            if self.error is not None:
                raise self.error
            return self.image
        finally:
            self.done.set()


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=2)
    yield pool
    pool.shutdown(wait=False)


def _session(audio, screen, executor, **kwargs) -> CaptureSession:  # noqa: ANN001
    return CaptureSession(
        chord="<ctrl>+m",
        audio_capture=audio,
        screen_capture=screen,
        executor=executor,
        **kwargs,
    )


def test_happy_path_with_image(executor) -> None:  # noqa: ANN001
    audio = FakeAudioCapture()
    screen = FakeScreenCapture(image="window.png")
    transitions: list[tuple[SessionState, SessionState]] = []
    session = _session(
        audio, screen, executor, on_state_change=lambda c, f, t: transitions.append((f, t))
    )

    assert session.begin() is True
    assert session.state == SessionState.RECORDING
    assert audio.starts == 1

    result = session.end()

    assert result is not None
    assert result.chord == "<ctrl>+m"
    assert result.image == "window.png"
    assert result.audio.duration_s == pytest.approx(0.1)
    assert session.state == SessionState.DONE
    assert transitions == [
        (SessionState.IDLE, SessionState.RECORDING),
        (SessionState.RECORDING, SessionState.STOPPING),
        (SessionState.STOPPING, SessionState.DONE),
    ]


def test_image_arriving_before_stop_is_kept(executor) -> None:  # noqa: ANN001
    screen = FakeScreenCapture(image="early")
    session = _session(FakeAudioCapture(), screen, executor)

    session.begin()
    assert screen.done.wait(1.0)
    time.sleep(0.05)

    result = session.end()
    assert result is not None and result.image == "early"


def test_repeated_begin_is_noop(executor) -> None:  # noqa: ANN001
    audio = FakeAudioCapture()
    screen = FakeScreenCapture()
    session = _session(audio, screen, executor)

    assert session.begin() is True
    assert session.begin() is False
    assert session.begin() is False

    assert audio.starts == 1
    session.end()
    assert screen.calls == 1


def test_end_without_begin_is_noop(executor) -> None:  # noqa: ANN001
    audio = FakeAudioCapture()
    session = _session(audio, FakeScreenCapture(), executor)

    assert session.end() is None
    assert audio.stops == 0
    assert session.state == SessionState.IDLE


def test_second_end_is_noop(executor) -> None:  # noqa: ANN001
    audio = FakeAudioCapture()
    session = _session(audio, FakeScreenCapture(), executor)
    session.begin()

    assert session.end() is not None
    assert session.end() is None
    assert audio.stops == 1


def test_no_window_is_not_an_error(executor) -> None:  # noqa: ANN001
    errors: list[tuple[str, str]] = []
    session = _session(
        FakeAudioCapture(), FakeScreenCapture(image=None), executor,
        on_error=lambda c, m: errors.append((c, m)),
    )
    session.begin()
    result = session.end()

    assert result is not None
    assert result.image is None
    assert errors == []
    assert session.state == SessionState.DONE


def test_screenshot_exception_is_swallowed(executor) -> None:  # noqa: ANN001
    session = _session(
        FakeAudioCapture(), FakeScreenCapture(error=RuntimeError("no permission")), executor
    )
    session.begin()
    result = session.end()

    assert result is not None
    assert result.image is None
    assert session.state == SessionState.DONE


def test_slow_screenshot_is_bounded_by_timeout(executor) -> None:  # noqa: ANN001
    screen = FakeScreenCapture(image="late", delay_s=1.0)
    session = _session(FakeAudioCapture(), screen, executor, screenshot_timeout_s=0.1)
    session.begin()

    started = time.monotonic()
    result = session.end()
    elapsed = time.monotonic() - started

    assert result is not None
    assert result.image is None
    assert elapsed < 0.6
    assert session.state == SessionState.DONE
    assert screen.done.wait(2.0)
    assert session.state == SessionState.DONE
    assert session.end() is None


def test_start_failure_marks_failed(executor) -> None:  # noqa: ANN001
    errors: list[tuple[str, str]] = []
    screen = FakeScreenCapture()
    session = _session(
        FakeAudioCapture(fail_start=True), screen, executor,
        on_error=lambda c, m: errors.append((c, m)),
    )

    assert session.begin() is False
    assert session.state == SessionState.FAILED
    assert errors == [(CAPTURE_UNAVAILABLE, "no input device")]
    assert screen.calls == 0
    assert session.end() is None


def test_stop_failure_marks_failed(executor) -> None:  # noqa: ANN001
    errors: list[tuple[str, str]] = []
    screen = FakeScreenCapture(image="shot")
    session = _session(
        FakeAudioCapture(fail_stop=True), screen, executor,
        on_error=lambda c, m: errors.append((c, m)),
    )
    session.begin()
    assert screen.done.wait(1.0)
    time.sleep(0.05)

    assert session.end() is None
    assert session.state == SessionState.FAILED
    assert errors == [(CAPTURE_UNAVAILABLE, "device vanished")]
