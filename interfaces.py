"""Protocol interfaces for the capture/response collaborators."""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol

from models import AudioClip, RecordingHandle, ResponderReply


class AudioCapture(Protocol):
    def start(self) -> RecordingHandle: ...

    def stop(self, handle: RecordingHandle) -> AudioClip: ...


class ScreenCapture(Protocol):
    def capture_focused_window(self, timeout_s: float) -> Optional[Any]: ...


class TextRecognizer(Protocol):
    def recognize(self, image: Any) -> str: ...


class Transcriber(Protocol):
    def transcribe(self, audio: AudioClip, translate: bool = False) -> str: ...


class Responder(Protocol):
    supports_images: bool

    def respond(
        self,
        text: str,
        image: Optional[Any] = None,
        instructions: str = "",
        previous_response_id: Optional[str] = None,
    ) -> ResponderReply: ...


class ClipboardSink(Protocol):
    def write(self, text: str) -> None: ...


class Notifier(Protocol):
    def enqueue(self, text: str) -> Any: ...

    def dismiss_current(self) -> None: ...


class NotificationView(Protocol):
    def show_message(self, text: str) -> None: ...

    def clear(self) -> None: ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def schedule(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle: ...


class ConfigStore(Protocol):
    def get_api_key(self) -> str: ...

    def set_api_key(self, key: str) -> None: ...

    def get_hotkey(self, flow: str) -> str: ...

    def set_hotkey(self, flow: str, hotkey: str) -> None: ...
