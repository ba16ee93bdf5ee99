"""Core data models for the app."""

from __future__ import annotations

import base64
import io
import time
import wave
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class SessionState(str, Enum):
    IDLE = "IDLE"
    RECORDING = "RECORDING"
    STOPPING = "STOPPING"
    DONE = "DONE"
    FAILED = "FAILED"


class NotificationState(str, Enum):
    EMPTY = "EMPTY"
    SHOWING = "SHOWING"


class FlowKind(str, Enum):
    ASSISTANT = "assistant"
    TRANSLATE = "translate"
    OCR = "ocr"


@dataclass
class AudioClip:
    pcm16_bytes: bytes
    sample_rate: int = 16000
    channels: int = 1

    @property
    def duration_s(self) -> float:
        frame_bytes = 2 * self.channels
        if not frame_bytes or not self.sample_rate:
            return 0.0
        return len(self.pcm16_bytes) / frame_bytes / self.sample_rate

    def to_wav_bytes(self) -> bytes:
        buf = io.BytesIO()
        with wave.open(buf, "wb") as wf:
            wf.setnchannels(self.channels)
            wf.setsampwidth(2)
            wf.setframerate(self.sample_rate)
            wf.writeframes(self.pcm16_bytes)
        return buf.getvalue()

    def to_wav_base64(self) -> str:
        return base64.b64encode(self.to_wav_bytes()).decode("ascii")


@dataclass
class RecordingHandle:
    """Opaque token returned by ``AudioCapture.start``."""

    recording_id: int
    started_at: float = field(default_factory=time.monotonic)


@dataclass
class CaptureResult:
    chord: str
    audio: AudioClip
    image: Optional[Any] = None
    started_at: float = 0.0
    duration_s: float = 0.0


@dataclass
class ResponderReply:
    text: str
    response_id: Optional[str] = None


@dataclass
class NotificationMessage:
    text: str
    enqueued_at: float = field(default_factory=time.monotonic)


@dataclass
class PipelineOutcome:
    transcript: str = ""
    reply: str = ""
    error_code: str = ""

    @property
    def ok(self) -> bool:
        return not self.error_code
