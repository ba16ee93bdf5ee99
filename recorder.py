"""Microphone recorder adapter."""

from __future__ import annotations

import threading
from typing import Any

from errors import DeviceUnavailable
from logger import get_logger
from models import AudioClip, RecordingHandle

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = get_logger(__name__)


class SoundDeviceRecorder:
    """One shared input stream feeding any number of overlapping recordings.

    Each ``start()`` gets its own buffer; the stream opens with the first
    recording and closes when the last one stops.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        chunk_ms: int = 100,
        max_seconds: float = 300.0,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self.max_seconds = max_seconds
        self._stream: Any = None
        self._lock = threading.Lock()
        self._buffers: dict[int, list[bytes]] = {}
        self._buffered: dict[int, int] = {}
        self._recording_id = 0
        self.dropped_chunks = 0

    @property
    def is_recording(self) -> bool:
        return bool(self._buffers)

    def start(self) -> RecordingHandle:
        with self._lock:
            if sd is None:
                raise DeviceUnavailable("sounddevice is not installed")
            if self._stream is None:
                self._open_stream()
            self._recording_id += 1
            recording_id = self._recording_id
            self._buffers[recording_id] = []
            self._buffered[recording_id] = 0
        logger.info("Recording %d started (%d active)", recording_id, len(self._buffers))
        return RecordingHandle(recording_id=recording_id)

    def stop(self, handle: RecordingHandle) -> AudioClip:
        with self._lock:
            chunks = self._buffers.pop(handle.recording_id, None)
            self._buffered.pop(handle.recording_id, None)
            if chunks is None:
                raise DeviceUnavailable(f"unknown recording {handle.recording_id}")
            stream = None
            if not self._buffers:
                stream, self._stream = self._stream, None
        # PortAudio waits for the callback to return, so stop outside the lock
        self._close_stream(stream)
        clip = AudioClip(
            pcm16_bytes=b"".join(chunks),
            sample_rate=self.sample_rate,
            channels=self.channels,
        )
        logger.info(
            "Recording %d stopped: %.2fs, %d dropped chunks",
            handle.recording_id,
            clip.duration_s,
            self.dropped_chunks,
        )
        return clip

    def _open_stream(self) -> None:
        self.dropped_chunks = 0
        blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
        try:
            self._stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
                blocksize=blocksize,
                callback=self._on_audio,
            )
            self._stream.start()
        except Exception as exc:
            self._stream = None
            raise DeviceUnavailable(f"cannot open input device: {exc}") from exc

    @staticmethod
    def _close_stream(stream: Any) -> None:
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except Exception as exc:
            raise DeviceUnavailable(f"cannot stop input device: {exc}") from exc

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if np is None:
            return
        payload = np.asarray(indata, dtype=np.int16).tobytes()
        limit = int(self.max_seconds * self.sample_rate * self.channels * 2)
        with self._lock:
            for recording_id, chunks in self._buffers.items():
                if self._buffered[recording_id] + len(payload) > limit:
                    self.dropped_chunks += 1
                    continue
                chunks.append(payload)
                self._buffered[recording_id] += len(payload)
