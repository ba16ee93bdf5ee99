"""Speech-to-text backends.

Three interchangeable implementations of the ``Transcriber`` protocol:

* ``OpenAITranscriber`` posts a WAV file to the OpenAI audio API.
* ``DashscopeTranscriber`` streams the clip to DashScope qwen3-asr-flash and
  keeps the last (most complete) chunk.
* ``LocalWhisperTranscriber`` runs faster-whisper on-device.

An empty string is a valid result meaning nothing intelligible was said.
Failures are raised as ``TranscriptionError`` carrying a vendor error code.
"""

from __future__ import annotations

import io
import os
import threading
from typing import Any, Optional

from config import AppConfig
from errors import (
    AUTH_FAILED,
    TRANSCRIPTION_FAILED,
    TranscriptionError,
    classify_vendor_error,
)
from logger import get_logger
from models import AudioClip

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore

try:
    import openai
except Exception:  # pragma: no cover
    openai = None  # type: ignore

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    from faster_whisper import WhisperModel
except Exception:  # pragma: no cover
    WhisperModel = None  # type: ignore

logger = get_logger(__name__)


def _to_error(exc: Exception) -> TranscriptionError:
    """Map an SDK/network exception to a TranscriptionError."""
    code = classify_vendor_error(exc) or TRANSCRIPTION_FAILED
    return TranscriptionError(str(exc), code=code)


class OpenAITranscriber:
    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-transcribe",
        language: str = "en",
        translate_model: str = "whisper-1",
        request_timeout_s: float = 30.0,
        client: Any = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._language = language
        self._translate_model = translate_model
        self._request_timeout_s = request_timeout_s
        self._client = client

    def _ensure_client(self) -> Any:
        if self._client is not None:
            return self._client
        if openai is None:
            raise TranscriptionError("openai is not installed")
        api_key = self._api_key or os.getenv("OPENAI_API_KEY", "")
        if not api_key:
            raise TranscriptionError("No API key configured", code=AUTH_FAILED)
        self._client = openai.OpenAI(api_key=api_key, timeout=self._request_timeout_s)
        return self._client

    def transcribe(self, audio: AudioClip, translate: bool = False) -> str:
        if not audio.pcm16_bytes:
            return ""
        client = self._ensure_client()
        upload = ("recording.wav", io.BytesIO(audio.to_wav_bytes()), "audio/wav")
        try:
            if translate:
                result = client.audio.translations.create(
                    model=self._translate_model,
                    file=upload,
                )
            else:
                result = client.audio.transcriptions.create(
                    model=self._model,
                    file=upload,
                    language=self._language,
                )
        except Exception as exc:
            raise _to_error(exc) from exc
        text = str(getattr(result, "text", "") or "").strip()
        logger.info("OpenAI transcription received (%d chars)", len(text))
        return text


class DashscopeTranscriber:
    def __init__(
        self,
        api_key: str,
        model: str = "qwen3-asr-flash",
        request_timeout_s: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._request_timeout_s = request_timeout_s

    def transcribe(self, audio: AudioClip, translate: bool = False) -> str:
        if not audio.pcm16_bytes:
            return ""
        if dashscope is None:
            raise TranscriptionError("dashscope is not installed")

        api_key = self._api_key or os.getenv("DASHSCOPE_API_KEY", "")
        if not api_key:
            raise TranscriptionError("No API key configured", code=AUTH_FAILED)
        if translate:
            logger.info("DashScope ASR has no translate mode, transcribing as-is")

        try:
            response = dashscope.MultiModalConversation.call(
                api_key=api_key,
                model=self._model,
                messages=[
                    {"role": "system", "content": [{"text": ""}]},
                    {"role": "user", "content": [{"audio": audio.to_wav_base64()}]},
                ],
                result_format="message",
                asr_options={"enable_itn": False},
                stream=True,
                timeout=self._request_timeout_s,
            )
            latest_text = ""
            for chunk in response:
                text = self._extract_text(chunk)
                if text:
                    latest_text = text
        except Exception as exc:
            raise _to_error(exc) from exc

        logger.info("DashScope transcription received (%d chars)", len(latest_text))
        return latest_text.strip()

    def _extract_text(self, chunk: object) -> str:
        """Pull text from a dashscope streaming chunk dict."""
        if isinstance(chunk, dict):
            output = chunk.get("output", {})
            choices = output.get("choices", [])
            if not choices:
                return ""
            message = choices[0].get("message", {})
            content = message.get("content", [])
            if not content:
                return ""
            value = content[0]
            if isinstance(value, dict):
                return str(value.get("text", ""))
        return ""


class LocalWhisperTranscriber:
    """faster-whisper running on-device; the model is loaded on first use."""

    def __init__(
        self,
        model_name: str = "large-v3",
        language: Optional[str] = None,
        device: str = "auto",
        compute_type: str = "default",
        beam_size: int = 5,
    ) -> None:
        self._model_name = model_name
        self._language = language
        self._device = device
        self._compute_type = compute_type
        self._beam_size = beam_size
        self._model: Any = None
        self._lock = threading.Lock()

    def _ensure_model(self) -> Any:
        with self._lock:
            if self._model is None:
                if WhisperModel is None:
                    raise TranscriptionError("faster-whisper is not installed")
                try:
                    self._model = WhisperModel(
                        self._model_name,
                        device=self._device,
                        compute_type=self._compute_type,
                    )
                except Exception as exc:
                    raise TranscriptionError(f"cannot load model {self._model_name}: {exc}") from exc
                logger.info("Loaded local whisper model %s", self._model_name)
            return self._model

    def transcribe(self, audio: AudioClip, translate: bool = False) -> str:
        if not audio.pcm16_bytes:
            return ""
        if np is None:
            raise TranscriptionError("numpy is not installed")
        model = self._ensure_model()

        samples = np.frombuffer(audio.pcm16_bytes, dtype=np.int16)
        if audio.channels > 1:
            samples = samples.reshape(-1, audio.channels).mean(axis=1)
        samples = (samples.astype(np.float32) / 32768.0).clip(-1.0, 1.0)

        try:
            segments, _info = model.transcribe(
                samples,
                language=self._language,
                task="translate" if translate else "transcribe",
                beam_size=self._beam_size,
                vad_filter=True,
            )
            text = " ".join(segment.text.strip() for segment in segments)
        except Exception as exc:
            raise TranscriptionError(f"local transcription failed: {exc}") from exc
        logger.info("Local transcription completed (%d chars)", len(text))
        return text.strip()


def create_transcriber(config: AppConfig) -> Any:
    """Pick the transcriber backend once, from configuration."""
    backend = config.transcriber.lower()
    if backend == "openai":
        return OpenAITranscriber(
            api_key=config.openai_api_key,
            model=config.transcription_model,
            language=config.transcription_language,
        )
    if backend == "dashscope":
        return DashscopeTranscriber(api_key=config.dashscope_api_key)
    if backend == "local":
        return LocalWhisperTranscriber(
            model_name=config.local_whisper_model,
            language=config.transcription_language or None,
        )
    raise ValueError(f"unknown transcriber backend: {config.transcriber}")
