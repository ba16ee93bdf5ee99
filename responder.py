"""Conversational completion backends."""

from __future__ import annotations

import os
from typing import Any, Optional

import httpx

from config import AppConfig
from errors import (
    NETWORK_ERROR,
    RESPONSE_BACKEND_UNAVAILABLE,
    RESPONSE_FAILED,
    BackendError,
    BackendUnavailable,
    ImageUnsupported,
    classify_vendor_error,
    format_error,
)
from logger import get_logger
from models import ResponderReply
from screen_capture import to_data_url

try:
    import openai
except Exception:  # pragma: no cover
    openai = None  # type: ignore

logger = get_logger(__name__)

NO_RESPONSE_TEXT = "No response"


class OpenAIResponder:
    """OpenAI Responses API; threads turns with ``previous_response_id``."""

    supports_images = True

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-5-mini",
        request_timeout_s: float = 60.0,
        client: Any = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._request_timeout_s = request_timeout_s
        self._client = client

    def _ensure_client(self) -> Any:
        if self._client is not None:
            return self._client
        if openai is None:
            raise BackendUnavailable("openai is not installed")
        api_key = self._api_key or os.getenv("OPENAI_API_KEY", "")
        if not api_key:
            raise BackendUnavailable("OpenAI client not initialized: set OPENAI_API_KEY")
        self._client = openai.OpenAI(api_key=api_key, timeout=self._request_timeout_s)
        return self._client

    def respond(
        self,
        text: str,
        image: Optional[Any] = None,
        instructions: str = "",
        previous_response_id: Optional[str] = None,
    ) -> ResponderReply:
        client = self._ensure_client()

        if image is not None:
            user_input: Any = [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": text},
                        {"type": "input_image", "image_url": to_data_url(image), "detail": "auto"},
                    ],
                }
            ]
        else:
            user_input = text

        kwargs: dict[str, Any] = {"model": self._model, "input": user_input}
        if instructions:
            kwargs["instructions"] = instructions
        if previous_response_id:
            kwargs["previous_response_id"] = previous_response_id

        logger.info(
            "Calling Responses API (image=%s, previous=%s)",
            image is not None,
            previous_response_id,
        )
        try:
            response = client.responses.create(**kwargs)
        except Exception as exc:
            raise self._to_error(exc, with_image=image is not None) from exc

        reply = _extract_response_text(response) or NO_RESPONSE_TEXT
        response_id = getattr(response, "id", None)
        logger.info("Response %s received (%d chars)", response_id, len(reply))
        return ResponderReply(text=reply, response_id=response_id)

    def _to_error(self, exc: Exception, with_image: bool) -> Exception:
        if openai is not None and isinstance(exc, (openai.APIConnectionError, openai.APITimeoutError)):
            return BackendUnavailable(str(exc))
        code = classify_vendor_error(exc)
        if code == NETWORK_ERROR:
            return BackendUnavailable(str(exc))
        if with_image and "image" in str(exc).lower():
            return ImageUnsupported(str(exc))
        return BackendError(str(exc), code=code or RESPONSE_FAILED)


def _extract_response_text(response: Any) -> str:
    text = getattr(response, "output_text", None)
    if isinstance(text, str) and text.strip():
        return text.strip()

    parts: list[str] = []
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", "") != "message":
            continue
        for content in getattr(item, "content", None) or []:
            if getattr(content, "type", "") == "output_text":
                parts.append(str(getattr(content, "text", "")))
            elif getattr(content, "type", "") == "refusal":
                logger.info("Refusal: %s", getattr(content, "refusal", ""))
    return " ".join(p.strip() for p in parts if p.strip())


class LMStudioResponder:
    """Local OpenAI-compatible chat endpoint (LM Studio). Text only, stateless."""

    supports_images = False

    def __init__(
        self,
        base_url: str = "http://localhost:1234/v1",
        model: str = "local-model",
        timeout_s: float = 30.0,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._client = client or httpx.Client(base_url=self.base_url, timeout=timeout_s)

    def is_available(self) -> bool:
        try:
            response = self._client.get("/models", timeout=5.0)
        except httpx.HTTPError as exc:
            logger.info("LM Studio not available: %s", exc)
            return False
        return response.status_code == 200

    def respond(
        self,
        text: str,
        image: Optional[Any] = None,
        instructions: str = "",
        previous_response_id: Optional[str] = None,
    ) -> ResponderReply:
        if image is not None:
            raise ImageUnsupported("LM Studio endpoint does not accept images")

        messages = []
        if instructions:
            messages.append({"role": "system", "content": instructions})
        messages.append({"role": "user", "content": text})
        payload = {
            "model": self._model,
            "messages": messages,
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
            "stream": False,
        }

        logger.info("Sending message to LM Studio (%d chars)", len(text))
        try:
            response = self._client.post("/chat/completions", json=payload)
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            raise BackendUnavailable(f"LM Studio unreachable: {exc}") from exc
        except httpx.HTTPError as exc:
            raise BackendError(f"Network error: {exc}") from exc

        if response.status_code != 200:
            raise BackendError(f"HTTP {response.status_code}: {response.text}")

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise BackendError(f"Failed to decode response: {response.text}") from exc

        return ResponderReply(text=str(content).strip() or NO_RESPONSE_TEXT, response_id=data.get("id"))

    def close(self) -> None:
        self._client.close()


def create_responder(config: AppConfig) -> Any:
    """Pick the responder backend once, from configuration."""
    backend = config.responder.lower()
    if backend == "openai":
        return OpenAIResponder(api_key=config.openai_api_key, model=config.response_model)
    if backend == "lmstudio":
        return LMStudioResponder(base_url=config.lmstudio_base_url, model=config.lmstudio_model)
    raise ValueError(f"unknown responder backend: {config.responder}")


def backend_warning(responder: Any) -> str:
    """Notification text for a local backend that is down at startup, else ``""``."""
    if not isinstance(responder, LMStudioResponder) or responder.is_available():
        return ""
    return format_error(RESPONSE_BACKEND_UNAVAILABLE, f"LM Studio is not running at {responder.base_url}")
