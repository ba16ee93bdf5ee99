"""Shared error codes, user-facing messages and exception types."""

from __future__ import annotations

CAPTURE_UNAVAILABLE = "CAPTURE_UNAVAILABLE"
NO_ACTIVE_WINDOW = "NO_ACTIVE_WINDOW"
EMPTY_TRANSCRIPT = "EMPTY_TRANSCRIPT"
TRANSCRIPTION_FAILED = "TRANSCRIPTION_FAILED"
RESPONSE_BACKEND_UNAVAILABLE = "RESPONSE_BACKEND_UNAVAILABLE"
RESPONSE_FAILED = "RESPONSE_FAILED"
RECOGNITION_FAILED = "RECOGNITION_FAILED"
NETWORK_ERROR = "NETWORK_ERROR"
AUTH_FAILED = "AUTH_FAILED"

ERROR_MESSAGES = {
    CAPTURE_UNAVAILABLE: "Microphone is unavailable.",
    NO_ACTIVE_WINDOW: "No active window to capture.",
    EMPTY_TRANSCRIPT: "No transcription available.",
    TRANSCRIPTION_FAILED: "Transcription failed.",
    RESPONSE_BACKEND_UNAVAILABLE: "Response backend is not available.",
    RESPONSE_FAILED: "Response request failed.",
    RECOGNITION_FAILED: "Text recognition failed.",
    NETWORK_ERROR: "Network failed, please retry.",
    AUTH_FAILED: "API key is invalid.",
}

# Codes that are reported as plain information rather than as errors.
INFO_CODES = frozenset({EMPTY_TRANSCRIPT})


def format_error(code: str, detail: str = "") -> str:
    """Build the single notification text shown for an error code."""
    message = ERROR_MESSAGES.get(code, code)
    if code in INFO_CODES:
        return f"ℹ️ {message}"
    if detail:
        return f"❌ {message}\n\n{detail}"
    return f"❌ {message}"


class MicGptError(Exception):
    code = "ERROR"

    def __init__(self, message: str = "", code: str | None = None) -> None:
        super().__init__(message or ERROR_MESSAGES.get(code or self.code, ""))
        if code is not None:
            self.code = code


class DeviceUnavailable(MicGptError):
    code = CAPTURE_UNAVAILABLE


class TranscriptionError(MicGptError):
    code = TRANSCRIPTION_FAILED


class BackendUnavailable(MicGptError):
    code = RESPONSE_BACKEND_UNAVAILABLE


class BackendError(MicGptError):
    code = RESPONSE_FAILED


class ImageUnsupported(BackendError):
    """The responder rejected an image attachment."""


class RecognitionError(MicGptError):
    code = RECOGNITION_FAILED


class NoTextFound(RecognitionError):
    pass


class InvalidImage(RecognitionError):
    pass


def classify_vendor_error(exc: Exception) -> str:
    """Map an SDK/network exception message to AUTH_FAILED or NETWORK_ERROR."""
    low = str(exc).lower()
    if "401" in low or "auth" in low or "api key" in low:
        return AUTH_FAILED
    if "timeout" in low or "timed out" in low or "network" in low or "connection" in low:
        return NETWORK_ERROR
    return ""
