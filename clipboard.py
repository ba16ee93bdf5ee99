"""Clipboard sink for published text."""

from __future__ import annotations

from logger import get_logger

try:
    import pyperclip
except Exception:  # pragma: no cover
    pyperclip = None  # type: ignore

logger = get_logger(__name__)


class PyperclipSink:
    """Fire-and-forget clipboard writer; failures are logged, not raised."""

    def write(self, text: str) -> None:
        if not text.strip():
            return
        if pyperclip is None:
            logger.warning("pyperclip is not installed, clipboard not updated")
            return
        try:
            pyperclip.copy(text)
        except Exception as exc:
            logger.warning("Clipboard write failed: %s", exc)
