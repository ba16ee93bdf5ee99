"""Simple JSON-based config store."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path

ASSISTANT_INSTRUCTIONS = "You are a helpful assistant. Answer VERY SHORTLY and to the point in English."

TRANSLATOR_INSTRUCTIONS = """\
You are a translator.
Translate speech-to-text into English with minimal rephrasing so it's clear to English speakers.
Smooth only obvious recognition errors.
Use image context if provided.
Do not add or omit content.
Respond with translated text only.
"""

HOTKEY_FLOWS = ("assistant", "translate", "ocr")


@dataclass(frozen=True)
class AppConfig:
    openai_api_key: str = ""
    dashscope_api_key: str = ""
    assistant_hotkey: str = "<ctrl>+<alt>+<cmd>+m"
    translate_hotkey: str = "<ctrl>+<alt>+<cmd>+t"
    ocr_hotkey: str = "<ctrl>+<alt>+<cmd>+b"
    transcriber: str = "openai"
    responder: str = "openai"
    transcription_model: str = "gpt-4o-transcribe"
    transcription_language: str = "en"
    response_model: str = "gpt-5-mini"
    local_whisper_model: str = "large-v3"
    lmstudio_base_url: str = "http://localhost:1234/v1"
    lmstudio_model: str = "local-model"
    notification_dwell_s: float = 3.0
    screenshot_timeout_s: float = 1.5
    log_level: str = "INFO"


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "micgpt" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> AppConfig:
        """Build an AppConfig from the file, ignoring unknown or mistyped keys."""
        data = self._read_all()
        defaults = AppConfig()
        values = {}
        for f in fields(AppConfig):
            default = getattr(defaults, f.name)
            raw = data.get(f.name, default)
            try:
                values[f.name] = type(default)(raw)
            except (TypeError, ValueError):
                values[f.name] = default
        if not values["openai_api_key"]:
            values["openai_api_key"] = os.getenv("OPENAI_API_KEY", "")
        if not values["dashscope_api_key"]:
            values["dashscope_api_key"] = os.getenv("DASHSCOPE_API_KEY", "")
        return AppConfig(**values)

    def get_api_key(self) -> str:
        data = self._read_all()
        return str(data.get("openai_api_key", ""))

    def set_api_key(self, key: str) -> None:
        data = self._read_all()
        data["openai_api_key"] = key
        self._write_all(data)

    def get_hotkey(self, flow: str) -> str:
        key = self._hotkey_key(flow)
        data = self._read_all()
        return str(data.get(key, getattr(AppConfig(), key)))

    def set_hotkey(self, flow: str, hotkey: str) -> None:
        key = self._hotkey_key(flow)
        data = self._read_all()
        data[key] = hotkey
        self._write_all(data)

    @staticmethod
    def _hotkey_key(flow: str) -> str:
        if flow not in HOTKEY_FLOWS:
            raise ValueError(f"unknown flow: {flow}")
        return f"{flow}_hotkey"

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
