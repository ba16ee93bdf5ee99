from __future__ import annotations

from pathlib import Path

import pytest

from config import AppConfig, JsonConfigStore


def test_config_read_write(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    store = JsonConfigStore(path=path)

    assert store.get_api_key() == ""
    assert store.get_hotkey("assistant") == "<ctrl>+<alt>+<cmd>+m"

    store.set_api_key("abc")
    store.set_hotkey("ocr", "<ctrl>+<shift>+o")

    reloaded = JsonConfigStore(path=path)
    assert reloaded.get_api_key() == "abc"
    assert reloaded.get_hotkey("ocr") == "<ctrl>+<shift>+o"
    assert reloaded.load().ocr_hotkey == "<ctrl>+<shift>+o"


def test_config_invalid_json_fallback(tmp_path: Path, monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("DASHSCOPE_API_KEY", raising=False)
    path = tmp_path / "config.json"
    path.write_text("{invalid", encoding="utf-8")

    store = JsonConfigStore(path=path)
    assert store.get_api_key() == ""
    assert store.load() == AppConfig()


def test_load_coerces_and_ignores_bad_values(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        '{"notification_dwell_s": "5", "screenshot_timeout_s": "soon", "responder": "lmstudio", "extra": 1}',
        encoding="utf-8",
    )

    config = JsonConfigStore(path=path).load()

    assert config.notification_dwell_s == 5.0
    assert config.screenshot_timeout_s == AppConfig().screenshot_timeout_s
    assert config.responder == "lmstudio"


def test_api_keys_fall_back_to_environment(tmp_path: Path, monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("DASHSCOPE_API_KEY", "ds-env")

    config = JsonConfigStore(path=tmp_path / "config.json").load()

    assert config.openai_api_key == "sk-env"
    assert config.dashscope_api_key == "ds-env"


def test_unknown_hotkey_flow_rejected(tmp_path: Path) -> None:
    store = JsonConfigStore(path=tmp_path / "config.json")

    with pytest.raises(ValueError):
        store.get_hotkey("dictation")
