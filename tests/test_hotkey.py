from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

import hotkey as hotkey_mod
from hotkey import ChordTracker, GlobalHotkeyAdapter, is_valid_chord


def _tracker() -> ChordTracker:
    return ChordTracker(
        {
            "voice": ["ctrl", "alt", "cmd", "m"],
            "ocr": ["ctrl", "alt", "cmd", "b"],
        }
    )


def test_chord_fires_when_last_key_goes_down() -> None:
    tracker = _tracker()

    assert tracker.press("ctrl") == []
    assert tracker.press("alt") == []
    assert tracker.press("cmd") == []
    assert tracker.press("m") == ["voice"]
    assert tracker.active == frozenset({"voice"})


def test_auto_repeat_does_not_refire() -> None:
    tracker = _tracker()
    for key in ("ctrl", "alt", "cmd", "m"):
        tracker.press(key)

    assert tracker.press("m") == []
    assert tracker.press("m") == []


def test_release_fires_once_on_first_chord_key_up() -> None:
    tracker = _tracker()
    for key in ("ctrl", "alt", "cmd", "m"):
        tracker.press(key)

    assert tracker.release("ctrl") == ["voice"]
    assert tracker.release("m") == []
    assert tracker.active == frozenset()


def test_unrelated_key_release_keeps_chord_active() -> None:
    tracker = _tracker()
    for key in ("ctrl", "alt", "cmd", "m", "shift"):
        tracker.press(key)

    assert tracker.release("shift") == []
    assert tracker.active == frozenset({"voice"})


def test_two_chords_can_be_held_together() -> None:
    tracker = _tracker()
    for key in ("ctrl", "alt", "cmd", "m"):
        tracker.press(key)

    assert tracker.press("b") == ["ocr"]
    assert tracker.release("m") == ["voice"]
    assert tracker.active == frozenset({"ocr"})


def test_reset_reports_active_chords() -> None:
    tracker = _tracker()
    for key in ("ctrl", "alt", "cmd", "m"):
        tracker.press(key)

    assert tracker.reset() == ["voice"]
    assert tracker.active == frozenset()


def test_adapter_requires_pynput(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(hotkey_mod, "keyboard", None)
    adapter = GlobalHotkeyAdapter(["<ctrl>+m"])

    with pytest.raises(RuntimeError, match="pynput is not installed"):
        adapter.start(lambda c: None, lambda c: None)


@patch("hotkey.keyboard")
def test_adapter_routes_listener_events(mock_keyboard: MagicMock) -> None:
    mock_keyboard.HotKey.parse.side_effect = lambda chord: chord.split("+")
    listener = MagicMock()
    listener.canonical.side_effect = lambda key: key
    mock_keyboard.Listener.return_value = listener

    pressed: list[str] = []
    released: list[str] = []
    adapter = GlobalHotkeyAdapter(["ctrl+m"])
    adapter.start(pressed.append, released.append)

    on_press = mock_keyboard.Listener.call_args.kwargs["on_press"]
    on_release = mock_keyboard.Listener.call_args.kwargs["on_release"]
    on_press("ctrl")
    on_press("m")
    on_press("m")
    on_release("m")

    assert pressed == ["ctrl+m"]
    assert released == ["ctrl+m"]
    listener.start.assert_called_once()

    adapter.stop()
    listener.stop.assert_called_once()


# ---------------------------------------------------------------
# Chord validation
# ---------------------------------------------------------------

@patch("hotkey.keyboard")
def test_is_valid_chord_uses_pynput_parser(mock_keyboard: MagicMock) -> None:
    def parse(chord: str) -> list[str]:
        if chord.endswith("+"):
            raise ValueError(chord)
        return chord.split("+")

    mock_keyboard.HotKey.parse.side_effect = parse

    assert is_valid_chord("<ctrl>+<alt>+m") is True
    assert is_valid_chord("<ctrl>+") is False


def test_blank_chord_is_invalid() -> None:
    assert is_valid_chord("") is False
    assert is_valid_chord("   ") is False


def test_is_valid_chord_without_pynput(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(hotkey_mod, "keyboard", None)

    assert is_valid_chord("<ctrl>+m") is True
