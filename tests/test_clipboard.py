from __future__ import annotations

from unittest.mock import MagicMock

import clipboard
from clipboard import PyperclipSink


def test_write_copies_text(monkeypatch) -> None:  # noqa: ANN001
    fake = MagicMock()
    monkeypatch.setattr(clipboard, "pyperclip", fake)

    PyperclipSink().write("hi there")

    fake.copy.assert_called_once_with("hi there")


def test_write_skips_blank_text(monkeypatch) -> None:  # noqa: ANN001
    fake = MagicMock()
    monkeypatch.setattr(clipboard, "pyperclip", fake)

    PyperclipSink().write("   ")

    fake.copy.assert_not_called()


def test_write_without_dependency_is_silent(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(clipboard, "pyperclip", None)

    PyperclipSink().write("hello")


def test_write_failure_is_not_raised(monkeypatch) -> None:  # noqa: ANN001
    fake = MagicMock()
    fake.copy.side_effect = RuntimeError("no clipboard mechanism")
    monkeypatch.setattr(clipboard, "pyperclip", fake)

    PyperclipSink().write("hello")

    fake.copy.assert_called_once_with("hello")
