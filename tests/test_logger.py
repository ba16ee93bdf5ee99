from __future__ import annotations

import logging
from pathlib import Path

import pytest

from logger import ROOT_LOGGER_NAME, configure_logging, get_logger, shutdown_logging


@pytest.fixture(autouse=True)
def _reset_logging():  # noqa: ANN202
    shutdown_logging()
    yield
    shutdown_logging()


def test_get_logger_namespaces_children() -> None:
    assert get_logger("dispatcher").name == "micgpt.dispatcher"
    assert get_logger("micgpt.overlay").name == "micgpt.overlay"
    assert get_logger().name == ROOT_LOGGER_NAME


def test_configure_logging_writes_file(tmp_path: Path) -> None:
    root = configure_logging(level="DEBUG", log_dir=tmp_path, to_console=False)

    get_logger("dispatcher").debug("chord %s pressed", "m")
    for handler in root.handlers:
        handler.flush()

    content = (tmp_path / "app.log").read_text(encoding="utf-8")
    assert "micgpt.dispatcher - DEBUG - chord m pressed" in content
    assert root.level == logging.DEBUG
    assert root.propagate is False


def test_configure_logging_is_idempotent(tmp_path: Path) -> None:
    first = configure_logging(log_dir=tmp_path, to_console=True)
    count = len(first.handlers)

    second = configure_logging(log_dir=tmp_path / "other", to_console=True)

    assert second is first
    assert len(second.handlers) == count == 2


def test_unknown_level_falls_back_to_info(tmp_path: Path) -> None:
    root = configure_logging(level="chatty", log_dir=tmp_path, to_console=False)

    assert root.level == logging.INFO
