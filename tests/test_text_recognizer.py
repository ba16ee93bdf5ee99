from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from PIL import Image

import text_recognizer
from errors import InvalidImage, NoTextFound, RecognitionError
from text_recognizer import TesseractRecognizer


class _TesseractNotFound(Exception):
    pass


@pytest.fixture
def fake_tesseract(monkeypatch):  # noqa: ANN001, ANN201
    fake = MagicMock()
    fake.TesseractNotFoundError = _TesseractNotFound
    monkeypatch.setattr(text_recognizer, "pytesseract", fake)
    return fake


def _image() -> Image.Image:
    return Image.new("RGB", (120, 40), "white")


def test_recognize_strips_blank_lines(fake_tesseract: MagicMock) -> None:
    fake_tesseract.image_to_string.return_value = "Invoice 42  \n\n  \nTotal: 10\n\x0c"

    text = TesseractRecognizer(languages="eng", psm=6).recognize(_image())

    assert text == "Invoice 42\nTotal: 10"
    kwargs = fake_tesseract.image_to_string.call_args.kwargs
    assert kwargs == {"lang": "eng", "config": "--psm 6"}


def test_blank_result_raises_no_text_found(fake_tesseract: MagicMock) -> None:
    fake_tesseract.image_to_string.return_value = " \n\x0c"

    with pytest.raises(NoTextFound):
        TesseractRecognizer().recognize(_image())


def test_missing_binary_raises_recognition_error(fake_tesseract: MagicMock) -> None:
    fake_tesseract.image_to_string.side_effect = _TesseractNotFound("tesseract is not installed")

    with pytest.raises(RecognitionError, match="tesseract binary not found"):
        TesseractRecognizer().recognize(_image())


def test_engine_failure_raises_invalid_image(fake_tesseract: MagicMock) -> None:
    fake_tesseract.image_to_string.side_effect = RuntimeError("unsupported mode")

    with pytest.raises(InvalidImage, match="unsupported mode"):
        TesseractRecognizer().recognize(_image())


@pytest.mark.parametrize("image", [None, "not-an-image", Image.new("RGB", (0, 0))])
def test_unusable_image_rejected(fake_tesseract: MagicMock, image: object) -> None:
    with pytest.raises(InvalidImage):
        TesseractRecognizer().recognize(image)
    fake_tesseract.image_to_string.assert_not_called()


def test_missing_dependency(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(text_recognizer, "pytesseract", None)

    with pytest.raises(RecognitionError, match="pytesseract is not installed"):
        TesseractRecognizer().recognize(_image())
