"""OCR over screenshots using Tesseract."""

from __future__ import annotations

from typing import Any

from errors import InvalidImage, NoTextFound, RecognitionError
from logger import get_logger

try:
    import pytesseract
except Exception:  # pragma: no cover
    pytesseract = None  # type: ignore

try:
    from PIL import Image
except Exception:  # pragma: no cover
    Image = None  # type: ignore

logger = get_logger(__name__)


class TesseractRecognizer:
    def __init__(self, languages: str = "eng", psm: int = 3) -> None:
        self._languages = languages
        self._psm = psm

    def recognize(self, image: Any) -> str:
        if pytesseract is None:
            raise RecognitionError("pytesseract is not installed")
        if image is None or (Image is not None and not isinstance(image, Image.Image)):
            raise InvalidImage("Could not load the image")
        width, height = image.size
        if width == 0 or height == 0:
            raise InvalidImage("Image is empty")

        try:
            raw = pytesseract.image_to_string(
                image,
                lang=self._languages,
                config=f"--psm {self._psm}",
            )
        except pytesseract.TesseractNotFoundError as exc:
            raise RecognitionError("tesseract binary not found") from exc
        except Exception as exc:
            raise InvalidImage(f"Image could not be processed: {exc}") from exc

        lines = [line.rstrip() for line in raw.splitlines()]
        text = "\n".join(line for line in lines if line.strip())
        if not text:
            raise NoTextFound("No text found in the image")
        logger.info("Recognized %d characters", len(text))
        return text
