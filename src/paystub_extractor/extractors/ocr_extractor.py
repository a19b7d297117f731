"""
OCR extractor.

Runs Tesseract (via pytesseract) over images and over rendered pages of
scanned PDFs. This is the lowest-confidence source but the only one that
works for photos and scans.
"""

import logging
from io import BytesIO

import pytesseract
from pdf2image import convert_from_bytes
from PIL import Image

from ..schemas.paystub import FieldSource
from .base import BaseExtractor, TextExtractionError

logger = logging.getLogger(__name__)

# Assume a single uniform block of text, which suits paystub tables
DEFAULT_TESSERACT_CONFIG = "--psm 6"


class OCRExtractor(BaseExtractor):
    """Extract text from images and scanned PDFs with Tesseract."""

    def __init__(
        self,
        language: str = "eng",
        tesseract_config: str = DEFAULT_TESSERACT_CONFIG,
        dpi: int = 300,
    ):
        self.language = language
        self.tesseract_config = tesseract_config
        self.dpi = dpi

    @property
    def name(self) -> str:
        return "ocr"

    @property
    def source(self) -> FieldSource:
        return FieldSource.OCR

    def can_extract(self, content_type: str) -> bool:
        content_type = content_type.lower()
        return "image" in content_type or "pdf" in content_type

    def is_available(self) -> bool:
        """Check that the tesseract binary can be found."""
        try:
            pytesseract.get_tesseract_version()
            return True
        except pytesseract.TesseractNotFoundError:
            return False

    def extract_text(self, data: bytes, content_type: str) -> str:
        try:
            if "pdf" in content_type.lower():
                images = convert_from_bytes(data, dpi=self.dpi)
            else:
                images = [Image.open(BytesIO(data))]

            page_texts = [self._image_to_text(image) for image in images]
        except pytesseract.TesseractNotFoundError as e:
            raise TextExtractionError("Tesseract is not installed") from e
        except Exception as e:
            raise TextExtractionError(f"OCR failed: {e}") from e

        text = "\n".join(t for t in page_texts if t).strip()
        logger.debug(f"OCR: {len(images)} page(s), {len(text)} chars")
        return text

    def _image_to_text(self, image: Image.Image) -> str:
        # Grayscale improves recognition on coloured payroll forms
        if image.mode not in ("L", "1"):
            image = image.convert("L")
        return pytesseract.image_to_string(
            image, lang=self.language, config=self.tesseract_config
        ).strip()
