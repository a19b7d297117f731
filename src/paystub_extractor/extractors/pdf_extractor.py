"""
PDF text layer extractor.

Reads the embedded text of digitally generated paystubs with pdfplumber.
Scanned PDFs have no text layer; the engine falls back to OCR for those.
"""

import logging
from io import BytesIO

import pdfplumber

from ..schemas.paystub import FieldSource
from .base import BaseExtractor, TextExtractionError

logger = logging.getLogger(__name__)

SOFT_HYPHEN = "\u00ad"


def _clean_line(line: str) -> str:
    return " ".join(line.replace(SOFT_HYPHEN, "").split())


def _page_to_text(page: pdfplumber.page.Page) -> str:
    # layout=True keeps label/value columns on one line ("Gross Pay   5,000.00")
    extracted = page.extract_text(layout=True) or ""
    return "\n".join(_clean_line(ln) for ln in extracted.splitlines() if ln.strip())


class PDFTextExtractor(BaseExtractor):
    """Extract the embedded text layer from PDF documents."""

    def __init__(self, max_pages: int | None = None):
        self.max_pages = max_pages

    @property
    def name(self) -> str:
        return "pdf_text"

    @property
    def source(self) -> FieldSource:
        return FieldSource.PDF_TEXT

    def can_extract(self, content_type: str) -> bool:
        return "pdf" in content_type.lower()

    def extract_text(self, data: bytes, content_type: str = "application/pdf") -> str:
        try:
            with pdfplumber.open(BytesIO(data)) as pdf:
                pages = pdf.pages[: self.max_pages] if self.max_pages else pdf.pages
                page_texts = [text for page in pages if (text := _page_to_text(page))]
        except Exception as e:
            raise TextExtractionError(f"Could not read PDF text layer: {e}") from e

        text = "\n".join(page_texts).strip()
        logger.debug(f"PDF text layer: {len(page_texts)} page(s), {len(text)} chars")
        return text
