"""
Default extraction engine.

Chooses a text backend by content type, parses the text into a candidate
PaystubData and caches confident results.

Strategy:
1. PDF with an embedded text layer - pdf_text fields
2. Scanned or unreadable PDF, or image - OCR fields (only if OCR is enabled)
3. Anything else - UnsupportedFileTypeError
"""

import logging
from typing import TYPE_CHECKING, Optional

from .base import (
    BaseExtractor,
    DocumentTooLargeError,
    ExtractionEngine,
    TextExtractionError,
    UnsupportedFileTypeError,
)
from .cache import ResultCache
from .ocr_extractor import OCRExtractor
from .paystub_parser import PaystubParser
from .pdf_extractor import PDFTextExtractor
from ..schemas.paystub import PaystubData

if TYPE_CHECKING:
    from ..config import ExtractorConfig

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
DEFAULT_MIN_PDF_TEXT_LENGTH = 100


class DocumentEngine(ExtractionEngine):
    """Extract paystub data from PDFs and images."""

    def __init__(
        self,
        pdf_extractor: Optional[BaseExtractor] = None,
        ocr_extractor: Optional[BaseExtractor] = None,
        parser: Optional[PaystubParser] = None,
        cache: Optional[ResultCache] = None,
        enable_ocr: bool = True,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        min_pdf_text_length: int = DEFAULT_MIN_PDF_TEXT_LENGTH,
    ):
        self.pdf_extractor = pdf_extractor or PDFTextExtractor()
        self.ocr_extractor = ocr_extractor or OCRExtractor()
        self.parser = parser or PaystubParser()
        self.cache = cache
        self.enable_ocr = enable_ocr
        self.max_file_size = max_file_size
        self.min_pdf_text_length = min_pdf_text_length

    @classmethod
    def from_config(cls, config: "ExtractorConfig") -> "DocumentEngine":
        cache = None
        if config.cache_enabled:
            cache = ResultCache(
                max_entries=config.cache_max_entries,
                ttl_seconds=config.cache_ttl_seconds,
                min_confidence=config.cache_min_confidence,
            )

        ocr_extractor = OCRExtractor(language=config.ocr_language)
        if config.enable_ocr and not ocr_extractor.is_available():
            logger.warning(
                "OCR is enabled but tesseract was not found; "
                "scanned documents and images will fail"
            )

        return cls(
            ocr_extractor=ocr_extractor,
            cache=cache,
            enable_ocr=config.enable_ocr,
            max_file_size=config.max_file_size,
            min_pdf_text_length=config.min_pdf_text_length,
        )

    def extract(self, data: bytes, content_type: str) -> PaystubData:
        if len(data) > self.max_file_size:
            raise DocumentTooLargeError(
                f"File size {len(data)} exceeds maximum of {self.max_file_size} bytes"
            )
        if not (
            self.pdf_extractor.can_extract(content_type)
            or self.ocr_extractor.can_extract(content_type)
        ):
            raise UnsupportedFileTypeError(f"Unsupported file type: {content_type}")

        if self.cache is not None:
            cached = self.cache.get(data, content_type)
            if cached is not None:
                logger.debug("Returning cached extraction result")
                return cached

        text, extractor = self._read_text(data, content_type)
        document = self.parser.parse(text, extractor.source)
        logger.info(
            f"Parsed {len(text)} chars via {extractor.name}: provider={document.provider}, "
            f"gross={'yes' if document.gross_pay else 'no'}, "
            f"net={'yes' if document.net_pay else 'no'}, "
            f"deductions={len(document.all_deductions())}"
        )

        if self.cache is not None:
            self.cache.put(data, content_type, document)
        return document

    def _read_text(self, data: bytes, content_type: str) -> tuple[str, BaseExtractor]:
        """Pick a backend and return its text together with the backend used."""
        if self.pdf_extractor.can_extract(content_type):
            try:
                text = self.pdf_extractor.extract_text(data, content_type)
            except TextExtractionError as e:
                if not self.enable_ocr:
                    raise
                logger.warning(f"PDF text extraction failed, using OCR: {e}")
                return self._ocr(data, content_type), self.ocr_extractor

            if len(text.strip()) > self.min_pdf_text_length:
                return text, self.pdf_extractor

            # No usable text layer, treat as a scanned document
            if not self.enable_ocr:
                raise TextExtractionError(
                    "PDF has no usable text layer and OCR is disabled"
                )
            logger.debug(f"PDF text layer too short ({len(text.strip())} chars), using OCR")
            return self._ocr(data, content_type), self.ocr_extractor

        if not self.enable_ocr:
            raise TextExtractionError("OCR is required for images but is disabled")
        return self._ocr(data, content_type), self.ocr_extractor

    def _ocr(self, data: bytes, content_type: str) -> str:
        text = self.ocr_extractor.extract_text(data, content_type)
        if not text.strip():
            raise TextExtractionError("OCR produced no text")
        return text
