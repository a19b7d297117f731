"""
Paystub extraction engines.

Provides:
- ExtractionEngine: Boundary used by the extraction pipeline
- DocumentEngine: Default engine (PDF text layer, OCR fallback)
- PatternMatcher: Payroll provider detection and field patterns
- PaystubParser: Text to candidate PaystubData
- ResultCache: TTL cache of confident results

Engines are pluggable: anything implementing ExtractionEngine can be
handed to the pipeline.
"""

from .base import (
    BaseExtractor,
    DocumentTooLargeError,
    ExtractionEngine,
    ExtractionError,
    TextExtractionError,
    UnsupportedFileTypeError,
)
from .cache import ResultCache
from .engine import DocumentEngine
from .ocr_extractor import OCRExtractor
from .paystub_parser import PaystubParser
from .patterns import PatternMatcher
from .pdf_extractor import PDFTextExtractor

__all__ = [
    "ExtractionEngine",
    "DocumentEngine",
    "BaseExtractor",
    "PDFTextExtractor",
    "OCRExtractor",
    "PatternMatcher",
    "PaystubParser",
    "ResultCache",
    "ExtractionError",
    "UnsupportedFileTypeError",
    "DocumentTooLargeError",
    "TextExtractionError",
]
