"""
Extraction engine boundary and common extractor types.
"""

from abc import ABC, abstractmethod

from ..schemas.paystub import FieldSource, PaystubData


class ExtractionError(Exception):
    """Raised when a document cannot be turned into paystub data."""

    pass


class UnsupportedFileTypeError(ExtractionError):
    """Content type is neither a PDF nor an image."""

    pass


class DocumentTooLargeError(ExtractionError):
    """Payload exceeds the configured maximum file size."""

    pass


class TextExtractionError(ExtractionError):
    """The text/OCR backend could not read the document."""

    pass


class ExtractionEngine(ABC):
    """
    Turns raw document bytes into a candidate PaystubData.

    Every ExtractedField in the result must carry its source. Failures
    are reported by raising ExtractionError, never by returning None.
    """

    @abstractmethod
    def extract(self, data: bytes, content_type: str) -> PaystubData:
        """
        Extract paystub data from a document.

        Args:
            data: Raw document bytes
            content_type: MIME type, e.g. "application/pdf" or "image/png"

        Returns:
            Candidate PaystubData with source-tagged fields

        Raises:
            ExtractionError: If the document cannot be processed
        """
        pass


class BaseExtractor(ABC):
    """
    Base class for text backends used by the document engine.

    Each backend implements one strategy:
    - Embedded PDF text layer
    - OCR over images or rendered PDF pages
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Extractor name for logging and provenance."""
        pass

    @property
    @abstractmethod
    def source(self) -> FieldSource:
        """Source tag applied to every field read from this backend's text."""
        pass

    @abstractmethod
    def can_extract(self, content_type: str) -> bool:
        """Check if this backend handles the given content type."""
        pass

    @abstractmethod
    def extract_text(self, data: bytes, content_type: str) -> str:
        """
        Read plain text from the document.

        Raises:
            TextExtractionError: If the backend fails
        """
        pass
