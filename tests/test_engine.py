"""Tests for the default document engine and its text backends."""

import logging
from io import BytesIO
from unittest.mock import MagicMock, patch

import pytest
from conftest import SAMPLE_ADP_TEXT

from paystub_extractor.config import ExtractorConfig
from paystub_extractor.extractors import (
    BaseExtractor,
    DocumentEngine,
    DocumentTooLargeError,
    OCRExtractor,
    PDFTextExtractor,
    ResultCache,
    TextExtractionError,
    UnsupportedFileTypeError,
)
from paystub_extractor.schemas import FieldSource


class FakeExtractor(BaseExtractor):
    """Text backend returning fixed text."""

    def __init__(
        self,
        name: str,
        source: FieldSource,
        text: str,
        handles: tuple[str, ...],
        error: Exception | None = None,
    ):
        self._name = name
        self._source = source
        self.text = text
        self.handles = handles
        self.error = error
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def source(self) -> FieldSource:
        return self._source

    def can_extract(self, content_type: str) -> bool:
        return any(kind in content_type.lower() for kind in self.handles)

    def extract_text(self, data: bytes, content_type: str) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.text


def _engine(
    pdf_text: str = SAMPLE_ADP_TEXT,
    ocr_text: str = SAMPLE_ADP_TEXT,
    pdf_error: Exception | None = None,
    **kwargs,
):
    pdf = FakeExtractor("pdf_text", FieldSource.PDF_TEXT, pdf_text, ("pdf",), pdf_error)
    ocr = FakeExtractor("ocr", FieldSource.OCR, ocr_text, ("image", "pdf"))
    return DocumentEngine(pdf_extractor=pdf, ocr_extractor=ocr, **kwargs), pdf, ocr


def _make_pdf(text: str) -> bytes:
    """Render text lines into a real PDF with an embedded text layer."""
    canvas_module = pytest.importorskip("reportlab.pdfgen.canvas")
    pagesizes = pytest.importorskip("reportlab.lib.pagesizes")

    buffer = BytesIO()
    pdf = canvas_module.Canvas(buffer, pagesize=pagesizes.letter)
    y = 740
    for line in text.splitlines():
        pdf.drawString(72, y, line)
        y -= 16
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


class TestContentRouting:
    """Tests for content type and size checks."""

    def test_unsupported_type(self):
        engine, pdf, ocr = _engine()
        with pytest.raises(UnsupportedFileTypeError):
            engine.extract(b"hello", "text/plain")
        assert pdf.calls == 0
        assert ocr.calls == 0

    def test_too_large(self):
        engine, _, _ = _engine(max_file_size=5)
        with pytest.raises(DocumentTooLargeError):
            engine.extract(b"0123456789", "application/pdf")

    def test_pdf_text_layer(self):
        engine, pdf, ocr = _engine()

        document = engine.extract(b"%PDF-1.4", "application/pdf")

        assert pdf.calls == 1
        assert ocr.calls == 0
        assert document.gross_pay.source == FieldSource.PDF_TEXT
        assert document.provider == "ADP"

    def test_scanned_pdf_falls_back_to_ocr(self):
        engine, pdf, ocr = _engine(pdf_text="Page 1")

        document = engine.extract(b"%PDF-1.4", "application/pdf")

        assert pdf.calls == 1
        assert ocr.calls == 1
        assert document.gross_pay.source == FieldSource.OCR

    def test_scanned_pdf_without_ocr(self):
        engine, _, ocr = _engine(pdf_text="", enable_ocr=False)
        with pytest.raises(TextExtractionError):
            engine.extract(b"%PDF-1.4", "application/pdf")
        assert ocr.calls == 0

    def test_unreadable_pdf_falls_back_to_ocr(self):
        engine, pdf, ocr = _engine(
            pdf_error=TextExtractionError("Could not read PDF text layer: bad xref")
        )

        document = engine.extract(b"%PDF-1.4", "application/pdf")

        assert pdf.calls == 1
        assert ocr.calls == 1
        assert document.gross_pay.source == FieldSource.OCR

    def test_unreadable_pdf_without_ocr(self):
        engine, _, ocr = _engine(
            pdf_error=TextExtractionError("Could not read PDF text layer: bad xref"),
            enable_ocr=False,
        )
        with pytest.raises(TextExtractionError, match="bad xref"):
            engine.extract(b"%PDF-1.4", "application/pdf")
        assert ocr.calls == 0

    @pytest.mark.parametrize(
        "content_type", ["application/pdf; name=stub.pdf", "application/x-pdf", "APPLICATION/PDF"]
    )
    def test_pdf_content_type_variants(self, content_type):
        engine, pdf, ocr = _engine()

        document = engine.extract(b"%PDF-1.4", content_type)

        assert pdf.calls == 1
        assert ocr.calls == 0
        assert document.gross_pay.source == FieldSource.PDF_TEXT

    def test_image_uses_ocr(self):
        engine, pdf, ocr = _engine()

        document = engine.extract(b"\x89PNG", "image/png")

        assert pdf.calls == 0
        assert ocr.calls == 1
        assert document.net_pay.source == FieldSource.OCR

    def test_image_without_ocr(self):
        engine, _, _ = _engine(enable_ocr=False)
        with pytest.raises(TextExtractionError):
            engine.extract(b"\x89PNG", "image/jpeg")

    def test_blank_ocr_result(self):
        engine, _, _ = _engine(ocr_text="   ")
        with pytest.raises(TextExtractionError):
            engine.extract(b"\x89PNG", "image/png")


class TestEngineCache:
    """Tests for result caching inside the engine."""

    def test_second_extraction_served_from_cache(self):
        engine, pdf, _ = _engine(cache=ResultCache())

        first = engine.extract(b"%PDF-1.4 same", "application/pdf")
        second = engine.extract(b"%PDF-1.4 same", "application/pdf")

        assert pdf.calls == 1
        assert second.gross_pay.value == first.gross_pay.value
        assert second is not first

    def test_from_config(self):
        engine = DocumentEngine.from_config(
            ExtractorConfig(cache_enabled=False, enable_ocr=False, ocr_language="deu")
        )
        assert engine.cache is None
        assert engine.enable_ocr is False
        assert engine.ocr_extractor.language == "deu"

        with patch.object(OCRExtractor, "is_available", return_value=True):
            cached = DocumentEngine.from_config(ExtractorConfig(cache_ttl_seconds=30))
        assert cached.cache.ttl_seconds == 30

    def test_from_config_warns_without_tesseract(self, caplog):
        with patch.object(OCRExtractor, "is_available", return_value=False):
            with caplog.at_level(logging.WARNING):
                DocumentEngine.from_config(ExtractorConfig())

        assert "tesseract was not found" in caplog.text

    def test_from_config_skips_check_when_ocr_disabled(self):
        with patch.object(OCRExtractor, "is_available") as is_available:
            DocumentEngine.from_config(ExtractorConfig(enable_ocr=False))

        is_available.assert_not_called()


class TestPDFTextExtractor:
    """Tests for the pdfplumber backend."""

    def test_reads_generated_pdf(self):
        data = _make_pdf(SAMPLE_ADP_TEXT)

        text = PDFTextExtractor().extract_text(data)

        assert "Gross Earnings: $5,000.00" in text
        assert "Net Pay: $3,342.50" in text

    def test_end_to_end_with_real_pdf(self):
        engine = DocumentEngine()

        document = engine.extract(_make_pdf(SAMPLE_ADP_TEXT), "application/pdf")

        assert document.provider == "ADP"
        assert document.gross_pay.value.as_text() == "5000.00"
        assert document.net_pay.value.as_text() == "3342.50"
        assert document.gross_pay.source == FieldSource.PDF_TEXT

    def test_garbage_raises(self):
        with pytest.raises(TextExtractionError):
            PDFTextExtractor().extract_text(b"this is not a pdf")

    def test_handles_pdf_only(self):
        assert PDFTextExtractor().can_extract("application/pdf")
        assert not PDFTextExtractor().can_extract("image/png")


class TestOCRExtractor:
    """Tests for the Tesseract backend with pytesseract mocked out."""

    def test_image(self):
        image = MagicMock()
        image.mode = "RGB"
        with patch(
            "paystub_extractor.extractors.ocr_extractor.Image.open", return_value=image
        ), patch(
            "paystub_extractor.extractors.ocr_extractor.pytesseract.image_to_string",
            return_value="Net Pay: 100.00\n",
        ) as image_to_string:
            text = OCRExtractor(language="eng").extract_text(b"\x89PNG", "image/png")

        assert text == "Net Pay: 100.00"
        image.convert.assert_called_once_with("L")
        assert image_to_string.call_args.kwargs["lang"] == "eng"

    def test_scanned_pdf_pages(self):
        pages = [MagicMock(mode="L"), MagicMock(mode="L")]
        with patch(
            "paystub_extractor.extractors.ocr_extractor.convert_from_bytes",
            return_value=pages,
        ) as convert, patch(
            "paystub_extractor.extractors.ocr_extractor.pytesseract.image_to_string",
            side_effect=["page one", "page two"],
        ):
            text = OCRExtractor(dpi=200).extract_text(b"%PDF", "application/pdf")

        assert text == "page one\npage two"
        assert convert.call_args.kwargs["dpi"] == 200

    def test_missing_tesseract(self):
        import pytesseract

        with patch(
            "paystub_extractor.extractors.ocr_extractor.Image.open", return_value=MagicMock()
        ), patch(
            "paystub_extractor.extractors.ocr_extractor.pytesseract.image_to_string",
            side_effect=pytesseract.TesseractNotFoundError(),
        ):
            with pytest.raises(TextExtractionError, match="Tesseract"):
                OCRExtractor().extract_text(b"\x89PNG", "image/png")

    def test_is_available(self):
        import pytesseract

        with patch(
            "paystub_extractor.extractors.ocr_extractor.pytesseract.get_tesseract_version",
            return_value="5.3.0",
        ):
            assert OCRExtractor().is_available()
        with patch(
            "paystub_extractor.extractors.ocr_extractor.pytesseract.get_tesseract_version",
            side_effect=pytesseract.TesseractNotFoundError(),
        ):
            assert not OCRExtractor().is_available()

    def test_handles_images_and_pdfs(self):
        extractor = OCRExtractor()
        assert extractor.can_extract("image/tiff")
        assert extractor.can_extract("application/pdf")
        assert not extractor.can_extract("text/plain")
