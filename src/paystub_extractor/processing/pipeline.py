"""
Extraction pipeline.

Runs one document through an extraction engine and turns the candidate
fields into a scored, timestamped PaystubData. Pure with respect to the
result store: workers decide what to record.
"""

import logging
import time
from datetime import datetime, timezone

from ..confidence.scorer import score_field, score_overall, score_provider, validate_paystub
from ..extractors.base import ExtractionEngine, ExtractionError
from ..schemas.paystub import PaystubData

logger = logging.getLogger(__name__)


class ExtractionPipeline:
    """Engine call plus confidence scoring for a single document."""

    def __init__(self, engine: ExtractionEngine):
        self.engine = engine

    def run(self, data: bytes, content_type: str) -> PaystubData:
        """
        Extract and score a document.

        Args:
            data: Raw document bytes
            content_type: MIME type of the payload

        Returns:
            Scored PaystubData with processed_at and processing_time_ms set

        Raises:
            ExtractionError: If the engine fails (other exceptions are wrapped)
        """
        started = time.monotonic()

        try:
            document = self.engine.extract(data, content_type)
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(str(e)) from e

        self._score(document)

        for issue in validate_paystub(document):
            logger.warning(f"Validation: {issue}")

        document.processed_at = datetime.now(timezone.utc)
        document.processing_time_ms = int((time.monotonic() - started) * 1000)
        return document

    def _score(self, document: PaystubData) -> None:
        for extracted in document.extracted_fields():
            extracted.confidence = score_field(
                extracted.value.as_text(), extracted.source, extracted.pattern_count
            )

        document.provider_confidence = score_provider(
            document.raw_text, document.provider, document.provider_match_count
        )
        document.overall_confidence = score_overall(document.field_scores())
