"""Test fixtures and utilities."""

import threading
from decimal import Decimal

import pytest

from paystub_extractor.extractors.base import ExtractionEngine, ExtractionError
from paystub_extractor.processing import ExtractionPipeline, ResultStore
from paystub_extractor.schemas import ExtractedField, FieldSource, Money, PaystubData

# Sample ADP paystub text (as read from a PDF text layer)
SAMPLE_ADP_TEXT = """ACME Corporation
ADP Earnings Statement
Employee Name: Jane Doe
Employee ID: E12345
Pay Period: 01/01/2024 - 01/14/2024
Pay Date: 01/19/2024

Gross Earnings: $5,000.00
Federal Income Tax: 600.00  7,200.00
State Income Tax: 250.00
Social Security: 310.00
Medicare: 72.50
Health Insurance: 150.00
401(k): 250.00
Union Dues: 25.00
Net Pay: $3,342.50
YTD Gross: 60,000.00
"""

# Sample paystub without a recognisable payroll provider
SAMPLE_GENERIC_TEXT = """Globex Industries
Earnings Statement
Employee: John Smith
Emp #: 4471
Period: 03/01/2024 - 03/15/2024
Check Date: 03/20/2024
Total Gross: 2,400.00
Federal Withholding: 220.00
FICA: 148.80
Dental: 12.00
Take Home Pay: 2,019.20
"""


def make_document(
    gross: str | None = "5000.00",
    net: str | None = "3750.00",
    source: FieldSource = FieldSource.PDF_TEXT,
) -> PaystubData:
    """Candidate document as an engine would return it (unscored)."""
    document = PaystubData()
    if gross is not None:
        document.gross_pay = ExtractedField(value=Money(Decimal(gross)), source=source)
    if net is not None:
        document.net_pay = ExtractedField(value=Money(Decimal(net)), source=source)
    return document


class StubEngine(ExtractionEngine):
    """Returns a fresh candidate document for every call."""

    def __init__(self, gross: str | None = "5000.00", net: str | None = "3750.00"):
        self.gross = gross
        self.net = net
        self.calls = 0
        self._lock = threading.Lock()

    def extract(self, data: bytes, content_type: str) -> PaystubData:
        with self._lock:
            self.calls += 1
        return make_document(self.gross, self.net)


class FailingEngine(ExtractionEngine):
    """Always raises the given exception."""

    def __init__(self, error: Exception):
        self.error = error

    def extract(self, data: bytes, content_type: str) -> PaystubData:
        raise self.error


class BlockingEngine(ExtractionEngine):
    """Blocks every extraction until release() is called."""

    def __init__(self):
        self.release_event = threading.Event()
        self.started = threading.Semaphore(0)

    def extract(self, data: bytes, content_type: str) -> PaystubData:
        self.started.release()
        if not self.release_event.wait(timeout=10):
            raise ExtractionError("engine was never released")
        return make_document()

    def release(self) -> None:
        self.release_event.set()

    def wait_started(self, count: int, timeout: float = 5.0) -> bool:
        return all(self.started.acquire(timeout=timeout) for _ in range(count))


@pytest.fixture
def sample_adp_text() -> str:
    """Sample ADP paystub text."""
    return SAMPLE_ADP_TEXT


@pytest.fixture
def sample_generic_text() -> str:
    """Sample paystub text without a known provider."""
    return SAMPLE_GENERIC_TEXT


@pytest.fixture
def stub_engine() -> StubEngine:
    return StubEngine()


@pytest.fixture
def stub_pipeline(stub_engine) -> ExtractionPipeline:
    return ExtractionPipeline(stub_engine)


@pytest.fixture
def result_store() -> ResultStore:
    return ResultStore()


@pytest.fixture
def blocking_engine():
    engine = BlockingEngine()
    yield engine
    # Never leave worker threads stuck in the engine
    engine.release()
