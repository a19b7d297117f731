"""
Canonical paystub extraction objects (SSOT).

Every stage of the processing core speaks these types:
- extraction engines produce a candidate PaystubData
- the pipeline scores it in place
- workers wrap it in a ProcessingRequest for the result store

Field values are a closed set of kinds (money, date, text, percentage)
instead of an untyped container, but serialize to the same JSON shapes.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Optional, Union


class ProcessingStatus(str, Enum):
    """
    Lifecycle of a submitted job.

    PENDING: accepted into the queue, no worker yet
    PROCESSING: a worker is running the extraction pipeline
    COMPLETED / FAILED: terminal, never left again
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingStatus.COMPLETED, ProcessingStatus.FAILED)


class FieldSource(str, Enum):
    """Extraction technique that produced a field value."""

    OCR = "ocr"
    PDF_TEXT = "pdf_text"
    PATTERN = "pattern"


class DeductionCategory(str, Enum):
    TAX = "tax"
    BENEFIT = "benefit"
    RETIREMENT = "retirement"
    OTHER = "other"


class PayFrequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    SEMI_MONTHLY = "semi_monthly"
    MONTHLY = "monthly"
    UNKNOWN = "unknown"


class InvalidStatusTransition(Exception):
    """Raised when a ProcessingRequest would regress or leave a terminal state."""

    pass


# Allowed status moves; anything else is rejected
_ALLOWED_TRANSITIONS: dict[ProcessingStatus, frozenset[ProcessingStatus]] = {
    ProcessingStatus.PENDING: frozenset({ProcessingStatus.PROCESSING}),
    ProcessingStatus.PROCESSING: frozenset(
        {ProcessingStatus.COMPLETED, ProcessingStatus.FAILED}
    ),
    ProcessingStatus.COMPLETED: frozenset(),
    ProcessingStatus.FAILED: frozenset(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat().replace("+00:00", "Z") if value else None


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _clamp(confidence: float) -> float:
    return max(0.0, min(1.0, float(confidence)))


# ---------------------------------------------------------------------------
# Field values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Money:
    """A monetary amount. Always a Decimal, never a float."""

    kind: ClassVar[str] = "money"

    amount: Decimal
    currency: str = "USD"

    def as_text(self) -> str:
        return f"{self.amount:.2f}"

    def to_json(self) -> dict:
        return {"amount": self.as_text(), "currency": self.currency}

    @classmethod
    def from_json(cls, raw: dict) -> "Money":
        return cls(amount=Decimal(str(raw["amount"])), currency=raw.get("currency", "USD"))


@dataclass(frozen=True)
class DateValue:
    kind: ClassVar[str] = "date"

    value: date

    def as_text(self) -> str:
        return self.value.isoformat()

    def to_json(self) -> str:
        return self.as_text()


@dataclass(frozen=True)
class TextValue:
    kind: ClassVar[str] = "text"

    text: str

    def as_text(self) -> str:
        return self.text

    def to_json(self) -> str:
        return self.text


@dataclass(frozen=True)
class Percentage:
    """A rate such as a contribution percentage, stored as 0-100."""

    kind: ClassVar[str] = "percentage"

    value: Decimal

    def as_text(self) -> str:
        return f"{self.value}%"

    def to_json(self) -> str:
        return self.as_text()


FieldValue = Union[Money, DateValue, TextValue, Percentage]


def value_from_json(kind: str, raw: Any) -> FieldValue:
    """Rebuild a field value from its kind tag and JSON shape."""
    if kind == Money.kind:
        return Money.from_json(raw)
    if kind == DateValue.kind:
        return DateValue(date.fromisoformat(raw))
    if kind == Percentage.kind:
        return Percentage(Decimal(str(raw).rstrip("%")))
    if kind == TextValue.kind:
        return TextValue(str(raw))
    raise ValueError(f"Unknown field value kind: {kind}")


# ---------------------------------------------------------------------------
# Extracted fields
# ---------------------------------------------------------------------------


@dataclass
class Location:
    """Where in the document a field was found."""

    page: int
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }


@dataclass
class ExtractedField:
    """
    A single extracted value with provenance.

    confidence is always kept inside [0.0, 1.0].
    pattern_count is how many independent patterns agreed on the value.
    """

    value: FieldValue
    source: FieldSource
    confidence: float = 0.0
    location: Optional[Location] = None
    pattern_count: int = 1

    def __post_init__(self) -> None:
        self.source = FieldSource(self.source)
        self.confidence = _clamp(self.confidence)

    def to_dict(self) -> dict:
        return {
            "value": self.value.to_json(),
            "value_kind": self.value.kind,
            "confidence": self.confidence,
            "source": self.source.value,
            "location": self.location.to_dict() if self.location else None,
            "pattern_count": self.pattern_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExtractedField":
        loc = data.get("location")
        return cls(
            value=value_from_json(data["value_kind"], data["value"]),
            source=FieldSource(data["source"]),
            confidence=data.get("confidence", 0.0),
            location=Location(**loc) if loc else None,
            pattern_count=data.get("pattern_count", 1),
        )


@dataclass
class Deduction:
    """Single deduction line from a paystub."""

    name: str
    amount: Money
    category: DeductionCategory = DeductionCategory.OTHER
    confidence: float = 0.0
    ytd: Optional[Money] = None

    def __post_init__(self) -> None:
        self.category = DeductionCategory(self.category)
        self.confidence = _clamp(self.confidence)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "amount": self.amount.to_json(),
            "ytd": self.ytd.to_json() if self.ytd else None,
            "category": self.category.value,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Deduction":
        return cls(
            name=data["name"],
            amount=Money.from_json(data["amount"]),
            ytd=Money.from_json(data["ytd"]) if data.get("ytd") else None,
            category=DeductionCategory(data.get("category", "other")),
            confidence=data.get("confidence", 0.0),
        )


@dataclass
class PaystubData:
    """
    CANONICAL extracted paystub document (SSOT).

    overall_confidence is derived by the pipeline from field_scores(),
    never set by extraction engines.
    """

    # Core pay information
    gross_pay: Optional[ExtractedField] = None
    net_pay: Optional[ExtractedField] = None

    # Pay period information
    pay_period_start: Optional[date] = None
    pay_period_end: Optional[date] = None
    pay_date: Optional[date] = None
    pay_frequency: PayFrequency = PayFrequency.UNKNOWN

    # Parties
    employee_name: Optional[str] = None
    employee_id: Optional[str] = None
    employer_name: Optional[str] = None

    # Deductions
    tax_deductions: list[Deduction] = field(default_factory=list)
    benefit_deductions: list[Deduction] = field(default_factory=list)
    other_deductions: list[Deduction] = field(default_factory=list)

    # YTD totals
    ytd_gross_pay: Optional[Money] = None
    ytd_net_pay: Optional[Money] = None
    ytd_taxes: Optional[Money] = None

    # Provider detection
    provider: str = "Generic"  # "ADP", "Paychex", "Workday", ..., "Generic"
    provider_match_count: int = 0
    provider_confidence: float = 0.0

    # Scoring and timing
    overall_confidence: float = 0.0
    processed_at: Optional[datetime] = None
    processing_time_ms: int = 0

    # Raw text for diagnostics
    raw_text: str = ""

    def all_deductions(self) -> list[Deduction]:
        return [*self.tax_deductions, *self.benefit_deductions, *self.other_deductions]

    def extracted_fields(self) -> list[ExtractedField]:
        """Scored fields in priority order (gross pay, net pay)."""
        return [f for f in (self.gross_pay, self.net_pay) if f is not None]

    def field_scores(self) -> list[float]:
        """
        Per-field confidences in overall-score input order.

        Gross and net pay come first so they carry the heavier weight.
        """
        scores = [f.confidence for f in self.extracted_fields()]
        scores.extend(d.confidence for d in self.all_deductions())
        return scores

    def to_dict(self) -> dict:
        """Serialize to dictionary for JSON output."""
        return {
            "gross_pay": self.gross_pay.to_dict() if self.gross_pay else None,
            "net_pay": self.net_pay.to_dict() if self.net_pay else None,
            "pay_period_start": (
                self.pay_period_start.isoformat() if self.pay_period_start else None
            ),
            "pay_period_end": self.pay_period_end.isoformat() if self.pay_period_end else None,
            "pay_date": self.pay_date.isoformat() if self.pay_date else None,
            "pay_frequency": self.pay_frequency.value,
            "employee_name": self.employee_name,
            "employee_id": self.employee_id,
            "employer_name": self.employer_name,
            "tax_deductions": [d.to_dict() for d in self.tax_deductions],
            "benefit_deductions": [d.to_dict() for d in self.benefit_deductions],
            "other_deductions": [d.to_dict() for d in self.other_deductions],
            "ytd_gross_pay": self.ytd_gross_pay.to_json() if self.ytd_gross_pay else None,
            "ytd_net_pay": self.ytd_net_pay.to_json() if self.ytd_net_pay else None,
            "ytd_taxes": self.ytd_taxes.to_json() if self.ytd_taxes else None,
            "provider": self.provider,
            "provider_match_count": self.provider_match_count,
            "provider_confidence": self.provider_confidence,
            "overall_confidence": self.overall_confidence,
            "processed_at": _iso(self.processed_at),
            "processing_time_ms": self.processing_time_ms,
            "raw_text": self.raw_text,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PaystubData":
        """Deserialize from dictionary."""

        def _date(key: str) -> Optional[date]:
            return date.fromisoformat(data[key]) if data.get(key) else None

        def _money(key: str) -> Optional[Money]:
            return Money.from_json(data[key]) if data.get(key) else None

        def _field(key: str) -> Optional[ExtractedField]:
            return ExtractedField.from_dict(data[key]) if data.get(key) else None

        return cls(
            gross_pay=_field("gross_pay"),
            net_pay=_field("net_pay"),
            pay_period_start=_date("pay_period_start"),
            pay_period_end=_date("pay_period_end"),
            pay_date=_date("pay_date"),
            pay_frequency=PayFrequency(data.get("pay_frequency", "unknown")),
            employee_name=data.get("employee_name"),
            employee_id=data.get("employee_id"),
            employer_name=data.get("employer_name"),
            tax_deductions=[Deduction.from_dict(d) for d in data.get("tax_deductions", [])],
            benefit_deductions=[
                Deduction.from_dict(d) for d in data.get("benefit_deductions", [])
            ],
            other_deductions=[Deduction.from_dict(d) for d in data.get("other_deductions", [])],
            ytd_gross_pay=_money("ytd_gross_pay"),
            ytd_net_pay=_money("ytd_net_pay"),
            ytd_taxes=_money("ytd_taxes"),
            provider=data.get("provider", "Generic"),
            provider_match_count=data.get("provider_match_count", 0),
            provider_confidence=data.get("provider_confidence", 0.0),
            overall_confidence=data.get("overall_confidence", 0.0),
            processed_at=_parse_iso(data.get("processed_at")),
            processing_time_ms=data.get("processing_time_ms", 0),
            raw_text=data.get("raw_text", ""),
        )


# ---------------------------------------------------------------------------
# Job tracking
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProcessingRequest:
    """
    Tracked lifecycle record of a job.

    Frozen: a status change produces a new record, so a reader holding
    a record never sees it change underneath them.

    Invariants:
    - completed_at is set if and only if status is terminal
    - status only moves pending -> processing -> completed|failed
    """

    id: str
    status: ProcessingStatus
    file_type: str
    file_size: int
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    result: Optional[PaystubData] = None
    error: Optional[str] = None
    file_name: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @classmethod
    def start(
        cls,
        job_id: str,
        file_type: str,
        file_size: int,
        created_at: datetime,
        file_name: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> "ProcessingRequest":
        """Create the record for a job a worker has just picked up."""
        return cls(
            id=job_id,
            status=ProcessingStatus.PROCESSING,
            file_type=file_type,
            file_size=file_size,
            created_at=created_at,
            updated_at=_utcnow(),
            file_name=file_name,
            metadata=dict(metadata or {}),
        )

    def can_transition_to(self, status: ProcessingStatus) -> bool:
        return status in _ALLOWED_TRANSITIONS[self.status]

    def _transition(self, status: ProcessingStatus, **changes: Any) -> "ProcessingRequest":
        if not self.can_transition_to(status):
            raise InvalidStatusTransition(
                f"Job {self.id}: cannot move from {self.status.value} to {status.value}"
            )
        now = changes.pop("now", None) or _utcnow()
        completed_at = now if status.is_terminal else None
        return replace(
            self, status=status, updated_at=now, completed_at=completed_at, **changes
        )

    def complete(
        self, result: PaystubData, now: Optional[datetime] = None
    ) -> "ProcessingRequest":
        return self._transition(ProcessingStatus.COMPLETED, result=result, error=None, now=now)

    def fail(self, error: str, now: Optional[datetime] = None) -> "ProcessingRequest":
        return self._transition(ProcessingStatus.FAILED, result=None, error=error, now=now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status.value,
            "file_type": self.file_type,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "completed_at": _iso(self.completed_at),
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProcessingRequest":
        return cls(
            id=data["id"],
            status=ProcessingStatus(data["status"]),
            file_type=data["file_type"],
            file_name=data.get("file_name"),
            file_size=data["file_size"],
            created_at=_parse_iso(data["created_at"]),
            updated_at=_parse_iso(data["updated_at"]),
            completed_at=_parse_iso(data.get("completed_at")),
            result=PaystubData.from_dict(data["result"]) if data.get("result") else None,
            error=data.get("error"),
            metadata=data.get("metadata", {}),
        )
