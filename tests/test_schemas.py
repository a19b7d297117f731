"""Tests for paystub schemas and the job lifecycle record."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from paystub_extractor.schemas import (
    DateValue,
    Deduction,
    DeductionCategory,
    ExtractedField,
    FieldSource,
    InvalidStatusTransition,
    Money,
    PaystubData,
    Percentage,
    ProcessingRequest,
    ProcessingStatus,
    TextValue,
    value_from_json,
)

CREATED = datetime(2024, 1, 19, 12, 0, tzinfo=timezone.utc)


def _start(job_id: str = "job-1") -> ProcessingRequest:
    return ProcessingRequest.start(
        job_id, file_type="application/pdf", file_size=10, created_at=CREATED
    )


class TestFieldValues:
    """Tests for the tagged field value types."""

    def test_money_renders_plain_digits(self):
        """Money text is what the scorer sees: no symbol, two decimals."""
        assert Money(Decimal("5000")).as_text() == "5000.00"
        assert Money(Decimal("3750.5")).as_text() == "3750.50"

    def test_money_json_shape(self):
        assert Money(Decimal("12.00"), "EUR").to_json() == {"amount": "12.00", "currency": "EUR"}

    def test_date_renders_iso(self):
        assert DateValue(date(2024, 1, 19)).as_text() == "2024-01-19"

    def test_percentage_has_suffix(self):
        assert Percentage(Decimal("6")).as_text() == "6%"

    def test_value_from_json(self):
        assert value_from_json("money", {"amount": "1.50", "currency": "USD"}) == Money(
            Decimal("1.50")
        )
        assert value_from_json("date", "2024-01-19") == DateValue(date(2024, 1, 19))
        assert value_from_json("percentage", "6%") == Percentage(Decimal("6"))
        assert value_from_json("text", "E123") == TextValue("E123")

    def test_value_from_json_unknown_kind(self):
        with pytest.raises(ValueError):
            value_from_json("blob", "x")


class TestExtractedField:
    """Tests for ExtractedField invariants."""

    def test_confidence_clamped_high(self):
        field = ExtractedField(value=TextValue("x"), source=FieldSource.OCR, confidence=1.7)
        assert field.confidence == 1.0

    def test_confidence_clamped_low(self):
        field = ExtractedField(value=TextValue("x"), source=FieldSource.OCR, confidence=-0.2)
        assert field.confidence == 0.0

    def test_source_coerced_from_string(self):
        field = ExtractedField(value=TextValue("x"), source="pdf_text")
        assert field.source is FieldSource.PDF_TEXT

    def test_from_dict(self):
        field = ExtractedField.from_dict(
            {
                "value": {"amount": "5000.00", "currency": "USD"},
                "value_kind": "money",
                "source": "ocr",
                "confidence": 0.8,
                "pattern_count": 2,
            }
        )
        assert field.value == Money(Decimal("5000.00"))
        assert field.source == FieldSource.OCR
        assert field.pattern_count == 2

    def test_deduction_confidence_clamped(self):
        deduction = Deduction(name="Medicare", amount=Money(Decimal("1")), confidence=3)
        assert deduction.confidence == 1.0
        assert deduction.category == DeductionCategory.OTHER


class TestPaystubData:
    """Tests for the extracted document."""

    def test_field_scores_order(self):
        """Gross and net pay come first, then every deduction."""
        document = PaystubData(
            gross_pay=ExtractedField(Money(Decimal("1")), FieldSource.PDF_TEXT, 0.9),
            net_pay=ExtractedField(Money(Decimal("1")), FieldSource.PDF_TEXT, 0.8),
            tax_deductions=[
                Deduction("Federal", Money(Decimal("1")), DeductionCategory.TAX, 0.5)
            ],
            other_deductions=[Deduction("Dues", Money(Decimal("1")), confidence=0.4)],
        )
        assert document.field_scores() == [0.9, 0.8, 0.5, 0.4]

    def test_field_scores_skip_missing(self):
        document = PaystubData(
            net_pay=ExtractedField(Money(Decimal("1")), FieldSource.OCR, 0.7)
        )
        assert document.field_scores() == [0.7]
        assert PaystubData().field_scores() == []

    def test_to_dict_from_dict(self):
        document = PaystubData(
            gross_pay=ExtractedField(Money(Decimal("5000.00")), FieldSource.PDF_TEXT, 0.95),
            pay_period_start=date(2024, 1, 1),
            benefit_deductions=[
                Deduction(
                    "401(k)",
                    Money(Decimal("250.00")),
                    DeductionCategory.RETIREMENT,
                    0.8,
                    ytd=Money(Decimal("3000.00")),
                )
            ],
            provider="ADP",
            processed_at=CREATED,
        )

        data = document.to_dict()
        restored = PaystubData.from_dict(data)

        assert data["gross_pay"]["value"] == {"amount": "5000.00", "currency": "USD"}
        assert restored.gross_pay.value == Money(Decimal("5000.00"))
        assert restored.pay_period_start == date(2024, 1, 1)
        assert restored.benefit_deductions[0].category == DeductionCategory.RETIREMENT
        assert restored.benefit_deductions[0].ytd == Money(Decimal("3000.00"))
        assert restored.processed_at == CREATED


class TestProcessingRequest:
    """Tests for the job lifecycle state machine."""

    def test_start_is_processing(self):
        request = _start()
        assert request.status == ProcessingStatus.PROCESSING
        assert request.completed_at is None
        assert not request.is_terminal

    def test_complete_sets_completed_at(self):
        request = _start().complete(PaystubData())
        assert request.status == ProcessingStatus.COMPLETED
        assert request.completed_at is not None
        assert request.result is not None
        assert request.error is None

    def test_fail_records_message(self):
        request = _start().fail("boom")
        assert request.status == ProcessingStatus.FAILED
        assert request.error == "boom"
        assert request.result is None
        assert request.completed_at is not None

    def test_transition_returns_new_record(self):
        request = _start()
        completed = request.complete(PaystubData())
        assert request.status == ProcessingStatus.PROCESSING
        assert completed is not request

    def test_record_is_frozen(self):
        request = _start()
        with pytest.raises(AttributeError):
            request.status = ProcessingStatus.FAILED

    def test_no_exit_from_terminal(self):
        completed = _start().complete(PaystubData())
        with pytest.raises(InvalidStatusTransition):
            completed.fail("late failure")
        with pytest.raises(InvalidStatusTransition):
            completed.complete(PaystubData())

    def test_pending_cannot_skip_processing(self):
        pending = ProcessingRequest(
            id="job-1",
            status=ProcessingStatus.PENDING,
            file_type="image/png",
            file_size=1,
            created_at=CREATED,
            updated_at=CREATED,
        )
        assert pending.can_transition_to(ProcessingStatus.PROCESSING)
        with pytest.raises(InvalidStatusTransition):
            pending.complete(PaystubData())

    def test_to_dict_from_dict(self):
        request = _start().fail("bad pdf")
        restored = ProcessingRequest.from_dict(request.to_dict())
        assert restored.status == ProcessingStatus.FAILED
        assert restored.error == "bad pdf"
        assert restored.completed_at == request.completed_at
        assert request.to_dict()["created_at"].endswith("Z")
