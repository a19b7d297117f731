"""
Confidence scoring implementation.

All functions are pure and total: empty strings, zero counts and unknown
sources fall through to defined base cases.
"""

from ..schemas.paystub import FieldSource, PaystubData

# Base confidence by extraction source
SOURCE_BASE_CONFIDENCE = {
    FieldSource.PDF_TEXT: 0.85,
    FieldSource.PATTERN: 0.80,
    FieldSource.OCR: 0.70,
}
UNKNOWN_SOURCE_CONFIDENCE = 0.50

NUMERIC_BONUS = 0.10
FORMAT_BONUS = 0.05
PATTERN_BONUS = 0.05  # Per corroborating pattern, only when more than one matched

# Fields at these input positions count double in the overall score
PRIORITY_FIELD_COUNT = 2
PRIORITY_FIELD_WEIGHT = 2.0

MATCH_BASE_CONFIDENCE = 0.70
EARLY_MATCH_POSITION = 100
DELIMITERS = (":", "|", "\t", "  ")

GENERIC_PROVIDER = "Generic"
GENERIC_PROVIDER_CONFIDENCE = 0.50
PROVIDER_BASE_CONFIDENCE = 0.60
# Provider detection is inherently ambiguous, never report certainty
PROVIDER_CONFIDENCE_CAP = 0.95

_DATE_SHAPES = ("XX/XX/XXXX", "XX-XX-XXXX", "XXXX-XX-XX")


def score_field(value: str, source: FieldSource | str, pattern_count: int) -> float:
    """
    Score a single extracted field.

    Rules:
    - base from source: pdf_text 0.85, pattern 0.80, ocr 0.70, otherwise 0.50
    - +0.10 for a purely numeric value
    - +0.05 for a well-formatted value (currency, date, percentage)
    - +0.05 per pattern when more than one pattern matched
    - capped at 1.0
    """
    try:
        score = SOURCE_BASE_CONFIDENCE[FieldSource(source)]
    except ValueError:
        score = UNKNOWN_SOURCE_CONFIDENCE

    if value:
        if is_numeric(value):
            score += NUMERIC_BONUS
        if is_well_formatted(value):
            score += FORMAT_BONUS

    if pattern_count > 1:
        score += pattern_count * PATTERN_BONUS

    return min(score, 1.0)


def score_overall(field_scores: list[float]) -> float:
    """
    Weighted mean of field scores.

    The first two scores (gross and net pay by convention) weigh 2.0,
    every other score 1.0. Empty input scores 0.0.
    """
    if not field_scores:
        return 0.0

    total = 0.0
    weights = 0.0
    for i, score in enumerate(field_scores):
        weight = PRIORITY_FIELD_WEIGHT if i < PRIORITY_FIELD_COUNT else 1.0
        total += score * weight
        weights += weight

    return total / weights


def score_match(text: str, pattern: str, position: int) -> float:
    """Score a pattern match by position, exact occurrence and delimiters."""
    score = MATCH_BASE_CONFIDENCE

    if position < EARLY_MATCH_POSITION:
        score += 0.10

    if pattern in text:
        score += 0.05

    if has_delimiters(text, position):
        score += 0.10

    return min(score, 1.0)


def score_provider(text: str, provider: str, match_count: int) -> float:
    """Score provider detection. The generic fallback is always 0.5."""
    if provider == GENERIC_PROVIDER:
        return GENERIC_PROVIDER_CONFIDENCE

    score = PROVIDER_BASE_CONFIDENCE + match_count * 0.10

    if provider.lower() in text.lower():
        score += 0.20

    return min(score, PROVIDER_CONFIDENCE_CAP)


def is_numeric(value: str) -> bool:
    """Digits with at most one decimal point, ignoring `,`, `$` and spaces."""
    cleaned = value.replace(",", "").replace("$", "").replace(" ", "")
    if not cleaned:
        return False

    dot_count = 0
    for char in cleaned:
        if char == ".":
            dot_count += 1
            if dot_count > 1:
                return False
        elif not ("0" <= char <= "9"):
            return False

    return True


def is_well_formatted(value: str) -> bool:
    """Currency prefix, DD/DD/DDDD, DD-DD-DDDD, DDDD-DD-DD or percentage."""
    if value.startswith("$") or value.endswith("%"):
        return True
    return any(_matches_date_shape(value, shape) for shape in _DATE_SHAPES)


def _matches_date_shape(value: str, shape: str) -> bool:
    if len(value) != len(shape):
        return False
    for char, expected in zip(value, shape):
        if expected == "X":
            if not ("0" <= char <= "9"):
                return False
        elif char != expected:
            return False
    return True


def has_delimiters(text: str, position: int) -> bool:
    """Check for a delimiter 10 chars before to 50 chars after position."""
    start = max(position - 10, 0)
    end = min(position + 50, len(text))
    segment = text[start:end]
    return any(delimiter in segment for delimiter in DELIMITERS)


def validate_paystub(document: PaystubData) -> list[str]:
    """
    Validate an extracted paystub and return a list of issues.

    Issues are informational; they never fail a job.
    """
    issues = []

    gross = document.gross_pay.value if document.gross_pay else None
    net = document.net_pay.value if document.net_pay else None
    gross_amount = getattr(gross, "amount", None)
    net_amount = getattr(net, "amount", None)

    if gross_amount is None and net_amount is None:
        issues.append("Unable to extract pay amounts")

    if gross_amount is not None and net_amount is not None and net_amount > gross_amount:
        issues.append(f"Net pay {net_amount} exceeds gross pay {gross_amount}")

    start, end = document.pay_period_start, document.pay_period_end
    if start and end and end < start:
        issues.append(f"Pay period ends ({end}) before it starts ({start})")

    if document.pay_date and start and document.pay_date < start:
        issues.append(f"Pay date {document.pay_date} is before pay period start {start}")

    return issues
