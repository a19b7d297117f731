"""
Paystub text parser.

Turns plain paystub text into a candidate PaystubData using the provider
pattern library plus line-based keyword heuristics.

Supported formats:
- Amounts: 5,000.00 / $5000.00 / 5000
- Dates: MM/DD/YYYY, MM-DD-YYYY, MM/DD/YY, YYYY-MM-DD
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from ..confidence.scorer import score_field, score_match
from ..schemas.paystub import (
    Deduction,
    DeductionCategory,
    ExtractedField,
    FieldSource,
    Money,
    PayFrequency,
    PaystubData,
)
from . import patterns as pt
from .patterns import MatchResult, PatternMatcher

DATE_FORMATS = ["%m/%d/%Y", "%m-%d-%Y", "%m/%d/%y", "%m-%d-%y", "%Y-%m-%d"]

TAX_KEYWORDS = [
    "federal", "state", "local", "fica", "medicare", "social security",
    "sdi", "sui", "futa", "suta", "tax",
]
RETIREMENT_KEYWORDS = ["401k", "401(k)", "403b", "403(b)", "retirement", "pension"]
BENEFIT_KEYWORDS = ["health", "medical", "dental", "vision", "life", "insurance", "hsa", "fsa"]
OTHER_KEYWORDS = ["garnish", "union", "dues", "loan", "charity", "parking"]

# Lines containing these are pay totals, not deductions
NON_DEDUCTION_KEYWORDS = ["gross", "net", "ytd", "total", "take home", "rate", "hours"]

DEDUCTION_LINE = re.compile(r"^\s*([A-Za-z][A-Za-z0-9 ()./&-]*?)[:\s]+\$?\s?([\d,]+\.\d{2})\b")
TRAILING_AMOUNT = re.compile(r"[ \t]+\$?\s?([\d,]+\.\d{2})\b")
EMPLOYEE_NAME_PATTERNS = [
    re.compile(r"employee\s*name[:\s]+([A-Za-z][A-Za-z .,'-]*[A-Za-z])", re.IGNORECASE),
    re.compile(r"^\s*employee[:\s]+([A-Za-z][A-Za-z .,'-]*[A-Za-z])\s*$", re.IGNORECASE | re.M),
]

PATTERN_CATEGORIES = {
    pt.TAX: DeductionCategory.TAX,
    pt.BENEFIT: DeductionCategory.BENEFIT,
    pt.RETIREMENT: DeductionCategory.RETIREMENT,
}


def parse_amount(amount_str: str) -> Optional[Decimal]:
    """Parse "5,000.00" / "$5000" into Decimal, None if not a number."""
    cleaned = amount_str.replace(",", "").replace("$", "").strip()
    if not cleaned:
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def parse_date(date_str: str) -> Optional[date]:
    """Parse the common US paystub date formats."""
    date_str = date_str.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue
    return None


def detect_pay_frequency(
    start: Optional[date], end: Optional[date], text: str
) -> PayFrequency:
    """
    Detect pay frequency from the period length, then explicit keywords.

    Period length counts both the start and end day.
    """
    if start and end and end >= start:
        days = (end - start).days + 1
        if 6 <= days <= 8:
            return PayFrequency.WEEKLY
        if days in (14, 15):
            if (start.day == 1 and end.day == 15) or (start.day == 16 and end.day >= 28):
                return PayFrequency.SEMI_MONTHLY
            return PayFrequency.BIWEEKLY
        if 13 <= days <= 16:
            if start.day in (1, 16):
                return PayFrequency.SEMI_MONTHLY
            return PayFrequency.BIWEEKLY
        if 28 <= days <= 31:
            return PayFrequency.MONTHLY

    text_lower = text.lower()
    if "bi-weekly" in text_lower or "biweekly" in text_lower:
        return PayFrequency.BIWEEKLY
    if "semi-monthly" in text_lower or "semimonthly" in text_lower:
        return PayFrequency.SEMI_MONTHLY
    if "weekly" in text_lower:
        return PayFrequency.WEEKLY
    if "monthly" in text_lower:
        return PayFrequency.MONTHLY

    return PayFrequency.UNKNOWN


def _line_number(text: str, position: int) -> int:
    return text.count("\n", 0, position)


def _contains_any(value: str, keywords: list[str]) -> bool:
    return any(keyword in value for keyword in keywords)


class PaystubParser:
    """
    Parse paystub text into source-tagged candidate fields.

    Amount fields are scored with the same rules the extraction pipeline
    applies, so a candidate already carries a usable confidence.
    """

    def __init__(self, matcher: Optional[PatternMatcher] = None):
        self.matcher = matcher or PatternMatcher()

    def parse(self, text: str, source: FieldSource) -> PaystubData:
        result = PaystubData(raw_text=text)

        result.provider, result.provider_match_count = self.matcher.detect_provider(text)
        matches = self.matcher.match_provider(text, result.provider)

        # Pay amounts
        result.gross_pay = self._amount_field(matches, pt.GROSS_PAY, source)
        result.net_pay = self._amount_field(matches, pt.NET_PAY, source)

        # Dates
        period = pt.best_match(matches, pt.DATE_RANGE)
        if period:
            result.pay_period_start = parse_date(period.first.group(1))
            result.pay_period_end = parse_date(period.first.group(2))
        pay_date = pt.best_match(matches, pt.PAY_DATE)
        if pay_date:
            result.pay_date = parse_date(pay_date.first.group(1))

        # YTD totals
        result.ytd_gross_pay = self._money(matches, pt.YTD_GROSS)
        result.ytd_net_pay = self._money(matches, pt.YTD_NET)
        result.ytd_taxes = self._money(matches, pt.YTD_TAXES)

        # Deductions
        self._extract_deductions(text, matches, result)

        # Parties
        employee_id = pt.best_match(matches, pt.EMPLOYEE_ID)
        if employee_id:
            result.employee_id = employee_id.first.group(1)
        result.employee_name = self._extract_employee_name(text)
        result.employer_name = self._extract_employer_name(text)

        result.pay_frequency = detect_pay_frequency(
            result.pay_period_start, result.pay_period_end, text
        )
        return result

    def _amount_field(
        self, matches: list[MatchResult], field_type: str, source: FieldSource
    ) -> Optional[ExtractedField]:
        """
        Pick the best amount for a field.

        pattern_count counts every pattern that agrees on the chosen amount.
        """
        candidates = pt.results_for(matches, field_type)
        for candidate in candidates:
            amount = parse_amount(candidate.first.group(1))
            if amount is None or amount <= 0:
                continue

            agreeing = sum(
                1 for other in candidates if parse_amount(other.first.group(1)) == amount
            )
            value = Money(amount)
            return ExtractedField(
                value=value,
                source=source,
                confidence=score_field(value.as_text(), source, agreeing),
                pattern_count=agreeing,
            )
        return None

    def _money(self, matches: list[MatchResult], field_type: str) -> Optional[Money]:
        match = pt.best_match(matches, field_type)
        if not match:
            return None
        amount = parse_amount(match.first.group(1))
        return Money(amount) if amount and amount > 0 else None

    def _extract_deductions(
        self, text: str, matches: list[MatchResult], result: PaystubData
    ) -> None:
        """Collect deductions from patterns, then from keyword lines patterns missed."""
        seen_lines: set[int] = set()

        for match_result in matches:
            category = PATTERN_CATEGORIES.get(match_result.pattern.field_type)
            if category is None:
                continue
            for match in match_result.matches:
                line_no = _line_number(text, match.start())
                amount = parse_amount(match.group(1))
                if line_no in seen_lines or not amount or amount <= 0:
                    continue
                seen_lines.add(line_no)
                name = match.group(0)[: match.start(1) - match.start()].strip(" :$\t")
                self._add_deduction(
                    result,
                    Deduction(
                        name=name,
                        amount=Money(amount),
                        category=category,
                        confidence=score_match(text, match.group(0), match.start()),
                        ytd=self._trailing_money(text, match.end()),
                    ),
                )

        position = 0
        for line_no, line in enumerate(text.split("\n")):
            line_start = position
            position += len(line) + 1
            if line_no in seen_lines:
                continue

            match = DEDUCTION_LINE.match(line)
            if not match:
                continue
            name = match.group(1).strip()
            name_lower = name.lower()
            if _contains_any(name_lower, NON_DEDUCTION_KEYWORDS):
                continue

            category = self._categorize(name_lower)
            amount = parse_amount(match.group(2))
            if category is None or not amount or amount <= 0:
                continue

            seen_lines.add(line_no)
            self._add_deduction(
                result,
                Deduction(
                    name=name,
                    amount=Money(amount),
                    category=category,
                    confidence=score_match(text, line.strip(), line_start),
                    ytd=self._trailing_money(line, match.end()),
                ),
            )

    def _categorize(self, name_lower: str) -> Optional[DeductionCategory]:
        if _contains_any(name_lower, RETIREMENT_KEYWORDS):
            return DeductionCategory.RETIREMENT
        if _contains_any(name_lower, TAX_KEYWORDS):
            return DeductionCategory.TAX
        if _contains_any(name_lower, BENEFIT_KEYWORDS):
            return DeductionCategory.BENEFIT
        if _contains_any(name_lower, OTHER_KEYWORDS):
            return DeductionCategory.OTHER
        return None

    def _add_deduction(self, result: PaystubData, deduction: Deduction) -> None:
        # Retirement contributions are reported alongside benefits
        if deduction.category == DeductionCategory.TAX:
            result.tax_deductions.append(deduction)
        elif deduction.category in (DeductionCategory.BENEFIT, DeductionCategory.RETIREMENT):
            result.benefit_deductions.append(deduction)
        else:
            result.other_deductions.append(deduction)

    def _trailing_money(self, text: str, end: int) -> Optional[Money]:
        """A second amount on the same line is the year-to-date figure."""
        match = TRAILING_AMOUNT.match(text, end)
        if not match:
            return None
        amount = parse_amount(match.group(1))
        return Money(amount) if amount and amount > 0 else None

    def _extract_employee_name(self, text: str) -> Optional[str]:
        for pattern in EMPLOYEE_NAME_PATTERNS:
            match = pattern.search(text)
            if match:
                return match.group(1).strip()
        return None

    def _extract_employer_name(self, text: str) -> Optional[str]:
        """The employer is usually the first header line that is not about pay."""
        lines = [line.strip() for line in text.split("\n") if line.strip()]
        for line in lines[:5]:
            if len(line) > 5 and "pay" not in line.lower():
                return line[:100]
        return None
