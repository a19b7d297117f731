"""
Payroll provider pattern library.

Each payroll vendor lays out paystubs slightly differently. Providers
carry their own high-confidence patterns; the Generic provider holds
broader fallback patterns that are always tried as well.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

GENERIC = "Generic"

# Field types produced by patterns
GROSS_PAY = "gross_pay"
NET_PAY = "net_pay"
TAX = "tax"
BENEFIT = "benefit"
RETIREMENT = "retirement"
DATE_RANGE = "date_range"
PAY_DATE = "pay_date"
YTD_GROSS = "ytd_gross"
YTD_NET = "ytd_net"
YTD_TAXES = "ytd_taxes"
EMPLOYEE_ID = "employee_id"

AMOUNT = r"\$?\s?([\d,]+\.?\d{0,2})"
DATE = r"(\d{1,2}[/-]\d{1,2}[/-]\d{2,4})"

# Keywords that identify the payroll vendor (ordered, first hit wins ties)
PROVIDER_INDICATORS: dict[str, list[str]] = {
    "ADP": ["adp", "automatic data processing", "adp.com", "adp workforce"],
    "Paychex": ["paychex", "paychex.com", "paychex flex"],
    "Workday": ["workday", "workday.com", "powered by workday"],
    "Gusto": ["gusto", "gusto.com", "gustohq"],
    "Paylocity": ["paylocity", "paylocity.com"],
    "Paycor": ["paycor", "paycor.com"],
}


@dataclass(frozen=True)
class Pattern:
    """A named regex that yields one field type."""

    name: str
    regex: re.Pattern
    field_type: str
    confidence: float


@dataclass
class Provider:
    name: str
    patterns: list[Pattern] = field(default_factory=list)


@dataclass
class MatchResult:
    """All matches of one pattern in a document."""

    provider: str
    pattern: Pattern
    matches: list[re.Match]

    @property
    def confidence(self) -> float:
        return self.pattern.confidence

    @property
    def first(self) -> re.Match:
        return self.matches[0]


def _p(name: str, regex: str, field_type: str, confidence: float) -> Pattern:
    return Pattern(name, re.compile(regex, re.IGNORECASE), field_type, confidence)


def _build_providers() -> dict[str, Provider]:
    """Set up provider-specific patterns."""
    providers = [
        Provider(
            "ADP",
            [
                _p("gross_pay", rf"gross\s*earnings[:\s]*{AMOUNT}", GROSS_PAY, 0.95),
                _p("net_pay", rf"net\s*pay[:\s]*{AMOUNT}", NET_PAY, 0.95),
                _p(
                    "federal_tax",
                    rf"federal\s*income\s*tax[:\s]*{AMOUNT}",
                    TAX,
                    0.9,
                ),
                _p(
                    "pay_period",
                    rf"pay\s*period[:\s]*{DATE}\s*-\s*{DATE}",
                    DATE_RANGE,
                    0.9,
                ),
            ],
        ),
        Provider(
            "Paychex",
            [
                _p("gross_pay", rf"total\s*gross[:\s]*{AMOUNT}", GROSS_PAY, 0.95),
                _p("net_pay", rf"net\s*amount[:\s]*{AMOUNT}", NET_PAY, 0.95),
                _p("employee_id", r"employee\s*#[:\s]*([A-Za-z0-9]+)", EMPLOYEE_ID, 0.85),
            ],
        ),
        Provider(
            "Workday",
            [
                _p("gross_pay", rf"gross\s*pay[:\s]*{AMOUNT}", GROSS_PAY, 0.95),
                _p("net_pay", rf"net\s*pay[:\s]*{AMOUNT}", NET_PAY, 0.95),
                _p("pay_date", rf"payment\s*date[:\s]*{DATE}", PAY_DATE, 0.9),
            ],
        ),
        Provider(
            "Gusto",
            [
                _p("gross_pay", rf"gross\s*wages[:\s]*{AMOUNT}", GROSS_PAY, 0.95),
                _p("net_pay", rf"take[\s-]*home[:\s]*{AMOUNT}", NET_PAY, 0.95),
            ],
        ),
        Provider(
            GENERIC,
            [
                # Gross pay variations
                _p(
                    "gross_pay_1",
                    rf"(?<!ytd )gross\s*(?:pay|earnings?|wages?|salary)[:\s]*{AMOUNT}",
                    GROSS_PAY,
                    0.8,
                ),
                _p("gross_pay_2", rf"total\s*(?:gross|earnings?)[:\s]*{AMOUNT}", GROSS_PAY, 0.8),
                # Net pay variations
                _p(
                    "net_pay_1",
                    rf"(?<!ytd )net\s*(?:pay|amount|wages?)[:\s]*{AMOUNT}",
                    NET_PAY,
                    0.8,
                ),
                _p(
                    "net_pay_2",
                    rf"take[\s-]*home\s*(?:pay|amount)?[:\s]*{AMOUNT}",
                    NET_PAY,
                    0.8,
                ),
                # Taxes
                _p(
                    "federal_tax",
                    rf"federal\s*(?:income\s*)?(?:tax|withholding)[:\s]*{AMOUNT}",
                    TAX,
                    0.75,
                ),
                _p(
                    "state_tax",
                    rf"state\s*(?:income\s*)?(?:tax|withholding)[:\s]*{AMOUNT}",
                    TAX,
                    0.75,
                ),
                _p("fica", rf"(?:fica|social\s*security)[:\s]*{AMOUNT}", TAX, 0.75),
                _p("medicare", rf"medicare[:\s]*{AMOUNT}", TAX, 0.75),
                # Benefits
                _p(
                    "health_insurance",
                    rf"(?:health|medical)\s*(?:insurance|ins\.?)?[:\s]*{AMOUNT}",
                    BENEFIT,
                    0.7,
                ),
                _p("dental", rf"dental\s*(?:insurance|ins\.?)?[:\s]*{AMOUNT}", BENEFIT, 0.7),
                _p("vision", rf"vision\s*(?:insurance|ins\.?)?[:\s]*{AMOUNT}", BENEFIT, 0.7),
                _p("401k", rf"401\s*\(?k\)?[:\s]*{AMOUNT}", RETIREMENT, 0.75),
                # Dates
                _p(
                    "pay_period",
                    rf"(?:pay\s*)?period[:\s]*{DATE}\s*[-–]\s*{DATE}",
                    DATE_RANGE,
                    0.8,
                ),
                _p("pay_date", rf"(?:pay|payment|check)\s*date[:\s]*{DATE}", PAY_DATE, 0.8),
                # YTD
                _p("ytd_gross", rf"ytd\s*gross(?:\s*pay)?[:\s]*{AMOUNT}", YTD_GROSS, 0.85),
                _p("ytd_net", rf"ytd\s*net(?:\s*pay)?[:\s]*{AMOUNT}", YTD_NET, 0.85),
                _p("ytd_taxes", rf"ytd\s*(?:total\s*)?tax(?:es)?[:\s]*{AMOUNT}", YTD_TAXES, 0.85),
                _p(
                    "employee_id",
                    r"emp(?:loyee)?\s*(?:id|#|no\.?)[:\s]*([A-Za-z0-9]+)",
                    EMPLOYEE_ID,
                    0.75,
                ),
            ],
        ),
    ]
    return {p.name: p for p in providers}


class PatternMatcher:
    """Matches paystub text against provider-specific and generic patterns."""

    def __init__(self):
        self.providers = _build_providers()

    def detect_provider(self, text: str) -> tuple[str, int]:
        """
        Detect the payroll provider from text.

        Returns:
            (provider name, number of indicator keywords found).
            ("Generic", 0) when no vendor is recognised.
        """
        text_lower = text.lower()
        best, best_count = GENERIC, 0

        for provider, keywords in PROVIDER_INDICATORS.items():
            count = sum(1 for keyword in keywords if keyword in text_lower)
            if count > best_count:
                best, best_count = provider, count

        return best, best_count

    def match_provider(self, text: str, provider_name: str) -> list[MatchResult]:
        """
        Run a provider's patterns followed by the generic fallback patterns.

        Unknown providers only get the generic patterns.
        """
        names = [provider_name, GENERIC] if provider_name != GENERIC else [GENERIC]
        results: list[MatchResult] = []

        for name in names:
            provider = self.providers.get(name)
            if provider is None:
                continue
            for pattern in provider.patterns:
                matches = list(pattern.regex.finditer(text))
                if matches:
                    results.append(MatchResult(provider.name, pattern, matches))

        return results


def results_for(results: list[MatchResult], field_type: str) -> list[MatchResult]:
    """All results of a field type, best confidence first."""
    selected = [r for r in results if r.pattern.field_type == field_type]
    return sorted(selected, key=lambda r: -r.confidence)


def best_match(results: list[MatchResult], field_type: str) -> Optional[MatchResult]:
    """Return the highest-confidence result for a field type."""
    selected = results_for(results, field_type)
    return selected[0] if selected else None
