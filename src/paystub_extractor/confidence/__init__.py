"""
Confidence scoring module.

Computes per-field, pattern-match, provider and overall confidence scores.
"""

from .scorer import (
    PROVIDER_CONFIDENCE_CAP,
    SOURCE_BASE_CONFIDENCE,
    has_delimiters,
    is_numeric,
    is_well_formatted,
    score_field,
    score_match,
    score_overall,
    score_provider,
    validate_paystub,
)

__all__ = [
    "score_field",
    "score_overall",
    "score_match",
    "score_provider",
    "validate_paystub",
    "is_numeric",
    "is_well_formatted",
    "has_delimiters",
    "SOURCE_BASE_CONFIDENCE",
    "PROVIDER_CONFIDENCE_CAP",
]
