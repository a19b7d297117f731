"""
SSOT (Single Source of Truth) schemas for the processing core.

These canonical schemas are the ONLY models passed between engines,
the pipeline, workers and the result store.
"""

from .paystub import (
    DateValue,
    Deduction,
    DeductionCategory,
    ExtractedField,
    FieldSource,
    FieldValue,
    InvalidStatusTransition,
    Location,
    Money,
    PayFrequency,
    Percentage,
    PaystubData,
    ProcessingRequest,
    ProcessingStatus,
    TextValue,
    value_from_json,
)

__all__ = [
    # Extracted document
    "PaystubData",
    "ExtractedField",
    "Deduction",
    "Location",
    # Field values
    "FieldValue",
    "Money",
    "DateValue",
    "TextValue",
    "Percentage",
    "value_from_json",
    # Enums
    "FieldSource",
    "DeductionCategory",
    "PayFrequency",
    "ProcessingStatus",
    # Job tracking
    "ProcessingRequest",
    "InvalidStatusTransition",
]
