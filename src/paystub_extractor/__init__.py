"""
Paystub upload → Text / OCR extraction → Confidence scoring → Pollable results

An asynchronous processing core that schedules paystub documents onto a
bounded worker pool, extracts pay data with per-field provenance, and scores
every result so callers know how far to trust it.
"""

__version__ = "0.1.0"
