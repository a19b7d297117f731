"""
Configuration management (SSOT).

This module defines ALL configuration for the paystub processing core.
All config keys are defined here; no other module should invent config keys.

Precedence: environment variable > YAML file > default.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class ProcessorConfig:
    """Worker pool and queue settings."""

    # Number of worker threads (queue capacity is twice this)
    worker_count: int = 5
    # Max seconds submit() blocks on a full queue before rejecting
    submission_timeout: float = 5.0
    # Seconds between polls of an external queue
    poll_interval: float = 10.0
    # Seconds a polled message stays hidden before redelivery
    visibility_timeout: float = 300.0
    # Job queue to poll, "memory://<name>" (None = direct submission only)
    queue_url: Optional[str] = None


@dataclass
class ExtractorConfig:
    """Extraction engine settings."""

    enable_ocr: bool = True
    cache_enabled: bool = True
    cache_max_entries: int = 100
    # Cache TTL (seconds)
    cache_ttl_seconds: float = 900.0
    # Only results scoring above this are cached
    cache_min_confidence: float = 0.7
    # Maximum upload size (bytes)
    max_file_size: int = 10 * 1024 * 1024
    ocr_language: str = "eng"
    # PDFs with less embedded text than this are treated as scans
    min_pdf_text_length: int = 100


@dataclass
class Config:
    """Application configuration (SSOT)."""

    processor: ProcessorConfig = field(default_factory=ProcessorConfig)
    extractor: ExtractorConfig = field(default_factory=ExtractorConfig)
    log_level: str = "INFO"

    def validate(self) -> list[str]:
        """Validate configuration consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if self.processor.worker_count < 1:
            errors.append("processor.worker_count must be >= 1")
        if self.processor.submission_timeout < 0:
            errors.append("processor.submission_timeout must be >= 0")
        if self.processor.poll_interval <= 0:
            errors.append("processor.poll_interval must be > 0")
        if self.processor.visibility_timeout <= 0:
            errors.append("processor.visibility_timeout must be > 0")
        if self.processor.queue_url and not self.processor.queue_url.startswith("memory://"):
            errors.append(
                f"processor.queue_url '{self.processor.queue_url}' is not supported "
                "(expected memory://<name>)"
            )

        if self.extractor.max_file_size <= 0:
            errors.append("extractor.max_file_size must be > 0")
        if self.extractor.cache_max_entries < 1:
            errors.append("extractor.cache_max_entries must be >= 1")
        if not 0.0 <= self.extractor.cache_min_confidence <= 1.0:
            errors.append("extractor.cache_min_confidence must be between 0 and 1")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"log_level '{self.log_level}' is not a valid logging level")

        return errors


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name, "").lower()
    if value in ("true", "1", "yes"):
        return True
    if value in ("false", "0", "no"):
        return False
    return default


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from a YAML file (missing file = defaults).

    Environment variables can override config values:
    - QUEUE_MAX_WORKERS
    - QUEUE_SUBMISSION_TIMEOUT_SECONDS
    - QUEUE_POLL_INTERVAL_SECONDS
    - QUEUE_VISIBILITY_TIMEOUT_SECONDS
    - QUEUE_URL
    - ENABLE_OCR (true/false)
    - CACHE_ENABLED (true/false)
    - MAX_FILE_SIZE (bytes)
    - LOG_LEVEL

    Raises:
        ConfigValidationError: If a value cannot be parsed or is invalid
    """
    if config_path is not None and config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    try:
        # Processor config
        proc_data = data.get("processor", {})
        processor = ProcessorConfig(
            worker_count=int(os.environ.get(
                "QUEUE_MAX_WORKERS", proc_data.get("worker_count", 5)
            )),
            submission_timeout=float(os.environ.get(
                "QUEUE_SUBMISSION_TIMEOUT_SECONDS", proc_data.get("submission_timeout", 5.0)
            )),
            poll_interval=float(os.environ.get(
                "QUEUE_POLL_INTERVAL_SECONDS", proc_data.get("poll_interval", 10.0)
            )),
            visibility_timeout=float(os.environ.get(
                "QUEUE_VISIBILITY_TIMEOUT_SECONDS", proc_data.get("visibility_timeout", 300.0)
            )),
            queue_url=os.environ.get("QUEUE_URL", proc_data.get("queue_url")),
        )

        # Extractor config
        ext_data = data.get("extractor", {})
        extractor = ExtractorConfig(
            enable_ocr=_env_bool("ENABLE_OCR", ext_data.get("enable_ocr", True)),
            cache_enabled=_env_bool("CACHE_ENABLED", ext_data.get("cache_enabled", True)),
            cache_max_entries=int(ext_data.get("cache_max_entries", 100)),
            cache_ttl_seconds=float(ext_data.get("cache_ttl_seconds", 900.0)),
            cache_min_confidence=float(ext_data.get("cache_min_confidence", 0.7)),
            max_file_size=int(os.environ.get(
                "MAX_FILE_SIZE", ext_data.get("max_file_size", 10 * 1024 * 1024)
            )),
            ocr_language=ext_data.get("ocr_language", "eng"),
            min_pdf_text_length=int(ext_data.get("min_pdf_text_length", 100)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigValidationError(f"Invalid configuration value: {e}") from e

    config = Config(
        processor=processor,
        extractor=extractor,
        log_level=os.environ.get("LOG_LEVEL", data.get("log_level", "INFO")),
    )

    errors = config.validate()
    if errors:
        raise ConfigValidationError("; ".join(errors))
    return config


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# Paystub Extractor Configuration
#
# Environment variables override these values
# (QUEUE_MAX_WORKERS, ENABLE_OCR, CACHE_ENABLED, MAX_FILE_SIZE, ...).

processor:
  worker_count: 5               # Worker threads (queue holds 2x this)
  submission_timeout: 5.0       # Seconds submit() waits on a full queue
  poll_interval: 10.0           # Seconds between external queue polls
  visibility_timeout: 300.0     # Seconds before an unacked message is redelivered
  queue_url: null               # memory://<name> to poll a queue (null = direct submission only)

extractor:
  enable_ocr: true              # OCR images and scanned PDFs
  cache_enabled: true
  cache_max_entries: 100
  cache_ttl_seconds: 900        # 15 minutes
  cache_min_confidence: 0.7     # Only cache results above this confidence
  max_file_size: 10485760       # 10 MiB
  ocr_language: "eng"
  min_pdf_text_length: 100      # Shorter text layers are treated as scans

log_level: "INFO"
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
