"""
CLI main entry point.
"""

import argparse
import json
import logging
import mimetypes
import sys
from pathlib import Path

from ..config import Config, create_default_config, load_config
from ..extractors import DocumentEngine, ExtractionEngine, ExtractionError
from ..processing import (
    ExtractionPipeline,
    JobProcessor,
    ProcessorStoppedError,
    QueueSaturatedError,
    ResultStore,
)
from ..schemas.paystub import PaystubData, ProcessingStatus

logger = logging.getLogger(__name__)

# Suffixes mimetypes does not know on every platform
CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
}


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def guess_content_type(path: Path) -> str:
    content_type = CONTENT_TYPES.get(path.suffix.lower())
    if content_type:
        return content_type
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or "application/octet-stream"


def build_engine(config: Config) -> ExtractionEngine:
    """Create the extraction engine for CLI commands."""
    return DocumentEngine.from_config(config.extractor)


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="paystub-extractor",
        description="Extract pay data from paystub PDFs and images",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # extract command
    extract_parser = subparsers.add_parser("extract", help="Extract a single paystub")
    extract_parser.add_argument("file", type=Path, help="Paystub PDF or image")
    extract_parser.add_argument(
        "--output",
        choices=["json", "summary"],
        default="summary",
        help="Output format (default: summary)",
    )
    extract_parser.add_argument(
        "--content-type",
        type=str,
        help="Override the content type guessed from the file name",
    )

    # batch command
    batch_parser = subparsers.add_parser(
        "batch", help="Process several paystubs through the worker pool"
    )
    batch_parser.add_argument("files", type=Path, nargs="+", help="Paystub PDFs or images")
    batch_parser.add_argument(
        "--workers",
        type=int,
        help="Number of workers (default: from config)",
    )

    # init-config command
    init_parser = subparsers.add_parser("init-config", help="Write a default config file")
    init_parser.add_argument("path", type=Path, help="Where to write the config file")

    return parser


def print_summary(name: str, document: PaystubData) -> None:
    print(f"📄 {name}")
    print(
        f"   Provider:    {document.provider} "
        f"({document.provider_confidence:.0%} confidence)"
    )
    for label, extracted in (("Gross pay", document.gross_pay), ("Net pay", document.net_pay)):
        if extracted:
            print(
                f"   {label + ':':<12} {extracted.value.as_text()} "
                f"({extracted.confidence:.0%}, {extracted.source.value})"
            )
        else:
            print(f"   {label + ':':<12} not found")
    if document.pay_period_start and document.pay_period_end:
        print(f"   Pay period:  {document.pay_period_start} to {document.pay_period_end}")
    if document.pay_date:
        print(f"   Pay date:    {document.pay_date}")
    if document.pay_frequency.value != "unknown":
        print(f"   Frequency:   {document.pay_frequency.value}")
    if document.employer_name:
        print(f"   Employer:    {document.employer_name}")
    if document.employee_name:
        print(f"   Employee:    {document.employee_name}")

    deductions = document.all_deductions()
    if deductions:
        print(f"   Deductions:  {len(deductions)}")
        for deduction in deductions:
            print(
                f"     - {deduction.name}: {deduction.amount.as_text()} "
                f"({deduction.category.value})"
            )

    print(f"   Confidence:  {document.overall_confidence:.0%}")
    print(f"   Time:        {document.processing_time_ms}ms")


def cmd_extract(
    config: Config, file: Path, output: str, content_type: str | None = None
) -> int:
    """Extract a single paystub synchronously."""
    if not file.exists():
        print(f"❌ File not found: {file}")
        return 1

    data = file.read_bytes()
    content_type = content_type or guess_content_type(file)
    pipeline = ExtractionPipeline(build_engine(config))

    try:
        document = pipeline.run(data, content_type)
    except ExtractionError as e:
        print(f"❌ Extraction failed: {e}")
        return 1

    if output == "json":
        print(json.dumps(document.to_dict(), indent=2))
    else:
        print_summary(file.name, document)
    return 0


def cmd_batch(config: Config, files: list[Path], workers: int | None = None) -> int:
    """Run several paystubs through the worker pool and report each outcome."""
    worker_count = workers or config.processor.worker_count
    print(f"🚀 Processing {len(files)} file(s) with {worker_count} worker(s)...")

    store = ResultStore()
    processor = JobProcessor(
        ExtractionPipeline(build_engine(config)),
        store=store,
        worker_count=worker_count,
        submission_timeout=config.processor.submission_timeout,
    )

    submitted: list[tuple[Path, str]] = []
    rejected = 0
    processor.start()
    try:
        for file in files:
            if not file.exists():
                print(f"  ❌ {file}: file not found")
                rejected += 1
                continue
            try:
                job_id = processor.submit(
                    file.read_bytes(), guess_content_type(file), file_name=file.name
                )
            except (QueueSaturatedError, ProcessorStoppedError) as e:
                print(f"  ❌ {file}: {e}")
                rejected += 1
                continue
            submitted.append((file, job_id))
    finally:
        processor.stop()

    completed = 0
    failed = rejected
    for file, job_id in submitted:
        request = processor.get_result(job_id)
        if request and request.status == ProcessingStatus.COMPLETED:
            completed += 1
            confidence = request.result.overall_confidence if request.result else 0.0
            print(f"  ✓ {file.name} [{job_id}] completed ({confidence:.0%} confidence)")
        else:
            failed += 1
            error = request.error if request else "no result recorded"
            print(f"  ❌ {file.name} [{job_id}] failed: {error}")

    print(f"\n✓ Completed: {completed}, Failed: {failed}")
    return 0 if failed == 0 else 1


def cmd_init_config(path: Path) -> int:
    if path.exists():
        print(f"❌ Config file already exists: {path}")
        return 1
    create_default_config(path)
    print(f"✓ Wrote default config to {path}")
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init-config":
        return cmd_init_config(parsed.path)

    # Load config
    try:
        config = load_config(parsed.config)
    except Exception as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    if not parsed.verbose:
        logging.getLogger().setLevel(config.log_level.upper())

    # Route to command
    if parsed.command == "extract":
        return cmd_extract(config, parsed.file, parsed.output, parsed.content_type)
    elif parsed.command == "batch":
        return cmd_batch(config, parsed.files, parsed.workers)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
