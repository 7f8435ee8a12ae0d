"""
PDF page text extraction: entry point.

Splits a PDF into single pages, extracts each page's text with the chosen backend
(text layer or OCR) using a bounded worker pool, and prints one JSON document with
one entry per page (failed pages become {"index", "error", "message"} objects).

Usage:
  python main.py FILE --type text|ocr [--keep-files] [--workers N] [--output OUT.json]
                 [--config config.yaml] [--log-level LEVEL] [--progress]

Exit codes: 0 all pages extracted, 1 partial or total page failure, 2 run aborted
(bad options, missing file, unreadable PDF) or configuration error.
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from core.exceptions import ConfigError, PdfTextError
from core.models import ExtractionResult, OverallStatus
from pipeline.document_processor import DocumentProcessor
from pipeline.events import PageCompleted, PagesSplit, ProgressEvent, RunAborted, RunFinished
from utils.config import load_config
from utils.logger import get_logger, setup_logging


def _print_event(event: ProgressEvent) -> None:
    if isinstance(event, PagesSplit):
        print(f"split into {event.page_count} pages", file=sys.stderr)
    elif isinstance(event, PageCompleted):
        suffix = f" ({event.error})" if event.error else ""
        print(f"page {event.index + 1}/{event.total}: {event.status.value}{suffix}", file=sys.stderr)
    elif isinstance(event, RunFinished):
        print(f"finished: {event.result.status.value}", file=sys.stderr)
    elif isinstance(event, RunAborted):
        print(f"aborted: {event.reason}", file=sys.stderr)


def run_with_progress(processor: DocumentProcessor, pdf: str, options: dict[str, Any]) -> ExtractionResult:
    """Run on a background thread and print each event to stderr as it arrives."""
    events = processor.start(pdf, options)
    while True:
        event = events.get()
        _print_event(event)
        if isinstance(event, RunAborted):
            raise event.error
        if isinstance(event, RunFinished):
            return event.result


def save_result(payload: dict[str, Any], path: Path | None) -> None:
    """Write result JSON to path, or stdout when path is None."""
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if path is None:
        print(text)
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text + "\n", encoding="utf-8")
    get_logger(__name__).info("Saved result to %s", path)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Extract per-page text from a PDF (text layer or OCR)")
    parser.add_argument("pdf", help="Path to the PDF file")
    parser.add_argument("--type", "-t", required=True, help='Extraction type: "text" or "ocr"')
    parser.add_argument(
        "--keep-files",
        action="store_true",
        help="Keep the single-page files; their directory is reported as scratch_dir and becomes yours to delete",
    )
    parser.add_argument("--workers", "-w", type=int, default=None, help="Max concurrent page jobs")
    parser.add_argument("--output", "-o", default=None, help="Write JSON here instead of stdout")
    parser.add_argument("--config", "-c", default=None, help="YAML config (default: ./config.yaml if present)")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.add_argument("--progress", action="store_true", help="Print progress events to stderr")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        config = config.with_overrides(log_level=args.log_level)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    setup_logging(config.log_level)
    log = get_logger(__name__)

    options: dict[str, Any] = {"type": args.type}
    if args.keep_files:
        options["cleanup"] = False
    if args.workers is not None:
        options["max_workers"] = args.workers

    processor = DocumentProcessor(config)
    try:
        if args.progress:
            result = run_with_progress(processor, args.pdf, options)
        else:
            result = processor.process(args.pdf, options)
    except PdfTextError as e:
        log.error("Extraction aborted: %s", e)
        return 2

    save_result(result.to_dict(), Path(args.output) if args.output else None)
    return 0 if result.status is OverallStatus.ALL_SUCCEEDED else 1


if __name__ == "__main__":
    sys.exit(main())
