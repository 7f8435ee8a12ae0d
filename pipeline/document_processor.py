"""
Document processor: single public method process(document_path, options) -> ExtractionResult.
Does not know which PDF/OCR tools are used; page source and backend factory are injected.
Flow: validate -> split into scratch -> extract pages (bounded pool) -> assemble -> cleanup.

Each call gets its own _DocumentRun (state, run id, scratch directory), so several documents
can be processed at once with one DocumentProcessor.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Mapping, Union

from pydantic import ValidationError as PydanticValidationError

from core.exceptions import CleanupError, PdfTextError, RunError, SplitError, ValidationError
from core.interfaces import IExtractionBackend, IPageSource
from core.models import ExtractionKind, ExtractionResult, Page
from core.schema import ProcessOptions
from extraction.splitter import PageSplitter
from pipeline.assembler import ResultAssembler
from pipeline.events import (
    EventStream,
    PageCompleted,
    PagesSplit,
    ProgressEvent,
    RunAborted,
    RunFinished,
    RunStarted,
)
from pipeline.scheduler import PageScheduler
from services import create_backend
from utils.config import AppConfig
from utils.logger import log_structured
from utils.scratch import ScratchDir

logger = logging.getLogger(__name__)

BackendFactory = Callable[[ExtractionKind, AppConfig], IExtractionBackend]
OptionsLike = Union[ProcessOptions, Mapping[str, Any], None]

TYPE_HINT = 'Allowed values are "ocr" or "text"'


class RunState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SPLITTING = "splitting"
    EXTRACTING = "extracting"
    ASSEMBLING = "assembling"
    DONE = "done"
    ABORTED = "aborted"


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_options(options: OptionsLike, trace_id: str = "") -> ProcessOptions:
    """Resolve caller options once; the extraction type becomes an ExtractionKind here."""
    if options is None:
        raise ValidationError(
            f'no options supplied; pass an options object with the "type" field set. {TYPE_HINT}',
            reason="missing_options",
            trace_id=trace_id,
        )
    if isinstance(options, ProcessOptions):
        return options
    if isinstance(options, Mapping) and _is_blank(options.get("type")):
        raise ValidationError(
            f'you must specify the extraction type in options["type"]. {TYPE_HINT}',
            reason="missing_type",
            trace_id=trace_id,
        )
    try:
        return ProcessOptions.model_validate(options)
    except PydanticValidationError as e:
        type_errors = [err for err in e.errors() if err.get("loc", ())[:1] == ("type",)]
        if type_errors:
            missing = type_errors[0].get("type") == "missing"
            raise ValidationError(
                f"{'missing' if missing else 'invalid'} extraction type "
                f"{'' if missing else repr(type_errors[0].get('input')) + ' '}in options. {TYPE_HINT}",
                reason="missing_type" if missing else "invalid_type",
                trace_id=trace_id,
            ) from e
        raise ValidationError(f"invalid options: {e}", reason="invalid_options", trace_id=trace_id) from e


class _DocumentRun:
    """One pass of the state machine for one document. Not reused."""

    def __init__(
        self,
        processor: DocumentProcessor,
        document_path: str | Path | None,
        options: OptionsLike,
        events: EventStream,
    ) -> None:
        self.run_id = str(uuid.uuid4())
        self.state = RunState.IDLE
        self._processor = processor
        self._config = processor.config
        self._raw_path = document_path
        self._raw_options = options
        self._events = events
        self._scratch: ScratchDir | None = None
        self._cleanup = True
        self._completed = 0

    # -- helpers --------------------------------------------------------------

    def _enter(self, state: RunState) -> None:
        logger.debug("Run %s: %s -> %s", self.run_id, self.state.value, state.value)
        self.state = state

    def _emit(self, event: ProgressEvent) -> None:
        self._events.emit(event)

    @property
    def _path_str(self) -> str:
        return str(self._raw_path) if self._raw_path is not None else ""

    def _release_scratch(self) -> list[CleanupError]:
        if self._scratch is None:
            return []
        errors = self._scratch.remove()
        for err in errors:
            err.trace_id = self.run_id
        self._scratch = None
        return errors

    def _on_page_done(self, page: Page, total: int) -> None:
        self._completed += 1
        error_kind = page.error.kind if page.error is not None else None
        log_structured(
            logger,
            logging.INFO if error_kind is None else logging.WARNING,
            f"Page {page.index} {page.status.value} ({self._completed}/{total})"
            + (f": {page.error}" if page.error is not None else ""),
            run_id=self.run_id,
            page_index=page.index,
            page_status=page.status.value,
            error_kind=error_kind,
        )
        self._emit(
            PageCompleted(
                run_id=self.run_id,
                document_path=self._path_str,
                index=page.index,
                total=total,
                status=page.status,
                error=error_kind,
            )
        )

    # -- states ---------------------------------------------------------------

    def _validate(self) -> tuple[Path, ProcessOptions]:
        self._enter(RunState.VALIDATING)
        if self._raw_path is None or str(self._raw_path).strip() == "":
            raise ValidationError(
                "you must supply a pdf path as the first parameter", reason="missing_path", trace_id=self.run_id
            )
        opts = parse_options(self._raw_options, trace_id=self.run_id)
        path = Path(self._raw_path)
        if not path.exists():
            raise ValidationError(
                f"no file exists at the path you specified: {path}",
                reason="file_not_found",
                document_path=path,
                trace_id=self.run_id,
            )
        if not path.is_file():
            raise ValidationError(
                f"path is not a file: {path}", reason="not_a_file", document_path=path, trace_id=self.run_id
            )
        return path, opts

    def _split(self, path: Path) -> list[Page]:
        self._enter(RunState.SPLITTING)
        self._scratch = ScratchDir.create(self._config.scratch_root)
        try:
            pages = self._processor.splitter.split(path, self._scratch)
        except SplitError as e:
            e.trace_id = e.trace_id or self.run_id
            e.document_path = e.document_path or str(path)
            raise
        self._emit(
            PagesSplit(
                run_id=self.run_id,
                document_path=str(path),
                page_count=len(pages),
                scratch_dir=str(self._scratch.path),
            )
        )
        return pages

    def _extract(self, pages: list[Page], opts: ProcessOptions) -> None:
        self._enter(RunState.EXTRACTING)
        backend = self._processor.backend_factory(opts.type, self._config)
        workers = opts.max_workers or self._config.max_workers
        scheduler = PageScheduler(max_workers=workers)
        total = len(pages)
        scheduler.run(
            pages,
            backend,
            on_page_done=lambda page: self._on_page_done(page, total),
            trace_id=self.run_id,
        )
        logger.debug("Run %s: peak in-flight jobs %s (limit %s)", self.run_id, scheduler.peak_in_flight, workers)

    def _execute(self, start: float) -> ExtractionResult:
        path, opts = self._validate()
        self._cleanup = opts.cleanup if opts.cleanup is not None else self._config.cleanup
        logger.info(
            "Run %s start path=%s type=%s cleanup=%s",
            self.run_id, path, opts.type.value, self._cleanup,
        )
        self._emit(RunStarted(run_id=self.run_id, document_path=str(path), kind=opts.type))

        pages = self._split(path)
        self._extract(pages, opts)

        self._enter(RunState.ASSEMBLING)
        texts, status = self._processor.assembler.assemble(pages)
        return ExtractionResult(
            document_path=str(path),
            kind=opts.type,
            pages=texts,
            status=status,
            run_id=self.run_id,
            elapsed_sec=time.perf_counter() - start,
        )

    def execute(self) -> ExtractionResult:
        start = time.perf_counter()
        try:
            result = self._execute(start)
        except PdfTextError as e:
            e.trace_id = e.trace_id or self.run_id
            self._release_scratch()
            self._abort(e)
            raise
        except Exception as e:
            logger.exception("Run %s failed unexpectedly", self.run_id)
            error = RunError(f"{type(e).__name__}: {e}", trace_id=self.run_id)
            self._release_scratch()
            self._abort(error)
            raise error from e
        except BaseException:
            self._release_scratch()
            raise

        if self._cleanup:
            result.cleanup_errors = [str(err) for err in self._release_scratch()]
        elif self._scratch is not None:
            result.scratch_dir = self._scratch.path
            logger.info(
                "Run %s keeps %s page files in %s; the caller is responsible for removing them",
                self.run_id, result.page_count, self._scratch.path,
            )
        result.elapsed_sec = time.perf_counter() - start
        self._enter(RunState.DONE)
        logger.info(
            "Run %s done path=%s status=%s pages=%s failed=%s elapsed=%.2fs",
            self.run_id, result.document_path, result.status.value,
            result.page_count, len(result.failures), result.elapsed_sec,
        )
        self._emit(RunFinished(run_id=self.run_id, document_path=result.document_path, result=result))
        return result

    def _abort(self, error: PdfTextError) -> None:
        self._enter(RunState.ABORTED)
        reason = getattr(error, "reason", "") or type(error).__name__
        if isinstance(error, ValidationError):
            logger.warning("Run %s rejected path=%s reason=%s: %s", self.run_id, self._path_str, reason, error)
        else:
            logger.error("Run %s aborted path=%s reason=%s: %s", self.run_id, self._path_str, reason, error)
        self._emit(RunAborted(run_id=self.run_id, document_path=self._path_str, error=error, reason=reason))


class DocumentProcessor:
    """
    Public orchestrator. No global state; page source and backend factory injectable for tests.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        page_source: IPageSource | None = None,
        backend_factory: BackendFactory | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.splitter = PageSplitter(page_source)
        self.backend_factory: BackendFactory = backend_factory or create_backend
        self.assembler = ResultAssembler()

    def process(
        self,
        document_path: str | Path | None,
        options: OptionsLike,
        events: EventStream | None = None,
    ) -> ExtractionResult:
        """
        Run the full pipeline for one document. Returns the result (possibly with failed pages);
        raises a PdfTextError (ValidationError, SplitError, ConfigError or RunError wrapping an
        unexpected failure) after emitting RunAborted with that same error when the run aborts.
        """
        run = _DocumentRun(self, document_path, options, events if events is not None else EventStream())
        return run.execute()

    def start(self, document_path: str | Path | None, options: OptionsLike) -> EventStream:
        """Run in a background thread; consume progress and the terminal event from the stream."""
        events = EventStream()
        thread = threading.Thread(
            target=self._process_in_background,
            args=(document_path, options, events),
            name="pdf-page-run",
            daemon=True,
        )
        thread.start()
        return events

    def _process_in_background(
        self, document_path: str | Path | None, options: OptionsLike, events: EventStream
    ) -> None:
        try:
            self.process(document_path, options, events)
        except PdfTextError as e:
            # Already delivered to the consumer as RunAborted.
            logger.debug("Background run ended with %s: %s", type(e).__name__, e)
        except Exception:
            logger.exception("Background run failed unexpectedly for %s", document_path)


def process_pdf(
    document_path: str | Path | None,
    options: OptionsLike,
    events: EventStream | None = None,
    config: AppConfig | None = None,
) -> ExtractionResult:
    """Convenience entry: process_pdf(path, {"type": "ocr" | "text", "cleanup": bool})."""
    return DocumentProcessor(config).process(document_path, options, events)
