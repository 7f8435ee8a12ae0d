"""Pipeline: split -> scheduled per-page extraction -> assembly, with progress events."""

from pipeline.assembler import ResultAssembler
from pipeline.document_processor import DocumentProcessor, RunState, parse_options, process_pdf
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

__all__ = [
    "DocumentProcessor",
    "RunState",
    "parse_options",
    "process_pdf",
    "ResultAssembler",
    "PageScheduler",
    "EventStream",
    "ProgressEvent",
    "RunStarted",
    "PagesSplit",
    "PageCompleted",
    "RunFinished",
    "RunAborted",
]
