"""
Typed progress events and the channel that carries them to the caller.
A run emits RunStarted, PagesSplit, one PageCompleted per page, then exactly one
terminal event (RunFinished or RunAborted).
"""

from __future__ import annotations

import queue
from dataclasses import dataclass
from typing import ClassVar, Iterator

from core.exceptions import PdfTextError
from core.models import ExtractionKind, ExtractionResult, PageStatus


@dataclass(frozen=True)
class ProgressEvent:
    run_id: str
    document_path: str

    terminal: ClassVar[bool] = False


@dataclass(frozen=True)
class RunStarted(ProgressEvent):
    kind: ExtractionKind


@dataclass(frozen=True)
class PagesSplit(ProgressEvent):
    page_count: int
    scratch_dir: str


@dataclass(frozen=True)
class PageCompleted(ProgressEvent):
    index: int
    total: int
    status: PageStatus
    error: str | None = None


@dataclass(frozen=True)
class RunFinished(ProgressEvent):
    result: ExtractionResult

    terminal: ClassVar[bool] = True


@dataclass(frozen=True)
class RunAborted(ProgressEvent):
    error: PdfTextError
    reason: str

    terminal: ClassVar[bool] = True


class EventStream:
    """
    Queue-backed channel of ProgressEvents. Producers call emit(); the consumer
    iterates (stops after the terminal event) or calls wait() for the terminal one only.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue[ProgressEvent] = queue.Queue()

    def emit(self, event: ProgressEvent) -> None:
        self._queue.put(event)

    def get(self, timeout: float | None = None) -> ProgressEvent:
        """Next event; raises queue.Empty on timeout."""
        return self._queue.get(timeout=timeout)

    def __iter__(self) -> Iterator[ProgressEvent]:
        while True:
            event = self._queue.get()
            yield event
            if event.terminal:
                return

    def wait(self, timeout: float | None = None) -> RunFinished | RunAborted:
        """Skip intermediate events and return the terminal one. ``timeout`` applies per event."""
        while True:
            event = self.get(timeout=timeout)
            if isinstance(event, (RunFinished, RunAborted)):
                return event

    def drain(self) -> list[ProgressEvent]:
        """Everything queued so far, without blocking."""
        events: list[ProgressEvent] = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events
