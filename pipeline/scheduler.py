"""
Page scheduler: runs one backend over all pages of a document with bounded concurrency.
Jobs are submitted in page order to a ThreadPoolExecutor and may complete in any order.
Each job records only its own page outcome, so one failure never affects other pages.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable

from core.exceptions import ExtractionError, PageError
from core.interfaces import IExtractionBackend
from core.models import Page

logger = logging.getLogger(__name__)

PageCallback = Callable[[Page], None]


class PageScheduler:
    """Bounded worker pool; ``max_workers`` caps simultaneous external-tool invocations."""

    def __init__(self, max_workers: int = 4) -> None:
        self._max_workers = max(1, int(max_workers))
        self._lock = threading.Lock()
        self.in_flight = 0
        self.peak_in_flight = 0

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def _job_started(self) -> None:
        with self._lock:
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)

    def _job_finished(self) -> None:
        with self._lock:
            self.in_flight -= 1

    def _run_one(self, page: Page, backend: IExtractionBackend, trace_id: str) -> Page:
        if page.path is None:
            _fail_unsplit(page)
            return page
        self._job_started()
        start = time.perf_counter()
        try:
            text = backend.extract(page.path)
        except PageError as e:
            e.trace_id = e.trace_id or trace_id
            page.record_failure(e)
        except Exception as e:
            logger.exception("Unexpected error on page %s (trace_id=%s): %s", page.index, trace_id, e)
            err = ExtractionError(f"{type(e).__name__}: {e}", page_index=page.index, trace_id=trace_id)
            page.record_failure(err)
        else:
            page.record_success(text)
        finally:
            self._job_finished()
        logger.debug(
            "Page %s %s in %.3fs (trace_id=%s)",
            page.index, page.status.value, time.perf_counter() - start, trace_id,
        )
        return page

    def run(
        self,
        pages: list[Page],
        backend: IExtractionBackend,
        on_page_done: PageCallback | None = None,
        trace_id: str = "",
    ) -> list[Page]:
        """
        Extract every dispatchable page; pages that failed to split are failed without dispatch.
        Returns the same list once every page is terminal.
        """
        runnable: list[Page] = []
        for page in pages:
            if page.path is None:
                _fail_unsplit(page)
                _notify(on_page_done, page)
            else:
                runnable.append(page)

        with ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="page") as executor:
            futures = {executor.submit(self._run_one, page, backend, trace_id): page for page in runnable}
            for future in as_completed(futures):
                # _run_one records every outcome itself; result() only re-raises interpreter-level errors
                page = future.result()
                _notify(on_page_done, page)
        return pages


def _notify(callback: PageCallback | None, page: Page) -> None:
    if callback is None:
        return
    try:
        callback(page)
    except Exception as e:
        logger.warning("page callback failed for page %s: %s", page.index, e)


def _fail_unsplit(page: Page) -> None:
    page.record_failure(page.split_error or ExtractionError("page was not split", page_index=page.index))
