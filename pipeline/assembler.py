"""Assemble per-page outcomes into the positional page list and the overall status."""

from __future__ import annotations

from core.exceptions import ExtractionError
from core.models import OverallStatus, Page, PageFailure, PageStatus


class ResultAssembler:
    """output[i] is page i, whatever order the pages finished in."""

    def assemble(self, pages: list[Page]) -> tuple[list[str | PageFailure], OverallStatus]:
        slots: list[str | PageFailure | None] = [None] * len(pages)
        succeeded = 0
        for page in pages:
            if not 0 <= page.index < len(pages) or slots[page.index] is not None:
                raise ValueError(f"page index {page.index} out of range or duplicated")
            if page.status is PageStatus.SUCCEEDED:
                slots[page.index] = page.text or ""
                succeeded += 1
            elif page.status is PageStatus.FAILED:
                error = page.error or ExtractionError("unknown failure", page_index=page.index)
                slots[page.index] = PageFailure.from_error(page.index, error)
            else:
                raise RuntimeError(f"page {page.index} is still pending")
        return [s for s in slots if s is not None], self.status_for(succeeded, len(pages))

    @staticmethod
    def status_for(succeeded: int, total: int) -> OverallStatus:
        if total == 0 or succeeded == 0:
            return OverallStatus.TOTAL_FAILURE
        if succeeded == total:
            return OverallStatus.ALL_SUCCEEDED
        return OverallStatus.PARTIAL_FAILURE
