"""
Data models for page extraction.
Uses dataclasses for DTOs; the caller options schema (pydantic) lives in core.schema.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from core.exceptions import PageError


class ExtractionKind(str, Enum):
    """Document-level extraction strategy."""

    TEXT = "text"
    OCR = "ocr"


class PageStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class OverallStatus(str, Enum):
    ALL_SUCCEEDED = "all_succeeded"
    PARTIAL_FAILURE = "partial_failure"
    TOTAL_FAILURE = "total_failure"


@dataclass
class Page:
    """
    One page of a document. Created by the splitter, outcome recorded exactly once
    by the scheduler, read by the assembler.
    """

    index: int
    path: Path | None
    split_error: PageError | None = None
    status: PageStatus = PageStatus.PENDING
    text: str | None = None
    error: PageError | None = None

    def record_success(self, text: str) -> None:
        self._ensure_pending()
        self.text = text
        self.status = PageStatus.SUCCEEDED

    def record_failure(self, error: PageError) -> None:
        self._ensure_pending()
        if error.page_index is None:
            error.page_index = self.index
        self.error = error
        self.status = PageStatus.FAILED

    def _ensure_pending(self) -> None:
        if self.status is not PageStatus.PENDING:
            raise RuntimeError(f"page {self.index} outcome already recorded ({self.status.value})")


@dataclass(frozen=True)
class PageFailure:
    """Placeholder at a failed page's position in ExtractionResult.pages."""

    index: int
    kind: str
    message: str

    @classmethod
    def from_error(cls, index: int, error: PageError) -> PageFailure:
        return cls(index=index, kind=error.kind, message=str(error))

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, "error": self.kind, "message": self.message}


@dataclass
class ExtractionResult:
    """Final result of one document run (single public output of the pipeline)."""

    document_path: str
    kind: ExtractionKind
    pages: list[str | PageFailure]
    status: OverallStatus
    run_id: str = ""
    elapsed_sec: float = 0.0
    # Set only when cleanup was not requested: the caller now owns this directory.
    scratch_dir: Path | None = None
    cleanup_errors: list[str] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def failures(self) -> list[PageFailure]:
        return [p for p in self.pages if isinstance(p, PageFailure)]

    def texts(self, failed: str = "") -> list[str]:
        """Page texts with failed pages replaced by ``failed``."""
        return [failed if isinstance(p, PageFailure) else p for p in self.pages]

    def to_dict(self) -> dict[str, Any]:
        """Export for logging/serialization."""
        return {
            "document_path": self.document_path,
            "type": self.kind.value,
            "status": self.status.value,
            "run_id": self.run_id,
            "page_count": self.page_count,
            "pages": [p.to_dict() if isinstance(p, PageFailure) else p for p in self.pages],
            "scratch_dir": str(self.scratch_dir) if self.scratch_dir else None,
            "cleanup_errors": list(self.cleanup_errors),
            "elapsed_sec": round(self.elapsed_sec, 4),
        }
