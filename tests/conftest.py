"""
Shared fixtures and test doubles. Fakes implement the core interfaces so the pipeline
runs without poppler or tesseract installed.
"""
from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Callable

import pytest
from pypdf import PdfWriter

from core.exceptions import ExtractionError, NotAPdfError, PageError, SplitToolError
from core.interfaces import IExtractionBackend, IPageSource
from core.models import ExtractionKind
from utils.config import AppConfig


# ---------------------------------------------------------------------------
# Fake implementations (test doubles)
# ---------------------------------------------------------------------------


class FakePageSource(IPageSource):
    """Pretends the document has ``pages`` pages; each split file holds 'page <i>'."""

    def __init__(
        self,
        pages: int = 3,
        *,
        fail_count: bool = False,
        fail_split: set[int] | None = None,
    ) -> None:
        self.pages = pages
        self.fail_count = fail_count
        self.fail_split = fail_split or set()
        self.count_calls = 0
        self.split_calls: list[int] = []

    def page_count(self, document_path: Path) -> int:
        self.count_calls += 1
        if self.fail_count:
            raise NotAPdfError(f"Not a readable PDF: {document_path}", document_path=document_path)
        return self.pages

    def split_page(self, document_path: Path, page_index: int, dest_path: Path) -> None:
        self.split_calls.append(page_index)
        if page_index in self.fail_split:
            raise SplitToolError(f"cannot write page {page_index}", page_index=page_index)
        dest_path.write_text(f"page {page_index}", encoding="utf-8")


class FakeBackend(IExtractionBackend):
    """
    Returns 'text of page <i>' read back from the fake page file. Pages in ``fail`` raise
    ``error_type``; ``delay`` maps page index -> seconds to sleep (to reorder completion).
    """

    def __init__(
        self,
        kind: ExtractionKind = ExtractionKind.TEXT,
        *,
        fail: set[int] | None = None,
        error_type: type[PageError] = ExtractionError,
        delay: Callable[[int], float] | None = None,
    ) -> None:
        self._kind = kind
        self.fail = fail or set()
        self.error_type = error_type
        self.delay = delay
        self.calls: list[int] = []
        self._lock = threading.Lock()

    @property
    def kind(self) -> ExtractionKind:
        return self._kind

    def extract(self, page_path: Path) -> str:
        index = int(page_path.read_text(encoding="utf-8").split()[1])
        with self._lock:
            self.calls.append(index)
        if self.delay is not None:
            time.sleep(self.delay(index))
        if index in self.fail:
            raise self.error_type(f"tool failed on page {index}")
        return f"text of page {index}"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def scratch_root(tmp_path: Path) -> Path:
    root = tmp_path / "scratch"
    root.mkdir()
    return root


@pytest.fixture
def config(scratch_root: Path) -> AppConfig:
    return AppConfig(max_workers=4, cleanup=True, scratch_root=str(scratch_root))


@pytest.fixture
def document(tmp_path: Path) -> Path:
    """Any existing file passes validation; fake page sources never parse it."""
    p = tmp_path / "doc.pdf"
    p.write_bytes(b"%PDF-1.4\n%fake\n")
    return p


def page_width(index: int) -> float:
    return 100.0 + 10.0 * index


@pytest.fixture
def make_pdf(tmp_path: Path) -> Callable[[int], Path]:
    """Write a real n-page blank PDF; page i is page_width(i) points wide, so order is checkable."""

    def _make(n: int, name: str = "blank.pdf") -> Path:
        writer = PdfWriter()
        for i in range(n):
            writer.add_blank_page(width=page_width(i), height=200)
        out = tmp_path / name
        with open(out, "wb") as f:
            writer.write(f)
        return out

    return _make
