"""
Split a multi-page PDF into single-page PDFs in a run's scratch directory.
Page count failure aborts the split; a single page failing to write only fails that page.
"""
from __future__ import annotations

import logging
from pathlib import Path

from pypdf import PdfReader, PdfWriter

from core.exceptions import NotAPdfError, SplitError, SplitToolError
from core.interfaces import IPageSource
from core.models import Page
from utils.scratch import ScratchDir

logger = logging.getLogger(__name__)


def _open_reader(document_path: Path) -> PdfReader:
    reader = PdfReader(str(document_path))
    if reader.is_encrypted:
        # Many "protected" PDFs only carry an owner password; the user password is empty.
        if not reader.decrypt(""):
            raise NotAPdfError(f"Encrypted PDF needs a password: {document_path}", document_path=document_path)
    return reader


class PypdfPageSource(IPageSource):
    """IPageSource backed by pypdf (in-process, no external tool)."""

    def page_count(self, document_path: Path) -> int:
        try:
            count = len(_open_reader(document_path).pages)
        except NotAPdfError:
            raise
        except Exception as e:
            raise NotAPdfError(f"Not a readable PDF: {document_path}: {e}", document_path=document_path) from e
        if count < 1:
            raise NotAPdfError(f"PDF has no pages: {document_path}", document_path=document_path)
        return count

    def split_page(self, document_path: Path, page_index: int, dest_path: Path) -> None:
        try:
            reader = _open_reader(document_path)
            writer = PdfWriter()
            writer.add_page(reader.pages[page_index])
            with open(dest_path, "wb") as f:
                writer.write(f)
        except Exception as e:
            raise SplitToolError(
                f"Could not write page {page_index} of {document_path.name}: {e}",
                page_index=page_index,
            ) from e


class PageSplitter:
    """Produces one Page per document page, in order, with its single-page file in scratch."""

    def __init__(self, source: IPageSource | None = None) -> None:
        self._source = source or PypdfPageSource()

    def split(self, document_path: str | Path, scratch: ScratchDir) -> list[Page]:
        path = Path(document_path)
        total = self._source.page_count(path)
        logger.info("Splitting %s into %s pages (scratch=%s)", path.name, total, scratch.path)
        pages: list[Page] = []
        for i in range(total):
            dest = scratch.page_path(i)
            try:
                self._source.split_page(path, i, dest)
            except SplitToolError as e:
                logger.warning("Page %s of %s could not be split: %s", i, path.name, e)
                pages.append(Page(index=i, path=None, split_error=e))
                continue
            pages.append(Page(index=i, path=dest))
        if not any(p.path is not None for p in pages):
            raise SplitError(f"No page of {path} could be split", document_path=path)
        return pages
