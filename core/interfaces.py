"""
Abstract interfaces for the page extraction pipeline.
Every external tool is behind an interface; the pipeline never depends on a concrete PDF/OCR library.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from core.models import ExtractionKind


class IPageSource(ABC):
    """Page-level access to a PDF on disk: count pages, write one page to its own file."""

    @abstractmethod
    def page_count(self, document_path: Path) -> int:
        """Number of pages. Raises NotAPdfError if the file is not a readable PDF."""
        ...

    @abstractmethod
    def split_page(self, document_path: Path, page_index: int, dest_path: Path) -> None:
        """Write page ``page_index`` (zero-based) as a single-page PDF. Raises SplitToolError."""
        ...


class ITextLayerExtractor(ABC):
    """Reads embedded text objects from a single-page PDF."""

    @property
    def name(self) -> str:
        return "base"

    @abstractmethod
    def extract(self, page_path: Path) -> str:
        """Return page text ('' for a blank page). Raises NoTextLayerError or ExtractionTimeoutError."""
        ...


class IRasterizer(ABC):
    """Renders a single-page PDF to an image file."""

    @abstractmethod
    def rasterize(self, page_path: Path, dest_image_path: Path) -> Path:
        """Write the image and return its path. Raises RasterError or ExtractionTimeoutError."""
        ...


class IExtractionBackend(ABC):
    """Abstract extraction backend: single-page PDF -> text."""

    @property
    @abstractmethod
    def kind(self) -> ExtractionKind:
        ...

    @abstractmethod
    def extract(self, page_path: Path) -> str:
        """Extract text for one page. Raises an ExtractionError subclass on failure."""
        ...
