"""
Image reader and writer strategies used to rasterize single-page PDFs for OCR.
Reader: PDF/image path -> PIL images (pdf2image/poppler). Writer: PIL images -> files.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pdf2image import convert_from_path
from pdf2image.exceptions import PDFPopplerTimeoutError
from PIL import Image

from core.exceptions import ExtractionTimeoutError, RasterError
from core.interfaces import IRasterizer

logger = logging.getLogger(__name__)


class PathImageReader:
    """Read images from a file path (PDF -> pages; image file -> single)."""

    def __init__(
        self,
        path: Path | str,
        *,
        dpi: int = 300,
        first_page_only: bool = False,
        timeout_sec: float | None = None,
    ) -> None:
        self.path = Path(path)
        self.dpi = dpi
        self.first_page_only = first_page_only
        self.timeout_sec = timeout_sec

    def read(self) -> list[Image.Image]:
        if not self.path.exists():
            raise FileNotFoundError(f"File not found: {self.path}")
        if self.path.suffix.lower() == ".pdf":
            kwargs: dict[str, Any] = {"dpi": self.dpi}
            if self.first_page_only:
                kwargs["first_page"] = 1
                kwargs["last_page"] = 1
            if self.timeout_sec is not None:
                kwargs["timeout"] = self.timeout_sec
            pages = convert_from_path(str(self.path), **kwargs)
            return [p.convert("RGB") if p.mode != "RGB" else p for p in pages]
        img = Image.open(self.path).convert("RGB")
        return [img]


class PathImageWriter:
    """Write one image to a file path; format from the constructor (default PNG, lossless for OCR)."""

    def __init__(self, path: Path | str, *, format: str = "PNG") -> None:
        self.path = Path(path)
        self.format = format

    def write(self, image: Image.Image, **kwargs: Any) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        image.save(self.path, format=kwargs.pop("format", self.format), **kwargs)
        return self.path


class Pdf2ImageRasterizer(IRasterizer):
    """Render page 1 of a single-page PDF to PNG with pdf2image (pdftoppm), bounded by a timeout."""

    def __init__(self, dpi: int = 300, timeout_sec: float = 120.0) -> None:
        self._dpi = dpi
        self._timeout = timeout_sec

    def rasterize(self, page_path: Path, dest_image_path: Path) -> Path:
        reader = PathImageReader(page_path, dpi=self._dpi, first_page_only=True, timeout_sec=self._timeout)
        try:
            images = reader.read()
        except PDFPopplerTimeoutError as e:
            raise ExtractionTimeoutError(
                f"pdftoppm timed out after {self._timeout}s on {page_path.name}",
                tool="pdftoppm",
            ) from e
        except Exception as e:
            raise RasterError(f"Could not rasterize {page_path.name}: {e}") from e
        if not images:
            raise RasterError(f"Rasterizer produced no image for {page_path.name}")
        try:
            PathImageWriter(dest_image_path).write(images[0])
        except OSError as e:
            raise RasterError(f"Could not write image {dest_image_path}: {e}") from e
        finally:
            for img in images:
                img.close()
        logger.debug("Rasterized %s -> %s at %s dpi", page_path.name, dest_image_path.name, self._dpi)
        return dest_image_path
