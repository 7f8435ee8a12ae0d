"""
OCR backend: implements IExtractionBackend as rasterize -> OCR engine.
Rasterization failures (RasterError) and engine failures (OcrEngineError) stay distinct.
"""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image

from core.exceptions import ExtractionError, OcrEngineError
from core.interfaces import IExtractionBackend, IRasterizer
from core.models import ExtractionKind
from extraction.ocr import BaseOCREngine
from utils.scratch import ScratchDir

logger = logging.getLogger(__name__)


class OcrBackend(IExtractionBackend):
    """Scanned pages: render the single-page PDF next to itself as PNG, then OCR the image."""

    def __init__(self, rasterizer: IRasterizer, engine: BaseOCREngine) -> None:
        self._rasterizer = rasterizer
        self._engine = engine

    @property
    def kind(self) -> ExtractionKind:
        return ExtractionKind.OCR

    def extract(self, page_path: Path) -> str:
        image_path = self._rasterizer.rasterize(page_path, ScratchDir.image_path(page_path))
        return self.run_ocr(image_path)

    def run_ocr(self, image_path: Path) -> str:
        try:
            with Image.open(image_path) as img:
                text, confidence = self._engine.run(img)
        except ExtractionError:
            raise
        except Exception as e:
            raise OcrEngineError(f"OCR failed on {image_path.name}: {e}") from e
        logger.debug(
            "OCR %s: engine=%s chars=%s confidence=%.3f",
            image_path.name, self._engine.name, len(text), confidence,
        )
        return text
