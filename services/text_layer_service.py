"""Text-layer backend: implements IExtractionBackend on top of an ITextLayerExtractor."""

from __future__ import annotations

import logging
from pathlib import Path

from core.interfaces import IExtractionBackend, ITextLayerExtractor
from core.models import ExtractionKind

logger = logging.getLogger(__name__)


class TextLayerBackend(IExtractionBackend):
    """Electronic PDFs: read the embedded text directly. '' is a valid (blank page) result."""

    def __init__(self, extractor: ITextLayerExtractor) -> None:
        self._extractor = extractor

    @property
    def kind(self) -> ExtractionKind:
        return ExtractionKind.TEXT

    def extract(self, page_path: Path) -> str:
        text = self._extractor.extract(page_path)
        if not text:
            logger.debug("No text on %s (%s); treating as blank page", page_path.name, self._extractor.name)
        return text
