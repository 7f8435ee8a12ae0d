"""Extraction backends (text layer, OCR) and the factory that picks one per document."""

from __future__ import annotations

from core.interfaces import IExtractionBackend
from core.models import ExtractionKind
from extraction.image_io import Pdf2ImageRasterizer
from extraction.ocr import create_ocr_engine
from extraction.pdf_text import create_text_extractor
from services.ocr_service import OcrBackend
from services.text_layer_service import TextLayerBackend
from utils.config import AppConfig


def create_backend(kind: ExtractionKind, config: AppConfig | None = None) -> IExtractionBackend:
    """Build the backend for ``kind`` from config. Called once per document run."""
    cfg = config or AppConfig()
    if kind is ExtractionKind.TEXT:
        return TextLayerBackend(create_text_extractor(cfg.text.engine, timeout_sec=cfg.text.timeout_sec))
    if kind is ExtractionKind.OCR:
        engine = create_ocr_engine(
            cfg.ocr.engine,
            preprocessor_kind=cfg.ocr.preprocessor,
            deskew=cfg.ocr.deskew,
            language=cfg.ocr.language,
            tesseract_config=cfg.ocr.tesseract_config,
            timeout_sec=cfg.ocr.timeout_sec,
        )
        return OcrBackend(Pdf2ImageRasterizer(dpi=cfg.ocr.dpi, timeout_sec=cfg.ocr.timeout_sec), engine)
    raise ValueError(f"Unsupported extraction kind: {kind!r}")


__all__ = [
    "OcrBackend",
    "TextLayerBackend",
    "create_backend",
]
