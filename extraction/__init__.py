"""Extraction: page splitting, text-layer tools, rasterization and OCR engines."""

from extraction.image_io import PathImageReader, PathImageWriter, Pdf2ImageRasterizer
from extraction.ocr import (
    create_ocr_engine,
    create_preprocessor,
    BaseOCREngine,
    BasePreprocessor,
    TesseractEngine,
    EasyOCREngine,
)
from extraction.pdf_text import (
    PdftotextExtractor,
    PypdfTextExtractor,
    create_text_extractor,
    normalize_page_text,
)
from extraction.splitter import PageSplitter, PypdfPageSource

__all__ = [
    "PathImageReader",
    "PathImageWriter",
    "Pdf2ImageRasterizer",
    "create_ocr_engine",
    "create_preprocessor",
    "BaseOCREngine",
    "BasePreprocessor",
    "TesseractEngine",
    "EasyOCREngine",
    "PdftotextExtractor",
    "PypdfTextExtractor",
    "create_text_extractor",
    "normalize_page_text",
    "PageSplitter",
    "PypdfPageSource",
]
