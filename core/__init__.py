"""Core layer: interfaces, models, exceptions."""

from core.interfaces import (
    IPageSource,
    ITextLayerExtractor,
    IRasterizer,
    IExtractionBackend,
)
from core.models import (
    ExtractionKind,
    PageStatus,
    OverallStatus,
    Page,
    PageFailure,
    ExtractionResult,
)
from core.exceptions import (
    PdfTextError,
    ValidationError,
    SplitError,
    NotAPdfError,
    ConfigError,
    CleanupError,
    RunError,
    PageError,
    SplitToolError,
    ExtractionError,
    NoTextLayerError,
    RasterError,
    OcrEngineError,
    ExtractionTimeoutError,
)
from core.schema import ProcessOptions

__all__ = [
    "IPageSource",
    "ITextLayerExtractor",
    "IRasterizer",
    "IExtractionBackend",
    "ExtractionKind",
    "PageStatus",
    "OverallStatus",
    "Page",
    "PageFailure",
    "ExtractionResult",
    "PdfTextError",
    "ValidationError",
    "SplitError",
    "NotAPdfError",
    "ConfigError",
    "CleanupError",
    "RunError",
    "PageError",
    "SplitToolError",
    "ExtractionError",
    "NoTextLayerError",
    "RasterError",
    "OcrEngineError",
    "ExtractionTimeoutError",
    "ProcessOptions",
]
