"""Custom exceptions for the PDF page text pipeline. No generic Exception usage."""

from __future__ import annotations

from pathlib import Path


class PdfTextError(Exception):
    """Base exception for pipeline failures."""

    def __init__(self, message: str, trace_id: str | None = None) -> None:
        self.trace_id = trace_id or ""
        super().__init__(message)


class ValidationError(PdfTextError):
    """Caller input rejected before any work started (missing file, bad options)."""

    def __init__(
        self,
        message: str,
        reason: str,
        document_path: str | Path | None = None,
        trace_id: str | None = None,
    ) -> None:
        self.reason = reason
        self.document_path = str(document_path) if document_path is not None else ""
        super().__init__(message, trace_id=trace_id)


class SplitError(PdfTextError):
    """Document could not be split into any single-page files."""

    def __init__(
        self,
        message: str,
        document_path: str | Path | None = None,
        trace_id: str | None = None,
    ) -> None:
        self.document_path = str(document_path) if document_path is not None else ""
        super().__init__(message, trace_id=trace_id)


class NotAPdfError(SplitError):
    """Page count query failed: the file is not a readable PDF."""

    pass


class ConfigError(PdfTextError):
    """Invalid or missing configuration."""

    pass


class CleanupError(PdfTextError):
    """Removing a scratch artifact failed. Reported, never raised past a finished run."""

    pass


class RunError(PdfTextError):
    """Unexpected failure inside a document run; the original exception is the __cause__."""

    pass


# ---------------------------------------------------------------------------
# Per-page errors (recoverable at document level)
# ---------------------------------------------------------------------------


class PageError(PdfTextError):
    """Failure confined to one page; recorded on that page's slot."""

    kind = "page"

    def __init__(self, message: str, page_index: int | None = None, trace_id: str | None = None) -> None:
        self.page_index = page_index
        super().__init__(message, trace_id=trace_id)


class SplitToolError(PageError):
    """Writing one page to its own file failed."""

    kind = "split_tool"


class ExtractionError(PageError):
    """Backend could not produce text for a page."""

    kind = "extraction"


class NoTextLayerError(ExtractionError):
    """Text-layer tool errored on the page."""

    kind = "no_text_layer"


class RasterError(ExtractionError):
    """Rendering the page to an image failed."""

    kind = "raster"


class OcrEngineError(ExtractionError):
    """OCR engine failed on the rendered image."""

    kind = "ocr_engine"


class ExtractionTimeoutError(ExtractionError):
    """External tool exceeded its time limit."""

    kind = "timeout"

    def __init__(
        self,
        message: str,
        tool: str = "",
        page_index: int | None = None,
        trace_id: str | None = None,
    ) -> None:
        self.tool = tool
        super().__init__(message, page_index=page_index, trace_id=trace_id)
