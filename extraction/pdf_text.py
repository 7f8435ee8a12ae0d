"""
Extract native text from single-page PDFs (digital/vector PDFs with embedded text).
Two tools: poppler's pdftotext CLI (default, runs with a timeout) and in-process pypdf.
A blank page yields '' rather than an error.
"""
from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from pypdf import PdfReader

from core.exceptions import ExtractionTimeoutError, NoTextLayerError
from core.interfaces import ITextLayerExtractor

logger = logging.getLogger(__name__)

PDFTOTEXT_BIN = "pdftotext"


def normalize_page_text(text: str) -> str:
    """CRLF/CR -> LF, drop trailing whitespace per line and the trailing form feed."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = [ln.rstrip() for ln in text.split("\n")]
    return "\n".join(lines).strip("\f\n")


class PdftotextExtractor(ITextLayerExtractor):
    """Runs ``pdftotext -enc UTF-8 <page> -`` as a subprocess."""

    def __init__(self, timeout_sec: float = 60.0, binary: str = PDFTOTEXT_BIN) -> None:
        self._timeout = timeout_sec
        self._binary = binary

    @property
    def name(self) -> str:
        return "pdftotext"

    def extract(self, page_path: Path) -> str:
        cmd = [self._binary, "-enc", "UTF-8", str(page_path), "-"]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                check=False,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ExtractionTimeoutError(
                f"pdftotext timed out after {self._timeout}s on {page_path.name}",
                tool=self.name,
            ) from e
        except OSError as e:
            raise NoTextLayerError(f"pdftotext could not be started ({self._binary}): {e}") from e
        if result.returncode != 0:
            raise NoTextLayerError(
                f"pdftotext exit {result.returncode} on {page_path.name}: {result.stderr.strip()}"
            )
        return normalize_page_text(result.stdout)


class PypdfTextExtractor(ITextLayerExtractor):
    """pypdf ``extract_text`` on the first (only) page. In-process, so no timeout applies."""

    @property
    def name(self) -> str:
        return "pypdf"

    def extract(self, page_path: Path) -> str:
        try:
            reader = PdfReader(str(page_path))
            text = reader.pages[0].extract_text() or ""
        except Exception as e:
            raise NoTextLayerError(f"pypdf text extraction failed for {page_path.name}: {e}") from e
        return normalize_page_text(text)


def create_text_extractor(name: str = "pdftotext", timeout_sec: float = 60.0) -> ITextLayerExtractor:
    """Create text-layer extractor by name: 'pdftotext' | 'pypdf'."""
    n = (name or "pdftotext").strip().lower()
    if n == "pypdf":
        return PypdfTextExtractor()
    if n == "pdftotext":
        if shutil.which(PDFTOTEXT_BIN) is None:
            logger.warning("pdftotext not found on PATH; pages will fail until poppler-utils is installed")
        return PdftotextExtractor(timeout_sec=timeout_sec)
    raise ValueError(f"Unknown text engine: {name}")
