"""
Backend and tool-wrapper tests. External tools (pdftotext, pdftoppm, tesseract) are
replaced with monkeypatched callables so failures can be forced deterministically.
"""
from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from pdf2image.exceptions import PDFPopplerTimeoutError
from PIL import Image

from core.exceptions import (
    ExtractionTimeoutError,
    NoTextLayerError,
    OcrEngineError,
    RasterError,
)
from core.interfaces import IRasterizer, ITextLayerExtractor
from core.models import ExtractionKind
from extraction.image_io import Pdf2ImageRasterizer
from extraction.ocr import (
    BaseOCREngine,
    NoOpPreprocessor,
    PILPreprocessor,
    TesseractEngine,
    create_ocr_engine,
    create_preprocessor,
)
from extraction.pdf_text import PdftotextExtractor, create_text_extractor, normalize_page_text
from services import OcrBackend, TextLayerBackend, create_backend
from utils.config import AppConfig, TextLayerConfig


# ---------------------------------------------------------------------------
# Doubles
# ---------------------------------------------------------------------------


class PngRasterizer(IRasterizer):
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error

    def rasterize(self, page_path: Path, dest_image_path: Path) -> Path:
        if self.error is not None:
            raise self.error
        Image.new("RGB", (40, 20), "white").save(dest_image_path, format="PNG")
        return dest_image_path


class StubEngine(BaseOCREngine):
    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.sizes: list[tuple[int, int]] = []

    def run(self, image: Image.Image) -> tuple[str, float]:
        self.sizes.append(image.size)
        if self.error is not None:
            raise self.error
        return self.text, 0.9


class StaticExtractor(ITextLayerExtractor):
    def __init__(self, text: str) -> None:
        self.text = text

    @property
    def name(self) -> str:
        return "static"

    def extract(self, page_path: Path) -> str:
        return self.text


@pytest.fixture
def page_file(tmp_path: Path) -> Path:
    p = tmp_path / "page_00000.pdf"
    p.write_bytes(b"%PDF-1.4\n%fake\n")
    return p


# ---------------------------------------------------------------------------
# OCR backend
# ---------------------------------------------------------------------------


def test_ocr_backend_renders_next_to_page_and_reads_image(page_file: Path) -> None:
    engine = StubEngine(text="scanned words")
    backend = OcrBackend(PngRasterizer(), engine)
    assert backend.kind is ExtractionKind.OCR
    assert backend.extract(page_file) == "scanned words"
    assert (page_file.parent / "page_00000.png").exists()
    assert engine.sizes == [(40, 20)]


def test_ocr_backend_keeps_raster_and_engine_failures_distinct(page_file: Path) -> None:
    with pytest.raises(RasterError):
        OcrBackend(PngRasterizer(RasterError("pdftoppm crashed")), StubEngine()).extract(page_file)
    with pytest.raises(OcrEngineError) as exc_info:
        OcrBackend(PngRasterizer(), StubEngine(error=ValueError("bad image"))).extract(page_file)
    assert "bad image" in str(exc_info.value)


def test_ocr_backend_passes_timeout_through(page_file: Path) -> None:
    engine = StubEngine(error=ExtractionTimeoutError("tesseract timed out", tool="tesseract"))
    with pytest.raises(ExtractionTimeoutError) as exc_info:
        OcrBackend(PngRasterizer(), engine).extract(page_file)
    assert exc_info.value.kind == "timeout"


def test_blank_ocr_output_is_valid(page_file: Path) -> None:
    assert OcrBackend(PngRasterizer(), StubEngine(text="")).extract(page_file) == ""


# ---------------------------------------------------------------------------
# Text-layer backend and pdftotext wrapper
# ---------------------------------------------------------------------------


def test_text_layer_backend_blank_page_is_empty_string(page_file: Path) -> None:
    backend = TextLayerBackend(StaticExtractor(""))
    assert backend.kind is ExtractionKind.TEXT
    assert backend.extract(page_file) == ""


def test_text_layer_backend_delegates_to_extractor(page_file: Path) -> None:
    extractor = MagicMock(spec=ITextLayerExtractor)
    extractor.name = "mock"
    extractor.extract.return_value = "Invoice 7\nTotal 12.00"
    assert TextLayerBackend(extractor).extract(page_file) == "Invoice 7\nTotal 12.00"
    extractor.extract.assert_called_once_with(page_file)


def test_pdftotext_missing_binary_is_no_text_layer(page_file: Path) -> None:
    extractor = PdftotextExtractor(binary="definitely-not-a-real-pdftotext")
    with pytest.raises(NoTextLayerError):
        extractor.extract(page_file)


def test_pdftotext_timeout(monkeypatch: pytest.MonkeyPatch, page_file: Path) -> None:
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr("extraction.pdf_text.subprocess.run", fake_run)
    with pytest.raises(ExtractionTimeoutError) as exc_info:
        PdftotextExtractor(timeout_sec=0.5).extract(page_file)
    assert exc_info.value.tool == "pdftotext"


def test_pdftotext_nonzero_exit(monkeypatch: pytest.MonkeyPatch, page_file: Path) -> None:
    def fake_run(cmd, **kwargs):
        return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="Syntax Error: broken xref\n")

    monkeypatch.setattr("extraction.pdf_text.subprocess.run", fake_run)
    with pytest.raises(NoTextLayerError) as exc_info:
        PdftotextExtractor().extract(page_file)
    assert "broken xref" in str(exc_info.value)


def test_pdftotext_output_is_normalized(monkeypatch: pytest.MonkeyPatch, page_file: Path) -> None:
    seen: list[list[str]] = []

    def fake_run(cmd, **kwargs):
        seen.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout="Hello  \r\nworld\n\f", stderr="")

    monkeypatch.setattr("extraction.pdf_text.subprocess.run", fake_run)
    assert PdftotextExtractor().extract(page_file) == "Hello\nworld"
    assert seen[0][-1] == "-"


def test_normalize_page_text() -> None:
    assert normalize_page_text("") == ""
    assert normalize_page_text("\f") == ""
    assert normalize_page_text("a \r b\t\n\nc\n\f") == "a\n b\n\nc"


def test_create_text_extractor_rejects_unknown() -> None:
    assert create_text_extractor("pypdf").name == "pypdf"
    with pytest.raises(ValueError):
        create_text_extractor("acrobat")


# ---------------------------------------------------------------------------
# Rasterizer
# ---------------------------------------------------------------------------


def test_rasterizer_timeout_maps_to_timeout(monkeypatch: pytest.MonkeyPatch, page_file: Path) -> None:
    def fake_convert(path, **kwargs):
        assert kwargs["timeout"] == 7
        raise PDFPopplerTimeoutError("Run poppler timeout.")

    monkeypatch.setattr("extraction.image_io.convert_from_path", fake_convert)
    with pytest.raises(ExtractionTimeoutError) as exc_info:
        Pdf2ImageRasterizer(timeout_sec=7).rasterize(page_file, page_file.with_suffix(".png"))
    assert exc_info.value.tool == "pdftoppm"


def test_rasterizer_other_failure_is_raster_error(monkeypatch: pytest.MonkeyPatch, page_file: Path) -> None:
    def fake_convert(path, **kwargs):
        raise OSError("pdftoppm: not found")

    monkeypatch.setattr("extraction.image_io.convert_from_path", fake_convert)
    with pytest.raises(RasterError):
        Pdf2ImageRasterizer().rasterize(page_file, page_file.with_suffix(".png"))


def test_rasterizer_writes_first_page_png(monkeypatch: pytest.MonkeyPatch, page_file: Path) -> None:
    calls: list[dict] = []

    def fake_convert(path, **kwargs):
        calls.append(kwargs)
        return [Image.new("L", (30, 30), 255)]

    monkeypatch.setattr("extraction.image_io.convert_from_path", fake_convert)
    out = Pdf2ImageRasterizer(dpi=150).rasterize(page_file, page_file.with_suffix(".png"))
    assert out.exists()
    assert calls[0]["dpi"] == 150 and calls[0]["first_page"] == 1 and calls[0]["last_page"] == 1
    with Image.open(out) as img:
        assert img.mode == "RGB"


def test_rasterizer_missing_page_is_raster_error(tmp_path: Path) -> None:
    missing = tmp_path / "page_00009.pdf"
    with pytest.raises(RasterError):
        Pdf2ImageRasterizer().rasterize(missing, missing.with_suffix(".png"))


# ---------------------------------------------------------------------------
# OCR engine and preprocessing
# ---------------------------------------------------------------------------


def test_tesseract_timeout_maps_to_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_image_to_string(image, **kwargs):
        assert kwargs["timeout"] == 3
        raise RuntimeError("Tesseract process timeout")

    monkeypatch.setattr("extraction.ocr.pytesseract.image_to_string", fake_image_to_string)
    engine = TesseractEngine(preprocessor=NoOpPreprocessor(), timeout_sec=3)
    with pytest.raises(ExtractionTimeoutError) as exc_info:
        engine.run(Image.new("RGB", (50, 50), "white"))
    assert exc_info.value.tool == "tesseract"


def test_tesseract_missing_binary_is_engine_error(monkeypatch: pytest.MonkeyPatch) -> None:
    import pytesseract

    def fake_image_to_string(image, **kwargs):
        raise pytesseract.TesseractNotFoundError()

    monkeypatch.setattr("extraction.ocr.pytesseract.image_to_string", fake_image_to_string)
    with pytest.raises(OcrEngineError):
        TesseractEngine(preprocessor=NoOpPreprocessor()).run(Image.new("RGB", (50, 50)))


def test_tesseract_text_and_confidence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("extraction.ocr.pytesseract.image_to_string", lambda image, **kw: "  Total 42\n")
    monkeypatch.setattr(
        "extraction.ocr.pytesseract.image_to_data",
        lambda image, **kw: {"conf": ["-1", "80", "90.0", ""]},
    )
    text, conf = TesseractEngine(preprocessor=NoOpPreprocessor(), language="deu").run(Image.new("RGB", (50, 50)))
    assert text == "Total 42"
    assert conf == pytest.approx(0.85)


def test_pil_preprocessor_grayscales_and_upscales() -> None:
    out = PILPreprocessor().preprocess(Image.new("RGB", (100, 50), "white"))
    assert out.mode == "L"
    assert min(out.size) >= 300


def test_preprocessor_factory() -> None:
    assert create_preprocessor("none").name == "none"
    assert create_preprocessor("pil", deskew=False).name == "pil"


def test_unknown_ocr_engine_rejected() -> None:
    with pytest.raises(ValueError):
        create_ocr_engine("abbyy")


# ---------------------------------------------------------------------------
# Backend factory
# ---------------------------------------------------------------------------


def test_create_backend_picks_by_kind() -> None:
    cfg = AppConfig(text=TextLayerConfig(engine="pypdf"))
    assert isinstance(create_backend(ExtractionKind.TEXT, cfg), TextLayerBackend)
    ocr = create_backend(ExtractionKind.OCR, AppConfig())
    assert isinstance(ocr, OcrBackend)
    assert ocr.kind is ExtractionKind.OCR


def test_easyocr_reader_is_cached_per_language(monkeypatch: pytest.MonkeyPatch) -> None:
    from types import SimpleNamespace

    from extraction.ocr import EasyOCREngine

    built: list[list[str]] = []

    class FakeReader:
        def __init__(self, langs: list[str], **kwargs) -> None:
            built.append(langs)
            self.lang = langs[0]

        def readtext(self, image):
            return [((0, 0), f"text-{self.lang}", 0.8)]

    monkeypatch.setattr("extraction.ocr.EASYOCR_AVAILABLE", True)
    monkeypatch.setattr("extraction.ocr.easyocr", SimpleNamespace(Reader=FakeReader))
    monkeypatch.setattr(EasyOCREngine, "_readers", {})
    image = Image.new("RGB", (400, 400), "white")

    assert EasyOCREngine(language="eng").run(image)[0] == "text-en"
    assert EasyOCREngine(language="deu").run(image)[0] == "text-de"
    assert EasyOCREngine(language="eng").run(image)[0] == "text-en"
    assert built == [["en"], ["de"]]
