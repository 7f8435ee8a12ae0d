"""
OCR extraction with pluggable engines (Tesseract, EasyOCR) and preprocessing providers.
BaseOCREngine + TesseractEngine / EasyOCREngine; BasePreprocessor + PIL / OpenCV / Deskew.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any

import pytesseract
from PIL import Image, ImageEnhance, ImageFilter

from core.exceptions import ExtractionTimeoutError, OcrEngineError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Optional dependencies (the "opencv" and "easyocr" extras)
# ---------------------------------------------------------------------------

try:
    import cv2
    import numpy as np
    CV2_AVAILABLE = True
except ImportError:
    CV2_AVAILABLE = False
    cv2 = None  # type: ignore
    np = None  # type: ignore

try:
    import easyocr
    EASYOCR_AVAILABLE = True
except ImportError:
    EASYOCR_AVAILABLE = False
    easyocr = None  # type: ignore

TESSERACT_CONFIG = "--psm 3 --oem 3"
MIN_SIDE_PX = 300
# Tesseract language codes -> EasyOCR codes for the common cases
_EASYOCR_LANGS = {"eng": "en", "deu": "de", "fra": "fr", "spa": "es", "ita": "it", "por": "pt", "nld": "nl"}


def _upscale_small(image: Image.Image) -> Image.Image:
    min_side = min(image.size)
    if 0 < min_side < MIN_SIDE_PX:
        scale = MIN_SIDE_PX / min_side
        new_w = max(MIN_SIDE_PX, int(image.width * scale))
        new_h = max(MIN_SIDE_PX, int(image.height * scale))
        image = image.resize((new_w, new_h), Image.Resampling.LANCZOS)
    return image


# ---------------------------------------------------------------------------
# Base preprocessor
# ---------------------------------------------------------------------------


class BasePreprocessor(ABC):
    """Abstract image preprocessor for OCR. Returns PIL Image (e.g. grayscale for Tesseract)."""

    @property
    def name(self) -> str:
        return "base"

    @abstractmethod
    def preprocess(self, image: Image.Image) -> Image.Image:
        """Return preprocessed image (same or new)."""
        ...


class NoOpPreprocessor(BasePreprocessor):
    """No preprocessing; return image as-is."""

    @property
    def name(self) -> str:
        return "none"

    def preprocess(self, image: Image.Image) -> Image.Image:
        return image


class PILPreprocessor(BasePreprocessor):
    """Grayscale, resize up if small, sharpen, contrast. No OpenCV."""

    @property
    def name(self) -> str:
        return "pil"

    def preprocess(self, image: Image.Image) -> Image.Image:
        if image.mode != "L":
            image = image.convert("L")
        image = _upscale_small(image)
        image = image.filter(ImageFilter.SHARPEN)
        return ImageEnhance.Contrast(image).enhance(1.3)


class OpenCVDenoisePreprocessor(PILPreprocessor):
    """PIL steps plus OpenCV non-local-means denoise (scanner speckle)."""

    @property
    def name(self) -> str:
        return "opencv"

    def preprocess(self, image: Image.Image) -> Image.Image:
        img = super().preprocess(image)
        if CV2_AVAILABLE and cv2 is not None and np is not None:
            arr = np.array(img)
            denoised = cv2.fastNlMeansDenoising(arr, None, h=10, templateWindowSize=7, searchWindowSize=21)
            img = Image.fromarray(denoised)
        return img


class DeskewPreprocessor(BasePreprocessor):
    """Wraps another preprocessor; runs OpenCV deskew first (if available)."""

    def __init__(self, inner: BasePreprocessor | None = None) -> None:
        self._inner = inner or PILPreprocessor()

    @property
    def name(self) -> str:
        return f"deskew+{self._inner.name}"

    def preprocess(self, image: Image.Image) -> Image.Image:
        return self._inner.preprocess(self._deskew(image))

    def _deskew(self, image: Image.Image) -> Image.Image:
        if not CV2_AVAILABLE or cv2 is None or np is None:
            return image
        gray = np.array(image.convert("L"))
        if np.mean(gray) > 127:
            gray = 255 - gray
        coords = np.column_stack(np.where(gray > 0))
        if coords.size < 100:
            return image
        try:
            angle = cv2.minAreaRect(coords)[-1]
            if angle < -45:
                angle = 90 + angle
            elif angle > 45:
                angle = angle - 90
            if abs(angle) < 0.5:
                return image
            w, h = image.size
            M = cv2.getRotationMatrix2D((w / 2, h / 2), angle, 1.0)
            rotated = cv2.warpAffine(
                np.array(image), M, (w, h), flags=cv2.INTER_CUBIC, borderMode=cv2.BORDER_REPLICATE
            )
            return Image.fromarray(rotated)
        except cv2.error as e:
            logger.debug("Deskew failed: %s", e)
            return image


# ---------------------------------------------------------------------------
# Base OCR engine
# ---------------------------------------------------------------------------


class BaseOCREngine(ABC):
    """Abstract OCR engine: PIL Image -> (text, confidence)."""

    @property
    def name(self) -> str:
        return "base"

    @abstractmethod
    def run(self, image: Image.Image) -> tuple[str, float]:
        """Extract text and confidence (0-1) from image. Raises OcrEngineError / ExtractionTimeoutError."""
        ...


class TesseractEngine(BaseOCREngine):
    """Tesseract OCR via pytesseract; every call is bounded by ``timeout_sec``."""

    def __init__(
        self,
        config: str = TESSERACT_CONFIG,
        preprocessor: BasePreprocessor | None = None,
        *,
        language: str = "eng",
        timeout_sec: float = 120.0,
    ) -> None:
        self._config = config
        self._preprocessor = preprocessor or PILPreprocessor()
        self._language = language
        self._timeout = timeout_sec

    @property
    def name(self) -> str:
        return "tesseract"

    @property
    def preprocessor(self) -> BasePreprocessor:
        return self._preprocessor

    def run(self, image: Image.Image) -> tuple[str, float]:
        image = self._preprocessor.preprocess(image)
        kwargs: dict[str, Any] = {"lang": self._language, "config": self._config, "timeout": self._timeout}
        try:
            text = pytesseract.image_to_string(image, **kwargs).strip()
            data = pytesseract.image_to_data(image, output_type=pytesseract.Output.DICT, **kwargs)
        except RuntimeError as e:
            # pytesseract signals a killed process with RuntimeError('Tesseract process timeout')
            if "timeout" in str(e).lower():
                raise ExtractionTimeoutError(f"tesseract timed out after {self._timeout}s", tool=self.name) from e
            raise OcrEngineError(f"tesseract failed: {e}") from e
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as e:
            raise OcrEngineError(f"tesseract failed: {e}") from e
        confidences = [float(c) for c in data.get("conf", []) if _is_number(c) and float(c) >= 0]
        mean_conf = sum(confidences) / len(confidences) / 100.0 if confidences else 0.0
        return text, min(1.0, max(0.0, mean_conf))


def _is_number(value: Any) -> bool:
    try:
        float(value)
    except (TypeError, ValueError):
        return False
    return True


class EasyOCREngine(BaseOCREngine):
    """EasyOCR. Uses RGB; optional resize for small images. No grayscale/denoise."""

    _readers: dict[str, Any] = {}
    _lock = threading.Lock()

    def __init__(self, language: str = "eng") -> None:
        if not EASYOCR_AVAILABLE or easyocr is None:
            raise OcrEngineError("easyocr is not installed; pip install easyocr or .[easyocr]")
        self._language = _EASYOCR_LANGS.get(language, language)

    @property
    def name(self) -> str:
        return "easyocr"

    def run(self, image: Image.Image) -> tuple[str, float]:
        image = _upscale_small(image.convert("RGB"))
        arr = np.array(image) if np is not None else image
        # One shared reader per language (model load is expensive); readtext is serialized.
        with EasyOCREngine._lock:
            reader = EasyOCREngine._readers.get(self._language)
            if reader is None:
                reader = easyocr.Reader([self._language], gpu=False, verbose=False)
                EasyOCREngine._readers[self._language] = reader
            try:
                result = reader.readtext(arr)
            except Exception as e:
                raise OcrEngineError(f"easyocr failed: {e}") from e
        if not result:
            return "", 0.0
        text = "\n".join(item[1] for item in result).strip()
        mean_conf = sum(item[2] for item in result) / len(result)
        return text, min(1.0, max(0.0, float(mean_conf)))


# ---------------------------------------------------------------------------
# Factory: create engine and preprocessor by name
# ---------------------------------------------------------------------------


def create_preprocessor(kind: str = "auto", deskew: bool = True) -> BasePreprocessor:
    """Create preprocessor. kind: 'none' | 'pil' | 'opencv' | 'auto'."""
    k = (kind or "auto").strip().lower()
    if k == "none":
        return NoOpPreprocessor()
    if k == "pil":
        base: BasePreprocessor = PILPreprocessor()
    elif k == "opencv" or CV2_AVAILABLE:
        base = OpenCVDenoisePreprocessor() if CV2_AVAILABLE else PILPreprocessor()
    else:
        base = PILPreprocessor()
    return DeskewPreprocessor(base) if deskew and CV2_AVAILABLE else base


def create_ocr_engine(
    engine: str = "tesseract",
    *,
    preprocessor: BasePreprocessor | None = None,
    preprocessor_kind: str = "auto",
    deskew: bool = True,
    language: str = "eng",
    tesseract_config: str = TESSERACT_CONFIG,
    timeout_sec: float = 120.0,
) -> BaseOCREngine:
    """Create OCR engine by name. preprocessor used for Tesseract; EasyOCR uses minimal resize only."""
    e = (engine or "tesseract").strip().lower()
    if e == "easyocr":
        eng: BaseOCREngine = EasyOCREngine(language=language)
        prep_name = "resize"
    elif e == "tesseract":
        prep = preprocessor or create_preprocessor(kind=preprocessor_kind, deskew=deskew)
        eng = TesseractEngine(tesseract_config, prep, language=language, timeout_sec=timeout_sec)
        prep_name = prep.name
    else:
        raise ValueError(f"Unknown OCR engine: {engine}")
    logger.info("OCR: engine=%s, preprocessor=%s, language=%s", eng.name, prep_name, language)
    return eng
