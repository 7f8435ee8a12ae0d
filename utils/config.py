"""
Configuration loader: YAML + env overrides.
No hardcoded engine choice in the pipeline; all from config.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from core.exceptions import ConfigError

TEXT_ENGINES = ("pdftotext", "pypdf")
OCR_ENGINES = ("tesseract", "easyocr")
PREPROCESSORS = ("auto", "none", "pil", "opencv")


def _coerce_bool(s: Any) -> bool:
    if isinstance(s, bool):
        return s
    return (str(s).strip().lower() in ("1", "true", "yes")) if s else False


def _coerce_float(s: Any, default: float = 0.0) -> float:
    if s is None or s == "":
        return default
    try:
        return float(s)
    except (TypeError, ValueError):
        raise ConfigError(f"expected a number, got {s!r}") from None


def _coerce_int(s: Any, default: int = 0) -> int:
    if s is None or s == "":
        return default
    try:
        return int(s)
    except (TypeError, ValueError):
        raise ConfigError(f"expected an integer, got {s!r}") from None


@dataclass(frozen=True)
class TextLayerConfig:
    """Text-layer extraction tool."""

    engine: str = "pdftotext"  # pdftotext | pypdf
    timeout_sec: float = 60.0


@dataclass(frozen=True)
class OCRConfig:
    """OCR engine, preprocessing and rasterization settings."""

    engine: str = "tesseract"  # tesseract | easyocr
    preprocessor: str = "auto"  # auto | none | pil | opencv
    deskew: bool = True
    dpi: int = 300
    language: str = "eng"
    tesseract_config: str = "--psm 3 --oem 3"
    timeout_sec: float = 120.0


@dataclass(frozen=True)
class AppConfig:
    """Immutable application configuration. Built from YAML + env."""

    log_level: str = "INFO"
    max_workers: int = 4
    cleanup: bool = True
    scratch_root: str | None = None
    text: TextLayerConfig = field(default_factory=TextLayerConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)

    def with_overrides(self, **overrides: Any) -> AppConfig:
        """Return new config with replaced keys (top-level; nested sections replaced whole)."""
        changes = {k: v for k, v in overrides.items() if v is not None and k in self.__dataclass_fields__}
        cfg = replace(self, **changes)
        validate_config(cfg)
        return cfg


def validate_config(cfg: AppConfig) -> None:
    if cfg.max_workers < 1:
        raise ConfigError(f"max_workers must be >= 1, got {cfg.max_workers}")
    if cfg.text.engine not in TEXT_ENGINES:
        raise ConfigError(f"unknown text engine {cfg.text.engine!r}; expected one of {TEXT_ENGINES}")
    if cfg.ocr.engine not in OCR_ENGINES:
        raise ConfigError(f"unknown OCR engine {cfg.ocr.engine!r}; expected one of {OCR_ENGINES}")
    if cfg.ocr.preprocessor not in PREPROCESSORS:
        raise ConfigError(f"unknown preprocessor {cfg.ocr.preprocessor!r}; expected one of {PREPROCESSORS}")
    if cfg.ocr.dpi <= 0:
        raise ConfigError(f"ocr.dpi must be > 0, got {cfg.ocr.dpi}")
    if cfg.text.timeout_sec <= 0 or cfg.ocr.timeout_sec <= 0:
        raise ConfigError("tool timeouts must be > 0")


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _config_from_dict(data: dict[str, Any]) -> AppConfig:
    """Build AppConfig from nested dict. Env overrides applied in load_config."""
    text_data = data.get("text") or {}
    ocr_data = data.get("ocr") or {}
    scratch_root = data.get("scratch_root")
    return AppConfig(
        log_level=str(data.get("log_level", "INFO")),
        max_workers=_coerce_int(data.get("max_workers"), 4),
        cleanup=_coerce_bool(data.get("cleanup", True)),
        scratch_root=str(scratch_root) if scratch_root else None,
        text=TextLayerConfig(
            engine=str(text_data.get("engine", "pdftotext")).strip().lower(),
            timeout_sec=_coerce_float(text_data.get("timeout_sec"), 60.0),
        ),
        ocr=OCRConfig(
            engine=str(ocr_data.get("engine", "tesseract")).strip().lower(),
            preprocessor=str(ocr_data.get("preprocessor", "auto")).strip().lower(),
            deskew=_coerce_bool(ocr_data.get("deskew", True)),
            dpi=_coerce_int(ocr_data.get("dpi"), 300),
            language=str(ocr_data.get("language", "eng")),
            tesseract_config=str(ocr_data.get("tesseract_config", "--psm 3 --oem 3")),
            timeout_sec=_coerce_float(ocr_data.get("timeout_sec"), 120.0),
        ),
    )


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """
    Load config from YAML file, then apply env overrides.
    Env vars: LOG_LEVEL, MAX_WORKERS, CLEANUP, SCRATCH_ROOT, TEXT_ENGINE, OCR_ENGINE,
    OCR_DPI, OCR_LANGUAGE, TOOL_TIMEOUT_SEC.
    """
    path = Path(config_path) if config_path else Path("config.yaml")
    if config_path and not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    cfg = _config_from_dict(_load_yaml(path))

    overrides: dict[str, Any] = {}
    if os.getenv("LOG_LEVEL"):
        overrides["log_level"] = os.getenv("LOG_LEVEL")
    if os.getenv("MAX_WORKERS"):
        overrides["max_workers"] = _coerce_int(os.getenv("MAX_WORKERS"))
    if os.getenv("CLEANUP"):
        overrides["cleanup"] = _coerce_bool(os.getenv("CLEANUP"))
    if os.getenv("SCRATCH_ROOT"):
        overrides["scratch_root"] = os.getenv("SCRATCH_ROOT")

    timeout = os.getenv("TOOL_TIMEOUT_SEC")
    if os.getenv("TEXT_ENGINE") or timeout:
        overrides["text"] = replace(
            cfg.text,
            engine=(os.getenv("TEXT_ENGINE") or cfg.text.engine).strip().lower(),
            timeout_sec=_coerce_float(timeout, cfg.text.timeout_sec),
        )
    if os.getenv("OCR_ENGINE") or os.getenv("OCR_DPI") or os.getenv("OCR_LANGUAGE") or timeout:
        overrides["ocr"] = replace(
            cfg.ocr,
            engine=(os.getenv("OCR_ENGINE") or cfg.ocr.engine).strip().lower(),
            dpi=_coerce_int(os.getenv("OCR_DPI"), cfg.ocr.dpi),
            language=os.getenv("OCR_LANGUAGE") or cfg.ocr.language,
            timeout_sec=_coerce_float(timeout, cfg.ocr.timeout_sec),
        )
    if not overrides:
        validate_config(cfg)
        return cfg
    return cfg.with_overrides(**overrides)
