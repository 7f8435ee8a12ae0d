"""Shared utilities: config, logger, scratch directories."""

from utils.config import AppConfig, OCRConfig, TextLayerConfig, load_config
from utils.logger import get_logger, setup_logging, log_structured
from utils.scratch import ScratchDir

__all__ = [
    "AppConfig",
    "OCRConfig",
    "TextLayerConfig",
    "load_config",
    "get_logger",
    "setup_logging",
    "log_structured",
    "ScratchDir",
]
