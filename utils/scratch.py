"""
Per-run scratch directory for split pages and rendered images.
Each run gets its own mkdtemp directory, so concurrent runs never collide.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from core.exceptions import CleanupError, ConfigError

logger = logging.getLogger(__name__)

SCRATCH_PREFIX = "pdfpages-"


class ScratchDir:
    """Owned by one document run until removed or handed to the caller."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    @classmethod
    def create(cls, root: str | Path | None = None, prefix: str = SCRATCH_PREFIX) -> ScratchDir:
        try:
            if root is not None:
                Path(root).mkdir(parents=True, exist_ok=True)
            path = tempfile.mkdtemp(prefix=prefix, dir=str(root) if root is not None else None)
        except OSError as e:
            raise ConfigError(f"cannot create scratch directory under {root or tempfile.gettempdir()}: {e}") from e
        return cls(Path(path))

    def page_path(self, index: int) -> Path:
        """Single-page PDF path; the zero-padded index keeps lexical order == page order."""
        return self.path / f"page_{index:05d}.pdf"

    @staticmethod
    def image_path(page_path: Path) -> Path:
        return page_path.with_suffix(".png")

    def remove(self) -> list[CleanupError]:
        """Best-effort delete of every artifact and the directory itself. Returns failures."""
        errors: list[CleanupError] = []
        if not self.path.exists():
            return errors
        for child in sorted(self.path.rglob("*"), reverse=True):
            try:
                if child.is_dir():
                    child.rmdir()
                else:
                    child.unlink()
            except OSError as e:
                errors.append(CleanupError(f"could not remove {child}: {e}"))
        try:
            self.path.rmdir()
        except OSError as e:
            errors.append(CleanupError(f"could not remove {self.path}: {e}"))
        for err in errors:
            logger.warning("Scratch cleanup: %s", err)
        return errors

    def __repr__(self) -> str:
        return f"ScratchDir({str(self.path)!r})"
