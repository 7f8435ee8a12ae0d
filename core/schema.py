"""
Pydantic schema for caller-supplied processing options. Used by pipeline.document_processor.
"""
from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from core.models import ExtractionKind

ALLOWED_TYPES = tuple(k.value for k in ExtractionKind)


class ProcessOptions(BaseModel):
    """Options for one document run. ``type`` resolves to ExtractionKind once, here."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: ExtractionKind
    # None means "use the configured default".
    cleanup: bool | None = Field(default=None, validation_alias=AliasChoices("cleanup", "clean"))
    max_workers: int | None = Field(default=None, ge=1)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v
