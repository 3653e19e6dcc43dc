"""Pydantic response schemas for Gemini structured output.

Field names serialize camelCase so the JSON schema handed to the model
matches the keys the rest of the workbench reads.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from archlens.models import CamelModel


class PageAnalysis(CamelModel):
    """Language, production mode and Hebrew-handwriting check for one page."""

    language: str = ""
    production_mode: str = ""
    has_hebrew_handwriting: bool = False


class TranscriptionResult(CamelModel):
    """Verbatim transcription, optional English translation, and confidence."""

    transcription: str = ""
    translation: str = ""
    confidence_score: int = 3

    @field_validator("transcription", "translation", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("confidence_score", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> int:
        """Keep the score on the 1-5 scale; falsy or garbage means 3."""
        try:
            score = int(v)
        except (TypeError, ValueError):
            return 3
        if score == 0:
            return 3
        return min(5, max(1, score))


class RawCorrespondent(CamelModel):
    name: str = ""
    role: str | None = None


class RawEntities(CamelModel):
    """Entity names exactly as the clustering call returns them."""

    people: list[str] = Field(default_factory=list)
    organizations: list[str] = Field(default_factory=list)
    roles: list[str] = Field(default_factory=list)


class RawCluster(CamelModel):
    """Cluster shape requested from the model (entity lists are plain strings)."""

    id: int
    title: str
    page_range: str | None = None
    summary: str | None = None
    page_ids: list[str]
    prison_name: str | None = None
    doc_types: list[str] = Field(default_factory=list)
    subjects: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    original_date: str | None = None
    standardized_date: str | None = None
    senders: list[RawCorrespondent] = Field(default_factory=list)
    recipients: list[RawCorrespondent] = Field(default_factory=list)
    entities: RawEntities
