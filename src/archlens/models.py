"""Data models for pages, clusters, and the entity references they carry.

Pages and clusters are produced by the external oracle and read by the
reconciliation engine. They serialize with camelCase keys so that a
project backup keeps the workbench's ``appState`` layout verbatim.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump with camelCase keys and enum values, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class EntityType(str, Enum):
    """Kind of named entity tracked by the index."""

    PERSON = "person"
    ORGANIZATION = "organization"
    ROLE = "role"


class Tier(str, Enum):
    """Gemini resource tier; controls model choice and concurrency."""

    FREE = "FREE"
    PAID = "PAID"


class PageStatus(str, Enum):
    """Processing state of a single page."""

    PENDING = "pending"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"
    TRANSCRIBING = "transcribing"
    DONE = "done"
    ERROR = "error"


class EntityReference(CamelModel):
    """A name as extracted from source text, optionally resolved to an authority id."""

    name: str = ""
    id: int | None = None

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v: Any) -> str:
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)


class Correspondent(EntityReference):
    """Sender or recipient of a document."""

    role: str | None = None


def _coerce_reference_list(v: Any) -> list:
    """Accept plain strings, ``{name, id}`` objects or references; drop anything else."""
    if not isinstance(v, list):
        return []
    return [
        {"name": item} if isinstance(item, str) else item
        for item in v
        if isinstance(item, (str, dict, EntityReference))
    ]


class NamedEntities(CamelModel):
    """People, organizations and roles mentioned in a page or cluster."""

    people: list[EntityReference] = Field(default_factory=list)
    organizations: list[EntityReference] = Field(default_factory=list)
    roles: list[EntityReference] = Field(default_factory=list)

    @field_validator("people", "organizations", "roles", mode="before")
    @classmethod
    def coerce_references(cls, v: Any) -> list:
        return _coerce_reference_list(v)

    def by_type(self) -> list[tuple[EntityType, list[EntityReference]]]:
        """Return (type, references) pairs in people/organizations/roles order."""
        return [
            (EntityType.PERSON, self.people),
            (EntityType.ORGANIZATION, self.organizations),
            (EntityType.ROLE, self.roles),
        ]


class Page(CamelModel):
    """A single scanned page of an archival record."""

    id: str
    file_name: str = ""
    index_name: str = ""
    source_path: str | None = None  # image on local disk
    rotation: int = 0

    # Page analysis
    language: str | None = None
    production_mode: str | None = None
    has_hebrew_handwriting: bool | None = None

    # Researcher entry / flags
    manual_transcription: str | None = None
    manual_description: str | None = None
    should_transcribe: bool = False
    should_translate: bool = False
    should_download_image: bool = False

    # Transcription
    generated_transcription: str | None = None
    generated_translation: str | None = None
    confidence_score: int | None = None

    entities: NamedEntities | None = None

    status: PageStatus = PageStatus.PENDING
    error: str | None = None

    @property
    def transcription(self) -> str:
        """Researcher transcription if present, else the generated one."""
        return self.manual_transcription or self.generated_transcription or ""


class Cluster(CamelModel):
    """A logical multi-page document produced by the clustering call."""

    id: int
    title: str = ""
    page_range: str = ""
    summary: str = ""
    page_ids: list[str] = Field(default_factory=list)

    prison_name: str | None = None
    doc_types: list[str] = Field(default_factory=list)
    subjects: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    original_date: str | None = None
    standardized_date: str | None = None  # yyyy-mm-dd

    senders: list[Correspondent] = Field(default_factory=list)
    recipients: list[Correspondent] = Field(default_factory=list)
    entities: NamedEntities | None = None

    @field_validator("senders", "recipients", mode="before")
    @classmethod
    def coerce_correspondents(cls, v: Any) -> list:
        return _coerce_reference_list(v)

    @field_validator("page_ids", "doc_types", "subjects", "languages", mode="before")
    @classmethod
    def coerce_string_list(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [str(item) for item in v if item is not None]

    @field_validator("title", "page_range", "summary", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @property
    def location_id(self) -> str:
        """Location token used for source appearances of this cluster."""
        return f"Doc #{self.id}"
