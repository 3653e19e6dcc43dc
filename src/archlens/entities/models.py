"""Pydantic models for the authority file and the reconciliation index.

Defines authority records (the durable, cross-project master
vocabulary), source appearances, and reconciliation records (the
project-scoped deduplicated entity list).
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field, field_validator, model_validator

from archlens.models import CamelModel, EntityType


class ReconciliationStatus(str, Enum):
    """Reconciliation state of a project entity."""

    PENDING = "pending"
    MATCHED = "matched"
    REJECTED = "rejected"
    CUSTOM = "custom"


class AuthorityRecord(CamelModel):
    """A canonical entity in the master vocabulary.

    ``id`` and ``type`` are fixed at creation. Biographical fields are
    independently mutable and carry no cross-field invariants.
    """

    id: int
    name: str
    type: EntityType
    life_span: str | None = None
    affiliation: str | None = None
    religion: str | None = None
    nationality: str | None = None
    gender: str | None = None
    alt_names: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list)
    notes: str | None = None


# Fields a user may edit on an authority record after creation.
BIOGRAPHICAL_FIELDS: tuple[str, ...] = (
    "life_span",
    "affiliation",
    "religion",
    "nationality",
    "gender",
    "alt_names",
    "links",
    "notes",
)


class SourceAppearance(CamelModel):
    """One location where an entity was mentioned, plus a researcher note."""

    location_id: str
    note: str = ""


class ReconciliationRecord(CamelModel):
    """A deduplicated group of raw mentions, optionally linked to an authority."""

    id: str
    extracted_name: str
    type: EntityType
    status: ReconciliationStatus = ReconciliationStatus.PENDING
    matched_id: int | None = None
    matched_name: str | None = None
    source_appearances: list[SourceAppearance] = Field(default_factory=list)
    added_at: str | None = None

    @field_validator("source_appearances", mode="before")
    @classmethod
    def unique_locations(cls, v: Any) -> Any:
        """Keep the first appearance per location id."""
        if not isinstance(v, list):
            return v
        seen: set[str] = set()
        result = []
        for item in v:
            location = (
                item.location_id
                if isinstance(item, SourceAppearance)
                else (item.get("locationId", item.get("location_id")) if isinstance(item, dict) else None)
            )
            if location in seen:
                continue
            seen.add(location)
            result.append(item)
        return result

    @model_validator(mode="after")
    def match_consistency(self) -> ReconciliationRecord:
        if (self.status == ReconciliationStatus.MATCHED) != (self.matched_id is not None):
            raise ValueError(
                f"status={self.status.value!r} is inconsistent with matched_id={self.matched_id!r}"
            )
        return self

    @property
    def key(self) -> tuple[EntityType, str]:
        """Grouping key: (type, lower-cased extracted name)."""
        return (self.type, self.extracted_name.strip().lower())

    @property
    def location_ids(self) -> list[str]:
        return [a.location_id for a in self.source_appearances]

    def has_location(self, location_id: str) -> bool:
        return any(a.location_id == location_id for a in self.source_appearances)

    def replace(self, **changes: Any) -> ReconciliationRecord:
        """Return a validated copy with *changes* applied."""
        data = self.model_dump()
        data.update(changes)
        return ReconciliationRecord.model_validate(data)
