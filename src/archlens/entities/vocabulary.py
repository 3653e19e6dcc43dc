"""VocabularyStore: the master authority file.

Seeded from the bundled ``vocabulary_seed.json`` at startup and mutable at
runtime: entries can be added (minted ids are never reused) and renamed,
and their biographical fields edited. Entries are never deleted.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from importlib import resources
from typing import Any

from archlens.entities.models import BIOGRAPHICAL_FIELDS, AuthorityRecord
from archlens.errors import UnknownAuthorityError
from archlens.models import EntityType

logger = logging.getLogger(__name__)

SEED_RESOURCE = "vocabulary_seed.json"


def load_seed_records() -> list[AuthorityRecord]:
    """Load the bundled authority seed list."""
    text = resources.files("archlens.data").joinpath(SEED_RESOURCE).read_text(encoding="utf-8")
    return [AuthorityRecord.model_validate(item) for item in json.loads(text)]


class VocabularyStore:
    """In-memory authority file keyed by stable numeric id.

    Iteration order is insertion order, which the entity matcher relies
    on to break ties between entries sharing a name.

    Usage:
        vocab = VocabularyStore.from_seed()
        record = vocab.add("Chaim Weizmann", EntityType.PERSON, life_span="1874-1952")
        vocab.rename(record.id, "Chaim Azriel Weizmann")
    """

    def __init__(self, records: Iterable[AuthorityRecord] = ()) -> None:
        self._records: dict[int, AuthorityRecord] = {}
        self._high_water = 0
        for record in records:
            if record.id in self._records:
                logger.warning("Duplicate authority id %d ignored (%s)", record.id, record.name)
                continue
            self._records[record.id] = record
            self._high_water = max(self._high_water, record.id)

        logger.debug("VocabularyStore loaded: %d records", len(self._records))

    @classmethod
    def from_seed(cls) -> VocabularyStore:
        return cls(load_seed_records())

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records.values())

    def __contains__(self, authority_id: object) -> bool:
        return authority_id in self._records

    def contains(self, authority_id: int) -> bool:
        return authority_id in self._records

    def get(self, authority_id: int) -> AuthorityRecord | None:
        """Look up an authority record by id."""
        return self._records.get(authority_id)

    def get_or_raise(self, authority_id: int) -> AuthorityRecord:
        record = self._records.get(authority_id)
        if record is None:
            raise UnknownAuthorityError(authority_id)
        return record

    def all_records(self) -> list[AuthorityRecord]:
        """Return all records in insertion order."""
        return list(self._records.values())

    def by_type(self, entity_type: EntityType) -> list[AuthorityRecord]:
        return [r for r in self._records.values() if r.type == entity_type]

    def add(self, name: str, entity_type: EntityType | str, **bio: Any) -> AuthorityRecord:
        """Create a new authority record with a freshly minted id.

        Raises:
            ValueError: If *name* is blank or *bio* names a non-biographical field.
        """
        name = name.strip()
        if not name:
            raise ValueError("Authority name must not be blank")
        self._check_bio_fields(bio)

        self._high_water += 1
        record = AuthorityRecord(id=self._high_water, name=name, type=EntityType(entity_type), **bio)
        self._records[record.id] = record
        logger.info("Added authority %d: %s (%s)", record.id, record.name, record.type.value)
        return record

    def rename(self, authority_id: int, new_name: str) -> AuthorityRecord:
        """Change the canonical display name of an authority record."""
        new_name = new_name.strip()
        if not new_name:
            raise ValueError("Authority name must not be blank")
        record = self.get_or_raise(authority_id)
        updated = record.model_copy(update={"name": new_name})
        self._records[authority_id] = updated
        logger.info("Renamed authority %d: %s -> %s", authority_id, record.name, new_name)
        return updated

    def update(self, authority_id: int, **bio: Any) -> AuthorityRecord:
        """Edit biographical fields in place. ``id`` and ``type`` cannot change."""
        self._check_bio_fields(bio)
        record = self.get_or_raise(authority_id)
        data = record.model_dump()
        data.update(bio)
        updated = AuthorityRecord.model_validate(data)
        self._records[authority_id] = updated
        return updated

    @staticmethod
    def _check_bio_fields(bio: dict[str, Any]) -> None:
        unknown = set(bio) - set(BIOGRAPHICAL_FIELDS)
        if unknown:
            raise ValueError(f"Not editable biographical fields: {', '.join(sorted(unknown))}")
