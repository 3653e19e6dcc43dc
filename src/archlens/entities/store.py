"""ReconciliationStore: the project-scoped deduplicated entity list.

Holds the current list of reconciliation records and exposes the named
edit operations. Each operation validates the status transition, builds
a replacement record and swaps it in; ``sync`` recomputes the whole list
through the aggregator and swaps it in only once the pass completes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from typing import Any

from archlens.entities.aggregator import aggregate
from archlens.entities.fsm import check_transition
from archlens.entities.models import AuthorityRecord, ReconciliationRecord, ReconciliationStatus
from archlens.entities.vocabulary import VocabularyStore
from archlens.errors import UnknownRecordError
from archlens.models import Cluster, EntityType, Page

logger = logging.getLogger(__name__)


class ReconciliationStore:
    """Current reconciliation list plus its edit operations.

    Usage:
        store = ReconciliationStore(vocabulary)
        store.sync(pages, clusters)
        store.set_match(record_id, 42)
        store.set_appearance_note(record_id, "Doc #3", "signature only")
    """

    def __init__(
        self,
        vocabulary: VocabularyStore,
        records: Iterable[ReconciliationRecord] = (),
    ) -> None:
        self._vocabulary = vocabulary
        self._records: list[ReconciliationRecord] = list(records)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def records(self) -> list[ReconciliationRecord]:
        """A copy of the current list (records are replaced, never mutated)."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def get(self, record_id: str) -> ReconciliationRecord:
        return self._records[self._position(record_id)]

    def find(
        self,
        status: ReconciliationStatus | None = None,
        entity_type: EntityType | None = None,
        search: str | None = None,
    ) -> list[ReconciliationRecord]:
        """Filter records by status, type and a case-insensitive name substring."""
        needle = search.lower() if search else None
        return [
            r for r in self._records
            if (status is None or r.status == status)
            and (entity_type is None or r.type == entity_type)
            and (needle is None or needle in r.extracted_name.lower())
        ]

    def status_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {s.value: 0 for s in ReconciliationStatus}
        for record in self._records:
            counts[record.status.value] += 1
        return counts

    # ------------------------------------------------------------------
    # Re-sync
    # ------------------------------------------------------------------

    def sync(self, pages: Iterable[Page], clusters: Iterable[Cluster]) -> list[ReconciliationRecord]:
        """Recompute the list from pages and clusters against the current vocabulary."""
        new_records = aggregate(pages, clusters, self._records, self._vocabulary.all_records())
        self._records = new_records
        logger.info("Reconciliation list synced: %d records", len(new_records))
        return self.records

    def is_stale(self, pages: Iterable[Page], clusters: Iterable[Cluster]) -> bool:
        """True when a ``sync`` would change the current list."""
        return aggregate(pages, clusters, self._records, self._vocabulary.all_records()) != self._records

    # ------------------------------------------------------------------
    # Edit operations
    # ------------------------------------------------------------------

    def set_match(self, record_id: str, authority_id: int) -> ReconciliationRecord:
        """Link a record to an authority record.

        Raises:
            UnknownAuthorityError: If *authority_id* is not in the vocabulary.
        """
        record = self.get(record_id)
        authority = self._vocabulary.get_or_raise(authority_id)
        status = check_transition(record.status, "match")
        return self._swap(record, status=status, matched_id=authority.id, matched_name=authority.name)

    def unlink(self, record_id: str) -> ReconciliationRecord:
        record = self.get(record_id)
        status = check_transition(record.status, "unlink")
        return self._swap(record, status=status, matched_id=None, matched_name=None)

    def reject(self, record_id: str) -> ReconciliationRecord:
        record = self.get(record_id)
        status = check_transition(record.status, "reject")
        return self._swap(record, status=status, matched_id=None, matched_name=None)

    def promote_to_custom(self, record_id: str, today: date | None = None) -> ReconciliationRecord:
        """Keep the record in the index without an authority link."""
        record = self.get(record_id)
        status = check_transition(record.status, "make_custom")
        added_at = (today or date.today()).isoformat()
        return self._swap(record, status=status, matched_id=None, matched_name=None, added_at=added_at)

    def rename_extracted(self, record_id: str, new_name: str) -> ReconciliationRecord:
        """Change the display name. The grouping key is not migrated."""
        new_name = new_name.strip()
        if not new_name:
            raise ValueError("Extracted name must not be blank")
        record = self.get(record_id)
        return self._swap(record, extracted_name=new_name)

    def set_appearance_note(self, record_id: str, location_id: str, note: str) -> ReconciliationRecord:
        """Replace the note on one appearance; no-op if the location is absent."""
        record = self.get(record_id)
        if not record.has_location(location_id):
            logger.debug("No appearance %r on record %s; note ignored", location_id, record_id)
            return record
        appearances = [
            a.model_copy(update={"note": note}) if a.location_id == location_id else a
            for a in record.source_appearances
        ]
        return self._swap(record, source_appearances=appearances)

    def promote_to_authority(self, record_id: str, **bio: Any) -> tuple[ReconciliationRecord, AuthorityRecord]:
        """Add the record to the master vocabulary and match it to the new entry."""
        record = self.get(record_id)
        check_transition(record.status, "match")
        authority = self._vocabulary.add(record.extracted_name, record.type, **bio)
        return self.set_match(record_id, authority.id), authority

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _position(self, record_id: str) -> int:
        for i, record in enumerate(self._records):
            if record.id == record_id:
                return i
        raise UnknownRecordError(record_id)

    def _swap(self, record: ReconciliationRecord, **changes: Any) -> ReconciliationRecord:
        updated = record.replace(**changes)
        self._records[self._position(record.id)] = updated
        logger.debug("Record %s updated: %s", record.id, ", ".join(sorted(changes)))
        return updated
