"""Mention aggregator: consolidate raw entity mentions into reconciliation records.

Pipeline:
A. Index previous records by (type, lower-cased extracted name)
B. Collect candidate mentions from every cluster (entities, senders,
   recipients; location ``Doc #<id>``), then every page (entities;
   location = page index name)
C. Group mentions by (type, lower-cased name); locations are unique per
   record
D. New groups carry over id, name, status, match and all appearances of
   a previous record with the same key; unseen keys get a fresh id and a
   status from the entity matcher
E. A carried ``pending`` status is promoted to ``matched`` when the
   current vocabulary resolves the name; ``rejected``, ``custom`` and
   ``matched`` are never overwritten
F. Previous records not sighted in this pass are kept, after the
   sighted ones

The pass is a pure function of its inputs. Re-running it on its own
output with unchanged pages, clusters and vocabulary returns an equal
list.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Iterator
from typing import NamedTuple

from archlens.entities.matcher import resolve
from archlens.entities.models import (
    AuthorityRecord,
    ReconciliationRecord,
    ReconciliationStatus,
    SourceAppearance,
)
from archlens.models import Cluster, EntityType, NamedEntities, Page

logger = logging.getLogger(__name__)

RecordKey = tuple[EntityType, str]


class Mention(NamedTuple):
    """A single occurrence of an entity name at one location."""

    name: str
    type: EntityType
    location_id: str


def record_key(entity_type: EntityType, name: str) -> RecordKey:
    return (entity_type, name.strip().lower())


def _entity_mentions(entities: NamedEntities | None, location_id: str) -> Iterator[Mention]:
    if entities is None:
        return
    for entity_type, references in entities.by_type():
        for ref in references or ():
            yield Mention(ref.name, entity_type, location_id)


def iter_mentions(pages: Iterable[Page], clusters: Iterable[Cluster]) -> Iterator[Mention]:
    """Yield candidate mentions: all clusters first, then all pages."""
    for cluster in clusters:
        location = cluster.location_id
        yield from _entity_mentions(cluster.entities, location)
        for correspondent in [*(cluster.senders or ()), *(cluster.recipients or ())]:
            yield Mention(correspondent.name, EntityType.PERSON, location)

    for page in pages:
        yield from _entity_mentions(page.entities, page.index_name)


def _index_previous(previous: Iterable[ReconciliationRecord]) -> dict[RecordKey, ReconciliationRecord]:
    """Index previous records by key, folding later key collisions into the first."""
    index: dict[RecordKey, ReconciliationRecord] = {}
    for record in previous:
        key = record_key(record.type, record.extracted_name)
        existing = index.get(key)
        if existing is None:
            index[key] = record
            continue
        extra = [a for a in record.source_appearances if not existing.has_location(a.location_id)]
        if extra:
            index[key] = existing.replace(source_appearances=[*existing.source_appearances, *extra])
        logger.warning(
            "Folded record %s (%r, %s) into %s: same name and type; its status was dropped",
            record.id, record.extracted_name, record.status.value, existing.id,
        )
    return index


class _Draft:
    """Mutable working state for one record during a pass."""

    __slots__ = ("id", "name", "type", "status", "matched_id", "matched_name", "added_at",
                 "appearances", "locations")

    def __init__(self, record_id: str, name: str, entity_type: EntityType,
                 status: ReconciliationStatus, matched_id: int | None = None,
                 matched_name: str | None = None, added_at: str | None = None,
                 appearances: Iterable[SourceAppearance] = ()) -> None:
        self.id = record_id
        self.name = name
        self.type = entity_type
        self.status = status
        self.matched_id = matched_id
        self.matched_name = matched_name
        self.added_at = added_at
        self.appearances: list[SourceAppearance] = []
        self.locations: set[str] = set()
        for appearance in appearances:
            self.add_location(appearance.location_id, appearance.note)

    def add_location(self, location_id: str, note: str = "") -> None:
        if location_id in self.locations:
            return
        self.locations.add(location_id)
        self.appearances.append(SourceAppearance(location_id=location_id, note=note))

    def build(self) -> ReconciliationRecord:
        return ReconciliationRecord(
            id=self.id,
            extracted_name=self.name,
            type=self.type,
            status=self.status,
            matched_id=self.matched_id,
            matched_name=self.matched_name,
            source_appearances=self.appearances,
            added_at=self.added_at,
        )


def _draft_from_previous(previous: ReconciliationRecord,
                         vocabulary: list[AuthorityRecord],
                         by_id: dict[int, AuthorityRecord]) -> _Draft:
    draft = _Draft(
        previous.id,
        previous.extracted_name,
        previous.type,
        previous.status,
        previous.matched_id,
        previous.matched_name,
        previous.added_at,
        previous.source_appearances,
    )
    if previous.status == ReconciliationStatus.PENDING:
        matched_id = resolve(previous.extracted_name, vocabulary)
        if matched_id is not None:
            draft.status = ReconciliationStatus.MATCHED
            draft.matched_id = matched_id
            draft.matched_name = by_id[matched_id].name
            logger.info("Promoted %r to matched (authority %d)", previous.extracted_name, matched_id)
    return draft


def _fresh_draft(name: str, entity_type: EntityType,
                 vocabulary: list[AuthorityRecord],
                 by_id: dict[int, AuthorityRecord]) -> _Draft:
    matched_id = resolve(name, vocabulary)
    if matched_id is None:
        return _Draft(uuid.uuid4().hex, name, entity_type, ReconciliationStatus.PENDING)
    return _Draft(
        uuid.uuid4().hex,
        name,
        entity_type,
        ReconciliationStatus.MATCHED,
        matched_id=matched_id,
        matched_name=by_id[matched_id].name,
    )


def aggregate(
    pages: Iterable[Page],
    clusters: Iterable[Cluster],
    previous_records: Iterable[ReconciliationRecord],
    vocabulary: Iterable[AuthorityRecord],
) -> list[ReconciliationRecord]:
    """Recompute the reconciliation list from pages, clusters and the vocabulary.

    Args:
        pages: Pages in display order.
        clusters: Clusters in display order.
        previous_records: The current reconciliation list (may be empty).
        vocabulary: Snapshot of the authority file.

    Returns:
        New reconciliation records: sighted keys in first-sighting order,
        then previous records that were not sighted in this pass.
    """
    vocab = list(vocabulary)
    by_id = {record.id: record for record in vocab}
    previous_list = list(previous_records)
    previous_index = _index_previous(previous_list)

    working: dict[RecordKey, _Draft] = {}
    skipped = 0

    for mention in iter_mentions(pages, clusters):
        name = mention.name.strip() if isinstance(mention.name, str) else ""
        if not name:
            skipped += 1
            continue

        key = record_key(mention.type, name)
        draft = working.get(key)
        if draft is None:
            previous = previous_index.get(key)
            if previous is not None:
                draft = _draft_from_previous(previous, vocab, by_id)
            else:
                draft = _fresh_draft(name, mention.type, vocab, by_id)
            working[key] = draft
        draft.add_location(mention.location_id)

    records = [draft.build() for draft in working.values()]

    retained = 0
    emitted: set[RecordKey] = set(working)
    for previous in previous_list:
        key = record_key(previous.type, previous.extracted_name)
        if key in emitted:
            continue
        emitted.add(key)
        records.append(previous_index[key])
        retained += 1

    logger.debug(
        "Aggregated %d records (%d sighted, %d retained, %d blank mentions skipped)",
        len(records), len(working), retained, skipped,
    )
    return records
