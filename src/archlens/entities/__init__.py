"""Entity reconciliation: authority file, matcher, aggregator and record store."""

from archlens.entities.aggregator import aggregate
from archlens.entities.matcher import resolve, suggest
from archlens.entities.models import (
    AuthorityRecord,
    ReconciliationRecord,
    ReconciliationStatus,
    SourceAppearance,
)
from archlens.entities.store import ReconciliationStore
from archlens.entities.vocabulary import VocabularyStore

__all__ = [
    "AuthorityRecord",
    "ReconciliationRecord",
    "ReconciliationStatus",
    "ReconciliationStore",
    "SourceAppearance",
    "VocabularyStore",
    "aggregate",
    "resolve",
    "suggest",
]
