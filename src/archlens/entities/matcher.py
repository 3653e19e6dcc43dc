"""Entity matcher: resolve free-text names against the authority file.

Resolution is a case-insensitive exact-name lookup. It ignores entity
type, so a person and an organization sharing a name collide; the first
vocabulary entry in insertion order wins.

``suggest`` is a separate, advisory helper that ranks fuzzy candidates
for a researcher choosing a match by hand. It never feeds ``resolve``.
"""

from __future__ import annotations

from collections.abc import Iterable

from rapidfuzz import fuzz, process

from archlens.entities.models import AuthorityRecord
from archlens.models import EntityReference

# Minimum token_set_ratio for a suggestion to be shown
SUGGEST_CUTOFF = 80


def normalize_name(name: object) -> str:
    """Trim and lower-case a name; non-strings normalize to ''."""
    if not isinstance(name, str):
        return ""
    return name.strip().lower()


def resolve(name: object, vocabulary: Iterable[AuthorityRecord]) -> int | None:
    """Return the id of the first authority whose name equals *name*, or None."""
    key = normalize_name(name)
    if not key:
        return None
    for record in vocabulary:
        if record.name.strip().lower() == key:
            return record.id
    return None


def resolve_reference(name: str, vocabulary: Iterable[AuthorityRecord]) -> EntityReference:
    """Build an EntityReference for *name* with its resolved id, if any."""
    return EntityReference(name=name, id=resolve(name, vocabulary))


def suggest(
    name: str,
    vocabulary: Iterable[AuthorityRecord],
    limit: int = 5,
    score_cutoff: float = SUGGEST_CUTOFF,
) -> list[tuple[AuthorityRecord, float]]:
    """Rank authority records by fuzzy similarity to *name*.

    Alternate names count as candidates; each record appears at most once
    with its best score.
    """
    key = normalize_name(name)
    if len(key) < 3:
        return []

    choices: list[tuple[str, AuthorityRecord]] = []
    for record in vocabulary:
        choices.append((record.name.lower(), record))
        for alt in record.alt_names:
            choices.append((alt.lower(), record))

    matches = process.extract(
        key,
        [text for text, _ in choices],
        scorer=fuzz.token_set_ratio,
        score_cutoff=score_cutoff,
        limit=None,
    )

    best: dict[int, tuple[AuthorityRecord, float]] = {}
    for _text, score, index in matches:
        record = choices[index][1]
        if record.id not in best or score > best[record.id][1]:
            best[record.id] = (record, score)

    ranked = sorted(best.values(), key=lambda pair: (-pair[1], pair[0].id))
    return ranked[:limit]
