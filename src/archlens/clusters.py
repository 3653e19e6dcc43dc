"""Cluster consolidation: merge raw clustering output into the project.

Raw oracle clusters carry entity names as plain strings. They are
normalized into ``Cluster`` models with every entity and correspondent
resolved against the authority file, then swapped in wholesale.
Targeted edits replace a single cluster by id.

None of these operations re-aggregate the reconciliation list; callers
re-sync explicitly (see ``ProjectController.resync``).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from archlens.entities.matcher import resolve
from archlens.entities.models import AuthorityRecord
from archlens.errors import UnknownClusterError
from archlens.models import Cluster, Correspondent, EntityReference, NamedEntities, Page

logger = logging.getLogger(__name__)

# Fields that a targeted edit may not touch
_IMMUTABLE_FIELDS = frozenset({"id"})


def _resolve_refs(refs: Iterable[EntityReference], vocabulary: list[AuthorityRecord]) -> list:
    return [ref.model_copy(update={"id": resolve(ref.name, vocabulary)}) for ref in refs]


def resolve_cluster(cluster: Cluster, vocabulary: Iterable[AuthorityRecord]) -> Cluster:
    """Return a copy of *cluster* with every entity/correspondent id resolved."""
    vocab = list(vocabulary)
    entities = cluster.entities or NamedEntities()
    return cluster.model_copy(
        update={
            "senders": _resolve_refs(cluster.senders, vocab),
            "recipients": _resolve_refs(cluster.recipients, vocab),
            "entities": NamedEntities(
                people=_resolve_refs(entities.people, vocab),
                organizations=_resolve_refs(entities.organizations, vocab),
                roles=_resolve_refs(entities.roles, vocab),
            ),
        }
    )


def normalize_clusters(raw: Iterable[Any], vocabulary: Iterable[AuthorityRecord]) -> list[Cluster]:
    """Validate raw oracle clusters and resolve their entity ids.

    Entries that are not objects or fail validation are dropped with a
    warning; the remaining clusters keep their order.
    """
    vocab = list(vocabulary)
    clusters: list[Cluster] = []
    dropped = 0
    for item in raw:
        if not isinstance(item, dict):
            dropped += 1
            continue
        try:
            cluster = Cluster.model_validate(item)
        except ValidationError as e:
            logger.warning("Dropping malformed cluster %r: %s", item.get("id"), e)
            dropped += 1
            continue
        clusters.append(resolve_cluster(cluster, vocab))

    if dropped:
        logger.warning("Dropped %d malformed cluster(s) from clustering output", dropped)
    return clusters


def replace(current: list[Cluster], new: list[Cluster]) -> list[Cluster]:
    """Wholesale replacement of the cluster list."""
    logger.info("Replacing %d cluster(s) with %d re-clustered", len(current), len(new))
    return list(new)


def update_cluster(clusters: list[Cluster], cluster_id: int, **fields: Any) -> list[Cluster]:
    """Return a new list with one cluster's fields replaced.

    Raises:
        UnknownClusterError: If no cluster has *cluster_id*.
        ValueError: If *fields* tries to change the cluster id.
    """
    if _IMMUTABLE_FIELDS & set(fields):
        raise ValueError("Cluster id cannot be edited")

    for i, cluster in enumerate(clusters):
        if cluster.id == cluster_id:
            data = cluster.model_dump()
            data.update(fields)
            updated = Cluster.model_validate(data)
            return [*clusters[:i], updated, *clusters[i + 1:]]
    raise UnknownClusterError(cluster_id)


def get_cluster(clusters: Iterable[Cluster], cluster_id: int) -> Cluster:
    for cluster in clusters:
        if cluster.id == cluster_id:
            return cluster
    raise UnknownClusterError(cluster_id)


def pages_for_cluster(cluster: Cluster, pages: Iterable[Page]) -> list[Page]:
    """Pages belonging to *cluster*, in the cluster's page order."""
    by_id = {page.id: page for page in pages}
    return [by_id[pid] for pid in cluster.page_ids if pid in by_id]


def cluster_index_by_page(clusters: Iterable[Cluster]) -> dict[str, list[int]]:
    """Map each page id to the ids of the clusters that contain it."""
    index: dict[str, list[int]] = {}
    for cluster in clusters:
        for page_id in cluster.page_ids:
            members = index.setdefault(page_id, [])
            if cluster.id not in members:
                members.append(cluster.id)
    return index


def correspondent(name: str, role: str | None = None) -> Correspondent:
    """Convenience constructor for an unresolved correspondent."""
    return Correspondent(name=name, role=role)
