"""Tests for cluster consolidation and cross-reference helpers."""

from __future__ import annotations

import pytest
from conftest import make_cluster, make_page

from archlens import clusters as cluster_ops
from archlens.errors import UnknownClusterError


class TestNormalizeClusters:
    def test_resolves_string_entities(self, small_vocab):
        raw = [
            {
                "id": 1,
                "title": "Letter to the Chief Secretary",
                "pageIds": ["p1"],
                "senders": [{"name": "David Ben-Gurion", "role": "Chairman"}],
                "recipients": [{"name": "Someone Else"}],
                "entities": {
                    "people": ["Golda Meir", "Anna Cohen"],
                    "organizations": ["jewish agency for palestine"],
                    "roles": [],
                },
            }
        ]
        (cluster,) = cluster_ops.normalize_clusters(raw, small_vocab)
        assert cluster.senders[0].id == 1
        assert cluster.senders[0].role == "Chairman"
        assert cluster.recipients[0].id is None
        assert [p.id for p in cluster.entities.people] == [2, None]
        assert cluster.entities.organizations[0].id == 10

    def test_drops_malformed_entries(self, small_vocab):
        raw = ["not a cluster", {"title": "no id"}, {"id": 2, "title": "ok"}]
        result = cluster_ops.normalize_clusters(raw, small_vocab)
        assert [c.id for c in result] == [2]
        assert result[0].entities is not None

    def test_missing_optional_fields(self, small_vocab):
        (cluster,) = cluster_ops.normalize_clusters([{"id": 3, "docTypes": None, "summary": None}], small_vocab)
        assert cluster.doc_types == []
        assert cluster.summary == ""
        assert cluster.location_id == "Doc #3"


class TestUpdateCluster:
    def test_targeted_edit(self):
        clusters = [make_cluster(1), make_cluster(2)]
        updated = cluster_ops.update_cluster(clusters, 2, title="Release order", standardized_date="1946-07-01")
        assert updated[1].title == "Release order"
        assert updated[1].standardized_date == "1946-07-01"
        assert updated[0] == clusters[0]
        assert clusters[1].title == "Document 2"

    def test_unknown_id(self):
        with pytest.raises(UnknownClusterError):
            cluster_ops.update_cluster([make_cluster(1)], 9, title="x")

    def test_id_immutable(self):
        with pytest.raises(ValueError):
            cluster_ops.update_cluster([make_cluster(1)], 1, id=5)

    def test_correspondents_replaced(self):
        (updated,) = cluster_ops.update_cluster(
            [make_cluster(1, senders=["Old"])], 1, senders=[cluster_ops.correspondent("New", "Warden")]
        )
        assert [(s.name, s.role) for s in updated.senders] == [("New", "Warden")]


class TestCrossReference:
    def test_replace(self):
        new = [make_cluster(5)]
        assert cluster_ops.replace([make_cluster(1)], new) == new

    def test_pages_for_cluster_in_cluster_order(self):
        pages = [make_page("a"), make_page("b"), make_page("c")]
        cluster = make_cluster(1, page_ids=["c", "a", "missing"])
        assert [p.id for p in cluster_ops.pages_for_cluster(cluster, pages)] == ["c", "a"]

    def test_cluster_index_by_page(self):
        clusters = [make_cluster(1, page_ids=["a", "b"]), make_cluster(2, page_ids=["b"])]
        assert cluster_ops.cluster_index_by_page(clusters) == {"a": [1], "b": [1, 2]}

    def test_get_cluster(self):
        with pytest.raises(UnknownClusterError):
            cluster_ops.get_cluster([], 1)
