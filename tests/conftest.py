"""Shared pytest fixtures for Archival Lens tests.

Provides small vocabularies, page and cluster builders, a project
controller, and a mocked google-genai client for oracle tests.
"""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from archlens.entities.models import AuthorityRecord
from archlens.entities.vocabulary import VocabularyStore
from archlens.models import Cluster, EntityType, Page
from archlens.project import ProjectController, ProjectState


def make_page(page_id: str, index_name: str | None = None, **entities: list[str]) -> Page:
    """Build a page whose entities are given as plain name lists."""
    data: dict = {"id": page_id, "indexName": index_name or page_id}
    if entities:
        data["entities"] = {kind: [{"name": n} for n in names] for kind, names in entities.items()}
    return Page.model_validate(data)


def make_cluster(
    cluster_id: int,
    people: list[str] | None = None,
    organizations: list[str] | None = None,
    roles: list[str] | None = None,
    senders: list[str] | None = None,
    recipients: list[str] | None = None,
    **extra,
) -> Cluster:
    return Cluster.model_validate(
        {
            "id": cluster_id,
            "title": extra.pop("title", f"Document {cluster_id}"),
            "entities": {
                "people": [{"name": n} for n in people or []],
                "organizations": [{"name": n} for n in organizations or []],
                "roles": [{"name": n} for n in roles or []],
            },
            "senders": [{"name": n} for n in senders or []],
            "recipients": [{"name": n} for n in recipients or []],
            **extra,
        }
    )


@pytest.fixture
def empty_vocab() -> VocabularyStore:
    return VocabularyStore()


@pytest.fixture
def small_vocab() -> VocabularyStore:
    """Three authorities: two people and an organization."""
    return VocabularyStore(
        [
            AuthorityRecord(id=1, name="David Ben-Gurion", type=EntityType.PERSON, alt_names=["Ben Gurion"]),
            AuthorityRecord(id=2, name="Golda Meir", type=EntityType.PERSON, life_span="1898-1978"),
            AuthorityRecord(id=10, name="Jewish Agency for Palestine", type=EntityType.ORGANIZATION),
        ]
    )


@pytest.fixture
def sample_pages() -> list[Page]:
    return [
        make_page("p1", "Acre - 001.jpg", people=["Anna Cohen", "Golda Meir"]),
        make_page("p2", "Acre - 002.jpg", organizations=["Jewish Agency for Palestine"]),
        make_page("p3", "Acre - 003.jpg"),
    ]


@pytest.fixture
def sample_clusters() -> list[Cluster]:
    return [
        make_cluster(1, people=["Golda Meir"], senders=["David Ben-Gurion"], page_ids=["p1", "p2"]),
        make_cluster(2, people=["Golda Meir", "Unknown Warder"], roles=["Camp Commandant"], page_ids=["p3"]),
    ]


@pytest.fixture
def project(sample_pages, small_vocab) -> ProjectController:
    state = ProjectState(
        archive_name="State Archive",
        files=sample_pages,
        master_vocabulary=small_vocab.all_records(),
    )
    return ProjectController(state, title="Acre Prison Files")


@pytest.fixture
def image_file(tmp_path: Path) -> Path:
    """A tiny real JPEG on disk."""
    from PIL import Image

    path = tmp_path / "page_001.jpg"
    Image.new("RGB", (40, 20), color="white").save(path, format="JPEG")
    return path


@pytest.fixture
def mock_genai_client() -> MagicMock:
    """Mock google-genai Client exposing ``aio.models.generate_content``."""
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=SimpleNamespace(text="{}"))
    return client


def response(text: str) -> SimpleNamespace:
    """Stand-in for a GenerateContentResponse with only ``.text``."""
    return SimpleNamespace(text=text)
