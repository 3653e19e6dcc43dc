"""Project state container and controller.

``ProjectController`` owns the whole project state (pages, clusters, the
reconciliation list and the master vocabulary) and exposes mutation only
through named operations. Re-aggregation is an explicit ``resync``:
cluster edits, re-clustering and vocabulary edits only mark the
reconciliation list stale.

Backups are a JSON document whose ``appState`` embeds ``files``,
``clusters``, ``reconciliationList`` and ``masterVocabulary`` verbatim.
The stale flag travels in ``meta.needsResync``. Writes are atomic (write
to .tmp, then rename).
"""

from __future__ import annotations

import json
import logging
import zipfile
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import Field

from archlens import clusters as cluster_ops
from archlens.entities.models import AuthorityRecord, ReconciliationRecord, ReconciliationStatus
from archlens.entities.store import ReconciliationStore
from archlens.entities.vocabulary import VocabularyStore
from archlens.errors import ArchLensError, UnknownPageError
from archlens.models import CamelModel, Cluster, EntityType, Page, Tier

logger = logging.getLogger(__name__)

BACKUP_TYPE = "ARCHIVAL_LENS_BACKUP"
BACKUP_VERSION = 1
METADATA_FILENAME = "project_metadata.json"


class PageRange(CamelModel):
    """1-based inclusive page range the project was scoped to."""

    start: int
    end: int


class ProjectState(CamelModel):
    """Serializable project state (the backup's ``appState``)."""

    mode: str | None = None
    tier: Tier = Tier.FREE
    archive_name: str = ""
    files: list[Page] = Field(default_factory=list)
    clusters: list[Cluster] = Field(default_factory=list)
    reconciliation_list: list[ReconciliationRecord] = Field(default_factory=list)
    master_vocabulary: list[AuthorityRecord] = Field(default_factory=list)


class ProjectController:
    """Single owner of project state.

    Usage:
        project = ProjectController.new("Acre Prison Files", pages)
        project.replace_clusters(clusters)
        project.resync()
        project.set_match(record_id, 12)
        project.save(Path("acre.archlens.json"))
    """

    def __init__(
        self,
        state: ProjectState | None = None,
        title: str = "Archival Project",
        page_range: PageRange | None = None,
    ) -> None:
        state = state or ProjectState()
        self.title = title
        self.page_range = page_range
        self.mode = state.mode
        self.tier = state.tier
        self.archive_name = state.archive_name
        self._pages: list[Page] = list(state.files)
        self._clusters: list[Cluster] = list(state.clusters)
        self._vocabulary = (
            VocabularyStore(state.master_vocabulary)
            if state.master_vocabulary
            else VocabularyStore.from_seed()
        )
        self._store = ReconciliationStore(self._vocabulary, state.reconciliation_list)
        self.needs_resync = False

    @classmethod
    def new(
        cls,
        title: str,
        pages: Iterable[Page],
        mode: str | None = None,
        tier: Tier = Tier.FREE,
        archive_name: str = "",
        page_range: PageRange | None = None,
    ) -> ProjectController:
        state = ProjectState(mode=mode, tier=tier, archive_name=archive_name, files=list(pages))
        return cls(state, title=title, page_range=page_range)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def pages(self) -> list[Page]:
        return list(self._pages)

    @property
    def clusters(self) -> list[Cluster]:
        return list(self._clusters)

    @property
    def records(self) -> list[ReconciliationRecord]:
        return self._store.records

    @property
    def vocabulary(self) -> VocabularyStore:
        return self._vocabulary

    @property
    def store(self) -> ReconciliationStore:
        return self._store

    def get_page(self, page_id: str) -> Page:
        for page in self._pages:
            if page.id == page_id:
                return page
        raise UnknownPageError(page_id)

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def update_page(self, page_id: str, **fields: Any) -> Page:
        """Replace fields on one page (oracle results, researcher edits)."""
        for i, page in enumerate(self._pages):
            if page.id == page_id:
                data = page.model_dump()
                data.update(fields)
                updated = Page.model_validate(data)
                self._pages[i] = updated
                if "entities" in fields or "index_name" in fields:
                    self.needs_resync = True
                return updated
        raise UnknownPageError(page_id)

    # ------------------------------------------------------------------
    # Clusters
    # ------------------------------------------------------------------

    def replace_clusters(self, new_clusters: list[Cluster]) -> None:
        self._clusters = cluster_ops.replace(self._clusters, new_clusters)
        self.needs_resync = True

    def update_cluster(self, cluster_id: int, **fields: Any) -> Cluster:
        self._clusters = cluster_ops.update_cluster(self._clusters, cluster_id, **fields)
        self.needs_resync = True
        return cluster_ops.get_cluster(self._clusters, cluster_id)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def resync(self) -> list[ReconciliationRecord]:
        """Re-aggregate the reconciliation list from current pages and clusters."""
        records = self._store.sync(self._pages, self._clusters)
        self.needs_resync = False
        return records

    def set_match(self, record_id: str, authority_id: int) -> ReconciliationRecord:
        return self._store.set_match(record_id, authority_id)

    def unlink(self, record_id: str) -> ReconciliationRecord:
        return self._store.unlink(record_id)

    def reject(self, record_id: str) -> ReconciliationRecord:
        return self._store.reject(record_id)

    def promote_to_custom(self, record_id: str) -> ReconciliationRecord:
        return self._store.promote_to_custom(record_id)

    def rename_extracted(self, record_id: str, new_name: str) -> ReconciliationRecord:
        return self._store.rename_extracted(record_id, new_name)

    def set_appearance_note(self, record_id: str, location_id: str, note: str) -> ReconciliationRecord:
        return self._store.set_appearance_note(record_id, location_id, note)

    def promote_to_authority(self, record_id: str, **bio: Any) -> tuple[ReconciliationRecord, AuthorityRecord]:
        return self._store.promote_to_authority(record_id, **bio)

    # ------------------------------------------------------------------
    # Vocabulary
    # ------------------------------------------------------------------

    def add_authority(self, name: str, entity_type: EntityType | str, **bio: Any) -> AuthorityRecord:
        record = self._vocabulary.add(name, entity_type, **bio)
        self.needs_resync = True
        return record

    def rename_authority(self, authority_id: int, new_name: str) -> AuthorityRecord:
        # Matched records keep their matchedName snapshot until re-matched
        record = self._vocabulary.rename(authority_id, new_name)
        self.needs_resync = True
        return record

    def update_authority(self, authority_id: int, **bio: Any) -> AuthorityRecord:
        return self._vocabulary.update(authority_id, **bio)

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def stats(self) -> dict[str, Any]:
        page_status: dict[str, int] = {}
        for page in self._pages:
            page_status[page.status.value] = page_status.get(page.status.value, 0) + 1
        return {
            "pages": len(self._pages),
            "page_status": page_status,
            "clusters": len(self._clusters),
            "records": len(self._store),
            "record_status": self._store.status_counts(),
            "unresolved": len(self._store.find(status=ReconciliationStatus.PENDING)),
            "authorities": len(self._vocabulary),
            "needs_resync": self.needs_resync,
        }

    # ------------------------------------------------------------------
    # Backup / restore
    # ------------------------------------------------------------------

    def snapshot(self) -> ProjectState:
        return ProjectState(
            mode=self.mode,
            tier=self.tier,
            archive_name=self.archive_name,
            files=self.pages,
            clusters=self.clusters,
            reconciliation_list=self.records,
            master_vocabulary=self._vocabulary.all_records(),
        )

    def to_backup(self, created_at: datetime | None = None) -> dict[str, Any]:
        """Build the backup document."""
        created = created_at or datetime.now(tz=timezone.utc)
        return {
            "meta": {
                "type": BACKUP_TYPE,
                "version": BACKUP_VERSION,
                "createdAt": created.isoformat(),
                "projectTitle": self.title,
                "archiveName": self.archive_name,
                "needsResync": self.needs_resync,
            },
            "appState": self.snapshot().to_json_dict(),
            "pageRange": self.page_range.to_json_dict() if self.page_range else None,
        }

    def to_backup_json(self) -> str:
        return json.dumps(self.to_backup(), indent=2, ensure_ascii=False)

    def save(self, path: Path) -> Path:
        """Atomically write the backup document to *path*."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(self.to_backup_json(), encoding="utf-8")
        tmp_path.replace(path)
        logger.info("Saved project %r to %s", self.title, path)
        return path

    @classmethod
    def from_backup(cls, data: dict[str, Any]) -> ProjectController:
        """Restore a controller from a parsed backup document.

        Raises:
            ArchLensError: If the document is not an Archival Lens backup.
        """
        meta = data.get("meta") or {}
        if meta.get("type") not in (None, BACKUP_TYPE) or "appState" not in data:
            raise ArchLensError("Not an Archival Lens project backup")

        state = ProjectState.model_validate(data["appState"])
        if meta.get("archiveName") and not state.archive_name:
            state.archive_name = meta["archiveName"]
        page_range = PageRange.model_validate(data["pageRange"]) if data.get("pageRange") else None
        project = cls(state, title=meta.get("projectTitle") or "Restored Project", page_range=page_range)
        # Flagged, or a dry-run pass would change the list
        project.needs_resync = bool(meta.get("needsResync")) or project._store.is_stale(
            project._pages, project._clusters
        )
        return project

    @classmethod
    def load(cls, path: Path) -> ProjectController:
        """Load a project from a ``.json`` backup or a project ``.zip``."""
        path = Path(path)
        if zipfile.is_zipfile(path):
            with zipfile.ZipFile(path) as zf:
                names = [n for n in zf.namelist() if n.endswith(METADATA_FILENAME)]
                if not names:
                    raise ArchLensError(f"{METADATA_FILENAME} not found in {path}")
                data = json.loads(zf.read(names[0]).decode("utf-8"))
        else:
            data = json.loads(path.read_text(encoding="utf-8"))
        logger.info("Loaded project from %s", path)
        return cls.from_backup(data)
