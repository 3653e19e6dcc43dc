"""Export projections: flat tables and JSON/ZIP bundles for downstream tools.

The ``*_rows`` functions are pure transforms of project state into
column-ordered dicts. Writers turn rows into CSV/TSV text; the bundle
helpers produce the full JSON export and the project ZIP.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import re
import zipfile
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from archlens.entities.models import AuthorityRecord, ReconciliationRecord
from archlens.models import Cluster, Page

if TYPE_CHECKING:
    from archlens.project import ProjectController

logger = logging.getLogger(__name__)

LIST_SEPARATOR = "; "

PROJECT_INDEX_COLUMNS = [
    "Extracted Name",
    "Type",
    "Status",
    "Matched ID",
    "Matched Name",
    "Appearances",
    "Locations",
]

AUTHORITY_COLUMNS = [
    "ID",
    "Name",
    "Type",
    "Life Span",
    "Affiliation",
    "Religion",
    "Nationality",
    "Gender",
    "Alt Names",
    "Links",
    "Notes",
]

PAGE_COLUMNS = [
    "Index Name",
    "Original File",
    "Language",
    "Production Mode",
    "Hebrew Handwriting?",
    "Transcription",
    "Translation",
]

CLUSTER_COLUMNS = [
    "Cluster ID",
    "Title",
    "Page Range",
    "Summary",
    "Original Date",
    "Date (YYYY-MM-DD)",
    "Doc Types",
    "Subjects",
    "Sender",
    "Recipient",
    "Prison Name",
    "Languages",
    "People Mentioned",
    "Organizations Mentioned",
]


def _flat(text: str | None) -> str:
    """Collapse newlines so one value stays on one row."""
    return (text or "").replace("\r\n", " ").replace("\n", " ")


# ---------------------------------------------------------------------------
# Row projections
# ---------------------------------------------------------------------------


def project_index_rows(records: Iterable[ReconciliationRecord]) -> list[dict[str, Any]]:
    """One row per reconciliation record."""
    return [
        {
            "Extracted Name": r.extracted_name,
            "Type": r.type.value,
            "Status": r.status.value,
            "Matched ID": "" if r.matched_id is None else r.matched_id,
            "Matched Name": r.matched_name or "",
            "Appearances": len(r.source_appearances),
            "Locations": LIST_SEPARATOR.join(r.location_ids),
        }
        for r in records
    ]


def authority_rows(vocabulary: Iterable[AuthorityRecord]) -> list[dict[str, Any]]:
    """One row per authority record, biographical fields verbatim."""
    return [
        {
            "ID": a.id,
            "Name": a.name,
            "Type": a.type.value,
            "Life Span": a.life_span or "",
            "Affiliation": a.affiliation or "",
            "Religion": a.religion or "",
            "Nationality": a.nationality or "",
            "Gender": a.gender or "",
            "Alt Names": LIST_SEPARATOR.join(a.alt_names),
            "Links": LIST_SEPARATOR.join(a.links),
            "Notes": a.notes or "",
        }
        for a in vocabulary
    ]


def page_rows(pages: Iterable[Page]) -> list[dict[str, Any]]:
    return [
        {
            "Index Name": p.index_name,
            "Original File": p.file_name,
            "Language": p.language or "",
            "Production Mode": p.production_mode or "",
            "Hebrew Handwriting?": "YES" if p.has_hebrew_handwriting else "NO",
            "Transcription": _flat(p.generated_transcription or p.manual_transcription),
            "Translation": _flat(p.generated_translation),
        }
        for p in pages
    ]


def cluster_rows(clusters: Iterable[Cluster]) -> list[dict[str, Any]]:
    rows = []
    for c in clusters:
        entities = c.entities
        rows.append(
            {
                "Cluster ID": c.id,
                "Title": c.title,
                "Page Range": c.page_range,
                "Summary": _flat(c.summary),
                "Original Date": c.original_date or "",
                "Date (YYYY-MM-DD)": c.standardized_date or "",
                "Doc Types": ", ".join(c.doc_types),
                "Subjects": ", ".join(c.subjects),
                "Sender": ", ".join(s.name for s in c.senders),
                "Recipient": ", ".join(r.name for r in c.recipients),
                "Prison Name": c.prison_name or "",
                "Languages": ", ".join(c.languages),
                "People Mentioned": ", ".join(p.name for p in entities.people) if entities else "",
                "Organizations Mentioned": (
                    ", ".join(o.name for o in entities.organizations) if entities else ""
                ),
            }
        )
    return rows


# ---------------------------------------------------------------------------
# Writers
# ---------------------------------------------------------------------------


def write_delimited(rows: list[dict[str, Any]], columns: list[str], delimiter: str = ",") -> str:
    """Serialize rows to CSV (or TSV with ``delimiter='\\t'``) text."""
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=columns, delimiter=delimiter, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue()


def to_csv(rows: list[dict[str, Any]], columns: list[str]) -> str:
    return write_delimited(rows, columns, ",")


def to_tsv(rows: list[dict[str, Any]], columns: list[str]) -> str:
    return write_delimited(rows, columns, "\t")


def project_index_csv(records: Iterable[ReconciliationRecord]) -> str:
    return to_csv(project_index_rows(records), PROJECT_INDEX_COLUMNS)


def authority_csv(vocabulary: Iterable[AuthorityRecord]) -> str:
    return to_csv(authority_rows(vocabulary), AUTHORITY_COLUMNS)


def pages_tsv(pages: Iterable[Page]) -> str:
    return to_tsv(page_rows(pages), PAGE_COLUMNS)


def clusters_tsv(clusters: Iterable[Cluster]) -> str:
    return to_tsv(cluster_rows(clusters), CLUSTER_COLUMNS)


# ---------------------------------------------------------------------------
# Bundles
# ---------------------------------------------------------------------------


def full_json(project: ProjectController, exported_at: datetime | None = None) -> str:
    """Full research export: project header, stats, pages and clusters."""
    exported = exported_at or datetime.now(tz=timezone.utc)
    pages = project.pages
    clusters = project.clusters
    data = {
        "projectTitle": project.title,
        "archiveName": project.archive_name,
        "tier": project.tier.value,
        "pageRange": project.page_range.to_json_dict() if project.page_range else None,
        "exportedAt": exported.isoformat(),
        "stats": {
            "totalPages": len(pages),
            "totalClusters": len(clusters),
            "totalEntities": len(project.records),
        },
        "pages": [
            {
                "id": p.id,
                "indexName": p.index_name,
                "fileName": p.file_name,
                "rotation": p.rotation,
                "language": p.language,
                "productionMode": p.production_mode,
                "hasHebrewHandwriting": p.has_hebrew_handwriting,
                "transcription": p.transcription or None,
                "translation": p.generated_translation,
                "description": p.manual_description,
            }
            for p in pages
        ],
        "clusters": [c.to_json_dict() for c in clusters],
        "entities": [r.to_json_dict() for r in project.records],
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


def safe_folder_name(title: str) -> str:
    return re.sub(r"[^A-Za-z0-9]", "_", title) or "project"


def project_zip(project: ProjectController, out_path: Path) -> Path:
    """Write the project backup plus page images into a ZIP archive.

    Layout::

        <Title>/project_metadata.json
        <Title>/images/<fileName>
    """
    from archlens.project import METADATA_FILENAME

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    folder = safe_folder_name(project.title)
    missing = 0

    with zipfile.ZipFile(out_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(f"{folder}/{METADATA_FILENAME}", project.to_backup_json())
        for page in project.pages:
            if not page.source_path or not Path(page.source_path).exists():
                missing += 1
                continue
            zf.write(page.source_path, f"{folder}/images/{page.file_name or Path(page.source_path).name}")

    if missing:
        logger.warning("%d page image(s) missing from disk were not added to %s", missing, out_path)
    logger.info("Wrote project archive %s", out_path)
    return out_path
