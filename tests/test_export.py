"""Tests for export projections and writers."""

from __future__ import annotations

import csv
import io
import json
import zipfile
from datetime import datetime, timezone

from conftest import make_cluster

from archlens import export
from archlens.entities.models import ReconciliationRecord, ReconciliationStatus, SourceAppearance
from archlens.models import EntityType, Page


def _read(text: str, delimiter: str = ",") -> list[dict[str, str]]:
    return list(csv.DictReader(io.StringIO(text), delimiter=delimiter))


class TestProjectIndex:
    def test_row_per_record(self):
        records = [
            ReconciliationRecord(
                id="r1",
                extracted_name="Golda Meir",
                type=EntityType.PERSON,
                status=ReconciliationStatus.MATCHED,
                matched_id=2,
                matched_name="Golda Meir",
                source_appearances=[SourceAppearance(location_id="Doc #1"), SourceAppearance(location_id="p1")],
            ),
            ReconciliationRecord(id="r2", extracted_name="Anna, Cohen", type=EntityType.PERSON),
        ]
        rows = _read(export.project_index_csv(records))
        assert list(rows[0]) == export.PROJECT_INDEX_COLUMNS
        assert rows[0]["Matched ID"] == "2"
        assert rows[0]["Appearances"] == "2"
        assert rows[0]["Locations"] == "Doc #1; p1"
        assert rows[1]["Extracted Name"] == "Anna, Cohen"
        assert rows[1]["Matched ID"] == ""
        assert rows[1]["Status"] == "pending"


class TestAuthority:
    def test_biographical_fields_verbatim(self, small_vocab):
        small_vocab.update(1, alt_names=["Ben Gurion", "David Grün"], notes='Said "no"')
        rows = _read(export.authority_csv(small_vocab))
        assert len(rows) == 3
        first = rows[0]
        assert (first["ID"], first["Name"], first["Type"]) == ("1", "David Ben-Gurion", "person")
        assert first["Alt Names"] == "Ben Gurion; David Grün"
        assert first["Notes"] == 'Said "no"'
        assert rows[1]["Life Span"] == "1898-1978"


class TestTsv:
    def test_pages_tsv_flattens_newlines(self):
        page = Page(
            id="p1",
            index_name="Acre - 001.jpg",
            file_name="001.jpg",
            has_hebrew_handwriting=True,
            generated_transcription="line one\nline two",
            generated_translation="one\r\ntwo",
        )
        text = export.pages_tsv([page])
        assert text.count("\n") == 2
        (row,) = _read(text, "\t")
        assert row["Transcription"] == "line one line two"
        assert row["Translation"] == "one two"
        assert row["Hebrew Handwriting?"] == "YES"

    def test_clusters_tsv(self):
        cluster = make_cluster(
            4,
            people=["Golda Meir", "Anna Cohen"],
            organizations=["Haganah"],
            senders=["David Ben-Gurion"],
            prisonName="Central Prison, Acre",
            docTypes=["Letter"],
            standardizedDate="1946-06-29",
        )
        (row,) = _read(export.clusters_tsv([cluster]), "\t")
        assert row["Cluster ID"] == "4"
        assert row["People Mentioned"] == "Golda Meir, Anna Cohen"
        assert row["Organizations Mentioned"] == "Haganah"
        assert row["Sender"] == "David Ben-Gurion"
        assert row["Prison Name"] == "Central Prison, Acre"
        assert row["Date (YYYY-MM-DD)"] == "1946-06-29"


class TestBundles:
    def test_full_json(self, project, sample_clusters):
        project.replace_clusters(sample_clusters)
        project.resync()
        data = json.loads(export.full_json(project, exported_at=datetime(2026, 1, 2, tzinfo=timezone.utc)))
        assert data["projectTitle"] == "Acre Prison Files"
        assert data["stats"] == {"totalPages": 3, "totalClusters": 2, "totalEntities": 6}
        assert data["exportedAt"].startswith("2026-01-02")
        assert data["clusters"][0]["entities"]["people"][0] == {"name": "Golda Meir"}
        assert data["pages"][0]["indexName"] == "Acre - 001.jpg"

    def test_safe_folder_name(self):
        assert export.safe_folder_name("Acre Prison: 1946/47") == "Acre_Prison__1946_47"
        assert export.safe_folder_name("") == "project"

    def test_project_zip(self, project, image_file, tmp_path):
        project.update_page("p1", source_path=str(image_file), file_name=image_file.name)
        out = export.project_zip(project, tmp_path / "out" / "bundle.zip")
        with zipfile.ZipFile(out) as zf:
            names = zf.namelist()
            meta = json.loads(zf.read("Acre_Prison_Files/project_metadata.json"))
        assert "Acre_Prison_Files/images/page_001.jpg" in names
        assert meta["meta"]["projectTitle"] == "Acre Prison Files"
        assert len([n for n in names if "/images/" in n]) == 1
