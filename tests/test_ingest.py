"""Tests for page ingestion from image folders and PDFs."""

from __future__ import annotations

from pathlib import Path

import fitz
import pytest

from archlens.ingest import apply_page_range, derive_title, natural_key, pages_from_folder, pages_from_pdfs
from archlens.models import PageStatus


@pytest.fixture
def image_folder(tmp_path: Path) -> Path:
    folder = tmp_path / "Acre Box 3"
    folder.mkdir()
    for name in ("page10.jpg", "page2.JPG", "page1.tif", ".hidden.jpg", "notes.txt"):
        (folder / name).write_bytes(b"\xff\xd8fake")
    return folder


@pytest.fixture
def pdf_file(tmp_path: Path) -> Path:
    path = tmp_path / "letters.pdf"
    doc = fitz.open()
    for text in ("first page", "second page"):
        page = doc.new_page(width=200, height=300)
        page.insert_text((20, 40), text)
    doc.save(path)
    doc.close()
    return path


class TestFolder:
    def test_natural_order_and_filtering(self, image_folder):
        pages = pages_from_folder(image_folder)
        assert [p.file_name for p in pages] == ["page1.tif", "page2.JPG", "page10.jpg"]
        assert pages[0].index_name == "Acre Box 3 - page1.tif"
        assert pages[0].source_path == str(image_folder / "page1.tif")
        assert all(p.status == PageStatus.PENDING for p in pages)
        assert len({p.id for p in pages}) == 3

    def test_not_a_directory(self, tmp_path):
        with pytest.raises(NotADirectoryError):
            pages_from_folder(tmp_path / "missing")

    def test_natural_key(self):
        assert sorted(["b10", "b9", "a100"], key=natural_key) == ["a100", "b9", "b10"]


class TestPdf:
    def test_rasterizes_every_page(self, pdf_file, tmp_path):
        pages = pages_from_pdfs([pdf_file], tmp_path / "work")
        assert [p.index_name for p in pages] == ["letters - Pg 1", "letters - Pg 2"]
        for page in pages:
            assert Path(page.source_path).is_file()
            assert page.file_name.endswith(".jpg")

    def test_scale(self, pdf_file, tmp_path):
        (first, _) = pages_from_pdfs([pdf_file], tmp_path / "work")
        pix = fitz.Pixmap(first.source_path)
        assert (pix.width, pix.height) == (400, 600)


class TestRange:
    def test_inclusive(self, image_folder):
        pages = pages_from_folder(image_folder)
        assert [p.file_name for p in apply_page_range(pages, 2, 3)] == ["page2.JPG", "page10.jpg"]

    @pytest.mark.parametrize(("start", "end"), [(0, 2), (3, 2)])
    def test_invalid(self, start, end):
        with pytest.raises(ValueError):
            apply_page_range([], start, end)

    def test_derive_title(self, image_folder, pdf_file):
        assert derive_title(image_folder) == "Acre Box 3"
        assert derive_title(pdf_file) == "letters"
