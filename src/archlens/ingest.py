"""Page ingestion: build project pages from an image folder or PDF files.

Folder mode keeps image files in natural filename order
(``page2`` before ``page10``) and labels each page
``"<folder> - <file name>"``. PDF mode rasterizes every page with
PyMuPDF into the work directory and labels it ``"<pdf stem> - Pg <n>"``.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Iterable
from pathlib import Path

import fitz  # PyMuPDF

from archlens.models import Page

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".tif", ".tiff", ".webp"})

# PDF rasterization scale (2x = 144 dpi) and JPEG quality
PDF_SCALE = 2.0
PDF_JPEG_QUALITY = 80


def natural_key(name: str) -> list[object]:
    """Sort key that orders embedded numbers numerically."""
    return [int(part) if part.isdigit() else part.lower() for part in re.split(r"(\d+)", name)]


def _new_page(path: Path, index_name: str) -> Page:
    return Page(
        id=uuid.uuid4().hex,
        file_name=path.name,
        index_name=index_name,
        source_path=str(path),
    )


def pages_from_folder(folder: Path) -> list[Page]:
    """One page per image file directly inside *folder*."""
    folder = Path(folder)
    if not folder.is_dir():
        raise NotADirectoryError(f"Not a directory: {folder}")

    images = [
        p for p in folder.iterdir()
        if p.is_file() and not p.name.startswith(".") and p.suffix.lower() in IMAGE_EXTENSIONS
    ]
    images.sort(key=lambda p: natural_key(p.name))
    logger.info("Found %d image(s) in %s", len(images), folder)
    return [_new_page(p, f"{folder.name} - {p.name}") for p in images]


def rasterize_pdf(pdf_path: Path, out_dir: Path) -> list[Path]:
    """Render every PDF page to a JPEG in *out_dir*; returns the image paths."""
    pdf_path = Path(pdf_path)
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    image_paths: list[Path] = []
    with fitz.open(pdf_path) as doc:
        matrix = fitz.Matrix(PDF_SCALE, PDF_SCALE)
        for i, page in enumerate(doc, start=1):
            pix = page.get_pixmap(matrix=matrix)
            image_path = out_dir / f"{pdf_path.stem}_page_{i}.jpg"
            pix.save(str(image_path), jpg_quality=PDF_JPEG_QUALITY)
            image_paths.append(image_path)

    logger.info("Rasterized %d page(s) from %s", len(image_paths), pdf_path)
    return image_paths


def pages_from_pdfs(pdf_paths: Iterable[Path], work_dir: Path) -> list[Page]:
    """Pages for each PDF in order; images are written under *work_dir*."""
    pages: list[Page] = []
    for pdf_path in pdf_paths:
        pdf_path = Path(pdf_path)
        images = rasterize_pdf(pdf_path, Path(work_dir) / pdf_path.stem)
        pages.extend(
            _new_page(image, f"{pdf_path.stem} - Pg {n}") for n, image in enumerate(images, start=1)
        )
    return pages


def apply_page_range(pages: list[Page], start: int, end: int) -> list[Page]:
    """Keep pages *start*..*end* (1-based, inclusive).

    Raises:
        ValueError: If the range is empty or starts before page 1.
    """
    if start < 1 or end < start:
        raise ValueError(f"Invalid page range {start}-{end}")
    return pages[start - 1:end]


def derive_title(source: Path) -> str:
    """Project title from a folder name or a PDF file stem."""
    source = Path(source)
    return source.name if source.is_dir() else source.stem
