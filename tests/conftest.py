"""Shared pytest fixtures for the full Podvoice test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.fixture_builders import synthetic_pages, write_text_pdf


@pytest.fixture
def text_pdf_path(tmp_path: Path) -> Path:
    """Provide a three-page PDF with an extractable text layer."""

    return write_text_pdf(tmp_path / "sources" / "orchard.pdf", synthetic_pages(3))


@pytest.fixture
def page_images_dir(tmp_path: Path) -> Path:
    """Provide a directory of two page images (content is opaque to the pipeline)."""

    directory = tmp_path / "sources" / "scans"
    directory.mkdir(parents=True)
    (directory / "page-2.png").write_bytes(b"\x89PNG page two")
    (directory / "page-1.png").write_bytes(b"\x89PNG page one")
    (directory / "notes.txt").write_text("ignored", encoding="utf-8")
    return directory
