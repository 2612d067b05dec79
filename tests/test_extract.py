from __future__ import annotations

from pathlib import Path

import fitz
import pytest

from cspcore.errors import ExtractionError
from cspcore.extract import MAX_PAGES, extract_text, join_pages


def make_pdf(path: Path, pages: int) -> Path:
    doc = fitz.open()
    for i in range(1, pages + 1):
        page = doc.new_page()
        page.insert_text((72, 72), f"Content of page {i}")
    doc.save(str(path))
    doc.close()
    return path


def test_pdf_pages_are_marked(tmp_path):
    text = extract_text(make_pdf(tmp_path / "paper.pdf", 2))
    assert text == "[Page 1]\nContent of page 1\n\n[Page 2]\nContent of page 2\n\n"


def test_pdf_limited_to_first_pages(tmp_path):
    text = extract_text(make_pdf(tmp_path / "long.pdf", 12))
    assert text.count("[Page ") == MAX_PAGES
    assert "Content of page 10" in text
    assert "Content of page 11" not in text


def test_plain_text_read_as_is(tmp_path):
    path = tmp_path / "paper.md"
    path.write_text("# Title\n\nBody", encoding="utf-8")
    assert extract_text(path) == "# Title\n\nBody"


def test_missing_file_raises(tmp_path):
    with pytest.raises(ExtractionError, match="not found"):
        extract_text(tmp_path / "nope.pdf")


def test_unsupported_type_raises(tmp_path):
    path = tmp_path / "paper.docx"
    path.write_bytes(b"PK")
    with pytest.raises(ExtractionError, match="Unsupported"):
        extract_text(path)


def test_broken_pdf_raises(tmp_path):
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"this is not a pdf")
    with pytest.raises(ExtractionError):
        extract_text(path)


def test_join_pages_numbers_from_one():
    assert join_pages(["a", "b"]) == "[Page 1]\na\n\n[Page 2]\nb\n\n"
