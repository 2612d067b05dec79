from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import fitz  # PyMuPDF
import pdfplumber

from .errors import ExtractionError

logger = logging.getLogger(__name__)

MAX_PAGES = 10
TEXT_SUFFIXES = {".txt", ".md", ".tex"}


def extract_text(path: Path, max_pages: int = MAX_PAGES) -> str:
    """Return the text of an uploaded paper.

    Plain-text formats are read as-is. PDFs are limited to the first
    ``max_pages`` pages, each prefixed with a ``[Page i]`` marker. PyMuPDF is
    tried first, pdfplumber second.
    """
    path = Path(path)
    if not path.exists():
        raise ExtractionError(f"File not found: {path}")

    suffix = path.suffix.lower()
    if suffix in TEXT_SUFFIXES:
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ExtractionError(f"Failed to read {path.name}: {e}") from e

    if suffix != ".pdf":
        raise ExtractionError(f"Unsupported file type: {suffix or path.name}")

    try:
        pages = _pages_with_pymupdf(path, max_pages)
    except Exception as e:
        logger.warning(f"PyMuPDF extraction failed: {e}, trying pdfplumber")
        try:
            pages = _pages_with_pdfplumber(path, max_pages)
        except Exception as e2:
            raise ExtractionError(f"Failed to parse PDF {path.name}: {e2}") from e2

    return join_pages(pages)


def join_pages(pages: List[str]) -> str:
    return "".join(f"[Page {i}]\n{text}\n\n" for i, text in enumerate(pages, start=1))


def _pages_with_pymupdf(pdf_path: Path, max_pages: int) -> List[str]:
    pages: List[str] = []
    with fitz.open(pdf_path) as doc:
        for page in doc:
            if len(pages) >= max_pages:
                break
            pages.append(" ".join(page.get_text().split()))
    return pages


def _pages_with_pdfplumber(pdf_path: Path, max_pages: int) -> List[str]:
    pages: List[str] = []
    with pdfplumber.open(pdf_path) as pdf:
        for page in pdf.pages[:max_pages]:
            text = page.extract_text() or ""
            pages.append(" ".join(text.split()))
    return pages
