from __future__ import annotations

import textwrap
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

import fitz  # PyMuPDF

from .appconfig import UserProfile
from .types import ReviewRatings, ReviewResult, Submission

PAGE_WIDTH, PAGE_HEIGHT = 595, 842  # A4 in points
LEFT, TOP, BOTTOM = 50, 60, 790

ACCEPT_COLOR = (0.0, 0.5, 0.0)
REJECT_COLOR = (0.7, 0.13, 0.13)


def ratings_line(ratings: ReviewRatings) -> str:
    metrics = [
        f"Rel: {ratings.relevance}",
        f"Nov: {ratings.novelty}",
        f"Tech: {ratings.technical_quality}",
        f"Pres: {ratings.presentation}",
        f"Repro: {ratings.reproducibility}",
        f"Conf: {ratings.confidence}",
    ]
    return "  |  ".join(metrics)


def report_sections(result: ReviewResult) -> List[Tuple[str, str]]:
    """Titled narrative sections of a result, skipping empty ones."""
    ethics = None
    if result.ethics_flag:
        ethics = f"{result.ethics_flag}: {result.ethics_description or ''}".rstrip(": ")
    sections = [
        ("Desk Reject Reason", result.desk_reject_reason),
        ("Desk Rejection Assessment", result.desk_reject_assessment),
        ("Summary", result.summary),
        ("Strengths", result.strengths),
        ("Weaknesses", result.weaknesses),
        ("Missing Related Work", result.missing_related_work),
        ("Questions for Rebuttal", result.questions_for_rebuttal),
        ("Ethics Review", ethics),
        ("GenAI Analysis", result.genai_analysis),
    ]
    return [(title, body) for title, body in sections if body]


def _require_result(submission: Submission) -> ReviewResult:
    if submission.result is None:
        raise ValueError(f"Submission {submission.id} has no review to export")
    return submission.result


def _header_fields(submission: Submission, profile: UserProfile) -> List[Tuple[str, str]]:
    date = datetime.fromtimestamp(submission.created_at).strftime("%Y-%m-%d")
    title = submission.title if len(submission.title) <= 70 else submission.title[:70] + "..."
    return [
        ("Title", title),
        ("Venue", f"{submission.conference_id.upper()} | Date: {date}"),
        ("Reviewer", f"{profile.name}, {profile.role}"),
    ]


def render_markdown(submission: Submission, profile: UserProfile) -> str:
    result = _require_result(submission)
    out: List[str] = ["# OpenCSPaper Review", ""]
    out += [f"**{label}:** {value}  " for label, value in _header_fields(submission, profile)]
    out.append("")
    if result.ratings:
        out += ["## Ratings", "", ratings_line(result.ratings), ""]
    if result.final_decision:
        out += [f"## Decision: {result.final_decision}", ""]
    elif result.is_desk_reject:
        out += ["## Decision: Desk Reject", ""]
    for title, body in report_sections(result):
        out += [f"## {title}", "", body.strip(), ""]
    return "\n".join(out)


class _PdfWriter:
    def __init__(self):
        self.doc = fitz.open()
        self.page = None
        self.y = TOP
        self._new_page()

    def _new_page(self) -> None:
        self.page = self.doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
        self.y = TOP

    def line(
        self,
        text: str,
        size: float = 10,
        bold: bool = False,
        color: Tuple[float, float, float] = (0, 0, 0),
    ) -> None:
        if self.y + size > BOTTOM:
            self._new_page()
        self.page.insert_text(
            (LEFT, self.y),
            text,
            fontsize=size,
            fontname="hebo" if bold else "helv",
            color=color,
        )
        self.y += size * 1.45

    def paragraph(self, text: str, size: float = 10, width: int = 95) -> None:
        for para in text.splitlines():
            for chunk in textwrap.wrap(para, width) or [""]:
                self.line(chunk, size=size)

    def gap(self, height: float) -> None:
        self.y += height

    def save(self, path: Path) -> None:
        self.doc.save(str(path))
        self.doc.close()


def write_pdf(submission: Submission, profile: UserProfile, path: Path) -> Path:
    result = _require_result(submission)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    pdf = _PdfWriter()
    pdf.line("OpenCSPaper Review", size=18, bold=True)
    pdf.gap(4)
    for label, value in _header_fields(submission, profile):
        pdf.line(f"{label}: {value}", size=11)
    pdf.gap(10)

    if result.ratings:
        pdf.line(ratings_line(result.ratings), size=9)
        pdf.gap(8)

    decision: Optional[str] = result.final_decision or ("Desk Reject" if result.is_desk_reject else None)
    if decision:
        color = ACCEPT_COLOR if "Accept" in decision else REJECT_COLOR
        pdf.line(f"Decision: {decision}", size=14, bold=True, color=color)
        pdf.gap(6)

    for title, body in report_sections(result):
        pdf.line(title, size=11, bold=True)
        pdf.paragraph(body)
        pdf.gap(8)

    pdf.save(path)
    return path


def default_export_name(submission: Submission, fmt: str) -> str:
    stem = "".join(ch if ch.isalnum() else "_" for ch in submission.title[:15]).strip("_")
    return f"Review_{stem or submission.id}.{'md' if fmt == 'markdown' else fmt}"
