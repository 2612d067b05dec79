from __future__ import annotations

import csv
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

import cli.csp as csp
from cli.csp import app
from cspcore.io import CONFIG_KEY, HISTORY_KEY, SnapshotStore
from cspcore.schemas import validate_result_record
from llms.gateway import ScreenOutcome

from conftest import PAPER_TEXT, FakeGateway


runner = CliRunner()


@pytest.fixture
def gateway(monkeypatch) -> FakeGateway:
    fake = FakeGateway()
    monkeypatch.setattr(csp, "build_gateway", lambda settings: fake)
    return fake


@pytest.fixture
def home(tmp_path: Path) -> Path:
    return tmp_path / "home"


def invoke(home: Path, *args: str):
    return runner.invoke(app, ["--home", str(home), *args])


def history(home: Path):
    return SnapshotStore(home).read(HISTORY_KEY) or []


def review_one(home: Path, title="Graph Attention Revisited") -> str:
    result = invoke(home, "review", "--title", title, "--text", PAPER_TEXT)
    assert result.exit_code == 0, result.output
    return history(home)[0]["id"]


def test_review_command_completes(home, gateway):
    result = invoke(home, "review", "--title", "Graph Attention Revisited", "--conference", "icml", "--text", PAPER_TEXT)
    assert result.exit_code == 0, result.output
    assert "[completed]" in result.output
    assert "Decision: Weak Accept" in result.output

    records = history(home)
    assert len(records) == 1
    assert records[0]["conference_id"] == "icml"
    assert records[0]["status"] == "completed"


def test_review_requires_exactly_one_source(home, gateway):
    result = invoke(home, "review", "--title", "T")
    assert result.exit_code == 1
    assert history(home) == []


def test_review_unknown_conference(home, gateway):
    result = invoke(home, "review", "--title", "T", "--conference", "sigbovik", "--text", PAPER_TEXT)
    assert result.exit_code == 1
    assert history(home) == []


def test_failed_review_exits_nonzero(home, gateway):
    gateway.review_reply = RuntimeError("503")
    result = invoke(home, "review", "--title", "T", "--text", PAPER_TEXT)
    assert result.exit_code == 1
    assert history(home)[0]["status"] == "failed"


def test_review_from_text_file(home, gateway, tmp_path):
    paper = tmp_path / "paper.md"
    paper.write_text(PAPER_TEXT, encoding="utf-8")
    result = invoke(home, "review", "--title", "From file", "--file", str(paper))
    assert result.exit_code == 0, result.output
    assert history(home)[0]["content"] == PAPER_TEXT


def test_review_batch(home, gateway, tmp_path):
    list_path = tmp_path / "papers.csv"
    (tmp_path / "b.txt").write_text(PAPER_TEXT, encoding="utf-8")
    with list_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["title", "conference", "path", "content"])
        w.writerow(["Paper A", "neurips", "", PAPER_TEXT])
        w.writerow(["Paper B", "kdd", "b.txt", ""])

    result = invoke(home, "review-batch", "--list", str(list_path))
    assert result.exit_code == 0, result.output
    assert {r["title"] for r in history(home)} == {"Paper A", "Paper B"}


def test_review_batch_reports_failures(home, gateway, tmp_path):
    list_path = tmp_path / "papers.csv"
    list_path.write_text("title,conference,content\nLost,nowhere,text\n", encoding="utf-8")
    result = invoke(home, "review-batch", "--list", str(list_path))
    assert result.exit_code == 1
    assert "Lost" in result.output


def test_list_and_show(home, gateway):
    assert "No reviews yet" in invoke(home, "list").output
    sid = review_one(home)

    assert sid in invoke(home, "list").output
    shown = invoke(home, "show", sid)
    assert shown.exit_code == 0
    assert "# OpenCSPaper Review" in shown.output
    assert "## Decision: Weak Accept" in shown.output


def test_show_unknown_submission(home, gateway):
    assert invoke(home, "show", "sub_missing").exit_code == 1


def test_rebut_on_completed_review(home, gateway):
    sid = review_one(home)
    result = invoke(home, "rebut", sid, "We added GraphSAGE baselines.")
    assert result.exit_code == 0, result.output
    assert "Thank you for the clarification." in result.output
    assert len(history(home)[0]["rebuttal_chat"]) == 2


def test_rebut_on_desk_reject_is_refused(home, gateway):
    gateway.screen_reply = ScreenOutcome(True, "Out of scope.")
    sid = review_one(home)
    result = invoke(home, "rebut", sid, "Please reconsider.")
    assert result.exit_code == 1
    assert history(home)[0]["rebuttal_chat"] == []


def test_edit_section_and_learn(home, gateway):
    sid = review_one(home)
    result = invoke(home, "edit", sid, "--section", "weaknesses", "--text", "Baselines are weak.", "--learn")
    assert result.exit_code == 0, result.output
    assert history(home)[0]["result"]["weaknesses"] == "Baselines are weak."
    config = SnapshotStore(home).read(CONFIG_KEY)
    assert '"Baselines are weak."' in config["few_shot_examples"]


def test_edit_unknown_section(home, gateway):
    sid = review_one(home)
    assert invoke(home, "edit", sid, "--section", "abstract", "--text", "x").exit_code == 1


def test_export_markdown_and_pdf(home, gateway, tmp_path):
    sid = review_one(home)
    md_path = tmp_path / "review.md"
    result = invoke(home, "export", sid, "--format", "markdown", "--out", str(md_path))
    assert result.exit_code == 0, result.output
    assert md_path.read_text(encoding="utf-8").startswith("# OpenCSPaper Review")

    pdf_path = tmp_path / "review.pdf"
    result = invoke(home, "export", sid, "--out", str(pdf_path))
    assert result.exit_code == 0, result.output
    assert pdf_path.read_bytes().startswith(b"%PDF")


def test_delete(home, gateway):
    sid = review_one(home)
    assert invoke(home, "delete", sid).exit_code == 0
    assert history(home) == []


def test_conference_management(home, gateway):
    assert invoke(home, "add-conference", "Tiny ML Workshop").exit_code == 0
    assert invoke(home, "add-conference", "NeurIPS").exit_code == 1
    assert invoke(home, "set-rules", "tiny-ml-workshop", "Max 4 pages.").exit_code == 0
    assert invoke(home, "set-rules", "neurips", "Max 4 pages.").exit_code == 1

    listing = invoke(home, "conferences").output
    assert "tiny-ml-workshop" in listing
    assert "(custom)" in listing

    assert invoke(home, "remove-conference", "tiny-ml-workshop").exit_code == 0
    assert invoke(home, "remove-conference", "neurips").exit_code == 1


def test_model_and_profile_settings(home, gateway):
    assert invoke(home, "set-model").exit_code == 1
    result = invoke(home, "set-model", "--model", "local-llm", "--api-key", "sk-secret", "--top-k", "20")
    assert result.exit_code == 0, result.output
    assert invoke(home, "set-profile", "--name", "Dr. Chen").exit_code == 0

    shown = invoke(home, "config")
    data = json.loads(shown.output)
    assert data["model_config"]["model_name"] == "local-llm"
    assert data["model_config"]["top_k"] == 20
    assert data["model_config"]["api_key"] == "****"
    assert data["user_profile"]["name"] == "Dr. Chen"


def test_edit_desk_rejected_review_is_refused(home, gateway):
    gateway.screen_reply = ScreenOutcome(True, "Out of scope.")
    sid = review_one(home)
    result = invoke(home, "edit", sid, "--section", "summary", "--text", "Great paper")
    assert result.exit_code == 1
    stored = history(home)[0]["result"]
    assert "summary" not in stored
    assert validate_result_record(stored) == []
