#!/usr/bin/env python3
from __future__ import annotations

import asyncio
import csv
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import typer

from cspcore.config import (
    get_request_timeout,
    get_stage_timeout,
    get_storage_dir,
    load_config,
)
from cspcore.errors import (
    ConferenceExistsError,
    ConferenceNotFoundError,
    InvalidTransitionError,
    SubmissionNotFoundError,
)
from cspcore.export import default_export_name, render_markdown, write_pdf
from cspcore.types import ReviewStatus, Submission, USER_ROLE
from llms.gateway import ReviewGateway
from pipelines import ReviewerApp, ReviewRequest

app = typer.Typer(help="OpenCSPaper: agentic peer review drafts from the command line")

EDITABLE_SECTIONS = {
    "assessment": "desk_reject_assessment",
    "summary": "summary",
    "strengths": "strengths",
    "weaknesses": "weaknesses",
    "related-work": "missing_related_work",
    "questions": "questions_for_rebuttal",
    "ethics": "ethics_description",
    "genai": "genai_analysis",
}

STATUS_COLORS = {
    ReviewStatus.COMPLETED: typer.colors.GREEN,
    ReviewStatus.DESK_REJECTED: typer.colors.RED,
    ReviewStatus.FAILED: typer.colors.RED,
}


# ---------- utils ----------


def build_gateway(settings: Dict) -> ReviewGateway:
    return ReviewGateway(
        timeout=get_stage_timeout(settings),
        request_timeout=get_request_timeout(settings),
    )


def fail(message: str) -> None:
    typer.secho(f"❌ {message}", fg=typer.colors.RED)
    raise typer.Exit(code=1)


def get_submission(ctx: typer.Context, submission_id: str) -> Submission:
    try:
        return ctx.obj.repository.get(submission_id)
    except SubmissionNotFoundError:
        fail(f"No submission with id {submission_id}")


def read_paper_list(csv_path: Path) -> List[ReviewRequest]:
    """CSV with columns title, conference and either path or content."""
    rows: List[ReviewRequest] = []
    with csv_path.open(newline="", encoding="utf-8") as f:
        for row in csv.DictReader(f):
            path = (row.get("path") or "").strip()
            rows.append(
                ReviewRequest(
                    title=row["title"].strip(),
                    conference_id=row["conference"].strip(),
                    content=(row.get("content") or "").strip() or None,
                    path=(csv_path.parent / path) if path else None,
                )
            )
    return rows


def echo_status(submission: Submission) -> None:
    color = STATUS_COLORS.get(submission.status, typer.colors.BLUE)
    typer.secho(f"{submission.id}  [{submission.status.value}]  {submission.title}", fg=color)
    result = submission.result
    if result is None:
        return
    if result.is_desk_reject:
        typer.echo(f"  Desk reject: {result.desk_reject_reason}")
    if result.final_decision:
        typer.echo(f"  Decision: {result.final_decision}")


# ---------- commands ----------


@app.callback()
def main(
    ctx: typer.Context,
    home: Optional[Path] = typer.Option(None, help="Directory holding the history and config snapshots"),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML runtime settings"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Load settings, configure logging and open the snapshot store."""
    settings = load_config(config)
    level = "DEBUG" if verbose else str(settings["logging"].get("level", "INFO"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    storage = home or get_storage_dir(settings)
    ctx.obj = ReviewerApp(storage, gateway=build_gateway(settings))


@app.command()
def review(
    ctx: typer.Context,
    title: str = typer.Option(..., help="Paper title"),
    conference: str = typer.Option("neurips", help="Conference id, see `conferences`"),
    file: Optional[Path] = typer.Option(None, exists=True, help="PDF, .txt, .md or .tex file"),
    text: Optional[str] = typer.Option(None, help="Paper text (instead of --file)"),
):
    """Run the desk-reject check and full review for one paper."""
    if (file is None) == (text is None):
        fail("Provide exactly one of --file or --text")

    pipeline = ctx.obj.pipeline
    typer.secho(f"🤖 Reviewing '{title}' for {conference}...", fg=typer.colors.BLUE)
    try:
        if file is not None:
            submission = asyncio.run(pipeline.start_review_from_file(title, file, conference))
        else:
            submission = asyncio.run(pipeline.start_review(title, text, conference))
    except ConferenceNotFoundError as e:
        fail(str(e))

    echo_status(submission)
    if submission.status is ReviewStatus.FAILED:
        fail("Review failed; see the log for details")


@app.command("review-batch")
def review_batch(
    ctx: typer.Context,
    list_path: Path = typer.Option(..., "--list", exists=True, help="CSV with title,conference,path|content"),
):
    """Review every paper of a CSV list concurrently."""
    requests = read_paper_list(list_path)
    typer.secho(f"📄 Processing {len(requests)} papers", fg=typer.colors.BLUE)
    results = asyncio.run(ctx.obj.pipeline.review_many(requests))

    failures = 0
    for request, result in zip(requests, results):
        if isinstance(result, Exception):
            failures += 1
            typer.secho(f"❌ {request.title}: {result}", fg=typer.colors.RED)
            continue
        if result.status is ReviewStatus.FAILED:
            failures += 1
        echo_status(result)

    if failures:
        raise typer.Exit(code=1)


@app.command("list")
def list_submissions(ctx: typer.Context):
    """Show all submissions, newest first."""
    items = ctx.obj.repository.list()
    if not items:
        typer.echo("No reviews yet. Start a new one with `review`.")
        return
    for submission in items:
        echo_status(submission)


@app.command()
def show(ctx: typer.Context, submission_id: str):
    """Print the review report and the rebuttal dialogue."""
    submission = get_submission(ctx, submission_id)
    if submission.result is None:
        echo_status(submission)
    else:
        typer.echo(render_markdown(submission, ctx.obj.config.get().user_profile))

    for message in submission.rebuttal_chat:
        speaker = "Author" if message.role == USER_ROLE else "Reviewer"
        typer.secho(f"{speaker}:", bold=True)
        typer.echo(f"  {message.text}")


@app.command()
def rebut(ctx: typer.Context, submission_id: str, message: str):
    """Send one rebuttal turn and print the reviewer's answer."""
    get_submission(ctx, submission_id)
    turns = asyncio.run(ctx.obj.rebuttal.append_user_turn(submission_id, message))
    if turns is None:
        fail("Rebuttal is only available for completed reviews and non-empty messages")
    typer.secho("Reviewer:", bold=True)
    typer.echo(turns[1].text)


@app.command()
def edit(
    ctx: typer.Context,
    submission_id: str,
    section: str = typer.Option(..., help=f"One of: {', '.join(EDITABLE_SECTIONS)}"),
    text: str = typer.Option(..., help="New section text"),
    learn: bool = typer.Option(False, help="Also add the text to the style examples"),
):
    """Replace one section of a review."""
    if section not in EDITABLE_SECTIONS:
        fail(f"Unknown section '{section}'")
    get_submission(ctx, submission_id)
    try:
        ctx.obj.repository.edit_result(submission_id, **{EDITABLE_SECTIONS[section]: text})
    except InvalidTransitionError as e:
        fail(str(e))
    typer.secho(f"✅ Updated {section}", fg=typer.colors.GREEN)
    if learn:
        ctx.obj.config.learn_style(text)
        typer.secho("✅ This review style has been added to your style examples", fg=typer.colors.GREEN)


@app.command()
def learn(ctx: typer.Context, text: str):
    """Append a passage to the style examples used by future reviews."""
    ctx.obj.config.learn_style(text)
    typer.secho("✅ This review style has been added to your style examples", fg=typer.colors.GREEN)


@app.command()
def export(
    ctx: typer.Context,
    submission_id: str,
    format: str = typer.Option("pdf", help="pdf or markdown"),
    out: Optional[Path] = typer.Option(None, help="Output file"),
):
    """Export a review report."""
    if format not in ("pdf", "markdown"):
        fail(f"Unknown format '{format}'")
    submission = get_submission(ctx, submission_id)
    if submission.result is None:
        fail("This submission has no review to export")

    profile = ctx.obj.config.get().user_profile
    out = out or Path(default_export_name(submission, format))
    if format == "pdf":
        write_pdf(submission, profile, out)
    else:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(render_markdown(submission, profile), encoding="utf-8")
    typer.secho(f"Exported → {out}", fg=typer.colors.GREEN)


@app.command()
def delete(ctx: typer.Context, submission_id: str):
    """Remove a submission from the history."""
    get_submission(ctx, submission_id)
    ctx.obj.repository.delete(submission_id)
    typer.secho(f"Deleted {submission_id}", fg=typer.colors.GREEN)


@app.command()
def conferences(ctx: typer.Context):
    """List built-in and custom conferences."""
    custom_ids = {c.id for c in ctx.obj.config.get().custom_conferences}
    for conf in ctx.obj.config.conferences():
        marker = " (custom)" if conf.id in custom_ids else ""
        typer.echo(f"{conf.id:<16} {conf.name}{marker} - {conf.focus_area}")


@app.command("add-conference")
def add_conference(ctx: typer.Context, name: str):
    """Add a custom conference."""
    try:
        conf = ctx.obj.config.add_conference(name)
    except (ConferenceExistsError, ValueError) as e:
        fail(str(e))
    typer.secho(f"Added conference '{conf.id}'", fg=typer.colors.GREEN)


@app.command("remove-conference")
def remove_conference(ctx: typer.Context, conference_id: str):
    """Remove a custom conference."""
    if not ctx.obj.config.remove_conference(conference_id):
        fail(f"Not a custom conference: {conference_id}")
    typer.secho(f"Removed conference '{conference_id}'", fg=typer.colors.GREEN)


@app.command("set-rules")
def set_rules(ctx: typer.Context, conference_id: str, rules: str):
    """Set desk-reject screening rules for a custom conference."""
    try:
        ctx.obj.config.set_conference_rules(conference_id, rules)
    except ConferenceNotFoundError as e:
        fail(str(e))
    typer.secho(f"Updated rules for '{conference_id}'", fg=typer.colors.GREEN)


@app.command("config")
def show_config(ctx: typer.Context):
    """Print the current settings (API key masked)."""
    data = ctx.obj.config.get().to_dict()
    if data["model_config"].get("api_key"):
        data["model_config"]["api_key"] = "****"
    typer.echo(json.dumps(data, ensure_ascii=False, indent=2))


@app.command("set-model")
def set_model(
    ctx: typer.Context,
    model: Optional[str] = typer.Option(None, help="Model identifier"),
    temperature: Optional[float] = typer.Option(None, min=0.0, max=2.0),
    top_k: Optional[int] = typer.Option(None, min=1),
    top_p: Optional[float] = typer.Option(None, min=0.0, max=1.0),
    api_key: Optional[str] = typer.Option(None, help="Overrides OPENAI_API_KEY"),
    base_url: Optional[str] = typer.Option(None, help="OpenAI-compatible endpoint"),
):
    """Change model parameters."""
    changes = {
        "model_name": model,
        "temperature": temperature,
        "top_k": top_k,
        "top_p": top_p,
        "api_key": api_key,
        "base_url": base_url,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        fail("Nothing to change")
    ctx.obj.config.update_model(**changes)
    typer.secho("✅ Model settings updated", fg=typer.colors.GREEN)


@app.command("set-profile")
def set_profile(
    ctx: typer.Context,
    name: Optional[str] = typer.Option(None),
    role: Optional[str] = typer.Option(None),
    affiliation: Optional[str] = typer.Option(None),
    expertise: Optional[str] = typer.Option(None, help="Comma separated tags"),
):
    """Change the reviewer persona."""
    changes = {"name": name, "role": role, "affiliation": affiliation, "expertise": expertise}
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        fail("Nothing to change")
    ctx.obj.config.update_profile(**changes)
    typer.secho("✅ Reviewer persona updated", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
