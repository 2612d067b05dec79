from __future__ import annotations

import json

import pytest

from cspcore.errors import InvalidTransitionError, SubmissionNotFoundError
from cspcore.io import HISTORY_KEY
from cspcore.types import ChatMessage, ReviewResult, ReviewStatus, Submission
from pipelines.repository import StageEvent, SubmissionRepository

from conftest import review_result


def make_submission(sid: str, status=ReviewStatus.SCREENING, created_at=1.0) -> Submission:
    return Submission(
        id=sid,
        title=f"Paper {sid}",
        content="text",
        conference_id="neurips",
        status=status,
        created_at=created_at,
    )


def test_newest_first(store):
    repo = SubmissionRepository(store)
    repo.add(make_submission("a", created_at=1.0))
    repo.add(make_submission("b", created_at=2.0))
    assert [s.id for s in repo.list()] == ["b", "a"]


def test_get_unknown_raises(store):
    with pytest.raises(SubmissionNotFoundError):
        SubmissionRepository(store).get("nope")


def test_apply_merges_result_and_persists(store):
    repo = SubmissionRepository(store)
    repo.add(make_submission("a"))
    repo.apply(StageEvent("a", ReviewStatus.REVIEWING))
    repo.apply(StageEvent("a", ReviewStatus.COMPLETED, review_result()))

    reloaded = SubmissionRepository(store).get("a")
    assert reloaded.status is ReviewStatus.COMPLETED
    assert reloaded.result == review_result()


def test_apply_rejects_illegal_edge(store):
    repo = SubmissionRepository(store)
    repo.add(make_submission("a", status=ReviewStatus.COMPLETED))
    with pytest.raises(InvalidTransitionError):
        repo.apply(StageEvent("a", ReviewStatus.SCREENING))
    assert repo.get("a").status is ReviewStatus.COMPLETED


def test_edit_result_touches_only_named_fields(store):
    repo = SubmissionRepository(store)
    repo.add(make_submission("a", status=ReviewStatus.COMPLETED))
    repo.edit_result("a", summary="first")
    updated = repo.edit_result("a", weaknesses="second")
    assert updated.result == ReviewResult(summary="first", weaknesses="second")


def test_append_messages_and_delete(store):
    repo = SubmissionRepository(store)
    repo.add(make_submission("a", status=ReviewStatus.COMPLETED))
    repo.append_messages("a", ChatMessage("user", "hi", 1.0), ChatMessage("model", "hello", 2.0))
    assert len(repo.get("a").rebuttal_chat) == 2

    repo.delete("a")
    assert repo.list() == []
    assert SubmissionRepository(store).list() == []


def test_counts_by_status(store):
    repo = SubmissionRepository(store)
    repo.add(make_submission("a", status=ReviewStatus.COMPLETED))
    repo.add(make_submission("b", status=ReviewStatus.COMPLETED))
    repo.add(make_submission("c", status=ReviewStatus.FAILED))
    assert repo.counts_by_status() == {ReviewStatus.COMPLETED: 2, ReviewStatus.FAILED: 1}


def test_corrupt_history_starts_empty(store):
    store.root.mkdir(parents=True, exist_ok=True)
    store.path_for(HISTORY_KEY).write_text("{not json", encoding="utf-8")
    assert SubmissionRepository(store).list() == []


def test_history_file_is_a_json_list(store):
    repo = SubmissionRepository(store)
    repo.add(make_submission("a"))
    data = json.loads(store.path_for(HISTORY_KEY).read_text(encoding="utf-8"))
    assert isinstance(data, list)
    assert data[0]["id"] == "a"
    assert data[0]["status"] == "screening"


@pytest.mark.parametrize("status", [ReviewStatus.DESK_REJECTED, ReviewStatus.FAILED, ReviewStatus.REVIEWING])
def test_edit_result_requires_completed_review(store, status):
    repo = SubmissionRepository(store)
    repo.add(make_submission("a", status=status))
    with pytest.raises(InvalidTransitionError):
        repo.edit_result("a", summary="Great paper")
    assert repo.get("a").result is None


def test_desk_rejected_result_stays_free_of_review_fields(store):
    repo = SubmissionRepository(store)
    repo.add(make_submission("a"))
    repo.apply(
        StageEvent(
            "a",
            ReviewStatus.DESK_REJECTED,
            ReviewResult(is_desk_reject=True, desk_reject_reason="Out of scope."),
        )
    )
    with pytest.raises(InvalidTransitionError):
        repo.edit_result("a", summary="Great paper")

    reloaded = SubmissionRepository(store).get("a")
    assert reloaded.result == ReviewResult(is_desk_reject=True, desk_reject_reason="Out of scope.")


def test_failed_write_leaves_memory_unchanged(store, monkeypatch):
    repo = SubmissionRepository(store)
    repo.add(make_submission("a"))

    def broken_write(key, value):
        raise OSError("disk full")

    monkeypatch.setattr(store, "write", broken_write)
    with pytest.raises(OSError):
        repo.apply(StageEvent("a", ReviewStatus.REVIEWING))
    with pytest.raises(OSError):
        repo.add(make_submission("b"))

    assert [s.id for s in repo.list()] == ["a"]
    assert repo.get("a").status is ReviewStatus.SCREENING
