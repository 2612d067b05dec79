from __future__ import annotations

import pytest

from cspcore.types import (
    ChatMessage,
    ReviewRatings,
    ReviewResult,
    ReviewStatus,
    Submission,
    TERMINAL_STATES,
    can_transition,
    merge_results,
)


def test_merge_adds_fields_from_both_sides():
    merged = merge_results(ReviewResult(summary="A"), ReviewResult(strengths="B"))
    assert merged == ReviewResult(summary="A", strengths="B")


def test_merge_overwrites_fields_present_in_delta():
    base = ReviewResult(is_desk_reject=False, summary="old", weaknesses="keep")
    merged = merge_results(base, ReviewResult(summary="new"))
    assert merged.summary == "new"
    assert merged.weaknesses == "keep"
    assert merged.is_desk_reject is False


def test_merge_with_missing_sides():
    result = ReviewResult(summary="A")
    assert merge_results(None, result) is result
    assert merge_results(result, None) is result
    assert merge_results(None, None) is None


@pytest.mark.parametrize(
    "current,target",
    [
        (ReviewStatus.PARSING, ReviewStatus.SCREENING),
        (ReviewStatus.SCREENING, ReviewStatus.DESK_REJECTED),
        (ReviewStatus.SCREENING, ReviewStatus.REVIEWING),
        (ReviewStatus.SCREENING, ReviewStatus.FAILED),
        (ReviewStatus.REVIEWING, ReviewStatus.COMPLETED),
        (ReviewStatus.REVIEWING, ReviewStatus.FAILED),
    ],
)
def test_lifecycle_edges_allowed(current, target):
    assert can_transition(current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (ReviewStatus.REVIEWING, ReviewStatus.SCREENING),
        (ReviewStatus.SCREENING, ReviewStatus.COMPLETED),
        (ReviewStatus.DESK_REJECTED, ReviewStatus.REVIEWING),
        (ReviewStatus.COMPLETED, ReviewStatus.FAILED),
        (ReviewStatus.FAILED, ReviewStatus.SCREENING),
    ],
)
def test_lifecycle_edges_rejected(current, target):
    assert not can_transition(current, target)


def test_terminal_states_have_no_exits():
    for state in TERMINAL_STATES:
        assert not any(can_transition(state, target) for target in ReviewStatus)


def test_submission_snapshot_shape():
    sub = Submission(
        id="sub_1",
        title="Graph Attention Revisited",
        content="text",
        conference_id="neurips",
        status=ReviewStatus.COMPLETED,
        created_at=1700000000.0,
        result=ReviewResult(final_decision="Weak Accept", ratings=ReviewRatings(relevance=8)),
        rebuttal_chat=(ChatMessage("user", "hi", 1700000001.0),),
    )
    data = sub.to_dict()
    assert data["status"] == "completed"
    assert data["result"]["ratings"]["relevance"] == 8
    assert "summary" not in data["result"]
    assert Submission.from_dict(data) == sub


def test_result_from_dict_ignores_unknown_keys():
    result = ReviewResult.from_dict({"summary": "S", "legacy_field": 1, "ratings": {"novelty": 3}})
    assert result.summary == "S"
    assert result.ratings == ReviewRatings(novelty=3)


def test_submission_ids_are_opaque_and_unique():
    from cspcore.hashing import submission_id

    first = submission_id("Graph Attention Revisited", 1700000000.0)
    second = submission_id("Graph Attention Revisited", 1700000000.0)
    assert first.startswith("sub_") and len(first) == 16
    assert first != second
