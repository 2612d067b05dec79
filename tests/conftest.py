from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from cspcore.io import SnapshotStore
from cspcore.types import ReviewRatings, ReviewResult
from llms.gateway import ScreenOutcome
from pipelines import ReviewerApp

REVIEW_PAYLOAD: Dict[str, Any] = {
    "desk_reject_assessment": "Length, topic and quality are adequate. Anonymity check skipped.",
    "summary": "The paper revisits graph attention with a sparsified kernel.",
    "strengths": "Clear motivation and a clean ablation study.",
    "weaknesses": "No comparison with GraphSAGE on large-scale benchmarks.",
    "missing_related_work": "GATv2 (Brody et al., 2022).",
    "questions_for_rebuttal": "How does the method scale beyond 1M nodes?",
    "ratings": {
        "relevance": 8,
        "novelty": 5,
        "technical_quality": 6,
        "presentation": 7,
        "reproducibility": 6,
        "confidence": 4,
    },
    "final_decision": "Weak Accept",
    "ethics_flag": "No",
    "ethics_description": "No concerns.",
    "genai_analysis": "The text does not read as LLM generated.",
}

PAPER_TEXT = ("Graph attention networks compute neighbourhood weights. " * 40)[:2000]


def review_result(**overrides) -> ReviewResult:
    data = dict(REVIEW_PAYLOAD, **overrides)
    return ReviewResult(
        is_desk_reject=False,
        desk_reject_assessment=data["desk_reject_assessment"],
        summary=data["summary"],
        strengths=data["strengths"],
        weaknesses=data["weaknesses"],
        missing_related_work=data["missing_related_work"],
        questions_for_rebuttal=data["questions_for_rebuttal"],
        ratings=ReviewRatings.from_dict(data["ratings"]),
        ethics_flag=data["ethics_flag"],
        ethics_description=data["ethics_description"],
        genai_analysis=data["genai_analysis"],
        final_decision=data["final_decision"],
        raw_output=json.dumps(data),
    )


class FakeClient:
    """Stands in for ChatClient; replays canned replies or raises them."""

    def __init__(self, replies: List[Any], delay: float = 0.0):
        self.replies = list(replies)
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, **kwargs) -> str:
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeGateway:
    """Stands in for ReviewGateway in pipeline, rebuttal and CLI tests."""

    def __init__(
        self,
        screen: Any = None,
        review: Any = None,
        rebuttal: Any = "Thank you for the clarification.",
    ):
        self.screen_reply = screen if screen is not None else ScreenOutcome(False, "Pass")
        self.review_reply = review if review is not None else review_result()
        self.rebuttal_reply = rebuttal
        self.calls: List[str] = []
        self.rebuttal_histories: List[list] = []

    @staticmethod
    def _resolve(reply: Any) -> Any:
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def screen(self, paper_text, conference, config):
        self.calls.append("screen")
        return self._resolve(self.screen_reply)

    async def review(self, paper_text, conference, config):
        self.calls.append("review")
        return self._resolve(self.review_reply)

    async def rebuttal(self, history, paper_title, initial_review, conference_label, config):
        self.calls.append("rebuttal")
        self.rebuttal_histories.append(list(history))
        return self._resolve(self.rebuttal_reply)


@pytest.fixture
def store(tmp_path: Path) -> SnapshotStore:
    return SnapshotStore(tmp_path / "store")


@pytest.fixture
def make_app(tmp_path: Path):
    def factory(gateway: Optional[FakeGateway] = None) -> ReviewerApp:
        return ReviewerApp(tmp_path / "store", gateway=gateway or FakeGateway())

    return factory
