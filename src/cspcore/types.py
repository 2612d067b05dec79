from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple


class ReviewStatus(str, Enum):
    PARSING = "parsing"
    SCREENING = "screening"
    DESK_REJECTED = "desk_rejected"
    REVIEWING = "reviewing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES: FrozenSet[ReviewStatus] = frozenset(
    {ReviewStatus.DESK_REJECTED, ReviewStatus.COMPLETED, ReviewStatus.FAILED}
)

_TRANSITIONS: Dict[ReviewStatus, FrozenSet[ReviewStatus]] = {
    ReviewStatus.PARSING: frozenset({ReviewStatus.SCREENING, ReviewStatus.FAILED}),
    ReviewStatus.SCREENING: frozenset(
        {ReviewStatus.DESK_REJECTED, ReviewStatus.REVIEWING, ReviewStatus.FAILED}
    ),
    ReviewStatus.REVIEWING: frozenset({ReviewStatus.COMPLETED, ReviewStatus.FAILED}),
}


def can_transition(current: ReviewStatus, target: ReviewStatus) -> bool:
    """Return True if ``current -> target`` is an edge of the review lifecycle."""
    return target in _TRANSITIONS.get(current, frozenset())


DECISIONS: Tuple[str, ...] = ("Accept", "Weak Accept", "Weak Reject", "Reject")
ETHICS_FLAGS: Tuple[str, ...] = ("Yes", "No")

RATING_FIELDS: Tuple[str, ...] = (
    "relevance",
    "novelty",
    "technical_quality",
    "presentation",
    "reproducibility",
    "confidence",
)

USER_ROLE = "user"
MODEL_ROLE = "model"


@dataclass(frozen=True)
class ReviewRatings:
    """Six-metric rating block. 0 means the metric has not been scored."""

    relevance: int = 0
    novelty: int = 0
    technical_quality: int = 0
    presentation: int = 0
    reproducibility: int = 0
    confidence: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReviewRatings":
        return cls(**{name: int(data.get(name) or 0) for name in RATING_FIELDS})


@dataclass(frozen=True)
class ReviewResult:
    """Structured review output. Every field is optional so partial results
    from individual pipeline stages can be merged."""

    is_desk_reject: Optional[bool] = None
    desk_reject_reason: Optional[str] = None
    desk_reject_assessment: Optional[str] = None
    summary: Optional[str] = None
    strengths: Optional[str] = None
    weaknesses: Optional[str] = None
    missing_related_work: Optional[str] = None
    questions_for_rebuttal: Optional[str] = None
    ratings: Optional[ReviewRatings] = None
    ethics_flag: Optional[str] = None
    ethics_description: Optional[str] = None
    genai_analysis: Optional[str] = None
    final_decision: Optional[str] = None
    raw_output: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            out[f.name] = value.to_dict() if isinstance(value, ReviewRatings) else value
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReviewResult":
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known and v is not None}
        if isinstance(kwargs.get("ratings"), dict):
            kwargs["ratings"] = ReviewRatings.from_dict(kwargs["ratings"])
        return cls(**kwargs)


def merge_results(
    base: Optional[ReviewResult], delta: Optional[ReviewResult]
) -> Optional[ReviewResult]:
    """Field-wise union of two results; set fields of ``delta`` win."""
    if base is None:
        return delta
    if delta is None:
        return base
    changes = {
        f.name: getattr(delta, f.name)
        for f in fields(delta)
        if getattr(delta, f.name) is not None
    }
    return replace(base, **changes)


@dataclass(frozen=True)
class ChatMessage:
    role: str
    text: str
    timestamp: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        return cls(
            role=str(data["role"]),
            text=str(data["text"]),
            timestamp=float(data.get("timestamp", 0.0)),
        )


@dataclass(frozen=True)
class Submission:
    id: str
    title: str
    content: str
    conference_id: str
    status: ReviewStatus
    created_at: float
    result: Optional[ReviewResult] = None
    rebuttal_chat: Tuple[ChatMessage, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "conference_id": self.conference_id,
            "status": self.status.value,
            "created_at": self.created_at,
            "result": self.result.to_dict() if self.result is not None else None,
            "rebuttal_chat": [m.to_dict() for m in self.rebuttal_chat],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Submission":
        result = data.get("result")
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            content=str(data.get("content", "")),
            conference_id=str(data["conference_id"]),
            status=ReviewStatus(data["status"]),
            created_at=float(data["created_at"]),
            result=ReviewResult.from_dict(result) if result else None,
            rebuttal_chat=tuple(
                ChatMessage.from_dict(m) for m in data.get("rebuttal_chat", [])
            ),
        )
