"""
Submission repository.

Owns the submission collection. Pipeline stages report progress as
StageEvent messages which are applied one at a time; every update replaces
the affected record and re-persists the whole collection.
"""

import logging
import threading
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional

from cspcore.errors import InvalidTransitionError, SubmissionNotFoundError
from cspcore.io import HISTORY_KEY, SnapshotStore
from cspcore.types import (
    ChatMessage,
    ReviewResult,
    ReviewStatus,
    Submission,
    can_transition,
    merge_results,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageEvent:
    """A pipeline stage finished: move the submission to ``status`` and merge
    ``result_delta`` into its result."""

    submission_id: str
    status: ReviewStatus
    result_delta: Optional[ReviewResult] = None


class SubmissionRepository:
    def __init__(self, store: SnapshotStore, key: str = HISTORY_KEY):
        self.store = store
        self.key = key
        self._lock = threading.Lock()
        self._items: List[Submission] = self._load()

    def _load(self) -> List[Submission]:
        try:
            snapshot = self.store.read(self.key) or []
            return [Submission.from_dict(item) for item in snapshot]
        except (OSError, ValueError, TypeError, KeyError) as e:
            logger.error(f"Failed to load history, starting empty: {e}")
            return []

    def _commit(self, items: List[Submission]) -> None:
        self.store.write(self.key, [s.to_dict() for s in items])
        self._items = items

    # ---------- reads ----------

    def list(self) -> List[Submission]:
        """All submissions, newest first."""
        return list(self._items)

    def get(self, submission_id: str) -> Submission:
        for item in self._items:
            if item.id == submission_id:
                return item
        raise SubmissionNotFoundError(submission_id)

    # ---------- writes ----------

    def add(self, submission: Submission) -> Submission:
        with self._lock:
            self._commit([submission] + self._items)
        logger.info(f"Submission {submission.id} created in state '{submission.status.value}'")
        return submission

    def delete(self, submission_id: str) -> None:
        with self._lock:
            self.get(submission_id)
            self._commit([s for s in self._items if s.id != submission_id])

    def _update(self, submission_id: str, change: Callable[[Submission], Submission]) -> Submission:
        with self._lock:
            current = self.get(submission_id)
            updated = change(current)
            self._commit([updated if s.id == submission_id else s for s in self._items])
        return updated

    def apply(self, event: StageEvent) -> Submission:
        """Apply a stage transition. Raises InvalidTransitionError for edges
        outside the review lifecycle."""

        def change(current: Submission) -> Submission:
            if not can_transition(current.status, event.status):
                raise InvalidTransitionError(
                    f"{current.id}: cannot move from '{current.status.value}' to '{event.status.value}'"
                )
            return replace(
                current,
                status=event.status,
                result=merge_results(current.result, event.result_delta),
            )

        updated = self._update(event.submission_id, change)
        logger.info(f"Submission {updated.id} -> {updated.status.value}")
        return updated

    def set_content(self, submission_id: str, content: str) -> Submission:
        return self._update(submission_id, lambda s: replace(s, content=content))

    def edit_result(self, submission_id: str, **changes) -> Submission:
        """User edits to a completed review; only given fields change.

        Raises InvalidTransitionError for any other status, so desk-rejected
        and failed records never gain review fields.
        """
        delta = ReviewResult(**changes)

        def change(current: Submission) -> Submission:
            if current.status is not ReviewStatus.COMPLETED:
                raise InvalidTransitionError(
                    f"{current.id}: only completed reviews can be edited (status '{current.status.value}')"
                )
            return replace(current, result=merge_results(current.result, delta))

        return self._update(submission_id, change)

    def append_messages(self, submission_id: str, *messages: ChatMessage) -> Submission:
        return self._update(
            submission_id,
            lambda s: replace(s, rebuttal_chat=s.rebuttal_chat + tuple(messages)),
        )

    def counts_by_status(self) -> Dict[ReviewStatus, int]:
        counts: Dict[ReviewStatus, int] = {}
        for item in self._items:
            counts[item.status] = counts.get(item.status, 0) + 1
        return counts
