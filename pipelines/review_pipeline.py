"""
Review Pipeline

Drives one submission through desk-reject screening and the full review,
recording every stage transition in the submission repository.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from cspcore.conferences import Conference
from cspcore.errors import SubmissionNotFoundError
from cspcore.extract import extract_text
from cspcore.hashing import submission_id
from cspcore.types import (
    ReviewResult,
    ReviewStatus,
    Submission,
    TERMINAL_STATES,
)
from llms.gateway import ReviewGateway

from .config import ConfigService
from .repository import StageEvent, SubmissionRepository


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReviewRequest:
    """One paper to review: either inline ``content`` or a ``path`` to extract."""

    title: str
    conference_id: str
    content: Optional[str] = None
    path: Optional[Path] = None


class ReviewPipeline:
    """
    Submission state machine.

    screening -> desk_rejected, or screening -> reviewing -> completed; any
    stage may end in failed. Uploaded files start in parsing and move to
    screening once their text is extracted.
    """

    def __init__(
        self,
        repository: SubmissionRepository,
        config_service: ConfigService,
        gateway: ReviewGateway,
        extractor: Callable[[Path], str] = extract_text,
    ):
        self.repository = repository
        self.config_service = config_service
        self.gateway = gateway
        self.extractor = extractor

    def create_submission(
        self,
        title: str,
        content: str,
        conference_id: str,
        status: ReviewStatus = ReviewStatus.SCREENING,
    ) -> Submission:
        created_at = time.time()
        submission = Submission(
            id=submission_id(title, created_at),
            title=title,
            content=content,
            conference_id=conference_id,
            status=status,
            created_at=created_at,
        )
        return self.repository.add(submission)

    async def start_review(self, title: str, content: str, conference_id: str) -> Submission:
        """
        Create a submission and run the whole pipeline for it.

        Raises:
            ConferenceNotFoundError: the conference id is unknown; no
                submission is created in that case
        """
        self.config_service.find_conference(conference_id)
        submission = self.create_submission(title, content, conference_id)
        return await self.run(submission.id)

    async def start_review_from_file(
        self, title: str, path: Union[str, Path], conference_id: str
    ) -> Submission:
        """Like start_review, but the paper text is extracted from ``path``
        while the submission sits in the parsing state."""
        self.config_service.find_conference(conference_id)
        submission = self.create_submission(title, "", conference_id, status=ReviewStatus.PARSING)

        try:
            content = await asyncio.to_thread(self.extractor, Path(path))
        except Exception as e:
            logger.error(f"Text extraction failed for {submission.id}: {e}")
            return self.repository.apply(StageEvent(submission.id, ReviewStatus.FAILED))

        self.repository.set_content(submission.id, content)
        self.repository.apply(StageEvent(submission.id, ReviewStatus.SCREENING))
        return await self.run(submission.id)

    async def run(self, submission_id: str) -> Submission:
        """Run screening and review for a submission in the screening state.

        Stage errors mark the submission failed. Raises SubmissionNotFoundError
        if the submission is deleted while the review is running. Records in
        any other state are returned unchanged.
        """
        current = self.repository.get(submission_id)
        if current.status is not ReviewStatus.SCREENING:
            logger.info(f"Skipping {submission_id}: status is '{current.status.value}'")
            return current

        try:
            await self._run_stages(current)
        except SubmissionNotFoundError:
            logger.warning(f"Submission {submission_id} was deleted during review")
            raise
        except Exception:
            logger.exception(f"Review pipeline failed for {submission_id}")
            if self.repository.get(submission_id).status not in TERMINAL_STATES:
                self.repository.apply(StageEvent(submission_id, ReviewStatus.FAILED))
        return self.repository.get(submission_id)

    async def _run_stages(self, submission: Submission) -> None:
        config = self.config_service.get()
        conference: Conference = self.config_service.find_conference(submission.conference_id)

        logger.info(f"Desk reject check for {submission.id} ({conference.short_name})")
        outcome = await self.gateway.screen(submission.content, conference, config)

        if outcome.is_desk_reject:
            self.repository.apply(
                StageEvent(
                    submission.id,
                    ReviewStatus.DESK_REJECTED,
                    ReviewResult(is_desk_reject=True, desk_reject_reason=outcome.reason),
                )
            )
            return

        self.repository.apply(StageEvent(submission.id, ReviewStatus.REVIEWING))
        result = await self.gateway.review(submission.content, conference, config)
        self.repository.apply(StageEvent(submission.id, ReviewStatus.COMPLETED, result))

    async def review_many(
        self, requests: Sequence[ReviewRequest]
    ) -> List[Union[Submission, Exception]]:
        """Review several papers concurrently; each runs its own pipeline.

        Results are in request order. A request rejected before a submission
        exists (e.g. unknown conference) yields its exception instead.
        """
        logger.info(f"Processing {len(requests)} papers")

        async def one(request: ReviewRequest) -> Submission:
            if request.path is not None:
                return await self.start_review_from_file(request.title, request.path, request.conference_id)
            return await self.start_review(request.title, request.content or "", request.conference_id)

        results = await asyncio.gather(*(one(r) for r in requests), return_exceptions=True)
        for request, result in zip(requests, results):
            if isinstance(result, Exception):
                logger.error(f"Failed to process '{request.title}': {result}")
        return list(results)
