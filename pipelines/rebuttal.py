"""
Rebuttal dialogue driver.

Simulates the author/reviewer exchange on a completed review. Each accepted
author turn produces exactly one reviewer turn; gateway failures degrade to a
fallback message and never touch the submission status.
"""

import logging
import time
from typing import Optional, Tuple

from cspcore.errors import ConferenceNotFoundError
from cspcore.types import ChatMessage, MODEL_ROLE, ReviewStatus, USER_ROLE
from llms.gateway import ReviewGateway

from .config import ConfigService
from .repository import SubmissionRepository


logger = logging.getLogger(__name__)

FALLBACK_REPLY = "System Error: Could not generate response."


class RebuttalDriver:
    def __init__(
        self,
        repository: SubmissionRepository,
        config_service: ConfigService,
        gateway: ReviewGateway,
    ):
        self.repository = repository
        self.config_service = config_service
        self.gateway = gateway

    def _conference_label(self, conference_id: str) -> str:
        try:
            return self.config_service.find_conference(conference_id).name
        except ConferenceNotFoundError:
            return conference_id

    async def append_user_turn(
        self, submission_id: str, text: str
    ) -> Optional[Tuple[ChatMessage, ChatMessage]]:
        """
        Append an author turn and the reviewer's reply.

        Returns:
            The (author, reviewer) messages appended, or None when the turn
            was not accepted (blank text or review not completed)
        """
        submission = self.repository.get(submission_id)
        if submission.status is not ReviewStatus.COMPLETED:
            logger.info(f"Rebuttal ignored for {submission_id}: status is '{submission.status.value}'")
            return None
        if not text.strip():
            return None

        user_turn = ChatMessage(role=USER_ROLE, text=text, timestamp=time.time())
        submission = self.repository.append_messages(submission_id, user_turn)

        try:
            reply = await self.gateway.rebuttal(
                submission.rebuttal_chat,
                submission.title,
                submission.result,
                self._conference_label(submission.conference_id),
                self.config_service.get(),
            )
        except Exception as e:
            logger.error(f"Rebuttal response failed for {submission_id}: {e!r}")
            reply = FALLBACK_REPLY

        reviewer_turn = ChatMessage(role=MODEL_ROLE, text=reply, timestamp=time.time())
        self.repository.append_messages(submission_id, reviewer_turn)
        return user_turn, reviewer_turn
