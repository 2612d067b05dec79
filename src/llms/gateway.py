"""Review gateway: one model call per pipeline stage.

Each stage builds its prompt, declares the response schema, issues the call
and converts the reply into typed results. Failure handling differs per
stage: the desk-reject check fails open, the full review propagates errors,
and the rebuttal turn lets the caller decide.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from functools import partial
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, TypeVar

from cspcore.appconfig import AppConfig, ModelConfig
from cspcore.conferences import Conference
from cspcore.errors import GatewayResponseError
from cspcore.prompts import (
    build_rebuttal_prompt,
    build_review_prompt,
    build_screen_prompt,
)
from cspcore.schemas import REVIEW_SCHEMA, SCREEN_SCHEMA, validate_payload
from cspcore.types import ChatMessage, ReviewRatings, ReviewResult

from .openai_client import ChatClient, create_client

logger = logging.getLogger(__name__)

FAIL_OPEN_REASON = "Auto-check failed or API error. Proceeding to review."
NO_COMMENT_REPLY = "I have no further comments."

SCREEN_TEMPERATURE = 0.1
REBUTTAL_TEMPERATURE = 0.7

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")

T = TypeVar("T")
ClientFactory = Callable[[ModelConfig], ChatClient]


@dataclass(frozen=True)
class ScreenOutcome:
    is_desk_reject: bool
    reason: str


def parse_json_reply(raw: str, schema: Dict[str, Any]) -> Dict[str, Any]:
    """Decode a model reply and validate it against ``schema``.

    Raises:
        GatewayResponseError: if the reply is empty, not JSON, or off-schema
    """
    text = _CODE_FENCE_RE.sub("", (raw or "").strip())
    if not text:
        raise GatewayResponseError("Model returned an empty response")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise GatewayResponseError(f"Model response is not valid JSON: {e}") from e
    errors = validate_payload(data, schema)
    if errors:
        raise GatewayResponseError(f"Model response failed schema validation: {'; '.join(errors)}")
    return data


class ReviewGateway:
    def __init__(
        self,
        client_factory: Optional[ClientFactory] = None,
        timeout: Optional[float] = None,
        request_timeout: int = 120,
    ):
        """
        Args:
            client_factory: Builds a chat client from the model configuration.
                Raises ConfigurationError when no credential is available.
            timeout: Seconds allowed per stage call; None waits for the
                client's own request timeout.
            request_timeout: Transport timeout for the default client factory
        """
        self.client_factory = client_factory or partial(create_client, timeout=request_timeout)
        self.timeout = timeout

    async def _call(self, call: Awaitable[T]) -> T:
        if self.timeout is None:
            return await call
        return await asyncio.wait_for(call, self.timeout)

    async def screen(
        self, paper_text: str, conference: Conference, config: AppConfig
    ) -> ScreenOutcome:
        client = self.client_factory(config.model_config)
        bundle = build_screen_prompt(paper_text, conference, config)

        try:
            raw = await self._call(
                client.complete(
                    model=config.model_config.model_name,
                    messages=bundle.messages,
                    temperature=SCREEN_TEMPERATURE,
                    response_schema=SCREEN_SCHEMA,
                    schema_name="desk_reject_check",
                )
            )
            data = parse_json_reply(raw, SCREEN_SCHEMA)
        except Exception as e:
            logger.warning(f"Desk reject check failed, proceeding to review: {e!r}")
            return ScreenOutcome(is_desk_reject=False, reason=FAIL_OPEN_REASON)

        return ScreenOutcome(is_desk_reject=bool(data["is_desk_reject"]), reason=str(data["reason"]))

    async def review(
        self, paper_text: str, conference: Conference, config: AppConfig
    ) -> ReviewResult:
        client = self.client_factory(config.model_config)
        bundle = build_review_prompt(paper_text, conference, config)
        model = config.model_config

        try:
            raw = await self._call(
                client.complete(
                    model=model.model_name,
                    messages=bundle.messages,
                    temperature=model.temperature,
                    top_p=model.top_p,
                    top_k=model.top_k,
                    response_schema=REVIEW_SCHEMA,
                    schema_name="peer_review",
                )
            )
            data = parse_json_reply(raw, REVIEW_SCHEMA)
        except Exception as e:
            logger.error(f"Deep review failed: {e!r}")
            raise

        return ReviewResult(
            is_desk_reject=False,
            desk_reject_assessment=data["desk_reject_assessment"],
            summary=data["summary"],
            strengths=data["strengths"],
            weaknesses=data["weaknesses"],
            missing_related_work=data.get("missing_related_work"),
            questions_for_rebuttal=data.get("questions_for_rebuttal"),
            ratings=ReviewRatings.from_dict(data["ratings"]),
            ethics_flag=data["ethics_flag"],
            ethics_description=data.get("ethics_description"),
            genai_analysis=data["genai_analysis"],
            final_decision=data["final_decision"],
            raw_output=raw,
        )

    async def rebuttal(
        self,
        history: Sequence[ChatMessage],
        paper_title: str,
        initial_review: Optional[ReviewResult],
        conference_label: str,
        config: AppConfig,
    ) -> str:
        """Reply to the newest author turn. The full history is resent each call."""
        client = self.client_factory(config.model_config)
        bundle = build_rebuttal_prompt(
            history, paper_title, initial_review, conference_label, config
        )
        raw = await self._call(
            client.complete(
                model=config.model_config.model_name,
                messages=bundle.messages,
                temperature=REBUTTAL_TEMPERATURE,
            )
        )
        return raw.strip() or NO_COMMENT_REPLY
