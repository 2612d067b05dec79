import os
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any, List

import openai
from dotenv import load_dotenv

from cspcore.appconfig import ModelConfig
from cspcore.errors import ConfigurationError

load_dotenv()

logger = logging.getLogger(__name__)


@dataclass
class ChatClientConfig:
    """Configuration for an OpenAI-compatible chat completions endpoint."""

    api_key: str
    base_url: Optional[str] = None
    timeout: int = 120


class ChatClient:
    """Async client for OpenAI and OpenAI-compatible chat models."""

    def __init__(self, config: ChatClientConfig):
        self.config = config
        self.client = openai.AsyncOpenAI(
            api_key=config.api_key, base_url=config.base_url, timeout=config.timeout
        )

    async def complete(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: float,
        top_p: Optional[float] = None,
        top_k: Optional[int] = None,
        response_schema: Optional[Dict[str, Any]] = None,
        schema_name: str = "response",
    ) -> str:
        """Run one chat completion and return the reply text.

        Args:
            model: Model identifier
            messages: Role-tagged messages ('system', 'user', 'assistant')
            temperature: Sampling temperature
            top_p: Nucleus sampling probability
            top_k: Top-k sampling; only forwarded to custom endpoints, the
                hosted OpenAI API does not accept it
            response_schema: JSON Schema the reply must conform to
            schema_name: Name attached to the declared schema

        Returns:
            Reply text, or an empty string when the service returned no content
        """
        kwargs: Dict[str, Any] = {}
        if top_p is not None:
            kwargs["top_p"] = top_p
        if top_k is not None and self.config.base_url:
            kwargs["extra_body"] = {"top_k": top_k}
        if response_schema is not None:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": schema_name,
                    "schema": response_schema,
                    "strict": True,
                },
            }

        response = await self.client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
            **kwargs,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


def create_client(model_config: ModelConfig, timeout: int = 120) -> ChatClient:
    """Create a chat client for the configured model.

    The API key comes from the model configuration, else OPENAI_API_KEY.
    The endpoint comes from the model configuration, else OPENAI_BASE_URL.

    Raises:
        ConfigurationError: if no API key can be resolved
    """
    api_key = model_config.api_key or os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ConfigurationError(
            "API key missing. Please set it in Settings or the OPENAI_API_KEY environment variable."
        )
    base_url = model_config.base_url or os.getenv("OPENAI_BASE_URL") or None

    logger.info(f"Chat client initialized (endpoint: {base_url or 'default'})")
    return ChatClient(ChatClientConfig(api_key=api_key, base_url=base_url, timeout=timeout))
