from .openai_client import (
    ChatClient,
    ChatClientConfig,
    create_client,
)
from .gateway import (
    FAIL_OPEN_REASON,
    NO_COMMENT_REPLY,
    ReviewGateway,
    ScreenOutcome,
)

__all__ = [
    "ChatClient",
    "ChatClientConfig",
    "create_client",
    "FAIL_OPEN_REASON",
    "NO_COMMENT_REPLY",
    "ReviewGateway",
    "ScreenOutcome",
]
