"""Chat transcripts, agent documents and the completion client."""

from core.chat.client import ChatCompletionError, CompletionClient
from core.chat.documents import (
    AgentDocument,
    ChatDocument,
    ChatMessage,
    MalformedDocumentError,
    parse_agent,
    parse_chat,
)
from core.chat.session import AgentConfigError, ChatSession, MissingAPIKeyError, SendResult

__all__ = [
    "AgentConfigError",
    "AgentDocument",
    "ChatCompletionError",
    "ChatDocument",
    "ChatMessage",
    "ChatSession",
    "CompletionClient",
    "MalformedDocumentError",
    "MissingAPIKeyError",
    "SendResult",
    "parse_agent",
    "parse_chat",
]
