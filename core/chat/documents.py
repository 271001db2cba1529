"""Higher-level JSON documents stored in the virtual filesystem.

- /chats/*.json    transcripts
- /agents/*.json   agent configurations
- /secrets/*.json  credential documents
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from storage.models import now_ms

Sender = Literal["user", "agent", "error"]


class MalformedDocumentError(ValueError):
    """Stored content is not valid JSON or does not have the expected shape."""


class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    sender: Sender
    text: str
    timestamp: int | None = Field(default_factory=now_ms)


class ChatDocument(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    messages: list[ChatMessage] = Field(default_factory=list)


class AgentConfigurations(BaseModel):
    """Completion parameters; ``model`` is required only for sending."""

    model_config = ConfigDict(extra="allow")

    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None


class AgentDocument(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    name: str | None = None
    configurations: AgentConfigurations = Field(default_factory=AgentConfigurations)


class SecretsDocument(BaseModel):
    model_config = ConfigDict(extra="allow")

    vsegpt: str | None = None


def _load(content: str, kind: str) -> Any:
    try:
        return json.loads(content)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedDocumentError(f"Invalid {kind} file format: {e}") from e


def parse_chat(content: str) -> ChatDocument:
    data = _load(content, "chat")
    if not isinstance(data, dict) or not isinstance(data.get("messages"), list):
        raise MalformedDocumentError("Invalid chat file format: expected an object with a 'messages' list")
    data.setdefault("id", "")
    try:
        return ChatDocument.model_validate(data)
    except ValidationError as e:
        raise MalformedDocumentError(f"Invalid chat file format: {e}") from e


def parse_agent(content: str) -> AgentDocument:
    data = _load(content, "agent")
    if not isinstance(data, dict):
        raise MalformedDocumentError("Invalid agent file format: expected an object")
    try:
        return AgentDocument.model_validate(data)
    except ValidationError as e:
        raise MalformedDocumentError(f"Invalid agent file format: {e}") from e


def parse_secrets(content: str) -> SecretsDocument:
    data = _load(content, "secrets")
    if not isinstance(data, dict):
        raise MalformedDocumentError("Invalid secrets file format: expected an object")
    try:
        return SecretsDocument.model_validate(data)
    except ValidationError as e:
        raise MalformedDocumentError(f"Invalid secrets file format: {e}") from e


def dump_document(document: BaseModel) -> str:
    return json.dumps(document.model_dump(mode="json", exclude_none=True), indent=2, ensure_ascii=False)
