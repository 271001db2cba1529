"""Chat transcript manager.

Loads a transcript from /chats/, forwards the recent history to the
completion endpoint using the model of an /agents/ document, and writes the
updated transcript back through the filesystem API (which backs up the
previous version).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass

from config.schema import ChatConfig
from core.chat.client import ChatCompletionError, CompletionClient
from core.chat.documents import (
    AgentDocument,
    ChatDocument,
    ChatMessage,
    MalformedDocumentError,
    dump_document,
    parse_agent,
    parse_chat,
    parse_secrets,
)
from core.filesystem.api import FileSystemAPI, SaveResult
from core.filesystem.paths import InvalidPathError, get_file_name, split_extension
from storage.models import new_document_id

logger = logging.getLogger(__name__)

CHATS_DIRECTORY = "/chats/"
AGENTS_DIRECTORY = "/agents/"
SECRETS_PATH = "/secrets/api_keys.json"
API_KEY_FIELD = "vsegpt"

ClientFactory = Callable[[str], CompletionClient]


class MissingAPIKeyError(RuntimeError):
    """No API key in settings or in the secrets document."""


class AgentConfigError(ValueError):
    """Agent document cannot be used to send completions."""


@dataclass
class SendResult:
    chat: ChatDocument
    reply: ChatMessage
    save: SaveResult
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def chat_id_for(path: str) -> str:
    base, _ = split_extension(get_file_name(path))
    return base or new_document_id()


def build_request_messages(messages: list[ChatMessage], history_limit: int) -> list[dict[str, str]]:
    """Map the last ``history_limit`` messages to API roles, dropping error entries."""
    request: list[dict[str, str]] = []
    for msg in messages[-history_limit:]:
        if msg.sender == "user":
            request.append({"role": "user", "content": msg.text})
        elif msg.sender == "agent":
            request.append({"role": "assistant", "content": msg.text})
    return request


class ChatSession:
    def __init__(
        self,
        fs: FileSystemAPI,
        settings: ChatConfig | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.fs = fs
        self.settings = settings or ChatConfig()
        self._client_factory = client_factory or self._default_client

    def _default_client(self, api_key: str) -> CompletionClient:
        return CompletionClient(
            self.settings.endpoint,
            api_key,
            timeout=self.settings.timeout,
            app_title=self.settings.app_title,
        )

    async def load_chat(self, path: str) -> ChatDocument:
        record = await self.fs.get_file(path)
        if record is None:
            raise FileNotFoundError(f"Chat file {path} not found")
        return parse_chat(record.content)

    async def load_agent(self, path: str) -> AgentDocument:
        record = await self.fs.get_file(path)
        if record is None:
            raise FileNotFoundError(f"Agent file {path} not found")
        return parse_agent(record.content)

    async def new_chat(self, name: str) -> SaveResult:
        """Create an empty transcript at /chats/<name>.json."""
        file_name = name if name.endswith(".json") else f"{name}.json"
        if "/" in file_name:
            raise InvalidPathError(f"Chat name must not contain '/': {name}")
        path = f"{CHATS_DIRECTORY}{file_name}"
        document = ChatDocument(id=chat_id_for(path), messages=[])
        return await self.fs.create_file(path, dump_document(document))

    async def resolve_api_key(self) -> str:
        if self.settings.api_key:
            return self.settings.api_key
        record = await self.fs.get_file(SECRETS_PATH)
        if record is not None:
            try:
                key = parse_secrets(record.content).vsegpt
            except MalformedDocumentError as e:
                logger.warning("Ignoring unreadable secrets file %s: %s", SECRETS_PATH, e)
            else:
                if key and key.strip():
                    return key.strip()
        raise MissingAPIKeyError(
            f"No API key found. Set NOTEVAULT_API_KEY or store one under '{API_KEY_FIELD}' in {SECRETS_PATH}."
        )

    async def store_api_key(self, api_key: str) -> SaveResult:
        """Merge ``api_key`` into the secrets document, keeping its other fields."""
        api_key = api_key.strip()
        if not api_key:
            raise ValueError("API key is empty")

        secrets: dict = {}
        record = await self.fs.get_file(SECRETS_PATH)
        if record is not None:
            try:
                loaded = json.loads(record.content)
            except json.JSONDecodeError as e:
                logger.warning("Error reading secrets file at %s, creating new one: %s", SECRETS_PATH, e)
            else:
                if isinstance(loaded, dict):
                    secrets = loaded
        secrets[API_KEY_FIELD] = api_key
        return await self.fs.save_file(SECRETS_PATH, json.dumps(secrets, indent=2, ensure_ascii=False))

    async def send_message(self, chat_path: str, text: str, agent_path: str) -> SendResult:
        """Append ``text`` to the chat, ask the agent's model for a reply, persist both.

        API failures are recorded in the transcript as an ``error`` message
        and reported through ``SendResult.error``; the transcript is saved
        either way.
        """
        text = text.strip()
        if not text:
            raise ValueError("Message is empty")
        if not chat_path.startswith(CHATS_DIRECTORY):
            raise InvalidPathError(f"Invalid chat file path: {chat_path}")

        api_key = await self.resolve_api_key()
        agent = await self.load_agent(agent_path)
        model = agent.configurations.model
        if not model:
            raise AgentConfigError(f"Agent {agent_path} has no configurations.model")
        chat = await self.load_chat(chat_path)

        chat.messages.append(ChatMessage(sender="user", text=text))
        request_messages = build_request_messages(chat.messages, self.settings.history_limit)
        temperature = agent.configurations.temperature
        max_tokens = agent.configurations.max_tokens

        error: str | None = None
        try:
            async with self._client_factory(api_key) as client:
                reply_text = await client.complete(
                    model,
                    request_messages,
                    temperature=self.settings.default_temperature if temperature is None else temperature,
                    max_tokens=self.settings.default_max_tokens if max_tokens is None else max_tokens,
                )
            reply = ChatMessage(sender="agent", text=reply_text)
        except ChatCompletionError as e:
            logger.error("Error calling API for %s: %s", chat_path, e)
            error = str(e)
            reply = ChatMessage(sender="error", text=f"Error: {e}")
        chat.messages.append(reply)

        chat.id = chat_id_for(chat_path)
        save = await self.fs.save_file(chat_path, dump_document(chat))
        logger.info("Chat %s saved", chat_path)
        return SendResult(chat=chat, reply=reply, save=save, error=error)
