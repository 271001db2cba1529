"""Default content written the first time a record store is created."""

from __future__ import annotations

import json
from typing import Any

from storage.models import FileRecord, new_document_id, now_ms


def _record(path: str, document: dict[str, Any], timestamp: int) -> FileRecord:
    directory, _, name = path.rpartition("/")
    return FileRecord(
        path=path,
        directory=f"{directory}/",
        name=name,
        content=json.dumps(document, indent=2, ensure_ascii=False),
        timestamp=timestamp,
    )


def initial_records(timestamp: int | None = None) -> list[FileRecord]:
    """Welcome chat, two example agents and a sample secret."""
    ts = now_ms() if timestamp is None else timestamp
    return [
        _record(
            "/chats/welcome.json",
            {
                "id": new_document_id(),
                "messages": [
                    {"sender": "agent", "text": "Welcome! This is an example chat.", "timestamp": ts},
                ],
            },
            ts,
        ),
        _record(
            "/agents/example-agent.json",
            {
                "id": "agent_example_1",
                "name": "Example Agent",
                "configurations": {
                    "model": "anthropic/claude-3-haiku",
                    "temperature": 0.7,
                    "greeting": "Hello!",
                },
            },
            ts,
        ),
        _record(
            "/agents/openai-gpt4o.json",
            {
                "id": "agent_openai_01",
                "name": "OpenAI GPT-4o",
                "configurations": {"model": "openai/gpt-4o", "temperature": 0.8},
            },
            ts,
        ),
        _record(
            "/secrets/sample-credentials.json",
            {"id": "secret_1", "service": "MyService", "username": "user", "notes": "API keys etc."},
            ts,
        ),
    ]
