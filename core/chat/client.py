"""Chat-completions HTTP client."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ChatCompletionError(RuntimeError):
    """The completion request failed or returned no usable content."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class CompletionClient:
    """Single POST to an OpenAI-compatible chat-completions endpoint."""

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        *,
        timeout: float = 60.0,
        app_title: str = "notevault",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "X-Title": app_title,
            },
        )

    async def __aenter__(self) -> CompletionClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def complete(
        self,
        model: str,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> str:
        body = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "n": 1,
            "max_tokens": max_tokens,
        }
        logger.debug("Completion request: model=%s messages=%d", model, len(messages))
        try:
            r = await self._client.post(self.endpoint, json=body)
        except httpx.HTTPError as e:
            raise ChatCompletionError(f"API request failed: {e}") from e

        if r.is_error:
            detail = _error_detail(r)
            logger.error("API error response %s: %s", r.status_code, detail)
            raise ChatCompletionError(
                f"API Error: {r.status_code} {r.reason_phrase}. {detail}".strip(),
                status_code=r.status_code,
            )

        try:
            data = r.json()
        except ValueError as e:
            raise ChatCompletionError("API returned a non-JSON response.") from e

        text = _first_choice_text(data)
        if not text:
            raise ChatCompletionError("API returned an empty response.")
        return text


def _error_detail(r: httpx.Response) -> str:
    try:
        data = r.json()
    except ValueError:
        return ""
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        return str(data["error"].get("message") or "")
    return ""


def _first_choice_text(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content.strip() if isinstance(content, str) else ""
