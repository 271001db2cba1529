import json

import httpx
import pytest

from core.chat.client import ChatCompletionError, CompletionClient

ENDPOINT = "https://llm.test/v1/chat/completions"


def _client(handler) -> CompletionClient:
    return CompletionClient(ENDPOINT, "sk-test", app_title="notevault-tests", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_complete_sends_expected_request() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["title"] = request.headers["X-Title"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "  Hello there  "}}]})

    async with _client(handler) as client:
        text = await client.complete("openai/gpt-4o", [{"role": "user", "content": "hi"}], 0.8, 500)

    assert text == "Hello there"
    assert seen["url"] == ENDPOINT
    assert seen["auth"] == "Bearer sk-test"
    assert seen["title"] == "notevault-tests"
    assert seen["body"] == {
        "model": "openai/gpt-4o",
        "messages": [{"role": "user", "content": "hi"}],
        "temperature": 0.8,
        "n": 1,
        "max_tokens": 500,
    }


@pytest.mark.asyncio
async def test_error_status_includes_api_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"message": "bad key"}})

    async with _client(handler) as client:
        with pytest.raises(ChatCompletionError, match="401.*bad key") as exc_info:
            await client.complete("m", [], 0.7, 10)

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_error_status_with_non_json_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>gateway</html>")

    async with _client(handler) as client:
        with pytest.raises(ChatCompletionError, match="502"):
            await client.complete("m", [], 0.7, 10)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [{}, {"choices": []}, {"choices": [{"message": {"content": "   "}}]}, {"choices": [{"message": {}}]}],
)
async def test_empty_response_is_an_error(payload: dict) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    async with _client(handler) as client:
        with pytest.raises(ChatCompletionError, match="empty response"):
            await client.complete("m", [], 0.7, 10)


@pytest.mark.asyncio
async def test_transport_error_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(ChatCompletionError, match="API request failed"):
            await client.complete("m", [], 0.7, 10)
