"""
Wire-level tests for ``GeminiClient`` using ``httpx.MockTransport``.

Checks the request shapes sent to the embedding and streaming
generation endpoints, and how provider errors are classified.
"""

import asyncio
import json

import httpx
import pytest

from folio.src.core.errors import EmbeddingError, QuotaExceededError, StreamReadError, UpstreamError, classify_provider_error
from folio.src.llm.gemini_client import GeminiClient

BASE_URL = "https://gemini.test/v1beta"


def _client(handler) -> GeminiClient:
    transport = httpx.MockTransport(handler)
    return GeminiClient(api_key="k-123", base_url=BASE_URL, embedding_model="gemini-embedding-001", transport=transport, async_transport=transport)


def _sse(*texts: str) -> bytes:
    frames = [f"data: {json.dumps({'candidates': [{'content': {'parts': [{'text': t}]}}]})}\r\n\r\n" for t in texts]
    return "".join(frames).encode("utf-8")


async def _collect(client: GeminiClient, model: str = "gemini-flash-lite-latest") -> list[str]:
    try:
        deltas = await client.stream_generate(model=model, system_prompt="be brief", contents=[{"role": "user", "parts": [{"text": "hi"}]}], temperature=0.5, max_output_tokens=2048)
        return [delta async for delta in deltas]
    finally:
        await client.aclose()


# ── Embeddings ─────────────────────────────────────────────────────────

def test_embed_query_request_shape() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers["x-goog-api-key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"embedding": {"values": [0.1, 0.2, 0.3]}})

    assert _client(handler).embed_query("hello") == [0.1, 0.2, 0.3]
    assert seen["url"] == f"{BASE_URL}/models/gemini-embedding-001:embedContent"
    assert seen["key"] == "k-123"
    assert seen["body"] == {"model": "models/gemini-embedding-001", "content": {"parts": [{"text": "hello"}]}}


def test_async_embedding_matches_sync() -> None:
    client = _client(lambda request: httpx.Response(200, json={"embedding": {"values": [1.0, 0.0]}}))

    async def run() -> list[float]:
        try:
            return await client.aembed_query("hello")
        finally:
            await client.aclose()

    assert asyncio.run(run()) == [1.0, 0.0]


def test_embedding_quota_is_not_treated_as_generation_quota() -> None:
    client = _client(lambda request: httpx.Response(429, json={"error": {"code": 429, "status": "RESOURCE_EXHAUSTED", "message": "quota"}}))
    with pytest.raises(EmbeddingError) as exc_info:
        client.embed_query("hello")
    assert not isinstance(exc_info.value, QuotaExceededError)
    assert exc_info.value.status_code == 429


def test_embedding_without_values_is_an_error() -> None:
    client = _client(lambda request: httpx.Response(200, json={"unexpected": True}))
    with pytest.raises(EmbeddingError):
        client.embed_query("hello")


# ── Streaming generation ───────────────────────────────────────────────

def test_stream_generate_request_shape_and_deltas() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["alt"] = request.url.params.get("alt")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, content=_sse("Hel", "lo"), headers={"content-type": "text/event-stream"})

    assert asyncio.run(_collect(_client(handler))) == ["Hel", "lo"]
    assert seen["path"] == "/v1beta/models/gemini-flash-lite-latest:streamGenerateContent"
    assert seen["alt"] == "sse"
    assert seen["body"]["system_instruction"] == {"parts": [{"text": "be brief"}]}
    assert seen["body"]["contents"] == [{"role": "user", "parts": [{"text": "hi"}]}]
    assert seen["body"]["generationConfig"] == {"temperature": 0.5, "maxOutputTokens": 2048}


@pytest.mark.parametrize(
    "status, body",
    [
        (429, {"error": {"message": "slow down"}}),
        (400, {"error": {"status": "RESOURCE_EXHAUSTED", "message": "quota"}}),
        (500, {"error": {"code": 429, "message": "quota"}}),
    ],
)
def test_stream_generate_quota_errors(status, body) -> None:
    client = _client(lambda request: httpx.Response(status, json=body))
    with pytest.raises(QuotaExceededError):
        asyncio.run(_collect(client))


def test_stream_generate_other_errors_are_upstream_errors() -> None:
    client = _client(lambda request: httpx.Response(500, json={"error": {"code": 500, "status": "INTERNAL", "message": "boom"}}))
    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(_collect(client))
    assert not isinstance(exc_info.value, QuotaExceededError)
    assert "boom" in str(exc_info.value)


class _DroppedStream(httpx.AsyncByteStream):
    """Sends one frame, then the connection drops."""

    async def __aiter__(self):
        yield _sse("partial")
        raise httpx.ReadError("connection reset")


def test_read_error_mid_stream_keeps_sent_deltas() -> None:
    client = _client(lambda request: httpx.Response(200, stream=_DroppedStream(), headers={"content-type": "text/event-stream"}))
    received: list[str] = []

    async def run() -> None:
        try:
            deltas = await client.stream_generate(model="m", system_prompt="s", contents=[], temperature=0.5, max_output_tokens=16)
            async for delta in deltas:
                received.append(delta)
        finally:
            await client.aclose()

    with pytest.raises(StreamReadError):
        asyncio.run(run())
    assert received == ["partial"]


# ── Error classification ───────────────────────────────────────────────

def test_classify_non_json_body() -> None:
    error = classify_provider_error(502, "<html>Bad Gateway</html>")
    assert type(error) is UpstreamError
    assert error.status_code == 502
    assert "Bad Gateway" in str(error)
