"""
Folio - Gemini REST Client
===========================
Thin ``httpx`` wrapper over the two Gemini endpoints the pipeline needs.

``embedContent``
    ``POST {base}/models/{model}:embedContent`` with
    ``{"model": "models/<model>", "content": {"parts": [{"text": ...}]}}``.
    Expects ``{"embedding": {"values": [...]}}``.

``streamGenerateContent``
    ``POST {base}/models/{model}:streamGenerateContent?alt=sse`` with
    ``{"system_instruction", "contents", "generationConfig"}``.  The reply
    is a server-sent-event stream decoded by ``SSEDecoder``.

Both calls decode provider replies strictly: non-2xx bodies go through
``classify_provider_error`` so that quota conditions surface as
``QuotaExceededError`` *before* any streamed byte is handed to the caller.

The client exposes the ``embed_query`` / ``aembed_query`` pair, so it
satisfies the ``Embedder`` protocol used by the store and the seeder.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from folio.src.core.errors import EmbeddingError, StreamReadError, UpstreamError, classify_provider_error
from folio.src.llm.sse import SSEDecoder
from folio.src.utils.logger import get_logger

logger = get_logger(__name__)

GeminiContent = dict[str, Any]


class _EmbeddingValues(BaseModel):
    values: list[float]


class _EmbeddingResponse(BaseModel):
    embedding: _EmbeddingValues


class GeminiClient:
    """
    Parameters
    ----------
    api_key
        Gemini API key, sent in the ``x-goog-api-key`` header.
    base_url
        API root, e.g. ``https://generativelanguage.googleapis.com/v1beta``.
    embedding_model
        Model used by ``embed_query`` / ``aembed_query``.
    timeout
        Optional per-request timeout in seconds.  ``None`` disables it.
    transport, async_transport
        Optional ``httpx`` transports (tests inject ``MockTransport``).
    """

    __slots__ = ("_api_key", "_base_url", "_embedding_model", "_timeout", "_transport", "_async_transport", "_async_client")

    def __init__(self, api_key: str, base_url: str, embedding_model: str, timeout: float | None = None, transport: httpx.BaseTransport | None = None, async_transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._embedding_model = embedding_model
        self._timeout = timeout
        self._transport = transport
        self._async_transport = async_transport
        self._async_client: httpx.AsyncClient | None = None

    # ══════════════════════════════════════════════════════════════════
    #  EMBEDDINGS
    # ══════════════════════════════════════════════════════════════════

    def embed_query(self, text: str) -> list[float]:
        """Synchronous embedding call (used by the seeding job)."""
        with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = client.post(self._embed_url(), json=self._embed_payload(text), headers=self._headers())
            except httpx.HTTPError as exc:
                raise EmbeddingError(f"Embedding request failed: {exc}") from exc
        return self._decode_embedding(response)


    async def aembed_query(self, text: str) -> list[float]:
        """Asynchronous embedding call (used by the chat pipeline)."""
        client = self._get_async_client()
        try:
            response = await client.post(self._embed_url(), json=self._embed_payload(text), headers=self._headers())
        except httpx.HTTPError as exc:
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc
        return self._decode_embedding(response)


    def _embed_url(self) -> str:
        return f"{self._base_url}/models/{self._embedding_model}:embedContent"


    def _embed_payload(self, text: str) -> dict[str, Any]:
        return {"model": f"models/{self._embedding_model}", "content": {"parts": [{"text": text}]}}


    @staticmethod
    def _decode_embedding(response: httpx.Response) -> list[float]:
        if response.is_error:
            logger.error("Embedding API error %d: %.200s", response.status_code, response.text)
            raise classify_provider_error(response.status_code, response.text, error_cls=EmbeddingError, detect_quota=False)
        try:
            return _EmbeddingResponse.model_validate_json(response.content).embedding.values
        except ValidationError as exc:
            raise EmbeddingError("Embedding response has no embedding.values", status_code=response.status_code, body=response.text) from exc

    # ══════════════════════════════════════════════════════════════════
    #  STREAMING GENERATION
    # ══════════════════════════════════════════════════════════════════

    async def stream_generate(self, model: str, system_prompt: str, contents: list[GeminiContent], temperature: float, max_output_tokens: int) -> AsyncIterator[str]:
        """
        Open a generation stream and return an iterator of text deltas.

        The HTTP status is checked here, so provider errors (quota
        included) raise from this coroutine rather than from the iterator.

        Raises
        ------
        QuotaExceededError
            The provider reported a usage limit.
        UpstreamError
            Any other non-2xx reply or transport failure while opening.
        """
        client = self._get_async_client()
        payload = {
            "system_instruction": {"parts": [{"text": system_prompt}]},
            "contents": contents,
            "generationConfig": {"temperature": temperature, "maxOutputTokens": max_output_tokens},
        }
        request = client.build_request("POST", f"{self._base_url}/models/{model}:streamGenerateContent", params={"alt": "sse"}, json=payload, headers=self._headers())

        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Generation request to {model} failed: {exc}") from exc

        if response.is_error:
            body = (await response.aread()).decode("utf-8", errors="replace")
            await response.aclose()
            logger.error("Generation API error %d from %s: %.200s", response.status_code, model, body)
            raise classify_provider_error(response.status_code, body)

        logger.debug("[STREAM] Stream opened: %s", model)
        return self._iter_deltas(response, model)


    @staticmethod
    async def _iter_deltas(response: httpx.Response, model: str) -> AsyncIterator[str]:
        decoder = SSEDecoder()
        emitted = 0
        try:
            async for raw in response.aiter_bytes():
                for delta in decoder.feed(raw):
                    emitted += len(delta)
                    yield delta
            for delta in decoder.flush():
                emitted += len(delta)
                yield delta
        except httpx.HTTPError as exc:
            logger.error("[STREAM] Read error from %s after %d chars: %s", model, emitted, exc)
            raise StreamReadError(f"Stream read error: {exc}") from exc
        finally:
            await response.aclose()
        logger.info("[STREAM] %s finished: %d chars (finishReason=%s)", model, emitted, decoder.finish_reason)

    # ══════════════════════════════════════════════════════════════════
    #  PLUMBING
    # ══════════════════════════════════════════════════════════════════

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "x-goog-api-key": self._api_key}


    def _get_async_client(self) -> httpx.AsyncClient:
        if self._async_client is None:
            self._async_client = httpx.AsyncClient(timeout=self._timeout, transport=self._async_transport)
        return self._async_client


    async def aclose(self) -> None:
        if self._async_client is not None:
            await self._async_client.aclose()
            self._async_client = None


    def __repr__(self) -> str:
        return f"GeminiClient(base='{self._base_url}', embedding_model='{self._embedding_model}')"
