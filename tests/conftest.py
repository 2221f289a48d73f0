"""
Shared fakes for the Folio test-suite.

The fakes stand in for the Gemini client, the knowledge store and the
query rewriter so that no test ever reaches the network.
"""

from typing import Any

import pytest

from folio.config.settings import Settings
from folio.src.core.models import KnowledgeChunk, RetrievalResult


async def aiter_list(items: list[str]):
    for item in items:
        yield item


class FakeGemini:
    """Scripted Gemini client.  ``outcomes`` maps a model name to deltas or an exception."""

    def __init__(self, outcomes: dict[str, Any] | None = None, embedding: list[float] | None = None, embed_error: Exception | None = None) -> None:
        self.outcomes = outcomes or {}
        self.embedding = embedding or [0.1, 0.2, 0.3]
        self.embed_error = embed_error
        self.embedded: list[str] = []
        self.generate_calls: list[dict[str, Any]] = []
        self.closed = False

    async def aembed_query(self, text: str) -> list[float]:
        self.embedded.append(text)
        if self.embed_error is not None:
            raise self.embed_error
        return self.embedding

    async def stream_generate(self, model: str, system_prompt: str, contents: list[dict[str, Any]], temperature: float, max_output_tokens: int):
        self.generate_calls.append({"model": model, "system_prompt": system_prompt, "contents": contents, "temperature": temperature, "max_output_tokens": max_output_tokens})
        outcome = self.outcomes.get(model, ["ok"])
        if isinstance(outcome, Exception):
            raise outcome
        return aiter_list(outcome)

    async def aclose(self) -> None:
        self.closed = True

    @property
    def models_called(self) -> list[str]:
        return [call["model"] for call in self.generate_calls]


class FakeStore:
    """In-memory ``KnowledgeStore``."""

    def __init__(self, results: list[RetrievalResult] | None = None, search_error: Exception | None = None, clear_error: Exception | None = None) -> None:
        self.results = results or []
        self.search_error = search_error
        self.clear_error = clear_error
        self.rows: list[KnowledgeChunk] = []
        self.searches: list[tuple[list[float], int, float]] = []

    def search(self, embedding: list[float], match_count: int, match_threshold: float) -> list[RetrievalResult]:
        self.searches.append((embedding, match_count, match_threshold))
        if self.search_error is not None:
            raise self.search_error
        return self.results[:match_count]

    def clear(self) -> None:
        if self.clear_error is not None:
            raise self.clear_error
        self.rows.clear()

    def insert(self, chunk: KnowledgeChunk) -> None:
        self.rows.append(chunk)

    def count(self) -> int:
        return len(self.rows)

    def sample(self, limit: int = 3) -> list[dict[str, Any]]:
        return [{"content": row.content, "metadata": row.metadata.to_record()} for row in self.rows[:limit]]


class FakeRewriter:
    def __init__(self, result: str = "standalone question") -> None:
        self.result = result
        self.calls: list[tuple[str, list]] = []

    async def rewrite(self, message: str, history) -> str:
        self.calls.append((message, list(history)))
        return self.result


@pytest.fixture
def make_settings():
    """Build an isolated ``Settings`` (no ``.env``) with working credentials."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "ENV": "dev",
            "GEMINI_API_KEY": "test-gemini-key",
            "SUPABASE_URL": "https://example.supabase.co",
            "SUPABASE_SERVICE_ROLE_KEY": "test-service-role",
            "KNOWLEDGE_BACKEND": "supabase",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make
