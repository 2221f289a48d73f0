"""
Folio - RAG Engine
===================
Answers one visitor question about the site owner, grounded only in the
knowledge store, as a stream of UTF-8 text.

``RAGManager``
    Stateless pipeline orchestrator.  Flow:
        1. Rewrite   → standalone search query (only with prior turns,
                       best-effort, never blocks the request)
        2. Embed     → query vector (failure is fatal)
        3. Retrieve  → top ``MATCH_COUNT`` chunks ≥ ``MATCH_THRESHOLD``
                       (store errors degrade to zero results)
        4. Context   → chunk contents joined by ``CONTEXT_SEPARATOR``,
                       or ``NO_CONTEXT_MARKER`` when nothing matched
        5. Generate  → primary model; on a quota error, the fallback
                       model exactly once
        6. Stream    → text deltas forwarded as bytes, unbuffered

Every step awaits the previous one; there is no internal parallelism.
Provider errors, quota included, are raised while the stream is being
*opened*, so the HTTP layer can still answer with a JSON error.  Once
bytes flow, a failure aborts the stream and already-sent text stands.

The context block only ever contains retrieved chunk contents; the
pipeline adds no facts of its own.

Usage:
    from folio.src.core.rag_engine import RAGManager
    rag = RAGManager(gemini_client, knowledge_store, query_rewriter)
    stream = await rag.stream_answer("What does Alex do?", history=[])
    async for chunk in stream:
        ...
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Sequence
from typing import Any

from pydantic import ValidationError

from folio.config.prompt_templates import CONTEXT_SEPARATOR, CONTEXT_TEMPLATE, NO_CONTEXT_MARKER, SYSTEM_PROMPT
from folio.config.settings import Settings, settings as default_settings
from folio.src.core.errors import QuotaExceededError
from folio.src.core.models import ChatTurn, RetrievalResult
from folio.src.core.query_rewriter import QueryRewriter
from folio.src.database.vector_store import KnowledgeStore
from folio.src.llm.gemini_client import GeminiClient, GeminiContent
from folio.src.utils.logger import get_logger

logger = get_logger(__name__)

# Gemini names the assistant role "model"
_ROLE_MAP = {"user": "user", "assistant": "model"}


# ══════════════════════════════════════════════════════════════════════
#  REQUEST HELPERS
# ══════════════════════════════════════════════════════════════════════


def sanitize_history(raw: Any, limit: int = default_settings.HISTORY_LIMIT) -> list[ChatTurn]:
    """
    Validate prior turns and keep the most recent *limit*.

    Entries that are not objects, carry a role other than ``user`` /
    ``assistant``, or have non-string content are dropped silently
    *before* the cap is applied.
    """
    if not isinstance(raw, list) or limit <= 0:
        return []

    turns: list[ChatTurn] = []
    for entry in raw:
        try:
            turns.append(ChatTurn.model_validate(entry))
        except ValidationError:
            continue

    if len(turns) != len(raw):
        logger.debug("[RAG] Dropped %d malformed history entr(ies).", len(raw) - len(turns))
    return turns[-limit:]


def build_context(results: Sequence[RetrievalResult]) -> str:
    """Join retrieved contents in store order, or return the no-info marker."""
    if not results:
        return NO_CONTEXT_MARKER
    return CONTEXT_SEPARATOR.join(result.content for result in results)


def build_contents(history: Sequence[ChatTurn], context: str, question: str) -> list[GeminiContent]:
    """Prior turns (role-mapped) followed by the context-bearing user turn."""
    contents: list[GeminiContent] = [{"role": _ROLE_MAP[turn.role], "parts": [{"text": turn.content}]} for turn in history]
    contents.append({"role": "user", "parts": [{"text": CONTEXT_TEMPLATE.format(context=context, question=question)}]})
    return contents


# ══════════════════════════════════════════════════════════════════════
#  RAG MANAGER
# ══════════════════════════════════════════════════════════════════════


class RAGManager:
    """
    Orchestrates rewrite → embed → retrieve → generate → stream.

    Parameters
    ----------
    gemini
        ``GeminiClient`` used for the query embedding and generation.
    store
        Any ``KnowledgeStore`` backend.
    rewriter
        Optional ``QueryRewriter``.  Without one, the raw message is
        always used as the search query.
    config
        Optional ``Settings`` override (models, retrieval bounds).
    """

    __slots__ = ("_gemini", "_store", "_rewriter", "_config")

    def __init__(self, gemini: GeminiClient, store: KnowledgeStore, rewriter: QueryRewriter | None = None, config: Settings | None = None) -> None:
        self._gemini = gemini
        self._store = store
        self._rewriter = rewriter
        self._config = config or default_settings


    async def stream_answer(self, message: str, history: Sequence[ChatTurn] = ()) -> AsyncIterator[bytes]:
        """
        Run the pipeline up to an open generation stream.

        Returns
        -------
        AsyncIterator[bytes]
            Lazy, finite, non-restartable sequence of UTF-8 text chunks.

        Raises
        ------
        EmbeddingError
            The query could not be embedded.
        QuotaExceededError
            Both the primary and the fallback model are out of quota.
        UpstreamError
            Any other provider failure while opening the stream.
        """
        t_start = time.perf_counter()

        # ── 1. Rewrite (best-effort) ──────────────────────────────────
        search_query = message
        if history and self._rewriter is not None:
            search_query = await self._rewriter.rewrite(message, history)

        # ── 2. Embed (fatal on failure) ───────────────────────────────
        t_embed = time.perf_counter()
        embedding = await self._gemini.aembed_query(search_query)
        embed_ms = (time.perf_counter() - t_embed) * 1000

        # ── 3. Retrieve (degrades to zero results) ────────────────────
        t_search = time.perf_counter()
        results = await self._retrieve(embedding)
        search_ms = (time.perf_counter() - t_search) * 1000

        # ── 4. Context ────────────────────────────────────────────────
        context = build_context(results)
        if not results:
            logger.warning("[RAG] No relevant context for query: '%s'", search_query[:60])
        contents = build_contents(history, context, message)

        # ── 5. Generate (one fallback on quota) ───────────────────────
        t_llm = time.perf_counter()
        deltas = await self._open_generation(contents)
        open_ms = (time.perf_counter() - t_llm) * 1000

        logger.info("[RAG] Stream ready in %.1fms (embed=%.1f, search=%.1f, open=%.1f, results=%d, history=%d)", (time.perf_counter() - t_start) * 1000, embed_ms, search_ms, open_ms, len(results), len(history))

        # ── 6. Stream ─────────────────────────────────────────────────
        return self._encode(deltas)


    async def _retrieve(self, embedding: list[float]) -> list[RetrievalResult]:
        """Vector search in a worker thread; any store error means no results."""
        try:
            return await asyncio.to_thread(self._store.search, embedding, self._config.MATCH_COUNT, self._config.MATCH_THRESHOLD)
        except Exception:
            logger.exception("[RAG] Knowledge search failed — continuing without context.")
            return []


    async def _open_generation(self, contents: list[GeminiContent]) -> AsyncIterator[str]:
        primary = self._config.PRIMARY_LLM_MODEL
        fallback = self._config.FALLBACK_LLM_MODEL
        try:
            return await self._generate(primary, contents)
        except QuotaExceededError:
            logger.warning("[RAG] Quota exceeded on %s — retrying once with %s.", primary, fallback)
        return await self._generate(fallback, contents)


    async def _generate(self, model: str, contents: list[GeminiContent]) -> AsyncIterator[str]:
        return await self._gemini.stream_generate(model=model, system_prompt=SYSTEM_PROMPT, contents=contents, temperature=self._config.LLM_TEMPERATURE, max_output_tokens=self._config.LLM_MAX_OUTPUT_TOKENS)


    @staticmethod
    async def _encode(deltas: AsyncIterator[str]) -> AsyncIterator[bytes]:
        async for delta in deltas:
            yield delta.encode("utf-8")


    async def aclose(self) -> None:
        """Release the provider HTTP client once the response is done."""
        await self._gemini.aclose()
