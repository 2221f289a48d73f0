"""
Folio - Query Rewriter
=======================
Collapses a follow-up message plus the prior turns into one standalone
search query, so that "what about that project?" retrieves the project
the conversation was about.

Best-effort by contract: the original message is returned unchanged when
there is no history, when the LLM call fails for any reason, or when the
rewrite comes back empty.  The call is deterministic (temperature 0) with
a small output budget, since the result is only ever used for retrieval.
"""

from __future__ import annotations

import time
from collections.abc import Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from folio.config.prompt_templates import REWRITE_PROMPT_TEMPLATE, REWRITE_SYSTEM_PROMPT
from folio.config.settings import settings
from folio.src.core.models import ChatTurn
from folio.src.utils.logger import get_logger

logger = get_logger(__name__)

_QUOTE_CHARS = "\"'`“”‘’"


class QueryRewriter:
    """
    Parameters
    ----------
    llm
        Optional LangChain chat model.  Defaults to a zero-temperature
        ``ChatGoogleGenerativeAI`` that does not retry on its own.
    api_key
        Gemini key used when *llm* is not provided.
    """

    __slots__ = ("_llm",)

    def __init__(self, llm: BaseChatModel | None = None, api_key: str | None = None) -> None:
        self._llm = llm or self._init_llm(api_key)


    @staticmethod
    def _init_llm(api_key: str | None) -> BaseChatModel:
        """Create a deterministic, small-budget LLM for rewriting."""
        from langchain_google_genai import ChatGoogleGenerativeAI

        return ChatGoogleGenerativeAI(
            model=settings.REWRITE_MODEL,
            temperature=0.0,
            max_output_tokens=settings.REWRITE_MAX_OUTPUT_TOKENS,
            max_retries=settings.REWRITE_MAX_RETRIES,
            timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
            google_api_key=api_key,
        )


    async def rewrite(self, message: str, history: Sequence[ChatTurn]) -> str:
        """Return a standalone version of *message*, or *message* itself."""
        if not history:
            return message

        t_start = time.perf_counter()
        prompt = REWRITE_PROMPT_TEMPLATE.format(conversation=self._format_history(history), message=message)
        try:
            response = await self._llm.ainvoke([SystemMessage(content=REWRITE_SYSTEM_PROMPT), HumanMessage(content=prompt)])
        except Exception:
            logger.exception("[REWRITE] LLM call failed, using the raw message.")
            return message

        rewritten = self._clean(response.content if hasattr(response, "content") else str(response))
        if not rewritten:
            logger.warning("[REWRITE] Empty rewrite, using the raw message.")
            return message

        logger.info("[REWRITE] '%s' → '%s' in %.1fms", message[:60], rewritten[:60], (time.perf_counter() - t_start) * 1000)
        return rewritten


    @staticmethod
    def _format_history(history: Sequence[ChatTurn]) -> str:
        lines: list[str] = []
        for turn in history:
            role_label = "Visitor" if turn.role == "user" else "Assistant"
            lines.append(f"{role_label}: {turn.content}")
        return "\n".join(lines)


    @staticmethod
    def _clean(content: object) -> str:
        # Newer chat models may return a list of content blocks
        if isinstance(content, list):
            content = "".join(str(block.get("text", "")) if isinstance(block, dict) else str(block) for block in content)
        return str(content).strip().strip(_QUOTE_CHARS).strip()
