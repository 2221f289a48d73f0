"""
Folio - API Routes
===================
Thin controllers: validate the request, build the pipeline, map errors to
HTTP.  No retrieval or prompt logic lives here.

  - ``GET  /health``   → liveness check
  - ``POST /api/chat`` → streamed answer (``text/plain``) or JSON error

Error mapping:
  400  missing / non-string / blank ``message``, or an unparsable body
  500  missing credentials (before any external call)
  503  quota exhausted on both models, with ``Retry-After``
  500  anything else, pipeline construction included; ``details`` only
       outside production
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from starlette.background import BackgroundTask

from folio.config.prompt_templates import ERROR_CONFIGURATION, ERROR_CONFIGURATION_MESSAGE, ERROR_GENERIC, ERROR_GENERIC_MESSAGE, ERROR_MESSAGE_REQUIRED, ERROR_QUOTA, ERROR_QUOTA_MESSAGE
from folio.config.settings import Settings, settings
from folio.src.core.errors import ConfigurationError, QuotaExceededError
from folio.src.core.query_rewriter import QueryRewriter
from folio.src.core.rag_engine import RAGManager, sanitize_history
from folio.src.database.vector_store import create_knowledge_store
from folio.src.llm.gemini_client import GeminiClient
from folio.src.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

_STREAM_HEADERS = {"Cache-Control": "no-cache, no-transform", "X-Accel-Buffering": "no"}


def _json_error(status_code: int, body: dict[str, Any], headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def _configuration_error() -> JSONResponse:
    return _json_error(500, {"error": ERROR_CONFIGURATION, "message": ERROR_CONFIGURATION_MESSAGE})


def _generic_error(exc: Exception) -> JSONResponse:
    body: dict[str, Any] = {"error": ERROR_GENERIC, "message": ERROR_GENERIC_MESSAGE}
    if settings.ENV != "prod":
        body["details"] = str(exc)
    return _json_error(500, body)


def _build_pipeline(config: Settings, with_rewriter: bool) -> RAGManager:
    """
    Wire one request's pipeline from configuration.

    The rewriter, and with it the LLM client, is only built when the
    request carries prior turns.
    """
    api_key = config.GEMINI_API_KEY.get_secret_value() if config.GEMINI_API_KEY else ""
    gemini = GeminiClient(api_key=api_key, base_url=config.GEMINI_BASE_URL, embedding_model=config.EMBEDDING_MODEL, timeout=config.UPSTREAM_TIMEOUT_SECONDS)
    store = create_knowledge_store(config)
    rewriter = QueryRewriter(api_key=api_key) if with_rewriter else None
    return RAGManager(gemini, store, rewriter=rewriter, config=config)


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/api/chat")
async def chat(request: Request) -> Response:
    """Answer one visitor message, streaming plain text."""
    # ── 1. Validate ───────────────────────────────────────────────────
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _json_error(400, {"error": ERROR_MESSAGE_REQUIRED})

    message = payload.get("message") if isinstance(payload, dict) else None
    if not isinstance(message, str) or not message.strip():
        return _json_error(400, {"error": ERROR_MESSAGE_REQUIRED})

    history = sanitize_history(payload.get("history"), limit=settings.HISTORY_LIMIT)

    # ── 2. Configuration ──────────────────────────────────────────────
    missing = settings.missing_credentials()
    if missing:
        logger.error("Missing configuration: %s", ", ".join(missing))
        return _configuration_error()

    try:
        rag = _build_pipeline(settings, with_rewriter=bool(history))
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return _configuration_error()
    except Exception as exc:
        logger.exception("Could not build the chat pipeline: %s", exc)
        return _generic_error(exc)

    # ── 3. Run pipeline up to an open stream ──────────────────────────
    try:
        stream = await rag.stream_answer(message, history)
    except QuotaExceededError:
        await rag.aclose()
        logger.error("Quota exhausted on primary and fallback models.")
        retry_after = settings.RETRY_AFTER_SECONDS
        return _json_error(503, {"error": ERROR_QUOTA, "message": ERROR_QUOTA_MESSAGE, "retryAfter": retry_after}, headers={"Retry-After": str(retry_after)})
    except Exception as exc:
        await rag.aclose()
        logger.exception("Chat API error: %s", exc)
        return _generic_error(exc)

    return StreamingResponse(stream, media_type="text/plain; charset=utf-8", headers=_STREAM_HEADERS, background=BackgroundTask(rag.aclose))
