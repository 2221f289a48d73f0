"""
Folio - Chat Session
=====================
Client-side conversation state for the chat widget, usable from any
Python front end (or a terminal).

``ChatSession`` is an explicit object, one per visitor session.  It owns
the message list, the open/closed state of the panel, and the loading
flag, and it talks to ``POST /api/chat`` over ``httpx``:

    1. Append the user turn and an empty assistant turn.
    2. Post ``{message, history}``; history is every prior non-error turn.
    3. Append streamed text to the assistant turn as it arrives.
    4. On failure, replace the assistant turn with an error turn
       (``is_error=True``), which ``retry()`` can resend.

Nothing is persisted; ``clear()`` forgets the conversation.
"""

from __future__ import annotations

import asyncio
from typing import Any
from uuid import uuid4

import httpx
from pydantic import BaseModel, Field

from folio.config.prompt_templates import CLIENT_FAILURE_MESSAGE, CLIENT_TIMEOUT_MESSAGE, ERROR_QUOTA, ERROR_QUOTA_MESSAGE
from folio.config.settings import settings
from folio.src.core.models import Role
from folio.src.utils.logger import get_logger

logger = get_logger(__name__)


class ConversationTurn(BaseModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    role: Role
    content: str = ""
    is_error: bool = False


class _ChatFailure(Exception):
    """Non-2xx answer from the chat endpoint, already mapped to display text."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ChatSession:
    """
    Parameters
    ----------
    endpoint_url
        Chat endpoint.  Defaults to ``settings.CHAT_ENDPOINT_URL``.
    timeout
        Whole-request timeout in seconds, streaming included.  Defaults to
        ``settings.CLIENT_TIMEOUT_SECONDS``.
    transport
        Optional ``httpx`` async transport (tests inject ``MockTransport``).
    """

    __slots__ = ("_endpoint_url", "_timeout", "_transport", "_turns", "_is_open", "_is_loading")

    def __init__(self, endpoint_url: str | None = None, timeout: float | None = None, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._endpoint_url = endpoint_url or settings.CHAT_ENDPOINT_URL
        self._timeout = settings.CLIENT_TIMEOUT_SECONDS if timeout is None else timeout
        self._transport = transport
        self._turns: list[ConversationTurn] = []
        self._is_open = False
        self._is_loading = False

    # ── Panel state ───────────────────────────────────────────────────

    @property
    def is_open(self) -> bool:
        return self._is_open

    def open(self) -> None:
        self._is_open = True

    def close(self) -> None:
        self._is_open = False

    def toggle(self) -> None:
        self._is_open = not self._is_open

    # ── Conversation state ────────────────────────────────────────────

    @property
    def messages(self) -> list[ConversationTurn]:
        return list(self._turns)

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    def clear(self) -> None:
        self._turns.clear()


    async def send(self, text: str) -> ConversationTurn | None:
        """
        Send one visitor message and stream the answer into the session.

        Returns the final assistant turn, or ``None`` when the input is
        blank or a request is already in flight.
        """
        content = text.strip()
        if not content or self._is_loading:
            return None

        history = [{"role": turn.role, "content": turn.content} for turn in self._turns if not turn.is_error]
        self._turns.append(ConversationTurn(role="user", content=content))
        assistant = ConversationTurn(role="assistant")
        self._turns.append(assistant)

        self._is_loading = True
        try:
            await asyncio.wait_for(self._stream_into(assistant, {"message": content, "history": history}), timeout=self._timeout)
        except _ChatFailure as exc:
            return self._fail(assistant, exc.message)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning("Chat request timed out after %.0fs.", self._timeout)
            return self._fail(assistant, CLIENT_TIMEOUT_MESSAGE)
        except httpx.HTTPError as exc:
            logger.error("Chat request failed: %s", exc)
            return self._fail(assistant, CLIENT_FAILURE_MESSAGE)
        finally:
            self._is_loading = False
        return assistant


    async def retry(self) -> ConversationTurn | None:
        """Drop the last error turn and resend the user message before it."""
        if self._is_loading or len(self._turns) < 2 or not self._turns[-1].is_error:
            return None
        error_turn, user_turn = self._turns[-1], self._turns[-2]
        if user_turn.role != "user":
            return None
        self._turns.remove(error_turn)
        self._turns.remove(user_turn)
        return await self.send(user_turn.content)

    # ── Internals ─────────────────────────────────────────────────────

    async def _stream_into(self, assistant: ConversationTurn, payload: dict[str, Any]) -> None:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            async with client.stream("POST", self._endpoint_url, json=payload) as response:
                if response.is_error:
                    await response.aread()
                    raise _ChatFailure(self._error_message(response))
                async for text in response.aiter_text():
                    assistant.content += text


    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return CLIENT_FAILURE_MESSAGE
        if not isinstance(body, dict):
            return CLIENT_FAILURE_MESSAGE

        if response.status_code == 503 and body.get("error") == ERROR_QUOTA:
            return body.get("message") or ERROR_QUOTA_MESSAGE
        message = body.get("message")
        if isinstance(message, str) and message:
            return message
        return CLIENT_FAILURE_MESSAGE


    def _fail(self, assistant: ConversationTurn, message: str) -> ConversationTurn:
        error_turn = ConversationTurn(id=assistant.id, role="assistant", content=message, is_error=True)
        self._turns[self._turns.index(assistant)] = error_turn
        return error_turn
