"""
Folio - Incremental SSE Decoder
================================
Turns the raw byte stream of a Gemini ``streamGenerateContent?alt=sse``
response into text deltas.

Network reads do not respect frame boundaries: a ``data: {...}`` line,
or even a multi-byte UTF-8 character, may be split across two reads.
``SSEDecoder`` keeps the trailing partial line (and any partial UTF-8
sequence) buffered until the next ``feed``; ``flush`` parses whatever is
left once the stream ends.

Each complete ``data:`` line is decoded through a strict frame model.
Lines that are not valid JSON frames are skipped.
"""

from __future__ import annotations

import codecs

from pydantic import BaseModel, ValidationError

from folio.src.utils.logger import get_logger

logger = get_logger(__name__)

_DATA_PREFIX = "data:"
_NORMAL_FINISH = "STOP"


# ── Frame schema ──────────────────────────────────────────────────────

class _Part(BaseModel):
    text: str | None = None


class _Content(BaseModel):
    parts: list[_Part] = []


class _Candidate(BaseModel):
    content: _Content | None = None
    finishReason: str | None = None
    safetyRatings: list[dict] | None = None


class StreamFrame(BaseModel):
    candidates: list[_Candidate] = []

    def text(self) -> str:
        if not self.candidates:
            return ""
        content = self.candidates[0].content
        if content is None or not content.parts:
            return ""
        return content.parts[0].text or ""

    def finish_reason(self) -> str | None:
        return self.candidates[0].finishReason if self.candidates else None


# ── Decoder ───────────────────────────────────────────────────────────

class SSEDecoder:
    """
    Stateful, single-use decoder for one generation stream.

    Usage::

        decoder = SSEDecoder()
        async for raw in response.aiter_bytes():
            for delta in decoder.feed(raw):
                yield delta
        for delta in decoder.flush():
            yield delta
    """

    __slots__ = ("_utf8", "_buffer", "finish_reason")

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.finish_reason: str | None = None


    def feed(self, data: bytes) -> list[str]:
        """Consume one network read and return the completed text deltas."""
        self._buffer += self._utf8.decode(data)
        lines = self._buffer.split("\n")
        # The last element may be an incomplete line
        self._buffer = lines.pop()

        deltas: list[str] = []
        for line in lines:
            text = self._parse_line(line)
            if text:
                deltas.append(text)
        return deltas


    def flush(self) -> list[str]:
        """Finish decoding and parse any remaining buffered bytes once."""
        self._buffer += self._utf8.decode(b"", final=True)
        remaining, self._buffer = self._buffer, ""
        if not remaining.strip():
            return []
        text = self._parse_line(remaining)
        return [text] if text else []


    def _parse_line(self, line: str) -> str:
        trimmed = line.strip()
        if not trimmed.startswith(_DATA_PREFIX):
            return ""

        payload = trimmed[len(_DATA_PREFIX):].strip()
        try:
            frame = StreamFrame.model_validate_json(payload)
        except ValidationError:
            logger.debug("[STREAM] Skipping undecodable frame: %.80s", payload)
            return ""

        finish_reason = frame.finish_reason()
        if finish_reason:
            self.finish_reason = finish_reason
            if finish_reason != _NORMAL_FINISH:
                logger.warning("[STREAM] Generation ended with finishReason=%s (safetyRatings=%s)", finish_reason, frame.candidates[0].safetyRatings)

        return frame.text()
