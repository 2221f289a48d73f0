"""Tests for the incremental SSE decoder."""

import json

from folio.src.llm.sse import SSEDecoder


def _frame(text: str, finish_reason: str | None = None) -> bytes:
    candidate: dict = {"content": {"parts": [{"text": text}], "role": "model"}}
    if finish_reason:
        candidate["finishReason"] = finish_reason
    return f"data: {json.dumps({'candidates': [candidate]}, ensure_ascii=False)}\r\n\r\n".encode("utf-8")


def test_frame_split_across_reads_is_emitted_once() -> None:
    raw = _frame("Hello")
    decoder = SSEDecoder()
    assert decoder.feed(raw[:17]) == []
    assert decoder.feed(raw[17:]) == ["Hello"]
    assert decoder.flush() == []


def test_several_frames_in_one_read_keep_order() -> None:
    decoder = SSEDecoder()
    assert decoder.feed(_frame("one ") + _frame("two ") + _frame("three")) == ["one ", "two ", "three"]


def test_flush_parses_trailing_frame_without_newline() -> None:
    decoder = SSEDecoder()
    raw = _frame("tail").rstrip(b"\r\n")
    assert decoder.feed(raw) == []
    assert decoder.flush() == ["tail"]
    assert decoder.flush() == []


def test_multibyte_character_split_between_reads() -> None:
    raw = _frame("héllo wörld")
    split = raw.index("é".encode("utf-8")) + 1
    decoder = SSEDecoder()
    deltas = decoder.feed(raw[:split]) + decoder.feed(raw[split:])
    assert deltas == ["héllo wörld"]


def test_undecodable_and_non_data_lines_are_skipped() -> None:
    decoder = SSEDecoder()
    raw = b": keep-alive\n" + b"event: message\n" + b"data: {not json\n" + b"data: [DONE]\n" + _frame("ok")
    assert decoder.feed(raw) == ["ok"]


def test_frames_without_text_produce_nothing() -> None:
    decoder = SSEDecoder()
    raw = b'data: {"candidates": []}\n' + b'data: {"candidates": [{"content": {"parts": []}}]}\n'
    assert decoder.feed(raw) == []


def test_finish_reason_is_recorded() -> None:
    decoder = SSEDecoder()
    decoder.feed(_frame("partial", finish_reason="SAFETY"))
    assert decoder.finish_reason == "SAFETY"
