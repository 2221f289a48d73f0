"""Tests for the request helpers in ``rag_engine``."""

from folio.config.prompt_templates import CONTEXT_SEPARATOR, CONTEXT_TEMPLATE, NO_CONTEXT_MARKER
from folio.src.core.models import ChatTurn, RetrievalResult
from folio.src.core.rag_engine import build_contents, build_context, sanitize_history


def test_empty_results_give_the_no_context_marker() -> None:
    assert build_context([]) == NO_CONTEXT_MARKER


def test_results_are_joined_in_order() -> None:
    results = [RetrievalResult(content="One.", similarity=0.6), RetrievalResult(content="Two.", similarity=0.9)]
    assert build_context(results) == f"One.{CONTEXT_SEPARATOR}Two."


def test_contents_map_roles_and_end_with_the_framed_question() -> None:
    history = [ChatTurn(role="user", content="Hi"), ChatTurn(role="assistant", content="Hello!")]
    contents = build_contents(history, NO_CONTEXT_MARKER, "Where is Alex based?")

    assert contents[:2] == [
        {"role": "user", "parts": [{"text": "Hi"}]},
        {"role": "model", "parts": [{"text": "Hello!"}]},
    ]
    assert contents[-1] == {"role": "user", "parts": [{"text": CONTEXT_TEMPLATE.format(context=NO_CONTEXT_MARKER, question="Where is Alex based?")}]}


def test_history_keeps_only_the_most_recent_valid_turns() -> None:
    raw = [{"role": "user", "content": f"turn {i}"} for i in range(5)] + [{"role": "tool", "content": "x"}, None]
    turns = sanitize_history(raw, limit=3)
    assert [t.content for t in turns] == ["turn 2", "turn 3", "turn 4"]


def test_history_limit_zero_or_non_list_gives_nothing() -> None:
    assert sanitize_history([{"role": "user", "content": "hi"}], limit=0) == []
    assert sanitize_history({"role": "user", "content": "hi"}) == []
