"""
Tests for the seeding tool: profile chunks, notes parsing and
classification, and the ``KnowledgeSeeder`` run loop.
"""

from pathlib import Path

from conftest import FakeStore
from folio.config.profile import PROFILE, PROFILE_BLOCKS
from folio.src.core.ingestor import KnowledgeSeeder, build_profile_chunks, parse_notes
from folio.src.utils.text_utils import classify_section_title, clean_text

OWNER = "Alex Rivera"

NOTES = """# Personal notes

Document preamble that is never indexed.

## Alex Rivera - About These Notes

Intro text.

## Hobbies & Interests

A few things I do for fun.

### Games

Board games on Fridays.

### Running

Four mornings a week.

### Nothing Here

## Random Thoughts

Ideas that will never ship.

## Empty Section

## Family & Home Life

### Pets

A rescue dog named Pixel.
"""


class _Embedder:
    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.calls = 0

    def embed_query(self, text: str) -> list[float]:
        self.calls += 1
        if self.fail_on and self.fail_on in text:
            raise RuntimeError("embedding quota")
        return [0.5, 0.5, 0.5]


def _seeder(store: FakeStore, embedder: _Embedder, notes_path: Path) -> KnowledgeSeeder:
    return KnowledgeSeeder(store=store, embedder=embedder, notes_path=notes_path, owner_name=OWNER, delay_seconds=0)


# ── Classification ─────────────────────────────────────────────────────

def test_classification_is_case_insensitive_with_fallback() -> None:
    assert classify_section_title("FAMILY & HOME LIFE").type == "family"
    assert classify_section_title("Weekend Routine").type == "preferences"
    assert classify_section_title("Core Values").type == "values"
    fallback = classify_section_title("Random Thoughts")
    assert fallback.type == "personal"
    assert fallback.topics == ("general",)


# ── Text cleaning ──────────────────────────────────────────────────────

def test_clean_text_normalises_endings_spacing_and_blank_runs() -> None:
    raw = "\ufeff## Hobbies\r\n\r\n\r\n\r\n  Plays\t\tchess   badly  \r\nCafe\u0301 owner\u200b\n\n\n"
    assert clean_text(raw) == "## Hobbies\n\nPlays chess badly\nCaf\u00e9 owner"


def test_clean_text_keeps_single_blank_lines_and_drops_control_chars() -> None:
    assert clean_text("a\x07b\n\nc\u00ad d") == "ab\n\nc d"


# ── Notes parsing ──────────────────────────────────────────────────────

def test_section_with_subsections_splits_into_lead_and_subsections() -> None:
    chunks = [c for c in parse_notes(NOTES, owner_name=OWNER) if c.metadata.section == "Hobbies & Interests"]
    assert [c.metadata.title for c in chunks] == [None, "Games", "Running"]

    lead, games, running = chunks
    assert lead.content == "Hobbies & Interests\n\nA few things I do for fun."
    assert games.content == "Hobbies & Interests: Games\n\nBoard games on Fridays."
    assert games.metadata.type == "hobbies"
    assert games.metadata.topics == ["hobbies", "gaming"]
    # "Running" is not in the keyword table, so it inherits the section's tags
    assert running.metadata.type == "hobbies"
    assert running.metadata.topics == lead.metadata.topics


def test_intro_preamble_and_empty_sections_are_skipped() -> None:
    chunks = parse_notes(NOTES, owner_name=OWNER)
    sections = {c.metadata.section for c in chunks}
    assert sections == {"Hobbies & Interests", "Random Thoughts", "Family & Home Life"}
    assert all("preamble" not in c.content and "Intro text" not in c.content for c in chunks)
    assert all(c.metadata.source == "personal-knowledge" for c in chunks)


def test_unmapped_section_uses_generic_classification() -> None:
    (chunk,) = [c for c in parse_notes(NOTES, owner_name=OWNER) if c.metadata.section == "Random Thoughts"]
    assert chunk.metadata.type == "personal"
    assert chunk.metadata.topics == ["general"]


def test_section_without_lead_only_yields_subsections() -> None:
    chunks = [c for c in parse_notes(NOTES, owner_name=OWNER) if c.metadata.section == "Family & Home Life"]
    assert len(chunks) == 1
    assert chunks[0].metadata.title == "Pets"
    assert chunks[0].metadata.topics == ["family", "pets"]


def test_rule_titled_section_is_skipped() -> None:
    assert parse_notes("## ---\n\nseparator text\n\n## Values\n\nHonesty.", owner_name=OWNER)[0].metadata.section == "Values"


def test_bundled_notes_document_parses() -> None:
    from folio.config.settings import settings

    chunks = parse_notes(settings.NOTES_PATH.read_text(encoding="utf-8"), owner_name=OWNER)
    assert chunks
    assert all(not c.metadata.section.startswith(OWNER) for c in chunks)
    assert "Empty Section" not in {c.metadata.section for c in chunks}


# ── Profile ────────────────────────────────────────────────────────────

def test_profile_chunks_cover_every_entry() -> None:
    chunks = build_profile_chunks()
    types = [c.metadata.type for c in chunks]
    expected = 1 + len(PROFILE["work"]) + len(PROFILE["projects"]) + len(PROFILE["use_cases"]) + 1 + len(PROFILE_BLOCKS)
    assert len(chunks) == expected
    assert types[0] == "summary"
    assert types.count("work") == len(PROFILE["work"])
    assert "contact" in types

    work = chunks[1]
    assert work.metadata.company == PROFILE["work"][0]["company"]
    assert work.metadata.period == PROFILE["work"][0]["period"]
    assert work.content.startswith(f"{PROFILE['work'][0]['title']} at {PROFILE['work'][0]['company']}")


def test_project_without_url_has_no_live_link() -> None:
    profile = {"name": "Sam", "location": "Nowhere", "summary": "Hi.", "projects": [{"title": "X", "description": "Thing.", "technologies": ["Python"], "url": None}]}
    (_, project) = build_profile_chunks(profile, blocks=[])
    assert project.content == "Project: X - Thing. Technologies used: Python."


# ── Seeder run ─────────────────────────────────────────────────────────

def test_run_replaces_store_contents(tmp_path: Path) -> None:
    notes = tmp_path / "notes.md"
    notes.write_text(NOTES, encoding="utf-8")
    store = FakeStore()

    first = _seeder(store, _Embedder(), notes).run()
    second = _seeder(store, _Embedder(), notes).run()

    assert first["stored"] == first["total_chunks"]
    assert second["row_count"] == first["row_count"] == first["total_chunks"]
    assert all(row.embedding == [0.5, 0.5, 0.5] for row in store.rows)


def test_unreadable_notes_fall_back_to_profile(tmp_path: Path) -> None:
    summary = _seeder(FakeStore(), _Embedder(), tmp_path / "missing.md").run()
    assert summary["total_chunks"] == len(build_profile_chunks())
    assert summary["failed"] == 0


def test_chunk_failures_are_skipped(tmp_path: Path) -> None:
    store = FakeStore()
    summary = _seeder(store, _Embedder(fail_on="Tracklog"), tmp_path / "missing.md").run()
    assert summary["failed"] == 1
    assert summary["stored"] == summary["total_chunks"] - 1
    assert summary["row_count"] == summary["stored"]


def test_clear_failure_does_not_abort(tmp_path: Path) -> None:
    store = FakeStore(clear_error=RuntimeError("table missing"))
    summary = _seeder(store, _Embedder(), tmp_path / "missing.md").run()
    assert summary["stored"] == summary["total_chunks"]


def test_progress_lines_are_reported(tmp_path: Path) -> None:
    lines: list[str] = []
    seeder = KnowledgeSeeder(store=FakeStore(), embedder=_Embedder(), notes_path=tmp_path / "missing.md", owner_name=OWNER, delay_seconds=0, progress=lines.append)
    summary = seeder.run()
    assert f"Processing chunk 1/{summary['total_chunks']}: summary" in lines
