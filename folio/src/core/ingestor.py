"""
Folio - KnowledgeSeeder
========================
Offline batch job that rebuilds the knowledge store from two sources:

    • **Profile** (``folio.config.profile``) – résumé data plus
      hand-authored first-person blocks.  Already chunk-sized; each entry
      becomes one pre-tagged chunk.
    • **Notes** (``NOTES_PATH``) – a free-text markdown document split on
      ``## `` headings.  A section with ``### `` subheadings yields one
      chunk for its lead text plus one per subsection.

Key design decisions:
    • **Replace, never upsert** – every run clears the store first.
      Clearing and re-inserting is not atomic.
    • **Best-effort** – an unreadable notes file, a failed clear, or a
      failed chunk is logged and the run continues.
    • **Sequential** – chunks are embedded one at a time with a short
      pause in between to stay under provider rate limits.
    • **Dependency Injection** – receives any ``KnowledgeStore`` and any
      ``Embedder``.

Usage:
    from folio.src.core.ingestor import KnowledgeSeeder
    seeder  = KnowledgeSeeder(store, embedder)
    summary = seeder.run()
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from folio.config.profile import PROFILE, PROFILE_BLOCKS
from folio.config.settings import settings
from folio.src.core.models import ChunkMetadata, KnowledgeChunk
from folio.src.database.vector_store import Embedder, KnowledgeStore
from folio.src.utils.logger import get_logger
from folio.src.utils.text_utils import SectionClass, classify_section_title, clean_text, lookup_section_title

logger = get_logger(__name__)

# ``## `` opens a section; ``### `` does not match because of the space
_SECTION_SPLIT = re.compile(r"^## ", re.MULTILINE)
_SUBSECTION_SPLIT = re.compile(r"^### ", re.MULTILINE)

_RESUME_SOURCE = "resume"
_PROFILE_SOURCE = "profile"
_NOTES_SOURCE = "personal-knowledge"


# ══════════════════════════════════════════════════════════════════════
#  PROFILE → CHUNKS
# ══════════════════════════════════════════════════════════════════════


def build_profile_chunks(profile: dict[str, Any] = PROFILE, blocks: list[dict[str, Any]] = PROFILE_BLOCKS) -> list[KnowledgeChunk]:
    """Summary, one chunk per role / project / use case, contact, then the authored blocks."""
    name = profile["name"]
    chunks: list[KnowledgeChunk] = [
        KnowledgeChunk(content=f"About {name}: {profile['summary']}", metadata=ChunkMetadata(source=_RESUME_SOURCE, type="summary")),
    ]

    for job in profile.get("work", []):
        chunks.append(KnowledgeChunk(
            content=f"{job['title']} at {job['company']} ({job['period']}): {job['description']}",
            metadata=ChunkMetadata(source=_RESUME_SOURCE, type="work", title=job["title"], company=job["company"], period=job["period"]),
        ))

    for project in profile.get("projects", []):
        content = f"Project: {project['title']} - {project['description']} Technologies used: {', '.join(project['technologies'])}."
        if project.get("url"):
            content += f" Live at {project['url']}"
        chunks.append(KnowledgeChunk(content=content, metadata=ChunkMetadata(source=_RESUME_SOURCE, type="project", title=project["title"])))

    for use_case in profile.get("use_cases", []):
        chunks.append(KnowledgeChunk(
            content=f"Case Study: {use_case['title']} - {use_case['description']}",
            metadata=ChunkMetadata(source=_RESUME_SOURCE, type="use_case", title=use_case["title"]),
        ))

    contact = profile.get("contact")
    if contact:
        chunks.append(KnowledgeChunk(
            content=f"Contact {name}: Email {contact['email']}, LinkedIn {contact['linkedin']}, GitHub {contact['github']}. Located in {profile['location']}.",
            metadata=ChunkMetadata(source=_RESUME_SOURCE, type="contact"),
        ))

    for block in blocks:
        chunks.append(KnowledgeChunk(content=block["content"].strip(), metadata=ChunkMetadata(source=_PROFILE_SOURCE, type=block["type"], topics=list(block.get("topics", [])))))

    return chunks


# ══════════════════════════════════════════════════════════════════════
#  NOTES → CHUNKS
# ══════════════════════════════════════════════════════════════════════


def _split_heading(block: str) -> tuple[str, str]:
    title, _, body = block.partition("\n")
    return title.strip(), body.strip()


def _notes_chunk(content: str, section: str, section_class: SectionClass, title: str | None = None) -> KnowledgeChunk:
    metadata = ChunkMetadata(source=_NOTES_SOURCE, type=section_class.type, section=section, title=title, topics=list(section_class.topics))
    return KnowledgeChunk(content=content, metadata=metadata)


def _is_intro(title: str, owner_name: str) -> bool:
    return title.startswith(owner_name) or "---" in title


def parse_notes(text: str, owner_name: str | None = None) -> list[KnowledgeChunk]:
    """
    Split the notes document into knowledge chunks.

    - Text before the first ``## `` heading is the document preamble and
      is skipped, as is the intro section (title starts with the owner's
      name, or is a ``---`` rule).
    - Sections with no body are dropped.
    - A section without subheadings becomes one chunk.  A section with
      ``### `` subheadings becomes one chunk for its lead text (if any)
      plus one per non-empty subsection.
    - A subsection whose own title is unmapped inherits its section's
      classification.
    """
    owner_name = owner_name or settings.OWNER_NAME
    chunks: list[KnowledgeChunk] = []

    for block in _SECTION_SPLIT.split(clean_text(text))[1:]:
        title, body = _split_heading(block)
        if not title or _is_intro(title, owner_name):
            logger.debug("[SEED] Skipping intro section '%s'.", title)
            continue
        if not body:
            logger.debug("[SEED] Dropping empty section '%s'.", title)
            continue

        section_class = classify_section_title(title)
        parts = _SUBSECTION_SPLIT.split(body)

        if len(parts) == 1:
            chunks.append(_notes_chunk(f"{title}\n\n{body}", title, section_class))
            continue

        lead = parts[0].strip()
        if lead:
            chunks.append(_notes_chunk(f"{title}\n\n{lead}", title, section_class))

        for part in parts[1:]:
            sub_title, sub_body = _split_heading(part)
            if not sub_body:
                continue
            sub_class = lookup_section_title(sub_title) or section_class
            chunks.append(_notes_chunk(f"{title}: {sub_title}\n\n{sub_body}", title, sub_class, title=sub_title))

    return chunks


# ══════════════════════════════════════════════════════════════════════
#  SEEDER
# ══════════════════════════════════════════════════════════════════════


class KnowledgeSeeder:
    """
    End-to-end seeding: build chunks → clear store → embed → insert.

    Parameters
    ----------
    store
        Target ``KnowledgeStore`` (injected).
    embedder
        Anything exposing ``embed_query(text) -> list[float]``.
    notes_path
        Override the notes document.  Defaults to ``settings.NOTES_PATH``.
    delay_seconds
        Pause after each stored chunk.  Defaults to
        ``settings.SEED_DELAY_SECONDS``.
    progress
        Callback receiving one human-readable line per step (the CLI
        passes ``print``).
    """

    __slots__ = ("_store", "_embedder", "_notes_path", "_owner_name", "_delay", "_progress")

    def __init__(self, store: KnowledgeStore, embedder: Embedder, notes_path: Path | None = None, owner_name: str | None = None, delay_seconds: float | None = None, progress: Callable[[str], None] | None = None) -> None:
        self._store = store
        self._embedder = embedder
        self._notes_path = Path(notes_path or settings.NOTES_PATH)
        self._owner_name = owner_name or settings.OWNER_NAME
        self._delay = settings.SEED_DELAY_SECONDS if delay_seconds is None else delay_seconds
        self._progress = progress or (lambda line: None)


    # ── Sources ───────────────────────────────────────────────────────

    def load_notes(self) -> list[KnowledgeChunk]:
        """Parse the notes document; an unreadable file yields no chunks."""
        try:
            text = self._notes_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("[SEED] Could not read notes at %s (%s) — continuing with profile data only.", self._notes_path, exc)
            self._progress(f"Could not read {self._notes_path.name}; continuing with profile data only.")
            return []
        chunks = parse_notes(text, owner_name=self._owner_name)
        logger.info("[SEED] Parsed %d chunk(s) from %s.", len(chunks), self._notes_path.name)
        return chunks


    def build_chunks(self) -> list[KnowledgeChunk]:
        profile_chunks = build_profile_chunks()
        self._progress(f"Created {len(profile_chunks)} chunks from profile data")
        notes_chunks = self.load_notes()
        self._progress(f"Parsed {len(notes_chunks)} chunks from notes")
        return profile_chunks + notes_chunks


    # ── Run ───────────────────────────────────────────────────────────

    def run(self) -> dict[str, Any]:
        """
        Replace the store contents with freshly embedded chunks.

        Returns
        -------
        dict
            ``total_chunks``, ``stored``, ``failed``, ``row_count`` (``None``
            when the final count fails) and ``elapsed_seconds``.
        """
        t_start = time.perf_counter()
        chunks = self.build_chunks()
        total = len(chunks)
        self._progress(f"Total chunks to process: {total}")

        # ── 1. Clear (non-fatal: the table may not exist yet) ─────────
        try:
            self._store.clear()
            self._progress("Cleared existing knowledge chunks")
        except Exception as exc:
            logger.error("[SEED] Error clearing chunks: %s — continuing.", exc)
            self._progress(f"Error clearing chunks: {exc}")

        # ── 2. Embed + insert, one chunk at a time ────────────────────
        stored = failed = 0
        for index, chunk in enumerate(chunks, start=1):
            self._progress(f"Processing chunk {index}/{total}: {chunk.label()}")
            try:
                embedding = self._embedder.embed_query(chunk.content)
                self._store.insert(chunk.model_copy(update={"embedding": embedding}))
            except Exception as exc:
                failed += 1
                logger.error("[SEED] Chunk %d/%d (%s) failed: %s", index, total, chunk.label(), exc)
                self._progress(f"  Error: {exc}")
                continue

            stored += 1
            self._progress(f"  Stored ({len(embedding)} dimensions)")
            if self._delay > 0:
                time.sleep(self._delay)

        # ── 3. Verify ─────────────────────────────────────────────────
        row_count: int | None
        try:
            row_count = self._store.count()
        except Exception as exc:
            logger.error("[SEED] Error counting chunks: %s", exc)
            row_count = None

        elapsed = time.perf_counter() - t_start
        logger.info("[SEED] Done: %d stored, %d failed, %s row(s) in store (%.1fs).", stored, failed, row_count, elapsed)
        return {"total_chunks": total, "stored": stored, "failed": failed, "row_count": row_count, "elapsed_seconds": elapsed}


    def __repr__(self) -> str:
        return f"KnowledgeSeeder(store={self._store!r}, notes='{self._notes_path}')"
