"""
Folio - Knowledge Seeding Script
=================================
CLI entry point that orchestrates:
    1. Validate that every required credential is set (fail-fast, exit 1).
    2. Initialise the ``GeminiClient`` embedder and the knowledge store.
    3. Run the ``KnowledgeSeeder`` (clear, then embed + insert each chunk).
    4. Print the execution summary and the final row count.

The store is replaced wholesale on every run.  Chat requests served while
the script runs may see an empty or partially filled store.

Usage:
    python -m folio.scripts.seed_knowledge
    folio-seed
"""

from __future__ import annotations

import sys
import time
from pathlib import Path

# ── Ensure project root is importable when run directly ────────────────
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))


# ── Main Orchestration ─────────────────────────────────────────────────

def main() -> None:
    t_start = time.perf_counter()

    # ── 0. Load settings + .env ────────────────────────────────────────
    try:
        from folio.config.settings import settings
    except Exception as exc:
        print("\n[FATAL] Configuration error — check your .env file:\n")
        print(f"  {exc}")
        print()
        sys.exit(1)

    from folio.src.utils.logger import get_logger
    logger = get_logger(__name__)

    missing = settings.missing_credentials()
    if missing:
        print("\n[FATAL] Missing environment variables:")
        for name in missing:
            print(f"  - {name}")
        print()
        sys.exit(1)

    _print_header(settings)

    # ── 1. Initialise embedder + store ─────────────────────────────────
    from folio.src.core.errors import ConfigurationError
    from folio.src.database.vector_store import create_knowledge_store
    from folio.src.llm.gemini_client import GeminiClient

    embedder = GeminiClient(api_key=settings.GEMINI_API_KEY.get_secret_value(), base_url=settings.GEMINI_BASE_URL, embedding_model=settings.EMBEDDING_MODEL, timeout=settings.UPSTREAM_TIMEOUT_SECONDS)
    try:
        store = create_knowledge_store(settings)
    except ConfigurationError as exc:
        print(f"\n[FATAL] {exc}\n")
        sys.exit(1)
    logger.info("[SEED] Using %r", store)

    # ── 2. Run KnowledgeSeeder ─────────────────────────────────────────
    from folio.src.core.ingestor import KnowledgeSeeder

    seeder = KnowledgeSeeder(store=store, embedder=embedder, progress=print)
    summary = seeder.run()

    # ── 3. Print execution summary ─────────────────────────────────────
    _print_footer(summary, time.perf_counter() - t_start)


# ── Pretty-print helpers ──────────────────────────────────────────────

def _print_header(settings: object) -> None:
    api_key_val = settings.GEMINI_API_KEY.get_secret_value()  # type: ignore[attr-defined]
    masked = f"****{api_key_val[-4:]}" if len(api_key_val) > 4 else "****"

    backend = settings.KNOWLEDGE_BACKEND  # type: ignore[attr-defined]
    target = settings.SUPABASE_URL if backend == "supabase" else settings.LANCEDB_PATH  # type: ignore[attr-defined]

    print()
    print("=" * 60)
    print("  FOLIO — Knowledge Base Seeding")
    print("=" * 60)
    print(f"  Environment  : {settings.ENV}")                   # type: ignore[attr-defined]
    print(f"  Backend      : {backend} ({target})")
    print(f"  Table        : {settings.KNOWLEDGE_TABLE}")       # type: ignore[attr-defined]
    print(f"  Embedding    : {settings.EMBEDDING_MODEL}")       # type: ignore[attr-defined]
    print(f"  Notes file   : {settings.NOTES_PATH}")            # type: ignore[attr-defined]
    print(f"  API Key      : {masked}")
    print("=" * 60)
    print()


def _print_footer(summary: dict, elapsed: float) -> None:
    row_count = summary["row_count"]

    print()
    print("=" * 60)
    print("  EXECUTION SUMMARY")
    print("-" * 60)
    print(f"  Chunks built         : {summary['total_chunks']}")
    print(f"  Chunks stored        : {summary['stored']}")
    print(f"  Chunks failed        : {summary['failed']}")
    print(f"  Rows in store        : {row_count if row_count is not None else 'unknown (count failed)'}")
    print(f"  Total elapsed        : {elapsed:>8.2f}s")
    print("=" * 60)
    print()


# ── Entry point ────────────────────────────────────────────────────────

if __name__ == "__main__":
    main()
