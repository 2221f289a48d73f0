"""
Folio - Knowledge Verification Script
======================================
Quick check of what the knowledge store holds: the row count and a
preview of a few stored chunks.

Usage:
    python -m folio.scripts.verify_knowledge
    python -m folio.scripts.verify_knowledge --limit 5
    folio-verify
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

_PREVIEW_CHARS = 100


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="verify_knowledge", description="Folio — Show the row count and a sample of stored knowledge chunks.")
    parser.add_argument("--limit", type=int, default=3, help="Number of sample chunks to print (default: 3).")
    return parser.parse_args()


def main() -> None:
    args = _parse_args()

    from folio.config.settings import settings
    from folio.src.core.errors import ConfigurationError
    from folio.src.database.vector_store import create_knowledge_store

    try:
        store = create_knowledge_store(settings)
    except ConfigurationError as exc:
        print(f"\n[FATAL] {exc}\n")
        sys.exit(1)

    try:
        count = store.count()
        rows = store.sample(limit=args.limit)
    except Exception as exc:
        print(f"\n[ERROR] Could not read the knowledge store: {exc}\n")
        sys.exit(1)

    print(f"\nTotal chunks in store: {count}\n")
    print("Sample chunks:\n")
    for index, row in enumerate(rows, start=1):
        metadata = row.get("metadata") or {}
        title = f" - {metadata['title']}" if metadata.get("title") else ""
        print(f"{index}. Type: {metadata.get('type', '?')}{title}")
        print(f"   Content preview: {row.get('content', '')[:_PREVIEW_CHARS]}...")
        print()


if __name__ == "__main__":
    main()
