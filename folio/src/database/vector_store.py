"""
Folio - Knowledge Store
========================
Backends for the knowledge chunk table, behind one small interface:

  • ``search``  — nearest neighbours above a similarity threshold
  • ``clear``   — remove every chunk (the seeder replaces, never upserts)
  • ``insert``  — persist one chunk with its embedding
  • ``count`` / ``sample`` — verification helpers

``SupabaseKnowledgeStore``
    Production backend.  Search goes through the ``search_knowledge``
    stored procedure (``query_embedding``, ``match_threshold``,
    ``match_count``), which returns ``{content, metadata, similarity}``
    rows already filtered and ordered by similarity.

``LanceKnowledgeStore``
    Local on-disk backend for development.  Cosine distance is converted
    to similarity (``1 - distance``) and the threshold is applied here so
    both backends honour the same contract.

Rows coming back from either backend are decoded through
``RetrievalResult``; malformed rows are dropped with a warning.

Clearing and re-inserting is not atomic.  A chat request that runs during
a reseed can see an empty or partially filled table.
"""

from __future__ import annotations

import functools
import json
from typing import Any, Protocol, runtime_checkable

import lancedb
import pyarrow as pa
from pydantic import ValidationError
from supabase import Client, create_client

from folio.config.settings import Settings
from folio.src.core.errors import ConfigurationError
from folio.src.core.models import KnowledgeChunk, RetrievalResult
from folio.src.utils.logger import get_logger

logger = get_logger(__name__)

# ── Type Aliases ──────────────────────────────────────────────────────
StoredRow = dict[str, Any]

# Matches no real row, so ``neq`` selects every row
_NIL_UUID = "00000000-0000-0000-0000-000000000000"


# ── Protocols ─────────────────────────────────────────────────────────

@runtime_checkable
class Embedder(Protocol):
    """Anything that can produce an embedding vector from text."""

    def embed_query(self, text: str) -> list[float]: ...


@runtime_checkable
class KnowledgeStore(Protocol):
    """Structural type shared by every knowledge store backend."""

    def search(self, embedding: list[float], match_count: int, match_threshold: float) -> list[RetrievalResult]: ...

    def clear(self) -> None: ...

    def insert(self, chunk: KnowledgeChunk) -> None: ...

    def count(self) -> int: ...

    def sample(self, limit: int = 3) -> list[StoredRow]: ...


def _decode_rows(rows: list[StoredRow]) -> list[RetrievalResult]:
    results: list[RetrievalResult] = []
    for row in rows:
        try:
            results.append(RetrievalResult.model_validate(row))
        except ValidationError as exc:
            logger.warning("Dropping malformed search row: %s", exc.errors()[0].get("msg"))
    return results


# ══════════════════════════════════════════════════════════════════════
#  SUPABASE (pgvector)
# ══════════════════════════════════════════════════════════════════════


class SupabaseKnowledgeStore:
    """
    Knowledge store backed by a Supabase Postgres table with pgvector.

    Parameters
    ----------
    client
        An initialised ``supabase.Client`` (injected).
    table_name
        Chunk table, ``knowledge_chunks`` by default.
    search_function
        Name of the similarity-search stored procedure.
    """

    __slots__ = ("_client", "_table_name", "_search_function")

    def __init__(self, client: Client, table_name: str = "knowledge_chunks", search_function: str = "search_knowledge") -> None:
        self._client = client
        self._table_name = table_name
        self._search_function = search_function


    def search(self, embedding: list[float], match_count: int, match_threshold: float) -> list[RetrievalResult]:
        params = {"query_embedding": embedding, "match_threshold": match_threshold, "match_count": match_count}
        response = self._client.rpc(self._search_function, params).execute()
        rows: list[StoredRow] = response.data or []
        logger.info("Search returned %d row(s) (threshold=%.2f, count=%d).", len(rows), match_threshold, match_count)
        return _decode_rows(rows)


    def clear(self) -> None:
        self._client.table(self._table_name).delete().neq("id", _NIL_UUID).execute()
        logger.info("Cleared table '%s'.", self._table_name)


    def insert(self, chunk: KnowledgeChunk) -> None:
        if chunk.embedding is None:
            raise ValueError("Cannot insert a chunk without an embedding.")
        self._client.table(self._table_name).insert({"content": chunk.content, "metadata": chunk.metadata.to_record(), "embedding": chunk.embedding}).execute()


    def count(self) -> int:
        response = self._client.table(self._table_name).select("*", count="exact", head=True).execute()
        return response.count or 0


    def sample(self, limit: int = 3) -> list[StoredRow]:
        response = self._client.table(self._table_name).select("id, content, metadata").limit(limit).execute()
        return response.data or []


    def __repr__(self) -> str:
        return f"SupabaseKnowledgeStore(table='{self._table_name}', search='{self._search_function}')"


# ══════════════════════════════════════════════════════════════════════
#  LANCEDB (local)
# ══════════════════════════════════════════════════════════════════════

@functools.lru_cache(maxsize=None)
def _connect(db_path: str) -> lancedb.DBConnection:
    """One connection per database directory, shared by every store opened on it."""
    logger.info("Opening LanceDB at %s", db_path)
    return lancedb.connect(db_path)


def _lance_schema(dimensions: int) -> pa.Schema:
    return pa.schema([
        pa.field("vector", pa.list_(pa.float32(), dimensions)),
        pa.field("content", pa.utf8()),
        pa.field("metadata", pa.utf8()),
    ])


class LanceKnowledgeStore:
    """
    Knowledge store backed by a local LanceDB table.

    Parameters
    ----------
    db_path
        Database directory.
    table_name
        Chunk table name.
    dimensions
        Fixed embedding size; part of the table schema.
    """

    __slots__ = ("_db_path", "_table_name", "_dimensions", "db", "table")

    def __init__(self, db_path: str, table_name: str = "knowledge_chunks", dimensions: int = 3072) -> None:
        self._db_path = str(db_path)
        self._table_name = table_name
        self._dimensions = dimensions
        self.db: lancedb.DBConnection = _connect(self._db_path)
        self.table = self._open_or_create()


    def _open_or_create(self):
        if self._table_name in self.db.table_names():
            table = self.db.open_table(self._table_name)
            logger.info("Opened existing table '%s' (%d rows).", self._table_name, table.count_rows())
            return table
        logger.info("Created new table '%s' (dim=%d).", self._table_name, self._dimensions)
        return self.db.create_table(self._table_name, schema=_lance_schema(self._dimensions))


    def search(self, embedding: list[float], match_count: int, match_threshold: float) -> list[RetrievalResult]:
        hits = self.table.search(embedding).distance_type("cosine").limit(match_count).to_list()
        rows: list[StoredRow] = []
        for hit in hits:
            similarity = 1.0 - float(hit["_distance"])
            if similarity < match_threshold:
                continue
            rows.append({"content": hit["content"], "metadata": json.loads(hit["metadata"] or "{}"), "similarity": similarity})
        logger.info("Search returned %d/%d row(s) above threshold %.2f.", len(rows), len(hits), match_threshold)
        return _decode_rows(rows)


    def clear(self) -> None:
        if self._table_name in self.db.table_names():
            self.db.drop_table(self._table_name)
        self.table = self._open_or_create()


    def insert(self, chunk: KnowledgeChunk) -> None:
        if chunk.embedding is None:
            raise ValueError("Cannot insert a chunk without an embedding.")
        if len(chunk.embedding) != self._dimensions:
            raise ValueError(f"Embedding has {len(chunk.embedding)} dimensions, table expects {self._dimensions}.")
        self.table.add([{"vector": chunk.embedding, "content": chunk.content, "metadata": json.dumps(chunk.metadata.to_record())}])


    def count(self) -> int:
        return self.table.count_rows()


    def sample(self, limit: int = 3) -> list[StoredRow]:
        rows = self.table.to_arrow().slice(0, limit).to_pylist()
        return [{"content": row["content"], "metadata": json.loads(row["metadata"] or "{}")} for row in rows]


    def __repr__(self) -> str:
        return f"LanceKnowledgeStore(db='{self._db_path}', table='{self._table_name}', rows={self.count()})"


# ── Factory ───────────────────────────────────────────────────────────

def create_knowledge_store(settings: Settings) -> KnowledgeStore:
    """Build the backend selected by ``settings.KNOWLEDGE_BACKEND``."""
    if settings.KNOWLEDGE_BACKEND == "lancedb":
        return LanceKnowledgeStore(db_path=str(settings.LANCEDB_PATH), table_name=settings.KNOWLEDGE_TABLE, dimensions=settings.EMBEDDING_DIMENSIONS)

    if not settings.SUPABASE_URL or settings.SUPABASE_SERVICE_ROLE_KEY is None:
        raise ConfigurationError([name for name in ("SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY") if name in settings.missing_credentials()])
    client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY.get_secret_value())
    return SupabaseKnowledgeStore(client, table_name=settings.KNOWLEDGE_TABLE, search_function=settings.SEARCH_FUNCTION)
