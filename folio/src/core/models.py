"""
Folio - Data Models
====================
Pydantic models shared by the seeding tool, the knowledge store, and the
chat pipeline.

``KnowledgeChunk``
    Unit of retrieval: ``content`` + ``metadata`` + ``embedding``.
``RetrievalResult``
    One row returned by the vector search, with its ``similarity``.
``ChatTurn``
    A prior conversation turn as accepted by the chat endpoint.  Strict:
    non-string content is rejected rather than coerced.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr

ChunkType = Literal["summary", "work", "project", "use_case", "contact", "personal", "family", "hobbies", "values", "preferences"]
Role = Literal["user", "assistant"]


class ChunkMetadata(BaseModel):
    """Provenance and classification of a chunk."""

    model_config = ConfigDict(extra="allow")

    source: str
    type: ChunkType
    title: str | None = None
    company: str | None = None
    period: str | None = None
    section: str | None = None
    topics: list[str] | None = None

    def to_record(self) -> dict[str, Any]:
        """Serialisable dict without unset optional fields."""
        return self.model_dump(exclude_none=True)


class KnowledgeChunk(BaseModel):
    content: str
    metadata: ChunkMetadata
    embedding: list[float] | None = None

    def label(self) -> str:
        """Short description used in progress output."""
        if self.metadata.title:
            return f"{self.metadata.type} - {self.metadata.title}"
        if self.metadata.section:
            return f"{self.metadata.type} - {self.metadata.section}"
        return self.metadata.type


class RetrievalResult(BaseModel):
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    similarity: float


class ChatTurn(BaseModel):
    role: Role
    content: StrictStr
