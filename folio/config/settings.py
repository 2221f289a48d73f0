"""
Folio - Centralized Configuration
==================================
Uses ``pydantic-settings`` (``BaseSettings``) to load *all* configuration
from environment variables and the project-level ``.env`` file.

Security
--------
- ``GEMINI_API_KEY`` and ``SUPABASE_SERVICE_ROLE_KEY`` are typed as
  ``SecretStr``.  The raw values are never exposed in repr, logs, or
  tracebacks.
- Credentials are *optional at load time*.  The chat service must be able
  to boot and answer ``500 Configuration error`` when a key is missing,
  so the check lives in ``missing_credentials()`` and is enforced per
  request (and by the seeding script before any external call).

Paths
-----
All filesystem paths are ``Path.resolve()``-d at class level so they
work identically on Windows, WSL, and Linux.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings.

    Every field is loaded from environment variables (or ``.env``).

    Attributes
    ----------
    ENV : Literal["dev", "prod"]
        Environment mode controlling logging verbosity and whether error
        responses carry a ``details`` field.
    GEMINI_API_KEY : SecretStr | None
        API key for the Gemini REST API (embeddings + generation).
    SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY
        Managed knowledge store.  Only required when
        ``KNOWLEDGE_BACKEND == "supabase"``.
    KNOWLEDGE_BACKEND : Literal["supabase", "lancedb"]
        ``supabase`` in production, ``lancedb`` for a local on-disk store.
    PRIMARY_LLM_MODEL, FALLBACK_LLM_MODEL
        Generation models.  The fallback is tried once when the primary
        reports a quota error.
    REWRITE_MAX_RETRIES : int
        Client-side retries for the rewrite call.  The rewrite is
        best-effort, so it fails fast by default.
    MATCH_COUNT, MATCH_THRESHOLD
        Retrieval bounds passed to the store.
    HISTORY_LIMIT : int
        Most recent prior turns kept per request.
    UPSTREAM_TIMEOUT_SECONDS : float | None
        Optional server-side timeout for provider calls.  ``None`` leaves
        the HTTP client unbounded.
    CLIENT_TIMEOUT_SECONDS : float
        Timeout applied by ``ChatSession`` when calling the chat endpoint.
    """

    # ── Resolved Absolute Paths ────────────────────────────────────────
    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    NOTES_PATH: Path = BASE_DIR / "data" / "notes.md"
    LANCEDB_PATH: Path = BASE_DIR / "data" / "lancedb"

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"

    # ── API Keys (checked per request, see missing_credentials) ────────
    GEMINI_API_KEY: SecretStr | None = None
    SUPABASE_URL: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: SecretStr | None = None

    # ── Knowledge Store ────────────────────────────────────────────────
    KNOWLEDGE_BACKEND: Literal["supabase", "lancedb"] = "supabase"
    KNOWLEDGE_TABLE: str = "knowledge_chunks"
    SEARCH_FUNCTION: str = "search_knowledge"

    # ── Model Configuration ────────────────────────────────────────────
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    EMBEDDING_MODEL: str = "gemini-embedding-001"
    EMBEDDING_DIMENSIONS: int = 3072
    PRIMARY_LLM_MODEL: str = "gemini-flash-lite-latest"
    FALLBACK_LLM_MODEL: str = "gemini-flash-latest"
    REWRITE_MODEL: str = "gemini-flash-lite-latest"
    LLM_TEMPERATURE: float = 0.5
    LLM_MAX_OUTPUT_TOKENS: int = 2048
    REWRITE_MAX_OUTPUT_TOKENS: int = 128
    REWRITE_MAX_RETRIES: int = 0

    # ── Retrieval ──────────────────────────────────────────────────────
    MATCH_COUNT: int = 5
    MATCH_THRESHOLD: float = 0.5
    HISTORY_LIMIT: int = 10

    # ── HTTP behaviour ─────────────────────────────────────────────────
    RETRY_AFTER_SECONDS: int = 60
    UPSTREAM_TIMEOUT_SECONDS: float | None = None
    CLIENT_TIMEOUT_SECONDS: float = 30.0
    CHAT_ENDPOINT_URL: str = "http://localhost:8000/api/chat"
    CORS_ORIGINS: list[str] = ["*"]
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # ── Seeding ────────────────────────────────────────────────────────
    OWNER_NAME: str = "Alex Rivera"
    SEED_DELAY_SECONDS: float = 0.2

    # ── Validators ─────────────────────────────────────────────────────

    @field_validator("MATCH_COUNT")
    @classmethod
    def _match_count_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"MATCH_COUNT must be ≥ 1, got {v}")
        return v


    @field_validator("MATCH_THRESHOLD")
    @classmethod
    def _threshold_range(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"MATCH_THRESHOLD must be within 0–1, got {v}")
        return v


    @field_validator("HISTORY_LIMIT")
    @classmethod
    def _history_limit_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"HISTORY_LIMIT must be ≥ 0, got {v}")
        return v

    # ── Helpers ────────────────────────────────────────────────────────

    def missing_credentials(self) -> list[str]:
        """Return the names of required credentials that are not set."""
        missing: list[str] = []
        if self.GEMINI_API_KEY is None or not self.GEMINI_API_KEY.get_secret_value():
            missing.append("GEMINI_API_KEY")
        if self.KNOWLEDGE_BACKEND == "supabase":
            if not self.SUPABASE_URL:
                missing.append("SUPABASE_URL")
            if self.SUPABASE_SERVICE_ROLE_KEY is None or not self.SUPABASE_SERVICE_ROLE_KEY.get_secret_value():
                missing.append("SUPABASE_SERVICE_ROLE_KEY")
        return missing

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=Path(__file__).resolve().parent.parent.parent / ".env", env_file_encoding="utf-8", extra="ignore")


# ── Singleton Instance ─────────────────────────────────────────────────
# Import this throughout the project:
#     from folio.config.settings import settings
settings = Settings()
