"""
Folio - Error Taxonomy
=======================
Exceptions raised by the RAG pipeline and the provider client.  The chat
route maps them onto HTTP responses:

``ConfigurationError``  → 500 before any external call.
``QuotaExceededError``  → triggers the one-shot model fallback; a second
                          occurrence becomes 503 with retry guidance.
``UpstreamError``       → 500 (not retried).
``StreamReadError``     → aborts a stream that has already started.

Provider error bodies are treated as untrusted documents:
``classify_provider_error`` decodes them through a strict envelope and
falls back to a plain ``UpstreamError`` for unknown shapes.
"""

from __future__ import annotations

from pydantic import BaseModel, ValidationError

_QUOTA_STATUS = "RESOURCE_EXHAUSTED"
_QUOTA_CODE = 429


class FolioError(Exception):
    """Base class for every error raised by Folio."""


class ConfigurationError(FolioError):
    """Required credentials are missing."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing configuration: {', '.join(self.missing)}")


class UpstreamError(FolioError):
    """A provider returned a non-2xx status or an undecodable payload."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class QuotaExceededError(UpstreamError):
    """The provider reported a quota / rate-limit condition."""


class EmbeddingError(UpstreamError):
    """The embedding call failed.  Fatal for the request."""


class StreamReadError(FolioError):
    """The generation stream broke after it was opened."""


# ── Provider error envelope ────────────────────────────────────────────

class _ProviderErrorDetail(BaseModel):
    code: int | None = None
    message: str | None = None
    status: str | None = None


class _ProviderErrorEnvelope(BaseModel):
    error: _ProviderErrorDetail


def is_quota_error(status_code: int, detail: _ProviderErrorDetail | None) -> bool:
    if status_code == _QUOTA_CODE:
        return True
    return detail is not None and (detail.code == _QUOTA_CODE or detail.status == _QUOTA_STATUS)


def classify_provider_error(status_code: int, body: str, error_cls: type[UpstreamError] = UpstreamError, detect_quota: bool = True) -> UpstreamError:
    """
    Turn a failed provider reply into the matching exception instance.

    A reply is a quota error when the HTTP status is 429 or when the
    decoded body carries ``error.code == 429`` or
    ``error.status == "RESOURCE_EXHAUSTED"``.  Everything else, and every
    reply when *detect_quota* is off, becomes *error_cls*.
    """
    detail: _ProviderErrorDetail | None = None
    try:
        detail = _ProviderErrorEnvelope.model_validate_json(body).error
    except ValidationError:
        detail = None

    if detect_quota and is_quota_error(status_code, detail):
        return QuotaExceededError("QUOTA_EXCEEDED", status_code=status_code, body=body)

    summary = detail.message if detail is not None and detail.message else body[:200]
    return error_cls(f"Provider error {status_code}: {summary}", status_code=status_code, body=body)
