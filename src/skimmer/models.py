"""Shared data models for the summarizer service."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel


@dataclass(frozen=True)
class Article:
    """Readable content extracted from one fetch of a source URL."""

    url: str
    text: str
    title: str = ""
    # Content selector that matched, or "body" for the full-page fallback
    source: str = "body"


# ---------------------------------------------------------------------------
# Request bodies
#
# Fields are optional on purpose: missing values are reported by the handlers
# as a 400 ``{"error": ...}`` body instead of FastAPI's default 422.
# ---------------------------------------------------------------------------


class SummarizeRequest(BaseModel):
    """Request body for ``POST /summarize``."""
    url: str | None = None


class AskRequest(BaseModel):
    """Request body for ``POST /ask``."""
    url: str | None = None
    question: str | None = None


class DebugResponse(BaseModel):
    environment: str
    hasModelCredential: bool


class HealthResponse(BaseModel):
    status: str
