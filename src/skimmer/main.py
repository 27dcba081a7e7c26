"""Skimmer — FastAPI server that summarizes articles and answers questions about them.

Every request fetches the article again, extracts its text, builds a prompt
and streams the model's answer back as chunked ``text/plain``.  Failures
that happen before streaming starts come back as ``{"error": ...}`` JSON
with a 4xx/5xx status; failures after that are reported inline by the relay.

Endpoints
---------
- ``GET  /``           — the single-page UI
- ``GET  /health``     — health check
- ``GET  /debug``      — environment / credential presence (non-production only)
- ``POST /summarize``  — stream a structured summary of ``{url}``
- ``POST /ask``        — stream an answer to ``{url, question}``
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from urllib.parse import urlparse

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from skimmer.config import config
from skimmer.errors import SkimmerError, ValidationError
from skimmer.extractor import extract_article
from skimmer.models import AskRequest, DebugResponse, HealthResponse, SummarizeRequest
from skimmer.prompts import Mode, build_prompt
from skimmer.relay import CompletionStream, check_credentials, close_clients, open_completion, relay

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
for _name in ("httpx", "httpcore", "openai", "anthropic"):
    logging.getLogger(_name).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

_INDEX_HTML = Path(__file__).resolve().parent / "static" / "index.html"


# ---------------------------------------------------------------------------
# FastAPI lifespan: release provider clients on shutdown
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "[SKIMMER] Server starting up (env=%s, provider=%s, model=%s)",
        config.environment,
        config.llm_provider,
        config.model_name,
    )
    if not config.model_api_key:
        logger.warning("[SKIMMER] No API key set for %s — requests will fail", config.llm_provider)

    yield

    await close_clients()
    logger.info("[SKIMMER] Server shutting down...")


app = FastAPI(
    title="Skimmer",
    description="Article summarizer — streams LLM summaries and answers about a web article",
    version="0.1.0",
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Error boundary
# ---------------------------------------------------------------------------

@app.exception_handler(SkimmerError)
async def skimmer_error_handler(request: Request, exc: SkimmerError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("[SKIMMER] Rejected malformed request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _require_url(url: str | None) -> str:
    """Return *url* stripped, or raise ``ValidationError`` if it is not http(s)."""
    if not url or not url.strip():
        raise ValidationError("URL is required")
    url = url.strip()
    try:
        parsed = urlparse(url)
        valid = parsed.scheme in ("http", "https") and bool(parsed.hostname)
    except ValueError as e:
        raise ValidationError("A valid http(s) URL is required") from e
    if not valid:
        raise ValidationError("A valid http(s) URL is required")
    return url


def _stream_response(upstream: CompletionStream, mode: Mode) -> StreamingResponse:
    """Wrap the relay in a chunked ``text/plain`` response.

    The background task closes the upstream stream even when the body is
    never iterated (client gone before the first send).
    """
    return StreamingResponse(
        relay(upstream, mode),
        background=BackgroundTask(upstream.aclose),
        media_type="text/plain",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


# ---------------------------------------------------------------------------
# API Endpoints
# ---------------------------------------------------------------------------

@app.get("/", response_class=HTMLResponse)
async def index() -> HTMLResponse:
    """Serve the single-page UI."""
    return HTMLResponse(_INDEX_HTML.read_text(encoding="utf-8"))


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy")


@app.get("/debug", response_model=DebugResponse)
async def debug():
    """Report the environment and whether a model credential is present.

    Never exposes the credential itself.  Disabled in production.
    """
    if config.is_production:
        return JSONResponse(
            status_code=403,
            content={"error": "Debug endpoint not available in production"},
        )
    return DebugResponse(
        environment=config.environment,
        hasModelCredential=bool(config.model_api_key),
    )


@app.post("/summarize")
async def summarize(request: SummarizeRequest):
    """Stream a four-part Markdown summary of the article at ``url``."""
    check_credentials()
    url = _require_url(request.url)
    logger.info("[SKIMMER] Summarize request: %s", url)

    try:
        article = await extract_article(url, strip_boilerplate=True)
        prompt = build_prompt(article.text, Mode.SUMMARIZE, title=article.title)
        upstream = await open_completion(prompt, Mode.SUMMARIZE)
    except SkimmerError:
        raise
    except Exception as e:
        logger.error("[SKIMMER] Error summarizing %s: %s", url, e, exc_info=True)
        raise SkimmerError("Failed to process the article") from e

    return _stream_response(upstream, Mode.SUMMARIZE)


@app.post("/ask")
async def ask(request: AskRequest):
    """Stream an answer to ``question`` drawn only from the article at ``url``."""
    check_credentials()
    if not request.url or not request.question or not request.question.strip():
        raise ValidationError("URL and question are required")
    url = _require_url(request.url)
    question = request.question.strip()
    logger.info("[SKIMMER] Ask request: %s — %s", url, question[:100])

    try:
        article = await extract_article(url)
        prompt = build_prompt(article.text, Mode.ANSWER, question)
        upstream = await open_completion(prompt, Mode.ANSWER)
    except SkimmerError:
        raise
    except Exception as e:
        logger.error("[SKIMMER] Error answering question for %s: %s", url, e, exc_info=True)
        raise SkimmerError("Failed to process question") from e

    return _stream_response(upstream, Mode.ANSWER)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Launch the Skimmer server."""
    port = int(os.environ.get("PORT", "8000"))

    logger.info("[SKIMMER] Starting server on port %d", port)
    logger.info("[SKIMMER] UI:        http://localhost:%d/", port)
    logger.info("[SKIMMER] Summarize: http://localhost:%d/summarize", port)
    logger.info("[SKIMMER] Ask:       http://localhost:%d/ask", port)

    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")


if __name__ == "__main__":
    main()
