"""Completion relay — stream a model completion through to the HTTP response.

The relay is two one-way channels joined by a copy loop:

- the *upstream* channel is a :class:`CompletionStream` opened against the
  model provider (``openai`` or ``anthropic`` SDK, both with ``stream=True``);
- the *outbound* channel is the async generator returned by
  :func:`relay`, which FastAPI's ``StreamingResponse`` drains into the
  chunked response body.

Opening the upstream stream happens *before* the response starts, so a
missing credential or an unreachable service still produces a JSON error
with a proper status.  Once fragments flow, an upstream failure becomes one
inline error fragment and the stream ends.  The upstream side is closed
exactly once on every exit path, including a client that disconnects
mid-stream.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable

import anthropic
import openai

from skimmer.config import config
from skimmer.errors import CompletionError, ConfigError, UpstreamStreamError
from skimmer.prompts import Mode

if TYPE_CHECKING:
    from anthropic import AsyncAnthropic
    from openai import AsyncOpenAI

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Per-mode completion budgets
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CompletionSettings:
    """Token budget and sampling temperature for one mode."""

    max_tokens: int
    # None means provider default
    temperature: float | None = None


COMPLETION_SETTINGS: dict[Mode, CompletionSettings] = {
    Mode.SUMMARIZE: CompletionSettings(max_tokens=1000),
    Mode.ANSWER: CompletionSettings(max_tokens=4000, temperature=0.2),
}

ERROR_MESSAGES: dict[Mode, str] = {
    Mode.SUMMARIZE: "Error generating the summary. Please try again.",
    Mode.ANSWER: "Error processing your question. Please try again.",
}


# ---------------------------------------------------------------------------
# Provider client singletons
# ---------------------------------------------------------------------------

_openai_client: AsyncOpenAI | None = None
_anthropic_client: AsyncAnthropic | None = None


def check_credentials() -> None:
    """Raise ``ConfigError`` unless the active provider has an API key."""
    if not config.model_api_key:
        logger.error("No API key configured for provider %s", config.llm_provider)
        raise ConfigError("Server configuration error")


def _get_openai_client() -> AsyncOpenAI:
    """Lazy singleton for the OpenAI client."""
    global _openai_client
    check_credentials()
    if _openai_client is None:
        _openai_client = openai.AsyncOpenAI(
            api_key=config.openai_api_key,
            base_url=config.openai_base_url or None,
            timeout=config.completion_timeout,
        )
        logger.info("OpenAI client created (model=%s)", config.model_name)
    return _openai_client


def _get_anthropic_client() -> AsyncAnthropic:
    """Lazy singleton for the Anthropic client."""
    global _anthropic_client
    check_credentials()
    if _anthropic_client is None:
        _anthropic_client = anthropic.AsyncAnthropic(
            api_key=config.anthropic_api_key,
            timeout=config.completion_timeout,
        )
        logger.info("Anthropic client created (model=%s)", config.model_name)
    return _anthropic_client


# ---------------------------------------------------------------------------
# Upstream channel
# ---------------------------------------------------------------------------

def _openai_text(chunk: Any) -> str:
    """Text delta of an OpenAI ``ChatCompletionChunk`` ("" if none)."""
    if not chunk.choices:
        return ""
    return chunk.choices[0].delta.content or ""


def _anthropic_text(event: Any) -> str:
    """Text delta of an Anthropic stream event ("" for non-text events)."""
    if event.type == "content_block_delta" and event.delta.type == "text_delta":
        return event.delta.text
    return ""


class CompletionStream:
    """Text fragments of one opened upstream completion, in arrival order.

    Wraps a provider ``AsyncStream`` of events and a function that pulls the
    text delta out of each event.  Events without text are skipped; any
    failure while reading is raised as ``UpstreamStreamError``.
    """

    def __init__(self, events: Any, to_text: Callable[[Any], str]):
        self._events = events
        self._to_text = to_text
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[str]:
        try:
            async for event in self._events:
                text = self._to_text(event)
                if text:
                    yield text
        except Exception as e:
            raise UpstreamStreamError(f"Completion stream failed: {e}") from e

    async def aclose(self) -> None:
        """Release the upstream connection; later calls are no-ops."""
        if self.closed:
            return
        self.closed = True
        close = getattr(self._events, "close", None)
        if close is not None:
            await close()


async def _open_openai(prompt: str, settings: CompletionSettings) -> CompletionStream:
    client = _get_openai_client()
    kwargs: dict[str, Any] = {}
    if settings.temperature is not None:
        kwargs["temperature"] = settings.temperature
    try:
        events = await client.chat.completions.create(
            model=config.model_name,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=settings.max_tokens,
            stream=True,
            **kwargs,
        )
    except openai.APIError as e:
        logger.error("OpenAI request failed: %s", e)
        raise CompletionError("Failed to reach the completion service") from e
    return CompletionStream(events, _openai_text)


async def _open_anthropic(prompt: str, settings: CompletionSettings) -> CompletionStream:
    client = _get_anthropic_client()
    kwargs: dict[str, Any] = {}
    if settings.temperature is not None:
        kwargs["temperature"] = settings.temperature
    try:
        events = await client.messages.create(
            model=config.model_name,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=settings.max_tokens,
            stream=True,
            **kwargs,
        )
    except anthropic.APIError as e:
        logger.error("Anthropic request failed: %s", e)
        raise CompletionError("Failed to reach the completion service") from e
    return CompletionStream(events, _anthropic_text)


async def open_completion(prompt: str, mode: Mode) -> CompletionStream:
    """Start a streamed completion for *prompt* using the budget of *mode*.

    Raises ``ConfigError`` or ``CompletionError`` before any fragment exists.
    """
    settings = COMPLETION_SETTINGS[mode]
    logger.info(
        "Opening %s completion (provider=%s, max_tokens=%d)",
        mode.value,
        config.llm_provider,
        settings.max_tokens,
    )
    if config.llm_provider == "anthropic":
        return await _open_anthropic(prompt, settings)
    return await _open_openai(prompt, settings)


# ---------------------------------------------------------------------------
# Copy loop
# ---------------------------------------------------------------------------

async def relay(upstream: CompletionStream, mode: Mode) -> AsyncIterator[str]:
    """Re-emit every upstream fragment unchanged, in order.

    A failure while reading upstream yields a single error fragment for
    *mode* and ends the stream.  A consumer that goes away (generator closed
    or task cancelled) stops the loop without writing anything further.
    """
    count = 0
    try:
        async for fragment in upstream:
            count += 1
            yield fragment
        logger.info("Stream complete (%s, %d fragments)", mode.value, count)
    except UpstreamStreamError:
        logger.error("Upstream stream failed after %d fragments", count, exc_info=True)
        message = ERROR_MESSAGES[mode]
        yield f"\n\n{message}" if count else message
    except (GeneratorExit, asyncio.CancelledError):
        logger.info("Client disconnected after %d fragments (%s)", count, mode.value)
        raise
    finally:
        await upstream.aclose()


async def close_clients() -> None:
    """Close any provider client created so far (called on shutdown)."""
    global _openai_client, _anthropic_client
    for client in (_openai_client, _anthropic_client):
        if client is not None:
            await client.close()
    _openai_client = None
    _anthropic_client = None
