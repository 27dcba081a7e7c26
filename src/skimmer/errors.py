"""Error taxonomy for the summarizer service.

Every error raised on purpose derives from ``SkimmerError`` and carries the
HTTP status the request boundary should answer with.  ``UpstreamStreamError``
is the exception: it happens after response headers are committed, so the
relay turns it into an inline text fragment instead of a status code.
"""

from __future__ import annotations


class SkimmerError(Exception):
    """Base exception for summarizer errors."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigError(SkimmerError):
    """The model credential (or other required setting) is missing."""

    status_code = 500


class ValidationError(SkimmerError):
    """A required request field is missing or malformed."""

    status_code = 400


class FetchError(SkimmerError):
    """The source document could not be retrieved.

    400 when the source site answered with a non-success status, 500 when the
    request never got an answer.
    """

    status_code = 400


class ExtractionError(SkimmerError):
    """No readable text could be derived from the source document."""

    status_code = 400


class CompletionError(SkimmerError):
    """The completion service could not be reached before streaming began."""

    status_code = 500


class UpstreamStreamError(SkimmerError):
    """The completion service failed after the stream had started."""
