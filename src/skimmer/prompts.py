"""Prompt construction for the two completion modes.

Both builders are pure functions of their inputs.  Article text longer than
``config.max_article_chars`` is cut at that budget (1 token ≈ 4 chars keeps
the default well inside current context windows).
"""

from __future__ import annotations

import logging
from enum import Enum

from skimmer.config import config
from skimmer.errors import ValidationError

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    """What the model is asked to do with the article."""

    SUMMARIZE = "summarize"
    ANSWER = "answer"


_SUMMARY_PROMPT = """\
Please write a summary of the following article{title_clause}.

Structure the summary into four sections:
1. Summary — a concise overview of the main content.
2. Thesis and supporting evidence — the central claim and what backs it up.
3. Context — how this piece fits into the broader discussion of its topic.
4. Rating — rate the article from 1 to 10 and explain which areas could be \
improved.

Format the response with Markdown for readability.

Article content:
{article}
"""

_ANSWER_PROMPT = """\
You are an AI assistant helping to answer questions about an article.

Here is the article content:
{article}

Question: {question}

Please provide a clear, concise answer based only on the information in the \
article. If the article doesn't contain the information needed to answer the \
question, say so.
Format your response in Markdown.
"""


def _fit_article(article: str) -> str:
    """Validate and trim article text to the configured character budget."""
    if not article or not article.strip():
        raise ValidationError("Article text is empty")
    limit = config.max_article_chars
    if limit and len(article) > limit:
        logger.warning("Article text trimmed from %d to %d chars", len(article), limit)
        return article[:limit]
    return article


def build_summary_prompt(article: str, title: str = "") -> str:
    """Return the four-part structured summary instruction for *article*."""
    title_clause = f' titled "{title}"' if title else ""
    return _SUMMARY_PROMPT.format(title_clause=title_clause, article=_fit_article(article))


def build_answer_prompt(article: str, question: str) -> str:
    """Return the instruction to answer *question* strictly from *article*."""
    if not question or not question.strip():
        raise ValidationError("Question is required")
    return _ANSWER_PROMPT.format(article=_fit_article(article), question=question.strip())


def build_prompt(
    article: str,
    mode: Mode,
    question: str | None = None,
    title: str = "",
) -> str:
    """Dispatch to the builder for *mode*."""
    if mode is Mode.ANSWER:
        return build_answer_prompt(article, question or "")
    return build_summary_prompt(article, title=title)
