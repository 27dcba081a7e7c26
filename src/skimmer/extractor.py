"""Article extraction — fetch a URL and derive its readable text with BeautifulSoup.

The main content region is chosen from a fixed, ordered list of CSS
selectors.  The first selector that matches any element wins; when none
match (or the match holds no text) the whole ``<body>`` is used instead.
The resulting text is whitespace-normalised: runs of spaces collapse to one
space, runs of line breaks (and the spaces around them) collapse to one
newline, and the ends are trimmed.

Nothing is cached: every call fetches and parses the document again.
"""

from __future__ import annotations

import logging
import re

import httpx
from bs4 import BeautifulSoup, Tag

from skimmer.config import config
from skimmer.errors import ExtractionError, FetchError
from skimmer.models import Article

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Selectors
# ---------------------------------------------------------------------------

# Content regions in priority order, first match wins
CONTENT_SELECTORS: tuple[str, ...] = (
    "article",
    '[role="main"]',
    ".article-content",
    ".post-content",
    ".entry-content",
    "main",
    "#content",
    ".content",
)

# Always removed before extraction
_NON_CONTENT = "script, style, noscript, template"

# Removed as well when boilerplate stripping is requested (summary path)
_BOILERPLATE = "nav, header, footer, .ads, .comments"

# Elements that end with a line break in the extracted text
_BLOCK_TAGS = (
    "p", "div", "li", "ul", "ol", "dt", "dd", "h1", "h2", "h3", "h4", "h5", "h6",
    "br", "hr", "tr", "table", "blockquote", "pre", "figure", "figcaption",
    "section", "article", "main", "aside", "nav", "header", "footer",
)

_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
}

_SPACES_RE = re.compile(r"[^\S\n]+")
_NEWLINES_RE = re.compile(r"\s*\n\s*")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize_whitespace(text: str) -> str:
    """Collapse spaces to one space and line breaks to one newline, then trim.

    Idempotent: normalising already-normalised text returns it unchanged.
    """
    text = _SPACES_RE.sub(" ", text)
    text = _NEWLINES_RE.sub("\n", text)
    return text.strip()


async def fetch_document(url: str, client: httpx.AsyncClient | None = None) -> str:
    """Return the body of *url* as text, following redirects.

    Raises ``FetchError`` (400) when the source answers with a non-success
    status and ``FetchError`` (500) when no answer arrives at all.
    """
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(
            follow_redirects=True,
            timeout=config.fetch_timeout,
            headers=_HEADERS,
        )
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        logger.warning("Source %s answered HTTP %d", url, status)
        raise FetchError(f"The article URL returned HTTP {status}", status_code=400) from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warning("Failed to fetch %s: %s", url, e)
        raise FetchError("Could not retrieve the article URL", status_code=500) from e
    finally:
        if owns_client:
            await client.aclose()

    logger.debug("Fetched %s (%d bytes)", response.url, len(response.content))
    return response.text


def parse_article(html: str, url: str = "", *, strip_boilerplate: bool = False) -> Article:
    """Extract the readable article from an HTML document.

    Raises ``ExtractionError`` when neither a content region nor the page
    body yields any non-whitespace text.
    """
    soup = BeautifulSoup(html, "html.parser")

    _remove(soup, _NON_CONTENT)
    if strip_boilerplate:
        _remove(soup, _BOILERPLATE)

    title = _find_title(soup)
    _mark_blocks(soup)

    source = "body"
    text = ""
    match = _select_content(soup)
    if match is not None:
        source, elements = match
        text = normalize_whitespace("".join(el.get_text() for el in elements))

    if not text:
        source = "body"
        root = soup.body or soup
        text = normalize_whitespace(root.get_text())

    if not text:
        raise ExtractionError("Could not extract article content")

    return Article(url=url, text=text, title=title, source=source)


async def extract_article(
    url: str,
    *,
    strip_boilerplate: bool = False,
    client: httpx.AsyncClient | None = None,
) -> Article:
    """Fetch *url* and return its extracted :class:`Article`."""
    html = await fetch_document(url, client=client)
    article = parse_article(html, url, strip_boilerplate=strip_boilerplate)
    logger.info(
        "Extracted %d chars from %s (selector=%s)",
        len(article.text),
        url,
        article.source,
    )
    return article


async def extract(url: str, *, strip_boilerplate: bool = False) -> str:
    """Fetch *url* and return only its normalised article text."""
    article = await extract_article(url, strip_boilerplate=strip_boilerplate)
    return article.text


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _select_content(soup: BeautifulSoup) -> tuple[str, list[Tag]] | None:
    """Return ``(selector, elements)`` for the first selector that matches.

    Elements nested inside another match of the same selector are dropped
    so their text is not counted twice.
    """
    for selector in CONTENT_SELECTORS:
        found = soup.select(selector)
        if not found:
            continue
        matched = set(map(id, found))
        outermost = [
            el for el in found
            if not any(id(parent) in matched for parent in el.parents)
        ]
        return selector, outermost
    return None


def _find_title(soup: BeautifulSoup) -> str:
    """First ``<h1>`` text, else the document ``<title>``, else empty."""
    for tag in (soup.find("h1"), soup.title):
        if tag is not None:
            title = normalize_whitespace(tag.get_text(" "))
            if title:
                return title
    return ""


def _mark_blocks(soup: BeautifulSoup) -> None:
    """Append a line break to every block element so paragraphs stay apart."""
    for tag in soup.find_all(list(_BLOCK_TAGS)):
        if tag.name == "br":
            tag.replace_with("\n")
        else:
            tag.append("\n")


def _remove(soup: BeautifulSoup, selector: str) -> None:
    """Drop every element matching *selector* (nested matches included)."""
    for tag in soup.select(selector):
        if not tag.decomposed:
            tag.decompose()
