"""Tests for skimmer.extractor — fetching and HTML-to-text extraction.

Pure-local tests: fetches go through ``httpx.MockTransport``.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from skimmer.errors import ExtractionError, FetchError
from skimmer.extractor import (
    CONTENT_SELECTORS,
    extract,
    extract_article,
    fetch_document,
    normalize_whitespace,
    parse_article,
)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)


# ---------------------------------------------------------------------------
# Whitespace normalisation
# ---------------------------------------------------------------------------


class TestNormalizeWhitespace:
    """Tests for normalize_whitespace()."""

    def test_collapses_spaces(self) -> None:
        assert normalize_whitespace("a  \t  b") == "a b"

    def test_collapses_newlines(self) -> None:
        assert normalize_whitespace("a\n\n\n b") == "a\nb"

    def test_trims_ends(self) -> None:
        assert normalize_whitespace("  \n a \n \n b  \n") == "a\nb"

    def test_non_breaking_space(self) -> None:
        assert normalize_whitespace("\xa0a\xa0\xa0b") == "a b"

    def test_crlf(self) -> None:
        assert normalize_whitespace("a\r\n\r\nb") == "a\nb"

    def test_whitespace_only(self) -> None:
        assert normalize_whitespace(" \n\t ") == ""

    @pytest.mark.parametrize(
        "text",
        [
            "plain",
            "  lots   of\n\n\nspace  ",
            "para one.\n  para two.\t\tend",
            "\xa0\r\n mixed \r\n\xa0",
        ],
    )
    def test_idempotent(self, text: str) -> None:
        once = normalize_whitespace(text)
        assert normalize_whitespace(once) == once


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParseArticle:
    """Tests for parse_article()."""

    def test_article_wins_over_other_selectors(self) -> None:
        html = (
            "<html><body>"
            "<main>Main text</main>"
            '<div class="content">Generic content</div>'
            "<article><p>First para.</p><p>Second   para.</p></article>"
            "</body></html>"
        )
        article = parse_article(html, "https://example.com/a")
        assert article.text == "First para.\nSecond para."
        assert article.source == "article"
        assert article.url == "https://example.com/a"

    def test_role_main_before_main_tag(self) -> None:
        html = (
            "<body>"
            "<main>Main tag</main>"
            '<div role="main">Landmark</div>'
            "</body>"
        )
        article = parse_article(html)
        assert article.text == "Landmark"
        assert article.source == '[role="main"]'

    def test_content_class_selector(self) -> None:
        html = '<body><div class="sidebar">Side</div><div class="post-content">Post body</div></body>'
        article = parse_article(html)
        assert article.text == "Post body"
        assert article.source == ".post-content"

    def test_all_matches_of_winning_selector_concatenated(self) -> None:
        html = "<body><article>One</article><p>between</p><article>Two</article></body>"
        assert parse_article(html).text == "One\nTwo"

    def test_nested_matches_not_duplicated(self) -> None:
        html = "<body><article><p>Outer</p><article><p>Inner</p></article></article></body>"
        assert parse_article(html).text == "Outer\nInner"

    def test_falls_back_to_body(self) -> None:
        html = "<html><head><title>T</title></head><body><div><p>Just a page</p></div></body></html>"
        article = parse_article(html)
        assert article.text == "Just a page"
        assert article.source == "body"

    def test_empty_match_falls_back_to_body(self) -> None:
        html = "<body><article>   </article><p>Body text</p></body>"
        article = parse_article(html)
        assert article.text == "Body text"
        assert article.source == "body"

    def test_empty_document_raises(self) -> None:
        html = "<html><body>   <script>var x = 1;</script>\n </body></html>"
        with pytest.raises(ExtractionError):
            parse_article(html)

    def test_scripts_and_styles_removed(self) -> None:
        html = "<body><article>Visible<script>hidden()</script><style>.x{}</style></article></body>"
        assert parse_article(html).text == "Visible"

    def test_boilerplate_kept_by_default(self) -> None:
        html = "<body><nav>Menu</nav><p>Story</p></body>"
        assert parse_article(html).text == "Menu\nStory"

    def test_boilerplate_stripped_on_request(self) -> None:
        html = (
            "<body><header>Site</header><nav>Menu</nav><p>Story</p>"
            '<div class="comments">Nice!</div><div class="ads">Buy</div>'
            "<footer>Foot</footer></body>"
        )
        assert parse_article(html, strip_boilerplate=True).text == "Story"

    def test_title_from_h1(self) -> None:
        html = "<html><head><title>Page Title</title></head><body><h1>Headline</h1><article>Text</article></body></html>"
        assert parse_article(html).title == "Headline"

    def test_title_from_title_tag(self) -> None:
        html = "<html><head><title> Page   Title </title></head><body><article>Text</article></body></html>"
        assert parse_article(html).title == "Page Title"

    def test_title_missing(self) -> None:
        assert parse_article("<body><article>Text</article></body>").title == ""

    def test_malformed_html(self) -> None:
        article = parse_article("<html><body><article><p>no close tags")
        assert article.text == "no close tags"

    def test_selector_priority_order(self) -> None:
        assert CONTENT_SELECTORS[0] == "article"
        assert CONTENT_SELECTORS.index('[role="main"]') < CONTENT_SELECTORS.index("main")
        assert CONTENT_SELECTORS[-1] == ".content"


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------


class TestFetchDocument:
    """Tests for fetch_document()."""

    @pytest.mark.asyncio
    async def test_returns_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<p>hi</p>")

        async with _client(handler) as client:
            assert await fetch_document("https://example.com/a", client=client) == "<p>hi</p>"

    @pytest.mark.asyncio
    async def test_follows_redirects(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "https://example.com/new"})
            return httpx.Response(200, text="moved here")

        async with _client(handler) as client:
            assert await fetch_document("https://example.com/old", client=client) == "moved here"

    @pytest.mark.asyncio
    async def test_error_status_is_400(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, text="nope")

        async with _client(handler) as client:
            with pytest.raises(FetchError) as exc_info:
                await fetch_document("https://example.com/missing", client=client)
        assert exc_info.value.status_code == 400
        assert "404" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_transport_failure_is_500(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(FetchError) as exc_info:
                await fetch_document("https://unreachable.example", client=client)
        assert exc_info.value.status_code == 500


class TestExtractArticle:
    """Tests for extract_article() / extract()."""

    @pytest.mark.asyncio
    async def test_end_to_end(self) -> None:
        html = "<html><body><h1>Title</h1><nav>Menu</nav><article><p>Body copy.</p></article></body></html>"

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text=html, headers={"Content-Type": "text/html"})

        async with _client(handler) as client:
            article = await extract_article("https://example.com/post", client=client)
        assert article.text == "Body copy."
        assert article.title == "Title"

    @pytest.mark.asyncio
    async def test_refetches_every_call(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url)
            return httpx.Response(200, text="<article>Same</article>")

        async with _client(handler) as client:
            await extract_article("https://example.com/post", client=client)
            await extract_article("https://example.com/post", client=client)
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_extract_returns_text(self) -> None:
        with patch(
            "skimmer.extractor.fetch_document",
            new=AsyncMock(return_value="<body><nav>Menu</nav><main>Main body</main></body>"),
        ) as mock_fetch:
            text = await extract("https://example.com/x", strip_boilerplate=True)
        assert text == "Main body"
        mock_fetch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_extract_empty_page_raises(self) -> None:
        with patch("skimmer.extractor.fetch_document", new=AsyncMock(return_value="<body> </body>")):
            with pytest.raises(ExtractionError):
                await extract("https://example.com/empty")
