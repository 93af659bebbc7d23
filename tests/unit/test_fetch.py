"""
Tests for charset decoding, redirect following, the HTML snippet fetcher and
the URL optimizer, all over the scripted fake transport.
"""

import asyncio

import pytest

from metalink.config.config import FetchOptions
from metalink.exceptions import InvalidRedirectError, RedirectLoopError, TooManyRedirectsError
from metalink.fetch.charset import (
    META_SNIFF_BYTES,
    charset_from_content_type,
    decode_body,
    looks_like_html,
    normalize_charset,
)
from metalink.fetch.html_fetcher import DEFAULT_ACCEPT, HtmlSnippetFetcher
from metalink.fetch.protocols import FetchResponse
from metalink.fetch.redirect_resolver import RedirectResolver
from metalink.fetch.redirects import Deadline, get_with_redirects
from metalink.models.enums import CharsetSource

A = "https://example.com/a"
B = "https://example.com/b"
C = "https://example.com/c"


@pytest.mark.unit
class TestCharset:
    """Charset detection priority."""

    def test_header_charset(self):
        body = "<p>café</p>".encode("latin-1")
        decoded = decode_body(body, {"content-type": "text/html; charset=ISO-8859-1"})
        assert decoded.text == "<p>café</p>"
        assert decoded.charset == "latin1"
        assert decoded.source is CharsetSource.HEADER

    def test_bom_beats_header(self):
        body = b"\xef\xbb\xbf" + "naïve".encode("utf-8")
        decoded = decode_body(body, {"content-type": "text/html; charset=latin1"})
        assert decoded.text == "naïve"
        assert decoded.source is CharsetSource.BOM

    def test_meta_charset(self):
        body = b'<html><head><meta charset="windows-1252"></head><p>caf\xe9</p>'
        decoded = decode_body(body, {"content-type": "text/html"})
        assert decoded.text.endswith("<p>café</p>")
        assert decoded.source is CharsetSource.META

    def test_http_equiv_meta(self):
        body = b'<meta http-equiv="Content-Type" content="text/html; charset=utf-8">\xc3\xa9'
        decoded = decode_body(body, {})
        assert decoded.text.endswith("é")
        assert decoded.source is CharsetSource.META

    def test_unsupported_meta_defers_to_generic_token(self):
        body = b'<script>var x="charset=latin1"</script><meta charset="bogus">caf\xe9'
        decoded = decode_body(body, {})
        assert decoded.text.endswith("café")
        assert decoded.charset == "latin1"
        assert decoded.source is CharsetSource.META

    def test_meta_past_sniff_limit_is_ignored(self):
        body = b" " * META_SNIFF_BYTES + b'<meta charset="latin1">'
        assert decode_body(body, {}).source is CharsetSource.FALLBACK

    def test_unsupported_charset_falls_through(self):
        """Only UTF-8 and Latin-1 are decoded natively."""
        decoded = decode_body("héllo".encode("utf-8"), {"content-type": "text/html; charset=shift_jis"})
        assert decoded.text == "héllo"
        assert decoded.source is CharsetSource.FALLBACK

    def test_helpers(self):
        assert charset_from_content_type('text/html; charset="UTF-8"; foo=bar') == "utf-8"
        assert charset_from_content_type("text/html") is None
        assert normalize_charset("ISO8859-1") == "latin1"
        assert normalize_charset("koi8-r") is None
        assert looks_like_html(None)
        assert looks_like_html("application/xhtml+xml")
        assert not looks_like_html("image/png")


@pytest.mark.unit
class TestGetWithRedirects:
    @pytest.mark.asyncio
    async def test_follows_chain(self, fake_fetcher, fetch_options):
        fake_fetcher.redirect("GET", A, "/b").html(B, "<p>b</p>")
        response = await get_with_redirects(fake_fetcher, A, fetch_options)
        assert response.url == B
        assert response.is_ok
        assert fake_fetcher.calls_for("GET") == [A, B]

    @pytest.mark.asyncio
    async def test_self_redirect_is_a_loop(self, fake_fetcher, fetch_options):
        fake_fetcher.redirect("GET", A, "https://EXAMPLE.com:443/a")
        response = await get_with_redirects(fake_fetcher, A, fetch_options)
        assert isinstance(response.error, RedirectLoopError)

    @pytest.mark.asyncio
    async def test_limit(self, fake_fetcher):
        fake_fetcher.redirect("GET", A, B).redirect("GET", B, C)
        response = await get_with_redirects(fake_fetcher, A, FetchOptions(max_redirects=1))
        assert isinstance(response.error, TooManyRedirectsError)
        assert fake_fetcher.calls_for("GET") == [A, B]

    @pytest.mark.asyncio
    async def test_invalid_location(self, fake_fetcher, fetch_options):
        fake_fetcher.redirect("GET", A, "javascript:alert(1)")
        response = await get_with_redirects(fake_fetcher, A, fetch_options)
        assert isinstance(response.error, InvalidRedirectError)

    @pytest.mark.asyncio
    async def test_proxy_template_is_applied(self, fake_fetcher):
        proxied = "https://proxy.test/?u=https%3A%2F%2Fexample.com%2Fa"
        fake_fetcher.html(proxied, "<p>ok</p>")
        options = FetchOptions(proxy_url="https://proxy.test/?u={urlEncoded}")
        response = await get_with_redirects(fake_fetcher, A, options)
        assert response.is_ok
        assert fake_fetcher.calls_for("GET") == [proxied]

    def test_spent_deadline(self):
        deadline = Deadline(-1.0)
        assert deadline.options_for_hop(FetchOptions()) is None
        assert isinstance(deadline.expired_response(A).error, asyncio.TimeoutError)

    def test_hop_options_carry_remaining_budget(self):
        options = Deadline(30.0).options_for_hop(FetchOptions(timeout=30.0))
        assert 0 < options.timeout <= 30.0


@pytest.mark.unit
class TestHtmlSnippetFetcher:
    """HEAD-first redirect resolution and bounded GET."""

    @pytest.mark.asyncio
    async def test_plain_get_with_header_charset(self, fake_fetcher, fetch_options):
        fake_fetcher.html(A, "<title>café</title>", content_type="text/html; charset=iso-8859-1", encoding="latin-1")
        result = await HtmlSnippetFetcher(fake_fetcher).fetch(A, fetch_options)

        assert result.is_ok
        assert result.final_url == A
        assert result.body_text == "<title>café</title>"
        assert result.detected_charset == "latin1"
        assert result.charset_source is CharsetSource.HEADER
        assert result.redirects == []
        assert fake_fetcher.calls_for("HEAD") == [A]

    @pytest.mark.asyncio
    async def test_head_resolves_redirects_before_get(self, fake_fetcher, fetch_options):
        fake_fetcher.redirect("HEAD", A, "/b", status=301)
        fake_fetcher.add("HEAD", B, FetchResponse(url=B, status_code=200, headers={"content-type": "text/html"}))
        fake_fetcher.html(B, "<p>b</p>")

        result = await HtmlSnippetFetcher(fake_fetcher).fetch(A, fetch_options)

        assert result.final_url == B
        assert [(h.from_url, h.to_url, h.status_code, h.location) for h in result.redirects] == [(A, B, 301, "/b")]
        assert fake_fetcher.calls_for("GET") == [B]

    @pytest.mark.asyncio
    async def test_non_html_head_skips_body(self, fake_fetcher, fetch_options):
        fake_fetcher.add("HEAD", A, FetchResponse(url=A, status_code=200, headers={"content-type": "image/png"}))
        result = await HtmlSnippetFetcher(fake_fetcher).fetch(A, fetch_options)

        assert result.status_code == 200
        assert result.content_type == "image/png"
        assert result.body_bytes == b""
        assert fake_fetcher.calls_for("GET") == []

    @pytest.mark.asyncio
    async def test_failed_get_keeps_partial_body(self, fake_fetcher, fetch_options):
        """A GET that errors mid-read still reports the bytes it received."""
        fake_fetcher.add(
            "GET",
            A,
            FetchResponse(
                url=A,
                status_code=200,
                headers={"content-type": "text/html; charset=latin1"},
                body=b"<p>caf\xe9",
                truncated=True,
                error=ConnectionResetError("reset"),
            ),
        )
        result = await HtmlSnippetFetcher(fake_fetcher).fetch(A, fetch_options)

        assert isinstance(result.error, ConnectionResetError)
        assert result.body_bytes == b"<p>caf\xe9"
        assert result.body_text == "<p>café"
        assert result.charset_source is CharsetSource.HEADER
        assert result.truncated

    @pytest.mark.asyncio
    async def test_self_loop_has_no_hops(self, fake_fetcher, fetch_options):
        """A -> A stops immediately with a loop error and no recorded hops."""
        fake_fetcher.redirect("GET", A, A)
        result = await HtmlSnippetFetcher(fake_fetcher).fetch(A, fetch_options)

        assert isinstance(result.error, RedirectLoopError)
        assert result.redirects == []
        assert result.final_url == A

    @pytest.mark.asyncio
    async def test_chain_longer_than_limit(self, fake_fetcher):
        urls = [f"https://example.com/{i}" for i in range(5)]
        for current, target in zip(urls, urls[1:]):
            fake_fetcher.redirect("GET", current, target, status=302)

        result = await HtmlSnippetFetcher(fake_fetcher).fetch(urls[0], FetchOptions(max_redirects=2))

        assert isinstance(result.error, TooManyRedirectsError)
        assert len(result.redirects) == 2
        assert result.final_url == urls[2]

    @pytest.mark.asyncio
    async def test_head_and_get_share_the_hop_budget(self, fake_fetcher):
        """Hops taken with HEAD count against the same limit as GET hops."""
        fake_fetcher.redirect("HEAD", A, B)
        fake_fetcher.redirect("GET", B, C)
        fake_fetcher.html(C, "<p>c</p>")

        result = await HtmlSnippetFetcher(fake_fetcher).fetch(A, FetchOptions(max_redirects=1))

        assert isinstance(result.error, TooManyRedirectsError)
        assert [h.to_url for h in result.redirects] == [B]

    @pytest.mark.asyncio
    async def test_redirects_not_followed_when_disabled(self, fake_fetcher):
        fake_fetcher.redirect("GET", A, B, status=302)
        result = await HtmlSnippetFetcher(fake_fetcher).fetch(A, FetchOptions(follow_redirects=False))

        assert result.status_code == 302
        assert result.error is None
        assert result.final_url == A
        assert fake_fetcher.calls_for("HEAD") == []

    @pytest.mark.asyncio
    async def test_transport_error_is_reported(self, fake_fetcher, fetch_options):
        fake_fetcher.fail("GET", A, ConnectionResetError("reset"))
        result = await HtmlSnippetFetcher(fake_fetcher).fetch(A, fetch_options)
        assert isinstance(result.error, ConnectionResetError)
        assert not result.is_ok

    @pytest.mark.asyncio
    async def test_truncation_flag_is_carried(self, fake_fetcher, fetch_options):
        fake_fetcher.html(A, "<p>partial", truncated=True)
        result = await HtmlSnippetFetcher(fake_fetcher).fetch(A, fetch_options)
        assert result.truncated is True

    def test_request_headers(self):
        defaults = HtmlSnippetFetcher.request_headers(FetchOptions())
        assert defaults["Accept"] == DEFAULT_ACCEPT
        assert defaults["User-Agent"].startswith("MetaLink/")

        custom = HtmlSnippetFetcher.request_headers(
            FetchOptions(user_agent="Bot/2", headers={"user-agent": "Old", "accept": "text/html"})
        )
        assert custom["User-Agent"] == "Bot/2"
        assert "user-agent" not in custom
        assert "Accept" not in custom and custom["accept"] == "text/html"


@pytest.mark.unit
class TestRedirectResolver:
    """URL optimization without body downloads."""

    @pytest.mark.asyncio
    async def test_head_chain(self, fake_fetcher, fetch_options):
        fake_fetcher.redirect("HEAD", A, B, status=301)
        fake_fetcher.add("HEAD", B, FetchResponse(url=B, status_code=200))

        result = await RedirectResolver(fake_fetcher).resolve(A, fetch_options)

        assert result.final_url == B
        assert result.status_code == 200
        assert len(result.redirects) == 1
        assert result.is_ok

    @pytest.mark.asyncio
    async def test_head_refused_falls_back_to_empty_get(self, fake_fetcher, fetch_options):
        fake_fetcher.add("GET", A, FetchResponse(url=A, status_code=200))

        result = await RedirectResolver(fake_fetcher).resolve(A, fetch_options)

        assert result.final_url == A
        assert result.status_code == 200
        get_calls = [call for call in fake_fetcher.calls if call.method == "GET"]
        assert [call.max_bytes for call in get_calls] == [0]

    @pytest.mark.asyncio
    async def test_limit(self, fake_fetcher):
        fake_fetcher.redirect("HEAD", A, B).redirect("HEAD", B, C).redirect("HEAD", C, A)

        result = await RedirectResolver(fake_fetcher).resolve(A, FetchOptions(max_redirects=2))

        assert isinstance(result.error, TooManyRedirectsError)
        assert result.final_url == C
        assert not result.is_ok

    @pytest.mark.asyncio
    async def test_no_follow(self, fake_fetcher):
        fake_fetcher.redirect("HEAD", A, B, status=302)
        result = await RedirectResolver(fake_fetcher).resolve(A, FetchOptions(follow_redirects=False))
        assert result.final_url == A
        assert result.status_code == 302
        assert result.redirects == []
