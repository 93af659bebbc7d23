"""
Tests for the aiohttp-backed fetcher using aioresponses.
"""

import aiohttp
import pytest
import pytest_asyncio
from aioresponses import aioresponses

from metalink.config.config import FetchOptions
from metalink.exceptions import ClosedError
from metalink.fetch.http_fetcher import HttpFetcher, build_request_headers

URL = "https://example.com/page"


@pytest_asyncio.fixture
async def http_fetcher():
    fetcher = HttpFetcher()
    yield fetcher
    await fetcher.close()


@pytest.mark.unit
class TestBuildRequestHeaders:
    def test_keys_are_lower_cased_and_call_headers_win(self):
        options = FetchOptions(headers={"X-Token": "a", "Accept": "text/plain"})
        headers = build_request_headers(options, {"ACCEPT": "application/json"})
        assert headers == {"x-token": "a", "accept": "application/json"}

    def test_user_agent_only_fills_gap(self):
        """The option user agent never overrides an explicit header."""
        assert build_request_headers(FetchOptions(user_agent="Bot/1"))["user-agent"] == "Bot/1"
        explicit = build_request_headers(FetchOptions(user_agent="Bot/1"), {"User-Agent": "Mine"})
        assert explicit["user-agent"] == "Mine"
        assert "user-agent" not in build_request_headers(FetchOptions(user_agent="   "))


@pytest.mark.unit
class TestHttpFetcher:
    """Bounded reads, manual redirects and error values."""

    @pytest.mark.asyncio
    async def test_body_longer_than_budget_is_truncated(self, http_fetcher):
        with aioresponses() as m:
            m.get(URL, status=200, body=b"0123456789abcdef", content_type="text/html")
            response = await http_fetcher.get(URL, FetchOptions(), max_bytes=5)

        assert response.status_code == 200
        assert response.body == b"01234"
        assert response.truncated is True
        assert response.error is None

    @pytest.mark.asyncio
    async def test_body_exactly_at_budget_is_not_truncated(self, http_fetcher):
        with aioresponses() as m:
            m.get(URL, status=200, body=b"01234", content_type="text/html")
            response = await http_fetcher.get(URL, FetchOptions(), max_bytes=5)

        assert response.body == b"01234"
        assert response.truncated is False

    @pytest.mark.asyncio
    async def test_zero_budget_reads_nothing(self, http_fetcher):
        with aioresponses() as m:
            m.get(URL, status=200, body=b"<html></html>", content_type="text/html")
            response = await http_fetcher.get(URL, FetchOptions(max_bytes=0))

        assert response.body == b""
        assert response.truncated is False
        assert response.is_ok

    @pytest.mark.asyncio
    async def test_redirects_are_not_followed(self, http_fetcher):
        with aioresponses() as m:
            m.get(URL, status=302, headers={"Location": "/elsewhere"})
            response = await http_fetcher.get(URL, FetchOptions())

        assert response.status_code == 302
        assert response.location == "/elsewhere"
        assert response.is_redirect

    @pytest.mark.asyncio
    async def test_header_keys_are_lower_case(self, http_fetcher):
        with aioresponses() as m:
            m.head(URL, status=200, headers={"X-Custom": "1"}, content_type="image/png")
            response = await http_fetcher.head(URL, FetchOptions())

        assert response.headers["x-custom"] == "1"
        assert response.content_type == "image/png"
        assert response.body == b""

    @pytest.mark.asyncio
    async def test_connection_error_is_returned(self, http_fetcher):
        """Transport failures come back on the response instead of raising."""
        with aioresponses() as m:
            m.get(URL, exception=aiohttp.ClientConnectionError("refused"))
            response = await http_fetcher.get(URL, FetchOptions())

        assert isinstance(response.error, aiohttp.ClientConnectionError)
        assert response.status_code is None
        assert not response.is_ok

    @pytest.mark.asyncio
    async def test_closed_fetcher(self):
        fetcher = HttpFetcher()
        await fetcher.close()
        await fetcher.close()

        response = await fetcher.get(URL, FetchOptions())
        assert isinstance(response.error, ClosedError)
        assert fetcher.closed

    @pytest.mark.asyncio
    async def test_injected_session_is_left_open(self):
        async with aiohttp.ClientSession() as session:
            fetcher = HttpFetcher(session)
            await fetcher.close()
            assert not session.closed
