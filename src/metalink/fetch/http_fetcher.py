"""
aiohttp-backed fetcher that reads bounded bodies and never follows redirects.
"""

from __future__ import annotations

import asyncio
import time
from typing import Dict, Optional, Tuple

import aiohttp
import structlog

from metalink.config.config import FetchOptions
from metalink.exceptions import ClosedError

from .protocols import FetchResponse

logger = structlog.get_logger(__name__)

_CHUNK_SIZE = 16 * 1024


def build_request_headers(options: FetchOptions, headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """
    Merge option headers and per-call headers with lower-cased keys.

    ``options.user_agent`` applies only when neither set carries one.
    """
    merged = {key.lower(): value for key, value in options.headers.items()}
    call_headers = {key.lower(): value for key, value in (headers or {}).items()}

    user_agent = (options.user_agent or "").strip()
    if user_agent and "user-agent" not in merged and "user-agent" not in call_headers:
        merged["user-agent"] = user_agent

    merged.update(call_headers)
    return merged


async def read_limited(response: aiohttp.ClientResponse, max_bytes: int) -> Tuple[bytes, bool]:
    """
    Read at most ``max_bytes + 1`` bytes. Getting the extra byte means the
    body was longer than the budget: it is dropped and ``truncated`` is set.
    """
    if max_bytes <= 0:
        return b"", False

    hard_limit = max_bytes + 1
    buffer = bytearray()
    async for chunk in response.content.iter_chunked(_CHUNK_SIZE):
        if not chunk:
            continue
        buffer.extend(chunk[: hard_limit - len(buffer)])
        if len(buffer) >= hard_limit:
            break

    if len(buffer) >= hard_limit:
        return bytes(buffer[:max_bytes]), True
    return bytes(buffer), False


class HttpFetcher:
    """
    Fetcher over an ``aiohttp.ClientSession``.

    A session passed in is caller-owned and left open on ``close()``; a
    session created here is closed with the fetcher.
    """

    def __init__(self, session: Optional[aiohttp.ClientSession] = None) -> None:
        self.session = session
        self._owns_session = session is None
        self._closed = False
        self.logger = logger.bind(component="HttpFetcher")

    async def initialize(self) -> None:
        """Create the owned session. Called lazily by the first request."""
        if self.session is None:
            connector = aiohttp.TCPConnector(
                limit=0,
                ttl_dns_cache=30,
                use_dns_cache=True,
                keepalive_timeout=30,
                enable_cleanup_closed=True,
            )
            self.session = aiohttp.ClientSession(connector=connector, timeout=aiohttp.ClientTimeout(total=None))
            self.logger.debug("HTTP session initialized")

    @property
    def closed(self) -> bool:
        return self._closed

    async def get(
        self,
        url: str,
        options: FetchOptions,
        headers: Optional[Dict[str, str]] = None,
        max_bytes: Optional[int] = None,
    ) -> FetchResponse:
        limit = options.max_bytes if max_bytes is None else max_bytes
        return await self._request("GET", url, options, headers, limit)

    async def head(
        self,
        url: str,
        options: FetchOptions,
        headers: Optional[Dict[str, str]] = None,
    ) -> FetchResponse:
        return await self._request("HEAD", url, options, headers, 0)

    async def _request(
        self,
        method: str,
        url: str,
        options: FetchOptions,
        headers: Optional[Dict[str, str]],
        max_bytes: int,
    ) -> FetchResponse:
        if self._closed:
            return FetchResponse(url=url, error=ClosedError("HttpFetcher is closed"))

        start_time = time.perf_counter()
        status: Optional[int] = None
        response_headers: Dict[str, str] = {}

        try:
            await self.initialize()
            assert self.session is not None

            async with asyncio.timeout(options.timeout):
                response = await self.session.request(
                    method,
                    url,
                    headers=build_request_headers(options, headers),
                    allow_redirects=False,
                )

            async with response:
                status = response.status
                response_headers = {key.lower(): value for key, value in response.headers.items()}

                body, truncated = b"", False
                if method != "HEAD" and max_bytes > 0:
                    remaining = options.timeout - (time.perf_counter() - start_time)
                    if remaining <= 0:
                        raise asyncio.TimeoutError(f"Request timed out after {options.timeout}s")
                    async with asyncio.timeout(remaining):
                        body, truncated = await read_limited(response, max_bytes)

            return FetchResponse(
                url=url,
                status_code=status,
                headers=response_headers,
                body=body,
                truncated=truncated,
                duration=time.perf_counter() - start_time,
            )

        except asyncio.TimeoutError as e:
            self.logger.warning("Request timed out", method=method, url=url, timeout=options.timeout)
            return FetchResponse(
                url=url,
                status_code=status,
                headers=response_headers,
                duration=time.perf_counter() - start_time,
                error=e,
            )
        except Exception as e:
            self.logger.error("Request failed", method=method, url=url, error=str(e), error_type=type(e).__name__)
            return FetchResponse(
                url=url,
                status_code=status,
                headers=response_headers,
                duration=time.perf_counter() - start_time,
                error=e,
            )

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._owns_session and self.session is not None:
            await self.session.close()
        self.session = None
        self.logger.debug("HTTP fetcher closed")

    async def __aenter__(self) -> HttpFetcher:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
