"""
Shared fixtures for the MetaLink test suite.

The scripted ``FakeFetcher`` stands in for the network: responses are
registered per method and URL, and every call is recorded so tests can
assert on the exact request sequence.
"""

from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from selectolax.lexbor import LexborHTMLParser

from metalink.cache.memory import MemoryCacheStore
from metalink.client import MetaLinkClient
from metalink.config.config import CacheOptions, ExtractOptions, FetchOptions, MetaLinkClientOptions
from metalink.extract.context import ExtractionContext
from metalink.fetch.protocols import FetchResponse

# ============================================================================
# Fake transport
# ============================================================================


@dataclass
class RecordedCall:
    method: str
    url: str
    headers: Optional[Dict[str, str]]
    max_bytes: Optional[int]
    timeout: float


class FakeFetcher:
    """
    In-memory ``Fetcher``.

    Each (method, url) has a queue of responses; the last one repeats once
    the queue is drained. Unregistered HEAD requests answer 405 so callers
    fall back to GET; unregistered GETs answer 404.
    """

    def __init__(self) -> None:
        self._routes: Dict[Tuple[str, str], Deque[FetchResponse]] = defaultdict(deque)
        self.calls: List[RecordedCall] = []
        self.closed = False

    def add(self, method: str, url: str, response: FetchResponse) -> "FakeFetcher":
        self._routes[(method.upper(), url)].append(response)
        return self

    def html(
        self,
        url: str,
        body: str,
        status: int = 200,
        content_type: Optional[str] = "text/html; charset=utf-8",
        encoding: str = "utf-8",
        truncated: bool = False,
    ) -> "FakeFetcher":
        headers = {"content-type": content_type} if content_type is not None else {}
        return self.add(
            "GET",
            url,
            FetchResponse(url=url, status_code=status, headers=headers, body=body.encode(encoding), truncated=truncated),
        )

    def json(self, url: str, body: str, content_type: str = "application/json") -> "FakeFetcher":
        return self.add(
            "GET",
            url,
            FetchResponse(url=url, status_code=200, headers={"content-type": content_type}, body=body.encode("utf-8")),
        )

    def redirect(self, method: str, url: str, location: str, status: int = 301) -> "FakeFetcher":
        return self.add(method, url, FetchResponse(url=url, status_code=status, headers={"location": location}))

    def fail(self, method: str, url: str, error: BaseException) -> "FakeFetcher":
        return self.add(method, url, FetchResponse(url=url, error=error))

    def _next(self, method: str, url: str) -> Optional[FetchResponse]:
        queue = self._routes.get((method, url))
        if not queue:
            return None
        if len(queue) > 1:
            return queue.popleft()
        return queue[0]

    def calls_for(self, method: str) -> List[str]:
        return [call.url for call in self.calls if call.method == method]

    async def get(
        self,
        url: str,
        options: FetchOptions,
        headers: Optional[Dict[str, str]] = None,
        max_bytes: Optional[int] = None,
    ) -> FetchResponse:
        self.calls.append(RecordedCall("GET", url, headers, max_bytes, options.timeout))
        response = self._next("GET", url)
        if response is None:
            return FetchResponse(url=url, status_code=404, headers={"content-type": "text/html"})
        return response

    async def head(
        self,
        url: str,
        options: FetchOptions,
        headers: Optional[Dict[str, str]] = None,
    ) -> FetchResponse:
        self.calls.append(RecordedCall("HEAD", url, headers, None, options.timeout))
        response = self._next("HEAD", url)
        if response is None:
            return FetchResponse(url=url, status_code=405)
        return response

    async def close(self) -> None:
        self.closed = True


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    """Fresh scripted fetcher."""
    return FakeFetcher()


@pytest.fixture
def fetch_options() -> FetchOptions:
    return FetchOptions(timeout=5.0)


@pytest.fixture
def build_context():
    """Factory building an ``ExtractionContext`` over an HTML string."""

    def _build(
        html: str,
        url: str = "https://example.com/article",
        options: Optional[ExtractOptions] = None,
    ) -> ExtractionContext:
        return ExtractionContext(LexborHTMLParser(html), url, url, options or ExtractOptions())

    return _build


@pytest.fixture
def memory_store() -> MemoryCacheStore:
    return MemoryCacheStore(default_ttl=60)


@pytest_asyncio.fixture
async def client(fake_fetcher, memory_store):
    """Client over the fake transport with an injected memory cache."""
    options = MetaLinkClientOptions(
        fetch=FetchOptions(timeout=5.0),
        extract=ExtractOptions(),
        cache=CacheOptions(ttl=60),
    )
    metalink_client = MetaLinkClient(options, fetcher=fake_fetcher, cache_store=memory_store)
    yield metalink_client
    await metalink_client.close()
