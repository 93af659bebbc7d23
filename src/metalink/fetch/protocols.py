"""
Transport-level contract for fetching pages without following redirects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, runtime_checkable

from metalink.config.config import FetchOptions

REDIRECT_STATUSES = frozenset({300, 301, 302, 303, 307, 308})


@dataclass(frozen=True)
class FetchResponse:
    """Response from a single GET or HEAD, with failures carried in ``error``."""

    url: str
    status_code: Optional[int] = None
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    truncated: bool = False
    duration: float = 0.0
    error: Optional[BaseException] = field(default=None, compare=False)

    @property
    def is_ok(self) -> bool:
        return self.error is None and self.status_code is not None and 200 <= self.status_code < 300

    @property
    def location(self) -> Optional[str]:
        value = self.headers.get("location")
        if value is None:
            return None
        value = value.strip()
        return value or None

    @property
    def is_redirect(self) -> bool:
        """3xx in the redirect set with a non-empty Location. 304 is excluded."""
        return self.status_code in REDIRECT_STATUSES and self.location is not None

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("content-type")


@runtime_checkable
class Fetcher(Protocol):
    """
    GET/HEAD transport. Implementations never follow redirects and never
    raise; every failure is returned on ``FetchResponse.error``.

    Header keys on returned responses are lower-case.
    """

    async def get(
        self,
        url: str,
        options: FetchOptions,
        headers: Optional[Dict[str, str]] = None,
        max_bytes: Optional[int] = None,
    ) -> FetchResponse:
        ...

    async def head(
        self,
        url: str,
        options: FetchOptions,
        headers: Optional[Dict[str, str]] = None,
    ) -> FetchResponse:
        ...

    async def close(self) -> None:
        ...
