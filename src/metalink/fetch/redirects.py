"""
Redirect-following helpers shared by the HTML fetcher, the enrichers and the
URL optimizer.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import replace
from typing import Dict, Optional

from metalink.config.config import FetchOptions
from metalink.exceptions import InvalidRedirectError, RedirectLoopError, TooManyRedirectsError
from metalink.utils.url_resolver import UrlResolver
from metalink.utils.urls import apply_proxy, normalize_for_request

from .protocols import FetchResponse, Fetcher

_resolver = UrlResolver()


class Deadline:
    """One time budget shared by every hop of a logical fetch."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        self._started = time.perf_counter()

    def remaining(self) -> float:
        return self.timeout - (time.perf_counter() - self._started)

    def elapsed(self) -> float:
        return time.perf_counter() - self._started

    def options_for_hop(self, options: FetchOptions) -> Optional[FetchOptions]:
        """Options narrowed to the remaining budget, or None when it is spent."""
        remaining = self.remaining()
        if remaining <= 0:
            return None
        return options.model_copy(update={"timeout": remaining})

    def expired_response(self, url: str) -> FetchResponse:
        return FetchResponse(
            url=url,
            duration=self.elapsed(),
            error=asyncio.TimeoutError(f"Request timed out after {self.timeout}s"),
        )


def resolve_location(current_url: str, location: str) -> Optional[str]:
    return _resolver.resolve(current_url, location)


def is_same_url(a: str, b: str) -> bool:
    try:
        return normalize_for_request(a) == normalize_for_request(b)
    except ValueError:
        return a == b


async def get_with_redirects(
    fetcher: Fetcher,
    start_url: str,
    options: FetchOptions,
    headers: Optional[Dict[str, str]] = None,
    max_bytes: Optional[int] = None,
) -> FetchResponse:
    """
    GET ``start_url`` following redirects manually.

    The returned response is the last one received. Loop, limit and invalid
    Location failures are reported on its ``error`` field.
    """
    deadline = Deadline(options.timeout)

    if not options.follow_redirects or options.max_redirects <= 0:
        return await fetcher.get(apply_proxy(start_url, options.proxy_url), options, headers, max_bytes)

    current = start_url
    for hop in range(options.max_redirects + 1):
        hop_options = deadline.options_for_hop(options)
        if hop_options is None:
            return deadline.expired_response(current)

        response = await fetcher.get(apply_proxy(current, options.proxy_url), hop_options, headers, max_bytes)
        if response.error is not None or not response.is_redirect:
            return response

        if hop == options.max_redirects:
            return replace(
                response,
                error=TooManyRedirectsError(f"Too many redirects (max: {options.max_redirects})", current),
            )

        location = response.location or ""
        next_url = resolve_location(current, location)
        if next_url is None:
            return replace(response, error=InvalidRedirectError(f"Invalid redirect location: {location}", current))
        if is_same_url(next_url, current):
            return replace(
                response,
                error=RedirectLoopError("Redirect loop detected (Location points to self).", current),
            )
        current = next_url

    return FetchResponse(
        url=current,
        error=TooManyRedirectsError(f"Too many redirects (max: {options.max_redirects})", current),
    )
