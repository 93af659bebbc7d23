"""
Follows a URL's redirect chain without downloading bodies.
"""

from __future__ import annotations

from typing import List

import structlog

from metalink.config.config import FetchOptions
from metalink.exceptions import TooManyRedirectsError
from metalink.models.diagnostics import RedirectHop
from metalink.models.result import UrlOptimizationResult
from metalink.utils.urls import apply_proxy

from .protocols import FetchResponse, Fetcher
from .redirects import Deadline, resolve_location

logger = structlog.get_logger(__name__)


class RedirectResolver:
    """HEAD each hop, falling back to a zero-byte GET when HEAD is refused."""

    def __init__(self, fetcher: Fetcher) -> None:
        self.fetcher = fetcher

    async def _head_then_maybe_get(self, url: str, options: FetchOptions) -> FetchResponse:
        target = apply_proxy(url, options.proxy_url)
        head = await self.fetcher.head(target, options)
        if head.error is None and head.status_code not in (405, 501):
            return head
        return await self.fetcher.get(target, options, max_bytes=0)

    async def resolve(self, url: str, options: FetchOptions) -> UrlOptimizationResult:
        deadline = Deadline(options.timeout)
        redirects: List[RedirectHop] = []

        if not options.follow_redirects or options.max_redirects <= 0:
            response = await self._head_then_maybe_get(url, options)
            return UrlOptimizationResult(
                original_url=url,
                final_url=url,
                status_code=response.status_code,
                duration=deadline.elapsed(),
                error=response.error,
            )

        current = url
        last: FetchResponse | None = None
        for _ in range(options.max_redirects):
            hop_options = deadline.options_for_hop(options)
            if hop_options is None:
                last = deadline.expired_response(current)
                break

            last = await self._head_then_maybe_get(current, hop_options)
            if last.error is not None or not last.is_redirect:
                break

            location = last.location or ""
            next_url = resolve_location(current, location)
            if next_url is None:
                break
            redirects.append(
                RedirectHop(from_url=current, to_url=next_url, status_code=last.status_code or 0, location=location)
            )
            current = next_url

        error = last.error if last is not None else None
        if error is None and last is not None and len(redirects) == options.max_redirects and last.is_redirect:
            error = TooManyRedirectsError("Too many redirects", current)

        if error is not None:
            logger.debug("Redirect resolution stopped", url=url, final_url=current, error=str(error))

        return UrlOptimizationResult(
            original_url=url,
            final_url=current,
            redirects=redirects,
            status_code=last.status_code if last is not None else None,
            duration=deadline.elapsed(),
            error=error,
        )
