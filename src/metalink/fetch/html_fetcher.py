"""
HTML snippet fetcher: resolves redirects hop by hop, reads a bounded body and
decodes it with charset detection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional

import structlog

from metalink.config.config import FetchOptions
from metalink.exceptions import InvalidRedirectError, RedirectLoopError, TooManyRedirectsError
from metalink.models.diagnostics import RedirectHop
from metalink.models.enums import CharsetSource
from metalink.utils.urls import apply_proxy

from .charset import decode_body, is_probably_text, looks_like_html
from .protocols import FetchResponse, Fetcher
from .redirects import Deadline, is_same_url, resolve_location

logger = structlog.get_logger(__name__)

DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def default_user_agent() -> str:
    from metalink import __version__

    return f"MetaLink/{__version__} (+https://github.com/metalink/metalink)"


@dataclass(frozen=True)
class HtmlFetchResult:
    original_url: str
    final_url: str
    redirects: List[RedirectHop] = field(default_factory=list)
    status_code: Optional[int] = None
    headers: Dict[str, str] = field(default_factory=dict)
    body_bytes: bytes = b""
    body_text: Optional[str] = None
    detected_charset: Optional[str] = None
    charset_source: CharsetSource = CharsetSource.UNKNOWN
    truncated: bool = False
    duration: float = 0.0
    error: Optional[BaseException] = field(default=None, compare=False)

    @property
    def is_ok(self) -> bool:
        return self.error is None and self.status_code is not None and 200 <= self.status_code < 300

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("content-type")


class _HeadPhase(NamedTuple):
    final_url: str
    response: Optional[FetchResponse]
    error: Optional[BaseException]


class HtmlSnippetFetcher:
    """
    Fetches the HTML of a page through a ``Fetcher``.

    With ``stop_after_head`` the redirect chain is walked with HEAD first;
    if HEAD reports a non-HTML Content-Type the body is never downloaded. A
    failing or refused HEAD falls back to GET from the current hop. Every
    hop shares one ``timeout`` budget.
    """

    def __init__(self, fetcher: Fetcher) -> None:
        self.fetcher = fetcher
        self.logger = logger.bind(component="HtmlSnippetFetcher")

    @staticmethod
    def request_headers(options: FetchOptions) -> Dict[str, str]:
        headers = dict(options.headers)
        lowered = {key.lower() for key in headers}
        if "accept" not in lowered:
            headers["Accept"] = DEFAULT_ACCEPT

        user_agent = (options.user_agent or "").strip()
        if user_agent:
            for key in [k for k in headers if k.lower() == "user-agent"]:
                del headers[key]
            headers["User-Agent"] = user_agent
        elif "user-agent" not in lowered:
            headers["User-Agent"] = default_user_agent()
        return headers

    async def fetch(self, url: str, options: FetchOptions) -> HtmlFetchResult:
        deadline = Deadline(options.timeout)
        headers = self.request_headers(options)
        redirects: List[RedirectHop] = []
        current = url

        def result(
            response: Optional[FetchResponse] = None,
            error: Optional[BaseException] = None,
        ) -> HtmlFetchResult:
            if response is None:
                return HtmlFetchResult(
                    original_url=url,
                    final_url=current,
                    redirects=list(redirects),
                    duration=deadline.elapsed(),
                    error=error,
                )

            # Failed responses still carry whatever body arrived.
            body_text: Optional[str] = None
            charset: Optional[str] = None
            charset_source = CharsetSource.UNKNOWN
            if response.body and is_probably_text(response.content_type):
                decoded = decode_body(response.body, response.headers)
                body_text, charset, charset_source = decoded.text, decoded.charset, decoded.source

            return HtmlFetchResult(
                original_url=url,
                final_url=current,
                redirects=list(redirects),
                status_code=response.status_code,
                headers=dict(response.headers),
                body_bytes=response.body,
                body_text=body_text,
                detected_charset=charset,
                charset_source=charset_source,
                truncated=response.truncated,
                duration=deadline.elapsed(),
                error=error,
            )

        try:
            if options.follow_redirects and options.stop_after_head:
                head = await self._resolve_with_head(url, options, headers, deadline, redirects)
                current = head.final_url
                if head.error is not None:
                    return result(head.response, head.error)
                if head.response is not None and not looks_like_html(head.response.content_type):
                    self.logger.debug(
                        "Skipping GET for non-HTML resource",
                        url=current,
                        content_type=head.response.content_type,
                    )
                    return result(head.response)

            while True:
                hop_options = deadline.options_for_hop(options)
                if hop_options is None:
                    return result(error=deadline.expired_response(current).error)

                response = await self._safe_get(current, hop_options, headers)
                if response.error is not None:
                    return result(response, response.error)

                if not (options.follow_redirects and response.is_redirect):
                    break

                location = response.location or ""
                if len(redirects) >= options.max_redirects:
                    return result(
                        response,
                        TooManyRedirectsError(f"Too many redirects (max: {options.max_redirects})", current),
                    )
                next_url = resolve_location(current, location)
                if next_url is None:
                    return result(response, InvalidRedirectError(f"Invalid redirect location: {location}", current))
                if is_same_url(next_url, current):
                    return result(
                        response,
                        RedirectLoopError("Redirect loop detected (Location points to self).", current),
                    )
                redirects.append(
                    RedirectHop(from_url=current, to_url=next_url, status_code=response.status_code or 0, location=location)
                )
                current = next_url

            return result(response)

        except Exception as e:
            self.logger.error("HTML fetch failed", url=url, error=str(e), error_type=type(e).__name__)
            return result(error=e)

    async def _resolve_with_head(
        self,
        url: str,
        options: FetchOptions,
        headers: Dict[str, str],
        deadline: Deadline,
        redirects: List[RedirectHop],
    ) -> _HeadPhase:
        current = url
        for _ in range(options.max_redirects + 1):
            hop_options = deadline.options_for_hop(options)
            if hop_options is None:
                return _HeadPhase(current, None, deadline.expired_response(current).error)

            response = await self._safe_head(current, hop_options, headers)
            status = response.status_code
            if response.error is not None or status is None or status in (405, 501) or status >= 400:
                # HEAD refused or failed: let GET resolve from this hop.
                return _HeadPhase(current, None, None)

            if not response.is_redirect:
                return _HeadPhase(current, response, None)

            location = response.location or ""
            if len(redirects) >= options.max_redirects:
                return _HeadPhase(
                    current,
                    response,
                    TooManyRedirectsError(f"Too many redirects (max: {options.max_redirects})", current),
                )
            next_url = resolve_location(current, location)
            if next_url is None:
                return _HeadPhase(current, response, InvalidRedirectError(f"Invalid redirect location: {location}", current))
            if is_same_url(next_url, current):
                return _HeadPhase(
                    current,
                    response,
                    RedirectLoopError("Redirect loop detected (Location points to self).", current),
                )
            redirects.append(RedirectHop(from_url=current, to_url=next_url, status_code=status, location=location))
            current = next_url

        return _HeadPhase(
            current,
            None,
            TooManyRedirectsError(f"Too many redirects (max: {options.max_redirects})", current),
        )

    async def _safe_head(self, url: str, options: FetchOptions, headers: Dict[str, str]) -> FetchResponse:
        try:
            return await self.fetcher.head(apply_proxy(url, options.proxy_url), options, headers)
        except Exception as e:
            self.logger.warning("HEAD raised, falling back to GET", url=url, error=str(e))
            return FetchResponse(url=url, error=e)

    async def _safe_get(self, url: str, options: FetchOptions, headers: Dict[str, str]) -> FetchResponse:
        try:
            return await self.fetcher.get(apply_proxy(url, options.proxy_url), options, headers, options.max_bytes)
        except Exception as e:
            self.logger.error("GET raised", url=url, error=str(e), error_type=type(e).__name__)
            return FetchResponse(url=url, error=e)
