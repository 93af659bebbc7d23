"""
Fetch layer: transport, redirect resolution and charset-aware HTML reads.
"""

from __future__ import annotations

from .charset import DecodedBody, decode_body, normalize_charset
from .html_fetcher import HtmlFetchResult, HtmlSnippetFetcher
from .http_fetcher import HttpFetcher
from .protocols import REDIRECT_STATUSES, FetchResponse, Fetcher
from .redirect_resolver import RedirectResolver
from .redirects import get_with_redirects

__all__ = [
    "REDIRECT_STATUSES",
    "DecodedBody",
    "FetchResponse",
    "Fetcher",
    "HtmlFetchResult",
    "HtmlSnippetFetcher",
    "HttpFetcher",
    "RedirectResolver",
    "decode_body",
    "get_with_redirects",
    "normalize_charset",
]
