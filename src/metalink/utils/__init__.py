from __future__ import annotations

from .url_resolver import UrlResolver
from .urls import (
    FORBIDDEN_SCHEMES,
    apply_proxy,
    ensure_https_scheme,
    is_http_url,
    normalize_for_cache_key,
    normalize_for_request,
    parse_loose,
    remove_fragment,
)

__all__ = [
    "FORBIDDEN_SCHEMES",
    "UrlResolver",
    "apply_proxy",
    "ensure_https_scheme",
    "is_http_url",
    "normalize_for_cache_key",
    "normalize_for_request",
    "parse_loose",
    "remove_fragment",
]
