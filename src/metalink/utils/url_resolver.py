"""
Resolves URL references found in markup against a page's base URL.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional
from urllib.parse import urljoin, urlsplit

from metalink.utils.urls import has_forbidden_scheme, is_http_url

_HAS_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+\-.]*:")


class UrlResolver:
    """
    Turns ``href``/``src``/``content`` values into absolute http(s) URLs.

    Fragment-only references and non-fetchable schemes resolve to None.
    """

    def resolve(self, base: str, raw: Optional[str]) -> Optional[str]:
        if raw is None:
            return None
        value = raw.strip()
        if not value or value.startswith("#") or has_forbidden_scheme(value):
            return None

        try:
            if value.startswith("//"):
                scheme = urlsplit(base).scheme or "https"
                resolved = f"{scheme}:{value}"
            elif _HAS_SCHEME.match(value):
                resolved = value
            else:
                resolved = urljoin(base, value)
        except ValueError:
            return None

        return resolved if is_http_url(resolved) else None

    def resolve_all(self, base: str, raws: Iterable[Optional[str]]) -> List[str]:
        resolved: List[str] = []
        for raw in raws:
            url = self.resolve(base, raw)
            if url is not None:
                resolved.append(url)
        return resolved
