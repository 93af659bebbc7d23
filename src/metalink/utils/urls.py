"""
URL parsing and normalization helpers.

URLs are handled as plain strings. Everything that reaches the network or a
cache key goes through ``normalize_for_request`` first so that two spellings
of the same address (case, default port) compare equal.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import quote, urlsplit, urlunsplit

FORBIDDEN_SCHEMES = (
    "mailto:",
    "tel:",
    "sms:",
    "javascript:",
    "data:",
    "file:",
    "ftp:",
    "about:",
    "chrome:",
    "blob:",
)

HTTP_SCHEMES = frozenset({"http", "https"})

_ABSOLUTE_WITH_AUTHORITY = re.compile(r"^[a-zA-Z][a-zA-Z0-9+\-.]*://")
_DEFAULT_PORTS = {"http": 80, "https": 443}


def has_forbidden_scheme(value: str) -> bool:
    return value.strip().lower().startswith(FORBIDDEN_SCHEMES)


def is_http_url(url: str) -> bool:
    """True for an absolute http(s) URL with a host."""
    try:
        parts = urlsplit(url)
        return parts.scheme.lower() in HTTP_SCHEMES and bool(parts.hostname)
    except ValueError:
        return False


def remove_fragment(url: str) -> str:
    parts = urlsplit(url)
    if not parts.fragment and "#" not in url:
        return url
    return urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, ""))


def normalize_for_request(url: str) -> str:
    """
    Lower-case scheme and host, drop the default port, force a non-empty
    path and strip the fragment.

    Raises ValueError for URLs ``urllib`` cannot split (bad port, bad IPv6).
    """
    parts = urlsplit(url)
    scheme = (parts.scheme or "https").lower()
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    userinfo, _, _ = parts.netloc.rpartition("@")

    netloc = host
    if port is not None and _DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{host}:{port}"
    if userinfo:
        netloc = f"{userinfo}@{netloc}"

    return urlunsplit((scheme, netloc, parts.path or "/", parts.query, ""))


def normalize_for_cache_key(url: str) -> str:
    return normalize_for_request(url)


def ensure_https_scheme(url: str) -> str:
    parts = urlsplit(url)
    if parts.scheme and parts.scheme.lower() != "http":
        return url
    return urlunsplit(("https", parts.netloc, parts.path, parts.query, parts.fragment))


def parse_loose(text: Optional[str]) -> Optional[str]:
    """
    Turn user input such as ``example.com/page`` or ``//cdn.example.com/x``
    into a normalized absolute http(s) URL.

    Returns None for blank input, non-fetchable schemes, root-relative
    paths and anything without a host.
    """
    if text is None:
        return None
    candidate = text.strip()
    if not candidate or has_forbidden_scheme(candidate):
        return None

    if candidate.startswith("//"):
        candidate = f"https:{candidate}"

    if not _ABSOLUTE_WITH_AUTHORITY.match(candidate):
        if candidate.startswith("/"):
            return None
        candidate = f"https://{candidate}"

    try:
        parts = urlsplit(candidate)
        if parts.scheme.lower() not in HTTP_SCHEMES or not parts.hostname:
            return None
        return normalize_for_request(candidate)
    except ValueError:
        return None


def apply_proxy(target: str, proxy_template: Optional[str]) -> str:
    """
    Rewrite ``target`` through a proxy template.

    ``{urlEncoded}`` is replaced with the percent-encoded target, ``{url}``
    with the raw target; a template without placeholders is a prefix.
    """
    if proxy_template is None:
        return target
    template = proxy_template.strip()
    if not template:
        return target

    if "{urlEncoded}" in template:
        proxied = template.replace("{urlEncoded}", quote(target, safe="!~*'()"))
    elif "{url}" in template:
        proxied = template.replace("{url}", target)
    else:
        proxied = f"{template}{target}"

    return proxied if is_http_url(proxied) else target
