"""
Cache key construction: SHA-256 of the canonical string, behind a prefix.
"""

from __future__ import annotations

import hashlib

from metalink.utils.urls import normalize_for_cache_key

DEFAULT_PREFIX = "metalink:"


def build_for_string(value: str, prefix: str = DEFAULT_PREFIX) -> str:
    return prefix + hashlib.sha256(value.encode("utf-8")).hexdigest()


def build_for_url(url: str, prefix: str = DEFAULT_PREFIX) -> str:
    return build_for_string(normalize_for_cache_key(url), prefix)
