"""
MetaLink: link preview metadata extraction.

Fetches a page, runs the OpenGraph, Twitter card, HTML meta, link-rel and
JSON-LD extractors over it, merges their scored candidates into one
``LinkMetadata`` record and caches the result.
"""

from __future__ import annotations

__version__ = "0.1.0"

from metalink.cache import MemoryCacheStore, SQLiteCacheStore
from metalink.client import MetaLinkClient
from metalink.config import CacheOptions, ExtractOptions, FetchOptions, MetaLinkClientOptions, Settings
from metalink.models import (
    ExtractionResult,
    LinkKind,
    LinkMetadata,
    MetaLinkError,
    MetaLinkErrorCode,
    MetaLinkWarning,
    MetaLinkWarningCode,
    UrlOptimizationResult,
)

__all__ = [
    "CacheOptions",
    "ExtractOptions",
    "ExtractionResult",
    "FetchOptions",
    "LinkKind",
    "LinkMetadata",
    "MemoryCacheStore",
    "MetaLinkClient",
    "MetaLinkClientOptions",
    "MetaLinkError",
    "MetaLinkErrorCode",
    "MetaLinkWarning",
    "MetaLinkWarningCode",
    "SQLiteCacheStore",
    "Settings",
    "UrlOptimizationResult",
    "__version__",
]
