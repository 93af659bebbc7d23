from __future__ import annotations

from .config import (
    CacheBackendConfig,
    CacheOptions,
    ExtractOptions,
    FetchOptions,
    LoggingConfig,
    MetaLinkClientOptions,
    Settings,
    find_config_file,
)

__all__ = [
    "CacheBackendConfig",
    "CacheOptions",
    "ExtractOptions",
    "FetchOptions",
    "LoggingConfig",
    "MetaLinkClientOptions",
    "Settings",
    "find_config_file",
]
