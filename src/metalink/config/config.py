"""
Configuration management for MetaLink using Pydantic.

Per-request options (``FetchOptions``, ``ExtractOptions``, ``CacheOptions``)
are frozen models so they can be shared between concurrent requests and
folded into cache-key signatures. ``Settings`` is the process-level object
loaded from YAML and ``METALINK_`` environment variables.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from metalink.models.enums import CachePayloadKind

log = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 512 * 1024
DEFAULT_CACHE_TTL_SECONDS = 4 * 60 * 60


class FetchOptions(BaseModel):
    """Options controlling how a page is fetched."""

    model_config = ConfigDict(frozen=True)

    timeout: float = Field(
        default=10.0,
        description="Overall time budget in seconds for one logical fetch, redirects included.",
    )
    user_agent: Optional[str] = Field(default=None, description="User-Agent header override.")
    follow_redirects: bool = Field(default=True, description="Follow 3xx responses with a Location header.")
    max_redirects: int = Field(default=5, description="Maximum number of redirect hops to follow.")
    max_bytes: int = Field(
        default=DEFAULT_MAX_BYTES,
        description="Maximum body bytes to read. Zero or negative reads no body.",
    )
    stop_after_head: bool = Field(
        default=True,
        description="Resolve redirects with HEAD first and skip GET for non-HTML resources.",
    )
    proxy_url: Optional[str] = Field(
        default=None,
        description="Proxy template. Supports {url} and {urlEncoded} placeholders, else used as a prefix.",
    )
    headers: Dict[str, str] = Field(default_factory=dict, description="Extra request headers.")

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v


class ExtractOptions(BaseModel):
    """Options controlling which extractor stages run and the list caps."""

    model_config = ConfigDict(frozen=True)

    extract_open_graph: bool = True
    extract_twitter_card: bool = True
    extract_standard_meta: bool = True
    extract_link_rels: bool = True
    extract_json_ld: bool = True
    enable_oembed: bool = Field(default=False, description="Fetch a discovered oEmbed endpoint to backfill fields.")
    enable_manifest: bool = Field(default=False, description="Fetch a discovered web app manifest.")
    include_raw_metadata: bool = Field(default=False, description="Attach raw meta and link tags to the result.")
    max_images: int = Field(default=10, description="Cap for the image list. Zero or negative yields none.")
    max_icons: int = Field(default=10, description="Cap for the icon list.")
    max_videos: int = Field(default=5, description="Cap for the video list.")
    max_audios: int = Field(default=5, description="Cap for the audio list.")


class CacheOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    ttl: float = Field(
        default=DEFAULT_CACHE_TTL_SECONDS,
        description="Time-to-live in seconds for written entries. Zero or negative uses the store default.",
    )
    payload_kind: CachePayloadKind = Field(
        default=CachePayloadKind.LINK_METADATA,
        description="Store only the metadata record, or the full extraction result.",
    )

    @property
    def ttl_ms(self) -> int:
        return int(self.ttl * 1000)


class MetaLinkClientOptions(BaseModel):
    """Defaults used by the client when a call does not pass its own options."""

    model_config = ConfigDict(frozen=True)

    fetch: FetchOptions = Field(default_factory=FetchOptions)
    extract: ExtractOptions = Field(default_factory=ExtractOptions)
    cache: CacheOptions = Field(default_factory=CacheOptions)


class CacheBackendConfig(BaseModel):
    """Which cache store the CLI and settings-driven clients build."""

    backend: Literal["memory", "sqlite"] = Field(default="memory", description="Cache store implementation.")
    sqlite_path: str = Field(default="./data/metalink-cache.db", description="SQLite database path.")
    key_prefix: str = Field(default="metalink:", description="Prefix applied to every cache key.")
    max_entries: int = Field(default=500, description="LRU capacity of the in-memory store.")

    @field_validator("max_entries")
    @classmethod
    def clamp_max_entries(cls, v: int) -> int:
        return max(v, 0)


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs to console.")
    json_logs: bool = Field(default=False, description="Render console logs as JSON.")

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


class Settings(BaseSettings):
    project_name: str = "MetaLink"
    client: MetaLinkClientOptions = Field(default_factory=MetaLinkClientOptions)
    cache_backend: CacheBackendConfig = Field(default_factory=CacheBackendConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(env_prefix="METALINK_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Settings:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        return cls.model_validate(yaml_data)


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    for path in (current_dir / "metalink.yaml", current_dir / "metalink.yml"):
        if path.exists():
            return path
    return None
