"""
Web app manifest enrichment.
"""

from __future__ import annotations

import json
from typing import Any, List, Optional
from urllib.parse import urljoin

import structlog

from metalink.config.config import FetchOptions
from metalink.fetch.protocols import Fetcher
from metalink.fetch.redirects import get_with_redirects
from metalink.models.embeds import ManifestIcon, WebAppManifestData

logger = structlog.get_logger(__name__)

MANIFEST_ACCEPT = "application/manifest+json, application/json;q=0.9, */*;q=0.8"
MANIFEST_MAX_BYTES = 512 * 1024


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _resolve(base: str, raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    try:
        return urljoin(base, raw)
    except ValueError:
        return raw


def parse_manifest(manifest_url: str, text: str) -> Optional[WebAppManifestData]:
    """Parse a manifest document; relative ``start_url`` and icon ``src`` resolve against ``manifest_url``."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    icons: List[ManifestIcon] = []
    raw_icons = data.get("icons")
    if isinstance(raw_icons, list):
        for item in raw_icons:
            if not isinstance(item, dict):
                continue
            src = _resolve(manifest_url, _text(item.get("src")))
            if src is None:
                continue
            icons.append(
                ManifestIcon(
                    src=src,
                    sizes=_text(item.get("sizes")),
                    type=_text(item.get("type")),
                    purpose=_text(item.get("purpose")),
                )
            )

    return WebAppManifestData(
        manifest_url=manifest_url,
        name=_text(data.get("name")),
        short_name=_text(data.get("short_name")),
        start_url=_resolve(manifest_url, _text(data.get("start_url"))),
        display=_text(data.get("display")),
        background_color=_text(data.get("background_color")),
        theme_color=_text(data.get("theme_color")),
        icons=icons,
    )


class ManifestEnricher:
    def __init__(self, max_bytes: int = MANIFEST_MAX_BYTES) -> None:
        self.max_bytes = max_bytes

    async def fetch(self, url: str, fetcher: Fetcher, options: FetchOptions) -> Optional[WebAppManifestData]:
        response = await get_with_redirects(
            fetcher, url, options, headers={"accept": MANIFEST_ACCEPT}, max_bytes=self.max_bytes
        )
        if not response.is_ok:
            logger.debug(
                "Manifest unavailable",
                url=url,
                status_code=response.status_code,
                error=str(response.error) if response.error else None,
            )
            return None
        return parse_manifest(url, response.body.decode("utf-8", errors="replace"))
