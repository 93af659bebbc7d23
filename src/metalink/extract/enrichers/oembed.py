"""
oEmbed enrichment: fetch a discovered provider endpoint and parse its JSON or
XML response.
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from typing import Any, Dict, Optional

import structlog

from metalink.config.config import FetchOptions
from metalink.fetch.protocols import Fetcher
from metalink.fetch.redirects import get_with_redirects
from metalink.models._json import as_int
from metalink.models.embeds import OEmbedData, OEmbedEndpoint
from metalink.models.enums import OEmbedFormat

logger = structlog.get_logger(__name__)

OEMBED_ACCEPT = "application/json, text/xml, application/xml;q=0.9, */*;q=0.8"
OEMBED_MAX_BYTES = 256 * 1024

_FIELDS = (
    "type",
    "version",
    "title",
    "author_name",
    "author_url",
    "provider_name",
    "provider_url",
    "thumbnail_url",
    "html",
)
_INT_FIELDS = ("thumbnail_width", "thumbnail_height", "width", "height")


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _build(endpoint: OEmbedEndpoint, values: Dict[str, Any]) -> OEmbedData:
    kwargs: Dict[str, Any] = {name: _text(values.get(name)) for name in _FIELDS}
    kwargs.update({name: as_int(values.get(name)) for name in _INT_FIELDS})
    return OEmbedData(endpoint=endpoint, **kwargs)


def parse_oembed_json(endpoint: OEmbedEndpoint, text: str) -> Optional[OEmbedData]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    return _build(endpoint, data)


def parse_oembed_xml(endpoint: OEmbedEndpoint, text: str) -> Optional[OEmbedData]:
    try:
        root = ET.fromstring(text)
    except ET.ParseError:
        return None

    values: Dict[str, Any] = {}
    for name in _FIELDS + _INT_FIELDS:
        element = root if root.tag == name else root.find(f".//{name}")
        if element is not None:
            values[name] = "".join(element.itertext())
    return _build(endpoint, values)


class OEmbedEnricher:
    """Fetches an oEmbed endpoint. Any non-2xx or unparsable response yields None."""

    def __init__(self, max_bytes: int = OEMBED_MAX_BYTES) -> None:
        self.max_bytes = max_bytes

    async def fetch(self, endpoint: OEmbedEndpoint, fetcher: Fetcher, options: FetchOptions) -> Optional[OEmbedData]:
        response = await get_with_redirects(
            fetcher, endpoint.url, options, headers={"accept": OEMBED_ACCEPT}, max_bytes=self.max_bytes
        )
        if not response.is_ok:
            logger.debug(
                "oEmbed endpoint unavailable",
                url=endpoint.url,
                status_code=response.status_code,
                error=str(response.error) if response.error else None,
            )
            return None

        text = response.body.decode("utf-8", errors="replace")
        if endpoint.format is OEmbedFormat.XML:
            return parse_oembed_xml(endpoint, text)
        return parse_oembed_json(endpoint, text)
