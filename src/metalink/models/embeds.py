"""
Records produced by enrichment (oEmbed, web app manifest) and JSON-LD.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ._json import as_dict, as_int, as_list, as_str, drop_none
from .enums import OEmbedFormat


@dataclass(frozen=True)
class OEmbedEndpoint:
    url: str
    format: OEmbedFormat = OEmbedFormat.JSON

    def to_json(self) -> Dict[str, Any]:
        return {"url": self.url, "format": self.format.value}

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> OEmbedEndpoint:
        url = as_str(data.get("url"))
        if not url:
            raise ValueError("OEmbedEndpoint.url is required")
        fmt = OEmbedFormat.XML if data.get("format") == OEmbedFormat.XML.value else OEmbedFormat.JSON
        return cls(url=url, format=fmt)


@dataclass(frozen=True)
class OEmbedData:
    endpoint: OEmbedEndpoint
    type: Optional[str] = None
    version: Optional[str] = None
    title: Optional[str] = None
    author_name: Optional[str] = None
    author_url: Optional[str] = None
    provider_name: Optional[str] = None
    provider_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    thumbnail_width: Optional[int] = None
    thumbnail_height: Optional[int] = None
    html: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None

    def to_json(self) -> Dict[str, Any]:
        return drop_none(
            {
                "endpoint": self.endpoint.to_json(),
                "type": self.type,
                "version": self.version,
                "title": self.title,
                "authorName": self.author_name,
                "authorUrl": self.author_url,
                "providerName": self.provider_name,
                "providerUrl": self.provider_url,
                "thumbnailUrl": self.thumbnail_url,
                "thumbnailWidth": self.thumbnail_width,
                "thumbnailHeight": self.thumbnail_height,
                "html": self.html,
                "width": self.width,
                "height": self.height,
            }
        )

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> OEmbedData:
        endpoint = as_dict(data.get("endpoint"))
        if endpoint is None:
            raise ValueError("OEmbedData.endpoint is required")
        return cls(
            endpoint=OEmbedEndpoint.from_json(endpoint),
            type=as_str(data.get("type")),
            version=as_str(data.get("version")),
            title=as_str(data.get("title")),
            author_name=as_str(data.get("authorName")),
            author_url=as_str(data.get("authorUrl")),
            provider_name=as_str(data.get("providerName")),
            provider_url=as_str(data.get("providerUrl")),
            thumbnail_url=as_str(data.get("thumbnailUrl")),
            thumbnail_width=as_int(data.get("thumbnailWidth")),
            thumbnail_height=as_int(data.get("thumbnailHeight")),
            html=as_str(data.get("html")),
            width=as_int(data.get("width")),
            height=as_int(data.get("height")),
        )


@dataclass(frozen=True)
class ManifestIcon:
    src: str
    sizes: Optional[str] = None
    type: Optional[str] = None
    purpose: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        return drop_none({"src": self.src, "sizes": self.sizes, "type": self.type, "purpose": self.purpose})

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> ManifestIcon:
        src = as_str(data.get("src"))
        if not src:
            raise ValueError("ManifestIcon.src is required")
        return cls(
            src=src,
            sizes=as_str(data.get("sizes")),
            type=as_str(data.get("type")),
            purpose=as_str(data.get("purpose")),
        )


@dataclass(frozen=True)
class WebAppManifestData:
    manifest_url: str
    name: Optional[str] = None
    short_name: Optional[str] = None
    start_url: Optional[str] = None
    display: Optional[str] = None
    background_color: Optional[str] = None
    theme_color: Optional[str] = None
    icons: List[ManifestIcon] = field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        return drop_none(
            {
                "manifestUrl": self.manifest_url,
                "name": self.name,
                "shortName": self.short_name,
                "startUrl": self.start_url,
                "display": self.display,
                "backgroundColor": self.background_color,
                "themeColor": self.theme_color,
                "icons": [icon.to_json() for icon in self.icons],
            }
        )

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> WebAppManifestData:
        manifest_url = as_str(data.get("manifestUrl"))
        if not manifest_url:
            raise ValueError("WebAppManifestData.manifestUrl is required")
        return cls(
            manifest_url=manifest_url,
            name=as_str(data.get("name")),
            short_name=as_str(data.get("shortName")),
            start_url=as_str(data.get("startUrl")),
            display=as_str(data.get("display")),
            background_color=as_str(data.get("backgroundColor")),
            theme_color=as_str(data.get("themeColor")),
            icons=[ManifestIcon.from_json(icon) for icon in as_list(data.get("icons")) if isinstance(icon, dict)],
        )


@dataclass(frozen=True)
class StructuredDataGraph:
    """JSON-LD nodes collected from a page, in discovery order."""

    nodes: List[Dict[str, Any]] = field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        return {"nodes": list(self.nodes)}

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> StructuredDataGraph:
        return cls(nodes=[node for node in as_list(data.get("nodes")) if isinstance(node, dict)])
