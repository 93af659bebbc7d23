"""
The normalized metadata record returned for every extraction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ._json import as_dict, as_list, as_str, drop_none, format_datetime, parse_datetime
from .embeds import OEmbedData, StructuredDataGraph, WebAppManifestData
from .enums import LinkKind
from .media import AudioCandidate, IconCandidate, ImageCandidate, VideoCandidate


@dataclass(frozen=True)
class LinkMetadata:
    """
    Best answer per field for one page.

    List fields are never ``None``; scalar fields are ``None`` when no source
    produced a value. An instance with only the URLs set is a valid result
    for failed requests.
    """

    original_url: str
    resolved_url: str
    canonical_url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    site_name: Optional[str] = None
    locale: Optional[str] = None
    kind: LinkKind = LinkKind.UNKNOWN
    images: List[ImageCandidate] = field(default_factory=list)
    icons: List[IconCandidate] = field(default_factory=list)
    videos: List[VideoCandidate] = field(default_factory=list)
    audios: List[AudioCandidate] = field(default_factory=list)
    published_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    author: Optional[str] = None
    keywords: List[str] = field(default_factory=list)
    oembed: Optional[OEmbedData] = None
    manifest: Optional[WebAppManifestData] = None
    structured_data: Optional[StructuredDataGraph] = None

    @classmethod
    def empty(cls, original_url: str, resolved_url: Optional[str] = None) -> LinkMetadata:
        return cls(original_url=original_url, resolved_url=resolved_url or original_url)

    @property
    def is_empty(self) -> bool:
        return (
            self.title is None
            and self.description is None
            and self.site_name is None
            and self.canonical_url is None
            and not self.images
            and not self.icons
            and not self.videos
            and not self.audios
            and self.oembed is None
            and self.manifest is None
            and self.structured_data is None
        )

    def to_json(self) -> Dict[str, Any]:
        return drop_none(
            {
                "originalUrl": self.original_url,
                "resolvedUrl": self.resolved_url,
                "canonicalUrl": self.canonical_url,
                "title": self.title,
                "description": self.description,
                "siteName": self.site_name,
                "locale": self.locale,
                "kind": self.kind.value,
                "images": [image.to_json() for image in self.images],
                "icons": [icon.to_json() for icon in self.icons],
                "videos": [video.to_json() for video in self.videos],
                "audios": [audio.to_json() for audio in self.audios],
                "publishedAt": format_datetime(self.published_at),
                "modifiedAt": format_datetime(self.modified_at),
                "author": self.author,
                "keywords": list(self.keywords),
                "oembed": self.oembed.to_json() if self.oembed else None,
                "manifest": self.manifest.to_json() if self.manifest else None,
                "structuredData": self.structured_data.to_json() if self.structured_data else None,
            }
        )

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> LinkMetadata:
        original_url = as_str(data.get("originalUrl"))
        resolved_url = as_str(data.get("resolvedUrl"))
        if not original_url or not resolved_url:
            raise ValueError("LinkMetadata requires originalUrl and resolvedUrl")

        try:
            kind = LinkKind(data.get("kind", LinkKind.UNKNOWN.value))
        except ValueError:
            kind = LinkKind.UNKNOWN

        oembed = as_dict(data.get("oembed"))
        manifest = as_dict(data.get("manifest"))
        structured = as_dict(data.get("structuredData"))
        return cls(
            original_url=original_url,
            resolved_url=resolved_url,
            canonical_url=as_str(data.get("canonicalUrl")),
            title=as_str(data.get("title")),
            description=as_str(data.get("description")),
            site_name=as_str(data.get("siteName")),
            locale=as_str(data.get("locale")),
            kind=kind,
            images=[ImageCandidate.from_json(i) for i in as_list(data.get("images")) if isinstance(i, dict)],
            icons=[IconCandidate.from_json(i) for i in as_list(data.get("icons")) if isinstance(i, dict)],
            videos=[VideoCandidate.from_json(v) for v in as_list(data.get("videos")) if isinstance(v, dict)],
            audios=[AudioCandidate.from_json(a) for a in as_list(data.get("audios")) if isinstance(a, dict)],
            published_at=parse_datetime(data.get("publishedAt")),
            modified_at=parse_datetime(data.get("modifiedAt")),
            author=as_str(data.get("author")),
            keywords=[k for k in as_list(data.get("keywords")) if isinstance(k, str)],
            oembed=OEmbedData.from_json(oembed) if oembed else None,
            manifest=WebAppManifestData.from_json(manifest) if manifest else None,
            structured_data=StructuredDataGraph.from_json(structured) if structured else None,
        )
