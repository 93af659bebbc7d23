"""
Media records attached to link metadata: images, icons, videos and audio.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ._json import as_int, as_str, drop_none


@dataclass(frozen=True)
class ImageCandidate:
    url: str
    width: Optional[int] = None
    height: Optional[int] = None
    mime_type: Optional[str] = None
    alt: Optional[str] = None
    byte_size: Optional[int] = None

    def to_json(self) -> Dict[str, Any]:
        return drop_none(
            {
                "url": self.url,
                "width": self.width,
                "height": self.height,
                "mimeType": self.mime_type,
                "alt": self.alt,
                "byteSize": self.byte_size,
            }
        )

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> ImageCandidate:
        url = as_str(data.get("url"))
        if not url:
            raise ValueError("ImageCandidate.url is required")
        return cls(
            url=url,
            width=as_int(data.get("width")),
            height=as_int(data.get("height")),
            mime_type=as_str(data.get("mimeType")),
            alt=as_str(data.get("alt")),
            byte_size=as_int(data.get("byteSize")),
        )


@dataclass(frozen=True)
class IconCandidate:
    url: str
    sizes: Optional[str] = None
    type: Optional[str] = None
    rel: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        return drop_none({"url": self.url, "sizes": self.sizes, "type": self.type, "rel": self.rel})

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> IconCandidate:
        url = as_str(data.get("url"))
        if not url:
            raise ValueError("IconCandidate.url is required")
        return cls(
            url=url,
            sizes=as_str(data.get("sizes")),
            type=as_str(data.get("type")),
            rel=as_str(data.get("rel")),
        )


@dataclass(frozen=True)
class VideoCandidate:
    url: str
    width: Optional[int] = None
    height: Optional[int] = None
    mime_type: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        return drop_none(
            {"url": self.url, "width": self.width, "height": self.height, "mimeType": self.mime_type}
        )

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> VideoCandidate:
        url = as_str(data.get("url"))
        if not url:
            raise ValueError("VideoCandidate.url is required")
        return cls(
            url=url,
            width=as_int(data.get("width")),
            height=as_int(data.get("height")),
            mime_type=as_str(data.get("mimeType")),
        )


@dataclass(frozen=True)
class AudioCandidate:
    url: str
    mime_type: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        return drop_none({"url": self.url, "mimeType": self.mime_type})

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> AudioCandidate:
        url = as_str(data.get("url"))
        if not url:
            raise ValueError("AudioCandidate.url is required")
        return cls(url=url, mime_type=as_str(data.get("mimeType")))
