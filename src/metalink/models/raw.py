"""
Raw ``<meta>`` and ``<link>`` tags captured verbatim from a document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ._json import as_dict, as_list, as_str, drop_none

if TYPE_CHECKING:
    from selectolax.lexbor import LexborHTMLParser


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class RawLinkTag:
    rel: str
    href: str
    type: Optional[str] = None
    sizes: Optional[str] = None
    title: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        return drop_none(
            {"rel": self.rel, "href": self.href, "type": self.type, "sizes": self.sizes, "title": self.title}
        )

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> RawLinkTag:
        rel = as_str(data.get("rel"))
        href = as_str(data.get("href"))
        if rel is None or href is None:
            raise ValueError("RawLinkTag requires rel and href")
        return cls(
            rel=rel,
            href=href,
            type=as_str(data.get("type")),
            sizes=as_str(data.get("sizes")),
            title=as_str(data.get("title")),
        )


@dataclass(frozen=True)
class RawMetadata:
    meta: Dict[str, List[str]] = field(default_factory=dict)
    links: List[RawLinkTag] = field(default_factory=list)

    @classmethod
    def from_document(cls, document: LexborHTMLParser) -> RawMetadata:
        """Collect every named meta tag and every ``<link rel href>``."""
        meta: Dict[str, List[str]] = {}
        for node in document.css("meta"):
            attrs = node.attributes
            key = attrs.get("name") or attrs.get("property") or attrs.get("http-equiv")
            content = _blank_to_none(attrs.get("content"))
            if not key or content is None:
                continue
            meta.setdefault(key.strip().lower(), []).append(content)

        links: List[RawLinkTag] = []
        for node in document.css("link"):
            attrs = node.attributes
            rel = _blank_to_none(attrs.get("rel"))
            href = _blank_to_none(attrs.get("href"))
            if rel is None or href is None:
                continue
            links.append(
                RawLinkTag(
                    rel=rel,
                    href=href,
                    type=_blank_to_none(attrs.get("type")),
                    sizes=_blank_to_none(attrs.get("sizes")),
                    title=_blank_to_none(attrs.get("title")),
                )
            )
        return cls(meta=meta, links=links)

    def to_json(self) -> Dict[str, Any]:
        return {
            "meta": {key: list(values) for key, values in self.meta.items()},
            "links": [link.to_json() for link in self.links],
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> RawMetadata:
        meta: Dict[str, List[str]] = {}
        for key, values in (as_dict(data.get("meta")) or {}).items():
            meta[key] = [value for value in as_list(values) if isinstance(value, str)]
        links = [RawLinkTag.from_json(link) for link in as_list(data.get("links")) if isinstance(link, dict)]
        return cls(meta=meta, links=links)
