"""
JSON-LD extractor stage.

All nodes found in ``<script type="application/ld+json">`` blocks are kept as
the structured-data graph. The nodes that most likely describe the page
itself (matching URL, page-like ``@type``, headline/date/image present) are
ranked first and contribute field candidates with decreasing strength.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit

import structlog

from metalink.models.embeds import StructuredDataGraph
from metalink.models.enums import CandidateSource, LinkKind
from metalink.utils.dates import parse_date
from metalink.utils.html import clean_text
from metalink.utils.url_resolver import UrlResolver
from metalink.utils.urls import remove_fragment

from ..context import ExtractionContext

logger = structlog.get_logger(__name__)

_SOURCE = CandidateSource.JSON_LD

MAX_NODES = 250
MAX_APPLIED_NODES = 12
STRUCTURED_DATA_SCORE = 0.85

_NODE_KEYS = ("@type", "@id", "headline", "name", "description", "url", "image", "thumbnailUrl")
_URL_KEYS = ("url", "@id", "contentUrl", "embedUrl", "thumbnailUrl", "logo", "sameAs")

_PRIMARY_TYPES = ("WebPage", "Article", "NewsArticle", "BlogPosting", "VideoObject", "Product", "Event")
_SECONDARY_TYPES = ("WebSite", "Organization", "Person")

# (types, kind) in priority order.
_KIND_MAP: Sequence[Tuple[Tuple[str, ...], LinkKind]] = (
    (("Article", "NewsArticle", "BlogPosting", "Report", "ScholarlyArticle"), LinkKind.ARTICLE),
    (("Product", "AggregateOffer", "Offer", "Brand"), LinkKind.PRODUCT),
    (("VideoObject", "Clip", "Movie", "TVEpisode"), LinkKind.VIDEO),
    (("AudioObject", "MusicRecording", "PodcastEpisode"), LinkKind.AUDIO),
    (("ProfilePage",), LinkKind.PROFILE),
    (("WebSite",), LinkKind.HOMEPAGE),
    (("SearchAction",), LinkKind.SEARCH),
    (("CollectionPage", "ImageGallery"), LinkKind.GALLERY),
    (("Event",), LinkKind.EVENT),
    (("WebPage",), LinkKind.OTHER),
)

# Field scores for the top node, the next three, and the rest.
_SCORES: Dict[str, Tuple[float, float, float]] = {
    "kind": (0.92, 0.80, 0.68),
    "canonical": (0.90, 0.78, 0.65),
    "title": (0.86, 0.74, 0.62),
    "description": (0.82, 0.70, 0.58),
    "locale": (0.78, 0.66, 0.54),
    "site_name": (0.74, 0.62, 0.50),
    "author": (0.90, 0.78, 0.66),
    "published": (0.92, 0.80, 0.68),
    "modified": (0.88, 0.76, 0.64),
    "keyword": (0.72, 0.60, 0.48),
    "image": (0.80, 0.68, 0.56),
    "video": (0.86, 0.74, 0.62),
    "video_embed": (0.84, 0.72, 0.60),
    "audio": (0.86, 0.74, 0.62),
}


def _as_text(value: Any) -> Optional[str]:
    return clean_text(value) if isinstance(value, str) else None


def normalize_type(raw: str) -> str:
    """``schema:Article`` and ``https://schema.org/Article`` become ``Article``."""
    value = raw.strip()
    colon = value.rfind(":")
    if 0 <= colon < len(value) - 1:
        value = value[colon + 1 :]
    slash = value.rfind("/")
    if 0 <= slash < len(value) - 1:
        value = value[slash + 1 :]
    return value


def node_types(node: Dict[str, Any]) -> List[str]:
    raw = node.get("@type")
    if isinstance(raw, str):
        return [normalize_type(raw)]
    if isinstance(raw, list):
        return [normalize_type(item) for item in raw if isinstance(item, str)]
    return []


def _has_type(types: Sequence[str], wanted: Sequence[str]) -> bool:
    return any(t in wanted for t in types)


def kind_from_types(types: Sequence[str]) -> Optional[LinkKind]:
    for wanted, kind in _KIND_MAP:
        if _has_type(types, wanted):
            return kind
    return None


def collect_nodes(payloads: Sequence[Any], max_nodes: int = MAX_NODES) -> List[Dict[str, Any]]:
    """
    Walk decoded JSON-LD payloads depth-first and collect node-like objects,
    descending into ``@graph`` and nested values. Nodes sharing an ``@id``
    are kept once.
    """
    nodes: List[Dict[str, Any]] = []
    seen_ids = set()
    stack: List[Any] = list(reversed(payloads))

    while stack and len(nodes) < max_nodes:
        item = stack.pop()
        if isinstance(item, list):
            stack.extend(reversed(item))
            continue
        if not isinstance(item, dict):
            continue

        if any(key in item for key in _NODE_KEYS):
            node_id = item.get("@id")
            if not isinstance(node_id, str) or node_id not in seen_ids:
                if isinstance(node_id, str):
                    seen_ids.add(node_id)
                nodes.append(item)

        children = [value for key, value in item.items() if isinstance(value, (dict, list))]
        stack.extend(reversed(children))

    return nodes


class JsonLdExtractor:
    name = "json_ld"

    def __init__(self, max_nodes: int = MAX_NODES) -> None:
        self.max_nodes = max_nodes

    def extract(self, context: ExtractionContext) -> None:
        if not context.options.extract_json_ld:
            return
        payloads = list(self._payloads(context))
        if not payloads:
            return
        nodes = collect_nodes(payloads, self.max_nodes)
        if not nodes:
            return

        context.set_structured_data(
            StructuredDataGraph(nodes=nodes), _SOURCE, STRUCTURED_DATA_SCORE, "script[type*=ld+json]"
        )

        ranked = sorted(
            nodes, key=lambda node: self._relevance(node, context.base_url, context.url_resolver), reverse=True
        )
        for index, node in enumerate(ranked[:MAX_APPLIED_NODES]):
            tier = 0 if index == 0 else (1 if index < 4 else 2)
            self._apply(context, node, tier)

    @staticmethod
    def _payloads(context: ExtractionContext) -> Iterator[Any]:
        for script in context.document.css("script"):
            script_type = (script.attributes.get("type") or "").lower()
            if "ld+json" not in script_type and "json+ld" not in script_type:
                continue
            text = script.text(deep=True)
            if not text or not text.strip():
                continue
            try:
                yield json.loads(text)
            except json.JSONDecodeError as e:
                logger.debug("Skipping malformed JSON-LD block", url=context.page_url, error=str(e))

    @staticmethod
    def _urls(value: Any, base_url: str, resolver: UrlResolver) -> List[str]:
        raw: List[str] = []

        def collect(v: Any) -> None:
            if isinstance(v, str):
                if v.strip():
                    raw.append(v.strip())
            elif isinstance(v, list):
                for item in v:
                    collect(item)
            elif isinstance(v, dict):
                for key in _URL_KEYS:
                    if key in v:
                        collect(v[key])
                if "mainEntityOfPage" in v:
                    collect(v["mainEntityOfPage"])

        collect(value)
        return resolver.resolve_all(base_url, raw)

    def _relevance(self, node: Dict[str, Any], base_url: str, resolver: UrlResolver) -> float:
        score = 0.0
        base = urlsplit(remove_fragment(base_url))
        base_host = (base.hostname or "").lower()
        for key in ("url", "@id", "mainEntityOfPage"):
            for url in self._urls(node.get(key), base_url, resolver):
                parts = urlsplit(remove_fragment(url))
                host = (parts.hostname or "").lower()
                if (parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query) == (
                    base.scheme.lower(),
                    base.netloc.lower(),
                    base.path,
                    base.query,
                ):
                    score += 6.0
                elif host == base_host and parts.path == base.path:
                    score += 3.0
                elif host == base_host:
                    score += 1.0

        types = node_types(node)
        if types:
            if _has_type(types, _PRIMARY_TYPES):
                score += 3.0
            elif _has_type(types, _SECONDARY_TYPES):
                score += 1.5
            else:
                score += 0.5

        if _as_text(node.get("headline")) or _as_text(node.get("name")):
            score += 0.75
        if _as_text(node.get("description")):
            score += 0.5
        if "datePublished" in node or "uploadDate" in node:
            score += 0.5
        if "image" in node or "thumbnailUrl" in node:
            score += 0.35
        return score

    def _apply(self, context: ExtractionContext, node: Dict[str, Any], tier: int) -> None:
        types = node_types(node)
        evidence = self._evidence(node, types)

        def score(field: str) -> float:
            return _SCORES[field][tier]

        context.set_kind(kind_from_types(types), _SOURCE, score("kind"), evidence)

        for key in ("mainEntityOfPage", "url", "@id"):
            urls = self._urls(node.get(key), context.base_url, context.url_resolver)
            if urls:
                context.add_canonical_url(urls[0], _SOURCE, score("canonical"), evidence)
                break

        title = _as_text(node.get("headline")) or _as_text(node.get("name")) or _as_text(node.get("title"))
        context.add_title(title, _SOURCE, score("title"), evidence)
        context.add_description(_as_text(node.get("description")), _SOURCE, score("description"), evidence)
        locale = _as_text(node.get("inLanguage")) or _as_text(node.get("@language"))
        context.add_locale(locale, _SOURCE, score("locale"), evidence)

        site_name = self._publisher_name(node)
        if site_name is None and _has_type(types, ("WebSite",)):
            site_name = _as_text(node.get("name")) or _as_text(node.get("headline"))
        context.add_site_name(site_name, _SOURCE, score("site_name"), evidence)

        for author in self._authors(node.get("author")):
            context.add_author(author, _SOURCE, score("author"), evidence)

        published = (
            parse_date(node.get("datePublished"))
            or parse_date(node.get("uploadDate"))
            or parse_date(node.get("startDate"))
        )
        context.add_published_at(published, _SOURCE, score("published"), evidence)
        context.add_modified_at(parse_date(node.get("dateModified")), _SOURCE, score("modified"), evidence)

        for keyword in self._keywords(node.get("keywords")):
            context.add_keyword(keyword, _SOURCE, score("keyword"), evidence)

        for key in ("image", "thumbnailUrl", "logo"):
            for url in self._urls(node.get(key), context.base_url, context.url_resolver):
                context.add_image_url(url, _SOURCE, score("image"), evidence)

        if _has_type(types, ("VideoObject",)):
            for url in self._urls(node.get("contentUrl"), context.base_url, context.url_resolver):
                context.add_video_url(url, _SOURCE, score("video"), evidence)
            for url in self._urls(node.get("embedUrl"), context.base_url, context.url_resolver):
                context.add_video_url(url, _SOURCE, score("video_embed"), evidence)

        if _has_type(types, ("AudioObject",)):
            for url in self._urls(node.get("contentUrl"), context.base_url, context.url_resolver):
                context.add_audio_url(url, _SOURCE, score("audio"), evidence)

    @staticmethod
    def _publisher_name(node: Dict[str, Any]) -> Optional[str]:
        publisher = node.get("publisher")
        if isinstance(publisher, dict):
            return _as_text(publisher.get("name"))
        return _as_text(publisher)

    @classmethod
    def _authors(cls, value: Any) -> Iterator[str]:
        if isinstance(value, str):
            text = clean_text(value)
            if text:
                yield text
        elif isinstance(value, dict):
            name = _as_text(value.get("name"))
            if name:
                yield name
        elif isinstance(value, list):
            for item in value:
                yield from cls._authors(item)

    @staticmethod
    def _keywords(value: Any) -> Iterator[str]:
        if isinstance(value, str):
            for part in value.split(","):
                text = clean_text(part)
                if text:
                    yield text
        elif isinstance(value, list):
            for item in value:
                text = _as_text(item)
                if text:
                    yield text

    @staticmethod
    def _evidence(node: Dict[str, Any], types: Sequence[str]) -> str:
        node_id = _as_text(node.get("@id"))
        type_str = "|".join(types) if types else None
        if node_id and type_str:
            return f"@type={type_str} @id={node_id}"
        if node_id:
            return f"@id={node_id}"
        if type_str:
            return f"@type={type_str}"
        return "json-ld"
