"""
OpenGraph (``og:*``, ``article:*``) extractor stage.
"""

from __future__ import annotations

from typing import Dict, List, Optional
from urllib.parse import urlsplit

from metalink.models._json import as_int
from metalink.models.enums import CandidateSource, LinkKind
from metalink.models.media import ImageCandidate
from metalink.utils.dates import parse_date
from metalink.utils.html import meta_content, meta_contents, meta_key, meta_value

from ..context import ExtractionContext

_SOURCE = CandidateSource.OPEN_GRAPH

_IMAGE_URL_KEYS = ("og:image", "og:image:url", "og:image:secure_url")


def og(document, name: str) -> Optional[str]:
    return meta_content(document, f"og:{name}")


class OpenGraphExtractor:
    name = "open_graph"

    def extract(self, context: ExtractionContext) -> None:
        if not context.options.extract_open_graph:
            return
        doc = context.document

        context.add_title(og(doc, "title"), _SOURCE, 0.95, "og:title")
        context.add_description(og(doc, "description"), _SOURCE, 0.90, "og:description")
        context.add_site_name(og(doc, "site_name"), _SOURCE, 0.85, "og:site_name")
        context.add_locale(og(doc, "locale"), _SOURCE, 0.70, "og:locale")
        context.add_canonical_url(og(doc, "url"), _SOURCE, 0.75, "og:url")

        og_type = og(doc, "type")
        context.set_kind(self._kind_from_type(og_type, context.base_url), _SOURCE, 0.70, "og:type")

        for image in self._images(context):
            context.add_image_candidate(image, _SOURCE, 0.85, "og:image")

        for url in meta_contents(doc, "og:video", "og:video:url", "og:video:secure_url"):
            context.add_video_url(url, _SOURCE, 0.70, "og:video")
        for url in meta_contents(doc, "og:audio", "og:audio:url", "og:audio:secure_url"):
            context.add_audio_url(url, _SOURCE, 0.70, "og:audio")

        published = meta_content(doc, "article:published_time", "og:published_time")
        context.add_published_at(parse_date(published), _SOURCE, 0.80, "article:published_time")
        modified = meta_content(doc, "article:modified_time", "og:updated_time")
        context.add_modified_at(parse_date(modified), _SOURCE, 0.75, "article:modified_time")

        for tag in meta_contents(doc, "article:tag", "book:tag", "video:tag"):
            context.add_keyword(tag, _SOURCE, 0.60, "og:tag")

    @staticmethod
    def _kind_from_type(og_type: Optional[str], base_url: str) -> Optional[LinkKind]:
        if og_type is None:
            return None
        value = og_type.strip().lower()
        if value in ("article", "product", "profile"):
            return LinkKind(value)
        if value == "website":
            path = urlsplit(base_url).path
            return LinkKind.HOMEPAGE if path in ("", "/") else LinkKind.OTHER
        if value.startswith("video"):
            return LinkKind.VIDEO
        if value.startswith("music"):
            return LinkKind.AUDIO
        return None

    @staticmethod
    def _images(context: ExtractionContext) -> List[ImageCandidate]:
        """
        Group structured ``og:image`` properties. A URL key starts a new
        image; ``width``/``height``/``type``/``alt`` attach to the current one.
        """
        images: List[Dict[str, str]] = []
        current: Optional[Dict[str, str]] = None
        for node in context.document.css("meta"):
            key = meta_key(node)
            if key is None or not key.startswith("og:image"):
                continue
            value = meta_value(node)
            if value is None:
                continue
            if key in _IMAGE_URL_KEYS:
                current = {"url": value}
                images.append(current)
            elif current is not None:
                attribute = key[len("og:image:") :]
                if attribute in ("width", "height", "type", "alt"):
                    current.setdefault(attribute, value)
        return [
            ImageCandidate(
                url=image["url"],
                width=as_int(image.get("width")),
                height=as_int(image.get("height")),
                mime_type=image.get("type"),
                alt=image.get("alt"),
            )
            for image in images
        ]
