"""
Plain HTML metadata: ``<title>``, ``<h1>``, ``meta name=description`` and
friends, ``html[lang]``.
"""

from __future__ import annotations

import re
from typing import Optional

from selectolax.lexbor import LexborHTMLParser

from metalink.models.enums import CandidateSource
from metalink.utils.dates import parse_date
from metalink.utils.html import attr, clean_text, meta_content, node_text

from ..context import ExtractionContext

_SOURCE = CandidateSource.STANDARD_META

_KEYWORD_SPLIT = re.compile(r"[;,]")

_PUBLISHED_KEYS = ("pubdate", "publish-date", "publication_date", "date", "datepublished", "article:published_time")
_MODIFIED_KEYS = ("last-modified", "modified", "datemodified", "article:modified_time")


def _itemprop_content(document: LexborHTMLParser, prop: str) -> Optional[str]:
    for node in document.css(f'[itemprop="{prop}"]'):
        value = clean_text(node.attributes.get("content")) or clean_text(node.attributes.get("datetime"))
        if value is not None:
            return value
    return None


def _http_equiv(document: LexborHTMLParser, name: str) -> Optional[str]:
    for node in document.css("meta"):
        if (node.attributes.get("http-equiv") or "").strip().lower() == name:
            value = clean_text(node.attributes.get("content"))
            if value is not None:
                return value
    return None


class StandardMetaExtractor:
    name = "standard_meta"

    def extract(self, context: ExtractionContext) -> None:
        if not context.options.extract_standard_meta:
            return
        doc = context.document

        context.add_title(node_text(doc.css_first("title")), _SOURCE, 0.65, "<title>")
        context.add_title(node_text(doc.css_first("h1")), _SOURCE, 0.35, "<h1>")
        context.add_description(meta_content(doc, "description"), _SOURCE, 0.60, "meta[name=description]")
        context.add_site_name(
            meta_content(doc, "application-name", "apple-mobile-web-app-title"),
            _SOURCE,
            0.40,
            "meta[name=application-name]",
        )

        html = doc.css_first("html")
        if html is not None:
            context.add_locale(attr(html, "lang"), _SOURCE, 0.45, "html[lang]")
        context.add_locale(
            _http_equiv(doc, "content-language") or meta_content(doc, "language"),
            _SOURCE,
            0.35,
            "meta[http-equiv=content-language]",
        )

        keywords = meta_content(doc, "keywords")
        if keywords:
            seen = set()
            for keyword in _KEYWORD_SPLIT.split(keywords):
                cleaned = clean_text(keyword)
                if cleaned is None or cleaned.lower() in seen:
                    continue
                seen.add(cleaned.lower())
                context.add_keyword(cleaned, _SOURCE, 0.40, "meta[name=keywords]")

        context.add_author(meta_content(doc, "author"), _SOURCE, 0.45, "meta[name=author]")

        published = meta_content(doc, *_PUBLISHED_KEYS) or _itemprop_content(doc, "datePublished")
        context.add_published_at(parse_date(published), _SOURCE, 0.45, "meta[name=date]")
        modified = meta_content(doc, *_MODIFIED_KEYS) or _itemprop_content(doc, "dateModified")
        context.add_modified_at(parse_date(modified), _SOURCE, 0.40, "meta[name=last-modified]")
