"""
``<link rel=...>`` extractor: canonical URL, icons, manifest and oEmbed
discovery.
"""

from __future__ import annotations

from typing import Optional, Set

from metalink.models.enums import CandidateSource, OEmbedFormat
from metalink.utils.html import attr, rel_tokens

from ..context import ExtractionContext

_SOURCE = CandidateSource.LINK_REL


def _icon_score(rels: Set[str]) -> Optional[float]:
    if "apple-touch-icon" in rels or "apple-touch-icon-precomposed" in rels:
        return 0.80
    if "icon" in rels:
        return 0.75
    if "mask-icon" in rels:
        return 0.70
    if any("icon" in rel for rel in rels):
        return 0.65
    return None


class LinkRelExtractor:
    name = "link_rel"

    def extract(self, context: ExtractionContext) -> None:
        options = context.options
        if not (options.extract_link_rels or options.enable_oembed or options.enable_manifest):
            return

        seen_icons: Set[str] = set()
        seen_oembed: Set[str] = set()

        for node in context.document.css("link"):
            rels = rel_tokens(node)
            href = attr(node, "href")
            if not rels or href is None:
                continue
            rel_set = set(rels)
            link_type = attr(node, "type")

            if options.extract_link_rels and "canonical" in rel_set:
                context.add_canonical_url(href, _SOURCE, 0.95, "link rel=canonical")

            if options.enable_manifest and "manifest" in rel_set:
                context.add_manifest_url(href, _SOURCE, 0.90, "link rel=manifest")

            if options.enable_oembed and "alternate" in rel_set and link_type and "oembed" in link_type.lower():
                lowered = link_type.lower()
                fmt = OEmbedFormat.XML if "xml" in lowered and "json" not in lowered else OEmbedFormat.JSON
                url = context.resolve_url(href)
                if url is not None and f"{fmt.value}:{url}" not in seen_oembed:
                    seen_oembed.add(f"{fmt.value}:{url}")
                    context.add_oembed_endpoint(
                        url, fmt, _SOURCE, 0.85, f"link rel={' '.join(rels)} type={link_type}"
                    )

            if options.extract_link_rels:
                score = _icon_score(rel_set)
                if score is None:
                    continue
                url = context.resolve_url(href)
                if url is None or url in seen_icons:
                    continue
                seen_icons.add(url)
                context.add_icon_url(
                    url,
                    _SOURCE,
                    score,
                    f"link rel={' '.join(rels)}",
                    rel=" ".join(rels),
                    sizes=attr(node, "sizes"),
                    type=link_type,
                )
