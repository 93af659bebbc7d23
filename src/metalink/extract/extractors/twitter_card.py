"""
Twitter card (``twitter:*``) extractor stage.
"""

from __future__ import annotations

from metalink.models.enums import CandidateSource
from metalink.utils.html import meta_content

from ..context import ExtractionContext

_SOURCE = CandidateSource.TWITTER_CARD


class TwitterCardExtractor:
    name = "twitter_card"

    def extract(self, context: ExtractionContext) -> None:
        if not context.options.extract_twitter_card:
            return
        doc = context.document
        context.add_title(meta_content(doc, "twitter:title"), _SOURCE, 0.85, "twitter:title")
        context.add_description(meta_content(doc, "twitter:description"), _SOURCE, 0.80, "twitter:description")
        context.add_author(meta_content(doc, "twitter:creator"), _SOURCE, 0.45, "twitter:creator")
        context.add_image_url(
            meta_content(doc, "twitter:image", "twitter:image:src"),
            _SOURCE,
            0.75,
            "twitter:image",
            alt=meta_content(doc, "twitter:image:alt"),
        )
        context.add_video_url(meta_content(doc, "twitter:player"), _SOURCE, 0.55, "twitter:player")
