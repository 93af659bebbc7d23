"""
Per-page accumulator that extractor stages write candidates into.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from selectolax.lexbor import LexborHTMLParser

from metalink.config.config import ExtractOptions
from metalink.models.embeds import OEmbedEndpoint, StructuredDataGraph
from metalink.models.enums import CandidateSource, LinkKind, OEmbedFormat
from metalink.models.media import IconCandidate, ImageCandidate
from metalink.utils.dates import to_utc
from metalink.utils.html import clean_text
from metalink.utils.url_resolver import UrlResolver
from metalink.utils.urls import remove_fragment

from .candidate import DEFAULT_SCORE, Candidate


class ExtractionContext:
    """
    Candidate buckets for a single pipeline run.

    Every ``add_*`` call normalizes its input: text is whitespace-collapsed
    and dropped when empty; URLs are resolved against ``base_url``, must be
    http(s), and lose their fragment. Buckets keep insertion order, which is
    the tie-break order used by the merge.
    """

    def __init__(
        self,
        document: LexborHTMLParser,
        page_url: str,
        base_url: str,
        options: ExtractOptions,
        url_resolver: Optional[UrlResolver] = None,
    ) -> None:
        self.document = document
        self.page_url = page_url
        self.base_url = base_url
        self.options = options
        self.url_resolver = url_resolver or UrlResolver()

        self.titles: List[Candidate[str]] = []
        self.descriptions: List[Candidate[str]] = []
        self.site_names: List[Candidate[str]] = []
        self.locales: List[Candidate[str]] = []
        self.canonical_urls: List[Candidate[str]] = []
        self.keywords: List[Candidate[str]] = []
        self.authors: List[Candidate[str]] = []
        self.published_at: List[Candidate[datetime]] = []
        self.modified_at: List[Candidate[datetime]] = []
        self.kinds: List[Candidate[LinkKind]] = []
        self.images: List[Candidate[ImageCandidate]] = []
        self.icons: List[Candidate[IconCandidate]] = []
        self.videos: List[Candidate[str]] = []
        self.audios: List[Candidate[str]] = []
        self.oembed_endpoints: List[Candidate[OEmbedEndpoint]] = []
        self.manifest_urls: List[Candidate[str]] = []
        self.structured_data: Optional[Candidate[StructuredDataGraph]] = None

    def resolve_url(self, raw: Optional[str]) -> Optional[str]:
        resolved = self.url_resolver.resolve(self.base_url, raw)
        return remove_fragment(resolved) if resolved is not None else None

    def _add_text(
        self,
        bucket: List[Candidate[str]],
        value: Optional[str],
        source: CandidateSource,
        score: float,
        evidence: Optional[str],
    ) -> None:
        text = clean_text(value)
        if text is None:
            return
        bucket.append(Candidate(text, source, score, evidence))

    def _add_url(
        self,
        bucket: List[Candidate[str]],
        raw: Optional[str],
        source: CandidateSource,
        score: float,
        evidence: Optional[str],
    ) -> None:
        url = self.resolve_url(raw)
        if url is None:
            return
        bucket.append(Candidate(url, source, score, evidence))

    def add_title(
        self, value: Optional[str], source: CandidateSource, score: float = DEFAULT_SCORE, evidence: Optional[str] = None
    ) -> None:
        self._add_text(self.titles, value, source, score, evidence)

    def add_description(
        self, value: Optional[str], source: CandidateSource, score: float = DEFAULT_SCORE, evidence: Optional[str] = None
    ) -> None:
        self._add_text(self.descriptions, value, source, score, evidence)

    def add_site_name(
        self, value: Optional[str], source: CandidateSource, score: float = DEFAULT_SCORE, evidence: Optional[str] = None
    ) -> None:
        self._add_text(self.site_names, value, source, score, evidence)

    def add_locale(
        self, value: Optional[str], source: CandidateSource, score: float = DEFAULT_SCORE, evidence: Optional[str] = None
    ) -> None:
        self._add_text(self.locales, value, source, score, evidence)

    def add_keyword(
        self, value: Optional[str], source: CandidateSource, score: float = DEFAULT_SCORE, evidence: Optional[str] = None
    ) -> None:
        self._add_text(self.keywords, value, source, score, evidence)

    def add_author(
        self, value: Optional[str], source: CandidateSource, score: float = DEFAULT_SCORE, evidence: Optional[str] = None
    ) -> None:
        self._add_text(self.authors, value, source, score, evidence)

    def add_canonical_url(
        self, raw: Optional[str], source: CandidateSource, score: float = DEFAULT_SCORE, evidence: Optional[str] = None
    ) -> None:
        self._add_url(self.canonical_urls, raw, source, score, evidence)

    def add_published_at(
        self,
        value: Optional[datetime],
        source: CandidateSource,
        score: float = DEFAULT_SCORE,
        evidence: Optional[str] = None,
    ) -> None:
        if value is not None:
            self.published_at.append(Candidate(to_utc(value), source, score, evidence))

    def add_modified_at(
        self,
        value: Optional[datetime],
        source: CandidateSource,
        score: float = DEFAULT_SCORE,
        evidence: Optional[str] = None,
    ) -> None:
        if value is not None:
            self.modified_at.append(Candidate(to_utc(value), source, score, evidence))

    def set_kind(
        self, kind: Optional[LinkKind], source: CandidateSource, score: float = DEFAULT_SCORE, evidence: Optional[str] = None
    ) -> None:
        if kind is not None:
            self.kinds.append(Candidate(kind, source, score, evidence))

    def add_image_url(
        self,
        raw: Optional[str],
        source: CandidateSource,
        score: float = DEFAULT_SCORE,
        evidence: Optional[str] = None,
        *,
        width: Optional[int] = None,
        height: Optional[int] = None,
        mime_type: Optional[str] = None,
        alt: Optional[str] = None,
    ) -> None:
        url = self.resolve_url(raw)
        if url is None:
            return
        image = ImageCandidate(url=url, width=width, height=height, mime_type=clean_text(mime_type), alt=clean_text(alt))
        self.images.append(Candidate(image, source, score, evidence))

    def add_image_candidate(
        self, image: ImageCandidate, source: CandidateSource, score: float = DEFAULT_SCORE, evidence: Optional[str] = None
    ) -> None:
        self.add_image_url(
            image.url,
            source,
            score,
            evidence,
            width=image.width,
            height=image.height,
            mime_type=image.mime_type,
            alt=image.alt,
        )

    def add_icon_url(
        self,
        raw: Optional[str],
        source: CandidateSource,
        score: float = DEFAULT_SCORE,
        evidence: Optional[str] = None,
        *,
        rel: Optional[str] = None,
        sizes: Optional[str] = None,
        type: Optional[str] = None,
    ) -> None:
        url = self.resolve_url(raw)
        if url is None:
            return
        icon = IconCandidate(url=url, sizes=clean_text(sizes), type=clean_text(type), rel=clean_text(rel))
        self.icons.append(Candidate(icon, source, score, evidence))

    def add_video_url(
        self, raw: Optional[str], source: CandidateSource, score: float = DEFAULT_SCORE, evidence: Optional[str] = None
    ) -> None:
        self._add_url(self.videos, raw, source, score, evidence)

    def add_audio_url(
        self, raw: Optional[str], source: CandidateSource, score: float = DEFAULT_SCORE, evidence: Optional[str] = None
    ) -> None:
        self._add_url(self.audios, raw, source, score, evidence)

    def add_oembed_endpoint(
        self,
        raw: Optional[str],
        fmt: OEmbedFormat,
        source: CandidateSource,
        score: float = DEFAULT_SCORE,
        evidence: Optional[str] = None,
    ) -> None:
        url = self.resolve_url(raw)
        if url is None:
            return
        self.oembed_endpoints.append(Candidate(OEmbedEndpoint(url=url, format=fmt), source, score, evidence))

    def add_manifest_url(
        self, raw: Optional[str], source: CandidateSource, score: float = DEFAULT_SCORE, evidence: Optional[str] = None
    ) -> None:
        self._add_url(self.manifest_urls, raw, source, score, evidence)

    def set_structured_data(
        self,
        graph: StructuredDataGraph,
        source: CandidateSource,
        score: float = DEFAULT_SCORE,
        evidence: Optional[str] = None,
    ) -> None:
        """Keep only the highest-scoring graph; an equal score does not replace."""
        current = self.structured_data
        if current is None or score > current.score:
            self.structured_data = Candidate(graph, source, score, evidence)
