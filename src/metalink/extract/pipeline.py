"""
Extraction pipeline: runs the extractor stages over a fetched page, merges
their candidates into one ``LinkMetadata`` and applies optional enrichment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

import structlog
from selectolax.lexbor import LexborHTMLParser

from metalink.config.config import ExtractOptions, FetchOptions
from metalink.fetch.html_fetcher import HtmlFetchResult
from metalink.fetch.protocols import Fetcher
from metalink.models.diagnostics import FieldProvenance
from metalink.models.embeds import OEmbedData, WebAppManifestData
from metalink.models.enums import CandidateSource, LinkKind, MetaField, MetaLinkErrorCode, MetaLinkWarningCode
from metalink.models.errors import MetaLinkError, MetaLinkWarning
from metalink.models.link_metadata import LinkMetadata
from metalink.models.media import AudioCandidate, IconCandidate, ImageCandidate, VideoCandidate
from metalink.models.raw import RawMetadata
from metalink.observability.metrics import METRICS
from metalink.utils.url_resolver import UrlResolver
from metalink.utils.urls import is_http_url, normalize_for_request, remove_fragment

from .candidate import Candidate
from .context import ExtractionContext
from .enrichers import ManifestEnricher, OEmbedEnricher
from .extractors import default_stages
from .protocols import ExtractorStage

logger = structlog.get_logger(__name__)

T = TypeVar("T")

MAX_KEYWORDS = 25

OEMBED_PROVENANCE_SCORE = 0.8
OEMBED_TITLE_SCORE = 0.7
OEMBED_AUTHOR_SCORE = 0.7
OEMBED_SITE_NAME_SCORE = 0.65

MANIFEST_PROVENANCE_SCORE = 0.75
MANIFEST_SITE_NAME_SCORE = 0.6
MANIFEST_TITLE_SCORE = 0.55
MANIFEST_ICON_SCORE = 0.72


@dataclass
class PipelineOutput:
    metadata: LinkMetadata
    field_provenance: Dict[MetaField, FieldProvenance] = field(default_factory=dict)
    raw: Optional[RawMetadata] = None
    warnings: List[MetaLinkWarning] = field(default_factory=list)
    errors: List[MetaLinkError] = field(default_factory=list)


def best(candidates: Sequence[Candidate[T]]) -> Optional[Candidate[T]]:
    """Highest score wins; on a tie the earliest candidate is kept."""
    winner: Optional[Candidate[T]] = None
    for candidate in candidates:
        if winner is None or candidate.score > winner.score:
            winner = candidate
    return winner


def ranked(candidates: Sequence[Candidate[T]]) -> List[Candidate[T]]:
    """Score descending, insertion order ascending. ``sorted`` is stable."""
    return sorted(candidates, key=lambda c: -c.score)


def url_identity(url: str) -> str:
    try:
        return normalize_for_request(url)
    except ValueError:
        return remove_fragment(url)


def top_unique(
    candidates: Sequence[Candidate[T]],
    limit: int,
    key: Callable[[T], str],
) -> List[Candidate[T]]:
    """Ranked candidates with repeated identity keys dropped, capped at ``limit``."""
    if limit <= 0:
        return []
    seen = set()
    selected: List[Candidate[T]] = []
    for candidate in ranked(candidates):
        if len(selected) >= limit:
            break
        identity = key(candidate.value)
        if identity in seen:
            continue
        seen.add(identity)
        selected.append(candidate)
    return selected


def detect_base_url(document: LexborHTMLParser, fallback: str, resolver: UrlResolver) -> str:
    """``<base href>`` resolved against the page URL, if it is http(s)."""
    node = document.css_first("base[href]")
    if node is None:
        return fallback
    resolved = resolver.resolve(fallback, node.attributes.get("href"))
    return resolved or fallback


def images_with_thumbnail(images: List[ImageCandidate], oembed: Optional[OEmbedData], limit: int) -> List[ImageCandidate]:
    """Put the oEmbed thumbnail first, keeping URLs unique and the cap."""
    if limit <= 0:
        return []
    if oembed is None or not oembed.thumbnail_url or not is_http_url(oembed.thumbnail_url):
        return images[:limit]

    thumbnail = ImageCandidate(
        url=oembed.thumbnail_url,
        width=oembed.thumbnail_width,
        height=oembed.thumbnail_height,
    )
    seen = {url_identity(thumbnail.url)}
    merged = [thumbnail]
    for image in images:
        if len(merged) >= limit:
            break
        identity = url_identity(image.url)
        if identity in seen:
            continue
        seen.add(identity)
        merged.append(image)
    return merged


class ExtractPipeline:
    """
    Runs extractor stages in order and merges their candidates.

    Stage failures never abort a run: each is recorded as a ``partialParse``
    warning and the next stage runs. Enrichment only fills fields the local
    merge left empty.
    """

    def __init__(
        self,
        stages: Optional[Iterable[ExtractorStage]] = None,
        url_resolver: Optional[UrlResolver] = None,
        oembed_enricher: Optional[OEmbedEnricher] = None,
        manifest_enricher: Optional[ManifestEnricher] = None,
    ) -> None:
        self.stages: List[ExtractorStage] = list(stages) if stages is not None else default_stages()
        self.url_resolver = url_resolver or UrlResolver()
        self.oembed_enricher = oembed_enricher or OEmbedEnricher()
        self.manifest_enricher = manifest_enricher or ManifestEnricher()
        self.logger = logger.bind(component="ExtractPipeline")

    async def run(
        self,
        page: HtmlFetchResult,
        fetcher: Fetcher,
        fetch_options: FetchOptions,
        extract_options: ExtractOptions,
    ) -> PipelineOutput:
        warnings: List[MetaLinkWarning] = []
        empty = LinkMetadata.empty(page.original_url, page.final_url)

        html = page.body_text
        if html is None:
            try:
                html = page.body_bytes.decode("utf-8", errors="replace")
            except (UnicodeDecodeError, LookupError) as e:
                error = MetaLinkError(MetaLinkErrorCode.DECODE, "Failed to decode HTML body.", page.final_url, cause=e)
                return PipelineOutput(metadata=empty, errors=[error])

        try:
            document = LexborHTMLParser(html)
        except Exception as e:
            self.logger.warning("HTML parse failed", url=page.final_url, error=str(e))
            error = MetaLinkError(MetaLinkErrorCode.PARSE, "Failed to parse HTML.", page.final_url, cause=e)
            return PipelineOutput(metadata=empty, errors=[error])

        base_url = detect_base_url(document, page.final_url, self.url_resolver)
        raw = RawMetadata.from_document(document) if extract_options.include_raw_metadata else None

        context = ExtractionContext(document, page.final_url, base_url, extract_options, self.url_resolver)
        for stage in self.stages:
            try:
                stage.extract(context)
            except Exception as e:
                stage_name = type(stage).__name__
                warnings.append(
                    MetaLinkWarning(
                        MetaLinkWarningCode.PARTIAL_PARSE,
                        f"Extractor stage failed: {stage_name}",
                        base_url,
                        cause=e,
                    )
                )
                METRICS["stage_failures"].labels(stage=getattr(stage, "name", stage_name)).inc()
                self.logger.warning("Extractor stage raised", stage=stage_name, url=base_url, error=str(e))

        merged = _Merge(context, extract_options)

        oembed: Optional[OEmbedData] = None
        if extract_options.enable_oembed:
            oembed = await self._enrich_oembed(context, merged, fetcher, fetch_options, warnings)

        manifest: Optional[WebAppManifestData] = None
        if extract_options.enable_manifest:
            manifest = await self._enrich_manifest(context, merged, fetcher, fetch_options, warnings)

        metadata = LinkMetadata(
            original_url=page.original_url,
            resolved_url=page.final_url,
            canonical_url=merged.canonical_url,
            title=merged.title,
            description=merged.description,
            site_name=merged.site_name,
            locale=merged.locale,
            kind=merged.kind,
            images=images_with_thumbnail(merged.images, oembed, extract_options.max_images),
            icons=merged.finalize_icons(),
            videos=merged.videos,
            audios=merged.audios,
            published_at=merged.published_at,
            modified_at=merged.modified_at,
            author=merged.author,
            keywords=merged.keywords,
            oembed=oembed,
            manifest=manifest,
            structured_data=context.structured_data.value if context.structured_data else None,
        )
        return PipelineOutput(metadata=metadata, field_provenance=merged.provenance, raw=raw, warnings=warnings)

    async def _enrich_oembed(
        self,
        context: ExtractionContext,
        merged: _Merge,
        fetcher: Fetcher,
        fetch_options: FetchOptions,
        warnings: List[MetaLinkWarning],
    ) -> Optional[OEmbedData]:
        endpoint = best(context.oembed_endpoints)
        if endpoint is None:
            return None

        try:
            oembed = await self.oembed_enricher.fetch(endpoint.value, fetcher, fetch_options)
        except Exception as e:
            METRICS["enrichment_failures"].labels(kind="oembed").inc()
            self.logger.warning("oEmbed enrichment failed", endpoint=endpoint.value.url, error=str(e))
            warnings.append(
                MetaLinkWarning(
                    MetaLinkWarningCode.OEMBED_FAILED,
                    "Failed to fetch/parse oEmbed data.",
                    endpoint.value.url,
                    cause=e,
                )
            )
            return None

        if oembed is None:
            METRICS["enrichment_failures"].labels(kind="oembed").inc()
            warnings.append(
                MetaLinkWarning(
                    MetaLinkWarningCode.OEMBED_FAILED,
                    "oEmbed endpoint did not return usable data.",
                    endpoint.value.url,
                )
            )
            return None

        merged.provenance[MetaField.OEMBED] = FieldProvenance(
            CandidateSource.OEMBED, OEMBED_PROVENANCE_SCORE, "oEmbed fetch succeeded"
        )
        merged.backfill("title", MetaField.TITLE, oembed.title, CandidateSource.OEMBED, OEMBED_TITLE_SCORE, "oEmbed.title")
        merged.backfill(
            "author", MetaField.AUTHOR, oembed.author_name, CandidateSource.OEMBED, OEMBED_AUTHOR_SCORE, "oEmbed.author_name"
        )
        merged.backfill(
            "site_name",
            MetaField.SITE_NAME,
            oembed.provider_name,
            CandidateSource.OEMBED,
            OEMBED_SITE_NAME_SCORE,
            "oEmbed.provider_name",
        )
        return oembed

    async def _enrich_manifest(
        self,
        context: ExtractionContext,
        merged: _Merge,
        fetcher: Fetcher,
        fetch_options: FetchOptions,
        warnings: List[MetaLinkWarning],
    ) -> Optional[WebAppManifestData]:
        manifest_url = best(context.manifest_urls)
        if manifest_url is None:
            return None

        try:
            manifest = await self.manifest_enricher.fetch(manifest_url.value, fetcher, fetch_options)
        except Exception as e:
            METRICS["enrichment_failures"].labels(kind="manifest").inc()
            self.logger.warning("Manifest enrichment failed", manifest_url=manifest_url.value, error=str(e))
            warnings.append(
                MetaLinkWarning(
                    MetaLinkWarningCode.MANIFEST_FAILED,
                    "Failed to fetch/parse web app manifest.",
                    manifest_url.value,
                    cause=e,
                )
            )
            return None

        if manifest is None:
            METRICS["enrichment_failures"].labels(kind="manifest").inc()
            warnings.append(
                MetaLinkWarning(
                    MetaLinkWarningCode.MANIFEST_FAILED,
                    "Manifest URL did not return usable data.",
                    manifest_url.value,
                )
            )
            return None

        merged.provenance[MetaField.MANIFEST] = FieldProvenance(
            CandidateSource.MANIFEST, MANIFEST_PROVENANCE_SCORE, "Manifest fetch succeeded"
        )
        merged.backfill(
            "site_name", MetaField.SITE_NAME, manifest.name, CandidateSource.MANIFEST, MANIFEST_SITE_NAME_SCORE, "manifest.name"
        )
        merged.backfill(
            "title", MetaField.TITLE, manifest.short_name, CandidateSource.MANIFEST, MANIFEST_TITLE_SCORE, "manifest.short_name"
        )
        for icon in manifest.icons:
            if not is_http_url(icon.src):
                continue
            context.icons.append(
                Candidate(
                    IconCandidate(url=remove_fragment(icon.src), sizes=icon.sizes, type=icon.type, rel="manifest"),
                    CandidateSource.MANIFEST,
                    MANIFEST_ICON_SCORE,
                    "manifest.icons",
                )
            )
        return manifest


class _Merge:
    """Local merge of a context's candidate buckets."""

    def __init__(self, context: ExtractionContext, options: ExtractOptions) -> None:
        self.context = context
        self.options = options
        self.provenance: Dict[MetaField, FieldProvenance] = {}

        self.canonical_url = self._scalar(MetaField.CANONICAL_URL, context.canonical_urls)
        self.title = self._scalar(MetaField.TITLE, context.titles)
        self.description = self._scalar(MetaField.DESCRIPTION, context.descriptions)
        self.site_name = self._scalar(MetaField.SITE_NAME, context.site_names)
        self.locale = self._scalar(MetaField.LOCALE, context.locales)
        self.author = self._scalar(MetaField.AUTHOR, context.authors)
        self.published_at = self._scalar(MetaField.PUBLISHED_AT, context.published_at)
        self.modified_at = self._scalar(MetaField.MODIFIED_AT, context.modified_at)

        kind = best(context.kinds)
        self.kind = kind.value if kind is not None else LinkKind.UNKNOWN
        if kind is not None and kind.value is not LinkKind.UNKNOWN:
            self.provenance[MetaField.KIND] = kind.provenance()

        keywords = top_unique(context.keywords, MAX_KEYWORDS, key=str.lower)
        self.keywords = [c.value for c in keywords]
        self._list_provenance(MetaField.KEYWORDS, keywords)

        images = top_unique(context.images, options.max_images, key=lambda image: url_identity(image.url))
        self.images = [c.value for c in images]
        self._list_provenance(MetaField.IMAGES, images)

        videos = top_unique(context.videos, options.max_videos, key=url_identity)
        self.videos = [VideoCandidate(url=c.value) for c in videos]
        self._list_provenance(MetaField.VIDEOS, videos)

        audios = top_unique(context.audios, options.max_audios, key=url_identity)
        self.audios = [AudioCandidate(url=c.value) for c in audios]
        self._list_provenance(MetaField.AUDIOS, audios)

        if context.structured_data is not None:
            self.provenance[MetaField.STRUCTURED_DATA] = context.structured_data.provenance()

    def _scalar(self, name: MetaField, candidates: Sequence[Candidate[T]]) -> Optional[T]:
        winner = best(candidates)
        if winner is None:
            return None
        self.provenance[name] = winner.provenance()
        return winner.value

    def _list_provenance(self, name: MetaField, selected: Sequence[Candidate]) -> None:
        if selected:
            self.provenance[name] = selected[0].provenance()

    def backfill(
        self,
        attribute: str,
        name: MetaField,
        value: Optional[str],
        source: CandidateSource,
        score: float,
        evidence: str,
    ) -> None:
        """Set ``attribute`` only when the local merge left it empty."""
        if getattr(self, attribute) is not None:
            return
        text = (value or "").strip()
        if not text:
            return
        setattr(self, attribute, text)
        self.provenance[name] = FieldProvenance(source, score, f"Filled from {evidence}")

    def finalize_icons(self) -> List[IconCandidate]:
        """Icons are merged last so manifest icons can join the pool."""
        icons = top_unique(self.context.icons, self.options.max_icons, key=lambda icon: url_identity(icon.url))
        self._list_provenance(MetaField.ICONS, icons)
        return [c.value for c in icons]
