"""
Tests for the OpenGraph, Twitter card, standard meta and link-rel stages.
"""

from datetime import datetime, timezone

import pytest

from metalink.config.config import ExtractOptions
from metalink.extract.extractors import (
    LinkRelExtractor,
    OpenGraphExtractor,
    StandardMetaExtractor,
    TwitterCardExtractor,
    default_stages,
)
from metalink.models.enums import CandidateSource, LinkKind, OEmbedFormat
from metalink.models.media import ImageCandidate

OG_PAGE = """
<html><head>
<meta property="og:title" content="  OG   Title ">
<meta property="og:description" content="OG description">
<meta property="og:site_name" content="Example">
<meta property="og:locale" content="en_US">
<meta property="og:url" content="/article#comments">
<meta property="og:type" content="article">
<meta property="og:image" content="/img/one.png">
<meta property="og:image:width" content="1200">
<meta property="og:image:height" content="630">
<meta property="og:image:alt" content="First">
<meta property="og:image" content="https://cdn.example.com/two.jpg">
<meta property="og:image:type" content="image/jpeg">
<meta property="og:video" content="https://example.com/v.mp4">
<meta property="article:published_time" content="2024-03-01T10:00:00Z">
<meta property="article:tag" content="python">
<meta property="article:tag" content="parsing">
</head><body></body></html>
"""


@pytest.mark.unit
class TestOpenGraphExtractor:
    """OpenGraph stage."""

    def test_scalar_fields(self, build_context):
        context = build_context(OG_PAGE)
        OpenGraphExtractor().extract(context)

        assert [c.value for c in context.titles] == ["OG Title"]
        assert context.titles[0].source is CandidateSource.OPEN_GRAPH
        assert context.titles[0].evidence == "og:title"
        assert context.descriptions[0].value == "OG description"
        assert context.site_names[0].value == "Example"
        assert context.locales[0].value == "en_US"
        assert context.canonical_urls[0].value == "https://example.com/article"
        assert context.kinds[0].value is LinkKind.ARTICLE
        assert context.published_at[0].value == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)
        assert [c.value for c in context.keywords] == ["python", "parsing"]

    def test_structured_images_are_grouped(self, build_context):
        """Width, height and alt attach to the preceding og:image."""
        context = build_context(OG_PAGE)
        OpenGraphExtractor().extract(context)

        first, second = [c.value for c in context.images]
        assert first.url == "https://example.com/img/one.png"
        assert (first.width, first.height, first.alt) == (1200, 630, "First")
        assert second.url == "https://cdn.example.com/two.jpg"
        assert second.mime_type == "image/jpeg"
        assert second.width is None

    def test_video_urls(self, build_context):
        context = build_context(OG_PAGE)
        OpenGraphExtractor().extract(context)
        assert [c.value for c in context.videos] == ["https://example.com/v.mp4"]

    @pytest.mark.parametrize(
        "og_type,url,expected",
        [
            ("website", "https://example.com/", LinkKind.HOMEPAGE),
            ("website", "https://example.com/about", LinkKind.OTHER),
            ("video.movie", "https://example.com/", LinkKind.VIDEO),
            ("music.song", "https://example.com/", LinkKind.AUDIO),
            ("profile", "https://example.com/", LinkKind.PROFILE),
        ],
    )
    def test_kind_mapping(self, build_context, og_type, url, expected):
        context = build_context(f'<meta property="og:type" content="{og_type}">', url=url)
        OpenGraphExtractor().extract(context)
        assert context.kinds[0].value is expected

    def test_unknown_type_adds_no_kind(self, build_context):
        context = build_context('<meta property="og:type" content="restaurant.menu">')
        OpenGraphExtractor().extract(context)
        assert context.kinds == []

    def test_disabled_stage_adds_nothing(self, build_context):
        context = build_context(OG_PAGE, options=ExtractOptions(extract_open_graph=False))
        OpenGraphExtractor().extract(context)
        assert context.titles == [] and context.images == []


@pytest.mark.unit
class TestTwitterCardExtractor:
    def test_card_fields(self, build_context):
        context = build_context(
            """
            <meta name="twitter:title" content="Tweet title">
            <meta name="twitter:description" content="Tweet description">
            <meta name="twitter:creator" content="@someone">
            <meta name="twitter:image:src" content="https://example.com/t.png">
            <meta name="twitter:image:alt" content="Alt text">
            <meta name="twitter:player" content="https://example.com/player">
            """
        )
        TwitterCardExtractor().extract(context)

        assert context.titles[0].value == "Tweet title"
        assert context.titles[0].score == pytest.approx(0.85)
        assert context.descriptions[0].value == "Tweet description"
        assert context.authors[0].value == "@someone"
        assert context.images[0].value.url == "https://example.com/t.png"
        assert context.images[0].value.alt == "Alt text"
        assert context.videos[0].value == "https://example.com/player"

    def test_disabled(self, build_context):
        context = build_context(
            '<meta name="twitter:title" content="x">', options=ExtractOptions(extract_twitter_card=False)
        )
        TwitterCardExtractor().extract(context)
        assert context.titles == []


@pytest.mark.unit
class TestStandardMetaExtractor:
    """Plain HTML signals."""

    PAGE = """
    <html lang="en-GB"><head>
    <title>
        Page   Title
    </title>
    <meta name="description" content="Plain description">
    <meta name="application-name" content="ExampleApp">
    <meta name="keywords" content="alpha, Beta; beta, , gamma">
    <meta name="author" content="Jane Doe">
    <meta name="date" content="2024-01-02">
    <meta http-equiv="content-language" content="en">
    </head><body><h1>Heading</h1>
    <time itemprop="dateModified" datetime="2024-02-03T00:00:00Z"></time>
    </body></html>
    """

    def test_fields(self, build_context):
        context = build_context(self.PAGE)
        StandardMetaExtractor().extract(context)

        assert [c.value for c in context.titles] == ["Page Title", "Heading"]
        assert context.titles[0].score > context.titles[1].score
        assert context.descriptions[0].value == "Plain description"
        assert context.site_names[0].value == "ExampleApp"
        assert [c.value for c in context.locales] == ["en-GB", "en"]
        assert context.authors[0].value == "Jane Doe"
        assert context.published_at[0].value == datetime(2024, 1, 2, tzinfo=timezone.utc)
        assert context.modified_at[0].value == datetime(2024, 2, 3, tzinfo=timezone.utc)

    def test_keywords_are_split_and_deduplicated(self, build_context):
        """Comma and semicolon both split; duplicates compare case-insensitively."""
        context = build_context(self.PAGE)
        StandardMetaExtractor().extract(context)
        assert [c.value for c in context.keywords] == ["alpha", "Beta", "gamma"]

    def test_empty_document(self, build_context):
        context = build_context("")
        StandardMetaExtractor().extract(context)
        assert context.titles == []
        assert context.descriptions == []


@pytest.mark.unit
class TestLinkRelExtractor:
    """Canonical, icon, manifest and oEmbed discovery."""

    PAGE = """
    <link rel="canonical" href="/canonical#x">
    <link rel="icon" href="/favicon.ico" sizes="32x32" type="image/x-icon">
    <link rel="shortcut icon" href="/favicon.ico">
    <link rel="apple-touch-icon" href="/apple.png" sizes="180x180">
    <link rel="mask-icon" href="/mask.svg">
    <link rel="manifest" href="/site.webmanifest">
    <link rel="alternate" type="application/json+oembed" href="/oembed?format=json">
    <link rel="alternate" type="text/xml+oembed" href="/oembed?format=xml">
    <link rel="alternate" type="application/rss+xml" href="/feed">
    <link rel="stylesheet" href="/style.css">
    """

    def test_canonical_and_icons(self, build_context):
        context = build_context(self.PAGE)
        LinkRelExtractor().extract(context)

        assert context.canonical_urls[0].value == "https://example.com/canonical"
        assert context.canonical_urls[0].score == pytest.approx(0.95)

        icons = [(c.value.url, c.score) for c in context.icons]
        assert icons == [
            ("https://example.com/favicon.ico", pytest.approx(0.75)),
            ("https://example.com/apple.png", pytest.approx(0.80)),
            ("https://example.com/mask.svg", pytest.approx(0.70)),
        ]
        assert context.icons[0].value.sizes == "32x32"
        assert context.icons[0].value.type == "image/x-icon"

    def test_enrichment_links_need_their_flags(self, build_context):
        """Manifest and oEmbed links are only collected when enrichment is enabled."""
        context = build_context(self.PAGE)
        LinkRelExtractor().extract(context)
        assert context.manifest_urls == []
        assert context.oembed_endpoints == []

        context = build_context(self.PAGE, options=ExtractOptions(enable_oembed=True, enable_manifest=True))
        LinkRelExtractor().extract(context)
        assert context.manifest_urls[0].value == "https://example.com/site.webmanifest"
        endpoints = [c.value for c in context.oembed_endpoints]
        assert [(e.url, e.format) for e in endpoints] == [
            ("https://example.com/oembed?format=json", OEmbedFormat.JSON),
            ("https://example.com/oembed?format=xml", OEmbedFormat.XML),
        ]

    def test_link_rels_disabled_still_discovers_enrichment(self, build_context):
        options = ExtractOptions(extract_link_rels=False, enable_manifest=True)
        context = build_context(self.PAGE, options=options)
        LinkRelExtractor().extract(context)
        assert context.canonical_urls == []
        assert context.icons == []
        assert len(context.manifest_urls) == 1


@pytest.mark.unit
def test_default_stage_order():
    """Earlier stages win score ties, so the order is part of the contract."""
    names = [stage.name for stage in default_stages()]
    assert names == ["open_graph", "twitter_card", "standard_meta", "link_rel", "json_ld"]


@pytest.mark.unit
class TestExtractionContext:
    def test_image_candidate_is_normalized_on_add(self, build_context):
        """Image records get the same URL and text cleanup as raw URLs."""
        context = build_context("<html></html>")
        context.add_image_candidate(
            ImageCandidate("/img/a.png#crop", width=10, mime_type=" image/png ", alt="  "),
            CandidateSource.HEURISTIC,
            0.4,
        )
        context.add_image_candidate(ImageCandidate("data:image/png;base64,AAAA"), CandidateSource.HEURISTIC)

        assert len(context.images) == 1
        candidate = context.images[0]
        assert candidate.value == ImageCandidate("https://example.com/img/a.png", width=10, mime_type="image/png")
        assert candidate.score == 0.4
