"""
Enumerations shared across the metadata model, pipeline and cache.

Values are the camelCase strings used in serialized records.
"""

from __future__ import annotations

from enum import Enum


class CandidateSource(str, Enum):
    """Signal source that proposed a candidate value."""

    OPEN_GRAPH = "openGraph"
    TWITTER_CARD = "twitterCard"
    STANDARD_META = "standardMeta"
    LINK_REL = "linkRel"
    JSON_LD = "jsonLd"
    OEMBED = "oEmbed"
    MANIFEST = "manifest"
    HEURISTIC = "heuristic"


class MetaField(str, Enum):
    """Output fields that carry provenance."""

    CANONICAL_URL = "canonicalUrl"
    TITLE = "title"
    DESCRIPTION = "description"
    SITE_NAME = "siteName"
    LOCALE = "locale"
    AUTHOR = "author"
    PUBLISHED_AT = "publishedAt"
    MODIFIED_AT = "modifiedAt"
    KEYWORDS = "keywords"
    KIND = "kind"
    IMAGES = "images"
    ICONS = "icons"
    VIDEOS = "videos"
    AUDIOS = "audios"
    OEMBED = "oembed"
    MANIFEST = "manifest"
    STRUCTURED_DATA = "structuredData"


class LinkKind(str, Enum):
    """Coarse content type of a page."""

    UNKNOWN = "unknown"
    ARTICLE = "article"
    PRODUCT = "product"
    VIDEO = "video"
    AUDIO = "audio"
    PROFILE = "profile"
    HOMEPAGE = "homepage"
    SEARCH = "search"
    GALLERY = "gallery"
    EVENT = "event"
    OTHER = "other"


class CharsetSource(str, Enum):
    """Where the detected body charset came from."""

    HEADER = "header"
    META = "meta"
    BOM = "bom"
    FALLBACK = "fallback"
    UNKNOWN = "unknown"


class OEmbedFormat(str, Enum):
    JSON = "json"
    XML = "xml"


class CachePayloadKind(str, Enum):
    """Shape of the payload stored in a cache entry."""

    LINK_METADATA = "linkMetadata"
    EXTRACTION_RESULT = "extractionResult"


class MetaLinkErrorCode(str, Enum):
    """Fatal error kinds. A request with any of these has failed."""

    INVALID_URL = "invalidUrl"
    NETWORK = "network"
    TIMEOUT = "timeout"
    HTTP_STATUS = "httpStatus"
    NON_HTML_CONTENT = "nonHtmlContent"
    DECODE = "decode"
    PARSE = "parse"
    OEMBED = "oembed"
    MANIFEST = "manifest"
    CACHE = "cache"
    UNKNOWN = "unknown"


class MetaLinkWarningCode(str, Enum):
    """Non-fatal conditions recorded while extraction continues."""

    CACHE_BYPASSED = "cacheBypassed"
    CACHE_READ_FAILED = "cacheReadFailed"
    CACHE_WRITE_FAILED = "cacheWriteFailed"
    REDIRECTED_TOO_MUCH = "redirectedTooMuch"
    TRUNCATED_HTML = "truncatedHtml"
    CHARSET_FALLBACK = "charsetFallback"
    NON_HTML_RESPONSE = "nonHtmlResponse"
    OEMBED_FAILED = "oembedFailed"
    MANIFEST_FAILED = "manifestFailed"
    PARTIAL_PARSE = "partialParse"
