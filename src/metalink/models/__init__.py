"""
Data records produced by metalink.
"""

from __future__ import annotations

from .diagnostics import ExtractionDiagnostics, FetchDiagnostics, FieldProvenance, RedirectHop
from .embeds import ManifestIcon, OEmbedData, OEmbedEndpoint, StructuredDataGraph, WebAppManifestData
from .enums import (
    CachePayloadKind,
    CandidateSource,
    CharsetSource,
    LinkKind,
    MetaField,
    MetaLinkErrorCode,
    MetaLinkWarningCode,
    OEmbedFormat,
)
from .errors import MetaLinkError, MetaLinkWarning
from .link_metadata import LinkMetadata
from .media import AudioCandidate, IconCandidate, ImageCandidate, VideoCandidate
from .raw import RawLinkTag, RawMetadata
from .result import ExtractionResult, UrlOptimizationResult

__all__ = [
    "AudioCandidate",
    "CachePayloadKind",
    "CandidateSource",
    "CharsetSource",
    "ExtractionDiagnostics",
    "ExtractionResult",
    "FetchDiagnostics",
    "FieldProvenance",
    "IconCandidate",
    "ImageCandidate",
    "LinkKind",
    "LinkMetadata",
    "ManifestIcon",
    "MetaField",
    "MetaLinkError",
    "MetaLinkErrorCode",
    "MetaLinkWarning",
    "MetaLinkWarningCode",
    "OEmbedData",
    "OEmbedEndpoint",
    "OEmbedFormat",
    "RawLinkTag",
    "RawMetadata",
    "RedirectHop",
    "StructuredDataGraph",
    "UrlOptimizationResult",
    "VideoCandidate",
    "WebAppManifestData",
]
