"""
Enrichers fetch secondary documents discovered during extraction.
"""

from __future__ import annotations

from .manifest import ManifestEnricher, parse_manifest
from .oembed import OEmbedEnricher, parse_oembed_json, parse_oembed_xml

__all__ = [
    "ManifestEnricher",
    "OEmbedEnricher",
    "parse_manifest",
    "parse_oembed_json",
    "parse_oembed_xml",
]
