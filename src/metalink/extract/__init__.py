"""
Metadata extraction: candidate model, extractor stages, enrichers and the
merging pipeline.
"""

from __future__ import annotations

from .candidate import DEFAULT_SCORE, Candidate
from .context import ExtractionContext
from .enrichers import ManifestEnricher, OEmbedEnricher
from .extractors import (
    JsonLdExtractor,
    LinkRelExtractor,
    OpenGraphExtractor,
    StandardMetaExtractor,
    TwitterCardExtractor,
    default_stages,
)
from .pipeline import ExtractPipeline, PipelineOutput
from .protocols import ExtractorStage

__all__ = [
    "DEFAULT_SCORE",
    "Candidate",
    "ExtractPipeline",
    "ExtractionContext",
    "ExtractorStage",
    "JsonLdExtractor",
    "LinkRelExtractor",
    "ManifestEnricher",
    "OEmbedEnricher",
    "OpenGraphExtractor",
    "PipelineOutput",
    "StandardMetaExtractor",
    "TwitterCardExtractor",
    "default_stages",
]
