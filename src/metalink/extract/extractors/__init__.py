"""
Built-in extractor stages.
"""

from __future__ import annotations

from typing import List

from ..protocols import ExtractorStage
from .json_ld import JsonLdExtractor
from .link_rel import LinkRelExtractor
from .open_graph import OpenGraphExtractor
from .standard_meta import StandardMetaExtractor
from .twitter_card import TwitterCardExtractor


def default_stages() -> List[ExtractorStage]:
    """Stages in their default order. Earlier stages win score ties."""
    return [
        OpenGraphExtractor(),
        TwitterCardExtractor(),
        StandardMetaExtractor(),
        LinkRelExtractor(),
        JsonLdExtractor(),
    ]


__all__ = [
    "JsonLdExtractor",
    "LinkRelExtractor",
    "OpenGraphExtractor",
    "StandardMetaExtractor",
    "TwitterCardExtractor",
    "default_stages",
]
