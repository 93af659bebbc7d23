"""
Protocols for pluggable metadata extractor stages.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .context import ExtractionContext


@runtime_checkable
class ExtractorStage(Protocol):
    """One signal source that proposes candidates for a page."""

    name: str

    def extract(self, context: ExtractionContext) -> None:
        """Add candidates to ``context``.

        Stages should not raise. The pipeline still isolates any exception
        and records it as a ``partialParse`` warning.
        """
        ...
