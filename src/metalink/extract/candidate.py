"""
Scored, sourced values proposed by extractor stages.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from metalink.models.diagnostics import FieldProvenance
from metalink.models.enums import CandidateSource

T = TypeVar("T")

DEFAULT_SCORE = 0.5


@dataclass(frozen=True)
class Candidate(Generic[T]):
    """
    One stage's proposal for one field.

    ``score`` is a confidence in [0, 1]; ``evidence`` names the markup the
    value came from (``og:title``, ``link rel=icon`` ...).
    """

    value: T
    source: CandidateSource
    score: float = DEFAULT_SCORE
    evidence: Optional[str] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.score <= 1.0:
            raise ValueError(f"Candidate score must be within [0, 1], got {self.score}")

    def provenance(self) -> FieldProvenance:
        return FieldProvenance(source=self.source, score=self.score, evidence=self.evidence)
