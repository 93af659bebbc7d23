"""
Top-level results returned by the client.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from ._json import as_dict, as_int, as_list, as_str, drop_none
from .diagnostics import ExtractionDiagnostics, RedirectHop
from .errors import MetaLinkError, MetaLinkWarning
from .link_metadata import LinkMetadata
from .raw import RawMetadata


@dataclass(frozen=True)
class ExtractionResult:
    metadata: LinkMetadata
    diagnostics: ExtractionDiagnostics = field(default_factory=ExtractionDiagnostics)
    raw: Optional[RawMetadata] = None
    warnings: List[MetaLinkWarning] = field(default_factory=list)
    errors: List[MetaLinkError] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return not self.errors

    def with_original_url(self, original_url: str) -> ExtractionResult:
        return replace(self, metadata=replace(self.metadata, original_url=original_url))

    def to_json(self) -> Dict[str, Any]:
        return drop_none(
            {
                "metadata": self.metadata.to_json(),
                "diagnostics": self.diagnostics.to_json(),
                "raw": self.raw.to_json() if self.raw else None,
                "warnings": [warning.to_json() for warning in self.warnings],
                "errors": [error.to_json() for error in self.errors],
            }
        )

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> ExtractionResult:
        metadata = as_dict(data.get("metadata"))
        if metadata is None:
            raise ValueError("ExtractionResult.metadata is required")
        diagnostics = as_dict(data.get("diagnostics"))
        raw = as_dict(data.get("raw"))
        return cls(
            metadata=LinkMetadata.from_json(metadata),
            diagnostics=ExtractionDiagnostics.from_json(diagnostics) if diagnostics else ExtractionDiagnostics(),
            raw=RawMetadata.from_json(raw) if raw else None,
            warnings=[MetaLinkWarning.from_json(w) for w in as_list(data.get("warnings")) if isinstance(w, dict)],
            errors=[MetaLinkError.from_json(e) for e in as_list(data.get("errors")) if isinstance(e, dict)],
        )


@dataclass(frozen=True)
class UrlOptimizationResult:
    """Final destination of a URL after following its redirects."""

    original_url: str
    final_url: str
    redirects: List[RedirectHop] = field(default_factory=list)
    status_code: Optional[int] = None
    duration: float = 0.0
    error: Optional[BaseException] = field(default=None, compare=False)

    @property
    def is_ok(self) -> bool:
        return self.error is None and self.status_code is not None and 200 <= self.status_code < 400

    def to_json(self) -> Dict[str, Any]:
        return drop_none(
            {
                "originalUrl": self.original_url,
                "finalUrl": self.final_url,
                "redirects": [hop.to_json() for hop in self.redirects],
                "statusCode": self.status_code,
                "durationMs": int(self.duration * 1000),
                "error": str(self.error) if self.error is not None else None,
            }
        )

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> UrlOptimizationResult:
        original_url = as_str(data.get("originalUrl"))
        final_url = as_str(data.get("finalUrl"))
        if original_url is None or final_url is None:
            raise ValueError("UrlOptimizationResult requires originalUrl and finalUrl")
        return cls(
            original_url=original_url,
            final_url=final_url,
            redirects=[RedirectHop.from_json(h) for h in as_list(data.get("redirects")) if isinstance(h, dict)],
            status_code=as_int(data.get("statusCode")),
            duration=(as_int(data.get("durationMs")) or 0) / 1000.0,
        )
