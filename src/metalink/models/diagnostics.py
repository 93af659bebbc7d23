"""
Diagnostics describing how a result was produced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ._json import as_dict, as_float, as_int, as_list, as_str, drop_none
from .enums import CandidateSource, CharsetSource, MetaField


@dataclass(frozen=True)
class RedirectHop:
    """One ``from -> to`` step of a redirect chain."""

    from_url: str
    to_url: str
    status_code: int
    location: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        return drop_none(
            {"from": self.from_url, "to": self.to_url, "statusCode": self.status_code, "location": self.location}
        )

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> RedirectHop:
        from_url = as_str(data.get("from"))
        to_url = as_str(data.get("to"))
        status_code = as_int(data.get("statusCode"))
        if from_url is None or to_url is None or status_code is None:
            raise ValueError("RedirectHop requires from, to and statusCode")
        return cls(from_url=from_url, to_url=to_url, status_code=status_code, location=as_str(data.get("location")))


@dataclass(frozen=True)
class FieldProvenance:
    """Which source won a field, with its score and evidence."""

    source: CandidateSource
    score: float
    evidence: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        return drop_none({"source": self.source.value, "score": self.score, "evidence": self.evidence})

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> FieldProvenance:
        return cls(
            source=CandidateSource(data.get("source")),
            score=as_float(data.get("score")) or 0.0,
            evidence=as_str(data.get("evidence")),
        )


@dataclass(frozen=True)
class FetchDiagnostics:
    requested_url: str
    final_url: str
    status_code: Optional[int] = None
    redirects: List[RedirectHop] = field(default_factory=list)
    bytes_read: int = 0
    truncated: bool = False
    detected_charset: Optional[str] = None
    charset_source: CharsetSource = CharsetSource.UNKNOWN
    duration: float = 0.0

    def to_json(self) -> Dict[str, Any]:
        return drop_none(
            {
                "requestedUrl": self.requested_url,
                "finalUrl": self.final_url,
                "statusCode": self.status_code,
                "redirects": [hop.to_json() for hop in self.redirects],
                "bytesRead": self.bytes_read,
                "truncated": self.truncated,
                "detectedCharset": self.detected_charset,
                "charsetSource": self.charset_source.value,
                "durationMs": int(self.duration * 1000),
            }
        )

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> FetchDiagnostics:
        requested_url = as_str(data.get("requestedUrl"))
        final_url = as_str(data.get("finalUrl"))
        if requested_url is None or final_url is None:
            raise ValueError("FetchDiagnostics requires requestedUrl and finalUrl")
        try:
            charset_source = CharsetSource(data.get("charsetSource"))
        except ValueError:
            charset_source = CharsetSource.UNKNOWN
        return cls(
            requested_url=requested_url,
            final_url=final_url,
            status_code=as_int(data.get("statusCode")),
            redirects=[RedirectHop.from_json(h) for h in as_list(data.get("redirects")) if isinstance(h, dict)],
            bytes_read=as_int(data.get("bytesRead")) or 0,
            truncated=data.get("truncated") is True,
            detected_charset=as_str(data.get("detectedCharset")),
            charset_source=charset_source,
            duration=(as_int(data.get("durationMs")) or 0) / 1000.0,
        )


@dataclass(frozen=True)
class ExtractionDiagnostics:
    cache_hit: bool = False
    total_time: float = 0.0
    fetch: Optional[FetchDiagnostics] = None
    field_provenance: Dict[MetaField, FieldProvenance] = field(default_factory=dict)

    def to_json(self) -> Dict[str, Any]:
        return drop_none(
            {
                "cacheHit": self.cache_hit,
                "totalTimeMs": int(self.total_time * 1000),
                "fetch": self.fetch.to_json() if self.fetch else None,
                "fieldProvenance": {key.value: value.to_json() for key, value in self.field_provenance.items()},
            }
        )

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> ExtractionDiagnostics:
        provenance: Dict[MetaField, FieldProvenance] = {}
        for key, value in (as_dict(data.get("fieldProvenance")) or {}).items():
            if not isinstance(value, dict):
                continue
            try:
                provenance[MetaField(key)] = FieldProvenance.from_json(value)
            except ValueError:
                continue
        fetch = as_dict(data.get("fetch"))
        return cls(
            cache_hit=data.get("cacheHit") is True,
            total_time=(as_int(data.get("totalTimeMs")) or 0) / 1000.0,
            fetch=FetchDiagnostics.from_json(fetch) if fetch else None,
            field_provenance=provenance,
        )
