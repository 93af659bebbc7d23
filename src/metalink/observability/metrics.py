"""
Defines Prometheus metrics for extraction, caching and fetching.
"""

from __future__ import annotations

from typing import Any, Dict

from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Histogram as _OrigHistogram

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# Re-importing this module (test reloads, multiple clients) must not register
# the same collector twice.


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            # Registration lost the race; use the now-existing collector.
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "extractions": Counter(
            "metalink_extractions_total",
            "Extraction requests by outcome",
            ["outcome"],
        ),
        "cache_lookups": Counter(
            "metalink_cache_lookups_total",
            "Cache lookups by result",
            ["result"],
        ),
        "fetch_duration": Histogram(
            "metalink_fetch_duration_seconds",
            "Wall time spent fetching a page, redirects included",
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
        ),
        "enrichment_failures": Counter(
            "metalink_enrichment_failures_total",
            "oEmbed and manifest enrichment failures",
            ["kind"],
        ),
        "stage_failures": Counter(
            "metalink_stage_failures_total",
            "Extractor stages that raised during a pipeline run",
            ["stage"],
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()
