"""Test helpers shared across the suite."""

from .metric_delta import histogram_observes, metric_delta

__all__ = ["histogram_observes", "metric_delta"]
