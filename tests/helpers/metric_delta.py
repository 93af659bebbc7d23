"""
Helpers for validating metric value changes during tests.

Provides context managers to ensure metrics are properly updated by the code under test.
"""

from contextlib import contextmanager


@contextmanager
def metric_delta(metric, expected_delta=1, **labels):
    """
    Context manager to validate metric value changes.

    Args:
        metric: Prometheus metric object
        expected_delta: Expected change in metric value
        labels: Label values selecting the child of a labelled metric

    Usage:
        with metric_delta(METRICS["extractions"], outcome="success"):
            # Code that should increment the success counter by 1
            pass
    """
    target = metric.labels(**labels) if labels else metric
    if hasattr(target, "_value"):
        initial_value = target._value.get()
    else:
        raise ValueError(f"Metric {metric} doesn't have a _value attribute")

    yield

    final_value = target._value.get()
    actual_delta = final_value - initial_value

    if actual_delta != expected_delta:
        raise AssertionError(
            f"Expected metric to change by {expected_delta}, "
            f"but it changed by {actual_delta} "
            f"(from {initial_value} to {final_value})"
        )


def get_histogram_count(histogram):
    """Get the current observation count for a histogram."""
    try:
        collected = list(histogram.collect())
        if collected:
            for sample in collected[0].samples:
                if sample.name.endswith("_count"):
                    return sample.value
        return 0.0
    except (AttributeError, TypeError, IndexError):
        return 0.0


@contextmanager
def histogram_observes(histogram, min_observations=1):
    """
    Context manager to validate histogram observations.

    Usage:
        with histogram_observes(METRICS["fetch_duration"]):
            # Code that should record at least one timing observation
            pass
    """
    initial_count = get_histogram_count(histogram)

    yield

    final_count = get_histogram_count(histogram)
    actual_observations = final_count - initial_count

    if actual_observations < min_observations:
        raise AssertionError(
            f"Expected at least {min_observations} histogram observations, "
            f"but got {actual_observations} "
            f"(count went from {initial_count} to {final_count})"
        )
