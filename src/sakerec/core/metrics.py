"""Prometheus metrics for monitoring the sakerec recommendation engine."""

from collections.abc import Iterator
from contextlib import contextmanager
from time import time

from prometheus_client import Counter, Histogram

# Cache metrics
cache_lookups_total = Counter(
    "sakerec_cache_lookups_total",
    "Recommendation cache lookups by result",
    ["result"],
)

cache_writes_total = Counter(
    "sakerec_cache_writes_total",
    "Recommendation cache writes by result",
    ["result"],
)

# Composition metrics
compositions_total = Counter(
    "sakerec_compositions_total",
    "Total number of recommendation lists composed",
    ["mood"],
)

composition_latency_seconds = Histogram(
    "sakerec_composition_latency_seconds",
    "Latency of recommendation composition in seconds",
    ["mood"],
    buckets=(0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

menu_recommendations_total = Counter(
    "sakerec_menu_recommendations_total",
    "Total number of menu-restricted recommendation requests",
    ["recommendation_type"],
)


def track_cache_lookup(result: str) -> None:
    """Track a cache lookup.

    Args:
        result: Outcome of the lookup ('hit', 'miss' or 'error')
    """
    cache_lookups_total.labels(result=result).inc()


def track_cache_write(result: str) -> None:
    """Track a cache write.

    Args:
        result: Outcome of the write ('ok' or 'error')
    """
    cache_writes_total.labels(result=result).inc()


def track_menu_recommendation(recommendation_type: str) -> None:
    """Track a menu-restricted recommendation request."""
    menu_recommendations_total.labels(recommendation_type=recommendation_type).inc()


@contextmanager
def track_composition(mood: str) -> Iterator[None]:
    """Context manager to count and time one composition.

    Args:
        mood: Mood the list is being composed for

    Example:
        with track_composition("usual"):
            results = compose(preference, pool, 20, Mood.USUAL)
    """
    compositions_total.labels(mood=mood).inc()
    start = time()
    try:
        yield
    finally:
        composition_latency_seconds.labels(mood=mood).observe(time() - start)
