"""Prometheus metrics for the Imaging Appropriateness Engine.

Counters and histograms for evaluation outcomes and latency, safety warning
volume, and a gauge for the size of each loaded reference table. Recording
is skipped when ``settings.METRICS_ENABLED`` is false.
"""

from typing import Iterable

from prometheus_client import Counter, Gauge, Histogram

from config.settings import settings


# ═══════════════════════════════════════════════════════════════════════
# METRIC DEFINITIONS
# ═══════════════════════════════════════════════════════════════════════

EVALUATION_COUNT = Counter(
    "appropriateness_evaluation_total",
    "Total number of imaging appropriateness evaluations",
    ["category", "coverage"],
)

EVALUATION_LATENCY = Histogram(
    "appropriateness_evaluation_latency_seconds",
    "Evaluation end-to-end latency in seconds",
    ["coverage"],
    buckets=(0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1),
)

WARNING_COUNT = Counter(
    "appropriateness_safety_warning_total",
    "Safety warnings raised, by severity",
    ["severity"],
)

REFERENCE_TABLE_SIZE = Gauge(
    "appropriateness_reference_table_size",
    "Number of entries in each loaded reference table",
    ["table"],
)


# ═══════════════════════════════════════════════════════════════════════
# HELPER FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════


def record_evaluation(category: str, coverage: str, latency_seconds: float = 0.0) -> None:
    """Record a completed evaluation.

    Args:
        category: Appropriateness category value (e.g. "usually appropriate").
        coverage: Coverage status value (e.g. "DIRECT_MATCH").
        latency_seconds: Evaluation latency in seconds.
    """
    if not settings.METRICS_ENABLED:
        return
    EVALUATION_COUNT.labels(category=category, coverage=coverage).inc()
    EVALUATION_LATENCY.labels(coverage=coverage).observe(latency_seconds)


def record_warnings(severities: Iterable[str]) -> None:
    if not settings.METRICS_ENABLED:
        return
    for severity in severities:
        WARNING_COUNT.labels(severity=severity).inc()


def update_reference_sizes(criteria: int, scoring_rules: int, safety_rules: int) -> None:
    if not settings.METRICS_ENABLED:
        return
    REFERENCE_TABLE_SIZE.labels(table="criteria").set(criteria)
    REFERENCE_TABLE_SIZE.labels(table="scoring_rules").set(scoring_rules)
    REFERENCE_TABLE_SIZE.labels(table="safety_rules").set(safety_rules)
