"""Prometheus metrics for StepGraph.

Provides pre-defined metrics for monitoring path searches and loop
detection.
"""

from prometheus_client import Counter, Gauge, Histogram, Info

# Application info
APP_INFO = Info(
    "stepgraph",
    "StepGraph engine information",
)

# Search metrics
SEARCHES_TOTAL = Counter(
    "stepgraph_searches_total",
    "Total number of searches by mode and terminal status",
    ["mode", "status"],
)

SEARCH_DURATION = Histogram(
    "stepgraph_search_duration_seconds",
    "Wall time from search start to settlement",
    ["mode"],
    buckets=[0.001, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0],
)

SEARCH_RESULTS = Histogram(
    "stepgraph_search_results",
    "Number of paths or loops published per search",
    buckets=[0, 1, 5, 10, 50, 100, 250, 1000, 5000, 25000],
)

ACTIVE_SEARCHES = Gauge(
    "stepgraph_active_searches",
    "Number of searches currently in flight",
)

# Graph quality metrics
DANGLING_CONNECTIONS = Counter(
    "stepgraph_dangling_connections_total",
    "Connections skipped because their target step does not exist",
)

DUPLICATE_REQUESTS_REJECTED = Counter(
    "stepgraph_duplicate_requests_rejected_total",
    "Connection requests rejected as duplicates within the guard window",
)


def set_app_info(name: str, version: str, environment: str) -> None:
    """Set application info metric."""
    APP_INFO.info({
        "name": name,
        "version": version,
        "environment": environment,
    })
