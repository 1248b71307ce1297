"""Prometheus counters for a resealer run.

A run is a batch job, so the registry is pushed to a Pushgateway once at the
end instead of being scraped.
"""

from __future__ import annotations

import structlog
from prometheus_client import CollectorRegistry, Counter, push_to_gateway

_log = structlog.get_logger(component="metrics")

REGISTRY = CollectorRegistry()

outcomes_total = Counter(
    "resealer_outcomes_total",
    "Per-item reconcile outcomes.",
    ["outcome"],
    registry=REGISTRY,
)

api_requests_total = Counter(
    "resealer_api_requests_total",
    "Cluster API requests issued, by verb.",
    ["verb"],
    registry=REGISTRY,
)

retries_total = Counter(
    "resealer_retries_total",
    "Retries performed, by kind (conflict, transport).",
    ["kind"],
    registry=REGISTRY,
)

write_attempts_total = Counter(
    "resealer_write_attempts_total",
    "Conditional writes submitted to the cluster API.",
    registry=REGISTRY,
)


def push_metrics(gateway: str, job: str) -> bool:
    """Push the run's counters to *gateway*. Returns False on failure."""
    if not gateway:
        return False
    try:
        push_to_gateway(gateway, job=job, registry=REGISTRY)
    except OSError as exc:
        _log.warning("metrics_push_failed", gateway=gateway, error=str(exc))
        return False
    _log.info("metrics_pushed", gateway=gateway, job=job)
    return True
