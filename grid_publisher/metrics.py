"""Prometheus collectors for grid publication."""

from __future__ import annotations

import prometheus_client

_METRICS_REGISTRY = prometheus_client.CollectorRegistry()


def metrics_registry() -> prometheus_client.CollectorRegistry:
    return _METRICS_REGISTRY


PUBLISH_TOTAL = prometheus_client.Counter(
    "grid_publish_total",
    "Grid publication attempts by terminal state",
    ["outcome"],
    registry=_METRICS_REGISTRY,
)
CONFIRMATION_SECONDS = prometheus_client.Histogram(
    "grid_publish_confirmation_seconds",
    "Time between broadcast and confirmation (seconds)",
    registry=_METRICS_REGISTRY,
)


def render_metrics() -> bytes:
    return prometheus_client.generate_latest(_METRICS_REGISTRY)


__all__ = ["CONFIRMATION_SECONDS", "PUBLISH_TOTAL", "metrics_registry", "render_metrics"]
