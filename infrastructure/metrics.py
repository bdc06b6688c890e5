"""Prometheus metrics for the geotagged audio API.

Metrics:
    audio_requests_total            Counter by operation and HTTP status
    loudness_extraction_seconds     Histogram of decode + analysis time, by outcome
    store_errors_total              Counter of record store failures by status

Usage::

    from infrastructure.metrics import record_request, record_store_error
"""

from __future__ import annotations

import logging
import time

logger = logging.getLogger(__name__)

# Lazy import — prometheus_client is optional. If not installed, all calls
# are no-ops and /metrics returns an empty body.
_registry_available = False
try:
    from prometheus_client import (
        CONTENT_TYPE_LATEST,
        CollectorRegistry,
        Counter,
        Histogram,
        generate_latest,
    )

    _REGISTRY = CollectorRegistry()

    audio_requests_total = Counter(
        "geoaudio_requests_total",
        "Total /audio requests by operation and response status",
        ["operation", "status"],
        registry=_REGISTRY,
    )

    loudness_extraction_seconds = Histogram(
        "geoaudio_loudness_extraction_seconds",
        "Upload decode + loudness analysis time in seconds",
        ["outcome"],
        buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
        registry=_REGISTRY,
    )

    store_errors_total = Counter(
        "geoaudio_store_errors_total",
        "Record store failures by forwarded status code",
        ["status"],
        registry=_REGISTRY,
    )

    _registry_available = True
    logger.info("Prometheus metrics registry initialized")

except ImportError:
    logger.info("prometheus_client not installed — metrics disabled")
    _REGISTRY = None  # type: ignore[assignment]


# ---------------------------------------------------------------------------
# Public helpers — all are no-ops when prometheus_client is not installed
# ---------------------------------------------------------------------------


def record_request(*, operation: str, status: int) -> None:
    """Record a completed /audio request.

    Args:
        operation: Route endpoint name: "upload_audio", "list_audio",
            "search_audio", "get_audio", "download_audio", "update_audio"
            or "delete_audio" ("unknown" when no route matched).
        status: HTTP status code returned to the client.
    """
    if not _registry_available:
        return
    audio_requests_total.labels(operation=operation, status=str(status)).inc()


def record_extraction(*, outcome: str, latency_seconds: float) -> None:
    """Record one loudness extraction.

    Args:
        outcome: "ok" (loudness computed), "empty" (no valid frame) or "error".
        latency_seconds: Decode + analysis wall-clock time.
    """
    if _registry_available:
        loudness_extraction_seconds.labels(outcome=outcome).observe(latency_seconds)


def record_store_error(status: int) -> None:
    """Increment the record store failure counter."""
    if _registry_available:
        store_errors_total.labels(status=str(status)).inc()


def get_metrics_response() -> tuple[bytes, str]:
    """Generate Prometheus text exposition format.

    Returns:
        Tuple of (body_bytes, content_type_string).
        Returns empty bytes if prometheus_client is not available.
    """
    if not _registry_available:
        return b"", "text/plain"
    return generate_latest(_REGISTRY), CONTENT_TYPE_LATEST


class LatencyTimer:
    """Context manager for measuring latency.

    Usage::

        with LatencyTimer() as t:
            analysis = analyze_loudness(y, sr)
        record_extraction(outcome="ok", latency_seconds=t.elapsed)
    """

    def __init__(self) -> None:
        """Initialize timer."""
        self._start: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> LatencyTimer:
        """Start timing."""
        self._start = time.perf_counter()
        return self

    def __exit__(self, *_: object) -> None:
        """Stop timing and record elapsed."""
        self.elapsed = time.perf_counter() - self._start
