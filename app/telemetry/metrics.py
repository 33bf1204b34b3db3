"""Prometheus metrics for the HTTP surface and the audio intake pipeline."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

_LATENCY_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

# Buckets reach 30s to cover upload plus transcoding on /audios.
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=_LATENCY_BUCKETS,
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests answered with a 5xx status",
    ("method", "route", "status"),
)

SUBMISSION_COUNTER = Counter(
    "app_submissions_total",
    "Number of audio submissions committed",
)

SUBMISSION_REJECTED_COUNTER = Counter(
    "app_submissions_rejected_total",
    "Number of audio submissions rejected, by failure kind",
    ("kind",),
)

PHRASE_POOL_EXHAUSTED_COUNTER = Counter(
    "app_phrase_pool_exhausted_total",
    "Number of next-phrase requests answered with no eligible phrase",
)

UPLOAD_SIZE_BYTES = Histogram(
    "app_upload_size_bytes",
    "Size of raw audio uploads accepted for normalization",
    buckets=tuple(2**n * 1024 for n in range(4, 15, 2)),
)

BLOB_STORE_LATENCY = Histogram(
    "app_blob_store_duration_seconds",
    "Time spent per blob store attempt",
    ("outcome",),
    buckets=_LATENCY_BUCKETS,
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    route_label = route or "unmatched"
    method_label = method or "UNKNOWN"
    status_label = str(status_code)

    REQUEST_COUNT.labels(method=method_label, route=route_label, status=status_label).inc()
    REQUEST_LATENCY.labels(method=method_label, route=route_label).observe(
        max(duration_seconds, 0.0)
    )
    if status_code >= 500:
        ERROR_COUNTER.labels(method=method_label, route=route_label, status=status_label).inc()


def increment_submission() -> None:
    """Increment the committed submission counter."""

    SUBMISSION_COUNTER.inc()


def increment_rejection(kind: str) -> None:
    SUBMISSION_REJECTED_COUNTER.labels(kind=kind or "unknown").inc()


def increment_pool_exhausted() -> None:
    PHRASE_POOL_EXHAUSTED_COUNTER.inc()


def observe_upload_size(size_bytes: int) -> None:
    UPLOAD_SIZE_BYTES.observe(size_bytes)


def observe_blob_store(duration_seconds: float, *, succeeded: bool) -> None:
    BLOB_STORE_LATENCY.labels(outcome="ok" if succeeded else "error").observe(
        max(duration_seconds, 0.0)
    )
