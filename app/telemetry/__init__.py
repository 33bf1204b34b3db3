"""Prometheus instrumentation for requests and submissions."""

from .metrics import (
    BLOB_STORE_LATENCY,
    ERROR_COUNTER,
    PHRASE_POOL_EXHAUSTED_COUNTER,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    SUBMISSION_COUNTER,
    SUBMISSION_REJECTED_COUNTER,
    UPLOAD_SIZE_BYTES,
    increment_pool_exhausted,
    increment_rejection,
    increment_submission,
    observe_blob_store,
    observe_request,
    observe_upload_size,
)

__all__ = [
    "BLOB_STORE_LATENCY",
    "ERROR_COUNTER",
    "PHRASE_POOL_EXHAUSTED_COUNTER",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "SUBMISSION_COUNTER",
    "SUBMISSION_REJECTED_COUNTER",
    "UPLOAD_SIZE_BYTES",
    "increment_pool_exhausted",
    "increment_rejection",
    "increment_submission",
    "observe_blob_store",
    "observe_request",
    "observe_upload_size",
]
