"""Submission pipeline helpers that are HTTP/transport aware.

The transport-independent stages (normalize, store, commit) live in
`app.services.submission_recorder`; this package only turns an uploaded
multipart file into bytes plus a media type.
"""

from .ingestion import read_audio_bytes, resolve_content_type

__all__ = [
    "read_audio_bytes",
    "resolve_content_type",
]
