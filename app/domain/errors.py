"""Failure taxonomy shared by the intake pipeline and the HTTP layer."""

from __future__ import annotations


class CollectionError(RuntimeError):
    """Base class for every failure surfaced to API callers."""

    kind: str = "CollectionError"
    retryable: bool = False


class InvalidMediaError(CollectionError):
    """Raised when an upload fails basic shape or media-type checks."""

    kind = "InvalidMedia"


class PayloadTooLargeError(InvalidMediaError):
    """Raised when an upload exceeds the configured size limit."""


class NormalizationError(CollectionError):
    """Raised when audio content cannot be decoded or transcoded."""

    kind = "NormalizationFailed"


class StorageError(CollectionError):
    """Raised when a blob store cannot persist or remove audio."""

    kind = "StorageFailed"
    retryable = True


class PhraseNotFoundError(CollectionError):
    """Raised when a referenced phrase does not exist."""

    kind = "NotFound"

    def __init__(self, phrase_id: int) -> None:
        super().__init__(f"Phrase {phrase_id} does not exist.")
        self.phrase_id = phrase_id


class RepositoryUnavailableError(CollectionError):
    """Raised when the backing database cannot be reached."""

    kind = "Unavailable"
    retryable = True


__all__ = [
    "CollectionError",
    "InvalidMediaError",
    "PayloadTooLargeError",
    "NormalizationError",
    "StorageError",
    "PhraseNotFoundError",
    "RepositoryUnavailableError",
]
