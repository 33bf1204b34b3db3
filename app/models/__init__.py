"""SQLAlchemy models for the phrase catalog and collected audio."""

from .base import Base
from .phrase import PhraseRecord  # noqa: F401
from .submission import SubmissionRecord  # noqa: F401

__all__ = [
    "Base",
    "PhraseRecord",
    "SubmissionRecord",
]
