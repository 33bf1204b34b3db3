"""Pydantic schemas used as views in the MVC architecture."""

from .common import ErrorResponse
from .phrases import PhraseRead
from .submissions import ContributorStatsResponse, SubmissionResponse

__all__ = [
    "ContributorStatsResponse",
    "ErrorResponse",
    "PhraseRead",
    "SubmissionResponse",
]
