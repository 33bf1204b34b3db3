from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

MAX_CONTRIBUTOR_ID_LENGTH = 100


class Phrase(BaseModel):
    """Domain model for a prompt shown to contributors"""
    id: int
    text: str
    sample_count: int = 0

    class Config:
        from_attributes = True


class Submission(BaseModel):
    """Domain model for one committed recording"""
    id: int
    phrase_id: int
    contributor_id: str
    audio_ref: str
    storage_id: Optional[str] = None
    validated: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubmissionResult(BaseModel):
    """Outcome of a successful record_submission call"""
    submission_id: int
    phrase_id: int
    audio_ref: str
    storage_id: Optional[str] = None


class ExportRow(BaseModel):
    """Submission joined with the text of its phrase"""
    id: int
    phrase: str
    user_id: str
    audio_url: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


@dataclass(frozen=True)
class NormalizedAudio:
    """Audio payload ready to be handed to a blob store."""

    data: bytes
    media_type: str
    extension: str
    sample_rate: int | None = None
    channels: int | None = None


@dataclass(frozen=True)
class StoredBlob:
    """Locator returned by a blob store once the payload is durable."""

    audio_ref: str
    storage_id: str | None = None
