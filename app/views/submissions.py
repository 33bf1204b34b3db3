"""Pydantic schemas for audio submissions and contributor stats."""

from typing import Optional

from pydantic import BaseModel, Field


class SubmissionResponse(BaseModel):
    success: bool = True
    submission_id: int = Field(..., description="Identifier of the committed submission")
    audio_url: str = Field(..., description="Durable locator of the normalized audio")
    storage_id: Optional[str] = Field(None, description="Blob store handle, when available")


class ContributorStatsResponse(BaseModel):
    count: int = Field(..., ge=0, description="Committed submissions for the contributor")
