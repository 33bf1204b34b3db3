"""Pydantic schemas for phrase distribution."""

from pydantic import BaseModel, ConfigDict


class PhraseRead(BaseModel):
    id: int
    text: str
    sample_count: int

    model_config = ConfigDict(from_attributes=True)
