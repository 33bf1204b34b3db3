"""SQLAlchemy model for committed audio submissions."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, false, func
from sqlalchemy.orm import relationship

from app.domain.models import MAX_CONTRIBUTOR_ID_LENGTH
from app.models.base import Base


class SubmissionRecord(Base):
    __tablename__ = "audios"

    id = Column(Integer, primary_key=True, index=True)
    phrase_id = Column(
        Integer,
        ForeignKey("phrases.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    contributor_id = Column("user_id", String(MAX_CONTRIBUTOR_ID_LENGTH), nullable=False, index=True)
    audio_ref = Column("audio_url", Text, nullable=False)
    storage_id = Column(String(512), nullable=True)
    validated = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )

    phrase = relationship("PhraseRecord", back_populates="submissions")


__all__ = ["SubmissionRecord"]
