"""SQLAlchemy model for the phrase catalog."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, Integer, String
from sqlalchemy.orm import relationship

from app.models.base import Base


class PhraseRecord(Base):
    __tablename__ = "phrases"
    __table_args__ = (
        CheckConstraint("sample_count >= 0", name="ck_phrases_sample_count_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    text = Column(String(255), nullable=False)
    sample_count = Column(Integer, nullable=False, default=0, server_default="0", index=True)

    submissions = relationship("SubmissionRecord", back_populates="phrase")


__all__ = ["PhraseRecord"]
