"""Process-local phrase repository used for development and tests."""

from __future__ import annotations

import asyncio
import random
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from app.application.interfaces import PhraseRepositoryInterface
from app.domain.errors import PhraseNotFoundError
from app.domain.models import ExportRow, Phrase, Submission


class InMemoryPhraseRepository(PhraseRepositoryInterface):
    """Dictionary-backed repository; a single lock serialises every mutation."""

    def __init__(self, *, quota: int, rng: random.Random | None = None) -> None:
        self.quota = quota
        self._rng = rng or random.Random()
        self._lock = asyncio.Lock()
        self._phrases: dict[int, Phrase] = {}
        self._submissions: dict[int, Submission] = {}
        self._next_phrase_id = 1
        self._next_submission_id = 1

    async def next_available_phrase(self) -> Optional[Phrase]:
        eligible = [p for p in self._phrases.values() if p.sample_count < self.quota]
        if not eligible:
            return None
        return self._rng.choice(eligible).model_copy()

    async def increment_sample_count(self, phrase_id: int) -> None:
        async with self._lock:
            self._increment_locked(phrase_id)

    def _increment_locked(self, phrase_id: int) -> None:
        phrase = self._phrases.get(phrase_id)
        if phrase is None:
            raise PhraseNotFoundError(phrase_id)
        self._phrases[phrase_id] = phrase.model_copy(
            update={"sample_count": phrase.sample_count + 1}
        )

    async def commit_submission(
        self,
        phrase_id: int,
        contributor_id: str,
        audio_ref: str,
        storage_id: Optional[str] = None,
    ) -> Submission:
        async with self._lock:
            self._increment_locked(phrase_id)
            submission = Submission(
                id=self._next_submission_id,
                phrase_id=phrase_id,
                contributor_id=contributor_id,
                audio_ref=audio_ref,
                storage_id=storage_id,
                created_at=datetime.now(timezone.utc),
            )
            self._submissions[submission.id] = submission
            self._next_submission_id += 1
        return submission.model_copy()

    async def get_phrase(self, phrase_id: int) -> Optional[Phrase]:
        phrase = self._phrases.get(phrase_id)
        return phrase.model_copy() if phrase else None

    async def count_submissions_by_contributor(self, contributor_id: str) -> int:
        return sum(
            1 for s in self._submissions.values() if s.contributor_id == contributor_id
        )

    async def list_submissions(self, phrase_id: Optional[int] = None) -> List[Submission]:
        return [
            s.model_copy()
            for s in sorted(self._submissions.values(), key=lambda s: s.id)
            if phrase_id is None or s.phrase_id == phrase_id
        ]

    async def export_rows(self) -> List[ExportRow]:
        rows: List[ExportRow] = []
        for submission in sorted(self._submissions.values(), key=lambda s: s.id):
            phrase = self._phrases[submission.phrase_id]
            rows.append(
                ExportRow(
                    id=submission.id,
                    phrase=phrase.text,
                    user_id=submission.contributor_id,
                    audio_url=submission.audio_ref,
                    created_at=submission.created_at,
                )
            )
        return rows

    async def add_phrases(self, texts: Iterable[str]) -> List[Phrase]:
        created: List[Phrase] = []
        async with self._lock:
            for value in texts:
                phrase = Phrase(id=self._next_phrase_id, text=value, sample_count=0)
                self._phrases[phrase.id] = phrase
                self._next_phrase_id += 1
                created.append(phrase.model_copy())
        return created

    async def count_phrases(self) -> int:
        return len(self._phrases)

    async def phrase_texts(self) -> set[str]:
        return {p.text for p in self._phrases.values()}


__all__ = ["InMemoryPhraseRepository"]
