from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from app.domain.models import (
    ExportRow,
    NormalizedAudio,
    Phrase,
    StoredBlob,
    Submission,
)


class PhraseRepositoryInterface(ABC):
    """Persistence contract for phrases and their submissions"""

    @abstractmethod
    async def next_available_phrase(self) -> Optional[Phrase]:
        ...

    @abstractmethod
    async def increment_sample_count(self, phrase_id: int) -> None:
        ...

    @abstractmethod
    async def commit_submission(
        self,
        phrase_id: int,
        contributor_id: str,
        audio_ref: str,
        storage_id: Optional[str] = None,
    ) -> Submission:
        ...

    @abstractmethod
    async def get_phrase(self, phrase_id: int) -> Optional[Phrase]:
        """Inspection helper for admin tooling; no route reads single phrases."""
        ...

    @abstractmethod
    async def count_submissions_by_contributor(self, contributor_id: str) -> int:
        ...

    @abstractmethod
    async def list_submissions(self, phrase_id: Optional[int] = None) -> List[Submission]:
        """Inspection helper for admin tooling, optionally scoped to one phrase."""
        ...

    @abstractmethod
    async def export_rows(self) -> List[ExportRow]:
        ...

    @abstractmethod
    async def add_phrases(self, texts: Iterable[str]) -> List[Phrase]:
        ...

    @abstractmethod
    async def count_phrases(self) -> int:
        ...

    @abstractmethod
    async def phrase_texts(self) -> set[str]:
        ...


class AudioNormalizerInterface(ABC):
    """Contract for turning an upload into canonical stored audio"""

    @abstractmethod
    async def normalize(self, raw_audio: bytes, media_type: str) -> NormalizedAudio:
        ...


class BlobStoreInterface(ABC):
    """Contract for durable audio storage"""

    @abstractmethod
    async def store(self, audio: NormalizedAudio, *, name: str) -> StoredBlob:
        ...

    @abstractmethod
    async def delete(self, storage_id: str) -> bool:
        ...
