"""End-to-end intake of one audio submission.

The recorder is the only component that creates submissions or moves a
phrase counter. Stages run strictly in order:

1. Shape checks (media type, size, contributor id) before any I/O.
2. Normalization to the canonical encoding.
3. Blob storage, retried under a fixed object name.
4. Atomic commit of the submission row plus counter increment.

Nothing reaches the database until storage has confirmed the blob.
"""

from __future__ import annotations

import asyncio
import logging
import time
from uuid import uuid4

from app.application.interfaces import (
    AudioNormalizerInterface,
    BlobStoreInterface,
    PhraseRepositoryInterface,
)
from app.domain.errors import (
    CollectionError,
    InvalidMediaError,
    PayloadTooLargeError,
    PhraseNotFoundError,
    StorageError,
)
from app.domain.models import (
    MAX_CONTRIBUTOR_ID_LENGTH,
    NormalizedAudio,
    StoredBlob,
    SubmissionResult,
)
from app.services.audio_normalizer import is_audio_media_type
from app.telemetry import (
    increment_rejection,
    increment_submission,
    observe_blob_store,
    observe_upload_size,
)

logger = logging.getLogger("app.services.submission_recorder")


class SubmissionRecorder:
    """Validate, normalize, store and commit uploaded recordings."""

    def __init__(
        self,
        repository: PhraseRepositoryInterface,
        normalizer: AudioNormalizerInterface,
        blob_store: BlobStoreInterface,
        *,
        max_upload_bytes: int,
        storage_retries: int = 0,
        storage_retry_delay: float = 0.2,
        storage_timeout: float | None = None,
    ) -> None:
        self._repository = repository
        self._normalizer = normalizer
        self._blob_store = blob_store
        self._max_upload_bytes = max_upload_bytes
        self._storage_retries = storage_retries
        self._storage_retry_delay = storage_retry_delay
        self._storage_timeout = storage_timeout

    @property
    def max_upload_bytes(self) -> int:
        return self._max_upload_bytes

    async def record_submission(
        self,
        phrase_id: int,
        contributor_id: str,
        raw_audio: bytes,
        media_type: str,
    ) -> SubmissionResult:
        try:
            result = await self._record(phrase_id, contributor_id, raw_audio, media_type)
        except CollectionError as exc:
            self.note_rejection(phrase_id, contributor_id, exc)
            raise
        increment_submission()
        logger.info(
            "Submission committed id=%s phrase=%s user=%s ref=%s",
            result.submission_id,
            phrase_id,
            contributor_id,
            result.audio_ref,
        )
        return result

    def note_rejection(self, phrase_id: int, contributor_id: str, exc: CollectionError) -> None:
        """Count and log a rejected upload, including ones refused while streaming."""

        increment_rejection(exc.kind)
        logger.info(
            "Submission rejected phrase=%s user=%s kind=%s: %s",
            phrase_id,
            contributor_id,
            exc.kind,
            exc,
        )

    def validate(self, contributor_id: str, raw_audio: bytes, media_type: str) -> None:
        """Reject malformed uploads before any normalization or storage work."""

        if not is_audio_media_type(media_type):
            raise InvalidMediaError(
                f"Only audio uploads are accepted (got '{media_type or 'unknown'}')."
            )
        if not raw_audio:
            raise InvalidMediaError("Uploaded audio file is empty.")
        if len(raw_audio) > self._max_upload_bytes:
            raise PayloadTooLargeError(
                f"Uploaded audio exceeds the {self._max_upload_bytes} byte limit."
            )
        if not contributor_id or not contributor_id.strip():
            raise InvalidMediaError("A contributor identifier is required.")
        if len(contributor_id.strip()) > MAX_CONTRIBUTOR_ID_LENGTH:
            raise InvalidMediaError(
                f"Contributor identifier exceeds {MAX_CONTRIBUTOR_ID_LENGTH} characters."
            )

    async def _record(
        self,
        phrase_id: int,
        contributor_id: str,
        raw_audio: bytes,
        media_type: str,
    ) -> SubmissionResult:
        self.validate(contributor_id, raw_audio, media_type)
        contributor_id = contributor_id.strip()
        observe_upload_size(len(raw_audio))

        normalized = await self._normalizer.normalize(raw_audio, media_type)
        blob = await self._store(normalized, name=uuid4().hex)

        try:
            submission = await self._repository.commit_submission(
                phrase_id,
                contributor_id,
                blob.audio_ref,
                blob.storage_id,
            )
        except PhraseNotFoundError:
            logger.warning(
                "Orphaned blob left in storage phrase=%s storage_id=%s ref=%s",
                phrase_id,
                blob.storage_id,
                blob.audio_ref,
            )
            raise

        return SubmissionResult(
            submission_id=submission.id,
            phrase_id=submission.phrase_id,
            audio_ref=submission.audio_ref,
            storage_id=submission.storage_id,
        )

    async def _store(self, audio: NormalizedAudio, *, name: str) -> StoredBlob:
        """Persist the blob, retrying transient failures under the same name."""

        attempts = self._storage_retries + 1
        attempt = 1
        while True:
            try:
                return await self._store_once(audio, name=name)
            except StorageError as exc:
                logger.warning(
                    "Blob storage attempt %d/%d failed for %s: %s",
                    attempt,
                    attempts,
                    name,
                    exc,
                )
                if attempt >= attempts:
                    raise
            await asyncio.sleep(self._storage_retry_delay * (2 ** (attempt - 1)))
            attempt += 1

    async def _store_once(self, audio: NormalizedAudio, *, name: str) -> StoredBlob:
        started = time.perf_counter()
        try:
            if self._storage_timeout is None:
                blob = await self._blob_store.store(audio, name=name)
            else:
                blob = await asyncio.wait_for(
                    self._blob_store.store(audio, name=name),
                    timeout=self._storage_timeout,
                )
        except asyncio.TimeoutError as exc:
            observe_blob_store(time.perf_counter() - started, succeeded=False)
            raise StorageError(
                f"Blob storage timed out after {self._storage_timeout}s"
            ) from exc
        except StorageError:
            observe_blob_store(time.perf_counter() - started, succeeded=False)
            raise
        observe_blob_store(time.perf_counter() - started, succeeded=True)
        return blob


__all__ = ["SubmissionRecorder"]
