"""Startup wiring: build every long-lived collaborator once from settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.application.interfaces import (
    AudioNormalizerInterface,
    BlobStoreInterface,
    PhraseRepositoryInterface,
)
from app.config.settings import Settings
from app.database import Database
from app.infrastructure.persistence.repositories_memory import InMemoryPhraseRepository
from app.infrastructure.persistence.repositories_sqlalchemy import SQLAlchemyPhraseRepository
from app.services.audio_normalizer import AudioNormalizer
from app.services.export import ExportReporter
from app.services.storage import build_blob_store
from app.services.submission_recorder import SubmissionRecorder

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    """Collaborators shared by every request for the lifetime of the process."""

    repository: PhraseRepositoryInterface
    normalizer: AudioNormalizerInterface
    blob_store: BlobStoreInterface
    recorder: SubmissionRecorder
    reporter: ExportReporter
    database: Database | None = None

    async def startup(self) -> None:
        """Acquire the database connection and ensure tables exist."""

        if self.database is None:
            return
        await self.database.connect()
        await self.database.init_models()

    async def shutdown(self) -> None:
        if self.database is not None:
            await self.database.dispose()


def build_repository(
    settings: Settings,
) -> tuple[PhraseRepositoryInterface, Database | None]:
    """Pick the repository implementation named by ``DB_BACKEND``."""

    quota = settings.collection.quota
    if settings.database.backend == "memory":
        logger.info("Using in-memory phrase repository (quota=%d)", quota)
        return InMemoryPhraseRepository(quota=quota), None

    database = Database(settings.database, echo=settings.debug)
    logger.info("Using SQL phrase repository (quota=%d)", quota)
    return SQLAlchemyPhraseRepository(database, quota=quota), database


def build_services(settings: Settings) -> AppServices:
    repository, database = build_repository(settings)
    normalizer = AudioNormalizer.from_config(settings.audio)
    blob_store = build_blob_store(settings)
    recorder = SubmissionRecorder(
        repository,
        normalizer,
        blob_store,
        max_upload_bytes=settings.audio.max_upload_bytes,
        storage_retries=settings.storage.retries,
        storage_retry_delay=settings.storage.retry_delay,
        storage_timeout=settings.storage.timeout_seconds,
    )
    return AppServices(
        repository=repository,
        normalizer=normalizer,
        blob_store=blob_store,
        recorder=recorder,
        reporter=ExportReporter(repository),
        database=database,
    )


__all__ = ["AppServices", "build_repository", "build_services"]
