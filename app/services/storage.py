"""Blob store selection."""

from __future__ import annotations

import logging

from app.application.interfaces import BlobStoreInterface
from app.config.settings import Settings
from app.infrastructure.external.local_adapter import LocalBlobStore
from app.infrastructure.external.s3_adapter import S3BlobStore

logger = logging.getLogger(__name__)


def build_blob_store(settings: Settings) -> BlobStoreInterface:
    """Return the blob store named by ``STORAGE_BACKEND``."""

    if settings.storage.backend == "s3":
        logger.info("Using S3 blob store bucket=%s", settings.s3.bucket_name)
        return S3BlobStore.from_config(settings.s3)

    logger.info("Using local blob store at %s", settings.storage.local_dir)
    return LocalBlobStore.from_config(settings.storage)


__all__ = ["build_blob_store"]
