"""S3-backed blob store for collected recordings."""

from __future__ import annotations

import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from app.application.interfaces import BlobStoreInterface
from app.config.settings import S3Config
from app.domain.errors import StorageError
from app.domain.models import NormalizedAudio, StoredBlob
from app.services.aws import create_boto3_client

logger = logging.getLogger(__name__)


class S3BlobStore(BlobStoreInterface):
    """AWS S3 adapter implementation"""

    def __init__(
        self,
        *,
        bucket: str,
        region: str = "us-east-1",
        prefix: str = "",
        client: Any = None,
    ) -> None:
        self.bucket = bucket
        self.region = region
        self.prefix = prefix.strip("/")
        self._client = client

    @classmethod
    def from_config(cls, config: S3Config) -> "S3BlobStore":
        return cls(
            bucket=config.bucket_name,
            region=config.region,
            prefix=config.prefix,
            client=create_boto3_client("s3", config),
        )

    def object_url(self, key: str) -> str:
        if self.region == "us-east-1":
            return f"https://{self.bucket}.s3.amazonaws.com/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def object_key(self, name: str, extension: str) -> str:
        filename = f"{name}.{extension.lstrip('.')}"
        return f"{self.prefix}/{filename}" if self.prefix else filename

    async def store(self, audio: NormalizedAudio, *, name: str) -> StoredBlob:
        """Upload the payload; re-uploading under the same name overwrites it."""

        if not audio.data:
            raise StorageError("Audio payload for upload was empty.")
        if not self.bucket:
            raise StorageError("S3 bucket name is not configured.")

        object_key = self.object_key(name, audio.extension)
        try:
            await run_in_threadpool(
                self._client.put_object,
                Bucket=self.bucket,
                Key=object_key,
                Body=audio.data,
                ContentType=audio.media_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to upload audio to S3: {exc}") from exc

        return StoredBlob(audio_ref=self.object_url(object_key), storage_id=object_key)

    async def delete(self, storage_id: str) -> bool:
        """Delete an object from the bucket"""

        try:
            await run_in_threadpool(
                self._client.delete_object,
                Bucket=self.bucket,
                Key=storage_id,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to delete {storage_id} from S3: {exc}") from exc
        return True


__all__ = ["S3BlobStore"]
