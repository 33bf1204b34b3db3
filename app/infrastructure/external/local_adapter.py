"""Local-disk blob store served back through the /uploads static mount."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from fastapi.concurrency import run_in_threadpool

from app.application.interfaces import BlobStoreInterface
from app.config.settings import StorageConfig
from app.domain.errors import StorageError
from app.domain.models import NormalizedAudio, StoredBlob


class LocalBlobStore(BlobStoreInterface):
    """Write each recording to ``<root>/<name>.<ext>``."""

    def __init__(self, root: str | Path, *, public_base_url: str = "/uploads/audio") -> None:
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    @classmethod
    def from_config(cls, config: StorageConfig) -> "LocalBlobStore":
        return cls(config.local_dir, public_base_url=config.public_base_url)

    def _resolve(self, relative: str) -> Path:
        root = self.root.resolve()
        target = (root / relative).resolve()
        if root not in target.parents:
            raise StorageError(f"Storage id '{relative}' escapes the storage root.")
        return target

    def _write_atomic(self, target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=target.parent, suffix=".part")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.replace(tmp_path, target)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)

    async def store(self, audio: NormalizedAudio, *, name: str) -> StoredBlob:
        if not audio.data:
            raise StorageError("Audio payload for upload was empty.")

        relative = f"{name}.{audio.extension.lstrip('.')}"
        try:
            target = self._resolve(relative)
            await run_in_threadpool(self._write_atomic, target, audio.data)
        except OSError as exc:
            raise StorageError(f"Failed to write {relative}: {exc}") from exc

        return StoredBlob(audio_ref=f"{self.public_base_url}/{relative}", storage_id=relative)

    async def delete(self, storage_id: str) -> bool:
        target = self._resolve(storage_id)
        try:
            await run_in_threadpool(target.unlink)
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StorageError(f"Failed to delete {storage_id}: {exc}") from exc
        return True


__all__ = ["LocalBlobStore"]
