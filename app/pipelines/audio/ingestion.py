"""Request ingestion helpers (Stage 01 of the submission pipeline)."""

from __future__ import annotations

import mimetypes
from typing import Final

from fastapi import UploadFile

from app.domain.errors import PayloadTooLargeError

_READ_CHUNK_BYTES: Final[int] = 1024 * 1024


def resolve_content_type(audio_file: UploadFile) -> str:
    """Use the client-declared type, falling back to a guess from the filename."""

    content_type = audio_file.content_type
    if (not content_type or content_type == "application/octet-stream") and audio_file.filename:
        guessed_type, _ = mimetypes.guess_type(audio_file.filename)
        content_type = guessed_type or content_type

    return content_type or ""


async def read_audio_bytes(audio_file: UploadFile, *, max_bytes: int) -> bytes:
    """Load the upload into memory, refusing to buffer more than ``max_bytes``."""

    chunks: list[bytes] = []
    total = 0
    try:
        while True:
            chunk = await audio_file.read(_READ_CHUNK_BYTES)
            if not chunk:
                break
            total += len(chunk)
            if total > max_bytes:
                raise PayloadTooLargeError(
                    f"Uploaded audio exceeds the {max_bytes} byte limit."
                )
            chunks.append(chunk)
    finally:
        await audio_file.close()

    return b"".join(chunks)


__all__ = ["resolve_content_type", "read_audio_bytes"]
