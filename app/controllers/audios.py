"""Audio submission endpoint.

`POST /audios` reads the multipart upload here and hands the bytes to
`app.services.submission_recorder.SubmissionRecorder`, which validates,
normalizes, stores and commits them.
"""

import logging

from fastapi import APIRouter, File, Form, UploadFile

from app.controllers.dependencies import RecorderDep
from app.domain.errors import PayloadTooLargeError
from app.pipelines.audio import read_audio_bytes, resolve_content_type
from app.views import ErrorResponse, SubmissionResponse

router = APIRouter(prefix="/audios", tags=["audios"])

logger = logging.getLogger(__name__)

_PHRASE_ID_FORM = Form(...)
_USER_ID_FORM = Form(...)
_AUDIO_FILE_UPLOAD = File(...)

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Upload is not usable audio"},
    404: {"model": ErrorResponse, "description": "Unknown phrase"},
    413: {"model": ErrorResponse, "description": "Upload exceeds the size limit"},
    422: {"model": ErrorResponse, "description": "Audio could not be decoded"},
    502: {"model": ErrorResponse, "description": "Blob storage failed"},
    503: {"model": ErrorResponse, "description": "Database unreachable"},
}


@router.post("", response_model=SubmissionResponse, responses=_ERROR_RESPONSES)
async def submit_audio(
    recorder: RecorderDep,
    phrase_id: int = _PHRASE_ID_FORM,
    user_id: str = _USER_ID_FORM,
    audio: UploadFile = _AUDIO_FILE_UPLOAD,
) -> SubmissionResponse:
    """Store one recording of a phrase and count it towards the phrase quota."""

    content_type = resolve_content_type(audio)
    try:
        audio_bytes = await read_audio_bytes(audio, max_bytes=recorder.max_upload_bytes)
    except PayloadTooLargeError as exc:
        recorder.note_rejection(phrase_id, user_id, exc)
        raise
    logger.debug(
        "Upload received phrase=%s user=%s type=%s bytes=%d",
        phrase_id,
        user_id,
        content_type,
        len(audio_bytes),
    )

    result = await recorder.record_submission(phrase_id, user_id, audio_bytes, content_type)
    return SubmissionResponse(
        submission_id=result.submission_id,
        audio_url=result.audio_ref,
        storage_id=result.storage_id,
    )
