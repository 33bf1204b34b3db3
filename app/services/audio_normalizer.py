"""Audio ingestion normalizer: validate uploads and canonicalise their encoding."""

from __future__ import annotations

import io
import logging
import mimetypes
import os
import subprocess
import tempfile
import wave
from typing import Final

import numpy as np
from fastapi.concurrency import run_in_threadpool
from scipy.signal import resample_poly

from app.application.interfaces import AudioNormalizerInterface
from app.config.settings import AudioConfig
from app.domain.errors import NormalizationError
from app.domain.models import NormalizedAudio

logger = logging.getLogger(__name__)

WAV_MEDIA_TYPES: Final[frozenset[str]] = frozenset(
    {"audio/wav", "audio/x-wav", "audio/wave", "audio/vnd.wave"}
)

_EXTENSION_OVERRIDES: Final[dict[str, str]] = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/x-m4a": "m4a",
    "audio/m4a": "m4a",
    "audio/mp4": "m4a",
}


def base_media_type(media_type: str | None) -> str:
    """Lower-case the type and drop parameters such as ``;codecs=opus``."""

    if not media_type:
        return ""
    return media_type.split(";", 1)[0].strip().lower()


def is_audio_media_type(media_type: str | None) -> bool:
    return base_media_type(media_type).startswith("audio/")


def is_riff_wave(data: bytes) -> bool:
    """True when ``data`` starts with a RIFF header of form type WAVE."""

    return len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WAVE"


def _pcm24_to_float(frames: bytes) -> np.ndarray:
    raw = np.frombuffer(frames, dtype=np.uint8).reshape(-1, 3).astype(np.int32)
    values = raw[:, 0] | (raw[:, 1] << 8) | (raw[:, 2] << 16)
    values = np.where(values & 0x800000, values - 0x1000000, values)
    return values.astype(np.float32) / 8388608.0


def extension_for(media_type: str) -> str:
    base = base_media_type(media_type)
    if base in WAV_MEDIA_TYPES:
        return "wav"
    if base in _EXTENSION_OVERRIDES:
        return _EXTENSION_OVERRIDES[base]
    guessed = mimetypes.guess_extension(base) or ".bin"
    return guessed.lstrip(".")


class AudioNormalizer(AudioNormalizerInterface):
    """Convert uploads to mono 16-bit PCM WAV at a fixed sample rate.

    WAV uploads are decoded and resampled in-process; every other audio type
    goes through ffmpeg. With ``transcode`` off the payload passes through
    untouched once its media type has been checked.
    """

    def __init__(
        self,
        *,
        sample_rate: int = 16000,
        channels: int = 1,
        transcode: bool = True,
        ffmpeg_binary: str = "ffmpeg",
    ) -> None:
        self._sample_rate = sample_rate
        self._channels = channels
        self._transcode = transcode
        self._ffmpeg_binary = ffmpeg_binary

    @classmethod
    def from_config(cls, config: AudioConfig) -> "AudioNormalizer":
        return cls(
            sample_rate=config.sample_rate,
            channels=config.channels,
            transcode=config.transcode,
            ffmpeg_binary=config.ffmpeg_binary,
        )

    async def normalize(self, raw_audio: bytes, media_type: str) -> NormalizedAudio:
        base = base_media_type(media_type)
        if not base.startswith("audio/"):
            raise NormalizationError(f"Unsupported media type '{media_type}'.")
        if not raw_audio:
            raise NormalizationError("Audio payload is empty.")

        if not self._transcode:
            return NormalizedAudio(
                data=raw_audio,
                media_type=base,
                extension=extension_for(base),
            )

        # Browsers label MediaRecorder output (WebM, Ogg, MP4) as audio/wav, so
        # the bytes pick the decoder, not the declared type.
        if is_riff_wave(raw_audio):
            try:
                pcm = await run_in_threadpool(self._decode_wav, raw_audio)
            except (wave.Error, EOFError, ValueError) as exc:
                logger.info("In-process WAV decode failed (%s), retrying with ffmpeg", exc)
                pcm = await run_in_threadpool(self._convert_with_ffmpeg, raw_audio)
        else:
            pcm = await run_in_threadpool(self._convert_with_ffmpeg, raw_audio)

        if pcm.size == 0:
            raise NormalizationError("Decoded audio contains no samples.")

        wav_bytes = await run_in_threadpool(self._to_wav_bytes, pcm)
        return NormalizedAudio(
            data=wav_bytes,
            media_type="audio/wav",
            extension="wav",
            sample_rate=self._sample_rate,
            channels=self._channels,
        )

    def _decode_wav(self, raw_audio: bytes) -> np.ndarray:
        """Return float32 samples shaped (frames, channels) at the target rate."""

        with wave.open(io.BytesIO(raw_audio), "rb") as wave_file:
            channels = wave_file.getnchannels()
            sample_width = wave_file.getsampwidth()
            source_rate = wave_file.getframerate()
            frames = wave_file.readframes(wave_file.getnframes())

        if sample_width == 1:
            audio = (np.frombuffer(frames, dtype=np.uint8).astype(np.float32) - 128.0) / 128.0
        elif sample_width == 2:
            audio = np.frombuffer(frames, dtype="<i2").astype(np.float32) / 32768.0
        elif sample_width == 3:
            audio = _pcm24_to_float(frames)
        elif sample_width == 4:
            audio = np.frombuffer(frames, dtype="<i4").astype(np.float32) / 2147483648.0
        else:
            raise ValueError(f"unsupported sample width {sample_width}")

        audio = audio.reshape(-1, channels)
        return self._resample(self._remix(audio), source_rate)

    def _remix(self, audio: np.ndarray) -> np.ndarray:
        if audio.shape[1] == self._channels:
            return audio
        mono = audio.mean(axis=1, keepdims=True)
        return np.repeat(mono, self._channels, axis=1)

    def _resample(self, audio: np.ndarray, source_rate: int) -> np.ndarray:
        if source_rate == self._sample_rate or audio.shape[0] == 0:
            return audio
        divisor = np.gcd(source_rate, self._sample_rate)
        up = self._sample_rate // divisor
        down = source_rate // divisor
        return resample_poly(audio, up, down, axis=0).astype(np.float32)

    def _convert_with_ffmpeg(self, raw_audio: bytes) -> np.ndarray:
        """Decode any container via ffmpeg to s16le PCM using a temporary file."""

        with tempfile.NamedTemporaryFile(delete=False, suffix=".tmp") as tmp_file:
            tmp_file.write(raw_audio)
            tmp_path = tmp_file.name

        try:
            process = subprocess.run(
                [
                    self._ffmpeg_binary,
                    "-y",
                    "-i", tmp_path,
                    "-f", "s16le",
                    "-ac", str(self._channels),
                    "-ar", str(self._sample_rate),
                    "pipe:1",
                ],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
            )
        except FileNotFoundError as exc:
            raise NormalizationError(f"ffmpeg binary '{self._ffmpeg_binary}' not found") from exc
        except subprocess.CalledProcessError as exc:
            error_msg = exc.stderr.decode("utf-8", errors="replace") if exc.stderr else "No stderr"
            logger.error("ffmpeg failed. stderr: %s", error_msg)
            raise NormalizationError(f"ffmpeg failed to decode audio: {error_msg}") from exc
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)

        frame_bytes = 2 * self._channels
        pcm_bytes = process.stdout[: len(process.stdout) - len(process.stdout) % frame_bytes]
        audio = np.frombuffer(pcm_bytes, dtype="<i2").astype(np.float32) / 32768.0
        return audio.reshape(-1, self._channels)

    def _to_wav_bytes(self, audio: np.ndarray) -> bytes:
        audio = np.clip(audio, -1.0, 1.0)
        pcm16 = (audio * 32767.0).astype("<i2")
        with io.BytesIO() as buffer:
            with wave.open(buffer, "wb") as wave_file:
                wave_file.setnchannels(self._channels)
                wave_file.setsampwidth(2)
                wave_file.setframerate(self._sample_rate)
                wave_file.writeframes(pcm16.tobytes())
            return buffer.getvalue()


__all__ = [
    "AudioNormalizer",
    "WAV_MEDIA_TYPES",
    "base_media_type",
    "extension_for",
    "is_audio_media_type",
    "is_riff_wave",
]
