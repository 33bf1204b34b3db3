"""Audio normalization to mono 16 kHz PCM WAV."""

from __future__ import annotations

import io
import os
import struct
import sys
import wave

import pytest

from app.domain.errors import NormalizationError
from app.services.audio_normalizer import (
    AudioNormalizer,
    base_media_type,
    extension_for,
    is_audio_media_type,
    is_riff_wave,
)

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="fake ffmpeg is a shell script")


@pytest.fixture
def fake_ffmpeg(tmp_path):
    """Write an executable stand-in for ffmpeg that records its arguments.

    On success it emits ``frames`` zeroed 16-bit samples on stdout, which is
    what the real binary produces for ``-f s16le pipe:1``.
    """

    def factory(*, frames: int = 1600, exit_code: int = 0) -> str:
        script = tmp_path / "ffmpeg"
        calls = tmp_path / "ffmpeg.calls"
        body = f'#!/bin/sh\necho "$@" >> "{calls}"\n'
        if exit_code:
            body += f"echo 'Invalid data found when processing input' >&2\nexit {exit_code}\n"
        else:
            body += f"head -c {frames * 2} /dev/zero\n"
        script.write_text(body)
        os.chmod(script, 0o755)
        return str(script)

    return factory


def build_riff_wav(*, format_tag: int, bits: int, payload: bytes, sample_rate: int = 16000) -> bytes:
    block_align = bits // 8
    fmt = struct.pack(
        "<HHIIHH", format_tag, 1, sample_rate, sample_rate * block_align, block_align, bits
    )
    body = b"WAVE" + b"fmt " + struct.pack("<I", len(fmt)) + fmt
    body += b"data" + struct.pack("<I", len(payload)) + payload
    return b"RIFF" + struct.pack("<I", len(body)) + body


def read_wav(data: bytes) -> tuple[int, int, int, int]:
    with wave.open(io.BytesIO(data), "rb") as wave_file:
        return (
            wave_file.getnchannels(),
            wave_file.getsampwidth(),
            wave_file.getframerate(),
            wave_file.getnframes(),
        )


def test_media_type_helpers():
    assert base_media_type("Audio/WebM; codecs=opus") == "audio/webm"
    assert base_media_type(None) == ""
    assert is_audio_media_type("audio/x-wav")
    assert not is_audio_media_type("text/plain")
    assert extension_for("audio/x-wav") == "wav"
    assert extension_for("audio/mpeg") == "mp3"
    assert extension_for("audio/webm;codecs=opus") == "webm"


@pytest.mark.asyncio
async def test_stereo_44k_wav_is_downmixed_and_resampled(wav_factory):
    normalizer = AudioNormalizer(sample_rate=16000, channels=1)
    raw = wav_factory(sample_rate=44100, channels=2, duration=0.1)

    result = await normalizer.normalize(raw, "audio/wav")

    assert result.media_type == "audio/wav"
    assert result.extension == "wav"
    assert (result.sample_rate, result.channels) == (16000, 1)
    channels, width, rate, frames = read_wav(result.data)
    assert (channels, width, rate) == (1, 2, 16000)
    assert frames == 1600


@pytest.mark.asyncio
async def test_canonical_wav_keeps_its_length(wav_factory):
    normalizer = AudioNormalizer()
    raw = wav_factory(sample_rate=16000, channels=1, duration=0.25)

    result = await normalizer.normalize(raw, "audio/x-wav")

    assert read_wav(result.data) == (1, 2, 16000, 4000)


@posix_only
@pytest.mark.asyncio
async def test_corrupt_wav_raises_normalization_error(fake_ffmpeg):
    normalizer = AudioNormalizer(ffmpeg_binary=fake_ffmpeg(exit_code=1))

    with pytest.raises(NormalizationError) as exc_info:
        await normalizer.normalize(b"this is not a wav file at all", "audio/wav")

    assert exc_info.value.kind == "NormalizationFailed"


@pytest.mark.asyncio
async def test_missing_ffmpeg_raises_normalization_error():
    normalizer = AudioNormalizer(ffmpeg_binary="ffmpeg-binary-that-does-not-exist")

    with pytest.raises(NormalizationError, match="not found"):
        await normalizer.normalize(b"\xff\xfb\x90\x00" * 32, "audio/mpeg")


@pytest.mark.asyncio
async def test_passthrough_when_transcoding_disabled():
    normalizer = AudioNormalizer(transcode=False)

    result = await normalizer.normalize(b"opus-bytes", "audio/webm;codecs=opus")

    assert result.data == b"opus-bytes"
    assert result.media_type == "audio/webm"
    assert result.extension == "webm"
    assert result.sample_rate is None


@pytest.mark.asyncio
@pytest.mark.parametrize(("payload", "media_type"), [(b"data", "text/plain"), (b"", "audio/wav")])
async def test_rejects_non_audio_or_empty_payload(payload, media_type):
    with pytest.raises(NormalizationError):
        await AudioNormalizer().normalize(payload, media_type)


def test_riff_wave_detection(wav_factory):
    assert is_riff_wave(wav_factory())
    assert not is_riff_wave(b"\x1aE\xdf\xa3" + b"\x00" * 16)
    assert not is_riff_wave(b"RIFF")


@posix_only
@pytest.mark.asyncio
async def test_webm_bytes_labelled_wav_are_transcoded_with_ffmpeg(fake_ffmpeg, tmp_path):
    normalizer = AudioNormalizer(ffmpeg_binary=fake_ffmpeg(frames=1600))
    webm = b"\x1aE\xdf\xa3\x9fB\x86\x81\x01" + b"\x00" * 64

    result = await normalizer.normalize(webm, "audio/wav")

    assert read_wav(result.data) == (1, 2, 16000, 1600)
    assert "s16le" in (tmp_path / "ffmpeg.calls").read_text()


@pytest.mark.asyncio
async def test_24_bit_wav_is_decoded_in_process():
    normalizer = AudioNormalizer(ffmpeg_binary="ffmpeg-binary-that-does-not-exist")
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wave_file:
        wave_file.setnchannels(1)
        wave_file.setsampwidth(3)
        wave_file.setframerate(48000)
        wave_file.writeframes(b"\x00\x00\x40\x00\x00\xc0" * 2400)

    result = await normalizer.normalize(buffer.getvalue(), "audio/wav")

    assert read_wav(result.data) == (1, 2, 16000, 1600)


@posix_only
@pytest.mark.asyncio
async def test_wav_with_unsupported_encoding_falls_back_to_ffmpeg(fake_ffmpeg, tmp_path):
    normalizer = AudioNormalizer(ffmpeg_binary=fake_ffmpeg(frames=800))
    mp3_in_wav = build_riff_wav(format_tag=0x55, bits=16, payload=b"\xff\xfb" * 256)

    result = await normalizer.normalize(mp3_in_wav, "audio/wav")

    assert read_wav(result.data) == (1, 2, 16000, 800)
    assert (tmp_path / "ffmpeg.calls").exists()


@pytest.mark.asyncio
async def test_undecodable_wav_without_ffmpeg_raises_normalization_error():
    normalizer = AudioNormalizer(ffmpeg_binary="ffmpeg-binary-that-does-not-exist")
    mp3_in_wav = build_riff_wav(format_tag=0x55, bits=16, payload=b"\xff\xfb" * 256)

    with pytest.raises(NormalizationError):
        await normalizer.normalize(mp3_in_wav, "audio/wav")
