"""Shared fixtures for the collection backend test-suite."""

from __future__ import annotations

import io
from pathlib import Path
import sys
import wave

import numpy as np
import pytest
import pytest_asyncio

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from app.config.settings import DatabaseConfig  # noqa: E402
from app.database import Database  # noqa: E402
from app.infrastructure.persistence.repositories_memory import (  # noqa: E402
    InMemoryPhraseRepository,
)
from app.infrastructure.persistence.repositories_sqlalchemy import (  # noqa: E402
    SQLAlchemyPhraseRepository,
)

QUOTA = 2


def build_wav(
    *,
    sample_rate: int = 16000,
    channels: int = 1,
    duration: float = 0.1,
    frequency: float = 440.0,
) -> bytes:
    """Return a 16-bit PCM sine tone as WAV bytes."""

    frames = int(sample_rate * duration)
    t = np.arange(frames) / sample_rate
    tone = 0.5 * np.sin(2 * np.pi * frequency * t)
    samples = np.repeat(tone[:, None], channels, axis=1)
    pcm = (samples * 32767).astype("<i2")
    with io.BytesIO() as buffer:
        with wave.open(buffer, "wb") as wave_file:
            wave_file.setnchannels(channels)
            wave_file.setsampwidth(2)
            wave_file.setframerate(sample_rate)
            wave_file.writeframes(pcm.tobytes())
        return buffer.getvalue()


@pytest.fixture
def wav_factory():
    return build_wav


@pytest.fixture
def sqlite_config(tmp_path: Path) -> DatabaseConfig:
    return DatabaseConfig(
        dsn=f"sqlite+aiosqlite:///{tmp_path / 'voice.db'}",
        serverless=True,
        connect_attempts=1,
    )


@pytest_asyncio.fixture
async def database(sqlite_config: DatabaseConfig):
    db = Database(sqlite_config)
    await db.connect()
    await db.init_models()
    yield db
    await db.dispose()


@pytest_asyncio.fixture(params=["memory", "sql"])
async def repository(request, sqlite_config: DatabaseConfig):
    """Run each contract test against both repository implementations."""

    if request.param == "memory":
        yield InMemoryPhraseRepository(quota=QUOTA)
        return

    db = Database(sqlite_config)
    await db.connect()
    await db.init_models()
    yield SQLAlchemyPhraseRepository(db, quota=QUOTA)
    await db.dispose()
