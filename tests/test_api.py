"""HTTP surface: routes, payload shapes and error-to-status mapping."""

from __future__ import annotations

import csv
from dataclasses import replace
from datetime import datetime
import io
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook
from prometheus_client import REGISTRY

from app.application.interfaces import BlobStoreInterface
from app.config.dependencies import build_services
from app.config.settings import (
    AudioConfig,
    CollectionConfig,
    DatabaseConfig,
    Settings,
    StorageConfig,
)
from app.domain.errors import (
    InvalidMediaError,
    PayloadTooLargeError,
    RepositoryUnavailableError,
    StorageError,
)
from app.main import create_app, status_for_error
from app.services.export import EXPORT_COLUMNS, XLSX_MEDIA_TYPE
from app.services.submission_recorder import SubmissionRecorder


class BrokenBlobStore(BlobStoreInterface):
    async def store(self, audio, *, name):
        raise StorageError("disk full")

    async def delete(self, storage_id):
        return False


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        log_file=str(tmp_path / "logs" / "app.log"),
        submission_log_file=str(tmp_path / "logs" / "submissions.log"),
        database=DatabaseConfig(backend="memory"),
        storage=StorageConfig(
            backend="local",
            local_dir=str(tmp_path / "audio"),
            public_base_url="/uploads/audio",
            retries=0,
        ),
        audio=AudioConfig(max_upload_bytes=64 * 1024),
        collection=CollectionConfig(quota=2),
    )


@pytest.fixture
def services(settings):
    return build_services(settings)


@pytest.fixture
def client(settings, services):
    app = create_app(settings, services=services)
    with TestClient(app) as test_client:
        yield test_client


async def _seed(services, *texts):
    return await services.repository.add_phrases(list(texts))


def seed(client, services, *texts):
    return client.portal.call(_seed, services, *texts)


def rejected_count(kind):
    return REGISTRY.get_sample_value("app_submissions_rejected_total", {"kind": kind}) or 0.0


def upload(client, phrase_id, wav, *, user_id="alice", filename="clip.wav", media_type="audio/wav"):
    return client.post(
        "/audios",
        data={"phrase_id": str(phrase_id), "user_id": user_id},
        files={"audio": (filename, wav, media_type)},
    )


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "operational"
    assert client.get("/health").json()["status"] == "healthy"


def test_next_phrase_is_empty_object_without_phrases(client):
    response = client.get("/phrases/next")

    assert response.status_code == 200
    assert response.json() == {}


def test_next_phrase_returns_phrase_under_quota(client, services):
    (phrase,) = seed(client, services, "Bonjour tout le monde.")

    response = client.get("/phrases/next")

    assert response.status_code == 200
    assert response.json() == {"id": phrase.id, "text": "Bonjour tout le monde.", "sample_count": 0}


def test_submission_flow_until_quota_is_reached(client, services, wav_factory):
    (phrase,) = seed(client, services, "Il fait beau.")
    wav = wav_factory(sample_rate=44100, channels=2)

    first = upload(client, phrase.id, wav, user_id="alice")
    second = upload(client, phrase.id, wav, user_id="bob")

    assert first.status_code == 200, first.text
    body = first.json()
    assert body["success"] is True
    assert body["audio_url"].startswith("/uploads/audio/")
    assert body["audio_url"].endswith(".wav")
    assert body["storage_id"] == body["audio_url"].rsplit("/", 1)[1]
    assert second.status_code == 200
    assert client.get("/phrases/next").json() == {}

    stored = client.get(body["audio_url"])
    assert stored.status_code == 200
    assert stored.content[:4] == b"RIFF"

    assert client.get("/stats/alice").json() == {"count": 1}
    assert client.get("/stats/nobody").json() == {"count": 0}


def test_octet_stream_upload_uses_filename_type(client, services, wav_factory):
    (phrase,) = seed(client, services, "Devine mon type.")

    response = upload(
        client, phrase.id, wav_factory(), filename="clip.wav", media_type="application/octet-stream"
    )

    assert response.status_code == 200, response.text


def test_text_upload_is_rejected_as_invalid_media(client, services):
    (phrase,) = seed(client, services, "Pas du son.")

    response = upload(client, phrase.id, b"hello", filename="notes.txt", media_type="text/plain")

    assert response.status_code == 400
    assert response.json()["code"] == "InvalidMedia"
    assert client.get("/stats/alice").json() == {"count": 0}


def test_oversized_upload_is_rejected_counted_and_logged(client, services, settings):
    (phrase,) = seed(client, services, "Trop long.")
    before = rejected_count("InvalidMedia")

    response = upload(client, phrase.id, b"\x00" * (64 * 1024 + 1))

    assert response.status_code == 413
    assert response.json()["code"] == "InvalidMedia"
    assert rejected_count("InvalidMedia") == before + 1
    submissions_log = Path(settings.submission_log_file).read_text()
    assert f"Submission rejected phrase={phrase.id} user=alice kind=InvalidMedia" in submissions_log


def test_corrupt_wav_is_unprocessable(client, services):
    (phrase,) = seed(client, services, "Fichier abîmé.")

    response = upload(client, phrase.id, b"definitely not a wav")

    assert response.status_code == 422
    assert response.json()["code"] == "NormalizationFailed"


def test_unknown_phrase_is_not_found(client, wav_factory):
    response = upload(client, 999, wav_factory())

    assert response.status_code == 404
    assert response.json()["code"] == "NotFound"


def test_missing_form_fields_fail_validation(client):
    response = client.post("/audios", data={"user_id": "alice"})

    assert response.status_code == 422


def test_storage_failure_maps_to_bad_gateway(settings, services, wav_factory):
    blob_store = BrokenBlobStore()
    recorder = SubmissionRecorder(
        services.repository,
        services.normalizer,
        blob_store,
        max_upload_bytes=settings.audio.max_upload_bytes,
    )
    services = replace(services, recorder=recorder, blob_store=blob_store)
    app = create_app(settings, services=services)

    with TestClient(app) as client:
        (phrase,) = seed(client, services, "Stockage en panne.")
        response = upload(client, phrase.id, wav_factory())

    assert response.status_code == 502
    assert response.json()["code"] == "StorageFailed"


def test_unavailable_repository_maps_to_service_unavailable(settings, services, monkeypatch):
    async def unreachable():
        raise RepositoryUnavailableError("Database unreachable")

    monkeypatch.setattr(services.repository, "next_available_phrase", unreachable)
    app = create_app(settings, services=services)

    with TestClient(app) as client:
        response = client.get("/phrases/next")

    assert response.status_code == 503
    assert response.json() == {"detail": "Database unreachable", "code": "Unavailable"}


def test_export_returns_xlsx_workbook_by_default(client, services, wav_factory):
    first, second = seed(client, services, "Première phrase.", "Seconde, avec virgule.")
    upload(client, second.id, wav_factory(), user_id="bob")
    upload(client, first.id, wav_factory(), user_id="alice")

    response = client.get("/export/audios")

    assert response.status_code == 200
    assert response.headers["content-type"] == XLSX_MEDIA_TYPE
    assert 'filename="audios_export.xlsx"' in response.headers["content-disposition"]
    workbook = load_workbook(io.BytesIO(response.content))
    assert workbook.sheetnames == ["Audios"]
    rows = list(workbook["Audios"].iter_rows(values_only=True))
    assert rows[0] == EXPORT_COLUMNS
    assert [(r[1], r[2]) for r in rows[1:]] == [
        ("Seconde, avec virgule.", "bob"),
        ("Première phrase.", "alice"),
    ]
    assert all(isinstance(r[4], datetime) for r in rows[1:])


def test_export_returns_csv_attachment_on_request(client, services, wav_factory):
    first, second = seed(client, services, "Première phrase.", "Seconde, avec virgule.")
    upload(client, second.id, wav_factory(), user_id="bob")
    upload(client, first.id, wav_factory(), user_id="alice")

    response = client.get("/export/audios", params={"format": "csv"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="audios_export.csv"' in response.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(response.text)))
    assert tuple(rows[0]) == EXPORT_COLUMNS
    assert [(r[1], r[2]) for r in rows[1:]] == [
        ("Seconde, avec virgule.", "bob"),
        ("Première phrase.", "alice"),
    ]



def test_export_rejects_unknown_format(client):
    assert client.get("/export/audios", params={"format": "pdf"}).status_code == 422

def test_metrics_endpoint_exposes_domain_counters(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "app_submissions_total" in response.text
    assert "app_phrase_pool_exhausted_total" in response.text


def test_status_for_error_prefers_most_specific_type():
    assert status_for_error(PayloadTooLargeError("big")) == 413
    assert status_for_error(InvalidMediaError("bad")) == 400


def test_openapi_documents_submission_errors(client):
    responses = client.get("/openapi.json").json()["paths"]["/audios"]["post"]["responses"]

    assert {"200", "400", "404", "413", "502", "503"} <= set(responses)
