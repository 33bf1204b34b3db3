"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from app.application.interfaces import PhraseRepositoryInterface
from app.config.dependencies import AppServices
from app.services.export import ExportReporter
from app.services.submission_recorder import SubmissionRecorder


def get_services(request: Request) -> AppServices:
    """Return the collaborators built once at application startup."""

    return request.app.state.services


ServicesDep = Annotated[AppServices, Depends(get_services)]


def get_repository(services: ServicesDep) -> PhraseRepositoryInterface:
    return services.repository


def get_recorder(services: ServicesDep) -> SubmissionRecorder:
    return services.recorder


def get_reporter(services: ServicesDep) -> ExportReporter:
    return services.reporter


RepositoryDep = Annotated[PhraseRepositoryInterface, Depends(get_repository)]
RecorderDep = Annotated[SubmissionRecorder, Depends(get_recorder)]
ReporterDep = Annotated[ExportReporter, Depends(get_reporter)]


__all__ = [
    "get_services",
    "get_repository",
    "get_recorder",
    "get_reporter",
    "ServicesDep",
    "RepositoryDep",
    "RecorderDep",
    "ReporterDep",
]
