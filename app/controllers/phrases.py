"""Phrase distribution endpoint."""

import logging
from typing import Any

from fastapi import APIRouter

from app.controllers.dependencies import RepositoryDep
from app.telemetry import increment_pool_exhausted
from app.views import PhraseRead

router = APIRouter(prefix="/phrases", tags=["phrases"])

logger = logging.getLogger(__name__)


@router.get("/next")
async def next_phrase(repository: RepositoryDep) -> dict[str, Any]:
    """Return a random phrase still under quota, or ``{}`` once every phrase is full."""

    phrase = await repository.next_available_phrase()
    if phrase is None:
        increment_pool_exhausted()
        logger.info("No phrase left under quota")
        return {}
    return PhraseRead.model_validate(phrase).model_dump()
