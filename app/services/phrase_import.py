"""Seed the phrase catalog from a JSON list of ``{"phrase": ...}`` items."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

from app.application.interfaces import PhraseRepositoryInterface

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 100
MAX_PHRASE_LENGTH = 255


@dataclass(frozen=True)
class ImportReport:
    """Counts produced by one import run."""

    inserted: int = 0
    skipped: int = 0
    invalid: int = 0
    aborted: bool = False


def load_phrase_file(path: str | Path) -> list[Mapping[str, Any]]:
    with Path(path).open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, list):
        raise ValueError(f"{path} must contain a JSON array of phrase objects")
    return payload


def _phrase_text(item: Any) -> str | None:
    value = item.get("phrase") if isinstance(item, Mapping) else None
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text or len(text) > MAX_PHRASE_LENGTH:
        return None
    return text


async def import_phrases(
    repository: PhraseRepositoryInterface,
    items: Iterable[Any],
    *,
    force: bool = False,
) -> ImportReport:
    """Insert phrases whose text is not already in the catalog.

    When the catalog is non-empty and ``force`` is false nothing is imported.
    Duplicates, both against the catalog and within ``items``, are skipped.
    """

    existing_count = await repository.count_phrases()
    if existing_count and not force:
        logger.info(
            "%d phrases already exist; set FORCE_IMPORT=true to import anyway.",
            existing_count,
        )
        return ImportReport(aborted=True)

    known = await repository.phrase_texts()
    inserted = skipped = invalid = 0
    for item in items:
        text = _phrase_text(item)
        if text is None:
            invalid += 1
            logger.warning("Ignoring malformed phrase entry: %r", item)
            continue
        if text in known:
            skipped += 1
            continue

        await repository.add_phrases([text])
        known.add(text)
        inserted += 1
        if inserted % PROGRESS_EVERY == 0:
            logger.info("%d phrases inserted...", inserted)

    logger.info(
        "Import finished: %d inserted, %d skipped (already present), %d invalid.",
        inserted,
        skipped,
        invalid,
    )
    return ImportReport(inserted=inserted, skipped=skipped, invalid=invalid)


__all__ = ["ImportReport", "import_phrases", "load_phrase_file"]
