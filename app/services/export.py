"""Tabular export of every submission joined with its phrase text."""

from __future__ import annotations

import csv
import io
from datetime import datetime, timezone
from typing import Optional, Sequence

from openpyxl import Workbook

from app.application.interfaces import PhraseRepositoryInterface
from app.domain.models import ExportRow

EXPORT_COLUMNS = ("id", "phrase", "user_id", "audio_url", "created_at")
EXPORT_BASENAME = "audios_export"
EXPORT_SHEET_TITLE = "Audios"

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Excel cells carry no timezone.
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def rows_to_csv(rows: Sequence[ExportRow]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)
    for row in rows:
        created_at = _naive_utc(row.created_at)
        writer.writerow(
            [
                row.id,
                row.phrase,
                row.user_id,
                row.audio_url,
                created_at.isoformat(sep=" ", timespec="seconds") if created_at else "",
            ]
        )
    return buffer.getvalue()


def rows_to_xlsx(rows: Sequence[ExportRow]) -> bytes:
    """Render the rows as a single-sheet workbook, header first."""

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = EXPORT_SHEET_TITLE
    sheet.append(EXPORT_COLUMNS)
    for row in rows:
        sheet.append(
            [row.id, row.phrase, row.user_id, row.audio_url, _naive_utc(row.created_at)]
        )

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class ExportReporter:
    """Read-only snapshot of collected audio metadata."""

    def __init__(self, repository: PhraseRepositoryInterface) -> None:
        self._repository = repository

    async def build_xlsx(self) -> bytes:
        rows = await self._repository.export_rows()
        return rows_to_xlsx(rows)

    async def build_csv(self) -> str:
        rows = await self._repository.export_rows()
        return rows_to_csv(rows)


__all__ = [
    "CSV_MEDIA_TYPE",
    "EXPORT_BASENAME",
    "EXPORT_COLUMNS",
    "EXPORT_SHEET_TITLE",
    "ExportReporter",
    "XLSX_MEDIA_TYPE",
    "rows_to_csv",
    "rows_to_xlsx",
]
