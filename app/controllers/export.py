"""Administrative export of collected audio metadata."""

from typing import Annotated, Literal

from fastapi import APIRouter, Query
from fastapi.responses import Response

from app.controllers.dependencies import ReporterDep
from app.services.export import CSV_MEDIA_TYPE, EXPORT_BASENAME, XLSX_MEDIA_TYPE

router = APIRouter(prefix="/export", tags=["export"])

FormatQuery = Annotated[
    Literal["xlsx", "csv"],
    Query(alias="format", description="Spreadsheet (xlsx) or plain CSV"),
]


@router.get("/audios", response_class=Response)
async def export_audios(reporter: ReporterDep, export_format: FormatQuery = "xlsx") -> Response:
    """Download every submission with its phrase text as a spreadsheet."""

    if export_format == "csv":
        content = await reporter.build_csv()
        media_type = CSV_MEDIA_TYPE
    else:
        content = await reporter.build_xlsx()
        media_type = XLSX_MEDIA_TYPE
    filename = f"{EXPORT_BASENAME}.{export_format}"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
