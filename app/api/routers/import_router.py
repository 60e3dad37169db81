"""
app/api/routers/import_router.py

Customer and order import HTTP endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Response, UploadFile, status

from app.api.dependencies import XLSX_CONTENT_TYPE, get_import_upload, resolve_declared_format
from app.domain.errors import FormatError
from app.domain.import_records import ImportOptions, ImportTarget
from app.parsers.row_parser import normalize_format
from app.repositories.import_store import StoreUnavailableError
from app.schemas.import_pipeline import DataEnvelope, ImportResultResponse, ValidationResultResponse
from app.services.import_session import ImportSession, get_import_session

router = APIRouter(prefix="/api/import", tags=["import"])

TEMPLATE_MEDIA_TYPES = {
    "csv": "text/csv",
    "tsv": "text/tab-separated-values",
    "xlsx": XLSX_CONTENT_TYPE,
}


@router.post("/validate", response_model=DataEnvelope[ValidationResultResponse])
def validate_import(
    file: UploadFile = Depends(get_import_upload),
    import_target: ImportTarget = Query(..., alias="importTarget"),
    declared_format: str | None = Query(default=None, alias="format"),
    import_session: ImportSession = Depends(get_import_session),
) -> DataEnvelope[ValidationResultResponse]:
    """
    Validate an uploaded file without writing anything.
    """

    try:
        result = import_session.validate(
            file.file,
            target=import_target,
            declared_format=resolve_declared_format(file, declared_format),
        )
    except FormatError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc
    finally:
        file.file.close()

    return DataEnvelope[ValidationResultResponse](data=ValidationResultResponse.from_domain(result))


@router.post("/execute", response_model=DataEnvelope[ImportResultResponse])
def execute_import(
    file: UploadFile = Depends(get_import_upload),
    import_target: ImportTarget = Query(..., alias="importTarget"),
    declared_format: str | None = Query(default=None, alias="format"),
    skip_duplicates: bool = Form(default=True, alias="skipDuplicates"),
    batch_size: int = Form(default=100, ge=1, alias="batchSize"),
    import_session: ImportSession = Depends(get_import_session),
) -> DataEnvelope[ImportResultResponse]:
    """
    Validate and commit an uploaded file in batches.
    """

    try:
        options = ImportOptions(skip_duplicates=skip_duplicates, batch_size=batch_size)
        result = import_session.execute(
            file.file,
            target=import_target,
            options=options,
            declared_format=resolve_declared_format(file, declared_format),
        )
    except FormatError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc
    except StoreUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Import store is unavailable. No further batches were written.",
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    finally:
        file.file.close()

    return DataEnvelope[ImportResultResponse](data=ImportResultResponse.from_domain(result))


@router.get("/template")
def download_template(
    import_target: ImportTarget = Query(..., alias="importTarget"),
    include_sample: bool = Query(default=False, alias="includeSample"),
    declared_format: str = Query(default="csv", alias="format"),
    import_session: ImportSession = Depends(get_import_session),
) -> Response:
    """
    Download a blank import file with the expected header row.
    """

    try:
        file_format = normalize_format(declared_format)
    except FormatError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc

    content = import_session.template(
        import_target,
        include_sample=include_sample,
        declared_format=file_format,
    )
    media_type = TEMPLATE_MEDIA_TYPES[file_format]
    filename = f"{import_target.value}_import_template.{file_format}"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
