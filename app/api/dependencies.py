"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from fastapi import Depends, File, HTTPException, UploadFile, status

from app.config import ImportSettings, get_import_settings

UPLOAD_EXTENSIONS = (".csv", ".tsv", ".txt", ".xlsx")

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

UPLOAD_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    # Windows browsers report .csv uploads as vnd.ms-excel.
    "application/vnd.ms-excel",
    "text/tab-separated-values",
    "text/plain",
    XLSX_CONTENT_TYPE,
}


def get_import_upload(
    file: UploadFile = File(...),
    settings: ImportSettings = Depends(get_import_settings),
) -> UploadFile:
    """
    Validate the uploaded import file by extension or MIME type, and size.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").split(";")[0].strip().lower()

    is_tabular_filename = filename.endswith(UPLOAD_EXTENSIONS)
    is_tabular_content_type = content_type in UPLOAD_CONTENT_TYPES

    if filename.endswith(".xls"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Legacy .xls workbooks are not supported. Save the sheet as .xlsx or .csv.",
        )
    if not is_tabular_filename and not is_tabular_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV, TSV or Excel (.xlsx) files are allowed.",
        )

    size = file.size
    if size is None:
        file.file.seek(0, 2)
        size = file.file.tell()
        file.file.seek(0)

    if size > settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the {settings.max_upload_bytes} byte upload limit.",
        )

    return file


def resolve_declared_format(file: UploadFile, declared_format: str | None) -> str:
    """
    Explicit ``format`` wins; otherwise the file extension or xlsx MIME type, defaulting to csv.
    """

    if declared_format:
        return declared_format
    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").split(";")[0].strip().lower()
    for extension, file_format in ((".tsv", "tsv"), (".xlsx", "xlsx"), (".csv", "csv")):
        if filename.endswith(extension):
            return file_format
    if content_type == XLSX_CONTENT_TYPE:
        return "xlsx"
    return "csv"
