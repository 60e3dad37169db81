"""
app/parsers/row_parser.py

Streaming reader that turns uploaded tabular bytes into RawRow objects.

Text files (csv, tsv) are decoded and read line by line. Excel workbooks
(xlsx) are read from their first worksheet with openpyxl in read-only mode.
"""

from __future__ import annotations

import csv
import io
import zipfile
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, BinaryIO, Union

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from app.domain.errors import FormatError
from app.domain.import_records import RawRow

DELIMITERS: dict[str, str] = {
    "csv": ",",
    "tsv": "\t",
}

SUPPORTED_FORMATS: tuple[str, ...] = (*DELIMITERS, "xlsx")

TEMPLATE_SHEET_TITLE = "Import"

FileSource = Union[bytes, bytearray, BinaryIO]


@dataclass
class ParsedFile:
    """
    Header of an opened file plus the lazy, single-pass row iterator.
    """

    headers: tuple[str, ...]
    rows: Iterator[RawRow]


def normalize_format(declared_format: str | None) -> str:
    """
    Map a declared format or file extension (".csv", "XLSX") to a known key.
    """

    value = (declared_format or "csv").strip().lower().lstrip(".")
    if value not in SUPPORTED_FORMATS:
        allowed = ", ".join(sorted(SUPPORTED_FORMATS))
        raise FormatError(
            "unsupported_format",
            f"Unsupported file format '{value}'. Allowed formats: {allowed}.",
        )
    return value


def parse_rows(source: FileSource, declared_format: str | None = "csv") -> ParsedFile:
    """
    Open ``source`` and read its header row.

    The header is read eagerly so empty or structurally broken files fail
    here; data rows are read lazily from the returned iterator. Decode and
    csv errors raised while iterating are re-raised as FormatError.
    """

    file_format = normalize_format(declared_format)
    if file_format == "xlsx":
        return _parse_workbook(source)

    delimiter = DELIMITERS[file_format]
    raw_stream = io.BytesIO(bytes(source)) if isinstance(source, (bytes, bytearray)) else source
    text_stream = io.TextIOWrapper(raw_stream, encoding="utf-8-sig", newline="")
    reader = csv.reader(text_stream, delimiter=delimiter)

    try:
        header_cells = _read_header(reader)
        headers = _validate_header(header_cells)
    except Exception:
        _release(text_stream)
        raise

    return ParsedFile(headers=headers, rows=_iter_rows(text_stream, reader, headers))


def write_rows(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]] = (),
    declared_format: str | None = "csv",
) -> bytes:
    """
    Serialize a header row and optional data rows in the declared format.
    """

    file_format = normalize_format(declared_format)
    if file_format == "xlsx":
        return _write_workbook(headers, rows)

    delimiter = DELIMITERS[file_format]
    buffer = io.StringIO(newline="")
    writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\r\n")
    writer.writerow(list(headers))
    for row in rows:
        writer.writerow(list(row))
    return buffer.getvalue().encode("utf-8")


def _read_header(reader: Any) -> list[str]:
    try:
        for cells in reader:
            if _is_blank_line(cells):
                continue
            return cells
    except UnicodeDecodeError as exc:
        raise FormatError("encoding", "File must be UTF-8 encoded.") from exc
    except csv.Error as exc:
        raise FormatError("malformed", f"Invalid file format: {exc}") from exc

    raise FormatError("empty", "File is empty.")


def _validate_header(cells: list[str]) -> tuple[str, ...]:
    headers = tuple(cell.strip() for cell in cells)
    if any(not header for header in headers):
        raise FormatError("missing_header", "Header row contains a blank column name.")

    seen: set[str] = set()
    duplicates: list[str] = []
    for header in headers:
        if header in seen and header not in duplicates:
            duplicates.append(header)
        seen.add(header)
    if duplicates:
        raise FormatError(
            "duplicate_header",
            f"Header row repeats column(s): {', '.join(duplicates)}.",
        )
    return headers


def _iter_rows(
    text_stream: io.TextIOWrapper,
    reader: Any,
    headers: tuple[str, ...],
) -> Iterator[RawRow]:
    expected = len(headers)
    row_number = 0
    previous_line = reader.line_num
    try:
        for cells in reader:
            start_line = previous_line + 1
            previous_line = reader.line_num
            if _is_blank_line(cells):
                continue

            row_number += 1
            padded = list(cells[:expected]) + [""] * max(0, expected - len(cells))
            yield RawRow(
                row_number=row_number,
                line_number=start_line,
                values=dict(zip(headers, padded)),
                expected_columns=expected,
                actual_columns=len(cells),
            )
    except UnicodeDecodeError as exc:
        raise FormatError("encoding", "File must be UTF-8 encoded.") from exc
    except csv.Error as exc:
        raise FormatError("malformed", f"Invalid file format near line {reader.line_num}: {exc}") from exc
    finally:
        _release(text_stream)


def _is_blank_line(cells: list[str]) -> bool:
    # A physical line with no delimiters at all; ",,," is a row, not a blank line.
    return len(cells) <= 1 and all(not cell.strip() for cell in cells)


def _release(text_stream: io.TextIOWrapper) -> None:
    # Detach so the caller's binary stream is left open.
    try:
        text_stream.detach()
    except ValueError:
        pass


def _parse_workbook(source: FileSource) -> ParsedFile:
    # Workbooks are zip archives that need random access, so the upload is read whole.
    content = bytes(source) if isinstance(source, (bytes, bytearray)) else source.read()
    if not content.strip():
        raise FormatError("empty", "File is empty.")

    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise FormatError("malformed", f"Could not read workbook: {exc}") from exc

    try:
        worksheet = workbook.active
        if worksheet is None:
            raise FormatError("empty", "Workbook has no worksheet.")
        sheet_rows = enumerate(worksheet.iter_rows(values_only=True), start=1)
        headers = _validate_header(_read_workbook_header(sheet_rows))
    except Exception:
        workbook.close()
        raise

    return ParsedFile(headers=headers, rows=_iter_workbook_rows(workbook, sheet_rows, headers))


def _read_workbook_header(sheet_rows: Iterator[tuple[int, tuple[Any, ...]]]) -> list[str]:
    for _, values in sheet_rows:
        cells = _workbook_cells(values)
        if cells:
            return cells
    raise FormatError("empty", "File is empty.")


def _iter_workbook_rows(
    workbook: Any,
    sheet_rows: Iterator[tuple[int, tuple[Any, ...]]],
    headers: tuple[str, ...],
) -> Iterator[RawRow]:
    expected = len(headers)
    row_number = 0
    try:
        for line_number, values in sheet_rows:
            cells = _workbook_cells(values)
            if not cells:
                continue

            row_number += 1
            padded = cells[:expected] + [""] * max(0, expected - len(cells))
            yield RawRow(
                row_number=row_number,
                line_number=line_number,
                values=dict(zip(headers, padded)),
                expected_columns=expected,
                # Empty trailing cells are not columns in a worksheet.
                actual_columns=max(expected, len(cells)),
            )
    except (zipfile.BadZipFile, KeyError) as exc:
        raise FormatError("malformed", f"Invalid workbook near row {row_number + 1}: {exc}") from exc
    finally:
        workbook.close()


def _workbook_cells(values: Iterable[Any]) -> list[str]:
    """
    Render one worksheet row as CSV-like strings, trailing blanks removed.

    An empty list means the row is blank.
    """

    cells = [_cell_text(value) for value in values]
    while cells and not cells[-1].strip():
        cells.pop()
    return cells


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        if value.time() == time.min:
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    # Phones and whole amounts come back as floats when typed into Excel.
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _write_workbook(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> bytes:
    workbook = Workbook(write_only=True)
    worksheet = workbook.create_sheet(title=TEMPLATE_SHEET_TITLE)
    worksheet.append(list(headers))
    for row in rows:
        worksheet.append(list(row))

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
