"""Decode uploaded spreadsheets into headers and rows of cells."""

import csv
import io
import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Union

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from .errors import UnreadableFile

logger = logging.getLogger("fleet.spreadsheet")

EXCEL_SUFFIXES = (".xlsx", ".xlsm")
CSV_SUFFIXES = (".csv",)


@dataclass
class Sheet:
    """Header row plus data rows keyed by header text."""

    headers: List[str] = field(default_factory=list)
    rows: List[Dict[str, Any]] = field(default_factory=list)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _build_sheet(header_cells: List[Any], data_rows: List[List[Any]]) -> Sheet:
    headers = [str(h).strip() if h is not None else "" for h in header_cells]
    rows = []
    for values in data_rows:
        if all(_is_blank(v) for v in values):
            continue
        row = {}
        for header, value in zip(headers, values):
            if header:
                row[header] = value
        rows.append(row)
    return Sheet(headers=[h for h in headers if h], rows=rows)


def read_excel(source: Union[str, Path, BinaryIO]) -> Sheet:
    """Read the first worksheet of an .xlsx workbook."""
    try:
        workbook = openpyxl.load_workbook(source, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        raise UnreadableFile(getattr(source, "name", source), str(e)) from e

    try:
        sheet = workbook.worksheets[0]
        values = [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()

    if not values:
        return Sheet()
    return _build_sheet(values[0], values[1:])


def read_csv(source: Union[str, Path, BinaryIO]) -> Sheet:
    """Read a comma-separated file with a header row."""
    try:
        if isinstance(source, (str, Path)):
            with open(source, newline="", encoding="utf-8-sig") as fp:
                values = list(csv.reader(fp))
        else:
            text = io.TextIOWrapper(source, encoding="utf-8-sig", newline="")
            values = list(csv.reader(text))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise UnreadableFile(getattr(source, "name", source), str(e)) from e

    if not values:
        return Sheet()
    return _build_sheet(values[0], values[1:])


def read_sheet(
    source: Union[str, Path, BinaryIO], filename: Optional[str] = None
) -> Sheet:
    """
    Decode a spreadsheet by file extension.

    Args:
        source: Path or binary file object
        filename: Name used to pick the format when source is a file object
    """
    name = filename or str(getattr(source, "name", source))
    suffix = Path(name).suffix.lower()

    if suffix in EXCEL_SUFFIXES:
        sheet = read_excel(source)
    elif suffix in CSV_SUFFIXES:
        sheet = read_csv(source)
    else:
        raise UnreadableFile(name, f"unsupported file type '{suffix or name}'")

    logger.info(
        "Read %s: %d headers, %d rows", name, len(sheet.headers), len(sheet.rows)
    )
    return sheet
