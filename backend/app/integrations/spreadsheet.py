from __future__ import annotations

import io
import logging
import zipfile
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

logger = logging.getLogger(__name__)

SPREADSHEET_SUFFIXES = (".xlsx", ".xlsm")


def _cell_text(value: Any) -> str:
    """
    Registry cells are handed to the importer as text, dates as dd/mm/yyyy.
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.time() == time():
            return value.strftime("%d/%m/%Y")
        return value.strftime("%d/%m/%Y %H:%M:%S")
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def read_import_records(payload: bytes, *, filename: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    First worksheet of an .xlsx upload as a list of {header: text} rows.
    Row 1 holds the headers; fully blank rows are skipped.
    """
    if filename and not filename.lower().endswith(SPREADSHEET_SUFFIXES):
        raise HTTPException(400, "only Excel files (.xlsx) are accepted")
    if not payload:
        raise HTTPException(400, "uploaded file is empty")

    try:
        workbook = load_workbook(filename=io.BytesIO(payload), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
        raise HTTPException(400, f"could not read Excel file: {exc}") from exc

    try:
        if not workbook.worksheets:
            raise HTTPException(400, "Excel file has no worksheets")
        sheet = workbook.worksheets[0]

        rows = sheet.iter_rows(values_only=True)
        header_row = next(rows, None)
        if header_row is None:
            raise HTTPException(400, "no data found in Excel file")

        headers = [_cell_text(header) for header in header_row]

        records: List[Dict[str, Any]] = []
        for row in rows:
            record: Dict[str, Any] = {}
            for idx, header in enumerate(headers):
                if not header:
                    continue
                record[header] = _cell_text(row[idx]) if idx < len(row) else ""
            if any(value.strip() for value in record.values()):
                records.append(record)
    finally:
        workbook.close()

    if not records:
        raise HTTPException(400, "no data found in Excel file")

    logger.info("Read %s rows from sheet %r", len(records), sheet.title)
    return records
