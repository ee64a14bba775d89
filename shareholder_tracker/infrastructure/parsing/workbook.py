"""Workbook reader turning uploaded spreadsheet bytes into raw rows."""
from __future__ import annotations

from io import BytesIO
from pathlib import Path
import logging

import pandas as pd

from shareholder_tracker.domain.errors import ParseError, ParseErrorReason
from shareholder_tracker.domain.repositories import RawWorkbook

logger = logging.getLogger(__name__)

_OLE_MAGIC = b"\xd0\xcf\x11\xe0"


def _engine_for(data: bytes, file_name: str) -> str | None:
    suffix = Path(file_name).suffix.lower()
    if suffix == ".csv":
        return None
    if data.startswith(_OLE_MAGIC) or suffix == ".xls":
        return "xlrd"
    return "openpyxl"


def _list_sheets(data: bytes, engine: str) -> list[str]:
    xls = pd.ExcelFile(BytesIO(data), engine=engine)
    return xls.sheet_names


def _pick_sheet(sheets: list[str], preferred: str | None) -> str:
    if not sheets:
        raise ValueError("Workbook has no sheets")
    if not preferred:
        return sheets[0]
    if preferred in sheets:
        return preferred
    lower_map = {name.lower(): name for name in sheets}
    if preferred.lower() in lower_map:
        return lower_map[preferred.lower()]
    for name in sheets:
        if preferred.lower() in name.lower():
            return name
    return sheets[0]


def read_workbook(data: bytes, file_name: str = "", sheet: str | None = None) -> RawWorkbook:
    """Read the first (or named) sheet as string cells.

    Any failure to open or decode the payload surfaces as
    ``ParseError(UNREADABLE_WORKBOOK)``.
    """
    engine = _engine_for(data, file_name)
    try:
        if engine is None:
            frame = pd.read_csv(BytesIO(data), dtype=str, keep_default_na=False)
            sheet_name = Path(file_name).stem
        else:
            sheet_name = _pick_sheet(_list_sheets(data, engine), sheet)
            frame = pd.read_excel(
                BytesIO(data),
                sheet_name=sheet_name,
                engine=engine,
                dtype=str,
                keep_default_na=False,
            )
    except Exception as exc:  # engines raise their own private error types
        raise ParseError(ParseErrorReason.UNREADABLE_WORKBOOK, f"{type(exc).__name__}: {exc}") from exc

    headers = [str(column).strip() for column in frame.columns]
    frame.columns = headers
    rows = frame.to_dict(orient="records")
    logger.debug("Read %d rows from sheet %r of %s", len(rows), sheet_name, file_name or "<upload>")
    return RawWorkbook(headers=headers, rows=rows, sheet_name=str(sheet_name))
