"""Snapshot normalizer producing canonical share records from a raw workbook."""
from __future__ import annotations

from datetime import date
from io import BytesIO
from pathlib import Path
from typing import Any, Mapping, Sequence
import logging

from shareholder_tracker.domain.errors import ParseError, ParseErrorReason
from shareholder_tracker.domain.identity import fund_group, normalize_category, normalize_pan
from shareholder_tracker.domain.models import ParsedSnapshot, ShareRecord
from shareholder_tracker.domain.repositories import RawWorkbook, WorkbookReader
from shareholder_tracker.infrastructure.parsing.utils import (
    clean_cell,
    compute_file_hash,
    ensure_bytes,
    find_shares_header,
    parse_date_text,
    parse_shares,
)
from shareholder_tracker.infrastructure.parsing.workbook import read_workbook

logger = logging.getLogger(__name__)

NAME_COLUMNS = ["NAME", "Name", "SHAREHOLDER NAME", "Shareholder Name"]
CATEGORY_COLUMNS = ["CATEGORY", "Category", "CATEGORY CODE", "CAT", "TYPE"]
DESCRIPTION_COLUMNS = ["DESCRIPTION", "Description", "CATEGORY DESCRIPTION"]
PAN_COLUMNS = ["PAN", "Pan", "PAN NO", "PAN NUMBER"]


def _first_value(row: Mapping[str, Any], columns: Sequence[str]) -> str:
    for column in columns:
        value = clean_cell(row.get(column))
        if value:
            return value
    return ""


def row_to_record(
    row: Mapping[str, Any],
    row_index: int,
    shares_column: str,
    category_map: Mapping[str, str] | None = None,
) -> ShareRecord:
    """Map one raw row onto a ``ShareRecord``; defects become defaults, never errors."""
    name = _first_value(row, NAME_COLUMNS) or f"Unknown-{row_index}"
    category = _first_value(row, CATEGORY_COLUMNS) or "Unknown"
    if category_map:
        category = normalize_category(category, category_map) or "Unknown"
    return ShareRecord(
        name=name,
        shares=parse_shares(row.get(shares_column)),
        category=category,
        description=_first_value(row, DESCRIPTION_COLUMNS),
        fund_group=fund_group(name),
        pan=normalize_pan(_first_value(row, PAN_COLUMNS)),
        row_index=row_index,
    )


def consolidate_records(records: Sequence[ShareRecord]) -> list[ShareRecord]:
    """Fold rows that share a canonical key into one record.

    A holder with several demat accounts appears once per account; their
    shares are summed, the longest spelling of the name is kept, and the
    first non-empty category and description win.
    """
    merged: dict[str, ShareRecord] = {}
    for record in records:
        key = record.canonical_key
        current = merged.get(key)
        if current is None:
            merged[key] = record
            continue
        name = record.name if len(record.name) > len(current.name) else current.name
        category = current.category if current.category != "Unknown" else record.category
        merged[key] = ShareRecord(
            name=name,
            shares=current.shares + record.shares,
            category=category,
            description=current.description or record.description,
            fund_group=fund_group(name),
            pan=current.pan,
            row_index=current.row_index,
        )
    return list(merged.values())


def normalize_workbook(
    workbook: RawWorkbook,
    file_name: str = "",
    category_map: Mapping[str, str] | None = None,
    today: date | None = None,
) -> ParsedSnapshot:
    found = find_shares_header(list(workbook.headers))
    if found is None:
        raise ParseError(
            ParseErrorReason.NO_DATE_HEADER,
            f"no 'SHARES AS ON <date>' column in {file_name or 'upload'}",
        )
    shares_column, date_text = found
    date_key = parse_date_text(date_text, today=today)

    records = [
        row_to_record(row, idx, shares_column, category_map)
        for idx, row in enumerate(workbook.rows)
    ]
    consolidated = consolidate_records(records)
    logger.info(
        "Processed %s for %s: %d rows, %d holders",
        file_name or "upload", date_key, len(records), len(consolidated),
    )
    return ParsedSnapshot(
        date_key=date_key,
        records=tuple(consolidated),
        file_name=file_name,
        header_text=shares_column,
    )


def parse_snapshot(
    source: BytesIO | Path | bytes | str,
    file_name: str | None = None,
    category_map: Mapping[str, str] | None = None,
    reader: WorkbookReader = read_workbook,
    today: date | None = None,
    sheet: str | None = None,
) -> ParsedSnapshot:
    """Read and normalize one uploaded workbook.

    ``sheet`` picks a worksheet by exact, case-insensitive or partial name;
    the first sheet is used when it is unset or nothing matches.
    """
    if file_name is None:
        file_name = Path(source).name if isinstance(source, (Path, str)) else ""
    try:
        raw_bytes = ensure_bytes(source)
    except OSError as exc:
        raise ParseError(ParseErrorReason.UNREADABLE_WORKBOOK, str(exc)) from exc
    workbook = reader(raw_bytes, file_name, sheet=sheet)
    parsed = normalize_workbook(workbook, file_name=file_name, category_map=category_map, today=today)
    return ParsedSnapshot(
        date_key=parsed.date_key,
        records=parsed.records,
        file_name=parsed.file_name,
        file_hash=compute_file_hash(raw_bytes),
        header_text=parsed.header_text,
    )


def to_bulk_rows(snapshot: ParsedSnapshot) -> list[dict[str, Any]]:
    """Rows for the legacy replace-by-date bulk load endpoint."""
    return [
        {
            "date": snapshot.date_key,
            "name": record.name,
            "category": record.category,
            "shares": record.shares,
            "pan": record.pan,
        }
        for record in snapshot.records
    ]
