"""Shared parsing utilities for snapshot workbooks."""
from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from io import BytesIO
from pathlib import Path
import calendar
import hashlib
import logging
import re

import pandas as pd

logger = logging.getLogger(__name__)


def ensure_bytes(source: BytesIO | Path | bytes | str) -> bytes:
    if isinstance(source, bytes):
        return source
    if isinstance(source, BytesIO):
        return source.getvalue()
    if isinstance(source, (Path, str)):
        return Path(source).read_bytes()
    raise TypeError(f"Unsupported source type: {type(source)!r}")


def compute_file_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def parse_shares(value: object) -> int | float:
    """Parse a share count, stripping thousands separators; 0 when unusable."""
    if value is None:
        return 0
    s = str(value).strip()
    if not s or s.upper() == "NAN":
        return 0
    s = s.replace(",", "").replace(" ", "")
    try:
        result = Decimal(s)
    except InvalidOperation:
        return 0
    if not result.is_finite():
        return 0
    if result == result.to_integral_value():
        return int(result)
    return float(result)


def clean_cell(value: object) -> str:
    if value is None:
        return ""
    s = str(value).strip()
    if s.upper() == "NAN":
        return ""
    return s


SHARES_HEADER = re.compile(r"^\s*SHARES\s+(?:AS\s+)?ON\s+(?P<text>.+?)\s*$", re.IGNORECASE)
_ORDINAL = re.compile(r"\b(\d{1,2})(st|nd|rd|th)\b", re.IGNORECASE)
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTHS = [name.lower() for name in calendar.month_name[1:]]


def find_shares_header(headers: list[str]) -> tuple[str, str] | None:
    """Return ``(header, date text)`` for the first "SHARES AS ON ..." header."""
    for header in headers:
        match = SHARES_HEADER.match(str(header))
        if match:
            return str(header), match.group("text")
    return None


def _direct_parse(text: str) -> date | None:
    if _ISO_DATE.match(text):
        try:
            return date.fromisoformat(text)
        except ValueError:
            return None
    try:
        parsed = pd.to_datetime(text, errors="coerce", dayfirst=True)
    except (ValueError, OverflowError, TypeError):
        return None
    if pd.isna(parsed):
        return None
    return parsed.date()


def _token_parse(text: str, today: date) -> date | None:
    tokens = [token.strip(",.-/") for token in text.split()]
    month = day = year = None
    for token in tokens:
        lowered = token.lower()
        if month is None and len(lowered) >= 3 and lowered.isalpha():
            for idx, name in enumerate(_MONTHS, start=1):
                if name.startswith(lowered[:3]):
                    month = idx
                    break
        elif day is None and re.fullmatch(r"\d{1,2}", token):
            day = int(token)
        elif year is None and re.fullmatch(r"\d{4}", token):
            year = int(token)
    if month is None or day is None:
        return None
    try:
        return date(year or today.year, month, day)
    except ValueError:
        return None


def parse_date_text(text: str, today: date | None = None) -> str:
    """Turn header date text into an ISO ``yyyy-mm-dd`` key.

    Lenient on purpose: ordinal suffixes are dropped, a direct parse is
    tried, then a month-name/day/year token scan, and the current date is
    used when nothing matches.
    """
    today = today or date.today()
    cleaned = _ORDINAL.sub(r"\1", str(text)).strip()
    parsed = _direct_parse(cleaned) if cleaned else None
    if parsed is None:
        parsed = _token_parse(cleaned, today)
    if parsed is None:
        logger.warning("Could not read a date from %r; using %s", text, today.isoformat())
        parsed = today
    return parsed.isoformat()
