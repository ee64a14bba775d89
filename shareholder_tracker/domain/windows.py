"""Time-window presets and snapshot boundary resolution for rankings."""
from __future__ import annotations

import bisect
import calendar
import datetime as dt
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


class WindowPreset(str, Enum):
    LAST_7_DAYS = "7D"
    LAST_MONTH = "1M"
    LAST_3_MONTHS = "3M"
    LAST_6_MONTHS = "6M"
    YEAR_TO_DATE = "YTD"
    LAST_YEAR = "1Y"
    QUARTER = "QUARTER"
    CUSTOM = "CUSTOM"
    ALL = "ALL"


def _shift_months(day: dt.date, months: int) -> dt.date:
    month_index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return dt.date(year, month, min(day.day, last_day))


@dataclass
class TimeWindow:
    """A requested ranking window, resolved relative to the latest snapshot."""
    preset: WindowPreset = WindowPreset.ALL
    year: Optional[int] = None
    quarter: Optional[int] = None        # 1-4
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None

    def resolve(self, latest: dt.date) -> tuple[Optional[dt.date], Optional[dt.date]]:
        """Return the requested (start, end); ``None`` means unbounded."""
        if self.preset == WindowPreset.ALL:
            return None, None
        if self.preset == WindowPreset.CUSTOM:
            return self.start_date, self.end_date
        if self.preset == WindowPreset.QUARTER:
            year = self.year or latest.year
            quarter = self.quarter or ((latest.month - 1) // 3 + 1)
            start_month = (quarter - 1) * 3 + 1
            end_month = start_month + 2
            end = dt.date(year, end_month, calendar.monthrange(year, end_month)[1])
            return dt.date(year, start_month, 1), end
        if self.preset == WindowPreset.LAST_7_DAYS:
            return latest - dt.timedelta(days=7), latest
        if self.preset == WindowPreset.LAST_MONTH:
            return _shift_months(latest, -1), latest
        if self.preset == WindowPreset.LAST_3_MONTHS:
            return _shift_months(latest, -3), latest
        if self.preset == WindowPreset.LAST_6_MONTHS:
            return _shift_months(latest, -6), latest
        if self.preset == WindowPreset.YEAR_TO_DATE:
            return dt.date(latest.year, 1, 1), latest
        if self.preset == WindowPreset.LAST_YEAR:
            return _shift_months(latest, -12), latest
        return None, None

    @property
    def label(self) -> str:
        if self.preset == WindowPreset.ALL:
            return "All Time"
        if self.preset == WindowPreset.QUARTER:
            if self.year and self.quarter:
                return f"Q{self.quarter} {self.year}"
            return "Latest Quarter"
        if self.preset == WindowPreset.CUSTOM:
            s = self.start_date.isoformat() if self.start_date else "?"
            e = self.end_date.isoformat() if self.end_date else "?"
            return f"{s} to {e}"
        return self.preset.value


def resolve_start(date_keys: Sequence[str], requested: str) -> str | None:
    """First available date key on or after ``requested``."""
    keys = sorted(date_keys)
    idx = bisect.bisect_left(keys, requested)
    return keys[idx] if idx < len(keys) else None


def resolve_end(date_keys: Sequence[str], requested: str) -> str | None:
    """Last available date key on or before ``requested``."""
    keys = sorted(date_keys)
    idx = bisect.bisect_right(keys, requested)
    return keys[idx - 1] if idx > 0 else None


def resolve_boundaries(
    date_keys: Sequence[str], window: TimeWindow
) -> tuple[str, str] | None:
    """Map a window onto snapshot dates, or ``None`` when it cannot be ranked.

    A window whose resolved start falls after its resolved end contains no
    snapshot pair and is treated as unresolved too.
    """
    keys = sorted(date_keys)
    if not keys:
        return None
    latest = dt.date.fromisoformat(keys[-1])
    start, end = window.resolve(latest)
    start_key = keys[0] if start is None else resolve_start(keys, start.isoformat())
    end_key = keys[-1] if end is None else resolve_end(keys, end.isoformat())
    if start_key is None or end_key is None or start_key > end_key:
        logger.debug("Window %s does not resolve against %d snapshot dates", window.label, len(keys))
        return None
    logger.debug("Window %s resolved to %s .. %s", window.label, start_key, end_key)
    return start_key, end_key
