from datetime import date

import pytest

from shareholder_tracker.domain.windows import (
    TimeWindow,
    WindowPreset,
    resolve_boundaries,
    resolve_end,
    resolve_start,
)

DATES = ["2024-01-31", "2024-03-31", "2024-06-30"]


def test_start_and_end_resolve_in_opposite_directions():
    keys = ["2024-01-01", "2024-03-01", "2024-06-01"]
    assert resolve_start(keys, "2024-02-01") == "2024-03-01"
    assert resolve_end(keys, "2024-05-01") == "2024-03-01"


def test_exact_matches_resolve_to_themselves():
    assert resolve_start(DATES, "2024-03-31") == "2024-03-31"
    assert resolve_end(DATES, "2024-03-31") == "2024-03-31"


def test_out_of_range_requests_do_not_resolve():
    assert resolve_start(DATES, "2024-07-01") is None
    assert resolve_end(DATES, "2023-12-31") is None


def test_all_time_spans_first_to_last():
    assert resolve_boundaries(DATES, TimeWindow()) == ("2024-01-31", "2024-06-30")


def test_no_dates_never_resolves():
    assert resolve_boundaries([], TimeWindow()) is None


@pytest.mark.parametrize(
    "preset, expected",
    [
        (WindowPreset.LAST_3_MONTHS, ("2024-03-31", "2024-06-30")),
        (WindowPreset.YEAR_TO_DATE, ("2024-01-31", "2024-06-30")),
        (WindowPreset.LAST_YEAR, ("2024-01-31", "2024-06-30")),
        (WindowPreset.LAST_7_DAYS, ("2024-06-30", "2024-06-30")),
    ],
)
def test_presets_are_relative_to_latest_snapshot(preset, expected):
    assert resolve_boundaries(DATES, TimeWindow(preset=preset)) == expected


def test_quarter_window():
    window = TimeWindow(preset=WindowPreset.QUARTER, year=2024, quarter=1)
    assert window.resolve(date(2024, 6, 30)) == (date(2024, 1, 1), date(2024, 3, 31))
    assert resolve_boundaries(DATES, window) == ("2024-01-31", "2024-03-31")
    assert window.label == "Q1 2024"


def test_quarter_defaults_to_latest_quarter():
    window = TimeWindow(preset=WindowPreset.QUARTER)
    assert window.resolve(date(2024, 8, 15)) == (date(2024, 7, 1), date(2024, 9, 30))
    assert window.label == "Latest Quarter"


def test_quarter_before_first_snapshot_is_unresolved():
    window = TimeWindow(preset=WindowPreset.QUARTER, year=2023, quarter=2)
    assert resolve_boundaries(DATES, window) is None


def test_window_between_two_snapshots_is_unresolved():
    window = TimeWindow(
        preset=WindowPreset.CUSTOM,
        start_date=date(2024, 2, 1),
        end_date=date(2024, 2, 15),
    )
    assert resolve_boundaries(DATES, window) is None


def test_custom_window_with_open_end():
    window = TimeWindow(preset=WindowPreset.CUSTOM, start_date=date(2024, 2, 1))
    assert resolve_boundaries(DATES, window) == ("2024-03-31", "2024-06-30")
    assert window.label == "2024-02-01 to ?"


def test_month_shift_clamps_to_month_end():
    window = TimeWindow(preset=WindowPreset.LAST_MONTH)
    assert window.resolve(date(2024, 3, 31)) == (date(2024, 2, 29), date(2024, 3, 31))
