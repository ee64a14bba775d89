import asyncio
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path

import pandas as pd
import pytest

from shareholder_tracker.application.dto import IngestRequest, RankRequest
from shareholder_tracker.application.use_cases import (
    ClearStoreUseCase,
    IngestSnapshotUseCase,
    ManageGroupsUseCase,
    RankMoversUseCase,
    TrackerContext,
    build_context,
)
from shareholder_tracker.config import load_settings
from shareholder_tracker.domain.analytics import EntityFilter, RankingMode
from shareholder_tracker.domain.errors import CategoryRequiredError, DuplicateGroupNameError, ParseError
from shareholder_tracker.domain.windows import TimeWindow, WindowPreset


def workbook_bytes(path: Path, header: str, rows: list[tuple[str, str, str]]) -> bytes:
    frame = pd.DataFrame(rows, columns=["NAME", "CATEGORY", header])
    frame.to_excel(path, index=False, engine="openpyxl")
    return path.read_bytes()


@pytest.fixture
def context(tmp_path: Path) -> TrackerContext:
    settings = replace(load_settings(), data_dir=tmp_path / "data")
    return build_context(settings)


def ingest_two_months(context: TrackerContext, tmp_path: Path) -> None:
    use_case = IngestSnapshotUseCase(context)
    september = workbook_bytes(
        tmp_path / "sept.xlsx",
        "SHARES AS ON 3rd September 2024",
        [
            ("ABC FUND", "FII", "10,000"),
            ("XYZ MUTUAL FUND", "MUT", "90,000"),
            ("TINY HOLDER", "PUB", "500"),
        ],
    )
    october = workbook_bytes(
        tmp_path / "oct.xlsx",
        "SHARES AS ON 3rd October 2024",
        [
            ("ABC FUND", "FII", "15000"),
            ("XYZ MUTUAL FUND", "MUT", "60,000"),
            ("TINY HOLDER", "PUB", "700"),
        ],
    )
    asyncio.run(use_case.execute(IngestRequest(september, "sept.xlsx", datetime(2024, 9, 4))))
    asyncio.run(use_case.execute(IngestRequest(october, "oct.xlsx", datetime(2024, 10, 4))))


def test_ingest_then_rank_buyers(context: TrackerContext, tmp_path: Path):
    ingest_two_months(context, tmp_path)

    response = asyncio.run(
        RankMoversUseCase(context).execute(RankRequest(mode=RankingMode.BUYERS, apply_activity_gate=False))
    )

    result = response.result
    assert response.date_keys == ("2024-09-03", "2024-10-03")
    assert [row.entity.name for row in result.rows] == ["ABC FUND", "TINY HOLDER", "XYZ MUTUAL FUND"]
    assert [row.delta for row in result.rows] == [5000, 200, -30000]
    assert result.rows[0].entity.category == "FIIs"


def test_activity_gate_drops_small_holders(context: TrackerContext, tmp_path: Path):
    ingest_two_months(context, tmp_path)
    request = RankRequest(mode=RankingMode.SELLERS, entity_filter=EntityFilter(category="India FIs"))

    response = asyncio.run(RankMoversUseCase(context).execute(request))

    assert [e.name for e in response.result.entities] == ["XYZ MUTUAL FUND"]
    assert [e.name for e in response.baseline] == ["XYZ MUTUAL FUND"]


def test_unresolved_window_returns_baseline(context: TrackerContext, tmp_path: Path):
    ingest_two_months(context, tmp_path)
    window = TimeWindow(preset=WindowPreset.CUSTOM, start_date=date(2023, 1, 1), end_date=date(2023, 12, 31))

    response = asyncio.run(
        RankMoversUseCase(context).execute(RankRequest(window=window, apply_activity_gate=False))
    )

    assert not response.result.ranked
    assert response.result.entities == list(response.baseline)


def test_rejected_upload_leaves_store_untouched(context: TrackerContext, tmp_path: Path):
    ingest_two_months(context, tmp_path)
    before = asyncio.run(context.repository.load())

    with pytest.raises(ParseError):
        asyncio.run(IngestSnapshotUseCase(context).execute(IngestRequest(b"garbage", "broken.xlsx")))

    assert asyncio.run(context.repository.load()) == before


def test_store_persists_across_contexts(context: TrackerContext, tmp_path: Path):
    ingest_two_months(context, tmp_path)

    reopened = build_context(context.settings)
    store = asyncio.run(reopened.repository.load())

    assert len(store) == 3
    assert [u.file_name for u in store.uploads] == ["sept.xlsx", "oct.xlsx"]


def test_manage_groups_validates_against_store(context: TrackerContext, tmp_path: Path):
    ingest_two_months(context, tmp_path)
    groups = ManageGroupsUseCase(context)

    with pytest.raises(CategoryRequiredError) as excinfo:
        asyncio.run(groups.save("Institutions", ["ABC FUND", "XYZ MUTUAL FUND"]))
    assert excinfo.value.categories == ["FIIs", "India FIs"]

    saved = asyncio.run(groups.save("Institutions", ["ABC FUND", "XYZ MUTUAL FUND"], category="FII"))
    assert saved.id == 1
    assert saved.category == "FIIs"

    with pytest.raises(DuplicateGroupNameError):
        asyncio.run(groups.save("Institutions", ["TINY HOLDER"]))

    renamed = asyncio.run(groups.save("Institutions", ["ABC FUND"], group_id=saved.id))
    assert renamed.category == "FIIs"
    assert [g.name for g in groups.list_groups()] == ["Institutions"]

    groups.delete(saved.id)
    assert groups.list_groups() == []


def test_clear_store(context: TrackerContext, tmp_path: Path):
    ingest_two_months(context, tmp_path)

    cleared = asyncio.run(ClearStoreUseCase(context).execute())

    assert len(cleared) == 0
    assert len(asyncio.run(context.repository.load())) == 0
