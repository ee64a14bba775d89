from dataclasses import replace
from pathlib import Path

import pandas as pd
import pytest

from shareholder_tracker import cli
from shareholder_tracker.application.use_cases import build_context
from shareholder_tracker.config import load_settings


@pytest.fixture(autouse=True)
def isolated_context(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    settings = replace(load_settings(), data_dir=tmp_path / "data", min_activity_shares=0)
    monkeypatch.setattr(cli, "build_context", lambda: build_context(settings))


def write_snapshot(path: Path, header: str, shares: list[str]) -> Path:
    frame = pd.DataFrame({"NAME": ["ABC FUND", "XYZ TRUST"], "CATEGORY": ["FII", "TRU"], header: shares})
    frame.to_excel(path, index=False, engine="openpyxl")
    return path


def test_ingest_rank_and_export(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    sept = write_snapshot(tmp_path / "sept.xlsx", "SHARES AS ON 3rd September 2024", ["10,000", "4,000"])
    octo = write_snapshot(tmp_path / "oct.xlsx", "SHARES AS ON 3rd October 2024", ["15000", "1000"])

    assert cli.main(["ingest", str(sept), str(octo)]) == 0
    out = capsys.readouterr().out
    assert "sept.xlsx: 2 holders as on 2024-09-03" in out

    assert cli.main(["rank", "--mode", "sellers"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[2] == "Snapshots: 2024-09-03 -> 2024-10-03"
    assert "XYZ TRUST" in lines[3]
    assert lines[3].rstrip().endswith("-3,000")

    output = tmp_path / "history.csv"
    assert cli.main(["export", "-o", str(output)]) == 0
    exported = pd.read_csv(output)
    assert list(exported["2024-10-03"]) == [15000, 1000]


def test_unreadable_upload_returns_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    broken = tmp_path / "broken.xlsx"
    broken.write_bytes(b"not a workbook")

    assert cli.main(["ingest", str(broken)]) == 1
    assert "UnreadableWorkbook" in capsys.readouterr().err


def test_clear_and_collisions(capsys: pytest.CaptureFixture[str]):
    assert cli.main(["collisions"]) == 0
    assert "No name collisions detected." in capsys.readouterr().out
    assert cli.main(["clear"]) == 0
    assert "Store cleared." in capsys.readouterr().out


def test_ingest_named_sheet(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    path = tmp_path / "multi.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame({"NOTE": ["cover page"]}).to_excel(writer, sheet_name="Cover", index=False)
        pd.DataFrame({"NAME": ["ABC FUND"], "SHARES AS ON 3rd September 2024": ["100"]}).to_excel(
            writer, sheet_name="Holdings", index=False
        )

    assert cli.main(["ingest", "--sheet", "Holdings", str(path)]) == 0
    assert "multi.xlsx: 1 holders as on 2024-09-03" in capsys.readouterr().out
