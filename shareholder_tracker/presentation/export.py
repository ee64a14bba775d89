"""Tabular exports of the longitudinal store and rankings."""
from __future__ import annotations

import csv
import html
import io
from typing import Sequence

from shareholder_tracker.domain.analytics import RankingResult
from shareholder_tracker.domain.models import EntitySnapshot, available_dates


def history_to_rows(
    entities: Sequence[EntitySnapshot], date_keys: Sequence[str] | None = None
) -> list[dict[str, object]]:
    """One row per entity with a column per snapshot date (absent dates as 0)."""
    dates = list(date_keys) if date_keys is not None else available_dates(entities)
    rows: list[dict[str, object]] = []
    for entity in entities:
        row: dict[str, object] = {
            "Name": entity.name,
            "PAN": entity.pan or "",
            "Category": entity.category,
            "Description": entity.description,
            "Fund Group": entity.fund_group,
        }
        for date_key in dates:
            row[date_key] = entity.shares_on(date_key)
        rows.append(row)
    return rows


def ranking_to_rows(result: RankingResult) -> list[dict[str, object]]:
    rows: list[dict[str, object]] = []
    for position, row in enumerate(result.rows, start=1):
        entity = row.entity
        rows.append(
            {
                "rank": position if result.ranked else "",
                "name": entity.name,
                "category": entity.category,
                "start": entity.shares_on(result.start_key),
                "end": entity.shares_on(result.end_key),
                "delta": row.delta,
                "members": len(entity.individual_members or ()),
            }
        )
    return rows


def render_csv(rows: Sequence[dict[str, object]]) -> bytes:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()) if rows else [], quoting=csv.QUOTE_ALL)
    if rows:
        writer.writeheader()
        writer.writerows(rows)
    return buffer.getvalue().encode("utf-8")


def render_html(rows: Sequence[dict[str, object]]) -> str:
    if not rows:
        return "<p>No shareholder data.</p>"
    header = "".join(f"<th>{html.escape(str(col))}</th>" for col in rows[0].keys())
    body_parts = []
    for row in rows:
        body_parts.append("<tr>" + "".join(f"<td>{html.escape(str(value))}</td>" for value in row.values()) + "</tr>")
    body_html = "".join(body_parts)
    return f"<table><thead><tr>{header}</tr></thead><tbody>{body_html}</tbody></table>"
