"""Command-line entrypoint for shareholder snapshot tracking."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path

from shareholder_tracker.application.dto import IngestRequest, RankRequest
from shareholder_tracker.application.use_cases import (
    ClearStoreUseCase,
    IngestSnapshotUseCase,
    RankMoversUseCase,
    TrackerContext,
    build_context,
)
from shareholder_tracker.domain.analytics import EntityFilter, RankingMode
from shareholder_tracker.domain.errors import ShareholderTrackerError
from shareholder_tracker.domain.grouping import group_by_fund
from shareholder_tracker.domain.identity import find_name_collisions
from shareholder_tracker.domain.windows import TimeWindow, WindowPreset
from shareholder_tracker.infrastructure.parsing.utils import ensure_bytes
from shareholder_tracker.presentation.export import history_to_rows, ranking_to_rows, render_csv, render_html

logger = logging.getLogger(__name__)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Track shareholder positions across monthly snapshot uploads")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Merge one or more snapshot workbooks into the store")
    ingest.add_argument("files", nargs="+", type=str, help="Paths to snapshot workbooks")
    ingest.add_argument("--sheet", type=str, help="Worksheet to read (defaults to the first sheet)")

    rank = sub.add_parser("rank", help="Rank holders by share change over a window")
    rank.add_argument("--window", default=WindowPreset.ALL.value, choices=[p.value for p in WindowPreset])
    rank.add_argument("--mode", default=RankingMode.BUYERS.value, choices=[m.value for m in RankingMode])
    rank.add_argument("--start", type=str, help="Custom window start (YYYY-MM-DD)")
    rank.add_argument("--end", type=str, help="Custom window end (YYYY-MM-DD)")
    rank.add_argument("--year", type=int, help="Quarter window year")
    rank.add_argument("--quarter", type=int, choices=[1, 2, 3, 4], help="Quarter window quarter")
    rank.add_argument("--category", type=str, help="Only this category")
    rank.add_argument("--search", type=str, help="Substring of name or description")
    rank.add_argument("--group", action="store_true", help="Cluster holders into fund groups")
    rank.add_argument("--all-holders", action="store_true", help="Skip the minimum-activity gate")
    rank.add_argument("--limit", type=int, default=20)

    export = sub.add_parser("export", help="Export the store as a wide table")
    export.add_argument("--format", choices=["csv", "html"], default="csv")
    export.add_argument("--group", action="store_true", help="Cluster holders into fund groups")
    export.add_argument("-o", "--output", type=str, required=True)

    sub.add_parser("collisions", help="List names shared by different canonical keys")
    sub.add_parser("clear", help="Delete the whole store")
    return parser.parse_args(argv)


async def _ingest(context: TrackerContext, files: list[str], sheet: str | None = None) -> None:
    use_case = IngestSnapshotUseCase(context)
    for file in files:
        path = Path(file)
        response = await use_case.execute(IngestRequest(content=ensure_bytes(path), file_name=path.name, sheet=sheet))
        print(f"{path.name}: {len(response.snapshot.records)} holders as on {response.snapshot.date_key}")
        print(f"Store: {len(response.store)} holders across {len(response.store.date_keys())} dates")


async def _rank(context: TrackerContext, args: argparse.Namespace) -> None:
    window = TimeWindow(
        preset=WindowPreset(args.window),
        year=args.year,
        quarter=args.quarter,
        start_date=date.fromisoformat(args.start) if args.start else None,
        end_date=date.fromisoformat(args.end) if args.end else None,
    )
    entity_filter = EntityFilter(category=args.category, search=args.search)
    request = RankRequest(
        window=window,
        mode=RankingMode(args.mode),
        entity_filter=entity_filter,
        group_by_fund=args.group,
        apply_activity_gate=not args.all_holders,
    )
    response = await RankMoversUseCase(context).execute(request)
    result = response.result

    print(f"Ranking ({result.mode.value}) for {window.label}")
    print("==================")
    if result.ranked:
        print(f"Snapshots: {result.start_key} -> {result.end_key}")
    else:
        print("Window does not resolve to snapshot dates; showing unranked order.")
    for row in ranking_to_rows(result)[: args.limit]:
        delta = row["delta"]
        print(f"{row['rank']!s:>4} {row['name']:<50} {row['category']:<20} {delta:>+14,}")


async def _export(context: TrackerContext, args: argparse.Namespace) -> None:
    store = await context.repository.load()
    entities = group_by_fund(store.entities) if args.group else list(store.entities)
    rows = history_to_rows(entities, store.date_keys())
    output = Path(args.output)
    if args.format == "csv":
        output.write_bytes(render_csv(rows))
    else:
        output.write_text(render_html(rows), encoding="utf-8")
    print(f"Wrote {len(rows)} rows to {output}")


async def _collisions(context: TrackerContext) -> None:
    store = await context.repository.load()
    collisions = find_name_collisions(store.entities)
    if not collisions:
        print("No name collisions detected.")
        return
    for name, keys in sorted(collisions.items()):
        print(f"- {name}: {', '.join(keys)}")


async def run(args: argparse.Namespace, context: TrackerContext) -> None:
    if args.command == "ingest":
        await _ingest(context, args.files, args.sheet)
    elif args.command == "rank":
        await _rank(context, args)
    elif args.command == "export":
        await _export(context, args)
    elif args.command == "collisions":
        await _collisions(context)
    elif args.command == "clear":
        await ClearStoreUseCase(context).execute()
        print("Store cleared.")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(run(args, build_context()))
    except ShareholderTrackerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
