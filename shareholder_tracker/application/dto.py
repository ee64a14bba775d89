"""Application-level DTOs for the shareholder tracker."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

from shareholder_tracker.domain.analytics import EntityFilter, RankingMode, RankingResult
from shareholder_tracker.domain.models import EntitySnapshot, LongitudinalStore, ParsedSnapshot
from shareholder_tracker.domain.windows import TimeWindow


@dataclass(slots=True, frozen=True)
class IngestRequest:
    content: bytes
    file_name: str
    received_at: datetime | None = None
    sheet: str | None = None


@dataclass(slots=True, frozen=True)
class IngestResponse:
    snapshot: ParsedSnapshot
    store: LongitudinalStore


@dataclass(slots=True, frozen=True)
class RankRequest:
    window: TimeWindow = field(default_factory=TimeWindow)
    mode: RankingMode = RankingMode.BUYERS
    entity_filter: EntityFilter | None = None
    group_by_fund: bool = False
    apply_activity_gate: bool = True


@dataclass(slots=True, frozen=True)
class RankResponse:
    result: RankingResult
    baseline: Sequence[EntitySnapshot]
    date_keys: Sequence[str]
