"""Analytics over the longitudinal store: behavior, rankings, filters."""
from __future__ import annotations

import datetime as dt
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Sequence

from .models import EntitySnapshot, Shares, available_dates
from .windows import TimeWindow, resolve_boundaries

DEFAULT_BEHAVIOR_THRESHOLD = 1000


class BehaviorType(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"
    HOLDER = "holder"
    NEW = "new"
    EXITED = "exited"


class RankingMode(str, Enum):
    NONE = "none"
    BUYERS = "buyers"
    SELLERS = "sellers"


# ---------------------------------------------------------------------------
# Two-point behavior classification
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PositionSnapshot:
    """One holder's position in a labeled snapshot.

    The legacy two-file flow fills ``bought``/``sold``; the derived flow
    fills ``start_position``/``end_position`` from the history.
    """

    key: str
    name: str
    category: str = "Unknown"
    bought: Shares = 0
    sold: Shares = 0
    start_position: Shares | None = None
    end_position: Shares | None = None
    fund_group: str = ""

    @property
    def net_change(self) -> Shares:
        if self.start_position is not None and self.end_position is not None:
            return self.end_position - self.start_position
        return self.sold - self.bought


@dataclass(frozen=True)
class BehaviorComparison:
    key: str
    name: str
    month1: PositionSnapshot | None
    month2: PositionSnapshot | None
    behavior: BehaviorType
    trend_change: Shares
    fund_group: str


def classify_trend(trend_change: Shares, threshold: Shares = DEFAULT_BEHAVIOR_THRESHOLD) -> BehaviorType:
    if trend_change > threshold:
        return BehaviorType.BUYER
    if trend_change < -threshold:
        return BehaviorType.SELLER
    return BehaviorType.HOLDER


def compare_two_points(
    month1: Sequence[PositionSnapshot],
    month2: Sequence[PositionSnapshot],
    threshold: Shares = DEFAULT_BEHAVIOR_THRESHOLD,
) -> list[BehaviorComparison]:
    """Classify every holder seen in either snapshot.

    Holders are listed in month2 order, followed by those that exited.
    """
    earlier = {position.key: position for position in month1}
    later = {position.key: position for position in month2}

    comparisons: list[BehaviorComparison] = []
    for key, current in later.items():
        previous = earlier.get(key)
        if previous is None:
            comparisons.append(
                BehaviorComparison(
                    key=key,
                    name=current.name,
                    month1=None,
                    month2=current,
                    behavior=BehaviorType.NEW,
                    trend_change=current.net_change,
                    fund_group=current.fund_group,
                )
            )
            continue
        trend = current.net_change - previous.net_change
        comparisons.append(
            BehaviorComparison(
                key=key,
                name=current.name,
                month1=previous,
                month2=current,
                behavior=classify_trend(trend, threshold),
                trend_change=trend,
                fund_group=current.fund_group,
            )
        )
    for key, previous in earlier.items():
        if key in later:
            continue
        comparisons.append(
            BehaviorComparison(
                key=key,
                name=previous.name,
                month1=previous,
                month2=None,
                behavior=BehaviorType.EXITED,
                trend_change=-previous.net_change,
                fund_group=previous.fund_group,
            )
        )
    return comparisons


def positions_between(
    entities: Iterable[EntitySnapshot], start_key: str, end_key: str
) -> list[PositionSnapshot]:
    """Derived-flow positions for holders present on either date."""
    positions: list[PositionSnapshot] = []
    for entity in entities:
        history = entity.monthly_shares
        if start_key not in history and end_key not in history:
            continue
        positions.append(
            PositionSnapshot(
                key=entity.canonical_key,
                name=entity.name,
                category=entity.category,
                start_position=history.get(start_key, 0),
                end_position=history.get(end_key, 0),
                fund_group=entity.fund_group,
            )
        )
    return positions


def behavior_counts(comparisons: Iterable[BehaviorComparison]) -> dict[BehaviorType, int]:
    counts = Counter(item.behavior for item in comparisons)
    return {behavior: counts.get(behavior, 0) for behavior in BehaviorType}


# ---------------------------------------------------------------------------
# Windowed delta ranking
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RankedEntity:
    entity: EntitySnapshot
    delta: Shares


@dataclass(frozen=True)
class RankingResult:
    """Ordered entities plus the snapshot dates the ranking used.

    ``ranked`` is False when the baseline order was returned, either because
    no ranking mode was asked for or because the window did not resolve.
    """

    rows: tuple[RankedEntity, ...]
    start_key: str | None
    end_key: str | None
    ranked: bool
    mode: RankingMode

    @property
    def entities(self) -> list[EntitySnapshot]:
        return [row.entity for row in self.rows]


def delta_between(entity: EntitySnapshot, start_key: str, end_key: str) -> Shares:
    return entity.shares_on(end_key) - entity.shares_on(start_key)


def rank_by_delta(
    entities: Sequence[EntitySnapshot],
    window: TimeWindow,
    mode: RankingMode | str = RankingMode.BUYERS,
    date_keys: Sequence[str] | None = None,
) -> RankingResult:
    mode = RankingMode(mode)
    keys = list(date_keys) if date_keys is not None else available_dates(entities)
    boundaries = resolve_boundaries(keys, window)

    if boundaries is None or mode == RankingMode.NONE:
        start_key, end_key = boundaries if boundaries else (None, None)
        rows = tuple(
            RankedEntity(entity, delta_between(entity, start_key, end_key) if boundaries else 0)
            for entity in entities
        )
        return RankingResult(rows=rows, start_key=start_key, end_key=end_key, ranked=False, mode=mode)

    start_key, end_key = boundaries
    rows = [RankedEntity(entity, delta_between(entity, start_key, end_key)) for entity in entities]
    # sorted() is stable, so equal deltas keep their baseline order.
    if mode == RankingMode.BUYERS:
        rows = sorted(rows, key=lambda row: -row.delta)
    else:
        rows = sorted(rows, key=lambda row: row.delta)
    return RankingResult(rows=tuple(rows), start_key=start_key, end_key=end_key, ranked=True, mode=mode)


# ---------------------------------------------------------------------------
# Filters and the minimum-activity gate
# ---------------------------------------------------------------------------

@dataclass
class EntityFilter:
    """AND-composed filter over entities; unset criteria always match."""
    category: str | None = None
    search: str | None = None
    min_shares: Shares | None = None
    max_shares: Shares | None = None
    reference_date: str | None = None   # defaults to the latest date key

    def matches(self, entity: EntitySnapshot, latest_key: str | None = None) -> bool:
        if self.category and self.category != "all" and entity.category != self.category:
            return False
        query = (self.search or "").strip().lower()
        if query:
            in_name = query in entity.name.lower()
            in_description = query in (entity.description or "").lower()
            if not in_name and not in_description:
                return False
        if self.min_shares is not None or self.max_shares is not None:
            shares = entity.shares_on(self.reference_date or latest_key)
            if self.min_shares is not None and shares < self.min_shares:
                return False
            if self.max_shares is not None and shares > self.max_shares:
                return False
        return True

    def apply(self, entities: Sequence[EntitySnapshot]) -> list[EntitySnapshot]:
        dates = available_dates(entities)
        latest = dates[-1] if dates else None
        return [entity for entity in entities if self.matches(entity, latest)]


@dataclass(frozen=True)
class ActivityGate:
    """Keeps only holders that ever reached ``min_shares`` on or after ``cutoff``."""

    min_shares: Shares
    cutoff: dt.date

    def passes(self, entity: EntitySnapshot) -> bool:
        cutoff_key = self.cutoff.isoformat()
        return any(
            date_key >= cutoff_key and shares >= self.min_shares
            for date_key, shares in entity.monthly_shares.items()
        )

    def apply(self, entities: Iterable[EntitySnapshot]) -> list[EntitySnapshot]:
        return [entity for entity in entities if self.passes(entity)]


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AnalyticsSummary:
    total_entities: int
    latest_date: str | None
    total_shares: Shares
    net_change: Shares
    top_categories: tuple[tuple[str, int], ...] = field(default_factory=tuple)
    top_buyer: RankedEntity | None = None
    top_seller: RankedEntity | None = None


def unique_categories(entities: Iterable[EntitySnapshot]) -> list[str]:
    return sorted({entity.category for entity in entities if entity.category})


def summarize(entities: Sequence[EntitySnapshot]) -> AnalyticsSummary:
    """Headline figures comparing the two most recent snapshots."""
    dates = available_dates(entities)
    if not entities or not dates:
        return AnalyticsSummary(total_entities=len(entities), latest_date=None, total_shares=0, net_change=0)

    latest = dates[-1]
    previous = dates[-2] if len(dates) > 1 else latest
    total = sum(entity.shares_on(latest) for entity in entities)
    previous_total = sum(entity.shares_on(previous) for entity in entities)
    categories: Mapping[str, int] = Counter(entity.category for entity in entities)
    top_categories = tuple(sorted(categories.items(), key=lambda item: -item[1])[:5])

    rows = [RankedEntity(entity, delta_between(entity, previous, latest)) for entity in entities]
    top_buyer = max(rows, key=lambda row: row.delta)
    top_seller = min(rows, key=lambda row: row.delta)
    return AnalyticsSummary(
        total_entities=len(entities),
        latest_date=latest,
        total_shares=total,
        net_change=total - previous_total,
        top_categories=top_categories,
        top_buyer=top_buyer,
        top_seller=top_seller,
    )
