"""Automatic fund-group clustering of top-level entities."""
from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Sequence

from .models import EntitySnapshot, Shares, available_dates

AGGREGATE_KEY_PREFIX = "GROUP:"


def ungroup(entities: Iterable[EntitySnapshot]) -> list[EntitySnapshot]:
    """Re-expand every aggregate into its members, dropping the wrapper."""
    flat: list[EntitySnapshot] = []
    for entity in entities:
        if entity.individual_members is None:
            flat.append(entity)
        else:
            flat.extend(entity.individual_members)
    return flat


def sum_histories(members: Sequence[EntitySnapshot]) -> dict[str, Shares]:
    totals: dict[str, Shares] = defaultdict(int)
    for member in members:
        for date_key, shares in member.monthly_shares.items():
            totals[date_key] += shares
    return {date_key: totals[date_key] for date_key in sorted(totals)}


def representative(members: Sequence[EntitySnapshot]) -> EntitySnapshot:
    """The member holding the most shares on the group's latest date."""
    dates = available_dates(members)
    if not dates:
        return members[0]
    latest = dates[-1]
    best = members[0]
    for member in members[1:]:
        if member.shares_on(latest) > best.shares_on(latest):
            best = member
    return best


def build_aggregate(group_key: str, members: Sequence[EntitySnapshot]) -> EntitySnapshot:
    rep = representative(members)
    return EntitySnapshot(
        canonical_key=f"{AGGREGATE_KEY_PREFIX}{group_key}",
        name=group_key,
        category=rep.category,
        description=rep.description,
        monthly_shares=sum_histories(members),
        fund_group=group_key,
        individual_members=tuple(members),
    )


def group_by_fund(entities: Iterable[EntitySnapshot]) -> list[EntitySnapshot]:
    """Cluster entities sharing a fund group into synthetic aggregates.

    Singleton partitions pass through unchanged. Partitions keep the order in
    which their first member appears. Already-grouped input is flattened
    first, so running this twice gives the same result as running it once.
    """
    partitions: dict[str, list[EntitySnapshot]] = {}
    for entity in ungroup(entities):
        partitions.setdefault(entity.fund_group, []).append(entity)

    grouped: list[EntitySnapshot] = []
    for group_key, members in partitions.items():
        if len(members) == 1:
            grouped.append(members[0])
        else:
            grouped.append(build_aggregate(group_key, members))
    return grouped
