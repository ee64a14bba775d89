"""Longitudinal shareholder snapshot tracking toolkit."""
from shareholder_tracker.application.use_cases import (
    IngestSnapshotUseCase,
    ManageGroupsUseCase,
    RankMoversUseCase,
    TrackerContext,
    build_context,
)
from shareholder_tracker.domain.merge import merge_snapshot
from shareholder_tracker.domain.grouping import group_by_fund, ungroup
from shareholder_tracker.infrastructure.parsing.snapshot import parse_snapshot

__all__ = [
    "IngestSnapshotUseCase",
    "ManageGroupsUseCase",
    "RankMoversUseCase",
    "TrackerContext",
    "build_context",
    "merge_snapshot",
    "group_by_fund",
    "ungroup",
    "parse_snapshot",
]
