"""Application services orchestrating ingestion, ranking and group management."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from shareholder_tracker.application.dto import IngestRequest, IngestResponse, RankRequest, RankResponse
from shareholder_tracker.config import SETTINGS, Settings
from shareholder_tracker.domain.analytics import ActivityGate, rank_by_delta
from shareholder_tracker.domain.grouping import group_by_fund
from shareholder_tracker.domain.manual_groups import validate_group_save
from shareholder_tracker.domain.merge import clear_store, ingest
from shareholder_tracker.domain.models import GroupDefinition, LongitudinalStore
from shareholder_tracker.domain.repositories import GroupRegistry, WorkbookReader
from shareholder_tracker.infrastructure.parsing.snapshot import parse_snapshot
from shareholder_tracker.infrastructure.parsing.workbook import read_workbook
from shareholder_tracker.infrastructure.repositories.snapshot_repository import SnapshotRepository
from shareholder_tracker.infrastructure.storage.group_store import DEFAULT_FILE_NAME, JsonGroupRegistry
from shareholder_tracker.infrastructure.storage.tiered_store import TieredStore
from shareholder_tracker.infrastructure.storage.tiers import FileFastTier, FileSystemDurableStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TrackerContext:
    repository: SnapshotRepository
    group_registry: GroupRegistry
    settings: Settings
    reader: WorkbookReader = read_workbook


def build_context(settings: Settings = SETTINGS) -> TrackerContext:
    """Wire the file-backed tiers under ``settings.data_dir``."""
    data_dir = settings.data_dir
    storage = TieredStore(
        fast=FileFastTier(data_dir / "fast_tier.json", settings.fast_tier_quota_bytes),
        durable=FileSystemDurableStore(data_dir / "durable"),
        limit_bytes=settings.fast_tier_limit_bytes,
    )
    return TrackerContext(
        repository=SnapshotRepository(storage),
        group_registry=JsonGroupRegistry(data_dir / DEFAULT_FILE_NAME),
        settings=settings,
    )


class IngestSnapshotUseCase:
    def __init__(self, context: TrackerContext) -> None:
        self._context = context

    async def execute(self, request: IngestRequest) -> IngestResponse:
        # Parse before loading so a rejected upload never touches the store.
        snapshot = parse_snapshot(
            request.content,
            file_name=request.file_name,
            category_map=self._context.settings.category_map,
            reader=self._context.reader,
            sheet=request.sheet,
        )
        store = await self._context.repository.load()
        updated = ingest(store, snapshot, uploaded_at=request.received_at or datetime.now())
        await self._context.repository.save(updated)
        return IngestResponse(snapshot=snapshot, store=updated)


class RankMoversUseCase:
    def __init__(self, context: TrackerContext) -> None:
        self._context = context

    async def execute(self, request: RankRequest) -> RankResponse:
        store = await self._context.repository.load()
        date_keys = store.date_keys()
        entities = list(store.entities)
        if request.apply_activity_gate:
            settings = self._context.settings
            gate = ActivityGate(settings.min_activity_shares, settings.activity_cutoff)
            entities = gate.apply(entities)
        if request.group_by_fund:
            entities = group_by_fund(entities)
        if request.entity_filter is not None:
            entities = request.entity_filter.apply(entities)
        result = rank_by_delta(entities, request.window, request.mode, date_keys=date_keys)
        if not result.ranked:
            logger.info("Window %s not ranked; returning baseline order", request.window.label)
        return RankResponse(result=result, baseline=tuple(entities), date_keys=tuple(date_keys))


class ManageGroupsUseCase:
    """Validates manual group saves against the store before persisting them."""

    def __init__(self, context: TrackerContext) -> None:
        self._context = context

    def list_groups(self) -> Sequence[GroupDefinition]:
        return self._context.group_registry.list_groups()

    async def save(
        self,
        name: str,
        members: object,
        category: str | None = None,
        group_id: int | None = None,
    ) -> GroupDefinition:
        store = await self._context.repository.load()
        registry = self._context.group_registry
        group = validate_group_save(
            name,
            members,
            category,
            registry.list_groups(),
            store.entities,
            group_id=group_id,
            category_map=self._context.settings.category_map,
        )
        if group_id is None:
            saved = registry.create(group)
        else:
            saved = registry.update(group)
        logger.info("Saved group %r (%d members, category %s)", saved.name, len(saved.members), saved.category)
        return saved

    def delete(self, group_id: int) -> None:
        self._context.group_registry.delete(group_id)


class ClearStoreUseCase:
    def __init__(self, context: TrackerContext) -> None:
        self._context = context

    async def execute(self) -> LongitudinalStore:
        await self._context.repository.clear()
        logger.info("Cleared the longitudinal store")
        return clear_store()
