"""Merge engine: folds dated snapshot records into the longitudinal store."""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Sequence

from .grouping import ungroup
from .models import (
    EntitySnapshot,
    LongitudinalStore,
    ParsedSnapshot,
    ShareRecord,
    UploadedFileRecord,
)

logger = logging.getLogger(__name__)


def merge_snapshot(
    store: LongitudinalStore,
    records: Sequence[ShareRecord],
    date_key: str,
) -> LongitudinalStore:
    """Return a new store with ``records`` written under ``date_key``.

    Existing entities get the date overwritten and their category and
    description refreshed; unknown keys are appended. Entities that are not
    named in ``records`` keep their history exactly as it was.
    """
    merged: dict[str, EntitySnapshot] = {
        entity.canonical_key: entity for entity in ungroup(store.entities)
    }
    inserted = 0
    for record in records:
        key = record.canonical_key
        existing = merged.get(key)
        if existing is None:
            merged[key] = EntitySnapshot(
                canonical_key=key,
                name=record.name,
                category=record.category,
                description=record.description,
                monthly_shares={date_key: record.shares},
                fund_group=record.fund_group,
                pan=record.pan,
            )
            inserted += 1
            continue
        history = dict(existing.monthly_shares)
        history[date_key] = record.shares
        merged[key] = replace(
            existing,
            category=record.category,
            description=record.description,
            monthly_shares=history,
            pan=record.pan or existing.pan,
        )
    logger.debug(
        "Merged %d records for %s (%d new, %d total)",
        len(records), date_key, inserted, len(merged),
    )
    return replace(store, entities=tuple(merged.values()))


def record_upload(store: LongitudinalStore, upload: UploadedFileRecord) -> LongitudinalStore:
    """Append ``upload`` to the audit trail, replacing any entry for the same date."""
    uploads = [item for item in store.uploads if item.date_key != upload.date_key]
    uploads.append(upload)
    uploads.sort(key=lambda item: item.date_key)
    return replace(store, uploads=tuple(uploads))


def ingest(
    store: LongitudinalStore,
    snapshot: ParsedSnapshot,
    uploaded_at: datetime | None = None,
) -> LongitudinalStore:
    merged = merge_snapshot(store, snapshot.records, snapshot.date_key)
    upload = UploadedFileRecord(
        date_key=snapshot.date_key,
        file_name=snapshot.file_name,
        upload_timestamp=uploaded_at or datetime.now(),
        record_count=len(snapshot.records),
    )
    result = record_upload(merged, upload)
    logger.info(
        "Ingested %s for %s: %d records, store now holds %d entities",
        snapshot.file_name or "<upload>", snapshot.date_key, len(snapshot.records), len(result),
    )
    return result


def clear_store() -> LongitudinalStore:
    return LongitudinalStore()
