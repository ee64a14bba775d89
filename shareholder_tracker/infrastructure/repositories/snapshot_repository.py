"""Longitudinal store persistence on top of the tiered key/value store."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Sequence

from shareholder_tracker.domain.models import EntitySnapshot, LongitudinalStore, UploadedFileRecord
from shareholder_tracker.infrastructure.storage.tiered_store import TieredStore

ENTITIES_KEY = "monthlyCSVData"
UPLOADS_KEY = "uploadedFiles"


def entity_to_dict(entity: EntitySnapshot) -> dict[str, Any]:
    data: dict[str, Any] = {
        "canonicalKey": entity.canonical_key,
        "name": entity.name,
        "pan": entity.pan,
        "category": entity.category,
        "description": entity.description,
        "monthlyShares": dict(entity.monthly_shares),
        "fundGroup": entity.fund_group,
    }
    if entity.individual_members is not None:
        data["individualMembers"] = [entity_to_dict(m) for m in entity.individual_members]
    return data


def entity_from_dict(raw: dict[str, Any]) -> EntitySnapshot:
    members = raw.get("individualMembers")
    return EntitySnapshot(
        canonical_key=str(raw.get("canonicalKey") or raw.get("name", "")).strip(),
        name=str(raw.get("name", "")),
        category=str(raw.get("category") or "Unknown"),
        description=str(raw.get("description") or ""),
        monthly_shares=dict(raw.get("monthlyShares") or {}),
        fund_group=str(raw.get("fundGroup") or ""),
        pan=raw.get("pan"),
        individual_members=tuple(entity_from_dict(m) for m in members) if members is not None else None,
    )


def upload_to_dict(upload: UploadedFileRecord) -> dict[str, Any]:
    return {
        "date": upload.date_key,
        "fileName": upload.file_name,
        "uploadDate": upload.upload_timestamp.isoformat(),
        "recordCount": upload.record_count,
    }


def upload_from_dict(raw: dict[str, Any]) -> UploadedFileRecord:
    return UploadedFileRecord(
        date_key=str(raw["date"]),
        file_name=str(raw.get("fileName", "")),
        upload_timestamp=datetime.fromisoformat(raw["uploadDate"]),
        record_count=int(raw.get("recordCount", 0)),
    )


class SnapshotRepository:
    """Loads and saves the whole longitudinal store.

    There is no concurrency check: the last ``save`` wins, so callers must
    serialize their own load/modify/save sequences.
    """

    def __init__(self, storage: TieredStore) -> None:
        self._storage = storage

    async def load(self) -> LongitudinalStore:
        entities: Sequence[dict[str, Any]] = await self._storage.get_item(ENTITIES_KEY) or []
        uploads: Sequence[dict[str, Any]] = await self._storage.get_item(UPLOADS_KEY) or []
        return LongitudinalStore(
            entities=tuple(entity_from_dict(item) for item in entities),
            uploads=tuple(upload_from_dict(item) for item in uploads),
        )

    async def save(self, store: LongitudinalStore) -> None:
        await self._storage.set_item(ENTITIES_KEY, [entity_to_dict(e) for e in store.entities])
        await self._storage.set_item(UPLOADS_KEY, [upload_to_dict(u) for u in store.uploads])

    async def clear(self) -> None:
        await self._storage.remove_item(ENTITIES_KEY)
        await self._storage.remove_item(UPLOADS_KEY)
