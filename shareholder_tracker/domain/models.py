"""Domain models for the shareholder snapshot pipeline.

These dataclasses capture the canonical shape of ingested records and the
longitudinal store built from them. All of them are immutable; operations in
the domain layer return rebuilt values instead of mutating shared structures.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Sequence

Shares = int | float


@dataclass(frozen=True)
class ShareRecord:
    """One validated row of an uploaded snapshot."""

    name: str
    shares: Shares
    category: str
    description: str
    fund_group: str
    pan: str | None = None
    row_index: int = 0

    @property
    def canonical_key(self) -> str:
        return self.pan if self.pan else self.name.strip()


@dataclass(frozen=True)
class EntitySnapshot:
    """A shareholder (or synthetic aggregate) with its per-date history."""

    canonical_key: str
    name: str
    category: str
    description: str
    monthly_shares: Mapping[str, Shares]
    fund_group: str
    pan: str | None = None
    individual_members: tuple["EntitySnapshot", ...] | None = None

    @property
    def is_aggregate(self) -> bool:
        return self.individual_members is not None

    def shares_on(self, date_key: str | None) -> Shares:
        if date_key is None:
            return 0
        return self.monthly_shares.get(date_key, 0)


@dataclass(frozen=True)
class UploadedFileRecord:
    date_key: str
    file_name: str
    upload_timestamp: datetime
    record_count: int


@dataclass(frozen=True)
class GroupMember:
    key: str
    pan: str | None = None
    name: str | None = None


@dataclass(frozen=True)
class GroupDefinition:
    """A user-curated named set of canonical keys."""

    id: int | None
    name: str
    category: str | None
    members: tuple[GroupMember, ...] = ()

    @property
    def member_keys(self) -> list[str]:
        return [member.key for member in self.members]


@dataclass(frozen=True)
class ParsedSnapshot:
    """Normalizer output: one dated upload ready to be merged."""

    date_key: str
    records: Sequence[ShareRecord]
    file_name: str = ""
    file_hash: str = ""
    header_text: str = ""


@dataclass(frozen=True)
class LongitudinalStore:
    """The persisted mapping from canonical key to full share history."""

    entities: tuple[EntitySnapshot, ...] = ()
    uploads: tuple[UploadedFileRecord, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.entities)

    def get(self, canonical_key: str) -> EntitySnapshot | None:
        for entity in self.entities:
            if entity.canonical_key == canonical_key:
                return entity
        return None

    def date_keys(self) -> list[str]:
        return available_dates(self.entities)

    def categories(self) -> list[str]:
        return sorted({entity.category for entity in self.entities if entity.category})


def available_dates(entities: Sequence[EntitySnapshot]) -> list[str]:
    """Sorted union of every date key present in the given histories."""
    keys: set[str] = set()
    for entity in entities:
        keys.update(entity.monthly_shares.keys())
    return sorted(keys)
