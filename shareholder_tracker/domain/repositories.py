"""Collaborator interfaces anchoring the domain layer."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence

from .models import GroupDefinition


@dataclass(frozen=True)
class RawWorkbook:
    """First ingestion stage: headers and untyped rows of one sheet."""

    headers: Sequence[str]
    rows: Sequence[Mapping[str, Any]]
    sheet_name: str = ""


class WorkbookReader(Protocol):
    def __call__(self, data: bytes, file_name: str = "", sheet: str | None = None) -> RawWorkbook:
        ...


class FastTier(Protocol):
    """Synchronous, size-limited key/value storage for serialized values."""

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class DurableStore(Protocol):
    """Asynchronous namespaced key/value storage without a size limit."""

    async def get(self, namespace: str, key: str) -> Any | None:
        ...

    async def put(self, namespace: str, key: str, value: Any) -> None:
        ...

    async def delete(self, namespace: str, key: str) -> None:
        ...


class GroupRegistry(Protocol):
    """Persists manual group definitions."""

    def list_groups(self) -> Sequence[GroupDefinition]:
        ...

    def create(self, group: GroupDefinition) -> GroupDefinition:
        ...

    def update(self, group: GroupDefinition) -> GroupDefinition:
        ...

    def delete(self, group_id: int) -> None:
        ...
