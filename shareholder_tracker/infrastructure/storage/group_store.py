"""Storage helpers for manual group definitions."""
from __future__ import annotations

from dataclasses import replace
from pathlib import Path
import json
import logging
from typing import Any, Sequence

from shareholder_tracker.domain.errors import DuplicateGroupNameError, GroupNotFoundError
from shareholder_tracker.domain.manual_groups import remove_group
from shareholder_tracker.domain.models import GroupDefinition, GroupMember

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "groups.json"


def _group_from_dict(raw: dict[str, Any]) -> GroupDefinition:
    members = tuple(
        GroupMember(key=str(item["key"]), pan=item.get("pan"), name=item.get("name"))
        for item in raw.get("members", [])
        if item.get("key")
    )
    return GroupDefinition(
        id=int(raw["id"]),
        name=str(raw["name"]),
        category=raw.get("category"),
        members=members,
    )


def _group_to_dict(group: GroupDefinition) -> dict[str, Any]:
    return {
        "id": group.id,
        "name": group.name,
        "category": group.category,
        "members": [{"key": m.key, "pan": m.pan, "name": m.name} for m in group.members],
    }


def load_groups(path: Path) -> list[GroupDefinition]:
    if not path.exists():
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.warning("Ignoring unreadable group file %s", path)
        return []
    if not isinstance(data, list):
        return []
    return sorted((_group_from_dict(item) for item in data), key=lambda g: g.name)


def save_groups(groups: Sequence[GroupDefinition], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps([_group_to_dict(g) for g in groups], ensure_ascii=False, indent=2),
        encoding="utf-8",
    )


class JsonGroupRegistry:
    """Group registry persisted as one JSON file.

    Enforces name uniqueness itself, like the unique index behind the remote
    registry, so a save that skipped validation still cannot duplicate a name.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    def list_groups(self) -> list[GroupDefinition]:
        return load_groups(self._path)

    def _check_name(self, groups: Sequence[GroupDefinition], group: GroupDefinition) -> None:
        if any(g.name == group.name and g.id != group.id for g in groups):
            raise DuplicateGroupNameError(group.name)

    def create(self, group: GroupDefinition) -> GroupDefinition:
        groups = self.list_groups()
        self._check_name(groups, group)
        next_id = max((g.id or 0 for g in groups), default=0) + 1
        created = replace(group, id=next_id)
        save_groups([*groups, created], self._path)
        return created

    def update(self, group: GroupDefinition) -> GroupDefinition:
        groups = self.list_groups()
        if group.id is None or not any(g.id == group.id for g in groups):
            raise GroupNotFoundError(group.id or 0)
        self._check_name(groups, group)
        save_groups([group if g.id == group.id else g for g in groups], self._path)
        return group

    def delete(self, group_id: int) -> None:
        groups = self.list_groups()
        remaining = remove_group(groups, group_id)
        if len(remaining) == len(groups):
            raise GroupNotFoundError(group_id)
        save_groups(remaining, self._path)
