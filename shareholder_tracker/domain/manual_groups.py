"""Manual, user-curated shareholder groups.

Groups are persisted by an external registry; this module owns the rules a
save must pass before it reaches the registry, and the read-only views
built from a group and the longitudinal store.
"""
from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from .errors import CategoryRequiredError, DuplicateGroupNameError, InvalidGroupError
from .grouping import sum_histories, ungroup
from .identity import normalize_category, normalize_member_key, normalize_pan
from .models import EntitySnapshot, GroupDefinition, GroupMember, Shares


def parse_group_members(raw: object) -> tuple[GroupMember, ...]:
    """Coerce a loosely-shaped member payload into unique ``GroupMember`` values.

    Accepts plain key strings or objects carrying any of ``key``,
    ``memberKey``, ``pan`` or ``name``. Blank entries are skipped and the
    first occurrence of each key wins.
    """
    if not isinstance(raw, (list, tuple)):
        return ()
    members: list[GroupMember] = []
    seen: set[str] = set()
    for item in raw:
        if isinstance(item, GroupMember):
            member = item
        elif isinstance(item, str):
            member = GroupMember(key=normalize_member_key(item))
        elif isinstance(item, Mapping):
            pan = item.get("pan") or item.get("PAN")
            name = item.get("name") or item.get("Name")
            key_raw = item.get("key") or item.get("memberKey") or item.get("MemberKey") or pan or name
            name_clean = str(name).strip() if name else ""
            member = GroupMember(
                key=normalize_member_key(key_raw),
                pan=normalize_pan(pan),
                name=name_clean or None,
            )
        else:
            continue
        if not member.key or member.key in seen:
            continue
        seen.add(member.key)
        members.append(member)
    return tuple(members)


def _index_entities(entities: Iterable[EntitySnapshot]) -> dict[str, EntitySnapshot]:
    index: dict[str, EntitySnapshot] = {}
    for entity in ungroup(entities):
        index.setdefault(entity.canonical_key, entity)
        if entity.pan:
            index.setdefault(entity.pan, entity)
        index.setdefault(entity.name.strip(), entity)
        index.setdefault(normalize_member_key(entity.name), entity)
    return index


def resolve_members(
    members: Sequence[GroupMember], entities: Iterable[EntitySnapshot]
) -> list[EntitySnapshot]:
    """Entities a group's members refer to, matched by key, PAN or name."""
    index = _index_entities(entities)
    resolved: list[EntitySnapshot] = []
    seen: set[str] = set()
    for member in members:
        entity = index.get(member.key)
        if entity is None and member.pan:
            entity = index.get(member.pan)
        if entity is None and member.name:
            entity = index.get(member.name)
        if entity is None or entity.canonical_key in seen:
            continue
        seen.add(entity.canonical_key)
        resolved.append(entity)
    return resolved


def distinct_member_categories(
    members: Sequence[GroupMember], entities: Iterable[EntitySnapshot]
) -> list[str]:
    """Sorted distinct categories of the resolved members.

    Store categories are already normalized at ingestion.
    """
    categories: set[str] = set()
    for entity in resolve_members(members, entities):
        if entity.category and entity.category.strip():
            categories.add(entity.category.strip())
    return sorted(categories)


def validate_group_save(
    name: str,
    members: object,
    category: str | None,
    existing: Sequence[GroupDefinition],
    entities: Iterable[EntitySnapshot],
    group_id: int | None = None,
    category_map: Mapping[str, str] | None = None,
) -> GroupDefinition:
    """Check a create (``group_id is None``) or update and return the definition to store.

    Raises ``InvalidGroupError`` for a blank name or no members,
    ``CategoryRequiredError`` when members disagree on category and none was
    given, and ``DuplicateGroupNameError`` when another group uses the name.
    The category check runs first, so a save failing both reports the category.
    """
    name = (name or "").strip()
    if not name:
        raise InvalidGroupError("Missing group name")
    parsed = parse_group_members(members)
    if not parsed:
        raise InvalidGroupError("Select at least 1 member")

    chosen = (category or "").strip()
    resolved_category = normalize_category(chosen, category_map or {}) if chosen else None
    if resolved_category is None:
        candidates = distinct_member_categories(parsed, entities)
        if len(candidates) > 1:
            raise CategoryRequiredError(candidates)
        if candidates:
            resolved_category = candidates[0]

    for group in existing:
        if group.name == name and group.id != group_id:
            raise DuplicateGroupNameError(name)

    return GroupDefinition(id=group_id, name=name, category=resolved_category, members=parsed)


def remove_group(groups: Sequence[GroupDefinition], group_id: int) -> list[GroupDefinition]:
    return [group for group in groups if group.id != group_id]


def group_history(group: GroupDefinition, entities: Iterable[EntitySnapshot]) -> dict[str, Shares]:
    """Per-date total of a group's members; entities themselves are untouched."""
    return sum_histories(resolve_members(group.members, entities))
