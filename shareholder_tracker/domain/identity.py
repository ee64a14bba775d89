"""Identity resolution and display keys for shareholder records."""
from __future__ import annotations

import re
from collections import defaultdict
from typing import Mapping, Sequence

from .models import EntitySnapshot

_WHITESPACE = re.compile(r"\s+")
_PAN_PATTERN = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")


def normalize_pan(value: object) -> str | None:
    if value is None:
        return None
    s = _WHITESPACE.sub("", str(value)).upper()
    if not s or s == "NAN":
        return None
    return s


def canonical_key(name: str, pan: object = None) -> str:
    """PAN when present, otherwise the trimmed name."""
    normalized = normalize_pan(pan)
    if normalized:
        return normalized
    return str(name).strip()


def normalize_member_key(value: object) -> str:
    """Normalize a key that may or may not be a PAN.

    PAN-shaped values are uppercased and stripped of whitespace so they line
    up with canonical keys. A single ten-character alphanumeric token counts
    as PAN-shaped; multi-word names are only trimmed.
    """
    s = "" if value is None else str(value).strip()
    if not s:
        return ""
    compact = _WHITESPACE.sub("", s).upper()
    single_token = _WHITESPACE.search(s) is None
    if _PAN_PATTERN.match(compact) or (single_token and len(compact) == 10 and compact.isalnum()):
        return compact
    return s


def fund_group(name: str) -> str:
    words = str(name).split()
    if not words:
        return "UNKNOWN"
    return " ".join(words[:2]).upper()


def normalize_category(category: str | None, category_map: Mapping[str, str]) -> str | None:
    if not category:
        return category
    key = str(category).strip().upper()
    return category_map.get(key, str(category).strip())


def find_name_collisions(entities: Sequence[EntitySnapshot]) -> dict[str, list[str]]:
    """Names shared by entities with different canonical keys.

    Returns ``{folded name: [canonical keys]}`` for every name that maps to
    more than one key, so the ambiguity can be reconciled by hand.
    """
    by_name: dict[str, list[str]] = defaultdict(list)
    for entity in entities:
        if entity.is_aggregate:
            continue
        folded = _WHITESPACE.sub(" ", entity.name.strip()).casefold()
        if entity.canonical_key not in by_name[folded]:
            by_name[folded].append(entity.canonical_key)
    return {name: keys for name, keys in by_name.items() if len(keys) > 1}
