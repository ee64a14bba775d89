"""Storage tier implementations backing the tiered store."""
from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path
from typing import Any

from shareholder_tracker.domain.errors import QuotaExceededError


class FileFastTier:
    """Small string store kept in a single JSON file, with a total byte quota.

    Writes that would push the stored total past ``quota_bytes`` raise
    ``QuotaExceededError`` and leave the previous value in place.
    """

    def __init__(self, path: Path, quota_bytes: int) -> None:
        self._path = Path(path)
        self._quota = quota_bytes

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return {}
        return data if isinstance(data, dict) else {}

    def _dump(self, items: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(items, ensure_ascii=False), encoding="utf-8")

    def get(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        items = self._load()
        used = sum(len(str(v).encode("utf-8")) for k, v in items.items() if k != key)
        if used + len(value.encode("utf-8")) > self._quota:
            raise QuotaExceededError(f"Fast tier quota of {self._quota} bytes exceeded writing {key!r}")
        items[key] = value
        self._dump(items)

    def remove(self, key: str) -> None:
        items = self._load()
        if items.pop(key, None) is not None:
            self._dump(items)


def _safe_name(value: str) -> str:
    sanitized = re.sub(r"[^0-9A-Za-z_.-]+", "_", value.strip())
    return sanitized or "item"


class FileSystemDurableStore:
    """JSON documents on disk, one file per ``namespace/key``.

    Blocking file I/O runs in a worker thread so callers on the event loop
    only suspend while it completes.
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    def _path(self, namespace: str, key: str) -> Path:
        return self._root / _safe_name(namespace) / f"{_safe_name(key)}.json"

    def _read(self, namespace: str, key: str) -> Any | None:
        path = self._path(namespace, key)
        if not path.exists():
            return None
        document = json.loads(path.read_text(encoding="utf-8"))
        return document.get("data")

    def _write(self, namespace: str, key: str, value: Any) -> None:
        path = self._path(namespace, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps({"id": key, "data": value}, ensure_ascii=False), encoding="utf-8")
        tmp_path.replace(path)

    def _delete(self, namespace: str, key: str) -> None:
        path = self._path(namespace, key)
        if path.exists():
            path.unlink()

    async def get(self, namespace: str, key: str) -> Any | None:
        return await asyncio.to_thread(self._read, namespace, key)

    async def put(self, namespace: str, key: str, value: Any) -> None:
        await asyncio.to_thread(self._write, namespace, key, value)

    async def delete(self, namespace: str, key: str) -> None:
        await asyncio.to_thread(self._delete, namespace, key)
