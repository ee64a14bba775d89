"""Capacity-tiered key/value store: a fast size-limited tier over a durable one."""
from __future__ import annotations

import json
import logging
from typing import Any

from shareholder_tracker.domain.errors import QuotaExceededError
from shareholder_tracker.domain.repositories import DurableStore, FastTier

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "monthlyData"


class TieredStore:
    """Routes values by serialized size.

    Values under ``limit_bytes`` go to the fast tier; larger values, and
    values the fast tier refuses, go to the durable tier. Reads consult the
    fast tier first and always fall through to the durable tier on a miss.
    """

    def __init__(
        self,
        fast: FastTier,
        durable: DurableStore,
        limit_bytes: int,
        namespace: str = DEFAULT_NAMESPACE,
    ) -> None:
        self._fast = fast
        self._durable = durable
        self._limit = limit_bytes
        self._namespace = namespace

    async def set_item(self, key: str, value: Any) -> None:
        serialized = json.dumps(value, ensure_ascii=False)
        if len(serialized.encode("utf-8")) < self._limit:
            try:
                self._fast.set(key, serialized)
                return
            except (QuotaExceededError, OSError) as exc:
                logger.warning("Fast tier refused %r (%s); writing to durable tier", key, exc)
        # Evict so a later read cannot return an older fast-tier copy.
        try:
            self._fast.remove(key)
        except OSError as exc:
            logger.warning("Could not evict %r from fast tier (%s)", key, exc)
        await self._durable.put(self._namespace, key, value)

    async def get_item(self, key: str) -> Any | None:
        try:
            local = self._fast.get(key)
        except OSError as exc:
            logger.warning("Fast tier unreadable for %r (%s); trying durable tier", key, exc)
            local = None
        if local:
            try:
                return json.loads(local)
            except json.JSONDecodeError:
                logger.warning("Unreadable fast-tier value for %r; trying durable tier", key)
        return await self._durable.get(self._namespace, key)

    async def remove_item(self, key: str) -> None:
        try:
            self._fast.remove(key)
        except OSError as exc:
            logger.warning("Could not remove %r from fast tier (%s)", key, exc)
        await self._durable.delete(self._namespace, key)
