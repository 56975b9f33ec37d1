"""Per-day flashcard usage counter kept in the local store."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from pydantic import TypeAdapter

from .local_store import USAGE_KEY, LocalStore
from .models import UsageRecord

logger = logging.getLogger(__name__)

_ADAPTER = TypeAdapter(UsageRecord)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UsageTracker:
    def __init__(
        self,
        store: LocalStore,
        zone: ZoneInfo,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._zone = zone
        self._clock = clock
        self._record: Optional[UsageRecord] = None

    def _today(self) -> date:
        return self._clock().astimezone(self._zone).date()

    @property
    def count(self) -> int:
        return self.load().count

    def load(self) -> UsageRecord:
        """Return today's record, resetting and persisting a stale one."""
        today = self._today()
        record = self._record or self._store.load(
            USAGE_KEY, _ADAPTER, lambda: UsageRecord(day=today, count=0)
        )
        if record.day != today:
            logger.debug("Usage record from %s is stale; starting %s at zero", record.day, today)
            record = UsageRecord(day=today, count=0)
            self._store.save(USAGE_KEY, record, _ADAPTER)
        self._record = record
        return record

    def increment(self) -> UsageRecord:
        current = self.load()
        self._record = UsageRecord(day=current.day, count=current.count + 1)
        self._store.save(USAGE_KEY, self._record, _ADAPTER)
        return self._record

    def set_count(self, count: int) -> UsageRecord:
        self._record = UsageRecord(day=self._today(), count=max(0, count))
        self._store.save(USAGE_KEY, self._record, _ADAPTER)
        return self._record

    def reset(self) -> UsageRecord:
        return self.set_count(0)


__all__ = ["UsageTracker"]
