"""Daily streak reconciliation for ``UserStats``.

"Today" is the calendar day in the configured learner timezone. The gap
between the last activity and today is counted in calendar days, so a day
that is 23 or 25 hours long because of a DST shift still counts as one day.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Dict, Literal, Optional, Tuple
from zoneinfo import ZoneInfo

from .models import UserStats

logger = logging.getLogger(__name__)

DAY_MS = 86_400_000

STREAK_MILESTONES: Dict[int, Tuple[str, str]] = {
    7: ("7-dagars Streak", "Du har studerat 7 dagar i rad!"),
    30: ("30-dagars Streak", "Du har studerat 30 dagar i rad!"),
}

StreakTransition = Literal["none", "touch", "increment", "reset", "start"]


@dataclass(frozen=True)
class StreakOutcome:
    stats: UserStats
    transition: StreakTransition
    milestone: Optional[int] = None

    @property
    def changed(self) -> bool:
        return self.transition != "none"


def to_epoch_ms(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def local_day(timestamp_ms: int, zone: ZoneInfo) -> date:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=zone).date()


def local_midnight(moment: datetime, zone: ZoneInfo) -> int:
    """Epoch milliseconds of the start of ``moment``'s day in ``zone``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    day = moment.astimezone(zone).date()
    return to_epoch_ms(datetime.combine(day, time.min, tzinfo=zone))


def is_valid_timestamp(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return False
    try:
        datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return False
    return True


def days_since_last_activity(last_activity: int, now: datetime, zone: ZoneInfo) -> int:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    today = now.astimezone(zone).date()
    return (today - local_day(last_activity, zone)).days


def _milestone_for(streak: int) -> Optional[int]:
    return streak if streak in STREAK_MILESTONES else None


def reconcile_streak(stats: UserStats, now: datetime, zone: ZoneInfo) -> StreakOutcome:
    """Apply the once-per-load streak transition. Never mutates ``stats``."""
    if stats.last_activity == 0 or not is_valid_timestamp(stats.last_activity):
        return StreakOutcome(stats=stats, transition="none")

    today_midnight = local_midnight(now, zone)
    delta = days_since_last_activity(stats.last_activity, now, zone)

    if delta < 0:
        logger.warning(
            "Last activity %s lies in the future relative to %s; leaving streak untouched",
            stats.last_activity,
            now.isoformat(),
        )
        return StreakOutcome(stats=stats, transition="none")

    if delta == 0:
        if stats.last_activity == today_midnight:
            return StreakOutcome(stats=stats, transition="none")
        updated = stats.model_copy(update={"last_activity": today_midnight}, deep=True)
        return StreakOutcome(stats=updated, transition="touch")

    if delta == 1:
        streak = stats.streak + 1
        updated = stats.model_copy(
            update={"streak": streak, "last_activity": today_midnight}, deep=True
        )
        return StreakOutcome(stats=updated, transition="increment", milestone=_milestone_for(streak))

    updated = stats.model_copy(update={"streak": 1, "last_activity": today_midnight}, deep=True)
    return StreakOutcome(stats=updated, transition="reset")


def register_activity(stats: UserStats, now: datetime, zone: ZoneInfo) -> StreakOutcome:
    """Record study activity at ``now``.

    This is the only path out of the never-active state. ``last_activity`` is
    stamped with the activity time itself rather than the day's midnight.
    """
    stamp = to_epoch_ms(now)
    if stats.last_activity == 0 or not is_valid_timestamp(stats.last_activity):
        updated = stats.model_copy(update={"streak": 1, "last_activity": stamp}, deep=True)
        return StreakOutcome(stats=updated, transition="start")

    delta = days_since_last_activity(stats.last_activity, now, zone)
    if delta < 0:
        logger.warning("Ignoring activity at %s older than stored last activity", now.isoformat())
        return StreakOutcome(stats=stats, transition="none")

    if delta == 0:
        streak = max(stats.streak, 1)
        updated = stats.model_copy(update={"streak": streak, "last_activity": stamp}, deep=True)
        return StreakOutcome(stats=updated, transition="touch")

    if delta == 1:
        streak = stats.streak + 1
        updated = stats.model_copy(update={"streak": streak, "last_activity": stamp}, deep=True)
        return StreakOutcome(stats=updated, transition="increment", milestone=_milestone_for(streak))

    updated = stats.model_copy(update={"streak": 1, "last_activity": stamp}, deep=True)
    return StreakOutcome(stats=updated, transition="reset")


__all__ = [
    "DAY_MS",
    "STREAK_MILESTONES",
    "StreakOutcome",
    "days_since_last_activity",
    "is_valid_timestamp",
    "local_day",
    "local_midnight",
    "register_activity",
    "reconcile_streak",
    "to_epoch_ms",
]
