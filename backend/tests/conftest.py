from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.exc import OperationalError

from learny.config import get_settings
from learny.models import Achievement, UserProfile
from learny.repositories.user_profiles import ProfileNotFoundError
from learny.telemetry import TelemetryEvent, clear_listeners, register_listener

STOCKHOLM = ZoneInfo("Europe/Stockholm")


def store_down() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("connection refused"))


class FakeProfileStore:
    """In-memory stand-in for the remote profile tables."""

    def __init__(self) -> None:
        self.profiles: Dict[str, UserProfile] = {}
        self.achievements: Dict[str, List[Achievement]] = {}
        self.activity: Dict[tuple[str, date], int] = {}
        self.streaks: List[tuple[str, int, Optional[date]]] = []
        self.usage_updates: List[tuple[str, int]] = []
        self.created: List[str] = []
        self.fail_with: Optional[Exception] = None

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def get_profile(self, user_id: str) -> UserProfile:
        self._check()
        if user_id not in self.profiles:
            raise ProfileNotFoundError(user_id)
        return self.profiles[user_id]

    def create_profile(self, user_id: str) -> UserProfile:
        self._check()
        profile = UserProfile(user_id=user_id)
        self.profiles[user_id] = profile
        self.created.append(user_id)
        return profile

    def list_achievements(self, user_id: str) -> List[Achievement]:
        self._check()
        return list(self.achievements.get(user_id, []))

    def add_achievement(self, user_id: str, achievement: Achievement) -> Achievement:
        self._check()
        stored = self.achievements.setdefault(user_id, [])
        for entry in stored:
            if entry.name == achievement.name:
                return entry
        stored.append(achievement)
        return achievement

    def mark_achievement_displayed(self, user_id: str, achievement_id: str) -> bool:
        self._check()
        stored = self.achievements.get(user_id, [])
        for position, entry in enumerate(stored):
            if entry.id == achievement_id:
                stored[position] = entry.model_copy(update={"displayed": True})
                return True
        return False

    def update_daily_usage(self, user_id: str, usage: int) -> None:
        self._check()
        self.usage_updates.append((user_id, usage))
        if user_id in self.profiles:
            self.profiles[user_id] = self.profiles[user_id].model_copy(update={"daily_usage": usage})

    def update_streak(self, user_id: str, current_streak: int, last_active_date: Optional[date]) -> None:
        self._check()
        self.streaks.append((user_id, current_streak, last_active_date))

    def record_study_activity(self, user_id: str, study_date: date, count: int) -> None:
        self._check()
        key = (user_id, study_date)
        self.activity[key] = self.activity.get(key, 0) + count


@pytest.fixture(autouse=True)
def _isolate_process_state():
    clear_listeners()
    get_settings.cache_clear()
    yield
    clear_listeners()
    get_settings.cache_clear()


@pytest.fixture
def events() -> List[TelemetryEvent]:
    captured: List[TelemetryEvent] = []
    register_listener(captured.append)
    return captured


@pytest.fixture
def remote() -> FakeProfileStore:
    return FakeProfileStore()
