"""Session-scoped facade over the remote profile tables."""

from __future__ import annotations

from datetime import date
from typing import List, Optional, Protocol

from .db.session import session_scope
from .models import Achievement, UserProfile
from .repositories.user_profiles import user_profiles


class RemoteProfileStore(Protocol):
    def get_profile(self, user_id: str) -> UserProfile: ...

    def create_profile(self, user_id: str) -> UserProfile: ...

    def list_achievements(self, user_id: str) -> List[Achievement]: ...

    def add_achievement(self, user_id: str, achievement: Achievement) -> Achievement: ...

    def mark_achievement_displayed(self, user_id: str, achievement_id: str) -> bool: ...

    def update_daily_usage(self, user_id: str, usage: int) -> None: ...

    def update_streak(
        self, user_id: str, current_streak: int, last_active_date: Optional[date]
    ) -> None: ...

    def record_study_activity(self, user_id: str, study_date: date, count: int) -> None: ...


class DatabaseProfileStore:
    """Runs each call in its own transaction against the configured database."""

    def get_profile(self, user_id: str) -> UserProfile:
        with session_scope(commit=False) as session:
            return user_profiles.get(session, user_id)

    def create_profile(self, user_id: str) -> UserProfile:
        with session_scope() as session:
            return user_profiles.create(session, user_id)

    def list_achievements(self, user_id: str) -> List[Achievement]:
        with session_scope(commit=False) as session:
            return user_profiles.list_achievements(session, user_id)

    def add_achievement(self, user_id: str, achievement: Achievement) -> Achievement:
        with session_scope() as session:
            return user_profiles.add_achievement(session, user_id, achievement)

    def mark_achievement_displayed(self, user_id: str, achievement_id: str) -> bool:
        with session_scope() as session:
            return user_profiles.mark_achievement_displayed(session, user_id, achievement_id)

    def update_daily_usage(self, user_id: str, usage: int) -> None:
        with session_scope() as session:
            user_profiles.update_daily_usage(session, user_id, usage)

    def update_streak(
        self, user_id: str, current_streak: int, last_active_date: Optional[date]
    ) -> None:
        with session_scope() as session:
            user_profiles.update_streak(session, user_id, current_streak, last_active_date)

    def record_study_activity(self, user_id: str, study_date: date, count: int) -> None:
        with session_scope() as session:
            user_profiles.record_study_activity(session, user_id, study_date, count)


__all__ = ["DatabaseProfileStore", "RemoteProfileStore"]
