"""Database-backed user profile, achievement and activity repository."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..db.models import UserAchievementModel, UserActivityModel, UserProfileModel
from ..models import Achievement, UserProfile
from ..tiers import normalize_tier


class ProfileNotFoundError(LookupError):
    """Raised when a profile lookup matches zero rows."""


class ActivityDay(BaseModel):
    day: date
    active_users: int = 0
    flashcards_studied: int = 0


def _normalize_user_id(user_id: str) -> str:
    normalized = user_id.strip()
    if not normalized:
        raise ValueError("User id cannot be empty.")
    return normalized


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UserProfileRepository:
    def get(self, session: Session, user_id: str) -> UserProfile:
        model = session.get(UserProfileModel, _normalize_user_id(user_id))
        if model is None:
            raise ProfileNotFoundError(f"User profile '{user_id}' does not exist.")
        return self._to_domain(model)

    def create(self, session: Session, user_id: str) -> UserProfile:
        model = UserProfileModel(
            id=_normalize_user_id(user_id),
            subscription_tier="free",
            is_admin=False,
            daily_usage=0,
        )
        session.add(model)
        session.flush()
        return self._to_domain(model)

    def update_daily_usage(self, session: Session, user_id: str, usage: int) -> UserProfile:
        model = self._require_model(session, user_id)
        model.daily_usage = max(0, usage)
        session.flush()
        return self._to_domain(model)

    def reset_daily_usage(self, session: Session) -> int:
        result = session.execute(
            update(UserProfileModel).where(UserProfileModel.daily_usage != 0).values(daily_usage=0)
        )
        return result.rowcount or 0

    def update_streak(
        self,
        session: Session,
        user_id: str,
        current_streak: int,
        last_active_date: Optional[date],
    ) -> UserProfile:
        model = self._require_model(session, user_id)
        model.current_streak = max(0, current_streak)
        model.longest_streak = max(model.longest_streak, model.current_streak)
        model.last_active_date = last_active_date
        session.flush()
        return self._to_domain(model)

    def list_achievements(self, session: Session, user_id: str) -> List[Achievement]:
        stmt = (
            select(UserAchievementModel)
            .where(UserAchievementModel.user_id == _normalize_user_id(user_id))
            .order_by(UserAchievementModel.date_earned, UserAchievementModel.id)
        )
        return [self._achievement_to_domain(model) for model in session.execute(stmt).scalars()]

    def add_achievement(self, session: Session, user_id: str, achievement: Achievement) -> Achievement:
        """Insert ``achievement`` unless one with the same name exists; return the stored row."""
        normalized = _normalize_user_id(user_id)
        stmt = select(UserAchievementModel).where(
            UserAchievementModel.user_id == normalized,
            UserAchievementModel.name == achievement.name,
        )
        existing = session.execute(stmt).scalar_one_or_none()
        if existing is not None:
            return self._achievement_to_domain(existing)

        model = UserAchievementModel(
            id=achievement.id,
            user_id=normalized,
            name=achievement.name,
            description=achievement.description,
            icon=achievement.icon,
            date_earned=achievement.date_earned,
            displayed=achievement.displayed,
        )
        session.add(model)
        session.flush()
        return self._achievement_to_domain(model)

    def mark_achievement_displayed(self, session: Session, user_id: str, achievement_id: str) -> bool:
        stmt = select(UserAchievementModel).where(
            UserAchievementModel.user_id == _normalize_user_id(user_id),
            UserAchievementModel.id == achievement_id,
        )
        model = session.execute(stmt).scalar_one_or_none()
        if model is None:
            return False
        if not model.displayed:
            model.displayed = True
            session.flush()
        return True

    def record_study_activity(self, session: Session, user_id: str, study_date: date, count: int) -> int:
        """Atomically add ``count`` studied cards to the user's row for ``study_date``."""
        normalized = _normalize_user_id(user_id)
        result = session.execute(
            update(UserActivityModel)
            .where(
                UserActivityModel.user_id == normalized,
                UserActivityModel.study_date == study_date,
            )
            .values(flashcards_studied=UserActivityModel.flashcards_studied + count)
        )
        if not result.rowcount:
            session.add(
                UserActivityModel(user_id=normalized, study_date=study_date, flashcards_studied=count)
            )
        session.flush()
        stmt = select(UserActivityModel.flashcards_studied).where(
            UserActivityModel.user_id == normalized,
            UserActivityModel.study_date == study_date,
        )
        return int(session.execute(stmt).scalar_one())

    def get_user_activity(self, session: Session, start_date: date, days: int) -> List[ActivityDay]:
        if days <= 0:
            return []
        end_date = start_date + timedelta(days=days)
        stmt = (
            select(
                UserActivityModel.study_date,
                func.count(func.distinct(UserActivityModel.user_id)),
                func.coalesce(func.sum(UserActivityModel.flashcards_studied), 0),
            )
            .where(
                UserActivityModel.study_date >= start_date,
                UserActivityModel.study_date < end_date,
            )
            .group_by(UserActivityModel.study_date)
        )
        totals = {row[0]: (int(row[1]), int(row[2])) for row in session.execute(stmt)}
        series: List[ActivityDay] = []
        for offset in range(days):
            day = start_date + timedelta(days=offset)
            active, studied = totals.get(day, (0, 0))
            series.append(ActivityDay(day=day, active_users=active, flashcards_studied=studied))
        return series

    def _require_model(self, session: Session, user_id: str) -> UserProfileModel:
        model = session.get(UserProfileModel, _normalize_user_id(user_id))
        if model is None:
            raise ProfileNotFoundError(f"User profile '{user_id}' does not exist.")
        return model

    @staticmethod
    def _to_domain(model: UserProfileModel) -> UserProfile:
        return UserProfile(
            user_id=model.id,
            subscription_tier=normalize_tier(model.subscription_tier),
            is_admin=bool(model.is_admin),
            daily_usage=max(0, model.daily_usage or 0),
            current_streak=model.current_streak or 0,
            longest_streak=model.longest_streak or 0,
            last_active_date=model.last_active_date,
        )

    @staticmethod
    def _achievement_to_domain(model: UserAchievementModel) -> Achievement:
        return Achievement(
            id=model.id,
            name=model.name,
            description=model.description or "",
            icon=model.icon or "trophy",
            date_earned=_as_utc(model.date_earned),
            displayed=bool(model.displayed),
        )


user_profiles = UserProfileRepository()

__all__ = [
    "ActivityDay",
    "ProfileNotFoundError",
    "UserProfileRepository",
    "user_profiles",
]
