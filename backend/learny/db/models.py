"""ORM models for the tables Learny reads and writes in the remote store."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from ..models import new_achievement_id
from .base import Base, TimestampMixin

JSONType = JSON


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserProfileModel(TimestampMixin, Base):
    __tablename__ = "user_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    subscription_tier: Mapped[str] = mapped_column(String(16), default="free", nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    daily_usage: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    current_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_active_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    achievements: Mapped[list["UserAchievementModel"]] = relationship(
        back_populates="profile", cascade="all, delete-orphan"
    )


class UserAchievementModel(Base):
    __tablename__ = "user_achievements"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_user_achievement_name"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_achievement_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    icon: Mapped[str] = mapped_column(String(64), default="trophy", nullable=False)
    date_earned: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    displayed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    profile: Mapped[UserProfileModel] = relationship(back_populates="achievements")


class FlashcardModuleModel(Base):
    __tablename__ = "flashcard_modules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    subcategory: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    is_generic: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    flashcards: Mapped[list["FlashcardModel"]] = relationship(back_populates="module")


class FlashcardModel(TimestampMixin, Base):
    __tablename__ = "flashcards"
    __table_args__ = (
        Index("ix_flashcards_category", "category"),
        Index("ix_flashcards_report_count", "report_count"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    subcategory: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    difficulty: Mapped[str] = mapped_column(String(16), default="beginner", nullable=False)
    correct_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    incorrect_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_reviewed: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    next_review: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    learned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    review_later: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    report_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    report_reason: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    is_approved: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    module_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("flashcard_modules.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)

    module: Mapped[Optional[FlashcardModuleModel]] = relationship(back_populates="flashcards")


class FlashcardSessionModel(Base):
    __tablename__ = "flashcard_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    subcategory: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    cards_studied: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    correct_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    incorrect_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class FlashcardInteractionModel(Base):
    __tablename__ = "flashcard_interactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    flashcard_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("flashcards.id", ondelete="CASCADE"), nullable=False, index=True
    )
    session_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("flashcard_sessions.id", ondelete="SET NULL"), nullable=True
    )
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    response_time_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )


class UserActivityModel(Base):
    __tablename__ = "user_activity"
    __table_args__ = (
        UniqueConstraint("user_id", "study_date", name="uq_user_activity_day"),
        Index("ix_user_activity_study_date", "study_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    study_date: Mapped[date] = mapped_column(Date, nullable=False)
    flashcards_studied: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


__all__ = [
    "FlashcardInteractionModel",
    "FlashcardModel",
    "FlashcardModuleModel",
    "FlashcardSessionModel",
    "UserAchievementModel",
    "UserActivityModel",
    "UserProfileModel",
]
