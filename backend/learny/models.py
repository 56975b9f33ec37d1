"""Learner-facing domain models shared by the local and the remote store."""

from __future__ import annotations

import math
import uuid
from datetime import date, datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Difficulty = Literal["beginner", "intermediate", "advanced", "expert"]
SubscriptionTier = Literal["free", "premium", "super"]

DIFFICULTIES: tuple[str, ...] = ("beginner", "intermediate", "advanced", "expert")
INVALID_TIMESTAMP = -1


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_achievement_id() -> str:
    return f"achievement-{uuid.uuid4().hex[:16]}"


class _ClientRecord(BaseModel):
    """Records persisted in the web client's camelCase JSON layout."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Achievement(_ClientRecord):
    id: str = Field(default_factory=new_achievement_id)
    name: str = Field(..., min_length=1)
    description: str = ""
    icon: str = "trophy"
    date_earned: datetime = Field(default_factory=_now)
    displayed: bool = False

    @field_validator("date_earned", mode="before")
    @classmethod
    def _accept_epoch_millis(cls, value: Any) -> Any:
        # Older local caches stored dateEarned as epoch milliseconds.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        return value


class UserStats(_ClientRecord):
    streak: int = Field(default=0, ge=0)
    last_activity: int = 0
    total_correct: int = Field(default=0, ge=0)
    total_incorrect: int = Field(default=0, ge=0)
    cards_learned: int = Field(default=0, ge=0)
    completed_programs: List[str] = Field(default_factory=list)
    achievements: List[Achievement] = Field(default_factory=list)

    @field_validator("last_activity", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> int:
        if value is None:
            return 0
        if isinstance(value, bool):
            return INVALID_TIMESTAMP
        if isinstance(value, (int, float)):
            return int(value) if math.isfinite(value) else INVALID_TIMESTAMP
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            return int(value.strip())
        return INVALID_TIMESTAMP

    @field_validator("cards_learned", mode="before")
    @classmethod
    def _clamp_cards_learned(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return max(0, value)
        return value

    @field_validator("completed_programs")
    @classmethod
    def _dedupe_programs(cls, value: List[str]) -> List[str]:
        seen: dict[str, None] = {}
        for program_id in value:
            seen.setdefault(program_id, None)
        return list(seen)

    def has_achievement(self, name: str) -> bool:
        return any(entry.name == name for entry in self.achievements)

    def find_achievement(self, achievement_id: str) -> Optional[Achievement]:
        for entry in self.achievements:
            if entry.id == achievement_id:
                return entry
        return None


class Flashcard(_ClientRecord):
    id: str
    question: str
    answer: str
    category: str
    subcategory: Optional[str] = None
    difficulty: Difficulty = "beginner"
    correct_count: int = Field(default=0, ge=0)
    incorrect_count: int = Field(default=0, ge=0)
    last_reviewed: Optional[int] = None
    next_review: Optional[int] = None
    review_count: Optional[int] = None
    knowledge_level: Optional[int] = None
    learned: bool = False
    review_later: bool = False
    report_count: int = Field(default=0, ge=0)
    report_reason: List[str] = Field(default_factory=list)
    is_approved: bool = True


class NewFlashcard(BaseModel):
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    subcategory: Optional[str] = None
    difficulty: Difficulty = "beginner"


class Program(_ClientRecord):
    id: str
    name: str
    description: str = ""
    category: str
    difficulty: Difficulty = "beginner"
    flashcards: List[str] = Field(default_factory=list)
    has_exam: bool = False


class Category(_ClientRecord):
    id: str
    name: str
    icon: Optional[str] = None
    description: Optional[str] = None


class UsageRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day: date = Field(..., alias="date")
    count: int = Field(default=0, ge=0)


class UserProfile(BaseModel):
    """Remote profile row as seen by the learner state layer."""

    user_id: str
    subscription_tier: SubscriptionTier = "free"
    is_admin: bool = False
    daily_usage: int = Field(default=0, ge=0)
    current_streak: int = 0
    longest_streak: int = 0
    last_active_date: Optional[date] = None


class StatsPatch(BaseModel):
    """Recognised partial updates to ``UserStats``."""

    model_config = ConfigDict(extra="forbid")

    streak: Optional[int] = Field(default=None, ge=0)
    total_correct: Optional[int] = Field(default=None, ge=0)
    total_incorrect: Optional[int] = Field(default=None, ge=0)
    cards_learned: Optional[int] = Field(default=None, ge=0)

    def apply(self, stats: UserStats) -> UserStats:
        updates = self.model_dump(exclude_unset=True, exclude_none=True)
        return stats.model_copy(update=updates, deep=True)


class FlashcardPatch(BaseModel):
    """Recognised edits to a single flashcard."""

    model_config = ConfigDict(extra="forbid")

    question: Optional[str] = Field(default=None, min_length=1)
    answer: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, min_length=1)
    subcategory: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    learned: Optional[bool] = None
    review_later: Optional[bool] = None

    def apply(self, card: Flashcard) -> Flashcard:
        updates = self.model_dump(exclude_unset=True)
        # subcategory is the only field that may be cleared explicitly.
        updates = {key: value for key, value in updates.items() if value is not None or key == "subcategory"}
        return card.model_copy(update=updates, deep=True)


__all__ = [
    "Achievement",
    "Category",
    "DIFFICULTIES",
    "Difficulty",
    "Flashcard",
    "FlashcardPatch",
    "INVALID_TIMESTAMP",
    "NewFlashcard",
    "Program",
    "StatsPatch",
    "SubscriptionTier",
    "UsageRecord",
    "UserProfile",
    "UserStats",
    "new_achievement_id",
]
