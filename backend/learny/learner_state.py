"""Locally persisted learner state: flashcards, programs, categories and stats."""

from __future__ import annotations

import asyncio
import json
import logging
import math
import re
import secrets
import string
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional
from zoneinfo import ZoneInfo

from pydantic import TypeAdapter, ValidationError

from .catalog import initial_categories, initial_flashcards, initial_programs, initial_user_stats
from .local_store import (
    CATEGORIES_KEY,
    FLASHCARDS_KEY,
    PROGRAMS_KEY,
    USER_STATS_KEY,
    LocalStore,
)
from .models import (
    Achievement,
    Category,
    Flashcard,
    FlashcardPatch,
    NewFlashcard,
    Program,
    StatsPatch,
    UserStats,
)
from .streaks import StreakOutcome, reconcile_streak, register_activity, to_epoch_ms

logger = logging.getLogger(__name__)

REVIEW_INTERVAL_DAYS = {1: 1, 2: 3, 3: 7}
RECENTLY_REVIEWED_LIMIT = 10
EXAM_PASS_RATIO = 0.7

_TOPIC_PATTERN = re.compile(r"^\[([^\]]+)\]")
_ID_ALPHABET = string.ascii_lowercase + string.digits

_FLASHCARDS = TypeAdapter(List[Flashcard])
_PROGRAMS = TypeAdapter(List[Program])
_CATEGORIES = TypeAdapter(List[Category])
_USER_STATS = TypeAdapter(UserStats)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _custom_card_id(now: datetime) -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
    return f"custom-{to_epoch_ms(now)}-{suffix}"


def passing_score(total: int) -> int:
    return math.ceil(total * EXAM_PASS_RATIO)


@dataclass(frozen=True)
class ExamResult:
    program_id: str
    score: int
    total: int
    required: int
    passed: bool
    newly_completed: bool


@dataclass(frozen=True)
class StudySessionResult:
    streak: StreakOutcome
    program_id: Optional[str]
    newly_completed: bool


class LearnerState:
    """State container for one learner's local data.

    Every mutation persists the key it touched. Reconciliation of the streak
    is allowed exactly once per ``load`` and only after it.
    """

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
        self._lock = threading.RLock()
        self.flashcards: List[Flashcard] = []
        self.programs: List[Program] = []
        self.categories: List[Category] = []
        self.stats: UserStats = initial_user_stats()
        self._loaded = False
        self._reconciled = False

    @property
    def zone(self) -> ZoneInfo:
        return self._zone

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def reconciled(self) -> bool:
        return self._reconciled

    # -- persistence -------------------------------------------------------

    def load(self) -> None:
        with self._lock:
            self.flashcards = self._store.load(
                FLASHCARDS_KEY, _FLASHCARDS, initial_flashcards, persist_default=True
            )
            self.programs = self._store.load(PROGRAMS_KEY, _PROGRAMS, initial_programs)
            self.categories = self._store.load(CATEGORIES_KEY, _CATEGORIES, initial_categories)
            self.stats = self._store.load(
                USER_STATS_KEY, _USER_STATS, initial_user_stats, persist_default=True
            )
            self._loaded = True
            self._reconciled = False
            logger.debug(
                "Loaded %d flashcards, %d programs for store %s",
                len(self.flashcards),
                len(self.programs),
                self._store.root,
            )

    async def load_async(self) -> None:
        await asyncio.to_thread(self.load)

    def _save_flashcards(self) -> None:
        self._store.save(FLASHCARDS_KEY, self.flashcards, _FLASHCARDS)

    def _save_programs(self) -> None:
        self._store.save(PROGRAMS_KEY, self.programs, _PROGRAMS)

    def _save_stats(self) -> None:
        self._store.save(USER_STATS_KEY, self.stats, _USER_STATS)

    def _now(self, now: Optional[datetime]) -> datetime:
        return now if now is not None else self._clock()

    # -- streaks -----------------------------------------------------------

    def reconcile(self, now: Optional[datetime] = None) -> StreakOutcome:
        with self._lock:
            if not self._loaded:
                raise RuntimeError("Learner state must be loaded before reconciling the streak.")
            if self._reconciled:
                return StreakOutcome(stats=self.stats, transition="none")
            outcome = reconcile_streak(self.stats, self._now(now), self._zone)
            self._reconciled = True
            if outcome.changed:
                self.stats = outcome.stats
                self._save_stats()
            return outcome

    def update_user_stats(self, patch: StatsPatch, now: Optional[datetime] = None) -> StreakOutcome:
        """Apply ``patch`` and record activity at ``now``."""
        with self._lock:
            outcome = register_activity(patch.apply(self.stats), self._now(now), self._zone)
            self.stats = outcome.stats
            self._save_stats()
            return outcome

    # -- flashcard queries -------------------------------------------------

    def get_flashcard(self, flashcard_id: str) -> Flashcard:
        for card in self.flashcards:
            if card.id == flashcard_id:
                return card
        raise LookupError(f"Flashcard '{flashcard_id}' was not found.")

    def get_flashcards_by_category(self, category: str) -> List[Flashcard]:
        return [card for card in self.flashcards if card.category == category]

    def get_topics_by_category(self, category: str) -> List[str]:
        topics: dict[str, None] = {}
        for card in self.get_flashcards_by_category(category):
            match = _TOPIC_PATTERN.match(card.question)
            if match:
                topics.setdefault(match.group(1), None)
        return list(topics)

    def get_due_flashcards(self, now: Optional[datetime] = None) -> List[Flashcard]:
        now_ms = to_epoch_ms(self._now(now))
        due = [card for card in self.flashcards if (card.next_review or 0) <= now_ms]
        return sorted(due, key=lambda card: card.next_review or 0)

    def get_recently_reviewed_flashcards(self, limit: int = RECENTLY_REVIEWED_LIMIT) -> List[Flashcard]:
        reviewed = [card for card in self.flashcards if card.last_reviewed]
        reviewed.sort(key=lambda card: card.last_reviewed or 0, reverse=True)
        return reviewed[:limit]

    # -- flashcard mutations -----------------------------------------------

    def _replace_card(self, updated: Flashcard) -> Flashcard:
        self.flashcards = [updated if card.id == updated.id else card for card in self.flashcards]
        self._save_flashcards()
        return updated

    def mark_reviewed(
        self, flashcard_id: str, knowledge_level: int, now: Optional[datetime] = None
    ) -> Flashcard:
        if knowledge_level not in REVIEW_INTERVAL_DAYS:
            raise ValueError(f"Knowledge level must be 1, 2 or 3, got {knowledge_level}.")
        with self._lock:
            card = self.get_flashcard(flashcard_id)
            reviewed_at = self._now(now)
            next_review = reviewed_at + timedelta(days=REVIEW_INTERVAL_DAYS[knowledge_level])
            updated = card.model_copy(
                update={
                    "last_reviewed": to_epoch_ms(reviewed_at),
                    "next_review": to_epoch_ms(next_review),
                    "review_count": (card.review_count or 0) + 1,
                    "knowledge_level": knowledge_level,
                }
            )
            return self._replace_card(updated)

    def add_flashcard(self, card: NewFlashcard, now: Optional[datetime] = None) -> Flashcard:
        with self._lock:
            created = Flashcard(id=_custom_card_id(self._now(now)), **card.model_dump())
            self.flashcards = [*self.flashcards, created]
            self._save_flashcards()
            return created

    def delete_flashcard(self, flashcard_id: str) -> bool:
        with self._lock:
            remaining = [card for card in self.flashcards if card.id != flashcard_id]
            if len(remaining) == len(self.flashcards):
                return False
            self.flashcards = remaining
            self._save_flashcards()
            return True

    def edit_flashcard(self, flashcard_id: str, patch: FlashcardPatch) -> Flashcard:
        with self._lock:
            return self._replace_card(patch.apply(self.get_flashcard(flashcard_id)))

    def reset_progress(self) -> None:
        with self._lock:
            cleared = {"last_reviewed": None, "next_review": None, "review_count": None, "knowledge_level": None}
            self.flashcards = [card.model_copy(update=cleared) for card in self.flashcards]
            self._save_flashcards()

    def export_flashcards(self) -> str:
        payload = _FLASHCARDS.dump_python(self.flashcards, mode="json", by_alias=True)
        return json.dumps(payload, ensure_ascii=False)

    def import_flashcards(self, data: str) -> bool:
        """Replace every flashcard with the JSON array in ``data``.

        Returns False and leaves the current cards untouched when ``data``
        is not a valid flashcard array.
        """
        try:
            cards = _FLASHCARDS.validate_json(data)
        except (ValidationError, ValueError):
            logger.warning("Rejected flashcard import of %d bytes", len(data))
            return False
        with self._lock:
            self.flashcards = cards
            self._save_flashcards()
        return True

    def record_answer(
        self, flashcard_id: str, is_correct: bool, now: Optional[datetime] = None
    ) -> Flashcard:
        with self._lock:
            card = self.get_flashcard(flashcard_id)
            field = "correct_count" if is_correct else "incorrect_count"
            updated = card.model_copy(
                update={
                    field: getattr(card, field) + 1,
                    "last_reviewed": to_epoch_ms(self._now(now)),
                }
            )
            return self._replace_card(updated)

    def set_learned(self, flashcard_id: str, learned: bool) -> Flashcard:
        with self._lock:
            card = self.get_flashcard(flashcard_id)
            if card.learned == learned:
                return card
            delta = 1 if learned else -1
            self.stats = self.stats.model_copy(
                update={"cards_learned": max(0, self.stats.cards_learned + delta)}
            )
            self._save_stats()
            return self._replace_card(card.model_copy(update={"learned": learned}))

    def set_review_later(self, flashcard_id: str, review_later: bool) -> Flashcard:
        with self._lock:
            card = self.get_flashcard(flashcard_id)
            return self._replace_card(card.model_copy(update={"review_later": review_later}))

    def report_flashcard(self, flashcard_id: str, reason: str) -> Flashcard:
        trimmed = reason.strip()
        if not trimmed:
            raise ValueError("Report reason cannot be empty.")
        with self._lock:
            card = self.get_flashcard(flashcard_id)
            updated = card.model_copy(
                update={
                    "report_count": card.report_count + 1,
                    "report_reason": [*card.report_reason, trimmed],
                }
            )
            return self._replace_card(updated)

    # -- programs and categories -------------------------------------------

    def get_program(self, program_id: str) -> Optional[Program]:
        return next((program for program in self.programs if program.id == program_id), None)

    def require_program(self, program_id: str) -> Program:
        program = self.get_program(program_id)
        if program is None:
            raise LookupError(f"Program '{program_id}' was not found.")
        return program

    def get_flashcards_by_program(self, program_id: str) -> List[Flashcard]:
        program = self.get_program(program_id)
        if program is None:
            return []
        by_id = {card.id: card for card in self.flashcards}
        return [by_id[card_id] for card_id in program.flashcards if card_id in by_id]

    def get_programs_by_category(self, category_id: str) -> List[Program]:
        return [program for program in self.programs if program.category == category_id]

    def get_category(self, category_id: str) -> Optional[Category]:
        return next((category for category in self.categories if category.id == category_id), None)

    def mark_program_completed(self, program_id: str) -> bool:
        """Add ``program_id`` to the completed set; True when it was not there yet."""
        with self._lock:
            self.require_program(program_id)
            if program_id in self.stats.completed_programs:
                return False
            self.stats = self.stats.model_copy(
                update={"completed_programs": [*self.stats.completed_programs, program_id]}
            )
            self._save_stats()
            return True

    def is_category_mastered(self, category_id: str) -> bool:
        programs = self.get_programs_by_category(category_id)
        completed = set(self.stats.completed_programs)
        return bool(programs) and all(program.id in completed for program in programs)

    def finish_study_session(
        self,
        correct: int,
        incorrect: int,
        *,
        program_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> StudySessionResult:
        if correct < 0 or incorrect < 0:
            raise ValueError("Session answer counts cannot be negative.")
        with self._lock:
            if program_id is not None:
                self.require_program(program_id)
            patch = StatsPatch(
                total_correct=self.stats.total_correct + correct,
                total_incorrect=self.stats.total_incorrect + incorrect,
                cards_learned=self.stats.cards_learned + correct,
            )
            outcome = self.update_user_stats(patch, now)
            newly_completed = self.mark_program_completed(program_id) if program_id else False
            return StudySessionResult(streak=outcome, program_id=program_id, newly_completed=newly_completed)

    def record_exam_result(self, program_id: str, score: int, total: int) -> ExamResult:
        if total <= 0:
            raise ValueError("An exam needs at least one question.")
        if not 0 <= score <= total:
            raise ValueError(f"Score {score} is outside 0..{total}.")
        with self._lock:
            self.require_program(program_id)
            required = passing_score(total)
            passed = score >= required
            newly_completed = self.mark_program_completed(program_id) if passed else False
            return ExamResult(
                program_id=program_id,
                score=score,
                total=total,
                required=required,
                passed=passed,
                newly_completed=newly_completed,
            )

    # -- achievements ------------------------------------------------------

    def add_achievement_record(self, achievement: Achievement) -> bool:
        with self._lock:
            if self.stats.has_achievement(achievement.name):
                return False
            self.stats = self.stats.model_copy(
                update={"achievements": [*self.stats.achievements, achievement]}
            )
            self._save_stats()
            return True

    def mark_achievement_displayed(self, achievement_id: str) -> Achievement:
        with self._lock:
            existing = self.stats.find_achievement(achievement_id)
            if existing is None:
                raise LookupError(f"Achievement '{achievement_id}' was not found.")
            if existing.displayed:
                return existing
            updated = existing.model_copy(update={"displayed": True})
            self.stats = self.stats.model_copy(
                update={
                    "achievements": [
                        updated if entry.id == achievement_id else entry
                        for entry in self.stats.achievements
                    ]
                }
            )
            self._save_stats()
            return updated

    def merge_achievements(self, remote: Iterable[Achievement]) -> int:
        """Fold remote achievements into local stats, deduplicated by name.

        A remote record that is already displayed also marks the local
        record of the same name as displayed. Returns the number added.
        """
        with self._lock:
            merged = list(self.stats.achievements)
            index = {entry.name: position for position, entry in enumerate(merged)}
            added = 0
            changed = False
            for entry in remote:
                position = index.get(entry.name)
                if position is None:
                    index[entry.name] = len(merged)
                    merged.append(entry.model_copy())
                    added += 1
                    changed = True
                elif entry.displayed and not merged[position].displayed:
                    merged[position] = merged[position].model_copy(update={"displayed": True})
                    changed = True
            if changed:
                self.stats = self.stats.model_copy(update={"achievements": merged})
                self._save_stats()
            return added


__all__ = [
    "EXAM_PASS_RATIO",
    "ExamResult",
    "LearnerState",
    "REVIEW_INTERVAL_DAYS",
    "StudySessionResult",
    "passing_score",
]
