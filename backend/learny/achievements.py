"""Achievement emission: dedup by name, persist locally, mirror remotely, notify."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .learner_state import ExamResult, LearnerState
from .models import Achievement
from .remote_store import RemoteProfileStore
from .streaks import STREAK_MILESTONES, StreakOutcome
from .telemetry import notify_learner

logger = logging.getLogger(__name__)


class AchievementEmitter:
    def __init__(self, learner: LearnerState, remote: Optional[RemoteProfileStore] = None) -> None:
        self._learner = learner
        self._remote = remote
        self._user_id: Optional[str] = None

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    def bind_user(self, user_id: Optional[str]) -> None:
        """Mirror future achievements to ``user_id``'s remote record (None stops mirroring)."""
        self._user_id = user_id

    def add_achievement(self, name: str, description: str, icon: str = "trophy") -> Optional[Achievement]:
        """Create the achievement unless one with ``name`` already exists.

        Returns the new record, or None when it was a duplicate.
        """
        achievement = Achievement(name=name, description=description, icon=icon)
        if not self._learner.add_achievement_record(achievement):
            return None

        if self._remote is not None and self._user_id:
            try:
                self._remote.add_achievement(self._user_id, achievement)
            except SQLAlchemyError:
                logger.exception("Failed to mirror achievement %r for %s", name, self._user_id)

        notify_learner(
            "achievement_unlocked",
            self._user_id,
            "Ny prestation!",
            f"Du har låst upp: {name}",
            achievement_id=achievement.id,
            achievement_name=name,
        )
        return achievement

    def mark_achievement_displayed(self, achievement_id: str) -> Achievement:
        achievement = self._learner.mark_achievement_displayed(achievement_id)
        if self._remote is not None and self._user_id:
            try:
                self._remote.mark_achievement_displayed(self._user_id, achievement_id)
            except SQLAlchemyError:
                logger.exception(
                    "Failed to mark achievement %s displayed for %s", achievement_id, self._user_id
                )
        return achievement

    def on_streak(self, outcome: StreakOutcome) -> Optional[Achievement]:
        if outcome.milestone is None:
            return None
        name, description = STREAK_MILESTONES[outcome.milestone]
        return self.add_achievement(name, description, icon="flame")

    def on_program_completed(self, program_id: str) -> List[Achievement]:
        """Emit the completion achievement and, when earned, category mastery."""
        program = self._learner.require_program(program_id)
        earned: List[Achievement] = []

        completed = self.add_achievement(
            f"Slutfört: {program.name}",
            f"Du har slutfört programmet {program.name}!",
            icon="award",
        )
        if completed:
            earned.append(completed)

        if self._learner.is_category_mastered(program.category):
            category = self._learner.get_category(program.category)
            label = category.name if category else program.category
            mastery = self.add_achievement(
                f"Mästare i {label}",
                f"Du har slutfört alla program inom {label}!",
                icon="crown",
            )
            if mastery:
                earned.append(mastery)
        return earned

    def on_exam_result(self, result: ExamResult) -> List[Achievement]:
        if not result.passed:
            return []
        program = self._learner.require_program(result.program_id)
        earned: List[Achievement] = []
        passed = self.add_achievement(
            f"Klarat provet: {program.name}",
            f"Du har klarat provet för {program.name}!",
        )
        if passed:
            earned.append(passed)
        earned.extend(self.on_program_completed(result.program_id))
        return earned


__all__ = ["AchievementEmitter"]
