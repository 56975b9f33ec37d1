"""Application root joining remote profile sync with the local learner state."""

from __future__ import annotations

import asyncio
import logging
import re
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.exc import SQLAlchemyError

from .achievements import AchievementEmitter
from .auth import AuthProvider, AuthSession, AuthState
from .config import Settings
from .learner_state import ExamResult, LearnerState, StudySessionResult
from .local_store import LocalStore
from .models import Achievement, Flashcard, StatsPatch, UserStats
from .profile_sync import ProfileSynchronizer
from .remote_store import DatabaseProfileStore, RemoteProfileStore
from .streaks import StreakOutcome, is_valid_timestamp, local_day
from .usage import UsageTracker

logger = logging.getLogger(__name__)

_LEARNER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unsupported timezone %r; falling back to UTC", name)
        return ZoneInfo("UTC")


@dataclass
class StatsUpdate:
    stats: UserStats
    streak: StreakOutcome
    achievements: List[Achievement] = field(default_factory=list)


class AppState:
    """One learner's auth state, local state and achievement emitter."""

    def __init__(
        self,
        auth: AuthState,
        learner: LearnerState,
        emitter: AchievementEmitter,
        *,
        remote: Optional[RemoteProfileStore] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.auth = auth
        self.learner = learner
        self.emitter = emitter
        self._remote = remote
        self._clock = clock
        self.initialized = False

    async def initialize(
        self, session: Optional[AuthSession], now: Optional[datetime] = None
    ) -> StreakOutcome:
        """Load remote and local state concurrently, then reconcile once."""
        self.initialized = False
        await asyncio.gather(self.auth.initialize(session), self.learner.load_async())

        outcome = self.learner.reconcile(now or self._clock())
        self.emitter.bind_user(self.auth.user_id)
        if self.auth.achievements:
            added = self.learner.merge_achievements(self.auth.achievements)
            if added:
                logger.info("Merged %d remote achievements for %s", added, self.auth.user_id)
        await asyncio.to_thread(self.emitter.on_streak, outcome)
        if outcome.changed and not self.auth.sync_timed_out:
            await asyncio.to_thread(self.mirror_streak)
        self.initialized = True
        return outcome

    def teardown(self) -> None:
        self.auth.teardown()
        self.emitter.bind_user(None)
        self.initialized = False

    def mirror_streak(self) -> None:
        """Best-effort copy of the local streak onto the remote profile."""
        user_id = self.auth.user_id
        if self._remote is None or user_id is None:
            return
        stats = self.learner.stats
        last_active = (
            local_day(stats.last_activity, self.learner.zone)
            if is_valid_timestamp(stats.last_activity)
            else None
        )
        try:
            self._remote.update_streak(user_id, stats.streak, last_active)
        except SQLAlchemyError:
            logger.exception("Failed to mirror streak for %s", user_id)

    def _record_remote_activity(self, count: int, now: datetime) -> None:
        user_id = self.auth.user_id
        if self._remote is None or user_id is None or count <= 0:
            return
        try:
            self._remote.record_study_activity(user_id, now.astimezone(self.learner.zone).date(), count)
        except SQLAlchemyError:
            logger.exception("Failed to record study activity for %s", user_id)

    def update_stats(self, patch: StatsPatch, now: Optional[datetime] = None) -> StatsUpdate:
        outcome = self.learner.update_user_stats(patch, now or self._clock())
        earned = self.emitter.on_streak(outcome)
        if outcome.transition in ("start", "increment", "reset"):
            self.mirror_streak()
        return StatsUpdate(
            stats=self.learner.stats,
            streak=outcome,
            achievements=[earned] if earned else [],
        )

    def answer(self, flashcard_id: str, is_correct: bool, now: Optional[datetime] = None) -> Flashcard:
        return self.learner.record_answer(flashcard_id, is_correct, now or self._clock())

    def finish_study_session(
        self,
        correct: int,
        incorrect: int,
        *,
        program_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[StudySessionResult, List[Achievement]]:
        moment = now or self._clock()
        result = self.learner.finish_study_session(correct, incorrect, program_id=program_id, now=moment)
        earned: List[Achievement] = []
        streak_achievement = self.emitter.on_streak(result.streak)
        if streak_achievement:
            earned.append(streak_achievement)
        if program_id is not None:
            earned.extend(self.emitter.on_program_completed(program_id))
        self._record_remote_activity(correct + incorrect, moment)
        self.mirror_streak()
        return result, earned

    def complete_program(self, program_id: str) -> List[Achievement]:
        self.learner.mark_program_completed(program_id)
        return self.emitter.on_program_completed(program_id)

    def record_exam(self, program_id: str, score: int, total: int) -> Tuple[ExamResult, List[Achievement]]:
        result = self.learner.record_exam_result(program_id, score, total)
        return result, self.emitter.on_exam_result(result)


class LearnerRegistry:
    """Owns one ``AppState`` per learner id, each over its own local store directory."""

    def __init__(
        self,
        settings: Settings,
        *,
        remote: Optional[RemoteProfileStore] = None,
        provider: Optional[AuthProvider] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._settings = settings
        if remote is None and settings.database_url:
            remote = DatabaseProfileStore()
        self._remote = remote
        self._provider = provider
        self._clock = clock
        self._zone = resolve_zone(settings.timezone)
        self._root = Path(settings.local_store_dir)
        self._states: Dict[str, AppState] = {}
        self._lock = threading.RLock()

    @property
    def remote(self) -> Optional[RemoteProfileStore]:
        return self._remote

    def _build(self, learner_id: str) -> AppState:
        store = LocalStore(self._root / learner_id)
        usage = UsageTracker(store, self._zone, clock=self._clock)
        synchronizer = (
            ProfileSynchronizer(self._remote, timeout=self._settings.profile_sync_timeout)
            if self._remote is not None
            else None
        )
        auth = AuthState(
            self._provider,
            synchronizer,
            usage,
            remote=self._remote,
            password_reset_redirect=self._settings.password_reset_redirect,
        )
        learner = LearnerState(store, self._zone, clock=self._clock)
        emitter = AchievementEmitter(learner, self._remote)
        return AppState(auth, learner, emitter, remote=self._remote, clock=self._clock)

    def get(self, learner_id: str) -> AppState:
        if not _LEARNER_ID_PATTERN.match(learner_id):
            raise ValueError(f"Invalid learner id: {learner_id!r}")
        with self._lock:
            state = self._states.get(learner_id)
            if state is None:
                state = self._build(learner_id)
                self._states[learner_id] = state
            return state

    def peek(self, learner_id: str) -> Optional[AppState]:
        with self._lock:
            return self._states.get(learner_id)

    def remove(self, learner_id: str) -> bool:
        with self._lock:
            state = self._states.pop(learner_id, None)
        if state is None:
            return False
        state.teardown()
        return True

    def clear(self) -> None:
        with self._lock:
            states = list(self._states.values())
            self._states.clear()
        for state in states:
            state.teardown()


__all__ = ["AppState", "LearnerRegistry", "StatsUpdate", "resolve_zone"]
