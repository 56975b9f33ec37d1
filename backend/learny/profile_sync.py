"""Fetch-or-create of the remote user profile, bounded by a deadline."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .config import get_settings
from .deadline import with_deadline
from .models import Achievement, UserProfile
from .remote_store import RemoteProfileStore
from .repositories.user_profiles import ProfileNotFoundError
from .telemetry import emit_event

logger = logging.getLogger(__name__)


class RemoteProfileSnapshot(BaseModel):
    profile: UserProfile
    achievements: List[Achievement] = Field(default_factory=list)
    created: bool = False
    timed_out: bool = False
    source: Literal["remote", "default"] = "remote"

    @classmethod
    def defaults(cls, user_id: str, *, timed_out: bool = False) -> "RemoteProfileSnapshot":
        return cls(profile=UserProfile(user_id=user_id), timed_out=timed_out, source="default")


class ProfileSynchronizer:
    def __init__(self, store: RemoteProfileStore, *, timeout: Optional[float] = None) -> None:
        self._store = store
        self._timeout = timeout if timeout is not None else get_settings().profile_sync_timeout

    @property
    def timeout(self) -> float:
        return self._timeout

    def fetch(self, user_id: str) -> RemoteProfileSnapshot:
        """Load the profile, creating it with defaults when no row exists.

        Only a zero-row lookup triggers creation; every other store error
        propagates to the caller.
        """
        created = False
        try:
            profile = self._store.get_profile(user_id)
        except ProfileNotFoundError:
            logger.info("No profile found for %s; creating one with defaults", user_id)
            profile = self._store.create_profile(user_id)
            created = True
            emit_event("profile_created", user_id=user_id)

        achievements = self._store.list_achievements(user_id)
        return RemoteProfileSnapshot(profile=profile, achievements=achievements, created=created)

    async def fetch_async(self, user_id: str) -> RemoteProfileSnapshot:
        return await asyncio.to_thread(self.fetch, user_id)

    async def sync(self, user_id: str) -> RemoteProfileSnapshot:
        outcome = await with_deadline(self.fetch_async(user_id), self._timeout)
        if outcome.timed_out or outcome.value is None:
            logger.warning(
                "Profile fetch for %s exceeded %.1fs; continuing with default profile",
                user_id,
                self._timeout,
            )
            emit_event("profile_sync_timed_out", user_id=user_id, timeout_seconds=self._timeout)
            return RemoteProfileSnapshot.defaults(user_id, timed_out=True)
        return outcome.value


__all__ = ["ProfileSynchronizer", "RemoteProfileSnapshot"]
