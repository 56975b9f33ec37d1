"""Authentication session and the remote-profile fields derived from it."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Literal, Optional, Protocol

from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from .deadline import PendingTask
from .models import Achievement, SubscriptionTier
from .profile_sync import ProfileSynchronizer, RemoteProfileSnapshot
from .remote_store import RemoteProfileStore
from .telemetry import emit_event, notify_learner
from .tiers import DEFAULT_TIER
from .usage import UsageTracker

logger = logging.getLogger(__name__)

OAuthProvider = Literal["google", "apple"]

_NOT_CONFIGURED_MESSAGE = "Authentication is not configured."


class AuthSession(BaseModel):
    user_id: str = Field(..., min_length=1)
    access_token: Optional[str] = None
    email: Optional[str] = None


class AuthResult(BaseModel):
    """Outcome of an auth call. Failures are reported through ``error``, never raised."""

    error: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AuthProvider(Protocol):
    def sign_in(self, email: str, password: str) -> AuthResult: ...

    def sign_up(self, email: str, password: str) -> AuthResult: ...

    def sign_out(self) -> AuthResult: ...

    def reset_password(self, email: str, redirect_to: str) -> AuthResult: ...

    def update_password(self, password: str) -> AuthResult: ...

    def sign_in_with_provider(self, provider: OAuthProvider) -> AuthResult: ...


class AuthState:
    """Holds the signed-in session plus tier, admin flag and daily usage.

    Every ``initialize`` or ``teardown`` starts a new generation. A profile
    sync that finishes after its generation has been superseded is dropped
    without touching any field.
    """

    def __init__(
        self,
        provider: Optional[AuthProvider],
        synchronizer: Optional[ProfileSynchronizer],
        usage: UsageTracker,
        *,
        remote: Optional[RemoteProfileStore] = None,
        password_reset_redirect: str = "",
    ) -> None:
        self._provider = provider
        self._synchronizer = synchronizer
        self._usage = usage
        self._remote = remote
        self._password_reset_redirect = password_reset_redirect
        self._generation = 0
        self._pending: Optional[PendingTask[RemoteProfileSnapshot]] = None

        self.session: Optional[AuthSession] = None
        self.is_loading = True
        self.tier: SubscriptionTier = DEFAULT_TIER
        self.is_admin = False
        self.achievements: List[Achievement] = []
        self.sync_timed_out = False

    @property
    def user_id(self) -> Optional[str]:
        return self.session.user_id if self.session else None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def daily_usage(self) -> int:
        # Read through so the count rolls over at local midnight.
        return self._usage.count

    def _reset_profile_fields(self) -> None:
        self.tier = DEFAULT_TIER
        self.is_admin = False
        self._usage.reset()
        self.achievements = []
        self.sync_timed_out = False

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done:
            self._pending.cancel()
        self._pending = None

    async def initialize(self, session: Optional[AuthSession]) -> Optional[RemoteProfileSnapshot]:
        """Adopt ``session`` and load its remote profile.

        Returns the applied snapshot, or None when there is no session or
        the result was superseded.
        """
        self._cancel_pending()
        self._generation += 1
        generation = self._generation
        self.session = session
        self.is_loading = True

        if session is None:
            self._reset_profile_fields()
            self.is_loading = False
            return None

        if self._synchronizer is None:
            logger.info("No remote profile store configured; %s gets the default profile", session.user_id)
            snapshot = RemoteProfileSnapshot.defaults(session.user_id)
            self._apply(snapshot, keep_local_usage=True)
            self.is_loading = False
            return snapshot

        task: PendingTask[RemoteProfileSnapshot] = PendingTask(
            self._synchronizer.sync(session.user_id), name=f"profile-sync-{session.user_id}"
        )
        self._pending = task
        try:
            snapshot = await task.wait()
        except asyncio.CancelledError:
            if task.cancelled and generation != self._generation:
                logger.info("Profile sync for %s was superseded", session.user_id)
                return None
            raise
        except Exception:  # noqa: BLE001
            logger.exception("Profile sync failed for %s; using default profile", session.user_id)
            notify_learner(
                "profile_sync_failed",
                session.user_id,
                "Kunde inte hämta profil",
                "Din profil kunde inte laddas. Standardinställningar används.",
                variant="destructive",
            )
            snapshot = RemoteProfileSnapshot.defaults(session.user_id)
        finally:
            if generation == self._generation:
                self._pending = None
                self.is_loading = False

        if generation != self._generation:
            logger.info("Dropping stale profile sync result for %s", session.user_id)
            return None

        self._apply(snapshot)
        return snapshot

    def _apply(self, snapshot: RemoteProfileSnapshot, *, keep_local_usage: bool = False) -> None:
        profile = snapshot.profile
        self.tier = profile.subscription_tier
        self.is_admin = profile.is_admin is True
        self.achievements = list(snapshot.achievements)
        self.sync_timed_out = snapshot.timed_out
        if snapshot.source == "remote":
            self._usage.set_count(profile.daily_usage)
        elif not keep_local_usage:
            # A timed-out or failed sync starts the day from the default profile.
            self._usage.reset()

    def teardown(self) -> None:
        """Cancel any in-flight sync and invalidate its result."""
        self._cancel_pending()
        self._generation += 1
        self.is_loading = False

    # -- usage -------------------------------------------------------------

    def _push_usage(self, count: int) -> None:
        user_id = self.user_id
        if self._remote is None or user_id is None:
            return
        try:
            self._remote.update_daily_usage(user_id, count)
        except SQLAlchemyError:
            logger.exception("Failed to update daily usage for %s", user_id)

    def increment_daily_usage(self) -> int:
        count = self._usage.increment().count
        self._push_usage(count)
        return count

    def reset_daily_usage(self) -> None:
        self._usage.reset()
        self._push_usage(0)

    # -- provider passthrough ----------------------------------------------

    def sign_in(self, email: str, password: str) -> AuthResult:
        if self._provider is None:
            return AuthResult(error=_NOT_CONFIGURED_MESSAGE)
        return self._provider.sign_in(email, password)

    def sign_up(self, email: str, password: str) -> AuthResult:
        if self._provider is None:
            return AuthResult(error=_NOT_CONFIGURED_MESSAGE)
        return self._provider.sign_up(email, password)

    def reset_password(self, email: str) -> AuthResult:
        if self._provider is None:
            return AuthResult(error=_NOT_CONFIGURED_MESSAGE)
        return self._provider.reset_password(email, self._password_reset_redirect)

    def update_password(self, password: str) -> AuthResult:
        if self._provider is None:
            return AuthResult(error=_NOT_CONFIGURED_MESSAGE)
        return self._provider.update_password(password)

    def sign_in_with_provider(self, provider: OAuthProvider) -> AuthResult:
        if self._provider is None:
            return AuthResult(error=_NOT_CONFIGURED_MESSAGE)
        return self._provider.sign_in_with_provider(provider)

    def sign_out(self) -> AuthResult:
        result = AuthResult()
        if self._provider is not None:
            result = self._provider.sign_out()
        if result.error:
            logger.warning("Sign-out reported an error: %s", result.error)
        self.teardown()
        self.session = None
        self._reset_profile_fields()
        emit_event("signed_out")
        return result


__all__ = [
    "AuthProvider",
    "AuthResult",
    "AuthSession",
    "AuthState",
    "OAuthProvider",
]
