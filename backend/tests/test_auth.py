import asyncio
from datetime import datetime

import pytest

from conftest import STOCKHOLM, FakeProfileStore, store_down

from learny.auth import AuthResult, AuthSession, AuthState
from learny.local_store import LocalStore
from learny.models import UserProfile
from learny.profile_sync import ProfileSynchronizer, RemoteProfileSnapshot
from learny.usage import UsageTracker

NOW = datetime(2024, 3, 15, 9, 0, tzinfo=STOCKHOLM)


class HangingSynchronizer(ProfileSynchronizer):
    async def fetch_async(self, user_id: str) -> RemoteProfileSnapshot:
        await asyncio.Event().wait()
        raise AssertionError("unreachable")


class RecordingProvider:
    def __init__(self) -> None:
        self.calls = []

    def sign_in(self, email, password):
        self.calls.append(("sign_in", email))
        if password != "hemligt":
            return AuthResult(error="Invalid login credentials")
        return AuthResult(data={"user_id": "u1"})

    def sign_up(self, email, password):
        self.calls.append(("sign_up", email))
        return AuthResult()

    def sign_out(self):
        self.calls.append(("sign_out",))
        return AuthResult()

    def reset_password(self, email, redirect_to):
        self.calls.append(("reset_password", email, redirect_to))
        return AuthResult()

    def update_password(self, password):
        self.calls.append(("update_password",))
        return AuthResult()

    def sign_in_with_provider(self, provider):
        self.calls.append(("oauth", provider))
        return AuthResult()


@pytest.fixture
def usage(tmp_path) -> UsageTracker:
    return UsageTracker(LocalStore(tmp_path), STOCKHOLM, clock=lambda: NOW)


def test_starts_loading_with_free_defaults(usage: UsageTracker) -> None:
    auth = AuthState(None, None, usage)

    assert auth.is_loading is True
    assert auth.tier == "free"
    assert auth.is_admin is False


def test_sync_timeout_falls_back_to_defaults(remote: FakeProfileStore, usage: UsageTracker) -> None:
    remote.profiles["u1"] = UserProfile(user_id="u1", subscription_tier="super", is_admin=True, daily_usage=4)
    usage.set_count(3)
    auth = AuthState(None, HangingSynchronizer(remote, timeout=0.05), usage)

    snapshot = asyncio.run(auth.initialize(AuthSession(user_id="u1")))

    assert snapshot is not None and snapshot.timed_out
    assert auth.session is not None
    assert auth.tier == "free"
    assert auth.is_admin is False
    assert auth.daily_usage == 0
    assert auth.is_loading is False
    assert auth.sync_timed_out is True


def test_remote_profile_is_applied(remote: FakeProfileStore, usage: UsageTracker) -> None:
    remote.profiles["u1"] = UserProfile(
        user_id="u1", subscription_tier="premium", is_admin=True, daily_usage=4
    )
    auth = AuthState(None, ProfileSynchronizer(remote, timeout=5), usage)

    asyncio.run(auth.initialize(AuthSession(user_id="u1")))

    assert (auth.tier, auth.is_admin, auth.daily_usage) == ("premium", True, 4)
    assert usage.count == 4
    assert auth.is_loading is False


def test_sync_failure_notifies_and_uses_defaults(remote: FakeProfileStore, usage: UsageTracker, events) -> None:
    remote.fail_with = store_down()
    usage.set_count(2)
    auth = AuthState(None, ProfileSynchronizer(remote, timeout=5), usage)

    snapshot = asyncio.run(auth.initialize(AuthSession(user_id="u1")))

    assert snapshot.source == "default"
    assert auth.tier == "free"
    assert auth.daily_usage == 0
    assert auth.is_loading is False
    failures = [event for event in events if event.name == "profile_sync_failed"]
    assert failures and failures[0].payload["variant"] == "destructive"


def test_teardown_drops_in_flight_sync(remote: FakeProfileStore, usage: UsageTracker) -> None:
    remote.profiles["u1"] = UserProfile(user_id="u1", subscription_tier="super")
    auth = AuthState(None, HangingSynchronizer(remote, timeout=5), usage)

    async def scenario():
        task = asyncio.create_task(auth.initialize(AuthSession(user_id="u1")))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        generation = auth.generation
        auth.teardown()
        return generation, await task

    generation, result = asyncio.run(scenario())

    assert result is None
    assert auth.generation == generation + 1
    assert auth.tier == "free"
    assert auth.is_loading is False


def test_no_session_resets_fields(usage: UsageTracker) -> None:
    usage.set_count(3)
    auth = AuthState(None, None, usage)

    assert asyncio.run(auth.initialize(None)) is None
    assert auth.session is None
    assert auth.daily_usage == 0
    assert auth.is_loading is False


def test_usage_is_tracked_locally_and_pushed(remote: FakeProfileStore, usage: UsageTracker) -> None:
    remote.profiles["u1"] = UserProfile(user_id="u1")
    auth = AuthState(None, ProfileSynchronizer(remote, timeout=5), usage, remote=remote)
    asyncio.run(auth.initialize(AuthSession(user_id="u1")))

    auth.increment_daily_usage()
    assert auth.increment_daily_usage() == 2

    assert usage.count == 2
    assert remote.usage_updates[-1] == ("u1", 2)
    auth.reset_daily_usage()
    assert (auth.daily_usage, usage.count, remote.usage_updates[-1]) == (0, 0, ("u1", 0))


def test_usage_push_failure_is_not_fatal(remote: FakeProfileStore, usage: UsageTracker) -> None:
    auth = AuthState(None, None, usage, remote=remote)
    asyncio.run(auth.initialize(AuthSession(user_id="u1")))
    remote.fail_with = store_down()

    assert auth.increment_daily_usage() == 1


def test_provider_calls_without_provider_report_errors(usage: UsageTracker) -> None:
    auth = AuthState(None, None, usage)

    result = auth.sign_in("a@example.com", "x")

    assert not result.ok
    assert result.error == "Authentication is not configured."


def test_provider_errors_are_returned_not_raised(usage: UsageTracker) -> None:
    provider = RecordingProvider()
    auth = AuthState(provider, None, usage, password_reset_redirect="https://learny.test/reset")

    assert auth.sign_in("a@example.com", "fel").error == "Invalid login credentials"
    assert auth.sign_in("a@example.com", "hemligt").ok
    auth.reset_password("a@example.com")
    auth.sign_in_with_provider("google")

    assert ("reset_password", "a@example.com", "https://learny.test/reset") in provider.calls
    assert ("oauth", "google") in provider.calls


def test_sign_out_clears_profile(remote: FakeProfileStore, usage: UsageTracker, events) -> None:
    remote.profiles["u1"] = UserProfile(user_id="u1", subscription_tier="super", is_admin=True, daily_usage=3)
    provider = RecordingProvider()
    auth = AuthState(provider, ProfileSynchronizer(remote, timeout=5), usage)
    asyncio.run(auth.initialize(AuthSession(user_id="u1")))

    result = auth.sign_out()

    assert result.ok
    assert auth.session is None
    assert (auth.tier, auth.is_admin, auth.daily_usage) == ("free", False, 0)
    assert ("sign_out",) in provider.calls
    assert events[-1].name == "signed_out"


def test_unconfigured_remote_keeps_the_local_count(usage: UsageTracker) -> None:
    usage.set_count(3)
    auth = AuthState(None, None, usage)

    asyncio.run(auth.initialize(AuthSession(user_id="u1")))

    assert auth.daily_usage == 3


def test_daily_usage_rolls_over_at_local_midnight(tmp_path) -> None:
    moments = [NOW]
    tracker = UsageTracker(LocalStore(tmp_path), STOCKHOLM, clock=lambda: moments[0])
    auth = AuthState(None, None, tracker)
    asyncio.run(auth.initialize(AuthSession(user_id="u1")))
    for _ in range(5):
        auth.increment_daily_usage()

    moments[0] = datetime(2024, 3, 16, 0, 5, tzinfo=STOCKHOLM)

    assert auth.daily_usage == 0
    assert auth.increment_daily_usage() == 1
