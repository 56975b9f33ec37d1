from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from learny.db import Base
from learny.db.models import FlashcardModel, UserProfileModel
from learny.models import Achievement, NewFlashcard
from learny.repositories.flashcards import flashcards
from learny.repositories.user_profiles import ProfileNotFoundError, user_profiles


@pytest.fixture
def session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    with factory() as db_session:
        yield db_session
    engine.dispose()


def _card(session: Session, card_id: str, question: str, *, category: str = "medicine", reports: int = 0) -> None:
    session.add(
        FlashcardModel(
            id=card_id,
            question=question,
            answer="svar",
            category=category,
            report_count=reports,
            report_reason=["fel"] * reports,
            is_approved=reports == 0,
        )
    )
    session.flush()


def test_missing_profile_raises_not_found(session: Session) -> None:
    with pytest.raises(ProfileNotFoundError):
        user_profiles.get(session, "ghost")


def test_created_profile_has_defaults(session: Session) -> None:
    created = user_profiles.create(session, " u1 ")

    assert created.user_id == "u1"
    assert created.subscription_tier == "free"
    assert user_profiles.get(session, "u1").daily_usage == 0


def test_unknown_stored_tier_is_read_as_free(session: Session) -> None:
    session.add(UserProfileModel(id="u1", subscription_tier="gold", is_admin=True, daily_usage=-3))
    session.flush()

    profile = user_profiles.get(session, "u1")

    assert profile.subscription_tier == "free"
    assert profile.is_admin is True
    assert profile.daily_usage == 0


def test_streak_updates_track_longest(session: Session) -> None:
    user_profiles.create(session, "u1")

    user_profiles.update_streak(session, "u1", 5, date(2024, 3, 15))
    profile = user_profiles.update_streak(session, "u1", 1, date(2024, 3, 20))

    assert (profile.current_streak, profile.longest_streak) == (1, 5)
    assert profile.last_active_date == date(2024, 3, 20)


def test_achievements_are_unique_per_name(session: Session) -> None:
    user_profiles.create(session, "u1")
    first = user_profiles.add_achievement(session, "u1", Achievement(name="7-dagars Streak"))
    duplicate = user_profiles.add_achievement(session, "u1", Achievement(name="7-dagars Streak"))

    assert duplicate.id == first.id
    assert len(user_profiles.list_achievements(session, "u1")) == 1
    assert user_profiles.mark_achievement_displayed(session, "u1", first.id) is True
    assert user_profiles.list_achievements(session, "u1")[0].displayed is True
    assert user_profiles.mark_achievement_displayed(session, "u1", "missing") is False


def test_daily_usage_update_and_reset(session: Session) -> None:
    user_profiles.create(session, "u1")
    user_profiles.create(session, "u2")
    user_profiles.update_daily_usage(session, "u1", 4)

    assert user_profiles.reset_daily_usage(session) == 1
    session.expire_all()
    assert user_profiles.get(session, "u1").daily_usage == 0


def test_activity_accumulates_and_fills_gaps(session: Session) -> None:
    for user_id in ("u1", "u2"):
        user_profiles.create(session, user_id)
    user_profiles.record_study_activity(session, "u1", date(2024, 3, 14), 4)
    assert user_profiles.record_study_activity(session, "u1", date(2024, 3, 14), 6) == 10
    user_profiles.record_study_activity(session, "u2", date(2024, 3, 14), 2)
    user_profiles.record_study_activity(session, "u2", date(2024, 3, 16), 1)

    series = user_profiles.get_user_activity(session, date(2024, 3, 14), 3)

    assert [(entry.day.day, entry.active_users, entry.flashcards_studied) for entry in series] == [
        (14, 2, 12),
        (15, 0, 0),
        (16, 1, 1),
    ]


def test_answers_are_counted_with_interactions(session: Session) -> None:
    _card(session, "c1", "Vad mäter EKG?")
    study = flashcards.start_session(session, "u1", "medicine")

    flashcards.record_answer(session, "c1", user_id="u1", is_correct=True, session_id=study.id, response_time_ms=900)
    card = flashcards.record_answer(session, "c1", user_id="u1", is_correct=False)

    assert (card.correct_count, card.incorrect_count) == (1, 1)
    assert card.last_reviewed is not None
    finished = flashcards.complete_session(session, study.id, cards_studied=2, correct_count=1, incorrect_count=1)
    assert finished.completed and finished.cards_studied == 2
    with pytest.raises(LookupError):
        flashcards.complete_session(session, "missing", cards_studied=0, correct_count=0, incorrect_count=0)


def test_learned_and_review_later_flags(session: Session) -> None:
    _card(session, "c1", "Vad mäter EKG?")

    learned = flashcards.update_interaction(session, "c1", learned=True)
    flagged = flashcards.update_interaction(session, "c1", review_later=True)
    untouched = flashcards.update_interaction(session, "c1")
    cleared = flashcards.update_interaction(session, "c1", learned=False)

    assert (learned.learned, learned.review_later) == (True, False)
    assert (flagged.learned, flagged.review_later) == (True, True)
    assert (untouched.learned, untouched.review_later) == (True, True)
    assert (cleared.learned, cleared.review_later) == (False, True)
    with pytest.raises(LookupError):
        flashcards.update_interaction(session, "missing", learned=True)

def test_reported_cards_are_filtered_and_ordered(session: Session) -> None:
    _card(session, "c1", "Vad mäter EKG?", reports=1)
    _card(session, "c2", "Vad är normalt blodtryck?", reports=3)
    _card(session, "c3", "Vad är Pi?", category="math", reports=2)
    _card(session, "c4", "Orapporterad", reports=0)

    assert [card.id for card in flashcards.list_reported(session)] == ["c2", "c3", "c1"]
    assert [card.id for card in flashcards.list_reported(session, category="medicine")] == ["c2", "c1"]
    assert [card.id for card in flashcards.list_reported(session, category="all", search="ekg")] == ["c1"]


def test_report_approve_and_revise(session: Session) -> None:
    _card(session, "c1", "Vad mäter EKG?")

    reported = flashcards.report(session, "c1", " Fel svar ")
    assert (reported.report_count, reported.report_reason) == (1, ["Fel svar"])

    approved = flashcards.approve(session, "c1")
    assert (approved.report_count, approved.is_approved) == (0, True)

    flashcards.report(session, "c1", "Otydlig")
    revised = flashcards.revise(session, "c1", "Vad registrerar ett EKG?", "Hjärtats elektriska aktivitet")
    assert revised.question == "Vad registrerar ett EKG?"
    assert revised.report_reason == []
    with pytest.raises(ValueError):
        flashcards.revise(session, "c1", " ", "x")


def test_remove_flashcard(session: Session) -> None:
    _card(session, "c1", "Vad mäter EKG?")

    assert flashcards.remove(session, "c1") is True
    assert flashcards.remove(session, "c1") is False
    with pytest.raises(LookupError):
        flashcards.get(session, "c1")


def test_modules_and_bulk_insert(session: Session) -> None:
    module = flashcards.create_module(session, name="Kardiologi", category="medicine", user_id="u1")

    created = flashcards.add_flashcards(
        session,
        [
            NewFlashcard(question="Vad är systole?", answer="Hjärtats kontraktionsfas", category="medicine"),
            NewFlashcard(question="Vad är diastole?", answer="Hjärtats vilofas", category="medicine"),
        ],
        module_id=module.id,
        user_id="u1",
    )

    assert len(created) == 2
    assert all(card.id for card in created)
    assert flashcards.count_modules(session, "u1") == 1
    assert flashcards.count_modules(session, "u2") == 0
