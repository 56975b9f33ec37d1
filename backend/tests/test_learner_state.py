from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from conftest import STOCKHOLM

from learny.learner_state import LearnerState, passing_score
from learny.local_store import LocalStore
from learny.models import Achievement, FlashcardPatch, NewFlashcard, StatsPatch
from learny.streaks import to_epoch_ms

NOW = datetime(2024, 3, 15, 9, 0, tzinfo=STOCKHOLM)


@pytest.fixture
def store(tmp_path) -> LocalStore:
    return LocalStore(tmp_path / "learner")


@pytest.fixture
def learner(store: LocalStore) -> LearnerState:
    state = LearnerState(store, STOCKHOLM, clock=lambda: NOW)
    state.load()
    return state


def test_first_load_seeds_the_catalog(learner: LearnerState, store: LocalStore) -> None:
    assert learner.loaded
    assert len(learner.flashcards) == 28
    assert {category.id for category in learner.categories} >= {"medicine", "coding", "math"}
    assert store.get_item("flashcards") is not None
    assert store.get_item("userStats") is not None


def test_reconcile_requires_load(store: LocalStore) -> None:
    with pytest.raises(RuntimeError):
        LearnerState(store, STOCKHOLM).reconcile(NOW)


def test_reconcile_runs_once_per_load(learner: LearnerState) -> None:
    learner.stats = learner.stats.model_copy(
        update={"streak": 2, "last_activity": to_epoch_ms(NOW - timedelta(days=1))}
    )

    first = learner.reconcile(NOW)
    second = learner.reconcile(NOW)

    assert first.transition == "increment"
    assert second.transition == "none"
    assert learner.stats.streak == 3


def test_category_and_topic_queries(learner: LearnerState) -> None:
    medicine = learner.get_flashcards_by_category("medicine")

    assert [card.id for card in medicine] == ["med-1", "med-2", "med-3", "med-4", "med-5"]
    assert learner.get_topics_by_category("medicine") == ["Anatomi"]
    assert learner.get_topics_by_category("coding") == ["Python"]
    assert learner.get_topics_by_category("unknown") == []


def test_mark_reviewed_schedules_next_review(learner: LearnerState) -> None:
    card = learner.mark_reviewed("med-1", 2, NOW)

    assert card.knowledge_level == 2
    assert card.review_count == 1
    assert card.last_reviewed == to_epoch_ms(NOW)
    assert card.next_review == to_epoch_ms(NOW + timedelta(days=3))
    assert learner.mark_reviewed("med-1", 3, NOW).review_count == 2


def test_mark_reviewed_rejects_unknown_level(learner: LearnerState) -> None:
    with pytest.raises(ValueError):
        learner.mark_reviewed("med-1", 4, NOW)


def test_reviewed_cards_leave_the_due_list(learner: LearnerState) -> None:
    learner.mark_reviewed("med-1", 1, NOW)

    due_now = {card.id for card in learner.get_due_flashcards(NOW)}
    due_later = {card.id for card in learner.get_due_flashcards(NOW + timedelta(days=2))}

    assert "med-1" not in due_now
    assert "med-1" in due_later


def test_recently_reviewed_is_capped(learner: LearnerState) -> None:
    for offset, card in enumerate(learner.flashcards[:12]):
        learner.mark_reviewed(card.id, 1, NOW + timedelta(minutes=offset))

    recent = learner.get_recently_reviewed_flashcards()

    assert len(recent) == 10
    assert recent[0].id == learner.flashcards[11].id


def test_added_flashcard_survives_reload(learner: LearnerState, store: LocalStore) -> None:
    created = learner.add_flashcard(
        NewFlashcard(question="Vad är ATP?", answer="Cellens energivaluta", category="science"),
        NOW,
    )

    assert created.id.startswith(f"custom-{to_epoch_ms(NOW)}-")
    reloaded = LearnerState(store, STOCKHOLM)
    reloaded.load()
    assert reloaded.get_flashcard(created.id).answer == "Cellens energivaluta"


def test_edit_and_delete_flashcard(learner: LearnerState) -> None:
    edited = learner.edit_flashcard("geo-1", FlashcardPatch(answer="Stockholm, Sverige"))

    assert edited.answer == "Stockholm, Sverige"
    assert edited.question == "Vilken är Sveriges huvudstad?"
    assert learner.delete_flashcard("geo-1") is True
    assert learner.delete_flashcard("geo-1") is False
    with pytest.raises(LookupError):
        learner.get_flashcard("geo-1")


def test_flashcard_patch_rejects_unknown_fields() -> None:
    with pytest.raises(ValidationError):
        FlashcardPatch.model_validate({"answer": "x", "correctCount": 5})


def test_reset_progress_clears_schedule(learner: LearnerState) -> None:
    learner.mark_reviewed("med-2", 3, NOW)

    learner.reset_progress()

    card = learner.get_flashcard("med-2")
    assert card.next_review is None
    assert card.knowledge_level is None


def test_import_rejects_invalid_payload(learner: LearnerState) -> None:
    before = learner.export_flashcards()

    assert learner.import_flashcards('[{"id": "x"}]') is False
    assert learner.import_flashcards("not json") is False
    assert learner.export_flashcards() == before

    assert learner.import_flashcards(
        '[{"id": "x", "question": "Q", "answer": "A", "category": "math"}]'
    ) is True
    assert [card.id for card in learner.flashcards] == ["x"]


def test_cards_learned_never_goes_negative(learner: LearnerState) -> None:
    learner.edit_flashcard("med-1", FlashcardPatch(learned=True))
    assert learner.stats.cards_learned == 0

    learner.set_learned("med-1", False)

    assert learner.stats.cards_learned == 0
    learner.set_learned("med-2", True)
    learner.set_learned("med-2", True)
    assert learner.stats.cards_learned == 1


def test_record_answer_counts_and_stamps(learner: LearnerState) -> None:
    learner.record_answer("math-1", True, NOW)
    card = learner.record_answer("math-1", False, NOW)

    assert (card.correct_count, card.incorrect_count) == (1, 1)
    assert card.last_reviewed == to_epoch_ms(NOW)


def test_report_flashcard_appends_reason(learner: LearnerState) -> None:
    learner.report_flashcard("hist-2", "  Fel svar  ")
    card = learner.report_flashcard("hist-2", "Stavfel")

    assert card.report_count == 2
    assert card.report_reason == ["Fel svar", "Stavfel"]
    with pytest.raises(ValueError):
        learner.report_flashcard("hist-2", "   ")


def test_update_user_stats_records_activity(learner: LearnerState) -> None:
    outcome = learner.update_user_stats(StatsPatch(total_correct=3), NOW)

    assert outcome.transition == "start"
    assert learner.stats.total_correct == 3
    assert learner.stats.streak == 1


def test_stats_patch_validation() -> None:
    with pytest.raises(ValidationError):
        StatsPatch(total_correct=-1)
    with pytest.raises(ValidationError):
        StatsPatch.model_validate({"achievements": []})


def test_program_completion_is_idempotent(learner: LearnerState) -> None:
    assert learner.mark_program_completed("med-basics") is True
    assert learner.mark_program_completed("med-basics") is False
    assert learner.stats.completed_programs == ["med-basics"]
    with pytest.raises(LookupError):
        learner.mark_program_completed("does-not-exist")


def test_category_mastery_needs_every_program(learner: LearnerState) -> None:
    learner.mark_program_completed("med-basics")
    assert not learner.is_category_mastered("medicine")

    learner.mark_program_completed("med-anatomy")

    assert learner.is_category_mastered("medicine")
    assert not learner.is_category_mastered("unknown")


def test_flashcards_by_program_follow_program_order(learner: LearnerState) -> None:
    assert [card.id for card in learner.get_flashcards_by_program("med-anatomy")] == ["med-4", "med-5"]
    assert learner.get_flashcards_by_program("missing") == []


def test_finish_study_session_updates_totals(learner: LearnerState) -> None:
    result = learner.finish_study_session(4, 1, program_id="math-stats", now=NOW)

    assert result.newly_completed is True
    assert result.streak.transition == "start"
    assert learner.stats.total_correct == 4
    assert learner.stats.total_incorrect == 1
    assert learner.stats.cards_learned == 4
    assert "math-stats" in learner.stats.completed_programs


def test_exam_pass_threshold(learner: LearnerState) -> None:
    assert passing_score(10) == 7
    assert passing_score(3) == 3

    failed = learner.record_exam_result("med-basics", 2, 3)
    passed = learner.record_exam_result("geography-basics", 7, 10)

    assert not failed.passed
    assert "med-basics" not in learner.stats.completed_programs
    assert passed.passed and passed.newly_completed
    with pytest.raises(ValueError):
        learner.record_exam_result("med-basics", 4, 3)


def test_merge_achievements_dedupes_by_name(learner: LearnerState) -> None:
    learner.add_achievement_record(Achievement(name="7-dagars Streak"))
    remote = [
        Achievement(name="7-dagars Streak", displayed=True),
        Achievement(name="Slutfört: Anatomi - grunder"),
    ]

    added = learner.merge_achievements(remote)

    assert added == 1
    names = [entry.name for entry in learner.stats.achievements]
    assert names == ["7-dagars Streak", "Slutfört: Anatomi - grunder"]
    assert learner.stats.achievements[0].displayed is True
    assert learner.merge_achievements(remote) == 0


def test_mark_achievement_displayed_unknown_id(learner: LearnerState) -> None:
    with pytest.raises(LookupError):
        learner.mark_achievement_displayed("nope")
