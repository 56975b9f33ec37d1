import json
from typing import List

import pytest
from pydantic import TypeAdapter

from conftest import STOCKHOLM

from learny.catalog import initial_flashcards
from learny.learner_state import LearnerState
from learny.local_store import FLASHCARDS_KEY, USER_STATS_KEY, LocalStore
from learny.models import Flashcard, UserStats


def test_raw_items_round_trip_and_remove(tmp_path) -> None:
    store = LocalStore(tmp_path / "learner")

    assert store.get_item("flashcards") is None
    store.set_item("flashcards", "[]")
    assert store.get_item("flashcards") == "[]"

    store.remove_item("flashcards")
    assert store.get_item("flashcards") is None
    store.remove_item("flashcards")


def test_rejects_keys_that_escape_the_store(tmp_path) -> None:
    store = LocalStore(tmp_path)

    with pytest.raises(ValueError):
        store.get_item("../secrets")
    with pytest.raises(ValueError):
        store.set_item("", "{}")


def test_load_missing_key_persists_default_when_asked(tmp_path) -> None:
    store = LocalStore(tmp_path)
    adapter = TypeAdapter(UserStats)

    value = store.load(USER_STATS_KEY, adapter, UserStats, persist_default=True)

    assert value == UserStats()
    assert json.loads(store.get_item(USER_STATS_KEY))["streak"] == 0


def test_load_missing_key_without_persisting(tmp_path) -> None:
    store = LocalStore(tmp_path)

    store.load("programs", TypeAdapter(List[Flashcard]), list)

    assert store.get_item("programs") is None


def test_saved_documents_use_client_field_names(tmp_path) -> None:
    store = LocalStore(tmp_path)

    store.save(USER_STATS_KEY, UserStats(streak=3, last_activity=1700000000000), TypeAdapter(UserStats))

    payload = json.loads(store.get_item(USER_STATS_KEY))
    assert payload["lastActivity"] == 1700000000000
    assert payload["totalCorrect"] == 0
    assert "last_activity" not in payload


def test_corrupt_stats_do_not_affect_flashcards(tmp_path) -> None:
    store = LocalStore(tmp_path)
    cards = initial_flashcards()[:2]
    store.save(FLASHCARDS_KEY, cards, TypeAdapter(List[Flashcard]))
    store.set_item(USER_STATS_KEY, "{not json")

    learner = LearnerState(store, STOCKHOLM)
    learner.load()

    assert learner.stats == UserStats()
    assert [card.id for card in learner.flashcards] == [card.id for card in cards]


def test_schema_invalid_document_falls_back_to_default(tmp_path) -> None:
    store = LocalStore(tmp_path)
    store.set_item(USER_STATS_KEY, json.dumps({"streak": "many", "totalCorrect": -4}))

    stats = store.load(USER_STATS_KEY, TypeAdapter(UserStats), UserStats)

    assert stats == UserStats()


def test_legacy_epoch_millis_achievement_dates_are_accepted(tmp_path) -> None:
    store = LocalStore(tmp_path)
    store.set_item(
        USER_STATS_KEY,
        json.dumps(
            {
                "streak": 1,
                "lastActivity": 1700000000000,
                "achievements": [{"id": "a1", "name": "Första", "dateEarned": 1700000000000}],
            }
        ),
    )

    stats = store.load(USER_STATS_KEY, TypeAdapter(UserStats), UserStats)

    assert stats.achievements[0].date_earned.year == 2023
