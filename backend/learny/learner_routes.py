"""Learner-facing REST endpoints over the per-learner application state."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field

from .app_state import AppState, LearnerRegistry
from .auth import AuthSession
from .dependencies import get_generation_client, get_registry
from .generation_client import (
    FlashcardGenerationClient,
    FlashcardGenerationError,
    GenerationRequest,
)
from .learner_state import passing_score
from .models import Achievement, Flashcard, StatsPatch
from .telemetry import notify_learner
from .tiers import can_use_ai, has_reached_daily_limit, limits_for, remaining_daily_cards

router = APIRouter(prefix="/api/learners", tags=["learners"])
logger = logging.getLogger(__name__)


class SessionRequest(BaseModel):
    user_id: Optional[str] = Field(default=None, min_length=1)
    access_token: Optional[str] = None
    email: Optional[str] = None


class AnswerRequest(BaseModel):
    correct: bool


class LearnedRequest(BaseModel):
    learned: bool


class ReviewLaterRequest(BaseModel):
    review_later: bool


class ReportRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class ExamRequest(BaseModel):
    score: int = Field(..., ge=0)
    total: int = Field(..., ge=1)


class StudySessionRequest(BaseModel):
    correct: int = Field(default=0, ge=0)
    incorrect: int = Field(default=0, ge=0)
    program_id: Optional[str] = None


def _card_payload(card: Flashcard) -> Dict[str, Any]:
    return card.model_dump(mode="json", by_alias=True)


def _achievements_payload(achievements: List[Achievement]) -> List[Dict[str, Any]]:
    return [entry.model_dump(mode="json", by_alias=True) for entry in achievements]


def _state_for(registry: LearnerRegistry, learner_id: str) -> AppState:
    try:
        return registry.get(learner_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc


def _ready_state(registry: LearnerRegistry, learner_id: str) -> AppState:
    state = registry.peek(learner_id)
    if state is None or not state.initialized:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Session for learner '{learner_id}' has not been initialised.",
        )
    return state


def _not_found(exc: LookupError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc.args[0] if exc.args else exc))


def _snapshot(state: AppState) -> Dict[str, Any]:
    auth = state.auth
    learner = state.learner
    return {
        "user_id": auth.user_id,
        "is_loading": auth.is_loading,
        "tier": auth.tier,
        "is_admin": auth.is_admin,
        "daily_usage": auth.daily_usage,
        "remaining_daily_cards": remaining_daily_cards(auth.tier, auth.daily_usage),
        "profile_sync_timed_out": auth.sync_timed_out,
        "stats": learner.stats.model_dump(mode="json", by_alias=True),
        "flashcard_count": len(learner.flashcards),
        "program_count": len(learner.programs),
        "categories": [category.model_dump(mode="json", by_alias=True) for category in learner.categories],
    }


@router.post("/{learner_id}/session")
async def initialize_session(
    learner_id: str,
    payload: SessionRequest,
    registry: LearnerRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    state = _state_for(registry, learner_id)
    session = (
        AuthSession(user_id=payload.user_id, access_token=payload.access_token, email=payload.email)
        if payload.user_id
        else None
    )
    outcome = await state.initialize(session)
    snapshot = _snapshot(state)
    snapshot["streak_transition"] = outcome.transition
    return snapshot


@router.get("/{learner_id}/session")
def get_session(learner_id: str, registry: LearnerRegistry = Depends(get_registry)) -> Dict[str, Any]:
    return _snapshot(_ready_state(registry, learner_id))


@router.delete("/{learner_id}/session", status_code=status.HTTP_204_NO_CONTENT)
def teardown_session(learner_id: str, registry: LearnerRegistry = Depends(get_registry)) -> Response:
    if not registry.remove(learner_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active session.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{learner_id}/stats")
def get_stats(learner_id: str, registry: LearnerRegistry = Depends(get_registry)) -> Dict[str, Any]:
    state = _ready_state(registry, learner_id)
    return state.learner.stats.model_dump(mode="json", by_alias=True)


@router.patch("/{learner_id}/stats")
def update_stats(
    learner_id: str,
    patch: StatsPatch,
    registry: LearnerRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    state = _ready_state(registry, learner_id)
    update = state.update_stats(patch)
    return {
        "stats": update.stats.model_dump(mode="json", by_alias=True),
        "streak_transition": update.streak.transition,
        "achievements": _achievements_payload(update.achievements),
    }


@router.get("/{learner_id}/flashcards/due")
def due_flashcards(learner_id: str, registry: LearnerRegistry = Depends(get_registry)) -> List[Dict[str, Any]]:
    state = _ready_state(registry, learner_id)
    return [_card_payload(card) for card in state.learner.get_due_flashcards()]


@router.post("/{learner_id}/flashcards/{flashcard_id}/answer")
def answer_flashcard(
    learner_id: str,
    flashcard_id: str,
    payload: AnswerRequest,
    registry: LearnerRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    state = _ready_state(registry, learner_id)
    try:
        card = state.answer(flashcard_id, payload.correct)
    except LookupError as exc:
        raise _not_found(exc) from exc
    return _card_payload(card)


@router.put("/{learner_id}/flashcards/{flashcard_id}/learned")
def set_learned(
    learner_id: str,
    flashcard_id: str,
    payload: LearnedRequest,
    registry: LearnerRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    state = _ready_state(registry, learner_id)
    try:
        card = state.learner.set_learned(flashcard_id, payload.learned)
    except LookupError as exc:
        raise _not_found(exc) from exc
    return {"flashcard": _card_payload(card), "cardsLearned": state.learner.stats.cards_learned}


@router.put("/{learner_id}/flashcards/{flashcard_id}/review-later")
def set_review_later(
    learner_id: str,
    flashcard_id: str,
    payload: ReviewLaterRequest,
    registry: LearnerRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    state = _ready_state(registry, learner_id)
    try:
        card = state.learner.set_review_later(flashcard_id, payload.review_later)
    except LookupError as exc:
        raise _not_found(exc) from exc
    return _card_payload(card)


@router.post("/{learner_id}/flashcards/{flashcard_id}/report")
def report_flashcard(
    learner_id: str,
    flashcard_id: str,
    payload: ReportRequest,
    registry: LearnerRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    state = _ready_state(registry, learner_id)
    try:
        card = state.learner.report_flashcard(flashcard_id, payload.reason)
    except LookupError as exc:
        raise _not_found(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return _card_payload(card)


@router.post("/{learner_id}/study-sessions")
def finish_study_session(
    learner_id: str,
    payload: StudySessionRequest,
    registry: LearnerRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    state = _ready_state(registry, learner_id)
    try:
        result, earned = state.finish_study_session(
            payload.correct, payload.incorrect, program_id=payload.program_id
        )
    except LookupError as exc:
        raise _not_found(exc) from exc
    return {
        "stats": state.learner.stats.model_dump(mode="json", by_alias=True),
        "streak_transition": result.streak.transition,
        "program_completed": result.newly_completed,
        "achievements": _achievements_payload(earned),
    }


@router.post("/{learner_id}/programs/{program_id}/complete")
def complete_program(
    learner_id: str,
    program_id: str,
    registry: LearnerRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    state = _ready_state(registry, learner_id)
    try:
        earned = state.complete_program(program_id)
    except LookupError as exc:
        raise _not_found(exc) from exc
    return {
        "completedPrograms": state.learner.stats.completed_programs,
        "achievements": _achievements_payload(earned),
    }


@router.post("/{learner_id}/programs/{program_id}/exam")
def submit_exam(
    learner_id: str,
    program_id: str,
    payload: ExamRequest,
    registry: LearnerRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    state = _ready_state(registry, learner_id)
    program = state.learner.get_program(program_id)
    if program is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Program '{program_id}' was not found.")
    if not program.has_exam:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Program '{program_id}' has no exam.")
    try:
        result, earned = state.record_exam(program_id, payload.score, payload.total)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return {
        "passed": result.passed,
        "score": result.score,
        "total": result.total,
        "required": passing_score(result.total),
        "achievements": _achievements_payload(earned),
    }


@router.get("/{learner_id}/achievements")
def list_achievements(learner_id: str, registry: LearnerRegistry = Depends(get_registry)) -> List[Dict[str, Any]]:
    state = _ready_state(registry, learner_id)
    return _achievements_payload(state.learner.stats.achievements)


@router.post("/{learner_id}/achievements/{achievement_id}/displayed")
def mark_achievement_displayed(
    learner_id: str,
    achievement_id: str,
    registry: LearnerRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    state = _ready_state(registry, learner_id)
    try:
        achievement = state.emitter.mark_achievement_displayed(achievement_id)
    except LookupError as exc:
        raise _not_found(exc) from exc
    return achievement.model_dump(mode="json", by_alias=True)


@router.post("/{learner_id}/usage/increment")
def increment_usage(learner_id: str, registry: LearnerRegistry = Depends(get_registry)) -> Dict[str, Any]:
    state = _ready_state(registry, learner_id)
    auth = state.auth
    if has_reached_daily_limit(auth.tier, auth.daily_usage):
        limit = limits_for(auth.tier).daily_card_limit
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Daily limit of {limit} flashcards reached for tier '{auth.tier}'.",
        )
    usage = auth.increment_daily_usage()
    return {"daily_usage": usage, "remaining_daily_cards": remaining_daily_cards(auth.tier, usage)}


@router.post("/{learner_id}/flashcards/generate")
def generate_flashcards(
    learner_id: str,
    payload: GenerationRequest,
    registry: LearnerRegistry = Depends(get_registry),
    client: Optional[FlashcardGenerationClient] = Depends(get_generation_client),
) -> Dict[str, Any]:
    state = _ready_state(registry, learner_id)
    auth = state.auth
    if not can_use_ai(auth.tier):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="AI flashcard generation requires the Super tier.",
        )
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Flashcard generation is not configured.",
        )
    access_token = auth.session.access_token if auth.session else None
    try:
        result = client.generate(payload, access_token=access_token)
    except FlashcardGenerationError as exc:
        logger.warning("Flashcard generation failed for %s: %s", learner_id, exc)
        notify_learner(
            "flashcard_generation_failed",
            auth.user_id,
            "Fel vid generering",
            "Kunde inte generera flashcards.",
            variant="destructive",
        )
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    if result.error:
        notify_learner(
            "flashcard_generation_failed",
            auth.user_id,
            "Fel vid generering",
            result.error,
            variant="destructive",
        )
    return result.model_dump(mode="json")


__all__ = ["router"]
