"""Admin endpoints for moderating reported flashcards and reading activity."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from .app_state import LearnerRegistry
from .db.session import session_scope
from .dependencies import get_registry
from .repositories.flashcards import flashcards as flashcard_repository
from .repositories.user_profiles import ProfileNotFoundError, user_profiles
from .telemetry import emit_event

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = logging.getLogger(__name__)


class RevisionRequest(BaseModel):
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)


def require_admin(
    x_learny_user: str = Header(..., min_length=1),
    registry: LearnerRegistry = Depends(get_registry),
) -> str:
    remote = registry.remote
    if remote is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin endpoints require LEARNY_DATABASE_URL.",
        )
    try:
        profile = remote.get_profile(x_learny_user)
    except ProfileNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required.") from exc
    except SQLAlchemyError as exc:
        logger.exception("Failed to load admin profile %s", x_learny_user)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Profile store unavailable.") from exc
    if not profile.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required.")
    return profile.user_id


def _not_found(exc: LookupError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc.args[0] if exc.args else exc))


@router.get("/flashcards/reported")
def list_reported_flashcards(
    category: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=200),
    admin_id: str = Depends(require_admin),
) -> List[Dict[str, Any]]:
    with session_scope(commit=False) as session:
        cards = flashcard_repository.list_reported(session, category=category, search=search)
    return [card.model_dump(mode="json", by_alias=True) for card in cards]


@router.post("/flashcards/{flashcard_id}/approve")
def approve_flashcard(flashcard_id: str, admin_id: str = Depends(require_admin)) -> Dict[str, Any]:
    try:
        with session_scope() as session:
            card = flashcard_repository.approve(session, flashcard_id)
    except LookupError as exc:
        raise _not_found(exc) from exc
    emit_event("flashcard_approved", admin_id=admin_id, flashcard_id=flashcard_id)
    return card.model_dump(mode="json", by_alias=True)


@router.put("/flashcards/{flashcard_id}")
def revise_flashcard(
    flashcard_id: str,
    payload: RevisionRequest,
    admin_id: str = Depends(require_admin),
) -> Dict[str, Any]:
    try:
        with session_scope() as session:
            card = flashcard_repository.revise(session, flashcard_id, payload.question, payload.answer)
    except LookupError as exc:
        raise _not_found(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    emit_event("flashcard_revised", admin_id=admin_id, flashcard_id=flashcard_id)
    return card.model_dump(mode="json", by_alias=True)


@router.delete("/flashcards/{flashcard_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_flashcard(flashcard_id: str, admin_id: str = Depends(require_admin)) -> Response:
    with session_scope() as session:
        removed = flashcard_repository.remove(session, flashcard_id)
    if not removed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Flashcard '{flashcard_id}' was not found.")
    emit_event("flashcard_deleted", admin_id=admin_id, flashcard_id=flashcard_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/activity")
def user_activity(
    days: int = Query(default=7, ge=1, le=365),
    start: Optional[date] = Query(default=None),
    admin_id: str = Depends(require_admin),
) -> List[Dict[str, Any]]:
    start_date = start or (date.today() - timedelta(days=days - 1))
    with session_scope(commit=False) as session:
        series = user_profiles.get_user_activity(session, start_date, days)
    return [entry.model_dump(mode="json") for entry in series]


@router.post("/usage/reset")
def reset_daily_usage(admin_id: str = Depends(require_admin)) -> Dict[str, int]:
    with session_scope() as session:
        updated = user_profiles.reset_daily_usage(session)
    emit_event("daily_usage_reset", admin_id=admin_id, profiles=updated)
    return {"reset": updated}


__all__ = ["require_admin", "router"]
