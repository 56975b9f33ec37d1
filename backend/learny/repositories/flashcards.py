"""Database-backed flashcard, module and study-session repository."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from pydantic import BaseModel
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..db.models import (
    FlashcardInteractionModel,
    FlashcardModel,
    FlashcardModuleModel,
    FlashcardSessionModel,
)
from ..models import Flashcard, NewFlashcard


class FlashcardModule(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    category: str
    subcategory: Optional[str] = None
    user_id: Optional[str] = None
    is_generic: bool = False


class StudySession(BaseModel):
    id: str
    user_id: str
    category: str
    subcategory: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    completed: bool = False
    cards_studied: int = 0
    correct_count: int = 0
    incorrect_count: int = 0


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_millis(value: Optional[datetime]) -> Optional[int]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


class FlashcardRepository:
    def get(self, session: Session, flashcard_id: str) -> Flashcard:
        return self._to_domain(self._require_model(session, flashcard_id))

    def record_answer(
        self,
        session: Session,
        flashcard_id: str,
        *,
        user_id: str,
        is_correct: bool,
        session_id: Optional[str] = None,
        response_time_ms: Optional[int] = None,
    ) -> Flashcard:
        model = self._require_model(session, flashcard_id)
        if is_correct:
            model.correct_count = (model.correct_count or 0) + 1
        else:
            model.incorrect_count = (model.incorrect_count or 0) + 1
        model.last_reviewed = _now()

        if session_id:
            session.add(
                FlashcardInteractionModel(
                    user_id=user_id,
                    flashcard_id=model.id,
                    session_id=session_id,
                    is_correct=is_correct,
                    response_time_ms=response_time_ms,
                )
            )
        session.flush()
        return self._to_domain(model)

    def update_interaction(
        self,
        session: Session,
        flashcard_id: str,
        *,
        learned: Optional[bool] = None,
        review_later: Optional[bool] = None,
    ) -> Flashcard:
        model = self._require_model(session, flashcard_id)
        if learned is not None:
            model.learned = learned
        if review_later is not None:
            model.review_later = review_later
        session.flush()
        return self._to_domain(model)

    def report(self, session: Session, flashcard_id: str, reason: str) -> Flashcard:
        trimmed = reason.strip()
        if not trimmed:
            raise ValueError("Report reason cannot be empty.")
        model = self._require_model(session, flashcard_id)
        model.report_count = (model.report_count or 0) + 1
        model.report_reason = [*(model.report_reason or []), trimmed]
        session.flush()
        return self._to_domain(model)

    def list_reported(
        self,
        session: Session,
        *,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Flashcard]:
        stmt = select(FlashcardModel).where(FlashcardModel.report_count > 0)
        if category and category != "all":
            stmt = stmt.where(FlashcardModel.category == category)
        if search:
            pattern = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(FlashcardModel.question).like(pattern),
                    func.lower(FlashcardModel.answer).like(pattern),
                )
            )
        stmt = stmt.order_by(FlashcardModel.report_count.desc(), FlashcardModel.id)
        return [self._to_domain(model) for model in session.execute(stmt).scalars()]

    def approve(self, session: Session, flashcard_id: str) -> Flashcard:
        model = self._require_model(session, flashcard_id)
        self._clear_reports(model)
        session.flush()
        return self._to_domain(model)

    def revise(self, session: Session, flashcard_id: str, question: str, answer: str) -> Flashcard:
        if not question.strip() or not answer.strip():
            raise ValueError("Question and answer cannot be empty.")
        model = self._require_model(session, flashcard_id)
        model.question = question.strip()
        model.answer = answer.strip()
        self._clear_reports(model)
        session.flush()
        return self._to_domain(model)

    def remove(self, session: Session, flashcard_id: str) -> bool:
        model = session.get(FlashcardModel, flashcard_id)
        if model is None:
            return False
        session.delete(model)
        session.flush()
        return True

    def create_module(
        self,
        session: Session,
        *,
        name: str,
        category: str,
        user_id: Optional[str] = None,
        description: Optional[str] = None,
        subcategory: Optional[str] = None,
        is_generic: bool = False,
    ) -> FlashcardModule:
        model = FlashcardModuleModel(
            name=name,
            category=category,
            user_id=user_id,
            description=description,
            subcategory=subcategory,
            is_generic=is_generic,
        )
        session.add(model)
        session.flush()
        return FlashcardModule.model_validate(model, from_attributes=True)

    def count_modules(self, session: Session, user_id: str) -> int:
        stmt = select(func.count()).select_from(FlashcardModuleModel).where(
            FlashcardModuleModel.user_id == user_id
        )
        return int(session.execute(stmt).scalar_one())

    def add_flashcards(
        self,
        session: Session,
        cards: Iterable[NewFlashcard],
        *,
        module_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> List[Flashcard]:
        models = [
            FlashcardModel(
                question=card.question,
                answer=card.answer,
                category=card.category,
                subcategory=card.subcategory,
                difficulty=card.difficulty,
                module_id=module_id,
                user_id=user_id,
            )
            for card in cards
        ]
        session.add_all(models)
        session.flush()
        return [self._to_domain(model) for model in models]

    def start_session(
        self,
        session: Session,
        user_id: str,
        category: str,
        subcategory: Optional[str] = None,
    ) -> StudySession:
        model = FlashcardSessionModel(user_id=user_id, category=category, subcategory=subcategory)
        session.add(model)
        session.flush()
        return StudySession.model_validate(model, from_attributes=True)

    def complete_session(
        self,
        session: Session,
        session_id: str,
        *,
        cards_studied: int,
        correct_count: int,
        incorrect_count: int,
    ) -> StudySession:
        model = session.get(FlashcardSessionModel, session_id)
        if model is None:
            raise LookupError(f"Study session '{session_id}' does not exist.")
        model.end_time = _now()
        model.completed = True
        model.cards_studied = max(0, cards_studied)
        model.correct_count = max(0, correct_count)
        model.incorrect_count = max(0, incorrect_count)
        session.flush()
        return StudySession.model_validate(model, from_attributes=True)

    def _require_model(self, session: Session, flashcard_id: str) -> FlashcardModel:
        model = session.get(FlashcardModel, flashcard_id)
        if model is None:
            raise LookupError(f"Flashcard '{flashcard_id}' does not exist.")
        return model

    @staticmethod
    def _clear_reports(model: FlashcardModel) -> None:
        model.is_approved = True
        model.report_count = 0
        model.report_reason = []

    @staticmethod
    def _to_domain(model: FlashcardModel) -> Flashcard:
        return Flashcard(
            id=model.id,
            question=model.question,
            answer=model.answer,
            category=model.category,
            subcategory=model.subcategory,
            difficulty=model.difficulty,
            correct_count=model.correct_count or 0,
            incorrect_count=model.incorrect_count or 0,
            last_reviewed=_to_millis(model.last_reviewed),
            next_review=_to_millis(model.next_review),
            learned=bool(model.learned),
            review_later=bool(model.review_later),
            report_count=model.report_count or 0,
            report_reason=list(model.report_reason or []),
            is_approved=bool(model.is_approved),
        )


flashcards = FlashcardRepository()

__all__ = [
    "FlashcardModule",
    "FlashcardRepository",
    "NewFlashcard",
    "StudySession",
    "flashcards",
]
