"""API routes for multiple-choice drills."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from dutch_drill.api.schemas import (
    AnswerRequest,
    AnswerResponse,
    GrammarTipResponse,
    QuizResponse,
    RateRequest,
    RateResponse,
)
from dutch_drill.database import get_session
from dutch_drill.exceptions import (
    InsufficientDataError,
    InvalidAnswerError,
    InvalidRatingError,
    NoActiveQuizError,
)
from dutch_drill.models.learner import Learner
from dutch_drill.srs.session import DrillService, SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/drill", tags=["drill"])


def get_store(request: Request) -> SessionStore:
    """Return the pending-quiz store owned by the application."""
    return request.app.state.session_store


def get_service(request: Request) -> DrillService:
    """Return the drill service owned by the application."""
    return request.app.state.drill_service


@router.post("/{learner_id}/next", response_model=QuizResponse)
async def drill_next(
    learner_id: int,
    db: AsyncSession = Depends(get_session),
    store: SessionStore = Depends(get_store),
    service: DrillService = Depends(get_service),
) -> QuizResponse:
    """Build the next question for a learner."""
    if await db.get(Learner, learner_id) is None:
        raise HTTPException(status_code=404, detail="Learner not found")

    try:
        quiz = await service.next_quiz(db, learner_id, store)
    except InsufficientDataError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    tip = None
    if quiz.grammar_tip is not None:
        tip = GrammarTipResponse(
            title=quiz.grammar_tip.title,
            explanation=quiz.grammar_tip.explanation,
            dutch_example=quiz.grammar_tip.dutch_example,
            english_example=quiz.grammar_tip.english_example,
        )

    card = quiz.candidate.card
    return QuizResponse(
        learner_id=learner_id,
        word_id=quiz.word.id,
        direction=quiz.direction.value,
        prompt=quiz.prompt,
        category=quiz.word.category,
        options=quiz.options,
        state=card.state.value,
        review_count=card.review_count,
        lapse_count=card.lapse_count,
        grammar_tip=tip,
    )


@router.post("/{learner_id}/answer", response_model=AnswerResponse)
async def drill_answer(
    learner_id: int,
    request: AnswerRequest,
    store: SessionStore = Depends(get_store),
    service: DrillService = Depends(get_service),
) -> AnswerResponse:
    """Check the option the learner picked."""
    try:
        correct = service.answer(store, learner_id, request.selected_index)
    except NoActiveQuizError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except InvalidAnswerError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    quiz = store.require(learner_id)
    return AnswerResponse(
        correct=correct,
        selected_answer=quiz.options[request.selected_index],
        correct_answer=quiz.correct_answer,
        correct_index=quiz.correct_index,
        english=quiz.word.english,
        dutch=quiz.word.dutch,
    )


@router.post("/{learner_id}/rate", response_model=RateResponse)
async def drill_rate(
    learner_id: int,
    request: RateRequest,
    db: AsyncSession = Depends(get_session),
    store: SessionStore = Depends(get_store),
    service: DrillService = Depends(get_service),
) -> RateResponse:
    """Apply the learner's rating and reschedule the word."""
    try:
        result = await service.rate(db, learner_id, store, request.rating)
    except InvalidRatingError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except NoActiveQuizError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    return RateResponse(
        previous_state=result.log.state.value,
        state=result.card.state.value,
        stability=result.card.stability,
        difficulty=result.card.difficulty,
        next_due=result.card.due_at,
        interval_days=result.interval_days,
        review_count=result.card.review_count,
        lapse_count=result.card.lapse_count,
    )


@router.delete("/{learner_id}")
async def drill_end(
    learner_id: int,
    store: SessionStore = Depends(get_store),
) -> dict:
    """Drop the learner's pending quiz, if any."""
    quiz = store.pop(learner_id)
    return {"status": "ended", "had_pending_quiz": quiz is not None}
