"""API routes for learner statistics."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from dutch_drill.api.schemas import LearnerStatsResponse
from dutch_drill.config import utcnow
from dutch_drill.database import get_session
from dutch_drill.models.learner import Learner
from dutch_drill.srs.stats import learner_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("/{learner_id}", response_model=LearnerStatsResponse)
async def get_learner_stats(
    learner_id: int,
    db: AsyncSession = Depends(get_session),
) -> LearnerStatsResponse:
    """Get overall statistics for a learner."""
    if await db.get(Learner, learner_id) is None:
        raise HTTPException(status_code=404, detail="Learner not found")

    stats = await learner_stats(db, learner_id, utcnow())
    return LearnerStatsResponse(
        total_words=stats.total_words,
        new_words=stats.new_words,
        learning_words=stats.learning_words,
        review_words=stats.review_words,
        due_words=stats.due_words,
        average_difficulty=round(stats.average_difficulty, 3),
        average_retrievability=(
            round(stats.average_retrievability, 3) if stats.average_retrievability is not None else None
        ),
        total_reviews=stats.total_reviews,
        correct_reviews=stats.correct_reviews,
        accuracy=round(stats.accuracy, 3) if stats.accuracy is not None else None,
    )
