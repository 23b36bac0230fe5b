"""Learning statistics for a learner."""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dutch_drill.models.progress import Progress
from dutch_drill.models.review_log import ReviewLog
from dutch_drill.models.word import Word
from dutch_drill.srs.fsrs import FSRS, State

logger = logging.getLogger(__name__)


@dataclass
class LearnerStats:
    """Counts and averages describing a learner's vocabulary."""

    total_words: int = 0
    new_words: int = 0  # Never studied
    learning_words: int = 0  # Learning or relearning
    review_words: int = 0
    due_words: int = 0
    average_difficulty: float = 0.0
    average_retrievability: float | None = None
    total_reviews: int = 0
    correct_reviews: int = 0  # Rated Good or Easy

    @property
    def accuracy(self) -> float | None:
        """Share of reviews rated Good or Easy."""
        if self.total_reviews == 0:
            return None
        return self.correct_reviews / self.total_reviews


async def learner_stats(
    db: AsyncSession,
    learner_id: int,
    now: datetime,
    fsrs: FSRS | None = None,
) -> LearnerStats:
    """Compute statistics for a learner.

    Args:
        db: Database session.
        learner_id: The learner.
        now: Current time, for due counts and estimated recall.
        fsrs: Memory model used to estimate recall (defaults to standard weights).

    Returns:
        LearnerStats for the learner.
    """
    fsrs = fsrs or FSRS()
    stats = LearnerStats()

    stats.total_words = (await db.execute(select(func.count(Word.id)))).scalar() or 0

    rows = list(
        (await db.execute(select(Progress).where(Progress.learner_id == learner_id))).scalars().all()
    )
    stats.new_words = max(0, stats.total_words - len(rows))

    retrievabilities: list[float] = []
    for row in rows:
        state = State(row.state)
        if state in (State.LEARNING, State.RELEARNING):
            stats.learning_words += 1
        elif state is State.REVIEW:
            stats.review_words += 1
        if row.due <= now:
            stats.due_words += 1
        if row.last_review is not None:
            elapsed = (now - row.last_review).total_seconds() / 86400
            retrievabilities.append(fsrs.retrievability(elapsed, row.stability))

    if rows:
        stats.average_difficulty = sum(row.difficulty for row in rows) / len(rows)
    if retrievabilities:
        stats.average_retrievability = sum(retrievabilities) / len(retrievabilities)

    stats.total_reviews = (
        await db.execute(select(func.count(ReviewLog.id)).where(ReviewLog.learner_id == learner_id))
    ).scalar() or 0
    stats.correct_reviews = (
        await db.execute(
            select(func.count(ReviewLog.id)).where(
                and_(ReviewLog.learner_id == learner_id, ReviewLog.rating >= 3)
            )
        )
    ).scalar() or 0

    logger.debug("Stats for learner %d: %s", learner_id, stats)
    return stats
