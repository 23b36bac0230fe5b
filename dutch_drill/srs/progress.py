"""Storage adapter between the memory model and the database.

Loads candidate words for the selection policy and persists the outcome of
a review (updated progress plus its log entry) in a single transaction.
"""

import logging
from datetime import datetime

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dutch_drill.models.progress import Progress
from dutch_drill.models.review_log import ReviewLog
from dutch_drill.models.word import Word
from dutch_drill.srs.fsrs import MemoryCard, ReviewResult, State
from dutch_drill.srs.queue import Candidate

logger = logging.getLogger(__name__)


def card_from_progress(progress: Progress) -> MemoryCard:
    """Rebuild the memory card stored in a progress row."""
    return MemoryCard(
        stability=progress.stability,
        difficulty=progress.difficulty,
        due_at=progress.due,
        last_reviewed_at=progress.last_review,
        state=State(progress.state),
        review_count=progress.review_count,
        lapse_count=progress.lapses,
    )


def apply_card(progress: Progress, card: MemoryCard) -> None:
    """Copy a memory card onto a progress row."""
    progress.stability = card.stability
    progress.difficulty = card.difficulty
    progress.due = card.due_at
    progress.last_review = card.last_reviewed_at
    progress.state = card.state.value
    progress.review_count = card.review_count
    progress.lapses = card.lapse_count


async def fetch_candidates(
    db: AsyncSession,
    learner_id: int,
    now: datetime,
    limit: int,
) -> list[Candidate]:
    """Fetch words a learner could be drilled on.

    Stored words that are due come first (most overdue first). If there are
    fewer than ``limit``, the list is topped up with words the learner has
    never studied, in random order.

    Args:
        db: Database session.
        learner_id: The learner to fetch for.
        now: Current time.
        limit: Maximum number of candidates.

    Returns:
        Candidates in priority order for the selection policy.
    """
    due_stmt = (
        select(Progress)
        .where(and_(Progress.learner_id == learner_id, Progress.due <= now))
        .order_by(Progress.due.asc())
        .limit(limit)
    )
    due_rows = list((await db.execute(due_stmt)).scalars().all())
    candidates = [
        Candidate(word_id=row.word_id, card=card_from_progress(row), progress_id=row.id)
        for row in due_rows
    ]

    remaining = limit - len(candidates)
    if remaining > 0:
        studied = select(Progress.word_id).where(Progress.learner_id == learner_id)
        new_stmt = (
            select(Word.id)
            .where(Word.id.not_in(studied))
            .order_by(func.random())
            .limit(remaining)
        )
        new_ids = list((await db.execute(new_stmt)).scalars().all())
        candidates.extend(Candidate(word_id=word_id, card=MemoryCard.new(now)) for word_id in new_ids)

    logger.debug(
        "Fetched %d candidates for learner %d (%d stored)",
        len(candidates),
        learner_id,
        len(due_rows),
    )
    return candidates


async def record_review(
    db: AsyncSession,
    learner_id: int,
    word_id: int,
    result: ReviewResult,
    was_correct: bool | None = None,
    response_time_ms: int = 0,
) -> Progress:
    """Persist the reviewed card and its log entry together.

    Creates the progress row on a word's first review.
    """
    stmt = select(Progress).where(
        and_(Progress.learner_id == learner_id, Progress.word_id == word_id)
    )
    progress = (await db.execute(stmt)).scalar_one_or_none()
    if progress is None:
        progress = Progress(learner_id=learner_id, word_id=word_id)
        db.add(progress)

    apply_card(progress, result.card)
    await db.flush()

    db.add(
        ReviewLog(
            progress_id=progress.id,
            learner_id=learner_id,
            word_id=word_id,
            rating=int(result.log.rating),
            elapsed_days=result.log.elapsed_days,
            scheduled_days=result.log.scheduled_days,
            state=result.log.state.value,
            was_correct=was_correct,
            response_time_ms=response_time_ms,
            reviewed_at=result.log.reviewed_at,
        )
    )
    await db.commit()
    return progress
