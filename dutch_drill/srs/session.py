"""Drill session orchestrator.

Coordinates the selection policy, option generation, the memory model and
persistence into the question -> answer -> rating flow.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dutch_drill.config import settings, utcnow
from dutch_drill.exceptions import (
    InvalidAnswerError,
    NoActiveQuizError,
    NoCardsAvailableError,
)
from dutch_drill.models.grammar_tip import GrammarTip
from dutch_drill.models.learner import Learner
from dutch_drill.models.word import Word
from dutch_drill.srs.choices import (
    NUM_OPTIONS,
    NUM_WRONG,
    Choices,
    Direction,
    RandomSource,
    build_choices,
    collect_wrong_answers,
    default_random_source,
)
from dutch_drill.srs.fsrs import FSRS, Rating, ReviewResult
from dutch_drill.srs.progress import fetch_candidates, record_review
from dutch_drill.srs.queue import Candidate, partition_candidates

logger = logging.getLogger(__name__)


@dataclass
class Quiz:
    """A multiple-choice question waiting for the learner's answer and rating."""

    learner_id: int
    word: Word
    candidate: Candidate
    direction: Direction
    choices: Choices
    started_at: datetime
    grammar_tip: GrammarTip | None = None
    selected_index: int | None = None

    @property
    def prompt(self) -> str:
        return self.direction.prompt_for(self.word)

    @property
    def options(self) -> list[str]:
        return self.choices.options

    @property
    def correct_index(self) -> int:
        return self.choices.correct_index

    @property
    def correct_answer(self) -> str:
        return self.choices.correct_answer

    @property
    def answered(self) -> bool:
        return self.selected_index is not None

    @property
    def was_correct(self) -> bool | None:
        """Whether the selected option was right, or None before answering."""
        if self.selected_index is None:
            return None
        return self.choices.is_correct(self.selected_index)


class SessionStore:
    """Pending quizzes keyed by learner id.

    At most one quiz is pending per learner, which also serializes reviews
    of the same learner-word pair.
    """

    def __init__(self) -> None:
        self._quizzes: dict[int, Quiz] = {}

    def __len__(self) -> int:
        return len(self._quizzes)

    def __contains__(self, learner_id: int) -> bool:
        return learner_id in self._quizzes

    def get(self, learner_id: int) -> Quiz | None:
        return self._quizzes.get(learner_id)

    def require(self, learner_id: int) -> Quiz:
        """Return the learner's pending quiz.

        Raises:
            NoActiveQuizError: If the learner has none.
        """
        quiz = self._quizzes.get(learner_id)
        if quiz is None:
            raise NoActiveQuizError(f"No active quiz for learner {learner_id}")
        return quiz

    def put(self, quiz: Quiz) -> None:
        """Store a quiz, replacing any pending one for the same learner."""
        self._quizzes[quiz.learner_id] = quiz

    def pop(self, learner_id: int) -> Quiz | None:
        return self._quizzes.pop(learner_id, None)

    def clear(self) -> None:
        self._quizzes.clear()


def pick_grammar_tip(
    word: Word,
    tips: Sequence[GrammarTip],
    rng: RandomSource,
) -> GrammarTip | None:
    """Pick a random tip that applies to ``word``, or None if none apply."""
    applicable = [tip for tip in tips if tip.applies_to(word.dutch, word.english, word.category)]
    if not applicable:
        return None
    return applicable[rng.randbelow(len(applicable))]


class DrillService:
    """Runs multiple-choice vocabulary drills backed by the FSRS memory model."""

    def __init__(
        self,
        fsrs: FSRS | None = None,
        rng: RandomSource | None = None,
        pool_size: int = settings.candidate_pool_size,
        cooldown: timedelta = timedelta(minutes=settings.recent_review_cooldown_minutes),
        grammar_tip_chance_percent: int = settings.grammar_tip_chance_percent,
    ) -> None:
        self.fsrs = fsrs or FSRS(target_retention=settings.target_retention)
        self.rng = rng or default_random_source()
        self.pool_size = pool_size
        self.cooldown = cooldown
        self.grammar_tip_chance_percent = grammar_tip_chance_percent

    async def next_quiz(
        self,
        db: AsyncSession,
        learner_id: int,
        store: SessionStore,
        now: datetime | None = None,
    ) -> Quiz:
        """Select the next word for a learner and build its quiz.

        The quiz replaces any pending quiz for the learner in ``store``.

        Raises:
            NoCardsAvailableError: If there is nothing to drill.
            InsufficientOptionsError: If the vocabulary is too small for four options.
        """
        now = now or utcnow()
        candidates = await fetch_candidates(db, learner_id, now, self.pool_size)
        candidate = partition_candidates(candidates, now, self.cooldown).select_next()

        word = await db.get(Word, candidate.word_id)
        if word is None:
            raise NoCardsAvailableError(f"Word {candidate.word_id} no longer exists")

        direction = (Direction.ENGLISH_TO_DUTCH, Direction.DUTCH_TO_ENGLISH)[self.rng.randbelow(2)]
        choices = await self._build_choices(db, word, direction)
        grammar_tip = await self._maybe_grammar_tip(db, learner_id, word)

        quiz = Quiz(
            learner_id=learner_id,
            word=word,
            candidate=candidate,
            direction=direction,
            choices=choices,
            started_at=now,
            grammar_tip=grammar_tip,
        )
        store.put(quiz)

        logger.info(
            "Quiz for learner %d: word %d (%s, %s)",
            learner_id,
            word.id,
            candidate.card.state.value,
            direction.value,
        )
        return quiz

    def answer(self, store: SessionStore, learner_id: int, selected_index: int) -> bool:
        """Record the learner's chosen option and return whether it was correct.

        Raises:
            NoActiveQuizError: If the learner has no pending quiz.
            InvalidAnswerError: If the index is not one of the options.
        """
        quiz = store.require(learner_id)
        if not 0 <= selected_index < NUM_OPTIONS:
            raise InvalidAnswerError(f"Option index must be 0-{NUM_OPTIONS - 1}, got {selected_index}")
        quiz.selected_index = selected_index
        return quiz.choices.is_correct(selected_index)

    async def rate(
        self,
        db: AsyncSession,
        learner_id: int,
        store: SessionStore,
        rating: Rating | int | str,
        now: datetime | None = None,
    ) -> ReviewResult:
        """Apply the learner's rating to the pending quiz's word and persist it.

        Raises:
            NoActiveQuizError: If the learner has no pending quiz.
            InvalidRatingError: If the rating is not one of the four grades.
        """
        now = now or utcnow()
        rating = Rating.parse(rating)
        quiz = store.pop(learner_id)
        if quiz is None:
            raise NoActiveQuizError(f"No active quiz for learner {learner_id}")

        result = self.fsrs.review(quiz.candidate.card, rating, now)
        response_time_ms = max(0, int((now - quiz.started_at).total_seconds() * 1000))
        try:
            await record_review(
                db,
                learner_id=learner_id,
                word_id=quiz.word.id,
                result=result,
                was_correct=quiz.was_correct,
                response_time_ms=response_time_ms,
            )
        except Exception:
            store.put(quiz)
            raise

        logger.info(
            "Learner %d rated word %d %s: %s -> %s, next in %.2f days",
            learner_id,
            quiz.word.id,
            rating.name,
            result.log.state.value,
            result.card.state.value,
            result.interval_days,
        )
        return result

    async def _build_choices(self, db: AsyncSession, word: Word, direction: Direction) -> Choices:
        same_category = list(
            (
                await db.execute(select(Word).where(Word.category == word.category).order_by(Word.id))
            ).scalars().all()
        )
        all_words: list[Word] = []
        if len(collect_wrong_answers(word, same_category, [], direction)) < NUM_WRONG:
            all_words = list((await db.execute(select(Word).order_by(Word.id))).scalars().all())
        return build_choices(word, same_category, all_words, direction, self.rng)

    async def _maybe_grammar_tip(
        self,
        db: AsyncSession,
        learner_id: int,
        word: Word,
    ) -> GrammarTip | None:
        learner = await db.get(Learner, learner_id)
        if learner is None or not learner.grammar_tips_enabled:
            return None
        if self.rng.randbelow(100) >= self.grammar_tip_chance_percent:
            return None
        tips = list((await db.execute(select(GrammarTip))).scalars().all())
        return pick_grammar_tip(word, tips, self.rng)
