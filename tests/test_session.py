"""Tests for the drill service against a temporary SQLite database."""

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from dutch_drill.exceptions import (
    InsufficientOptionsError,
    InvalidAnswerError,
    InvalidRatingError,
    NoActiveQuizError,
    NoCardsAvailableError,
)
from dutch_drill.models import Base, GrammarTip, Learner, Progress, ReviewLog, Word
from dutch_drill.srs.choices import Direction, TimeSeededRandomSource
from dutch_drill.srs.fsrs import FSRS, Rating, State
from dutch_drill.srs.session import DrillService, SessionStore, pick_grammar_tip
from dutch_drill.srs.stats import learner_stats

T0 = datetime(2025, 3, 1, 12, 0, 0)

ANIMALS = [
    ("dog", "hond"),
    ("cat", "kat"),
    ("horse", "paard"),
    ("cow", "koe"),
    ("fish", "vis"),
]


@asynccontextmanager
async def drill_db(tmp_path: Path) -> AsyncIterator[AsyncSession]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'drill.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with session_maker() as session:
            yield session
    finally:
        await engine.dispose()


async def _seed(
    db: AsyncSession,
    pairs: list[tuple[str, str]] = ANIMALS,
    category: str = "animals",
    grammar_tips: bool = True,
) -> Learner:
    learner = Learner(name="Test", grammar_tips_enabled=grammar_tips)
    db.add(learner)
    for english, dutch in pairs:
        db.add(Word(english=english, dutch=dutch, category=category))
    await db.commit()
    return learner


def _service(**kwargs) -> DrillService:
    kwargs.setdefault("grammar_tip_chance_percent", 0)
    return DrillService(fsrs=FSRS(), rng=TimeSeededRandomSource(seed=11), **kwargs)


class TestNextQuiz:
    @pytest.mark.asyncio
    async def test_builds_four_option_quiz(self, tmp_path: Path) -> None:
        async with drill_db(tmp_path) as db:
            learner = await _seed(db)
            store = SessionStore()
            quiz = await _service().next_quiz(db, learner.id, store, now=T0)

            assert store.get(learner.id) is quiz
            assert len(quiz.options) == 4
            assert len(set(quiz.options)) == 4
            assert quiz.correct_answer == quiz.direction.answer_for(quiz.word)
            assert quiz.prompt == quiz.direction.prompt_for(quiz.word)
            assert quiz.candidate.is_new
            assert quiz.candidate.card.state is State.NEW
            assert not quiz.answered

    @pytest.mark.asyncio
    async def test_no_words_raises(self, tmp_path: Path) -> None:
        async with drill_db(tmp_path) as db:
            learner = await _seed(db, pairs=[])
            with pytest.raises(NoCardsAvailableError):
                await _service().next_quiz(db, learner.id, SessionStore(), now=T0)

    @pytest.mark.asyncio
    async def test_too_small_vocabulary_raises(self, tmp_path: Path) -> None:
        async with drill_db(tmp_path) as db:
            learner = await _seed(db, pairs=ANIMALS[:3])
            store = SessionStore()
            with pytest.raises(InsufficientOptionsError):
                await _service().next_quiz(db, learner.id, store, now=T0)
            assert learner.id not in store

    @pytest.mark.asyncio
    async def test_distractors_come_from_other_categories_when_needed(self, tmp_path: Path) -> None:
        async with drill_db(tmp_path) as db:
            learner = await _seed(db, pairs=ANIMALS[:2])
            for english, dutch in [("red", "rood"), ("blue", "blauw"), ("green", "groen")]:
                db.add(Word(english=english, dutch=dutch, category="colors"))
            await db.commit()

            quiz = await _service().next_quiz(db, learner.id, SessionStore(), now=T0)
            assert len(set(quiz.options)) == 4

    @pytest.mark.asyncio
    async def test_due_word_is_preferred(self, tmp_path: Path) -> None:
        async with drill_db(tmp_path) as db:
            learner = await _seed(db)
            horse = (await db.execute(select(Word).where(Word.english == "horse"))).scalar_one()
            db.add(
                Progress(
                    learner_id=learner.id,
                    word_id=horse.id,
                    stability=3.0,
                    difficulty=5.0,
                    due=T0 - timedelta(hours=1),
                    last_review=T0 - timedelta(days=3),
                    state=State.REVIEW.value,
                    review_count=2,
                    lapses=0,
                )
            )
            await db.commit()

            quiz = await _service().next_quiz(db, learner.id, SessionStore(), now=T0)
            assert quiz.word.id == horse.id
            assert quiz.candidate.card.state is State.REVIEW
            assert not quiz.candidate.is_new

    @pytest.mark.asyncio
    async def test_grammar_tip_attached(self, tmp_path: Path) -> None:
        async with drill_db(tmp_path) as db:
            learner = await _seed(db)
            tip = GrammarTip(
                title="De and het",
                explanation="Most animals take 'de'.",
                category="articles",
                applicable_categories=json.dumps(["animals"]),
            )
            db.add(tip)
            await db.commit()

            service = _service(grammar_tip_chance_percent=100)
            quiz = await service.next_quiz(db, learner.id, SessionStore(), now=T0)
            assert quiz.grammar_tip is not None
            assert quiz.grammar_tip.title == "De and het"

    @pytest.mark.asyncio
    async def test_grammar_tip_respects_preference(self, tmp_path: Path) -> None:
        async with drill_db(tmp_path) as db:
            learner = await _seed(db, grammar_tips=False)
            db.add(
                GrammarTip(
                    title="De and het",
                    explanation="Most animals take 'de'.",
                    category="articles",
                    applicable_categories=json.dumps(["animals"]),
                )
            )
            await db.commit()

            service = _service(grammar_tip_chance_percent=100)
            quiz = await service.next_quiz(db, learner.id, SessionStore(), now=T0)
            assert quiz.grammar_tip is None


class TestAnswerAndRate:
    @pytest.mark.asyncio
    async def test_full_cycle_persists_review(self, tmp_path: Path) -> None:
        async with drill_db(tmp_path) as db:
            learner = await _seed(db)
            service = _service()
            store = SessionStore()
            quiz = await service.next_quiz(db, learner.id, store, now=T0)

            assert service.answer(store, learner.id, quiz.correct_index) is True
            assert quiz.was_correct is True

            result = await service.rate(db, learner.id, store, Rating.GOOD, now=T0 + timedelta(seconds=4))
            assert result.card.state is State.LEARNING
            assert learner.id not in store

            progress = (
                await db.execute(select(Progress).where(Progress.word_id == quiz.word.id))
            ).scalar_one()
            assert progress.state == "learning"
            assert progress.review_count == 1
            assert progress.due == T0 + timedelta(seconds=4, minutes=10)

            log = (await db.execute(select(ReviewLog))).scalar_one()
            assert log.rating == 3
            assert log.state == "new"
            assert log.was_correct is True
            assert log.response_time_ms == 4000

    @pytest.mark.asyncio
    async def test_wrong_answer_is_recorded(self, tmp_path: Path) -> None:
        async with drill_db(tmp_path) as db:
            learner = await _seed(db)
            service = _service()
            store = SessionStore()
            quiz = await service.next_quiz(db, learner.id, store, now=T0)

            wrong_index = (quiz.correct_index + 1) % 4
            assert service.answer(store, learner.id, wrong_index) is False
            await service.rate(db, learner.id, store, "again", now=T0)

            log = (await db.execute(select(ReviewLog))).scalar_one()
            assert log.was_correct is False
            assert log.rating == 1

    @pytest.mark.asyncio
    async def test_rated_word_is_not_repeated_immediately(self, tmp_path: Path) -> None:
        async with drill_db(tmp_path) as db:
            learner = await _seed(db)
            service = _service()
            store = SessionStore()
            first = await service.next_quiz(db, learner.id, store, now=T0)
            await service.rate(db, learner.id, store, Rating.GOOD, now=T0)

            second = await service.next_quiz(db, learner.id, store, now=T0 + timedelta(minutes=1))
            assert second.word.id != first.word.id

    @pytest.mark.asyncio
    async def test_invalid_rating_keeps_quiz(self, tmp_path: Path) -> None:
        async with drill_db(tmp_path) as db:
            learner = await _seed(db)
            service = _service()
            store = SessionStore()
            await service.next_quiz(db, learner.id, store, now=T0)

            with pytest.raises(InvalidRatingError):
                await service.rate(db, learner.id, store, 9, now=T0)
            assert learner.id in store

            count = (await db.execute(select(func.count(ReviewLog.id)))).scalar()
            assert count == 0

    @pytest.mark.asyncio
    async def test_rate_without_quiz_raises(self, tmp_path: Path) -> None:
        async with drill_db(tmp_path) as db:
            learner = await _seed(db)
            with pytest.raises(NoActiveQuizError):
                await _service().rate(db, learner.id, SessionStore(), Rating.GOOD, now=T0)

    def test_answer_without_quiz_raises(self) -> None:
        with pytest.raises(NoActiveQuizError):
            _service().answer(SessionStore(), 1, 0)

    @pytest.mark.asyncio
    async def test_answer_out_of_range(self, tmp_path: Path) -> None:
        async with drill_db(tmp_path) as db:
            learner = await _seed(db)
            service = _service()
            store = SessionStore()
            await service.next_quiz(db, learner.id, store, now=T0)
            with pytest.raises(InvalidAnswerError):
                service.answer(store, learner.id, 4)

    @pytest.mark.asyncio
    async def test_stats_after_review(self, tmp_path: Path) -> None:
        async with drill_db(tmp_path) as db:
            learner = await _seed(db)
            service = _service()
            store = SessionStore()
            await service.next_quiz(db, learner.id, store, now=T0)
            await service.rate(db, learner.id, store, Rating.GOOD, now=T0)

            stats = await learner_stats(db, learner.id, T0 + timedelta(hours=1))
            assert stats.total_words == 5
            assert stats.new_words == 4
            assert stats.learning_words == 1
            assert stats.review_words == 0
            assert stats.due_words == 1
            assert stats.total_reviews == 1
            assert stats.correct_reviews == 1
            assert stats.accuracy == 1.0
            assert stats.average_retrievability is not None


class TestSessionStore:
    def test_require_and_pop(self) -> None:
        store = SessionStore()
        assert len(store) == 0
        with pytest.raises(NoActiveQuizError):
            store.require(5)
        assert store.pop(5) is None


class TestGrammarTips:
    def test_pick_matching_tip(self) -> None:
        word = Word(id=1, english="to walk", dutch="lopen", category="verbs")
        tips = [
            GrammarTip(title="Plurals", explanation="", category="plurals", word_patterns='["-s"]'),
            GrammarTip(title="Infinitives", explanation="", category="verbs", word_patterns='["-en"]'),
        ]
        assert pick_grammar_tip(word, tips, TimeSeededRandomSource(seed=1)).title == "Infinitives"

    def test_no_matching_tip(self) -> None:
        word = Word(id=1, english="red", dutch="rood", category="colors")
        tip = GrammarTip(title="Verbs", explanation="", category="verbs", specific_words='["zijn"]')
        assert pick_grammar_tip(word, [tip], TimeSeededRandomSource(seed=1)) is None

    def test_direction_prompt(self) -> None:
        word = Word(id=1, english="dog", dutch="hond", category="animals")
        assert Direction.DUTCH_TO_ENGLISH.prompt_for(word) == "hond"
        assert Direction.DUTCH_TO_ENGLISH.answer_for(word) == "dog"
