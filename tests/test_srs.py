"""Tests for the SRS engine: FSRS memory model and selection policy."""

import math
from datetime import datetime, timedelta

import pytest

from dutch_drill.exceptions import InvalidRatingError, NoCardsAvailableError
from dutch_drill.srs.fsrs import (
    FSRS,
    MAX_DIFFICULTY,
    MAX_INTERVAL_DAYS,
    MIN_DIFFICULTY,
    FSRSParameters,
    MemoryCard,
    Rating,
    State,
)
from dutch_drill.srs.queue import Candidate, partition_candidates, select_next

T0 = datetime(2025, 1, 6, 9, 0, 0)


def _review_card(stability: float = 5.0, difficulty: float = 5.0, days_ago: int = 5) -> MemoryCard:
    last = T0 - timedelta(days=days_ago)
    return MemoryCard(
        stability=stability,
        difficulty=difficulty,
        due_at=T0,
        last_reviewed_at=last,
        state=State.REVIEW,
        review_count=3,
    )


# --- FSRS Algorithm ---


class TestFSRS:
    def setup_method(self) -> None:
        self.fsrs = FSRS(target_retention=0.9)

    def test_new_card_defaults(self) -> None:
        card = MemoryCard.new(T0)
        assert card.state is State.NEW
        assert card.stability == 1.0
        assert card.difficulty == 5.0
        assert card.due_at == T0
        assert card.last_reviewed_at is None
        assert card.is_due(T0)

    def test_new_good_enters_learning(self) -> None:
        result = self.fsrs.review(MemoryCard.new(T0), Rating.GOOD, T0)
        assert result.card.state is State.LEARNING
        assert result.card.due_at == T0 + timedelta(minutes=10)
        assert result.card.difficulty == pytest.approx(5.0)
        assert result.card.review_count == 1
        assert result.card.last_reviewed_at == T0

    def test_learning_good_graduates(self) -> None:
        t1 = T0 + timedelta(minutes=10)
        learning = self.fsrs.review(MemoryCard.new(T0), Rating.GOOD, T0).card
        result = self.fsrs.review(learning, Rating.GOOD, t1)
        assert result.card.state is State.REVIEW
        assert result.card.stability == pytest.approx(2.7730, abs=1e-4)
        assert result.card.due_at == t1 + timedelta(days=3)
        assert result.card.review_count == 2
        assert result.log.state is State.LEARNING

    def test_new_easy_skips_learning(self) -> None:
        result = self.fsrs.review(MemoryCard.new(T0), Rating.EASY, T0)
        assert result.card.state is State.REVIEW
        assert result.card.stability == pytest.approx(3.9559, abs=1e-4)
        assert result.card.difficulty == pytest.approx(4.4684, abs=1e-4)
        assert result.card.due_at == T0 + timedelta(days=4)

    def test_new_again_and_hard_steps(self) -> None:
        again = self.fsrs.review(MemoryCard.new(T0), Rating.AGAIN, T0).card
        hard = self.fsrs.review(MemoryCard.new(T0), Rating.HARD, T0).card
        assert again.due_at == T0 + timedelta(minutes=1)
        assert hard.due_at == T0 + timedelta(minutes=5)
        assert again.difficulty > hard.difficulty > 5.0
        assert again.state is hard.state is State.LEARNING

    def test_learning_again_stays_learning(self) -> None:
        learning = self.fsrs.review(MemoryCard.new(T0), Rating.GOOD, T0).card
        t1 = T0 + timedelta(minutes=10)
        result = self.fsrs.review(learning, Rating.AGAIN, t1)
        assert result.card.state is State.LEARNING
        assert result.card.due_at == t1 + timedelta(minutes=1)
        assert result.card.lapse_count == 0

    def test_review_again_lapses(self) -> None:
        card = _review_card()
        result = self.fsrs.review(card, Rating.AGAIN, T0)
        assert result.card.state is State.RELEARNING
        assert result.card.lapse_count == card.lapse_count + 1
        assert result.card.due_at == T0 + timedelta(minutes=5)
        assert result.card.review_count == card.review_count + 1

    def test_relearning_good_returns_to_review(self) -> None:
        relearning = self.fsrs.review(_review_card(), Rating.AGAIN, T0).card
        t1 = T0 + timedelta(minutes=5)
        result = self.fsrs.review(relearning, Rating.GOOD, t1)
        assert result.card.state is State.REVIEW
        assert result.card.lapse_count == 1
        assert result.card.due_at >= t1 + timedelta(days=1)

    def test_review_good_increases_stability(self) -> None:
        card = _review_card(stability=2.773)
        result = self.fsrs.review(card, Rating.GOOD, T0)
        assert result.card.state is State.REVIEW
        assert result.card.stability > card.stability
        expected_days = self.fsrs.interval_days(result.card.stability)
        assert result.card.due_at == T0 + timedelta(days=expected_days)

    def test_hard_and_good_both_grow_stability(self) -> None:
        card = _review_card()
        hard = self.fsrs.review(card, Rating.HARD, T0).card
        good = self.fsrs.review(card, Rating.GOOD, T0).card
        assert hard.stability > card.stability
        assert good.stability > card.stability
        assert hard.difficulty > good.difficulty

    def test_review_log_records_elapsed_and_scheduled_days(self) -> None:
        card = MemoryCard(
            stability=3.0,
            difficulty=5.0,
            due_at=T0 + timedelta(days=3),
            last_reviewed_at=T0,
            state=State.REVIEW,
            review_count=2,
        )
        now = T0 + timedelta(days=5, hours=6)
        log = self.fsrs.review(card, Rating.GOOD, now).log
        assert log.elapsed_days == 5
        assert log.scheduled_days == 3
        assert log.state is State.REVIEW
        assert log.rating is Rating.GOOD
        assert log.reviewed_at == now

    def test_first_review_log_has_zero_days(self) -> None:
        log = self.fsrs.review(MemoryCard.new(T0), Rating.GOOD, T0 + timedelta(days=2)).log
        assert log.elapsed_days == 0
        assert log.scheduled_days == 0
        assert log.state is State.NEW

    def test_review_does_not_modify_input(self) -> None:
        card = _review_card()
        self.fsrs.review(card, Rating.EASY, T0)
        assert card == _review_card()

    def test_difficulty_stays_in_bounds(self) -> None:
        card = _review_card(difficulty=9.5)
        for i in range(20):
            card = self.fsrs.review(card, Rating.AGAIN, T0 + timedelta(days=i)).card
            card = self.fsrs.review(card, Rating.HARD, T0 + timedelta(days=i, hours=1)).card
            assert MIN_DIFFICULTY <= card.difficulty <= MAX_DIFFICULTY
        assert self.fsrs.next_difficulty(MAX_DIFFICULTY, Rating.AGAIN) == MAX_DIFFICULTY
        assert self.fsrs.next_difficulty(MIN_DIFFICULTY, Rating.EASY) == MIN_DIFFICULTY

    def test_stability_stays_positive(self) -> None:
        for rating in Rating:
            assert self.fsrs.init_stability(rating) >= 0.1
        card = _review_card(stability=0.1, difficulty=MAX_DIFFICULTY)
        for rating in (Rating.HARD, Rating.GOOD, Rating.EASY):
            assert self.fsrs.review(card, rating, T0).card.stability >= 0.1

    def test_interval_at_least_one_day_and_monotone(self) -> None:
        stabilities = [0.01, 0.1, 0.5, 1.0, 2.4, 2.5, 10.0, 100.0, 365.0]
        intervals = [self.fsrs.interval_days(s) for s in stabilities]
        assert all(i >= 1 for i in intervals)
        assert intervals == sorted(intervals)

    def test_interval_rounds_half_up(self) -> None:
        assert self.fsrs.interval_days(2.4) == 2
        assert self.fsrs.interval_days(2.5) == 3
        assert self.fsrs.interval_days(2.773) == 3

    def test_interval_is_capped(self) -> None:
        assert self.fsrs.interval_days(1e9) == MAX_INTERVAL_DAYS
        assert self.fsrs.interval_days(math.inf) == MAX_INTERVAL_DAYS
        capped = FSRS(FSRSParameters(maximum_interval=30))
        assert capped.interval_days(100.0) == 30

    def test_huge_stability_gets_finite_due_date(self) -> None:
        card = _review_card(stability=5e6)
        result = self.fsrs.review(card, Rating.GOOD, T0)
        assert result.card.state is State.REVIEW
        assert result.card.due_at == T0 + timedelta(days=MAX_INTERVAL_DAYS)

    def test_repeated_good_reviews_never_overflow(self) -> None:
        card = _review_card(stability=2.773)
        now = T0
        for _ in range(30):
            card = self.fsrs.review(card, Rating.GOOD, now).card
            assert card.due_at - now <= timedelta(days=MAX_INTERVAL_DAYS)
            now = card.due_at

    def test_lower_retention_gives_longer_intervals(self) -> None:
        relaxed = FSRS(target_retention=0.8)
        assert relaxed.interval_days(10.0) > self.fsrs.interval_days(10.0)

    def test_retrievability(self) -> None:
        assert self.fsrs.retrievability(0, 5.0) == 1.0
        assert self.fsrs.retrievability(5.0, 5.0) == pytest.approx(0.9)
        assert self.fsrs.retrievability(10.0, 5.0) < 0.9

    def test_invalid_ratings_raise(self) -> None:
        for bad in (0, 5, -1, "x", "", "²", "٣", True, 2.5):
            with pytest.raises(InvalidRatingError):
                self.fsrs.review(MemoryCard.new(T0), bad, T0)

    def test_invalid_rating_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            Rating.parse(7)

    def test_rating_parse_accepts_numbers_and_names(self) -> None:
        assert Rating.parse(3) is Rating.GOOD
        assert Rating.parse("4") is Rating.EASY
        assert Rating.parse(" again ") is Rating.AGAIN
        assert Rating.parse(Rating.HARD) is Rating.HARD

    def test_parameters_validate(self) -> None:
        with pytest.raises(ValueError):
            FSRSParameters(weights=(1.0, 2.0))
        with pytest.raises(ValueError):
            FSRSParameters(target_retention=1.0)

    def test_interval_matches_formula(self) -> None:
        fsrs = FSRS(target_retention=0.85)
        ratio = math.log(0.85) / math.log(0.9)
        assert fsrs.interval_days(20.0) == math.floor(20.0 * ratio + 0.5)


# --- Selection policy ---


def _candidate(word_id: int, last_reviewed_minutes_ago: int | None, due_in_minutes: int = 0) -> Candidate:
    if last_reviewed_minutes_ago is None:
        return Candidate(word_id=word_id, card=MemoryCard.new(T0))
    card = MemoryCard(
        stability=3.0,
        difficulty=5.0,
        due_at=T0 + timedelta(minutes=due_in_minutes),
        last_reviewed_at=T0 - timedelta(minutes=last_reviewed_minutes_ago),
        state=State.REVIEW,
        review_count=2,
    )
    return Candidate(word_id=word_id, card=card, progress_id=word_id)


class TestSelection:
    def test_partition(self) -> None:
        pools = partition_candidates(
            [
                _candidate(1, None),
                _candidate(2, last_reviewed_minutes_ago=2),
                _candidate(3, last_reviewed_minutes_ago=60 * 24),
                _candidate(4, last_reviewed_minutes_ago=60 * 24, due_in_minutes=60),
            ],
            T0,
            cooldown=timedelta(minutes=10),
        )
        assert [c.word_id for c in pools.new] == [1]
        assert [c.word_id for c in pools.recent] == [2]
        assert [c.word_id for c in pools.due] == [3]
        assert pools.total == 3

    def test_due_wins(self) -> None:
        pools = partition_candidates(
            [_candidate(1, None), _candidate(2, 3), _candidate(3, 60 * 24)],
            T0,
        )
        assert pools.select_next().word_id == 3

    def test_new_before_recent(self) -> None:
        pools = partition_candidates([_candidate(2, 3), _candidate(1, None)], T0)
        assert pools.select_next().word_id == 1

    def test_recent_as_last_resort(self) -> None:
        pools = partition_candidates([_candidate(2, 3)], T0)
        assert pools.select_next().word_id == 2

    def test_order_within_bucket_is_kept(self) -> None:
        assert select_next(["a", "b"], ["c"], []) == "a"
        assert select_next([], ["c", "d"], ["e"]) == "c"

    def test_cooldown_boundary(self) -> None:
        pools = partition_candidates([_candidate(1, 10)], T0, cooldown=timedelta(minutes=10))
        assert [c.word_id for c in pools.due] == [1]

    def test_empty_raises(self) -> None:
        with pytest.raises(NoCardsAvailableError):
            select_next([], [], [])
        with pytest.raises(NoCardsAvailableError):
            partition_candidates([], T0).select_next()
