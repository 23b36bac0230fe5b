"""FSRS (Free Spaced Repetition Scheduler) memory model for vocabulary drills.

An FSRS-v4 style state machine over a small per-(learner, word) record.
Reference: https://github.com/open-spaced-repetition/fsrs4anki

Key concepts:
- Stability (S): The number of days after which retention drops to the target (90%).
- Difficulty (D): A value between 1 and 10 representing inherent item difficulty.
- State: New -> Learning -> Review, with Review -> Relearning on a lapse.
- Rating: 1=Again, 2=Hard, 3=Good, 4=Easy

Cards in Learning/Relearning are scheduled with short fixed offsets in
minutes; cards in Review are scheduled in whole days from their stability.
The transition function is pure: every due instant is derived from the
``now`` passed in by the caller.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum, IntEnum

from dutch_drill.exceptions import InvalidRatingError

logger = logging.getLogger(__name__)

# FSRS v4 default weights, calibrated empirically. Do not round or "simplify".
# w[0..1]: initial stability base / per-rating step
# w[4..5]: initial difficulty for Good / per-rating step (w4 is not used, see
#          FSRSParameters.initial_difficulty)
# w[6]: hard penalty on stability growth
# w[7]: easy multiplier on stability growth
# w[8..10]: stability growth exponent, stability power, retention term
# w[11..12]: difficulty step per rating, mean reversion toward 5
DEFAULT_WEIGHTS: tuple[float, ...] = (
    0.4072,  # w0
    1.1829,  # w1
    3.1262,  # w2
    15.4722,  # w3
    7.2102,  # w4
    0.5316,  # w5
    1.0651,  # w6
    0.0234,  # w7
    1.616,  # w8
    0.1544,  # w9
    1.0824,  # w10
    1.9813,  # w11
    0.0953,  # w12
    0.2975,  # w13
    2.2042,  # w14
    0.2407,  # w15
    2.9466,  # w16
    0.5034,  # w17
    0.6567,  # w18
)

# Target recall probability at the next scheduled review
DEFAULT_TARGET_RETENTION = 0.9

# Forgetting curve shape: R(t) = (1 + FACTOR * t / S) ** DECAY
DECAY = -0.5
FACTOR = 19.0 / 81.0

# Bounds
MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0
MEAN_DIFFICULTY = 5.0
MIN_STABILITY = 0.1

# Longest interval a Review card can be scheduled for
MAX_INTERVAL_DAYS = 36500

# New cards before their first review
NEW_CARD_STABILITY = 1.0
NEW_CARD_DIFFICULTY = 5.0

SECONDS_PER_DAY = 86400


class Rating(IntEnum):
    """How well the learner recalled the word."""

    AGAIN = 1  # Complete blackout
    HARD = 2  # Wrong, but remembered on seeing the answer
    GOOD = 3  # Correct after a hesitation
    EASY = 4  # Perfect response

    @classmethod
    def parse(cls, value: "Rating | int | str") -> "Rating":
        """Convert a raw rating (1-4 or a grade name) into a Rating.

        Raises:
            InvalidRatingError: If the value is not one of the four grades.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise InvalidRatingError(f"Invalid rating: {value!r}")
        if isinstance(value, str):
            text = value.strip()
            if text.isascii() and text.isdigit():
                value = int(text)
            elif text.upper() in cls.__members__:
                return cls[text.upper()]
            else:
                raise InvalidRatingError(f"Invalid rating: {value!r}")
        try:
            return cls(value)
        except ValueError as exc:
            raise InvalidRatingError(f"Invalid rating: {value!r}") from exc


class State(Enum):
    """Lifecycle phase of a card."""

    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


@dataclass(frozen=True)
class MemoryCard:
    """The memory state of one word for one learner."""

    stability: float  # Days until retention = target_retention
    difficulty: float  # 1-10, inherent difficulty
    due_at: datetime  # When the card is next due
    last_reviewed_at: datetime | None = None  # None until the first review
    state: State = State.NEW
    review_count: int = 0
    lapse_count: int = 0  # Times the card was forgotten while in Review

    @classmethod
    def new(cls, now: datetime) -> "MemoryCard":
        """Create the state of a word the learner has never reviewed."""
        return cls(
            stability=NEW_CARD_STABILITY,
            difficulty=NEW_CARD_DIFFICULTY,
            due_at=now,
        )

    def is_due(self, now: datetime) -> bool:
        """Return True if the card may be presented at ``now``."""
        return self.due_at <= now


@dataclass(frozen=True)
class ReviewLogEntry:
    """An immutable record of a single review, for analytics."""

    rating: Rating
    elapsed_days: int  # Whole days since the previous review
    scheduled_days: int  # Whole days the previous schedule asked for
    state: State  # State before the review
    reviewed_at: datetime


@dataclass(frozen=True)
class ReviewResult:
    """The result of applying a review to a card."""

    card: MemoryCard
    log: ReviewLogEntry

    @property
    def interval_days(self) -> float:
        """Time until the next review, in (possibly fractional) days."""
        seconds = (self.card.due_at - self.log.reviewed_at).total_seconds()
        return max(0.0, seconds / SECONDS_PER_DAY)


@dataclass(frozen=True)
class FSRSParameters:
    """Calibration of the memory model."""

    weights: tuple[float, ...] = DEFAULT_WEIGHTS
    target_retention: float = DEFAULT_TARGET_RETENTION
    decay: float = DECAY
    factor: float = FACTOR
    # Anchor of init_difficulty: a first "Good" starts at the mean difficulty
    initial_difficulty: float = MEAN_DIFFICULTY
    learning_steps: dict[Rating, timedelta] = field(
        default_factory=lambda: {
            Rating.AGAIN: timedelta(minutes=1),
            Rating.HARD: timedelta(minutes=5),
            Rating.GOOD: timedelta(minutes=10),
        }
    )
    relearning_step: timedelta = timedelta(minutes=5)
    maximum_interval: int = MAX_INTERVAL_DAYS

    def __post_init__(self) -> None:
        if len(self.weights) != len(DEFAULT_WEIGHTS):
            raise ValueError(f"Expected {len(DEFAULT_WEIGHTS)} weights, got {len(self.weights)}")
        if not 0 < self.target_retention < 1:
            raise ValueError(f"target_retention must be in (0, 1), got {self.target_retention}")
        if self.maximum_interval < 1:
            raise ValueError(f"maximum_interval must be at least 1 day, got {self.maximum_interval}")


class FSRS:
    """Free Spaced Repetition Scheduler."""

    def __init__(
        self,
        params: FSRSParameters | None = None,
        target_retention: float | None = None,
    ) -> None:
        """Initialize FSRS with optional custom parameters and target retention."""
        params = params or FSRSParameters()
        if target_retention is not None:
            params = replace(params, target_retention=target_retention)
        self.params = params
        self.w = params.weights

    def review(
        self,
        card: MemoryCard,
        rating: Rating | int | str,
        now: datetime,
    ) -> ReviewResult:
        """Apply a review rating to a card.

        Args:
            card: Current card state.
            rating: Review rating (1=Again, 2=Hard, 3=Good, 4=Easy).
            now: When the review happened.

        Returns:
            ReviewResult with the new card and the log entry for this review.

        Raises:
            InvalidRatingError: If ``rating`` is not one of the four grades.
        """
        rating = Rating.parse(rating)

        elapsed_days = 0
        scheduled_days = 0
        if card.last_reviewed_at is not None:
            elapsed_days = _whole_days(now - card.last_reviewed_at)
            scheduled_days = _whole_days(card.due_at - card.last_reviewed_at)

        if card.state is State.NEW:
            new_card = self._review_new(card, rating, now)
        elif card.state in (State.LEARNING, State.RELEARNING):
            new_card = self._review_learning(card, rating, now)
        else:
            new_card = self._review_review(card, rating, now)

        new_card = replace(
            new_card,
            last_reviewed_at=now,
            review_count=card.review_count + 1,
        )

        log = ReviewLogEntry(
            rating=rating,
            elapsed_days=elapsed_days,
            scheduled_days=scheduled_days,
            state=card.state,
            reviewed_at=now,
        )

        logger.debug(
            "Reviewed card %s -> %s (rating=%s, S=%.4f, D=%.4f, due=%s)",
            card.state.value,
            new_card.state.value,
            rating.name,
            new_card.stability,
            new_card.difficulty,
            new_card.due_at.isoformat(),
        )
        return ReviewResult(card=new_card, log=log)

    def _review_new(self, card: MemoryCard, rating: Rating, now: datetime) -> MemoryCard:
        difficulty = self.init_difficulty(rating)
        if rating == Rating.EASY:
            return self._graduate(replace(card, difficulty=difficulty), rating, now)
        return replace(
            card,
            difficulty=difficulty,
            state=State.LEARNING,
            due_at=now + self.params.learning_steps[rating],
        )

    def _review_learning(self, card: MemoryCard, rating: Rating, now: datetime) -> MemoryCard:
        if rating in (Rating.AGAIN, Rating.HARD):
            return replace(
                card,
                state=State.LEARNING,
                due_at=now + self.params.learning_steps[rating],
            )
        return self._graduate(card, rating, now)

    def _review_review(self, card: MemoryCard, rating: Rating, now: datetime) -> MemoryCard:
        if rating == Rating.AGAIN:
            return replace(
                card,
                state=State.RELEARNING,
                lapse_count=card.lapse_count + 1,
                due_at=now + self.params.relearning_step,
            )
        stability = self.next_stability(card.difficulty, card.stability, rating)
        return replace(
            card,
            state=State.REVIEW,
            stability=stability,
            difficulty=self.next_difficulty(card.difficulty, rating),
            due_at=now + timedelta(days=self.interval_days(stability)),
        )

    def _graduate(self, card: MemoryCard, rating: Rating, now: datetime) -> MemoryCard:
        """Move a card into Review with its initial stability for ``rating``."""
        stability = self.init_stability(rating)
        return replace(
            card,
            state=State.REVIEW,
            stability=stability,
            due_at=now + timedelta(days=self.interval_days(stability)),
        )

    def init_difficulty(self, rating: Rating) -> float:
        """Difficulty after the first review: D0 - w5 * (rating - 3), floored at 1."""
        return max(self.params.initial_difficulty - self.w[5] * (rating - 3), MIN_DIFFICULTY)

    def init_stability(self, rating: Rating) -> float:
        """Stability on graduation: w0 + w1 * (rating - 1), floored at 0.1."""
        return max(self.w[0] + self.w[1] * (rating - 1), MIN_STABILITY)

    def next_stability(self, difficulty: float, stability: float, rating: Rating) -> float:
        """Stability after a successful review of a card in Review.

        S' = S * (1 + e^w8 * (11 - D) * S^w9 * (e^((1 - R) * w10) - 1) * hard * easy)
        """
        hard_penalty = self.w[6] if rating == Rating.HARD else 1.0
        easy_bonus = self.w[7] if rating == Rating.EASY else 1.0
        growth = (
            math.exp(self.w[8])
            * (11 - difficulty)
            * stability ** self.w[9]
            * (math.exp((1 - self.params.target_retention) * self.w[10]) - 1)
            * hard_penalty
            * easy_bonus
        )
        return stability * (1 + growth)

    def next_difficulty(self, difficulty: float, rating: Rating) -> float:
        """Difficulty after a review, with mean reversion toward 5, clamped to [1, 10]."""
        new_d = difficulty - self.w[11] * (rating - 3)
        new_d += self.w[12] * (MEAN_DIFFICULTY - new_d)
        return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, new_d))

    def interval_days(self, stability: float) -> int:
        """Convert stability to a whole-day interval for the target retention.

        interval = S * ln(target_retention) / ln(0.9), rounded half up, at least 1
        and at most ``maximum_interval``.
        """
        ratio = math.log(self.params.target_retention) / math.log(0.9)
        days = stability * ratio
        if days >= self.params.maximum_interval:
            return self.params.maximum_interval
        return max(math.floor(days + 0.5), 1)

    def retrievability(self, elapsed_days: float, stability: float) -> float:
        """Probability of recall after ``elapsed_days`` on the power forgetting curve."""
        if stability <= 0 or elapsed_days <= 0:
            return 1.0
        return (1 + self.params.factor * elapsed_days / stability) ** self.params.decay


def _whole_days(delta: timedelta) -> int:
    """Whole days in ``delta``, truncated, never negative."""
    return max(0, int(delta.total_seconds() / SECONDS_PER_DAY))
