"""Multiple-choice option generation.

Builds a 4-way quiz for a word: the correct translation at a uniformly random
position plus three distinct distractors, preferably from the same vocabulary
category. Randomness comes from an injected source so the strong OS-backed
generator and its time-seeded fallback are interchangeable.
"""

import logging
import random
import time
from collections.abc import Iterable, MutableSequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, TypeVar

from dutch_drill.exceptions import InsufficientOptionsError

logger = logging.getLogger(__name__)

NUM_OPTIONS = 4
NUM_WRONG = NUM_OPTIONS - 1

T = TypeVar("T")


class WordLike(Protocol):
    id: int | None
    english: str
    dutch: str


class Direction(Enum):
    """Which side of the word pair is asked for."""

    ENGLISH_TO_DUTCH = "english_to_dutch"
    DUTCH_TO_ENGLISH = "dutch_to_english"

    def answer_for(self, word: WordLike) -> str:
        """Return the translation the learner must pick."""
        return word.dutch if self is Direction.ENGLISH_TO_DUTCH else word.english

    def prompt_for(self, word: WordLike) -> str:
        """Return the text shown to the learner."""
        return word.english if self is Direction.ENGLISH_TO_DUTCH else word.dutch


class RandomSource(Protocol):
    degraded: bool

    def randbelow(self, n: int) -> int:
        """Return a uniformly random integer in [0, n)."""
        ...


class SystemRandomSource:
    """Cryptographically strong randomness from the operating system."""

    degraded = False

    def __init__(self) -> None:
        self._rng = random.SystemRandom()
        # Fails with NotImplementedError when the OS has no entropy source
        self._rng.random()

    def randbelow(self, n: int) -> int:
        return self._rng.randrange(n)


class TimeSeededRandomSource:
    """Pseudo-random fallback seeded from the clock. Not suitable for secrets."""

    degraded = True

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(time.time_ns() if seed is None else seed)

    def randbelow(self, n: int) -> int:
        return self._rng.randrange(n)


def default_random_source() -> RandomSource:
    """Return the OS-backed source, or the time-seeded one if it is unavailable."""
    try:
        return SystemRandomSource()
    except NotImplementedError:
        logger.warning("OS randomness unavailable, falling back to time-seeded generator")
        return TimeSeededRandomSource()


@dataclass
class Choices:
    """A multiple-choice question's options."""

    options: list[str]
    correct_index: int

    @property
    def correct_answer(self) -> str:
        return self.options[self.correct_index]

    def is_correct(self, selected_index: int) -> bool:
        return selected_index == self.correct_index


def fisher_yates(items: MutableSequence[T], rng: RandomSource) -> MutableSequence[T]:
    """Shuffle ``items`` in place with a uniform random permutation."""
    for i in range(len(items) - 1, 0, -1):
        j = rng.randbelow(i + 1)
        items[i], items[j] = items[j], items[i]
    return items


def collect_wrong_answers(
    target: WordLike,
    same_category: Iterable[WordLike],
    all_words: Iterable[WordLike],
    direction: Direction,
    limit: int = NUM_WRONG,
) -> list[str]:
    """Collect up to ``limit`` distinct wrong answers in first-seen order.

    Same-category words are preferred; the global pool is only scanned when
    the category runs short. The target itself and any word whose answer
    equals the correct answer are skipped.
    """
    correct = direction.answer_for(target)
    wrong: list[str] = []
    seen = {correct}

    for pool in (same_category, all_words):
        for word in pool:
            if len(wrong) >= limit:
                return wrong
            if word is target or (target.id is not None and word.id == target.id):
                continue
            candidate = direction.answer_for(word)
            if not candidate or candidate in seen:
                continue
            seen.add(candidate)
            wrong.append(candidate)

    return wrong


def build_choices(
    target: WordLike,
    same_category: Iterable[WordLike],
    all_words: Iterable[WordLike],
    direction: Direction,
    rng: RandomSource,
) -> Choices:
    """Build four options with exactly one correct answer.

    Args:
        target: The word being drilled.
        same_category: Words from the target's category (preferred distractors).
        all_words: The whole vocabulary, used when the category is too small.
        direction: Which translation the learner must pick.
        rng: Source of randomness for shuffling and answer placement.

    Returns:
        Choices with the correct answer at a uniformly random index.

    Raises:
        InsufficientOptionsError: If fewer than three distinct wrong answers exist.
    """
    correct = direction.answer_for(target)
    wrong = collect_wrong_answers(target, same_category, all_words, direction)
    if len(wrong) < NUM_WRONG:
        raise InsufficientOptionsError(
            f"Only {len(wrong)} distinct wrong answers for {correct!r}, need {NUM_WRONG}"
        )

    fisher_yates(wrong, rng)
    correct_index = rng.randbelow(NUM_OPTIONS)

    options: list[str] = []
    remaining = iter(wrong)
    for i in range(NUM_OPTIONS):
        options.append(correct if i == correct_index else next(remaining))

    return Choices(options=options, correct_index=correct_index)
