"""Selection policy for the next word to drill.

Candidates fall into three buckets: due words (reviewed before and due now),
brand-new words (never reviewed), and words reviewed within a short cooldown.
The policy prefers due words, then new words, and only falls back to
recently seen words so the learner is not asked the same word twice in a row.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TypeVar

from dutch_drill.exceptions import NoCardsAvailableError
from dutch_drill.srs.fsrs import MemoryCard

logger = logging.getLogger(__name__)

DEFAULT_RECENT_COOLDOWN = timedelta(minutes=10)

T = TypeVar("T")


@dataclass
class Candidate:
    """A word that could be drilled next, with its memory state."""

    word_id: int
    card: MemoryCard
    progress_id: int | None = None  # None until the first review is stored

    @property
    def is_new(self) -> bool:
        """Return True if the learner has no stored record for this word."""
        return self.progress_id is None


@dataclass
class CandidatePools:
    """Candidates split into the three priority buckets."""

    due: list[Candidate] = field(default_factory=list)
    new: list[Candidate] = field(default_factory=list)
    recent: list[Candidate] = field(default_factory=list)

    @property
    def total(self) -> int:
        """Return the number of selectable candidates."""
        return len(self.due) + len(self.new) + len(self.recent)

    def select_next(self) -> Candidate:
        """Pick the highest-priority candidate."""
        return select_next(self.due, self.new, self.recent)


def partition_candidates(
    candidates: Iterable[Candidate],
    now: datetime,
    cooldown: timedelta = DEFAULT_RECENT_COOLDOWN,
) -> CandidatePools:
    """Split candidates into due, new and recently reviewed buckets.

    Order within each bucket follows the input order, so callers control
    tie-breaking (typically earliest-due first).

    Args:
        candidates: Words to consider.
        now: Current time.
        cooldown: How long a reviewed word is held back.

    Returns:
        The three buckets. Stored words that are neither due nor recent
        are not selectable and are left out.
    """
    pools = CandidatePools()
    recent_cutoff = now - cooldown
    skipped = 0

    for candidate in candidates:
        last_reviewed = candidate.card.last_reviewed_at
        if candidate.is_new:
            pools.new.append(candidate)
        elif last_reviewed is not None and last_reviewed > recent_cutoff:
            pools.recent.append(candidate)
        elif candidate.card.is_due(now):
            pools.due.append(candidate)
        else:
            skipped += 1

    logger.debug(
        "Partitioned candidates: %d due, %d new, %d recent (%d not due)",
        len(pools.due),
        len(pools.new),
        len(pools.recent),
        skipped,
    )
    return pools


def select_next(due: Sequence[T], new: Sequence[T], recent: Sequence[T]) -> T:
    """Return the next item to present.

    Priority:
    1. Due words not reviewed within the cooldown
    2. New words
    3. Recently reviewed words

    Raises:
        NoCardsAvailableError: If all three buckets are empty.
    """
    for bucket in (due, new, recent):
        if bucket:
            return bucket[0]
    raise NoCardsAvailableError("No words available to drill")
