"""Grammar tips shown alongside matching words."""

import json

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dutch_drill.models.base import Base, TimestampMixin

GRAMMAR_CATEGORIES = frozenset(
    {
        "articles",
        "verbs",
        "word_order",
        "plurals",
        "pronouns",
        "adjectives",
        "prepositions",
        "general",
    }
)


class GrammarTip(Base, TimestampMixin):
    __tablename__ = "grammar_tips"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    explanation: Mapped[str] = mapped_column(Text, nullable=False)
    dutch_example: Mapped[str] = mapped_column(Text, nullable=False, default="")
    english_example: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    applicable_categories: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # JSON array
    word_patterns: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # JSON array, "-en" / "ge-"
    specific_words: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # JSON array

    @property
    def applicable_category_list(self) -> list[str]:
        return json.loads(self.applicable_categories or "[]")

    @property
    def word_pattern_list(self) -> list[str]:
        return json.loads(self.word_patterns or "[]")

    @property
    def specific_word_list(self) -> list[str]:
        return json.loads(self.specific_words or "[]")

    def applies_to(self, dutch: str, english: str, category: str) -> bool:
        """Return True if this tip is relevant to the given word."""
        if dutch in self.specific_word_list or english in self.specific_word_list:
            return True
        if category in self.applicable_category_list:
            return True
        return any(matches_pattern(dutch, pattern) for pattern in self.word_pattern_list)


def matches_pattern(word: str, pattern: str) -> bool:
    """Match ``-suffix``, ``prefix-`` or an exact word."""
    if not pattern:
        return False
    if pattern.startswith("-") and len(pattern) > 1:
        return word.endswith(pattern[1:])
    if pattern.endswith("-") and len(pattern) > 1:
        return word.startswith(pattern[:-1])
    return word == pattern
