"""Vocabulary word model."""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dutch_drill.models.base import Base, TimestampMixin

# Vocabulary categories accepted by the content loader
WORD_CATEGORIES = frozenset(
    {
        "family",
        "body",
        "colors",
        "food",
        "animals",
        "home",
        "objects",
        "people",
        "adjectives",
        "verbs",
        "verbs_infinitive",
        "verbs_action",
        "particles",
        "prepositions",
    }
)


class Word(Base, TimestampMixin):
    """An English-Dutch word pair."""

    __tablename__ = "words"
    __table_args__ = (UniqueConstraint("english", "dutch", name="uq_words_english_dutch"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    english: Mapped[str] = mapped_column(String(255), nullable=False)
    dutch: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    progress: Mapped[list["Progress"]] = relationship(back_populates="word")  # type: ignore[name-defined] # noqa: F821

    def __repr__(self) -> str:
        return f"Word(id={self.id}, english={self.english!r}, dutch={self.dutch!r}, category={self.category!r})"
