"""Per learner-word memory state."""

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dutch_drill.config import utcnow
from dutch_drill.models.base import Base, TimestampMixin


class Progress(Base, TimestampMixin):
    """A learner's FSRS scheduling state for one word."""

    __tablename__ = "progress"
    __table_args__ = (UniqueConstraint("learner_id", "word_id", name="uq_progress_learner_word"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    learner_id: Mapped[int] = mapped_column(ForeignKey("learners.id"), nullable=False, index=True)
    word_id: Mapped[int] = mapped_column(ForeignKey("words.id"), nullable=False)
    stability: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    difficulty: Mapped[float] = mapped_column(Float, nullable=False, default=5.0)
    due: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, index=True)
    last_review: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    state: Mapped[str] = mapped_column(String(20), nullable=False, default="new")  # new, learning, review, relearning
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lapses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    learner: Mapped["Learner"] = relationship(back_populates="progress")  # type: ignore[name-defined] # noqa: F821
    word: Mapped["Word"] = relationship(back_populates="progress")  # type: ignore[name-defined] # noqa: F821
    review_logs: Mapped[list["ReviewLog"]] = relationship(back_populates="progress")  # type: ignore[name-defined] # noqa: F821
