
from sqlalchemy import BigInteger, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dutch_drill.models.base import Base, TimestampMixin


class Learner(Base, TimestampMixin):
    __tablename__ = "learners"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    external_id: Mapped[int | None] = mapped_column(BigInteger, unique=True, nullable=True)  # Chat user id
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    language_code: Mapped[str | None] = mapped_column(String(10), nullable=True)

    # Preferences
    grammar_tips_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    smart_reminders_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    progress: Mapped[list["Progress"]] = relationship(back_populates="learner")  # type: ignore[name-defined] # noqa: F821
    review_logs: Mapped[list["ReviewLog"]] = relationship(back_populates="learner")  # type: ignore[name-defined] # noqa: F821
