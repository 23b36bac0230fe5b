"""SQLAlchemy ORM models for the Dutch Drill database."""

from dutch_drill.models.base import Base
from dutch_drill.models.grammar_tip import GrammarTip
from dutch_drill.models.learner import Learner
from dutch_drill.models.progress import Progress
from dutch_drill.models.review_log import ReviewLog
from dutch_drill.models.word import Word

__all__ = ["Base", "GrammarTip", "Learner", "Progress", "ReviewLog", "Word"]
