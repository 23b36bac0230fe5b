"""Pydantic schemas for API request/response models."""

from datetime import datetime

from pydantic import BaseModel, Field

# --- Drill ---


class GrammarTipResponse(BaseModel):
    """A grammar tip attached to a question."""

    title: str
    explanation: str
    dutch_example: str = ""
    english_example: str = ""


class QuizResponse(BaseModel):
    """The next multiple-choice question for a learner."""

    learner_id: int
    word_id: int
    direction: str  # english_to_dutch, dutch_to_english
    prompt: str
    category: str
    options: list[str]
    state: str  # new, learning, review, relearning
    review_count: int
    lapse_count: int
    grammar_tip: GrammarTipResponse | None = None


class AnswerRequest(BaseModel):
    """The option the learner picked."""

    selected_index: int = Field(ge=0, le=3)


class AnswerResponse(BaseModel):
    """Whether the picked option was right."""

    correct: bool
    selected_answer: str
    correct_answer: str
    correct_index: int
    english: str
    dutch: str


class RateRequest(BaseModel):
    """How well the learner knew the word."""

    rating: int  # 1=Again, 2=Hard, 3=Good, 4=Easy


class RateResponse(BaseModel):
    """The word's schedule after the rating."""

    previous_state: str
    state: str
    stability: float
    difficulty: float
    next_due: datetime
    interval_days: float
    review_count: int
    lapse_count: int


# --- Stats ---


class LearnerStatsResponse(BaseModel):
    """Overall statistics for a learner."""

    total_words: int
    new_words: int
    learning_words: int
    review_words: int
    due_words: int
    average_difficulty: float
    average_retrievability: float | None
    total_reviews: int
    correct_reviews: int
    accuracy: float | None


# --- Learners ---


class LearnerCreateRequest(BaseModel):
    """Register a learner, optionally linked to a chat user id."""

    name: str
    external_id: int | None = None
    language_code: str | None = None


class PreferencesResponse(BaseModel):
    """A learner's preferences."""

    learner_id: int
    grammar_tips_enabled: bool
    smart_reminders_enabled: bool


class PreferencesUpdate(BaseModel):
    """Partial preference update."""

    grammar_tips_enabled: bool | None = None
    smart_reminders_enabled: bool | None = None
