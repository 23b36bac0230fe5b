"""
Exceptions raised by the drill core and service layer.
"""


class DrillError(Exception):
    """Base exception for all Dutch Drill errors."""
    pass


class InvalidRatingError(DrillError, ValueError):
    """Raised when a review rating is not one of Again/Hard/Good/Easy."""
    pass


class InsufficientDataError(DrillError):
    """Raised when there is not enough material to proceed."""
    pass


class NoCardsAvailableError(InsufficientDataError):
    """Raised when there is no word to present to a learner."""
    pass


class InsufficientOptionsError(InsufficientDataError):
    """Raised when fewer than three distinct wrong answers exist."""
    pass


class NoActiveQuizError(DrillError):
    """Raised when an answer or rating arrives without a pending quiz."""
    pass


class ContentValidationError(DrillError, ValueError):
    """Raised when vocabulary or grammar content fails validation."""
    pass


class InvalidAnswerError(DrillError, ValueError):
    """Raised when a selected option index is outside the quiz's options."""
    pass
