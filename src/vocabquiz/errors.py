class QuizError(Exception):
    """Base class for every error raised by the quiz core."""


class SourceFormatError(QuizError):
    """The vocabulary feed could not be read as a table of rows."""


class ValidationError(QuizError):
    """User input was rejected; the session is left untouched."""


class InvalidCountError(ValidationError):
    def __init__(self, value):
        self.value = value
        super().__init__(f"Question count must be a whole number > 0, got {value!r}")


class NothingToRetry(QuizError):
    """Every question of the last round was answered correctly."""


class TransitionError(QuizError):
    """The requested action is not legal in the session's current state."""
