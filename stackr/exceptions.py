"""Exception hierarchy for the insight engine."""


class StackrError(Exception):
    """Base class for all engine errors."""


class InvalidTransactionError(StackrError):
    """Raised when a spending transaction cannot be recorded."""


class UnknownAchievementError(StackrError):
    """Raised when an achievement id is not in the catalogue."""
