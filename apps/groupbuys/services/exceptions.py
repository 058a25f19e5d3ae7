"""
Domain-specific exceptions for the group buying app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""


class GroupBuyServiceError(Exception):
    """Base exception for all group buying service errors."""
    pass


class GroupNotFoundError(GroupBuyServiceError):
    """Raised when no group matches the given code or id."""
    pass


class InvalidGroupSettingsError(GroupBuyServiceError):
    """Raised when capacity, duration or pricing of a new group is invalid."""
    pass


class DuplicateCodeError(GroupBuyServiceError):
    """Raised by the store when a generated code is already taken."""
    pass


class CodeGenerationError(GroupBuyServiceError):
    """Raised when no free group code was found within the retry budget."""
    pass


class AlreadyJoinedError(GroupBuyServiceError):
    """Raised when a customer tries to join a group twice."""
    pass


class GroupFullError(GroupBuyServiceError):
    """Raised when a group has reached its maximum participants."""
    pass


class GroupExpiredError(GroupBuyServiceError):
    """Raised when joining a group past its deadline."""
    pass


class GroupNotActiveError(GroupBuyServiceError):
    """Raised when an operation requires an active group."""
    pass


class NotLeaderError(GroupBuyServiceError):
    """Raised when a leader-only operation is requested by someone else."""
    pass


class LeaderCannotLeaveError(GroupBuyServiceError):
    """Raised when the leader tries to leave instead of cancelling."""
    pass


class NotParticipantError(GroupBuyServiceError):
    """Raised when a customer who never joined tries to leave."""
    pass


class MinParticipantsNotReachedError(GroupBuyServiceError):
    """Raised when completing a group below its minimum participants."""
    pass
