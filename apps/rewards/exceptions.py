"""
Domain exceptions for the rewards app.

This module defines the exception hierarchy for reward ledger errors.
"""


class RewardServiceError(Exception):
    """Base exception for reward ledger errors."""
    pass


class DuplicateRewardError(RewardServiceError):
    """Raised when a group already has a reward entry."""
    pass


class RewardNotFoundError(RewardServiceError):
    """Raised when a reward does not exist."""
    pass


class InvalidRewardTransitionError(RewardServiceError):
    """Raised when a reward cannot move to the requested status."""
    pass
