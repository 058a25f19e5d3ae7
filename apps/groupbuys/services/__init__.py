"""
Group buying services layer.

Services contain business logic and orchestrate operations across models.
State-changing operations run in transactions and rely on conditional
updates for concurrency protection.
"""

from django.apps import apps

from .exceptions import (
    GroupBuyServiceError,
    GroupNotFoundError,
    InvalidGroupSettingsError,
    DuplicateCodeError,
    CodeGenerationError,
    AlreadyJoinedError,
    GroupFullError,
    GroupExpiredError,
    GroupNotActiveError,
    NotLeaderError,
    LeaderCannotLeaveError,
    NotParticipantError,
    MinParticipantsNotReachedError,
)
from .group_store import GroupStore
from .group_service import GroupService, Settlement, calculate_settlement


def get_group_service() -> GroupService:
    """Return the service instance built when the app registry loaded."""
    return apps.get_app_config('groupbuys').service


__all__ = [
    # Exceptions
    'GroupBuyServiceError',
    'GroupNotFoundError',
    'InvalidGroupSettingsError',
    'DuplicateCodeError',
    'CodeGenerationError',
    'AlreadyJoinedError',
    'GroupFullError',
    'GroupExpiredError',
    'GroupNotActiveError',
    'NotLeaderError',
    'LeaderCannotLeaveError',
    'NotParticipantError',
    'MinParticipantsNotReachedError',

    # Store
    'GroupStore',

    # Service
    'GroupService',
    'Settlement',
    'calculate_settlement',
    'get_group_service',
]
