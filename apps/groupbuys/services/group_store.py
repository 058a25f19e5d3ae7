"""
Group store.

Persistence for group buys. Every write that depends on the group's current
state is a single conditional UPDATE, so concurrent requests cannot push a
group past its capacity or move it out of a terminal status.
"""

import logging
import secrets
import string
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db import transaction, IntegrityError
from django.db.models import F, Prefetch, Q, QuerySet
from django.utils import timezone

from apps.groupbuys.models import GroupBuy, GroupParticipant, GroupStatus
from apps.groupbuys.snapshots import LeaderSnapshot, ParticipantSnapshot, ProductSnapshot

from .exceptions import (
    AlreadyJoinedError,
    DuplicateCodeError,
    GroupExpiredError,
    GroupFullError,
    GroupNotActiveError,
    GroupNotFoundError,
    MinParticipantsNotReachedError,
    NotParticipantError,
)

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


class GroupStore:
    """Lookup and atomic mutation of GroupBuy records."""

    def __init__(self, *, code_length: int = 8):
        self.code_length = code_length

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _queryset(self) -> QuerySet[GroupBuy]:
        return GroupBuy.objects.prefetch_related(
            Prefetch('participants', queryset=GroupParticipant.objects.order_by('joined_at', 'id'))
        )

    def find_by_code(self, code: str) -> GroupBuy:
        try:
            return self._queryset().get(code=code.strip().upper())
        except GroupBuy.DoesNotExist:
            raise GroupNotFoundError(f"Group with code {code} not found")

    def find_by_id(self, group_id: UUID) -> GroupBuy:
        try:
            return self._queryset().get(id=group_id)
        except (GroupBuy.DoesNotExist, ValidationError):
            raise GroupNotFoundError(f"Group with ID {group_id} not found")

    def find_expired_active(self, now: datetime) -> List[GroupBuy]:
        return list(
            GroupBuy.objects
            .filter(status=GroupStatus.ACTIVE, expires_at__lt=now)
            .order_by('expires_at')
        )

    def find_active_for_product(self, product_id: str, now: datetime) -> QuerySet[GroupBuy]:
        return (
            self._queryset()
            .filter(product_id=product_id, status=GroupStatus.ACTIVE, expires_at__gte=now)
            .order_by('-created_at')
        )

    def find_for_customer(self, customer_id: str) -> QuerySet[GroupBuy]:
        """Groups the customer leads or participates in, newest first."""
        return (
            self._queryset()
            .filter(Q(leader_customer_id=customer_id) | Q(participants__customer_id=customer_id))
            .distinct()
            .order_by('-created_at')
        )

    def find_led_by(self, customer_id: str) -> QuerySet[GroupBuy]:
        return GroupBuy.objects.filter(leader_customer_id=customer_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def generate_code(self) -> str:
        return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(self.code_length))

    def code_exists(self, code: str) -> bool:
        return GroupBuy.objects.filter(code=code).exists()

    def create(
        self,
        *,
        code: str,
        leader: LeaderSnapshot,
        product: ProductSnapshot,
        min_participants: int,
        max_participants: int,
        expires_at: datetime,
        delivery_address: dict,
        now: Optional[datetime] = None,
    ) -> GroupBuy:
        """
        Insert a group with the leader as its first participant.

        Raises:
            DuplicateCodeError: If another group already uses ``code``
        """
        try:
            with transaction.atomic():
                group = GroupBuy.objects.create(
                    code=code,
                    leader_customer_id=leader.customer_id,
                    leader_name=leader.name,
                    leader_phone=leader.phone,
                    product_id=product.id,
                    product_name=product.name,
                    product_banner=product.banner,
                    regular_price=product.regular_price,
                    group_price=product.group_price,
                    product_weight=product.weight,
                    product_category=product.category,
                    min_participants=min_participants,
                    max_participants=max_participants,
                    current_participants=1,
                    expires_at=expires_at,
                    delivery_address=delivery_address,
                )
                GroupParticipant.objects.create(
                    group=group,
                    customer_id=leader.customer_id,
                    name=leader.name,
                    phone=leader.phone,
                    quantity=1,
                    joined_at=now or timezone.now(),
                )
        except IntegrityError:
            raise DuplicateCodeError(f"Group code {code} is already in use")

        return self.find_by_id(group.id)

    @transaction.atomic
    def add_participant(
        self,
        group_id: UUID,
        participant: ParticipantSnapshot,
        *,
        now: Optional[datetime] = None
    ) -> GroupBuy:
        """
        Append a participant and bump the count in one conditional update.

        The count is only incremented while the group is active, unexpired
        and below capacity. The participant row is unique per group, so a
        duplicate insert rolls the increment back with the transaction.

        Raises:
            GroupNotFoundError, GroupNotActiveError, GroupExpiredError,
            GroupFullError, AlreadyJoinedError
        """
        now = now or timezone.now()

        updated = (
            GroupBuy.objects
            .filter(
                id=group_id,
                status=GroupStatus.ACTIVE,
                expires_at__gte=now,
                current_participants__lt=F('max_participants'),
            )
            .update(current_participants=F('current_participants') + 1, updated_at=now)
        )
        if not updated:
            self._raise_join_rejection(group_id, now)

        try:
            with transaction.atomic():
                GroupParticipant.objects.create(
                    group_id=group_id,
                    customer_id=participant.customer_id,
                    name=participant.name,
                    phone=participant.phone,
                    quantity=participant.quantity,
                    joined_at=now,
                )
        except IntegrityError:
            raise AlreadyJoinedError("You have already joined this group")

        logger.debug("Customer %s joined group %s", participant.customer_id, group_id)

        return self.find_by_id(group_id)

    @transaction.atomic
    def remove_participant(
        self,
        group_id: UUID,
        customer_id: str,
        *,
        now: Optional[datetime] = None
    ) -> GroupBuy:
        """
        Remove a participant from an active group and decrement the count.

        Raises:
            GroupNotFoundError, GroupNotActiveError, NotParticipantError
        """
        now = now or timezone.now()

        deleted, _ = GroupParticipant.objects.filter(
            group_id=group_id,
            customer_id=customer_id,
            group__status=GroupStatus.ACTIVE,
        ).delete()
        if not deleted:
            group = self.find_by_id(group_id)
            if group.status != GroupStatus.ACTIVE:
                raise GroupNotActiveError("Cannot leave this group")
            raise NotParticipantError("You are not a participant of this group")

        updated = (
            GroupBuy.objects
            .filter(id=group_id, status=GroupStatus.ACTIVE)
            .update(current_participants=F('current_participants') - 1, updated_at=now)
        )
        if not updated:
            raise GroupNotActiveError("Cannot leave this group")

        return self.find_by_id(group_id)

    def set_status(
        self,
        group_id: UUID,
        status: str,
        *,
        now: Optional[datetime] = None,
        require_minimum: bool = False,
        **fields
    ) -> GroupBuy:
        """
        Move an active group to ``status``.

        The update only applies while the group is still active (and, with
        ``require_minimum``, has reached its minimum participants), so two
        concurrent transitions cannot both succeed.

        Raises:
            GroupNotFoundError, GroupNotActiveError, MinParticipantsNotReachedError
        """
        now = now or timezone.now()

        queryset = GroupBuy.objects.filter(id=group_id, status=GroupStatus.ACTIVE)
        if require_minimum:
            queryset = queryset.filter(current_participants__gte=F('min_participants'))

        updated = queryset.update(status=status, updated_at=now, **fields)
        if not updated:
            group = self.find_by_id(group_id)
            if group.status != GroupStatus.ACTIVE:
                raise GroupNotActiveError(f"Group is already {group.status}")
            raise MinParticipantsNotReachedError("Minimum participants not reached")

        return self.find_by_id(group_id)

    def save_settlement(self, group_id: UUID, **fields) -> GroupBuy:
        """Write completion totals onto a group."""
        GroupBuy.objects.filter(id=group_id).update(**fields)
        return self.find_by_id(group_id)

    def _raise_join_rejection(self, group_id: UUID, now: datetime):
        group = self.find_by_id(group_id)
        if group.status != GroupStatus.ACTIVE:
            raise GroupNotActiveError("Group is not active")
        if group.expires_at < now:
            raise GroupExpiredError("Group has expired")
        raise GroupFullError("Group is full")
