"""
Group buying service.

Applies the group lifecycle on top of the store:

    active --join (full & minimum reached)--> completed
    active --complete (minimum reached)-----> completed
    active --cancel (leader)----------------> cancelled
    active --expire (deadline passed)-------> completed | expired

completed, expired and cancelled are terminal. Completing a group settles
its totals and appends the leader's reward to the ledger in the same
transaction.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, Optional
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.db.models import QuerySet, Sum
from django.utils import timezone

from apps.groupbuys.models import GroupBuy, GroupParticipant, GroupStatus, DeliveryAddressType
from apps.groupbuys.snapshots import LeaderSnapshot, ParticipantSnapshot, ProductSnapshot
from apps.rewards.services import RewardLedger

from .exceptions import (
    AlreadyJoinedError,
    CodeGenerationError,
    DuplicateCodeError,
    GroupBuyServiceError,
    GroupExpiredError,
    GroupNotActiveError,
    InvalidGroupSettingsError,
    LeaderCannotLeaveError,
    MinParticipantsNotReachedError,
    NotLeaderError,
)
from .group_store import GroupStore

logger = logging.getLogger(__name__)

DEFAULT_DELIVERY_ADDRESS = {
    'type': DeliveryAddressType.CUSTOM.value,
    'complete_address': 'Address not provided',
}


@dataclass(frozen=True)
class Settlement:
    """Totals computed when a group completes."""

    total_quantity: int
    total_amount: Decimal
    discount: Decimal
    leader_reward: Decimal


def calculate_settlement(
    product: ProductSnapshot,
    participants: Iterable[GroupParticipant],
    reward_rate: Decimal
) -> Settlement:
    """
    Leader reward is ``reward_rate`` of the total saving across participants:

        reward = rate * sum(quantity * (regular_price - group_price))
    """
    total_quantity = sum(p.quantity for p in participants)
    total_amount = product.group_price * total_quantity
    discount = product.unit_saving * total_quantity
    leader_reward = (discount * reward_rate).quantize(Decimal('0.0001'))
    return Settlement(
        total_quantity=total_quantity,
        total_amount=total_amount,
        discount=discount,
        leader_reward=leader_reward,
    )


class GroupService:
    """
    Group lifecycle operations.

    Constructed once per process with its store and ledger
    (see GroupBuysConfig.ready); tests build their own instance.
    """

    def __init__(
        self,
        *,
        store: GroupStore,
        ledger: RewardLedger,
        reward_rate: Decimal = Decimal('0.05'),
        default_min_participants: int = 5,
        default_max_participants: int = 20,
        default_duration_hours: int = 72,
        max_duration_hours: int = 720,
        max_code_attempts: int = 10,
    ):
        self.store = store
        self.ledger = ledger
        self.reward_rate = Decimal(reward_rate)
        self.default_min_participants = default_min_participants
        self.default_max_participants = default_max_participants
        self.default_duration_hours = default_duration_hours
        self.max_duration_hours = max_duration_hours
        self.max_code_attempts = max_code_attempts

    @classmethod
    def from_settings(cls, *, store: GroupStore, ledger: RewardLedger) -> 'GroupService':
        conf = settings.GROUPBUY
        return cls(
            store=store,
            ledger=ledger,
            reward_rate=Decimal(str(conf['LEADER_REWARD_RATE'])),
            default_min_participants=conf['DEFAULT_MIN_PARTICIPANTS'],
            default_max_participants=conf['DEFAULT_MAX_PARTICIPANTS'],
            default_duration_hours=conf['DEFAULT_DURATION_HOURS'],
            max_duration_hours=conf['MAX_DURATION_HOURS'],
            max_code_attempts=conf['CODE_MAX_ATTEMPTS'],
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_group(
        self,
        *,
        leader: LeaderSnapshot,
        product: ProductSnapshot,
        min_participants: Optional[int] = None,
        max_participants: Optional[int] = None,
        duration_hours: Optional[int] = None,
        delivery_address: Optional[dict] = None,
        now: Optional[datetime] = None
    ) -> GroupBuy:
        """
        Create an active group with the leader as participant #1.

        Raises:
            InvalidGroupSettingsError: If capacity, duration or prices are invalid
            CodeGenerationError: If no free code was found after retries
        """
        now = now or timezone.now()
        if min_participants is None:
            min_participants = self.default_min_participants
        if max_participants is None:
            max_participants = self.default_max_participants
        if duration_hours is None:
            duration_hours = self.default_duration_hours

        self._validate_settings(product, min_participants, max_participants, duration_hours)

        for attempt in range(self.max_code_attempts):
            code = self.store.generate_code()
            if self.store.code_exists(code):
                continue
            try:
                group = self.store.create(
                    code=code,
                    leader=leader,
                    product=product,
                    min_participants=min_participants,
                    max_participants=max_participants,
                    expires_at=now + timedelta(hours=duration_hours),
                    delivery_address=delivery_address or dict(DEFAULT_DELIVERY_ADDRESS),
                    now=now,
                )
            except DuplicateCodeError:
                # Taken between the check and the insert
                continue

            logger.info(
                "Group %s created by %s for product %s (min=%s, max=%s, expires=%s)",
                group.code, leader.customer_id, product.id,
                min_participants, max_participants, group.expires_at.isoformat(),
            )
            return group

        raise CodeGenerationError(
            f"Failed to generate unique group code after {self.max_code_attempts} attempts"
        )

    def _validate_settings(self, product, min_participants, max_participants, duration_hours):
        if min_participants < 2:
            raise InvalidGroupSettingsError("Minimum participants must be at least 2")
        if max_participants < min_participants:
            raise InvalidGroupSettingsError(
                "Maximum participants must be greater than or equal to minimum participants"
            )
        if not 1 <= duration_hours <= self.max_duration_hours:
            raise InvalidGroupSettingsError(
                f"Duration must be between 1 and {self.max_duration_hours} hours"
            )
        if product.regular_price < 0 or product.group_price < 0:
            raise InvalidGroupSettingsError("Prices cannot be negative")
        if product.group_price > product.regular_price:
            raise InvalidGroupSettingsError("Group price cannot exceed the regular price")

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_group(self, *, code: str) -> GroupBuy:
        return self.store.find_by_code(code)

    def get_group_by_id(self, *, group_id: UUID) -> GroupBuy:
        return self.store.find_by_id(group_id)

    def product_groups(self, *, product_id: str, now: Optional[datetime] = None) -> QuerySet[GroupBuy]:
        return self.store.find_active_for_product(product_id, now or timezone.now())

    def customer_groups(self, *, customer_id: str) -> QuerySet[GroupBuy]:
        return self.store.find_for_customer(customer_id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def join(
        self,
        *,
        code: str,
        participant: ParticipantSnapshot,
        now: Optional[datetime] = None
    ) -> GroupBuy:
        """
        Join an active group by its code.

        A group past its deadline is expired on the spot. When the join fills
        the group and the minimum is met, the group completes immediately.

        Raises:
            GroupNotFoundError, GroupNotActiveError, GroupExpiredError,
            AlreadyJoinedError, GroupFullError
        """
        now = now or timezone.now()
        group = self.store.find_by_code(code)

        if group.status != GroupStatus.ACTIVE:
            raise GroupNotActiveError("Group is not active")

        if group.is_expired(now):
            self.expire(group_id=group.id, now=now)
            raise GroupExpiredError("Group has expired")

        if group.has_participant(participant.customer_id):
            raise AlreadyJoinedError("You have already joined this group")

        with transaction.atomic():
            group = self.store.add_participant(group.id, participant, now=now)
            logger.info(
                "Customer %s joined group %s (%s/%s)",
                participant.customer_id, group.code,
                group.current_participants, group.max_participants,
            )

            if group.is_full() and group.is_minimum_reached():
                group = self._complete(group.id, now=now)

        return group

    def leave(self, *, group_id: UUID, customer_id: str, now: Optional[datetime] = None) -> GroupBuy:
        """
        Leave an active group. The leader cancels instead.

        Raises:
            GroupNotFoundError, GroupNotActiveError, LeaderCannotLeaveError,
            NotParticipantError
        """
        group = self.store.find_by_id(group_id)

        if group.status != GroupStatus.ACTIVE:
            raise GroupNotActiveError("Cannot leave this group")

        if group.is_leader(customer_id):
            raise LeaderCannotLeaveError("Group leader cannot leave. Cancel the group instead.")

        group = self.store.remove_participant(group.id, customer_id, now=now)
        logger.info("Customer %s left group %s", customer_id, group.code)
        return group

    def cancel(self, *, group_id: UUID, customer_id: str, now: Optional[datetime] = None) -> GroupBuy:
        """
        Cancel an active group (leader only). No reward is created.

        Raises:
            GroupNotFoundError, NotLeaderError, GroupNotActiveError
        """
        group = self.store.find_by_id(group_id)

        if not group.is_leader(customer_id):
            raise NotLeaderError("Only group leader can cancel")

        if group.status != GroupStatus.ACTIVE:
            raise GroupNotActiveError("Cannot cancel this group")

        group = self.store.set_status(group.id, GroupStatus.CANCELLED, now=now)
        logger.info("Group %s cancelled by leader", group.code)
        return group

    def complete(
        self,
        *,
        group_id: UUID,
        customer_id: Optional[str] = None,
        is_staff: bool = False,
        now: Optional[datetime] = None
    ) -> GroupBuy:
        """
        Manually complete an active group that reached its minimum.

        When ``customer_id`` is given the caller must be the leader or staff.

        Raises:
            GroupNotFoundError, NotLeaderError, GroupNotActiveError,
            MinParticipantsNotReachedError
        """
        group = self.store.find_by_id(group_id)

        if customer_id is not None and not is_staff and not group.is_leader(customer_id):
            raise NotLeaderError("Only group leader can complete the group")

        if group.status != GroupStatus.ACTIVE:
            raise GroupNotActiveError(f"Group is already {group.status}")

        if not group.is_minimum_reached():
            raise MinParticipantsNotReachedError("Minimum participants not reached")

        with transaction.atomic():
            return self._complete(group.id, now=now or timezone.now())

    def expire(self, *, group_id: UUID, now: Optional[datetime] = None) -> GroupBuy:
        """
        Settle an active group whose deadline has passed.

        Completes the group if its minimum was reached, otherwise marks it
        expired. Groups that are no longer active or not yet due are returned
        unchanged, so repeated calls are harmless.
        """
        now = now or timezone.now()

        with transaction.atomic():
            group = self.store.find_by_id(group_id)
            if group.status != GroupStatus.ACTIVE or not group.is_expired(now):
                return group

            if group.is_minimum_reached():
                try:
                    return self._complete(group.id, now=now)
                except MinParticipantsNotReachedError:
                    # Someone left since the read, fall through to expired
                    pass

            group = self.store.set_status(group.id, GroupStatus.EXPIRED, now=now)
            logger.info(
                "Group %s expired with %s/%s participants",
                group.code, group.current_participants, group.min_participants,
            )
            return group

    def process_expired_groups(self, *, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Sweep every active group past its deadline.

        Each group is settled in its own transaction; a failure on one group
        is logged and does not stop the sweep.
        """
        now = now or timezone.now()
        result = {'processed': 0, 'completed': 0, 'expired': 0, 'failed': 0}

        for group in self.store.find_expired_active(now):
            try:
                group = self.expire(group_id=group.id, now=now)
            except GroupBuyServiceError:
                logger.exception("Failed to process expired group %s", group.code)
                result['failed'] += 1
                continue

            result['processed'] += 1
            if group.status in (GroupStatus.COMPLETED, GroupStatus.EXPIRED):
                result[group.status] += 1

        logger.info(
            "Expiry sweep: processed=%s completed=%s expired=%s failed=%s",
            result['processed'], result['completed'], result['expired'], result['failed'],
        )
        return result

    def _complete(self, group_id: UUID, *, now: datetime) -> GroupBuy:
        """
        Claim the group as completed, then settle totals and reward.

        Must run inside a transaction. The status flip comes first so that no
        join can land between reading participants and writing the totals.
        """
        group = self.store.set_status(
            group_id,
            GroupStatus.COMPLETED,
            now=now,
            require_minimum=True,
            completed_at=now,
        )

        settlement = calculate_settlement(group.product, group.participants.all(), self.reward_rate)
        group = self.store.save_settlement(
            group.id,
            total_amount=settlement.total_amount,
            discount=settlement.discount,
            leader_reward=settlement.leader_reward,
        )

        if settlement.leader_reward > 0:
            self.ledger.append(
                group=group,
                customer_id=group.leader_customer_id,
                amount=settlement.leader_reward,
                group_metrics={
                    'total_participants': group.current_participants,
                    'total_quantity': settlement.total_quantity,
                    'total_amount': str(settlement.total_amount),
                    'product_name': group.product_name,
                    'discount': str(settlement.discount),
                },
            )

        logger.info(
            "Group %s completed: participants=%s total=%s discount=%s leader_reward=%s",
            group.code, group.current_participants, settlement.total_amount,
            settlement.discount, settlement.leader_reward,
        )
        return group

    # ------------------------------------------------------------------
    # Leader dashboard
    # ------------------------------------------------------------------

    def leader_stats(self, *, customer_id: str) -> dict:
        groups = self.store.find_led_by(customer_id)
        rewards = self.ledger.sum_by_customer(customer_id)
        return {
            'total_groups': groups.count(),
            'active_groups': groups.filter(status=GroupStatus.ACTIVE).count(),
            'completed_groups': groups.filter(status=GroupStatus.COMPLETED).count(),
            'total_participants': groups.aggregate(total=Sum('current_participants'))['total'] or 0,
            'total_rewards': rewards['paid'],
            'pending_rewards': rewards['pending'],
        }
