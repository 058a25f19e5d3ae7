"""
Reward Ledger
=============

Append-only record of leader rewards. Entries are written once, when a group
buy completes, and afterwards only change payout status.

Example:
    Totals for a leader's dashboard::

        from apps.rewards.services import RewardLedger

        totals = RewardLedger().sum_by_customer(customer_id)
        print(totals['paid'], totals['pending'])
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

from django.db import transaction, IntegrityError
from django.db.models import Q, QuerySet, Sum
from django.utils import timezone

from apps.groupbuys.models import GroupBuy

from .exceptions import (
    DuplicateRewardError,
    InvalidRewardTransitionError,
    RewardNotFoundError,
)
from .models import Reward, RewardStatus, RewardType, UNPAID_STATUSES

logger = logging.getLogger(__name__)


class RewardLedger:
    """Writes and aggregates Reward entries."""

    def append(
        self,
        *,
        group,
        customer_id: str,
        amount: Decimal,
        group_metrics: dict,
        reward_type: str = RewardType.GROUP_LEADER,
        status: str = RewardStatus.APPROVED,
    ) -> Reward:
        """
        Record a reward for a completed group.

        Rewards are created approved: the amount is fixed by the group's
        settlement and only the payout remains.

        Raises:
            DuplicateRewardError: If the group already has a reward
        """
        try:
            with transaction.atomic():
                reward = Reward.objects.create(
                    customer_id=customer_id,
                    group=group,
                    group_code=group.code,
                    reward_type=reward_type,
                    amount=amount,
                    status=status,
                    group_metrics=group_metrics,
                )
        except IntegrityError:
            raise DuplicateRewardError(f"Group {group.code} already has a reward")

        logger.info("Reward %s of %s recorded for %s (group %s)", reward.id, amount, customer_id, group.code)
        return reward

    def sum_by_customer(self, customer_id: str) -> Dict[str, Decimal]:
        """
        Total reward amounts of a customer.

        ``paid`` sums paid rewards, ``pending`` sums rewards not yet paid
        (pending and approved). Cancelled rewards count for neither.
        """
        totals = Reward.objects.filter(customer_id=customer_id).aggregate(
            paid=Sum('amount', filter=Q(status=RewardStatus.PAID)),
            pending=Sum('amount', filter=Q(status__in=UNPAID_STATUSES)),
        )
        return {
            'paid': totals['paid'] or Decimal('0'),
            'pending': totals['pending'] or Decimal('0'),
        }

    def list_for_customer(self, customer_id: str) -> QuerySet[Reward]:
        return Reward.objects.filter(customer_id=customer_id).order_by('-created_at')

    @transaction.atomic
    def mark_paid(
        self,
        reward_id,
        *,
        payment_method: str = '',
        transaction_id: str = '',
        now: Optional[datetime] = None
    ) -> Reward:
        """
        Record the payout of an unpaid reward and flag the group as paid.

        Raises:
            RewardNotFoundError: If the reward does not exist
            InvalidRewardTransitionError: If the reward is paid or cancelled
        """
        now = now or timezone.now()

        updated = Reward.objects.filter(id=reward_id, status__in=UNPAID_STATUSES).update(
            status=RewardStatus.PAID,
            paid_at=now,
            payment_method=payment_method,
            transaction_id=transaction_id,
            updated_at=now,
        )

        try:
            reward = Reward.objects.select_related('group').get(id=reward_id)
        except Reward.DoesNotExist:
            raise RewardNotFoundError(f"Reward {reward_id} not found")

        if not updated:
            raise InvalidRewardTransitionError(f"Reward is already {reward.status}")

        GroupBuy.objects.filter(id=reward.group_id).update(reward_paid=True)
        logger.info("Reward %s paid to %s", reward.id, reward.customer_id)
        return reward
