from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
import uuid


class RewardStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    APPROVED = 'approved', 'Approved'
    PAID = 'paid', 'Paid'
    CANCELLED = 'cancelled', 'Cancelled'


class RewardType(models.TextChoices):
    GROUP_LEADER = 'group_leader', 'Group leader'
    REFERRAL = 'referral', 'Referral'
    BONUS = 'bonus', 'Bonus'


UNPAID_STATUSES = [RewardStatus.PENDING, RewardStatus.APPROVED]


class Reward(models.Model):
    """Reward granted to a group leader for a completed group buy."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    customer_id = models.CharField(max_length=64, db_index=True)

    # One reward per group
    group = models.OneToOneField(
        'groupbuys.GroupBuy',
        on_delete=models.PROTECT,
        related_name='reward'
    )
    group_code = models.CharField(max_length=16)

    reward_type = models.CharField(
        max_length=20,
        choices=RewardType.choices,
        default=RewardType.GROUP_LEADER
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        validators=[MinValueValidator(Decimal('0.0001'))]
    )
    status = models.CharField(
        max_length=20,
        choices=RewardStatus.choices,
        default=RewardStatus.PENDING
    )

    # Snapshot of the group figures that earned this reward
    group_metrics = models.JSONField(default=dict, blank=True)

    # Payment tracking
    paid_at = models.DateTimeField(null=True, blank=True)
    payment_method = models.CharField(max_length=50, blank=True)
    transaction_id = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'rewards'
        indexes = [
            models.Index(fields=['customer_id', 'status'], name='reward_customer_status_idx'),
            models.Index(fields=['created_at'], name='reward_created_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.customer_id} - {self.amount} ({self.status}) for {self.group_code}"
