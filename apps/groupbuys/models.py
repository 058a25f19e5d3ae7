# ==========================================
# apps/groupbuys/models.py
# ==========================================

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from decimal import Decimal
import uuid

from .snapshots import LeaderSnapshot, ProductSnapshot


class GroupStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    COMPLETED = 'completed', 'Completed'
    EXPIRED = 'expired', 'Expired'
    CANCELLED = 'cancelled', 'Cancelled'


class DeliveryAddressType(models.TextChoices):
    HOME = 'home', 'Home'
    HOTEL = 'hotel', 'Hotel'
    OFFICE = 'office', 'Office'
    OTHER = 'other', 'Other'
    CUSTOM = 'custom', 'Custom'


class GroupBuy(models.Model):
    """Time-boxed group purchase of a single product."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(max_length=16, unique=True, db_index=True, editable=False)

    # Leader snapshot
    leader_customer_id = models.CharField(max_length=64)
    leader_name = models.CharField(max_length=100, blank=True)
    leader_phone = models.CharField(max_length=20, blank=True)

    # Product snapshot
    product_id = models.CharField(max_length=64)
    product_name = models.CharField(max_length=200)
    product_banner = models.CharField(max_length=500, blank=True)
    regular_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    group_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    product_weight = models.CharField(max_length=50, blank=True)
    product_category = models.CharField(max_length=100, blank=True)

    # Capacity
    min_participants = models.PositiveIntegerField(default=5)
    max_participants = models.PositiveIntegerField(default=20)
    current_participants = models.PositiveIntegerField(default=0)

    status = models.CharField(
        max_length=20,
        choices=GroupStatus.choices,
        default=GroupStatus.ACTIVE
    )

    # Timing
    expires_at = models.DateTimeField()
    completed_at = models.DateTimeField(null=True, blank=True)

    delivery_address = models.JSONField(default=dict, blank=True)

    # Settlement, filled on completion
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    discount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    leader_reward = models.DecimalField(max_digits=12, decimal_places=4, default=Decimal('0'))
    reward_paid = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'group_buys'
        indexes = [
            models.Index(fields=['status', 'expires_at'], name='groupbuy_status_expiry_idx'),
            models.Index(fields=['leader_customer_id'], name='groupbuy_leader_idx'),
            models.Index(fields=['product_id', 'status'], name='groupbuy_product_status_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.code} - {self.product_name} ({self.status})"

    @property
    def leader(self) -> LeaderSnapshot:
        return LeaderSnapshot(
            customer_id=self.leader_customer_id,
            name=self.leader_name,
            phone=self.leader_phone,
        )

    @property
    def product(self) -> ProductSnapshot:
        return ProductSnapshot(
            id=self.product_id,
            name=self.product_name,
            banner=self.product_banner,
            regular_price=self.regular_price,
            group_price=self.group_price,
            weight=self.product_weight,
            category=self.product_category,
        )

    def is_full(self):
        return self.current_participants >= self.max_participants

    def is_minimum_reached(self):
        return self.current_participants >= self.min_participants

    def is_expired(self, now=None):
        """True once the deadline has passed, regardless of status."""
        return (now or timezone.now()) > self.expires_at

    def is_leader(self, customer_id):
        return self.leader_customer_id == str(customer_id)

    def has_participant(self, customer_id):
        return self.participants.filter(customer_id=str(customer_id)).exists()


class GroupParticipant(models.Model):
    """Customer committed to a group buy. The leader is always the first row."""

    group = models.ForeignKey(GroupBuy, on_delete=models.CASCADE, related_name='participants')
    customer_id = models.CharField(max_length=64)
    name = models.CharField(max_length=100, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    joined_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'group_buy_participants'
        unique_together = [['group', 'customer_id']]
        indexes = [
            models.Index(fields=['customer_id'], name='participant_customer_idx'),
        ]
        ordering = ['joined_at', 'id']

    def __str__(self):
        return f"{self.name or self.customer_id} x{self.quantity} in {self.group.code}"
