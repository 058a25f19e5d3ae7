from decimal import Decimal
from rest_framework import serializers
from .models import GroupBuy, GroupParticipant, DeliveryAddressType


# =============================================================================
# Input Serializers
# =============================================================================

class ProductInputSerializer(serializers.Serializer):
    """Product details captured into the group at creation."""

    id = serializers.CharField(max_length=64)
    name = serializers.CharField(max_length=200)
    banner = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')
    regular_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'))
    group_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'))
    weight = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    category = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['group_price'] > attrs['regular_price']:
            raise serializers.ValidationError({
                'group_price': 'Group price cannot exceed the regular price'
            })
        return attrs


class DeliveryAddressSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=DeliveryAddressType.choices, default=DeliveryAddressType.CUSTOM)
    complete_address = serializers.CharField(max_length=500)
    latitude = serializers.FloatField(required=False, allow_null=True, min_value=-90, max_value=90)
    longitude = serializers.FloatField(required=False, allow_null=True, min_value=-180, max_value=180)


class GroupCreateSerializer(serializers.Serializer):
    """
    Validate input for creating a group buy.

    Capacity and duration fall back to the configured defaults when omitted;
    their cross-field rules are enforced by the service. Leader name and
    phone fall back to the caller's profile.
    """

    product = ProductInputSerializer()
    leader_name = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    leader_phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    min_participants = serializers.IntegerField(required=False, min_value=2)
    max_participants = serializers.IntegerField(required=False, min_value=2)
    duration_hours = serializers.IntegerField(required=False, min_value=1)
    delivery_address = DeliveryAddressSerializer(required=False)


class JoinGroupSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    quantity = serializers.IntegerField(min_value=1, default=1)


# =============================================================================
# Output Serializers
# =============================================================================

class GroupParticipantSerializer(serializers.ModelSerializer):

    class Meta:
        model = GroupParticipant
        fields = ['customer_id', 'name', 'phone', 'quantity', 'joined_at']
        read_only_fields = fields


class LeaderSerializer(serializers.Serializer):
    customer_id = serializers.CharField()
    name = serializers.CharField()
    phone = serializers.CharField()


class ProductSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    banner = serializers.CharField()
    regular_price = serializers.DecimalField(max_digits=10, decimal_places=2)
    group_price = serializers.DecimalField(max_digits=10, decimal_places=2)
    weight = serializers.CharField()
    category = serializers.CharField()


class GroupBuySerializer(serializers.ModelSerializer):
    """Full group representation with leader, product and participants."""

    leader = LeaderSerializer(read_only=True)
    product = ProductSerializer(read_only=True)
    participants = GroupParticipantSerializer(many=True, read_only=True)

    class Meta:
        model = GroupBuy
        fields = [
            'id',
            'code',
            'leader',
            'product',
            'participants',
            'min_participants',
            'max_participants',
            'current_participants',
            'status',
            'expires_at',
            'completed_at',
            'delivery_address',
            'total_amount',
            'discount',
            'leader_reward',
            'reward_paid',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class LeaderStatsSerializer(serializers.Serializer):
    total_groups = serializers.IntegerField()
    active_groups = serializers.IntegerField()
    completed_groups = serializers.IntegerField()
    total_participants = serializers.IntegerField()
    total_rewards = serializers.DecimalField(max_digits=12, decimal_places=4)
    pending_rewards = serializers.DecimalField(max_digits=12, decimal_places=4)


class ExpiredSweepSerializer(serializers.Serializer):
    processed = serializers.IntegerField()
    completed = serializers.IntegerField()
    expired = serializers.IntegerField()
    failed = serializers.IntegerField()
