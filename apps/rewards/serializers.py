from rest_framework import serializers
from .models import Reward


class RewardSerializer(serializers.ModelSerializer):
    """Ledger entry as shown to the rewarded leader."""

    class Meta:
        model = Reward
        fields = [
            'id',
            'group',
            'group_code',
            'reward_type',
            'amount',
            'status',
            'group_metrics',
            'paid_at',
            'payment_method',
            'created_at',
        ]
        read_only_fields = fields
