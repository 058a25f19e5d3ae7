import pytest
from datetime import timedelta
from decimal import Decimal
from django.utils import timezone
from apps.groupbuys.models import GroupBuy
from apps.rewards.services import RewardLedger


def make_group(code, leader_customer_id='leader-1'):
    """Create a bare completed-looking group to attach rewards to."""
    return GroupBuy.objects.create(
        code=code,
        leader_customer_id=leader_customer_id,
        product_id='prod-1',
        product_name='Basmati Rice 5kg',
        regular_price=Decimal('100.00'),
        group_price=Decimal('80.00'),
        min_participants=2,
        max_participants=3,
        current_participants=3,
        status='completed',
        expires_at=timezone.now() + timedelta(hours=1),
    )


@pytest.fixture
def ledger():
    return RewardLedger()


@pytest.fixture
def group(db):
    return make_group('REWARD01')


@pytest.fixture
def other_group(db):
    return make_group('REWARD02')


@pytest.fixture
def metrics():
    return {
        'total_participants': 3,
        'total_quantity': 4,
        'total_amount': '320.00',
        'product_name': 'Basmati Rice 5kg',
        'discount': '80.00',
    }
