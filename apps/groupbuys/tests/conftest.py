import pytest
from decimal import Decimal
from rest_framework.test import APIClient
from apps.accounts.models import User
from apps.groupbuys.services import GroupService, GroupStore
from apps.groupbuys.snapshots import LeaderSnapshot, ProductSnapshot
from apps.rewards.services import RewardLedger
from .utils import client_for


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def leader_user(db):
    """Create and return the customer who starts groups."""
    return User.objects.create_user(
        phone='+420600111111',
        password='TestPass123!',
        display_name='Group Leader',
    )


@pytest.fixture
def buyer_user(db):
    """Create and return a customer who joins groups."""
    return User.objects.create_user(
        phone='+420600222222',
        password='TestPass123!',
        display_name='Group Buyer',
    )


@pytest.fixture
def other_user(db):
    """Create and return a customer unrelated to any group."""
    return User.objects.create_user(
        phone='+420600333333',
        password='TestPass123!',
        display_name='Other Customer',
    )


@pytest.fixture
def staff_user(db):
    """Create and return a staff user."""
    return User.objects.create_user(
        phone='+420600999999',
        password='TestPass123!',
        display_name='Staff Member',
        is_staff=True,
    )


@pytest.fixture
def leader_client(leader_user):
    return client_for(leader_user)


@pytest.fixture
def buyer_client(buyer_user):
    return client_for(buyer_user)


@pytest.fixture
def other_client(other_user):
    return client_for(other_user)


@pytest.fixture
def staff_client(staff_user):
    return client_for(staff_user)


@pytest.fixture
def service():
    """Return a service wired like the app's, with the default settings."""
    return GroupService(store=GroupStore(), ledger=RewardLedger())


@pytest.fixture
def leader():
    return LeaderSnapshot(customer_id='leader-1', name='Leader', phone='+420600111111')


@pytest.fixture
def product():
    """Product with a 20.00 saving per unit."""
    return ProductSnapshot(
        id='prod-1',
        name='Basmati Rice 5kg',
        regular_price=Decimal('100.00'),
        group_price=Decimal('80.00'),
        banner='https://cdn.example.com/rice.png',
        weight='5kg',
        category='groceries',
    )


@pytest.fixture
def small_group(db, service, leader, product):
    """Active group with min 2 and max 3 participants, leader only."""
    return service.create_group(
        leader=leader,
        product=product,
        min_participants=2,
        max_participants=3,
        duration_hours=24,
    )


@pytest.fixture
def large_group(db, service, leader, product):
    """Active group with min 5 and max 10 participants, leader only."""
    return service.create_group(
        leader=leader,
        product=product,
        min_participants=5,
        max_participants=10,
        duration_hours=24,
    )


@pytest.fixture
def product_payload():
    return {
        'id': 'prod-1',
        'name': 'Basmati Rice 5kg',
        'banner': 'https://cdn.example.com/rice.png',
        'regular_price': '100.00',
        'group_price': '80.00',
        'weight': '5kg',
        'category': 'groceries',
    }
