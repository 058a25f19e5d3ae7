import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def user(db):
    """Create and return a test customer."""
    return User.objects.create_user(
        phone='+420601000001',
        password='TestPass123!',
        display_name='Test Customer',
    )


@pytest.fixture
def user_inactive(db):
    """Create and return a deactivated customer."""
    return User.objects.create_user(
        phone='+420601000002',
        password='TestPass123!',
        display_name='Inactive Customer',
        is_active=False,
    )


@pytest.fixture
def authenticated_client(api_client, user):
    """Return API client authenticated as test customer."""
    refresh = RefreshToken.for_user(user)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return api_client
