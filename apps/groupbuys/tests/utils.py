from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.groupbuys.models import GroupBuy, GroupParticipant
from apps.groupbuys.snapshots import ParticipantSnapshot


def client_for(user):
    """Return a new API client authenticated as ``user``."""
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


def participant(customer_id, quantity=1):
    """Build a participant snapshot for a test customer."""
    return ParticipantSnapshot(
        customer_id=customer_id,
        name=f'Customer {customer_id}',
        phone='+420600000000',
        quantity=quantity,
    )


def assert_count_matches_rows(group_id):
    """Reload the group and check its count against its participant rows."""
    group = GroupBuy.objects.get(id=group_id)
    assert group.current_participants == GroupParticipant.objects.filter(group_id=group_id).count()
    return group
