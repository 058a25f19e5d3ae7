from rest_framework import status, serializers
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema
from django.utils import timezone

from apps.rewards.serializers import RewardSerializer

from .authentication import CronTokenAuthentication, HasCronToken
from .serializers import (
    GroupCreateSerializer,
    JoinGroupSerializer,
    GroupBuySerializer,
    LeaderStatsSerializer,
    ExpiredSweepSerializer,
)
from .services import (
    get_group_service,
    # Exceptions
    GroupBuyServiceError,
    GroupNotFoundError,
)
from .snapshots import LeaderSnapshot, ParticipantSnapshot, ProductSnapshot


# Response serializers for API documentation
class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()


class SweepResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    result = ExpiredSweepSerializer()
    timestamp = serializers.DateTimeField()


def _error_response(error):
    """Map a service error to its HTTP response."""
    if isinstance(error, GroupNotFoundError):
        return Response({'error': str(error)}, status=status.HTTP_404_NOT_FOUND)
    return Response({'error': str(error)}, status=status.HTTP_400_BAD_REQUEST)


@extend_schema(
    request=GroupCreateSerializer,
    responses={201: GroupBuySerializer, 400: ErrorResponseSerializer},
    description="Create a group buy for a product. The caller becomes its leader and first participant.",
    tags=['group'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_group(request):
    """Create a new group buy."""
    serializer = GroupCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    user = request.user

    try:
        group = get_group_service().create_group(
            leader=LeaderSnapshot(
                customer_id=user.customer_id,
                name=data['leader_name'] or user.get_display_name(),
                phone=data['leader_phone'] or user.phone,
            ),
            product=ProductSnapshot(**data['product']),
            min_participants=data.get('min_participants'),
            max_participants=data.get('max_participants'),
            duration_hours=data.get('duration_hours'),
            delivery_address=data.get('delivery_address'),
        )
    except GroupBuyServiceError as e:
        return _error_response(e)

    return Response(GroupBuySerializer(group).data, status=status.HTTP_201_CREATED)


@extend_schema(
    responses={200: GroupBuySerializer, 404: ErrorResponseSerializer},
    description="Get a group buy by its share code.",
    tags=['group'],
)
@api_view(['GET'])
@permission_classes([AllowAny])
def group_detail(request, code):
    """Get a group by code."""
    try:
        group = get_group_service().get_group(code=code)
    except GroupNotFoundError as e:
        return _error_response(e)

    return Response(GroupBuySerializer(group).data)


@extend_schema(
    request=JoinGroupSerializer,
    responses={200: GroupBuySerializer, 400: ErrorResponseSerializer, 404: ErrorResponseSerializer},
    description="Join an active group buy. Filling the group completes it.",
    tags=['group'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def join_group(request, code):
    """Join a group by code."""
    serializer = JoinGroupSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    user = request.user

    try:
        group = get_group_service().join(
            code=code,
            participant=ParticipantSnapshot(
                customer_id=user.customer_id,
                name=data['name'] or user.get_display_name(),
                phone=data['phone'] or user.phone,
                quantity=data['quantity'],
            ),
        )
    except GroupBuyServiceError as e:
        return _error_response(e)

    return Response(GroupBuySerializer(group).data)


@extend_schema(
    request=None,
    responses={200: GroupBuySerializer, 400: ErrorResponseSerializer, 404: ErrorResponseSerializer},
    description="Leave an active group buy. The leader must cancel instead.",
    tags=['group'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def leave_group(request, group_id):
    try:
        group = get_group_service().leave(group_id=group_id, customer_id=request.user.customer_id)
    except GroupBuyServiceError as e:
        return _error_response(e)

    return Response(GroupBuySerializer(group).data)


@extend_schema(
    request=None,
    responses={200: GroupBuySerializer, 400: ErrorResponseSerializer, 404: ErrorResponseSerializer},
    description="Cancel an active group buy (leader only).",
    tags=['group'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_group(request, group_id):
    try:
        group = get_group_service().cancel(group_id=group_id, customer_id=request.user.customer_id)
    except GroupBuyServiceError as e:
        return _error_response(e)

    return Response(GroupBuySerializer(group).data)


@extend_schema(
    request=None,
    responses={200: GroupBuySerializer, 400: ErrorResponseSerializer, 404: ErrorResponseSerializer},
    description="Complete an active group buy that reached its minimum (leader or staff).",
    tags=['group'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def complete_group(request, group_id):
    try:
        group = get_group_service().complete(
            group_id=group_id,
            customer_id=request.user.customer_id,
            is_staff=request.user.is_staff,
        )
    except GroupBuyServiceError as e:
        return _error_response(e)

    return Response(GroupBuySerializer(group).data)


@extend_schema(
    responses={200: GroupBuySerializer(many=True)},
    description="List active, unexpired group buys for a product.",
    tags=['group'],
)
@api_view(['GET'])
@permission_classes([AllowAny])
def product_groups(request, product_id):
    groups = get_group_service().product_groups(product_id=product_id)
    return Response(GroupBuySerializer(groups, many=True).data)


@extend_schema(
    responses={200: GroupBuySerializer(many=True)},
    description="List group buys the current customer leads or participates in.",
    tags=['group'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_groups(request):
    groups = get_group_service().customer_groups(customer_id=request.user.customer_id)
    return Response(GroupBuySerializer(groups, many=True).data)


@extend_schema(
    responses={200: LeaderStatsSerializer},
    description="Group and reward totals for the current customer as a leader.",
    tags=['group'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def leader_stats(request):
    stats = get_group_service().leader_stats(customer_id=request.user.customer_id)
    return Response(LeaderStatsSerializer(stats).data)


@extend_schema(
    responses={200: RewardSerializer(many=True)},
    description="List rewards earned by the current customer as a leader.",
    tags=['group'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def leader_rewards(request):
    rewards = get_group_service().ledger.list_for_customer(request.user.customer_id)
    return Response(RewardSerializer(rewards, many=True).data)


@extend_schema(
    request=None,
    responses={200: SweepResponseSerializer, 401: ErrorResponseSerializer},
    description="Settle every active group past its deadline. Requires the cron bearer token.",
    tags=['cron'],
)
@api_view(['POST'])
@authentication_classes([CronTokenAuthentication])
@permission_classes([HasCronToken])
def process_expired(request):
    """Scheduler entry point for the expiry sweep."""
    result = get_group_service().process_expired_groups()
    return Response({
        'success': True,
        'result': result,
        'timestamp': timezone.now().isoformat(),
    })
