"""
Service layer unit tests for groupbuys app.

Tests cover:
- Group creation and settings validation
- Join, leave, cancel, complete and expire transitions
- Leader reward settlement
- Expiry sweep idempotence
"""

import pytest
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4
from django.utils import timezone

from apps.groupbuys.models import GroupBuy, GroupStatus
from apps.groupbuys.services import (
    calculate_settlement,
    get_group_service,
    GroupService,
    AlreadyJoinedError,
    CodeGenerationError,
    GroupExpiredError,
    GroupFullError,
    GroupNotActiveError,
    GroupNotFoundError,
    InvalidGroupSettingsError,
    LeaderCannotLeaveError,
    MinParticipantsNotReachedError,
    NotLeaderError,
    NotParticipantError,
)
from apps.groupbuys.snapshots import ProductSnapshot
from apps.rewards.models import Reward, RewardStatus
from .utils import assert_count_matches_rows, participant


# =============================================================================
# Settlement
# =============================================================================

class TestCalculateSettlement:

    def test_reward_is_rate_of_total_saving(self, product):
        participants = [SimpleNamespace(quantity=q) for q in (1, 2, 4)]

        settlement = calculate_settlement(product, participants, Decimal('0.05'))

        assert settlement.total_quantity == 7
        assert settlement.total_amount == Decimal('560.00')
        assert settlement.discount == Decimal('140.00')
        assert abs(float(settlement.leader_reward) - 0.05 * 7 * (100.00 - 80.00)) < 1e-6

    def test_reward_rounded_to_four_places(self):
        product = ProductSnapshot(
            id='p', name='Tea', regular_price=Decimal('10.33'), group_price=Decimal('10.00'),
        )
        participants = [SimpleNamespace(quantity=1)]

        settlement = calculate_settlement(product, participants, Decimal('0.05'))

        assert settlement.leader_reward == Decimal('0.0165')

    def test_no_saving_no_reward(self):
        product = ProductSnapshot(
            id='p', name='Tea', regular_price=Decimal('10.00'), group_price=Decimal('10.00'),
        )

        settlement = calculate_settlement(product, [SimpleNamespace(quantity=3)], Decimal('0.05'))

        assert settlement.leader_reward == Decimal('0')


# =============================================================================
# Create
# =============================================================================

@pytest.mark.django_db
class TestCreateGroup:

    def test_create_group_success(self, service, leader, product):
        now = timezone.now()

        group = service.create_group(leader=leader, product=product, now=now)

        assert group.status == GroupStatus.ACTIVE
        assert len(group.code) == 8
        assert group.min_participants == 5
        assert group.max_participants == 20
        assert group.expires_at == now + timedelta(hours=72)
        assert group.current_participants == 1
        assert group.delivery_address == {
            'type': 'custom',
            'complete_address': 'Address not provided',
        }

        first = group.participants.first()
        assert first.customer_id == leader.customer_id
        assert first.quantity == 1
        assert_count_matches_rows(group.id)

    def test_create_group_snapshots_product(self, service, leader, product):
        group = service.create_group(leader=leader, product=product)

        assert group.product == product
        assert group.leader == leader

    def test_create_group_custom_settings(self, service, leader, product):
        address = {'type': 'office', 'complete_address': '1 Main St', 'latitude': 50.08, 'longitude': 14.42}

        group = service.create_group(
            leader=leader,
            product=product,
            min_participants=3,
            max_participants=4,
            duration_hours=1,
            delivery_address=address,
        )

        assert group.min_participants == 3
        assert group.max_participants == 4
        assert group.delivery_address == address

    @pytest.mark.parametrize('settings_kwargs', [
        {'min_participants': 1},
        {'min_participants': 6, 'max_participants': 5},
        {'duration_hours': 721},
        {'min_participants': 0},
        {'max_participants': 0},
        {'duration_hours': 0},
    ])
    def test_create_group_invalid_settings(self, service, leader, product, settings_kwargs):
        with pytest.raises(InvalidGroupSettingsError):
            service.create_group(leader=leader, product=product, **settings_kwargs)

        assert GroupBuy.objects.count() == 0

    def test_create_group_group_price_above_regular(self, service, leader):
        product = ProductSnapshot(
            id='p', name='Tea', regular_price=Decimal('10.00'), group_price=Decimal('12.00'),
        )

        with pytest.raises(InvalidGroupSettingsError):
            service.create_group(leader=leader, product=product)

    def test_create_group_retries_on_collision(self, service, leader, product, small_group, monkeypatch):
        codes = iter([small_group.code, 'FRESH123'])
        monkeypatch.setattr(service.store, 'generate_code', lambda: next(codes))

        group = service.create_group(leader=leader, product=product)

        assert group.code == 'FRESH123'

    def test_create_group_gives_up_after_max_attempts(self, service, leader, product, small_group, monkeypatch):
        monkeypatch.setattr(service.store, 'generate_code', lambda: small_group.code)

        with pytest.raises(CodeGenerationError):
            service.create_group(leader=leader, product=product)

        assert GroupBuy.objects.count() == 1


# =============================================================================
# Join
# =============================================================================

@pytest.mark.django_db
class TestJoin:

    def test_join_below_capacity_stays_active(self, service, small_group):
        group = service.join(code=small_group.code, participant=participant('b', quantity=2))

        assert group.status == GroupStatus.ACTIVE
        assert group.current_participants == 2
        assert_count_matches_rows(group.id)

    def test_join_filling_group_completes_it(self, service, small_group):
        service.join(code=small_group.code, participant=participant('b'))
        group = service.join(code=small_group.code, participant=participant('c'))

        assert group.status == GroupStatus.COMPLETED
        assert group.completed_at is not None
        assert group.current_participants == 3
        assert_count_matches_rows(group.id)

    def test_join_twice_fails(self, service, small_group):
        service.join(code=small_group.code, participant=participant('b'))

        with pytest.raises(AlreadyJoinedError):
            service.join(code=small_group.code, participant=participant('b'))

        group = assert_count_matches_rows(small_group.id)
        assert group.current_participants == 2

    def test_leader_cannot_join_own_group(self, service, small_group):
        with pytest.raises(AlreadyJoinedError):
            service.join(code=small_group.code, participant=participant('leader-1'))

    def test_join_full_active_group(self, service, small_group):
        # The store does not auto-complete, so the group sits full but active
        service.store.add_participant(small_group.id, participant('b'))
        service.store.add_participant(small_group.id, participant('c'))

        with pytest.raises(GroupFullError):
            service.join(code=small_group.code, participant=participant('d'))

        group = assert_count_matches_rows(small_group.id)
        assert group.current_participants == 3

    def test_join_completed_group(self, service, small_group):
        service.join(code=small_group.code, participant=participant('b'))
        service.join(code=small_group.code, participant=participant('c'))

        with pytest.raises(GroupNotActiveError):
            service.join(code=small_group.code, participant=participant('d'))

    def test_join_unknown_code(self, service):
        with pytest.raises(GroupNotFoundError):
            service.join(code='MISSING1', participant=participant('b'))

    def test_join_expired_group_expires_it(self, service, small_group):
        later = small_group.expires_at + timedelta(minutes=5)

        with pytest.raises(GroupExpiredError):
            service.join(code=small_group.code, participant=participant('b'), now=later)

        group = assert_count_matches_rows(small_group.id)
        assert group.status == GroupStatus.EXPIRED
        assert group.current_participants == 1

    def test_join_at_deadline_is_accepted(self, service, small_group):
        group = service.join(
            code=small_group.code, participant=participant('b'), now=small_group.expires_at,
        )

        assert group.status == GroupStatus.ACTIVE
        assert group.current_participants == 2
        assert_count_matches_rows(group.id)

    def test_join_expired_group_with_minimum_completes_it(self, service, small_group):
        service.join(code=small_group.code, participant=participant('b'))
        later = small_group.expires_at + timedelta(minutes=5)

        with pytest.raises(GroupExpiredError):
            service.join(code=small_group.code, participant=participant('c'), now=later)

        group = GroupBuy.objects.get(id=small_group.id)
        assert group.status == GroupStatus.COMPLETED
        assert Reward.objects.filter(group=group).count() == 1


# =============================================================================
# Leave / Cancel / Complete
# =============================================================================

@pytest.mark.django_db
class TestLeave:

    def test_leave_success(self, service, large_group):
        service.join(code=large_group.code, participant=participant('b'))

        group = service.leave(group_id=large_group.id, customer_id='b')

        assert group.current_participants == 1
        assert not group.has_participant('b')
        assert_count_matches_rows(group.id)

    def test_leader_cannot_leave(self, service, large_group):
        with pytest.raises(LeaderCannotLeaveError):
            service.leave(group_id=large_group.id, customer_id='leader-1')

        assert_count_matches_rows(large_group.id)

    def test_non_participant_cannot_leave(self, service, large_group):
        with pytest.raises(NotParticipantError):
            service.leave(group_id=large_group.id, customer_id='stranger')

    def test_cannot_leave_completed_group(self, service, small_group):
        service.join(code=small_group.code, participant=participant('b'))
        service.join(code=small_group.code, participant=participant('c'))

        with pytest.raises(GroupNotActiveError):
            service.leave(group_id=small_group.id, customer_id='b')

        group = assert_count_matches_rows(small_group.id)
        assert group.current_participants == 3


@pytest.mark.django_db
class TestCancel:

    def test_leader_cancels_active_group(self, service, small_group):
        group = service.cancel(group_id=small_group.id, customer_id='leader-1')

        assert group.status == GroupStatus.CANCELLED
        assert not Reward.objects.exists()

    def test_non_leader_cannot_cancel(self, service, small_group):
        service.join(code=small_group.code, participant=participant('b'))

        with pytest.raises(NotLeaderError):
            service.cancel(group_id=small_group.id, customer_id='b')

        group = GroupBuy.objects.get(id=small_group.id)
        assert group.status == GroupStatus.ACTIVE
        assert group.current_participants == 2

    @pytest.mark.parametrize('terminal_status', [
        GroupStatus.COMPLETED,
        GroupStatus.EXPIRED,
        GroupStatus.CANCELLED,
    ])
    def test_cannot_cancel_terminal_group(self, service, small_group, terminal_status):
        GroupBuy.objects.filter(id=small_group.id).update(status=terminal_status)

        with pytest.raises(GroupNotActiveError):
            service.cancel(group_id=small_group.id, customer_id='leader-1')

        assert GroupBuy.objects.get(id=small_group.id).status == terminal_status

    def test_cancel_unknown_group(self, service):
        with pytest.raises(GroupNotFoundError):
            service.cancel(group_id=uuid4(), customer_id='leader-1')


@pytest.mark.django_db
class TestComplete:

    def test_leader_completes_after_minimum(self, service, large_group):
        for customer_id in ('b', 'c', 'd', 'e'):
            service.join(code=large_group.code, participant=participant(customer_id))

        group = service.complete(group_id=large_group.id, customer_id='leader-1')

        assert group.status == GroupStatus.COMPLETED
        assert group.total_amount == Decimal('400.00')
        assert group.discount == Decimal('100.00')
        assert group.leader_reward == Decimal('5.0000')

    def test_complete_below_minimum(self, service, large_group):
        service.join(code=large_group.code, participant=participant('b'))

        with pytest.raises(MinParticipantsNotReachedError):
            service.complete(group_id=large_group.id, customer_id='leader-1')

        assert GroupBuy.objects.get(id=large_group.id).status == GroupStatus.ACTIVE

    def test_non_leader_cannot_complete(self, service, small_group):
        service.join(code=small_group.code, participant=participant('b'))

        with pytest.raises(NotLeaderError):
            service.complete(group_id=small_group.id, customer_id='b')

    def test_staff_can_complete(self, service, small_group):
        service.join(code=small_group.code, participant=participant('b'))

        group = service.complete(group_id=small_group.id, customer_id='staff-1', is_staff=True)

        assert group.status == GroupStatus.COMPLETED

    def test_complete_twice(self, service, small_group):
        service.join(code=small_group.code, participant=participant('b'))
        service.complete(group_id=small_group.id)

        with pytest.raises(GroupNotActiveError):
            service.complete(group_id=small_group.id)

        assert Reward.objects.filter(group_id=small_group.id).count() == 1


# =============================================================================
# Expiry
# =============================================================================

@pytest.mark.django_db
class TestExpire:

    def test_expire_before_deadline_is_noop(self, service, small_group):
        group = service.expire(group_id=small_group.id)

        assert group.status == GroupStatus.ACTIVE

    def test_expire_below_minimum(self, service, small_group):
        later = small_group.expires_at + timedelta(seconds=1)

        group = service.expire(group_id=small_group.id, now=later)

        assert group.status == GroupStatus.EXPIRED
        assert group.completed_at is None

    def test_expire_with_minimum_completes(self, service, small_group):
        service.join(code=small_group.code, participant=participant('b'))
        later = small_group.expires_at + timedelta(seconds=1)

        group = service.expire(group_id=small_group.id, now=later)

        assert group.status == GroupStatus.COMPLETED

    def test_expire_terminal_group_is_noop(self, service, small_group):
        service.cancel(group_id=small_group.id, customer_id='leader-1')
        later = small_group.expires_at + timedelta(seconds=1)

        group = service.expire(group_id=small_group.id, now=later)

        assert group.status == GroupStatus.CANCELLED


@pytest.mark.django_db
class TestProcessExpiredGroups:

    def test_sweep_settles_overdue_groups(self, service, small_group, large_group):
        service.join(code=small_group.code, participant=participant('b'))
        later = large_group.expires_at + timedelta(seconds=1)

        result = service.process_expired_groups(now=later)

        assert result == {'processed': 2, 'completed': 1, 'expired': 1, 'failed': 0}
        assert GroupBuy.objects.get(id=small_group.id).status == GroupStatus.COMPLETED
        assert GroupBuy.objects.get(id=large_group.id).status == GroupStatus.EXPIRED

    def test_sweep_twice_is_noop(self, service, small_group, large_group):
        service.join(code=small_group.code, participant=participant('b'))
        later = large_group.expires_at + timedelta(seconds=1)
        service.process_expired_groups(now=later)
        statuses = dict(GroupBuy.objects.values_list('id', 'status'))
        rewards = Reward.objects.count()

        result = service.process_expired_groups(now=later + timedelta(hours=1))

        assert result == {'processed': 0, 'completed': 0, 'expired': 0, 'failed': 0}
        assert dict(GroupBuy.objects.values_list('id', 'status')) == statuses
        assert Reward.objects.count() == rewards == 1

    def test_sweep_ignores_groups_not_due(self, service, small_group):
        result = service.process_expired_groups()

        assert result['processed'] == 0
        assert GroupBuy.objects.get(id=small_group.id).status == GroupStatus.ACTIVE


# =============================================================================
# Scenarios
# =============================================================================

@pytest.mark.django_db
class TestScenarios:

    def test_small_group_fills_and_rewards_leader(self, service, leader, product):
        group = service.create_group(
            leader=leader, product=product,
            min_participants=2, max_participants=3, duration_hours=1,
        )
        assert group.current_participants == 1

        group = service.join(code=group.code, participant=participant('b', quantity=2))
        assert group.current_participants == 2
        assert group.status == GroupStatus.ACTIVE

        group = service.join(code=group.code, participant=participant('c', quantity=3))
        assert group.current_participants == 3
        assert group.status == GroupStatus.COMPLETED

        reward = Reward.objects.get(group=group)
        expected = 0.05 * (1 + 2 + 3) * (100.00 - 80.00)
        assert abs(float(reward.amount) - expected) < 1e-6
        assert reward.customer_id == leader.customer_id
        assert reward.status == RewardStatus.APPROVED
        assert reward.group_code == group.code
        assert reward.group_metrics['total_participants'] == 3
        assert reward.group_metrics['product_name'] == product.name
        assert group.leader_reward == reward.amount

    def test_undersubscribed_group_expires_without_reward(self, service, leader, product):
        group = service.create_group(leader=leader, product=product, min_participants=5)
        service.join(code=group.code, participant=participant('b'))
        service.join(code=group.code, participant=participant('c'))

        result = service.process_expired_groups(now=group.expires_at + timedelta(minutes=1))

        group = assert_count_matches_rows(group.id)
        assert result['expired'] == 1
        assert group.status == GroupStatus.EXPIRED
        assert group.current_participants == 3
        assert not Reward.objects.exists()


# =============================================================================
# Lookups and stats
# =============================================================================

@pytest.mark.django_db
class TestQueriesAndStats:

    def test_product_groups_lists_active_unexpired(self, service, small_group, large_group):
        service.cancel(group_id=large_group.id, customer_id='leader-1')

        groups = service.product_groups(product_id='prod-1')

        assert [g.id for g in groups] == [small_group.id]

    def test_product_groups_hides_overdue(self, service, small_group):
        later = small_group.expires_at + timedelta(seconds=1)

        assert service.product_groups(product_id='prod-1', now=later).count() == 0

    def test_customer_groups(self, service, small_group):
        service.join(code=small_group.code, participant=participant('b'))

        assert [g.id for g in service.customer_groups(customer_id='b')] == [small_group.id]
        assert service.customer_groups(customer_id='nobody').count() == 0

    def test_leader_stats(self, service, small_group, large_group):
        service.join(code=small_group.code, participant=participant('b'))
        service.join(code=small_group.code, participant=participant('c'))

        stats = service.leader_stats(customer_id='leader-1')

        assert stats['total_groups'] == 2
        assert stats['active_groups'] == 1
        assert stats['completed_groups'] == 1
        assert stats['total_participants'] == 4
        assert stats['total_rewards'] == Decimal('0')
        assert stats['pending_rewards'] == Decimal('3.0000')

    def test_leader_stats_after_payout(self, service, small_group):
        service.join(code=small_group.code, participant=participant('b'))
        group = service.join(code=small_group.code, participant=participant('c'))
        service.ledger.mark_paid(group.reward.id)

        stats = service.leader_stats(customer_id='leader-1')

        assert stats['total_rewards'] == Decimal('3.0000')
        assert stats['pending_rewards'] == Decimal('0')


@pytest.mark.django_db
def test_app_builds_service_from_settings(settings):
    service = get_group_service()

    assert isinstance(service, GroupService)
    assert service.reward_rate == Decimal('0.05')
    assert service.default_min_participants == settings.GROUPBUY['DEFAULT_MIN_PARTICIPANTS']
