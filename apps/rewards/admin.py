# ==========================================
# apps/rewards/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html
from .exceptions import RewardServiceError
from .models import Reward, RewardStatus, UNPAID_STATUSES
from .services import RewardLedger


@admin.register(Reward)
class RewardAdmin(admin.ModelAdmin):
    """
    Admin interface for leader rewards.

    Entries are written by group completion; admins only record payouts.
    """

    list_display = [
        'customer_id',
        'group_code',
        'reward_type',
        'amount',
        'status_badge',
        'paid_at',
        'created_at',
    ]

    list_filter = [
        'status',
        'reward_type',
        'created_at',
        'paid_at',
    ]

    search_fields = [
        'customer_id',
        'group_code',
        'transaction_id',
    ]

    readonly_fields = [
        'customer_id',
        'group',
        'group_code',
        'reward_type',
        'amount',
        'status',
        'group_metrics',
        'paid_at',
        'created_at',
        'updated_at',
    ]

    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    fieldsets = (
        ('Reward', {
            'fields': (
                'customer_id',
                'group',
                'group_code',
                'reward_type',
                'amount',
                'status',
            )
        }),
        ('Payment', {
            'fields': (
                'paid_at',
                'payment_method',
                'transaction_id',
                'notes',
            )
        }),
        ('Group Metrics', {
            'fields': ('group_metrics',),
            'classes': ('collapse',),
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def status_badge(self, obj):
        """Display reward status as colored badge."""
        colors = {
            RewardStatus.PENDING: ('#E5C49A', '#2C1810'),
            RewardStatus.APPROVED: ('#A47449', 'white'),
            RewardStatus.PAID: ('#6B8E5E', 'white'),
            RewardStatus.CANCELLED: ('#B85C5C', 'white'),
        }
        bg, fg = colors.get(obj.status, ('#ccc', '#666'))
        return format_html(
            '<span style="background: {}; color: {}; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            bg, fg, obj.get_status_display()
        )
    status_badge.short_description = 'Status'
    status_badge.admin_order_field = 'status'

    def has_add_permission(self, request):
        return False

    actions = ['mark_as_paid']

    @admin.action(description='Mark selected as PAID')
    def mark_as_paid(self, request, queryset):
        """Record payout of selected unpaid rewards."""
        ledger = RewardLedger()
        count = 0
        for reward in queryset.filter(status__in=UNPAID_STATUSES):
            try:
                ledger.mark_paid(reward.id, payment_method='manual')
            except RewardServiceError as e:
                self.message_user(request, f'{reward.group_code}: {e}', level='warning')
                continue
            count += 1
        self.message_user(request, f'Marked {count} reward(s) as paid.')
