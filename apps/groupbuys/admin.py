# ==========================================
# apps/groupbuys/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html
from .models import GroupBuy, GroupParticipant, GroupStatus
from .services import get_group_service, GroupBuyServiceError


class GroupParticipantInline(admin.TabularInline):
    """Participants of a group buy, in join order."""
    model = GroupParticipant
    extra = 0
    fields = ['customer_id', 'name', 'phone', 'quantity', 'joined_at']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        """Participants are added through the join flow only."""
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(GroupBuy)
class GroupBuyAdmin(admin.ModelAdmin):
    """
    Admin interface for Group Buys.

    Provides:
    - Group listing with status and fill level
    - Inline participants
    - Actions to settle overdue groups and complete groups
    """

    list_display = [
        'code',
        'product_name',
        'leader_name',
        'get_fill_display',
        'status_badge',
        'leader_reward',
        'reward_paid',
        'expires_at',
        'created_at',
    ]

    list_filter = [
        'status',
        'reward_paid',
        'product_category',
        'created_at',
    ]

    search_fields = [
        'code',
        'product_name',
        'product_id',
        'leader_customer_id',
        'leader_name',
        'leader_phone',
    ]

    readonly_fields = [
        'code',
        'current_participants',
        'status',
        'completed_at',
        'total_amount',
        'discount',
        'leader_reward',
        'reward_paid',
        'created_at',
        'updated_at',
    ]

    inlines = [GroupParticipantInline]
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    fieldsets = (
        ('Group', {
            'fields': (
                'code',
                'status',
                'min_participants',
                'max_participants',
                'current_participants',
                'expires_at',
                'completed_at',
            )
        }),
        ('Leader', {
            'fields': (
                'leader_customer_id',
                'leader_name',
                'leader_phone',
            )
        }),
        ('Product', {
            'fields': (
                'product_id',
                'product_name',
                'product_banner',
                'regular_price',
                'group_price',
                'product_weight',
                'product_category',
            )
        }),
        ('Settlement', {
            'fields': (
                'total_amount',
                'discount',
                'leader_reward',
                'reward_paid',
            )
        }),
        ('Delivery', {
            'fields': ('delivery_address',),
            'classes': ('collapse',),
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def get_fill_display(self, obj):
        return f"{obj.current_participants} / {obj.max_participants} (min {obj.min_participants})"
    get_fill_display.short_description = 'Participants'

    def status_badge(self, obj):
        """Display group status as colored badge."""
        colors = {
            GroupStatus.ACTIVE: ('#E5C49A', '#2C1810'),
            GroupStatus.COMPLETED: ('#6B8E5E', 'white'),
            GroupStatus.EXPIRED: ('#A47449', 'white'),
            GroupStatus.CANCELLED: ('#B85C5C', 'white'),
        }
        bg, fg = colors.get(obj.status, ('#ccc', '#666'))
        return format_html(
            '<span style="background: {}; color: {}; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            bg, fg, obj.get_status_display()
        )
    status_badge.short_description = 'Status'
    status_badge.admin_order_field = 'status'

    actions = [
        'settle_overdue',
        'complete_groups',
    ]

    @admin.action(description='Settle selected overdue groups')
    def settle_overdue(self, request, queryset):
        """Apply expiry to selected active groups past their deadline."""
        service = get_group_service()
        count = 0
        for group in queryset.filter(status=GroupStatus.ACTIVE):
            if service.expire(group_id=group.id).status != GroupStatus.ACTIVE:
                count += 1
        self.message_user(request, f'Settled {count} group(s).')

    @admin.action(description='Complete selected groups')
    def complete_groups(self, request, queryset):
        """Complete selected active groups that reached their minimum."""
        service = get_group_service()
        count = 0
        for group in queryset.filter(status=GroupStatus.ACTIVE):
            try:
                service.complete(group_id=group.id)
            except GroupBuyServiceError as e:
                self.message_user(request, f'{group.code}: {e}', level='warning')
                continue
            count += 1
        self.message_user(request, f'Completed {count} group(s).')

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.prefetch_related('participants')
