from django.urls import path
from . import views

app_name = 'groupbuys'

# Fixed prefixes come before the <code>/ catch-all
urlpatterns = [
    path('create/', views.create_group, name='create'),
    path('cron/process-expired/', views.process_expired, name='process-expired'),
    path('product/<str:product_id>/', views.product_groups, name='product-groups'),
    path('user/my-groups/', views.my_groups, name='my-groups'),
    path('leader/stats/', views.leader_stats, name='leader-stats'),
    path('leader/rewards/', views.leader_rewards, name='leader-rewards'),

    path('<uuid:group_id>/leave/', views.leave_group, name='leave'),
    path('<uuid:group_id>/cancel/', views.cancel_group, name='cancel'),
    path('<uuid:group_id>/complete/', views.complete_group, name='complete'),

    path('<str:code>/join/', views.join_group, name='join'),
    path('<str:code>/', views.group_detail, name='detail'),
]
