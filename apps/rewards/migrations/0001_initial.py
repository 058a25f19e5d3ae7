# Generated manually for the rewards ledger

import uuid
from decimal import Decimal
from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('groupbuys', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Reward',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('customer_id', models.CharField(db_index=True, max_length=64)),
                ('group_code', models.CharField(max_length=16)),
                ('reward_type', models.CharField(choices=[('group_leader', 'Group leader'), ('referral', 'Referral'), ('bonus', 'Bonus')], default='group_leader', max_length=20)),
                ('amount', models.DecimalField(decimal_places=4, max_digits=12, validators=[MinValueValidator(Decimal('0.0001'))])),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('paid', 'Paid'), ('cancelled', 'Cancelled')], default='pending', max_length=20)),
                ('group_metrics', models.JSONField(blank=True, default=dict)),
                ('paid_at', models.DateTimeField(blank=True, null=True)),
                ('payment_method', models.CharField(blank=True, max_length=50)),
                ('transaction_id', models.CharField(blank=True, max_length=100)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('group', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='reward', to='groupbuys.groupbuy')),
            ],
            options={
                'db_table': 'rewards',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['customer_id', 'status'], name='reward_customer_status_idx'),
                    models.Index(fields=['created_at'], name='reward_created_idx'),
                ],
            },
        ),
    ]
