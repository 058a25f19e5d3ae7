# Generated manually for the group buying app

import uuid
from decimal import Decimal
from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='GroupBuy',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('code', models.CharField(db_index=True, editable=False, max_length=16, unique=True)),
                ('leader_customer_id', models.CharField(max_length=64)),
                ('leader_name', models.CharField(blank=True, max_length=100)),
                ('leader_phone', models.CharField(blank=True, max_length=20)),
                ('product_id', models.CharField(max_length=64)),
                ('product_name', models.CharField(max_length=200)),
                ('product_banner', models.CharField(blank=True, max_length=500)),
                ('regular_price', models.DecimalField(decimal_places=2, max_digits=10, validators=[MinValueValidator(Decimal('0.00'))])),
                ('group_price', models.DecimalField(decimal_places=2, max_digits=10, validators=[MinValueValidator(Decimal('0.00'))])),
                ('product_weight', models.CharField(blank=True, max_length=50)),
                ('product_category', models.CharField(blank=True, max_length=100)),
                ('min_participants', models.PositiveIntegerField(default=5)),
                ('max_participants', models.PositiveIntegerField(default=20)),
                ('current_participants', models.PositiveIntegerField(default=0)),
                ('status', models.CharField(choices=[('active', 'Active'), ('completed', 'Completed'), ('expired', 'Expired'), ('cancelled', 'Cancelled')], default='active', max_length=20)),
                ('expires_at', models.DateTimeField()),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('delivery_address', models.JSONField(blank=True, default=dict)),
                ('total_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('discount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('leader_reward', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=12)),
                ('reward_paid', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'group_buys',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'expires_at'], name='groupbuy_status_expiry_idx'),
                    models.Index(fields=['leader_customer_id'], name='groupbuy_leader_idx'),
                    models.Index(fields=['product_id', 'status'], name='groupbuy_product_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='GroupParticipant',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('customer_id', models.CharField(max_length=64)),
                ('name', models.CharField(blank=True, max_length=100)),
                ('phone', models.CharField(blank=True, max_length=20)),
                ('quantity', models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])),
                ('joined_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='participants', to='groupbuys.groupbuy')),
            ],
            options={
                'db_table': 'group_buy_participants',
                'ordering': ['joined_at', 'id'],
                'indexes': [models.Index(fields=['customer_id'], name='participant_customer_idx')],
                'unique_together': {('group', 'customer_id')},
            },
        ),
    ]
