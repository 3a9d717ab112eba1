import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('tenant', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='TicketSequence',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('business_date', models.DateField()),
                ('last_number', models.PositiveIntegerField(default=0)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='ticket_sequences', to='tenant.tenant')),
            ],
            options={
                'constraints': [
                    models.UniqueConstraint(fields=('tenant', 'business_date'), name='unique_ticket_sequence_per_day'),
                ],
            },
        ),
        migrations.CreateModel(
            name='KitchenTicket',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('order_id', models.CharField(max_length=64)),
                ('table_id', models.CharField(max_length=64)),
                ('table_number', models.CharField(blank=True, max_length=60, null=True)),
                ('floor_name', models.CharField(blank=True, max_length=100, null=True)),
                ('ticket_number', models.CharField(max_length=20)),
                ('business_date', models.DateField(default=django.utils.timezone.localdate)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('IN_PROGRESS', 'In Progress'), ('READY', 'Ready'), ('COMPLETED', 'Completed'), ('CANCELLED', 'Cancelled')], default='PENDING', max_length=20)),
                ('priority', models.PositiveSmallIntegerField(choices=[(0, 'Normal'), (1, 'High'), (2, 'Urgent'), (3, 'Fire')], default=0)),
                ('customer_name', models.CharField(blank=True, max_length=100, null=True)),
                ('order_type', models.CharField(blank=True, max_length=50, null=True)),
                ('notes', models.TextField(blank=True, null=True)),
                ('assigned_cook_id', models.CharField(blank=True, max_length=64, null=True)),
                ('assigned_cook_name', models.CharField(blank=True, max_length=100, null=True)),
                ('source_message_id', models.CharField(blank=True, max_length=64, null=True)),
                ('elapsed_seconds', models.PositiveIntegerField(default=0)),
                ('estimated_prep_time', models.PositiveIntegerField(blank=True, null=True)),
                ('warning_threshold', models.PositiveIntegerField(default=600)),
                ('critical_threshold', models.PositiveIntegerField(default=900)),
                ('is_timer_paused', models.BooleanField(default=False)),
                ('timer_paused_at', models.DateTimeField(blank=True, null=True)),
                ('total_paused_seconds', models.PositiveIntegerField(default=0)),
                ('timer_anchor_at', models.DateTimeField(default=django.utils.timezone.now, help_text='Wall-clock instant up to which elapsed_seconds has been accrued')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('ready_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='kitchen_tickets', to='tenant.tenant')),
            ],
            options={
                'ordering': ['-priority', 'created_at'],
                'indexes': [
                    models.Index(fields=['tenant', 'status'], name='kds_ticket_ten_stat_idx'),
                    models.Index(fields=['tenant', 'order_id'], name='kds_ticket_ten_order_idx'),
                    models.Index(fields=['status', 'is_timer_paused'], name='kds_ticket_timer_idx'),
                    models.Index(fields=['tenant', 'created_at'], name='kds_ticket_ten_created_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='KitchenTicketItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('order_item_id', models.CharField(max_length=64)),
                ('menu_item_id', models.CharField(max_length=64)),
                ('name', models.CharField(max_length=100)),
                ('quantity', models.PositiveIntegerField(default=1)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('PREPARING', 'Preparing'), ('READY', 'Ready'), ('CANCELLED', 'Cancelled'), ('RECALLED', 'Recalled')], default='PENDING', max_length=20)),
                ('order_item_status', models.CharField(default='ACCEPTED', help_text='Last status the order service confirmed for this item', max_length=20)),
                ('station', models.CharField(choices=[('GRILL', 'Grill Station'), ('FRY', 'Fry Station'), ('SAUTE', 'Sauté Station'), ('COLD', 'Cold Station'), ('DESSERT', 'Dessert Station'), ('BEVERAGE', 'Beverage Station'), ('GENERAL', 'General Kitchen'), ('EXPO', 'Expediter')], default='GENERAL', max_length=20)),
                ('course_number', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('modifiers', models.JSONField(blank=True, default=list)),
                ('notes', models.TextField(blank=True, null=True)),
                ('is_allergy', models.BooleanField(default=False)),
                ('allergy_info', models.TextField(blank=True, null=True)),
                ('is_rush', models.BooleanField(default=False)),
                ('estimated_prep_time', models.PositiveIntegerField(blank=True, null=True)),
                ('elapsed_seconds', models.PositiveIntegerField(default=0)),
                ('recall_count', models.PositiveIntegerField(default=0)),
                ('recall_reason', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('ready_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='kitchen_ticket_items', to='tenant.tenant')),
                ('ticket', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='kds.kitchenticket')),
            ],
            options={
                'ordering': ['course_number', 'created_at'],
                'indexes': [
                    models.Index(fields=['tenant', 'ticket', 'status'], name='kds_item_ten_tick_stat_idx'),
                    models.Index(fields=['tenant', 'station'], name='kds_item_ten_station_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('tenant', 'order_item_id'), name='unique_ticket_item_per_order_item'),
                ],
            },
        ),
    ]
