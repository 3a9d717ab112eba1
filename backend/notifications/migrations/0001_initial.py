import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('tenant', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='OrderNotification',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('order_id', models.CharField(max_length=64)),
                ('table_id', models.CharField(max_length=64)),
                ('notification_type', models.CharField(choices=[('NEW_ITEMS', 'New Items')], default='NEW_ITEMS', max_length=20)),
                ('status', models.CharField(choices=[('UNREAD', 'Unread'), ('READ', 'Read'), ('ARCHIVED', 'Archived')], default='UNREAD', max_length=10)),
                ('priority', models.IntegerField(default=0, help_text='Higher values sort first')),
                ('item_ids', models.JSONField(blank=True, default=list)),
                ('message', models.TextField()),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('message_id', models.CharField(blank=True, help_text='Broker message id of the event that created this notification', max_length=64, null=True)),
                ('read_at', models.DateTimeField(blank=True, null=True)),
                ('archived_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='order_notifications', to='tenant.tenant')),
            ],
            options={
                'verbose_name': 'Order Notification',
                'verbose_name_plural': 'Order Notifications',
                'ordering': ['-priority', 'created_at'],
                'indexes': [
                    models.Index(fields=['tenant', 'status'], name='notif_tenant_stat_idx'),
                    models.Index(fields=['tenant', 'table_id'], name='notif_tenant_table_idx'),
                    models.Index(fields=['tenant', 'order_id'], name='notif_tenant_order_idx'),
                    models.Index(fields=['tenant', 'created_at'], name='notif_tenant_created_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('message_id__isnull', False)), fields=('tenant', 'message_id'), name='unique_notification_per_message'),
                ],
            },
        ),
    ]
