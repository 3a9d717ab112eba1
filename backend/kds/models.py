import uuid
from django.db import models, transaction
from django.utils import timezone
from tenant.managers import TenantManager


class KitchenTicketStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    IN_PROGRESS = 'IN_PROGRESS', 'In Progress'
    READY = 'READY', 'Ready'
    COMPLETED = 'COMPLETED', 'Completed'
    CANCELLED = 'CANCELLED', 'Cancelled'


class KitchenTicketItemStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    PREPARING = 'PREPARING', 'Preparing'
    READY = 'READY', 'Ready'
    CANCELLED = 'CANCELLED', 'Cancelled'
    RECALLED = 'RECALLED', 'Recalled'


class KitchenTicketPriority(models.IntegerChoices):
    NORMAL = 0, 'Normal'
    HIGH = 1, 'High'
    URGENT = 2, 'Urgent'
    FIRE = 3, 'Fire'


class KitchenStationType(models.TextChoices):
    GRILL = 'GRILL', 'Grill Station'
    FRY = 'FRY', 'Fry Station'
    SAUTE = 'SAUTE', 'Sauté Station'
    COLD = 'COLD', 'Cold Station'
    DESSERT = 'DESSERT', 'Dessert Station'
    BEVERAGE = 'BEVERAGE', 'Beverage Station'
    GENERAL = 'GENERAL', 'General Kitchen'
    EXPO = 'EXPO', 'Expediter'


class TicketSequence(models.Model):
    """Per-tenant, per-day counter behind the ``#001`` ticket labels."""
    tenant = models.ForeignKey('tenant.Tenant', on_delete=models.CASCADE, related_name='ticket_sequences')
    business_date = models.DateField()
    last_number = models.PositiveIntegerField(default=0)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'business_date'], name='unique_ticket_sequence_per_day'),
        ]

    def __str__(self):
        return f"{self.tenant_id} {self.business_date}: {self.last_number}"

    @classmethod
    def next_number(cls, tenant, business_date=None):
        """Reserve the next number for the tenant's business day."""
        business_date = business_date or timezone.localdate()
        with transaction.atomic():
            sequence, _ = cls.objects.select_for_update().get_or_create(
                tenant=tenant, business_date=business_date
            )
            sequence.last_number += 1
            sequence.save(update_fields=['last_number'])
        return sequence.last_number

    @staticmethod
    def format_number(number):
        return f"#{number:03d}"


class KitchenTicket(models.Model):
    """
    Cook-facing projection of a batch of accepted order items.

    Not authoritative: item status changes that matter to the order are
    reported back to the order service, never inferred here.
    """
    ACTIVE_STATUSES = (KitchenTicketStatus.PENDING, KitchenTicketStatus.IN_PROGRESS)
    OPEN_STATUSES = (
        KitchenTicketStatus.PENDING,
        KitchenTicketStatus.IN_PROGRESS,
        KitchenTicketStatus.READY,
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey('tenant.Tenant', on_delete=models.CASCADE, related_name='kitchen_tickets')
    order_id = models.CharField(max_length=64)
    table_id = models.CharField(max_length=64)
    table_number = models.CharField(max_length=60, blank=True, null=True)
    floor_name = models.CharField(max_length=100, blank=True, null=True)
    ticket_number = models.CharField(max_length=20)
    business_date = models.DateField(default=timezone.localdate)

    status = models.CharField(
        max_length=20, choices=KitchenTicketStatus.choices, default=KitchenTicketStatus.PENDING
    )
    priority = models.PositiveSmallIntegerField(
        choices=KitchenTicketPriority.choices, default=KitchenTicketPriority.NORMAL
    )
    customer_name = models.CharField(max_length=100, blank=True, null=True)
    order_type = models.CharField(max_length=50, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    assigned_cook_id = models.CharField(max_length=64, blank=True, null=True)
    assigned_cook_name = models.CharField(max_length=100, blank=True, null=True)
    source_message_id = models.CharField(max_length=64, blank=True, null=True)

    # Timer
    elapsed_seconds = models.PositiveIntegerField(default=0)
    estimated_prep_time = models.PositiveIntegerField(null=True, blank=True)
    warning_threshold = models.PositiveIntegerField(default=600)
    critical_threshold = models.PositiveIntegerField(default=900)
    is_timer_paused = models.BooleanField(default=False)
    timer_paused_at = models.DateTimeField(null=True, blank=True)
    total_paused_seconds = models.PositiveIntegerField(default=0)
    timer_anchor_at = models.DateTimeField(
        default=timezone.now,
        help_text="Wall-clock instant up to which elapsed_seconds has been accrued",
    )

    # Workflow timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    started_at = models.DateTimeField(null=True, blank=True)
    ready_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    objects = TenantManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ['-priority', 'created_at']
        indexes = [
            models.Index(fields=['tenant', 'status'], name='kds_ticket_ten_stat_idx'),
            models.Index(fields=['tenant', 'order_id'], name='kds_ticket_ten_order_idx'),
            models.Index(fields=['status', 'is_timer_paused'], name='kds_ticket_timer_idx'),
            models.Index(fields=['tenant', 'created_at'], name='kds_ticket_ten_created_idx'),
        ]

    def __str__(self):
        return f"Ticket {self.ticket_number} - table {self.table_number or self.table_id} ({self.status})"

    @property
    def is_open(self):
        return self.status in self.OPEN_STATUSES

    @property
    def is_timer_running(self):
        return self.status in self.ACTIVE_STATUSES and not self.is_timer_paused

    @property
    def age_color(self):
        if self.elapsed_seconds >= self.critical_threshold:
            return 'red'
        if self.elapsed_seconds >= self.warning_threshold:
            return 'yellow'
        return 'green'

    @property
    def display_color(self):
        # FIRE and URGENT tickets always show red
        if self.priority >= KitchenTicketPriority.URGENT:
            return 'red'
        return self.age_color

    @property
    def total_items(self):
        return sum(item.quantity for item in self.items.all())


class KitchenTicketItem(models.Model):
    """One accepted order item on a ticket, with a local display status."""
    tenant = models.ForeignKey('tenant.Tenant', on_delete=models.CASCADE, related_name='kitchen_ticket_items')
    ticket = models.ForeignKey(KitchenTicket, on_delete=models.CASCADE, related_name='items')
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_item_id = models.CharField(max_length=64)
    menu_item_id = models.CharField(max_length=64)
    name = models.CharField(max_length=100)
    quantity = models.PositiveIntegerField(default=1)

    status = models.CharField(
        max_length=20, choices=KitchenTicketItemStatus.choices, default=KitchenTicketItemStatus.PENDING
    )
    order_item_status = models.CharField(
        max_length=20,
        default='ACCEPTED',
        help_text="Last status the order service confirmed for this item",
    )
    station = models.CharField(
        max_length=20, choices=KitchenStationType.choices, default=KitchenStationType.GENERAL
    )
    course_number = models.PositiveSmallIntegerField(null=True, blank=True)
    modifiers = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True, null=True)
    is_allergy = models.BooleanField(default=False)
    allergy_info = models.TextField(blank=True, null=True)
    is_rush = models.BooleanField(default=False)
    estimated_prep_time = models.PositiveIntegerField(null=True, blank=True)
    elapsed_seconds = models.PositiveIntegerField(default=0)
    recall_count = models.PositiveIntegerField(default=0)
    recall_reason = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    started_at = models.DateTimeField(null=True, blank=True)
    ready_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    objects = TenantManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ['course_number', 'created_at']
        indexes = [
            models.Index(fields=['tenant', 'ticket', 'status'], name='kds_item_ten_tick_stat_idx'),
            models.Index(fields=['tenant', 'station'], name='kds_item_ten_station_idx'),
        ]
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'order_item_id'], name='unique_ticket_item_per_order_item'),
        ]

    def __str__(self):
        return f"{self.quantity}x {self.name} ({self.status})"
