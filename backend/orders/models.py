import uuid
from decimal import Decimal
from django.db import models
from django.utils.translation import gettext_lazy as _
from tenant.managers import TenantManager


class Order(models.Model):
    """
    Aggregate root for a table's dining session.

    Order status is coarse; the detailed lifecycle lives on each item.
    A table has at most one open (PENDING or IN_PROGRESS) order; repeated
    checkouts append items to it instead of opening a new one.
    """

    class OrderStatus(models.TextChoices):
        PENDING = "PENDING", _("Pending")  # No item accepted yet
        IN_PROGRESS = "IN_PROGRESS", _("In Progress")  # At least one item accepted
        COMPLETED = "COMPLETED", _("Completed")  # Paid after every item was served
        CANCELLED = "CANCELLED", _("Cancelled")

    class PaymentStatus(models.TextChoices):
        PENDING = "PENDING", _("Pending")
        PAID = "PAID", _("Paid")
        FAILED = "FAILED", _("Failed")
        REFUNDED = "REFUNDED", _("Refunded")

    class OrderType(models.TextChoices):
        DINE_IN = "DINE_IN", _("Dine In")
        TAKEOUT = "TAKEOUT", _("Takeout")
        DELIVERY = "DELIVERY", _("Delivery")

    OPEN_STATUSES = (OrderStatus.PENDING, OrderStatus.IN_PROGRESS)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        'tenant.Tenant',
        on_delete=models.CASCADE,
        related_name='orders'
    )
    table_id = models.CharField(max_length=64, help_text=_("Table where the customers are seated"))
    customer_id = models.CharField(max_length=64, blank=True, null=True)
    customer_name = models.CharField(max_length=100, blank=True, null=True)
    waiter_id = models.CharField(
        max_length=64,
        blank=True,
        null=True,
        help_text=_("Waiter who accepted items on this order"),
    )

    order_type = models.CharField(
        max_length=10, choices=OrderType.choices, default=OrderType.DINE_IN
    )
    status = models.CharField(
        max_length=12, choices=OrderStatus.choices, default=OrderStatus.PENDING
    )
    payment_status = models.CharField(
        max_length=10, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )
    payment_method = models.CharField(max_length=50, blank=True, null=True)
    payment_transaction_id = models.CharField(max_length=255, blank=True, null=True)

    # --- Financial Fields ---
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=10, default="VND")

    notes = models.TextField(blank=True, null=True)
    cancellation_reason = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(null=True, blank=True, db_index=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    objects = TenantManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = _("Order")
        verbose_name_plural = _("Orders")
        indexes = [
            models.Index(fields=['tenant', 'status'], name='order_tenant_stat_idx'),
            models.Index(fields=['tenant', 'table_id', 'status'], name='order_ten_table_stat_idx'),
            models.Index(fields=['tenant', 'customer_id'], name='order_tenant_cust_idx'),
            models.Index(fields=['tenant', 'created_at'], name='order_tenant_created_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "table_id"],
                condition=models.Q(status__in=["PENDING", "IN_PROGRESS"]),
                name="unique_open_order_per_table",
            ),
        ]

    def __str__(self):
        return f"Order {self.pk} (table {self.table_id}) - {self.status}"

    @property
    def is_editable(self):
        return self.status in self.OPEN_STATUSES

    @property
    def is_paid(self):
        return self.payment_status == self.PaymentStatus.PAID

    @property
    def total_items(self):
        return sum(item.quantity for item in self.items.all())

    @property
    def is_payment_ready(self):
        """
        True once every live item has been served.

        REJECTED and CANCELLED items are ignored; an order with no live
        items is never payment-ready.
        """
        live = [
            item for item in self.items.all()
            if item.status not in OrderItem.DROPPED_STATUSES
        ]
        return bool(live) and all(
            item.status == OrderItem.ItemStatus.SERVED for item in live
        )


class OrderItem(models.Model):
    """
    One line of an order, priced from the catalog at checkout time.

    Name, description, price and modifiers are snapshots and never follow
    later catalog edits.
    """

    class ItemStatus(models.TextChoices):
        PENDING = "PENDING", _("Pending")  # Waiting for the waiter
        ACCEPTED = "ACCEPTED", _("Accepted")  # Sent to the kitchen
        PREPARING = "PREPARING", _("Preparing")
        READY = "READY", _("Ready")
        SERVED = "SERVED", _("Served")
        REJECTED = "REJECTED", _("Rejected")
        CANCELLED = "CANCELLED", _("Cancelled")

    TERMINAL_STATUSES = (ItemStatus.SERVED, ItemStatus.REJECTED, ItemStatus.CANCELLED)
    DROPPED_STATUSES = (ItemStatus.REJECTED, ItemStatus.CANCELLED)
    IN_KITCHEN_STATUSES = (ItemStatus.ACCEPTED, ItemStatus.PREPARING, ItemStatus.READY)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        'tenant.Tenant',
        on_delete=models.CASCADE,
        related_name='order_items'
    )
    order = models.ForeignKey(Order, related_name="items", on_delete=models.CASCADE)
    menu_item_id = models.CharField(max_length=64)
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, null=True)

    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)
    subtotal = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("unit_price * quantity, before modifiers"),
    )
    modifiers_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=10, default="VND")

    status = models.CharField(
        max_length=10,
        choices=ItemStatus.choices,
        default=ItemStatus.PENDING,
        db_index=True,
    )
    notes = models.TextField(blank=True, null=True)
    rejection_reason = models.TextField(blank=True, null=True)

    accepted_at = models.DateTimeField(null=True, blank=True)
    preparing_at = models.DateTimeField(null=True, blank=True)
    ready_at = models.DateTimeField(null=True, blank=True)
    served_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TenantManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["created_at"]
        verbose_name = _("Order Item")
        verbose_name_plural = _("Order Items")
        indexes = [
            models.Index(fields=['tenant', 'order'], name='item_tenant_order_idx'),
            models.Index(fields=['tenant', 'order', 'status'], name='item_ten_order_stat_idx'),
            models.Index(fields=['tenant', 'menu_item_id'], name='item_tenant_menu_idx'),
        ]

    def __str__(self):
        return f"{self.quantity} of {self.name} in Order {self.order_id} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES


class OrderItemModifier(models.Model):
    """Snapshot of a modifier option selected for an order item."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        'tenant.Tenant',
        on_delete=models.CASCADE,
        related_name='order_item_modifiers'
    )
    order_item = models.ForeignKey(OrderItem, related_name="modifiers", on_delete=models.CASCADE)
    modifier_group_id = models.CharField(max_length=64)
    modifier_group_name = models.CharField(max_length=100)
    modifier_option_id = models.CharField(max_length=64)
    option_name = models.CharField(max_length=100)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=10, default="VND")

    objects = TenantManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["option_name"]
        indexes = [
            models.Index(fields=['tenant', 'order_item'], name='item_mod_tenant_item_idx'),
        ]

    def __str__(self):
        return f"{self.modifier_group_name}: {self.option_name} (+{self.price})"
