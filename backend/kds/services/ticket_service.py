import logging
from datetime import timedelta
from typing import Dict, List, Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from core_backend.exceptions import (
    ErrorCodes,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
)
from kds.clients import TableDirectoryClient
from kds.events.publishers import KitchenEventPublisher
from kds.models import (
    KitchenStationType,
    KitchenTicket,
    KitchenTicketItem,
    KitchenTicketItemStatus,
    KitchenTicketPriority,
    KitchenTicketStatus,
    TicketSequence,
)
from orders.services.status_updater import get_order_status_updater
from .timer_service import KitchenTimerService

logger = logging.getLogger(__name__)

# Order item statuses the kitchen reports back
ORDER_ITEM_ACCEPTED = "ACCEPTED"
ORDER_ITEM_PREPARING = "PREPARING"
ORDER_ITEM_READY = "READY"


class KitchenTicketService:
    """
    Ticket lifecycle for the kitchen display.

    Ticket and item statuses are local to the kitchen. Whenever a cook's
    action changes what the order should say about an item (preparing,
    ready) the change is sent through the order status updater inside the
    same transaction; if the order service refuses, nothing here changes.
    """

    VALID_TICKET_TRANSITIONS = {
        KitchenTicketStatus.PENDING: [KitchenTicketStatus.IN_PROGRESS, KitchenTicketStatus.CANCELLED],
        KitchenTicketStatus.IN_PROGRESS: [KitchenTicketStatus.READY, KitchenTicketStatus.CANCELLED],
        KitchenTicketStatus.READY: [KitchenTicketStatus.COMPLETED, KitchenTicketStatus.CANCELLED],
        KitchenTicketStatus.COMPLETED: [],
        KitchenTicketStatus.CANCELLED: [],
    }

    VALID_ITEM_TRANSITIONS = {
        KitchenTicketItemStatus.PENDING: [KitchenTicketItemStatus.PREPARING, KitchenTicketItemStatus.CANCELLED],
        KitchenTicketItemStatus.PREPARING: [
            KitchenTicketItemStatus.READY,
            KitchenTicketItemStatus.CANCELLED,
            KitchenTicketItemStatus.RECALLED,
        ],
        KitchenTicketItemStatus.READY: [KitchenTicketItemStatus.CANCELLED, KitchenTicketItemStatus.RECALLED],
        KitchenTicketItemStatus.RECALLED: [KitchenTicketItemStatus.PENDING, KitchenTicketItemStatus.CANCELLED],
        KitchenTicketItemStatus.CANCELLED: [],
    }

    @classmethod
    def is_valid_ticket_transition(cls, current_status: str, target_status: str) -> bool:
        return target_status in cls.VALID_TICKET_TRANSITIONS.get(current_status, [])

    @classmethod
    def is_valid_item_transition(cls, current_status: str, target_status: str) -> bool:
        return target_status in cls.VALID_ITEM_TRANSITIONS.get(current_status, [])

    # ========== Lookups ==========

    @staticmethod
    def parse_priority(value) -> int:
        """Accepts 0-3 or a priority name such as ``FIRE``."""
        if value is None or value == "":
            return KitchenTicketPriority.NORMAL
        if isinstance(value, str) and not value.strip().isdigit():
            try:
                return KitchenTicketPriority[value.strip().upper()].value
            except KeyError:
                raise ValidationError(f"Invalid priority: {value}")
        try:
            priority = int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid priority: {value}")
        if priority not in KitchenTicketPriority.values:
            raise ValidationError(f"Invalid priority: {value}")
        return priority

    @staticmethod
    def get_ticket(tenant, ticket_id, for_update=False) -> KitchenTicket:
        queryset = KitchenTicket.objects.filter(tenant=tenant)
        if for_update:
            queryset = queryset.select_for_update()
        else:
            queryset = queryset.prefetch_related('items')
        try:
            return queryset.get(id=ticket_id)
        except (KitchenTicket.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError(
                "Kitchen ticket", ticket_id, error_code=ErrorCodes.KITCHEN_TICKET_NOT_FOUND
            )

    @classmethod
    def get_tickets(cls, tenant, status=None, priority=None, station=None, page=1, limit=20):
        """
        Tickets sorted by priority (highest first) then age (oldest first).

        Returns ``(tickets, total)``.
        """
        page = max(int(page), 1)
        limit = min(max(int(limit), 1), 100)

        queryset = KitchenTicket.objects.filter(tenant=tenant)
        if status:
            statuses = [status] if isinstance(status, str) else list(status)
            queryset = queryset.filter(status__in=statuses)
        if priority is not None and priority != "":
            queryset = queryset.filter(priority=cls.parse_priority(priority))
        if station:
            queryset = queryset.filter(items__station=station).distinct()

        queryset = queryset.order_by('-priority', 'created_at')
        total = queryset.count()
        offset = (page - 1) * limit
        tickets = list(queryset.prefetch_related('items')[offset:offset + limit])
        return tickets, total

    @staticmethod
    def get_display(tenant) -> Dict:
        """
        Open tickets split into display lanes.

        FIRE and URGENT tickets get their own lanes while cooking; every
        READY ticket waits in the ready lane regardless of priority.
        """
        tickets = list(
            KitchenTicket.objects.filter(tenant=tenant, status__in=KitchenTicket.OPEN_STATUSES)
            .prefetch_related('items')
            .order_by('-priority', 'created_at')
        )
        cooking = [t for t in tickets if t.status in KitchenTicket.ACTIVE_STATUSES]

        lanes = {
            'fire': [t for t in cooking if t.priority == KitchenTicketPriority.FIRE],
            'urgent': [t for t in cooking if t.priority == KitchenTicketPriority.URGENT],
            'active': [
                t for t in cooking
                if t.status == KitchenTicketStatus.IN_PROGRESS and t.priority < KitchenTicketPriority.URGENT
            ],
            'pending': [
                t for t in cooking
                if t.status == KitchenTicketStatus.PENDING and t.priority < KitchenTicketPriority.URGENT
            ],
            'ready': [t for t in tickets if t.status == KitchenTicketStatus.READY],
        }

        ages = [t.elapsed_seconds for t in cooking]
        summary = {
            'total_active': sum(1 for t in cooking if t.status == KitchenTicketStatus.IN_PROGRESS),
            'total_pending': sum(1 for t in cooking if t.status == KitchenTicketStatus.PENDING),
            'total_ready': len(lanes['ready']),
            'oldest_ticket_age': max(ages) if ages else 0,
            'average_age': int(sum(ages) / len(ages)) if ages else 0,
        }
        return {'lanes': lanes, 'summary': summary}

    # ========== Ticket creation ==========

    @classmethod
    @transaction.atomic
    def create_ticket_from_event(cls, tenant, data) -> Optional[KitchenTicket]:
        """
        Build a ticket from an ``order.items_accepted`` payload.

        Idempotent per order item: items that are already on a ticket are
        skipped, and a fully redelivered event returns the existing ticket.
        """
        order_id = data.get('orderId')
        items = data.get('items') or []
        if not order_id or not items:
            raise ValidationError("orderId and items are required to create a ticket")

        order_item_ids = [str(item['id']) for item in items]
        already_ticketed = set(
            KitchenTicketItem.objects.filter(tenant=tenant, order_item_id__in=order_item_ids)
            .values_list('order_item_id', flat=True)
        )
        new_items = [item for item in items if str(item['id']) not in already_ticketed]

        if not new_items:
            logger.info(f"All items of order {order_id} are already ticketed, skipping")
            return (
                KitchenTicket.objects.filter(tenant=tenant, items__order_item_id__in=order_item_ids)
                .distinct()
                .first()
            )

        priority = cls.parse_priority(data.get('priority'))
        table_id = str(data.get('tableId') or "")
        table = TableDirectoryClient(tenant.id).get_table(table_id) or {}
        number = TicketSequence.next_number(tenant)

        ticket = KitchenTicket.objects.create(
            tenant=tenant,
            order_id=str(order_id),
            table_id=table_id,
            table_number=data.get('tableNumber') or table.get('tableNumber') or table_id,
            floor_name=table.get('floorName'),
            ticket_number=TicketSequence.format_number(number),
            priority=priority,
            customer_name=data.get('customerName'),
            order_type=data.get('orderType'),
            notes=data.get('notes'),
            source_message_id=data.get('messageId'),
            warning_threshold=settings.KITCHEN_WARNING_THRESHOLD,
            critical_threshold=settings.KITCHEN_CRITICAL_THRESHOLD,
            timer_anchor_at=timezone.now(),
        )

        for item in new_items:
            station = item.get('station') or KitchenStationType.GENERAL
            if station not in KitchenStationType.values:
                station = KitchenStationType.GENERAL
            KitchenTicketItem.objects.create(
                tenant=tenant,
                ticket=ticket,
                order_item_id=str(item['id']),
                menu_item_id=str(item.get('menuItemId') or ""),
                name=item.get('name') or "Item",
                quantity=item.get('quantity') or 1,
                order_item_status=item.get('status') or ORDER_ITEM_ACCEPTED,
                station=station,
                course_number=item.get('courseNumber'),
                modifiers=[
                    {
                        'groupName': modifier.get('modifierGroupName'),
                        'optionName': modifier.get('optionName'),
                    }
                    for modifier in item.get('modifiers') or []
                ],
                notes=item.get('notes'),
                is_allergy=bool(item.get('isAllergy')),
                allergy_info=item.get('allergyInfo'),
                is_rush=priority >= KitchenTicketPriority.URGENT,
            )

        logger.info(
            f"🎫 Created ticket {ticket.ticket_number} for order {order_id} "
            f"({len(new_items)} items, {len(already_ticketed)} already ticketed)"
        )
        KitchenEventPublisher.ticket_new(ticket)
        return ticket

    # ========== Internal helpers ==========

    @staticmethod
    def _lock_items(ticket, item_ids) -> List[KitchenTicketItem]:
        if not item_ids:
            raise ValidationError("item_ids must not be empty")

        requested = list(dict.fromkeys(str(item_id) for item_id in item_ids))
        try:
            items = list(
                KitchenTicketItem.objects.select_for_update()
                .filter(ticket=ticket, id__in=requested)
            )
        except (DjangoValidationError, ValueError):
            raise ValidationError("item_ids must be valid UUIDs")

        found = {str(item.id) for item in items}
        missing = [item_id for item_id in requested if item_id not in found]
        if missing:
            raise NotFoundError(
                "Kitchen ticket item", missing[0], error_code=ErrorCodes.KITCHEN_TICKET_ITEM_NOT_FOUND
            )
        return items

    @classmethod
    def _check_items(cls, items, target_status):
        # All-or-nothing: nothing is mutated until every item passes
        for item in items:
            if not cls.is_valid_item_transition(item.status, target_status):
                raise InvalidStatusTransitionError(
                    item.status,
                    target_status,
                    error_code=ErrorCodes.INVALID_KITCHEN_ITEM_STATUS,
                    subject=f"item {item.id}",
                )

    @classmethod
    def _check_ticket(cls, ticket, target_status):
        if not cls.is_valid_ticket_transition(ticket.status, target_status):
            raise InvalidStatusTransitionError(
                ticket.status,
                target_status,
                error_code=ErrorCodes.INVALID_KITCHEN_TICKET_STATUS,
                subject=f"ticket {ticket.ticket_number}",
            )

    @staticmethod
    def _report_to_order(tenant, ticket, items, order_item_status, actor_id=None):
        """Ask the order service to move ``items`` and remember what it accepted."""
        if not items:
            return None
        result = get_order_status_updater().update_items_status(
            tenant,
            ticket.order_id,
            [item.order_item_id for item in items],
            order_item_status,
            actor_id=actor_id,
        )
        for item in items:
            item.order_item_status = order_item_status
        return result

    @staticmethod
    def _open_items(ticket):
        return ticket.items.exclude(status=KitchenTicketItemStatus.CANCELLED)

    @classmethod
    def _promote_when_all_ready(cls, ticket, now):
        remaining = cls._open_items(ticket)
        if (
            ticket.status == KitchenTicketStatus.IN_PROGRESS
            and remaining.exists()
            and not remaining.exclude(status=KitchenTicketItemStatus.READY).exists()
        ):
            ticket.status = KitchenTicketStatus.READY
            ticket.ready_at = now
            return True
        return False

    # ========== Cooking workflow ==========

    @classmethod
    @transaction.atomic
    def start_ticket(cls, tenant, ticket_id, cook_id=None, cook_name=None) -> KitchenTicket:
        """Start the whole ticket: every pending item goes to PREPARING."""
        now = timezone.now()
        ticket = cls.get_ticket(tenant, ticket_id, for_update=True)
        cls._check_ticket(ticket, KitchenTicketStatus.IN_PROGRESS)
        KitchenTimerService.accrue(ticket, now)

        items = list(ticket.items.select_for_update().filter(status=KitchenTicketItemStatus.PENDING))
        cls._report_to_order(
            tenant,
            ticket,
            [item for item in items if item.order_item_status == ORDER_ITEM_ACCEPTED],
            ORDER_ITEM_PREPARING,
            actor_id=cook_id,
        )
        for item in items:
            item.status = KitchenTicketItemStatus.PREPARING
            item.started_at = now
            item.save()

        ticket.status = KitchenTicketStatus.IN_PROGRESS
        ticket.started_at = now
        if cook_id:
            ticket.assigned_cook_id = cook_id
            ticket.assigned_cook_name = cook_name
        ticket.save()

        logger.info(f"👨‍🍳 Ticket {ticket.ticket_number} started ({len(items)} items)")
        KitchenEventPublisher.ticket_updated(ticket, 'started', [item.id for item in items])
        return ticket

    @classmethod
    @transaction.atomic
    def start_items(cls, tenant, ticket_id, item_ids, cook_id=None) -> KitchenTicket:
        """Start individual items; the ticket starts with its first item."""
        now = timezone.now()
        ticket = cls.get_ticket(tenant, ticket_id, for_update=True)
        if ticket.status == KitchenTicketStatus.PENDING:
            cls._check_ticket(ticket, KitchenTicketStatus.IN_PROGRESS)
        elif ticket.status != KitchenTicketStatus.IN_PROGRESS:
            raise InvalidStatusTransitionError(
                ticket.status,
                KitchenTicketStatus.IN_PROGRESS,
                error_code=ErrorCodes.INVALID_KITCHEN_TICKET_STATUS,
                message=f"Cannot start items on a {ticket.status} ticket",
            )
        KitchenTimerService.accrue(ticket, now)

        items = cls._lock_items(ticket, item_ids)
        cls._check_items(items, KitchenTicketItemStatus.PREPARING)
        cls._report_to_order(
            tenant,
            ticket,
            [item for item in items if item.order_item_status == ORDER_ITEM_ACCEPTED],
            ORDER_ITEM_PREPARING,
            actor_id=cook_id,
        )
        for item in items:
            item.status = KitchenTicketItemStatus.PREPARING
            item.started_at = now
            item.save()

        if ticket.status == KitchenTicketStatus.PENDING:
            ticket.status = KitchenTicketStatus.IN_PROGRESS
            ticket.started_at = now
        ticket.save()

        KitchenEventPublisher.ticket_updated(ticket, 'items_started', [item.id for item in items])
        return ticket

    @classmethod
    @transaction.atomic
    def mark_items_ready(cls, tenant, ticket_id, item_ids=None, actor_id=None) -> KitchenTicket:
        """
        Mark items READY (all preparing items when ``item_ids`` is empty).

        The ticket becomes READY once every non-cancelled item is READY.
        """
        now = timezone.now()
        ticket = cls.get_ticket(tenant, ticket_id, for_update=True)
        if ticket.status != KitchenTicketStatus.IN_PROGRESS:
            raise InvalidStatusTransitionError(
                ticket.status,
                KitchenTicketStatus.READY,
                error_code=ErrorCodes.INVALID_KITCHEN_TICKET_STATUS,
                message=f"Cannot mark items ready on a {ticket.status} ticket",
            )
        KitchenTimerService.accrue(ticket, now)

        if item_ids:
            items = cls._lock_items(ticket, item_ids)
        else:
            items = list(ticket.items.select_for_update().filter(status=KitchenTicketItemStatus.PREPARING))
            if not items:
                raise ValidationError(f"Ticket {ticket.ticket_number} has no items in preparation")

        cls._check_items(items, KitchenTicketItemStatus.READY)
        # Re-readied recalled items are already READY on the order
        cls._report_to_order(
            tenant,
            ticket,
            [item for item in items if item.order_item_status == ORDER_ITEM_PREPARING],
            ORDER_ITEM_READY,
            actor_id=actor_id,
        )
        for item in items:
            item.status = KitchenTicketItemStatus.READY
            item.ready_at = now
            item.save()

        if cls._promote_when_all_ready(ticket, now):
            logger.info(f"✅ Ticket {ticket.ticket_number} is ready")
        ticket.save()

        KitchenEventPublisher.ticket_updated(ticket, 'items_ready', [item.id for item in items])
        return ticket

    @classmethod
    @transaction.atomic
    def bump_ticket(cls, tenant, ticket_id) -> KitchenTicket:
        """Take a READY ticket off the display. Order completion is unaffected."""
        ticket = cls.get_ticket(tenant, ticket_id, for_update=True)
        cls._check_ticket(ticket, KitchenTicketStatus.COMPLETED)

        ticket.status = KitchenTicketStatus.COMPLETED
        ticket.completed_at = timezone.now()
        ticket.save()

        logger.info(f"🛎️ Ticket {ticket.ticket_number} bumped")
        KitchenEventPublisher.ticket_completed(ticket)
        return ticket

    @classmethod
    @transaction.atomic
    def recall_items(cls, tenant, ticket_id, item_ids, reason) -> KitchenTicket:
        """
        Pull preparing or ready items back for rework.

        Resets the item's elapsed time, counts the recall and reopens a
        READY ticket. The order keeps its status; rework is kitchen-local.
        """
        if not reason or not str(reason).strip():
            raise ValidationError(error_code=ErrorCodes.KITCHEN_RECALL_REASON_REQUIRED)

        now = timezone.now()
        ticket = cls.get_ticket(tenant, ticket_id, for_update=True)
        if not ticket.is_open:
            raise InvalidStatusTransitionError(
                ticket.status,
                KitchenTicketStatus.IN_PROGRESS,
                error_code=ErrorCodes.INVALID_KITCHEN_TICKET_STATUS,
                message=f"Cannot recall items on a {ticket.status} ticket",
            )
        KitchenTimerService.accrue(ticket, now)

        items = cls._lock_items(ticket, item_ids)
        cls._check_items(items, KitchenTicketItemStatus.RECALLED)
        for item in items:
            item.status = KitchenTicketItemStatus.RECALLED
            item.elapsed_seconds = 0
            item.recall_count += 1
            item.recall_reason = reason
            item.started_at = None
            item.ready_at = None
            item.save()

        if ticket.status == KitchenTicketStatus.READY:
            # Recall reopens a ready ticket; its timer restarts from now
            ticket.status = KitchenTicketStatus.IN_PROGRESS
            ticket.ready_at = None
            ticket.timer_anchor_at = now
        ticket.save()

        logger.warning(f"🔁 Recalled {len(items)} item(s) on ticket {ticket.ticket_number}: {reason}")
        KitchenEventPublisher.items_recalled(ticket, items, reason)
        return ticket

    @classmethod
    @transaction.atomic
    def requeue_items(cls, tenant, ticket_id, item_ids) -> KitchenTicket:
        """Put recalled items back in the queue as PENDING."""
        ticket = cls.get_ticket(tenant, ticket_id, for_update=True)
        items = cls._lock_items(ticket, item_ids)
        cls._check_items(items, KitchenTicketItemStatus.PENDING)
        for item in items:
            item.status = KitchenTicketItemStatus.PENDING
            item.save()
        ticket.save(update_fields=['updated_at'])

        KitchenEventPublisher.ticket_updated(ticket, 'items_requeued', [item.id for item in items])
        return ticket

    @classmethod
    @transaction.atomic
    def cancel_items(cls, tenant, ticket_id, item_ids, reason=None) -> KitchenTicket:
        """
        Drop items from the ticket. A ticket with nothing left is cancelled;
        one whose remaining items are all READY becomes READY.
        """
        now = timezone.now()
        ticket = cls.get_ticket(tenant, ticket_id, for_update=True)
        if not ticket.is_open:
            raise InvalidStatusTransitionError(
                ticket.status,
                KitchenTicketStatus.CANCELLED,
                error_code=ErrorCodes.INVALID_KITCHEN_TICKET_STATUS,
                message=f"Cannot cancel items on a {ticket.status} ticket",
            )
        KitchenTimerService.accrue(ticket, now)

        items = cls._lock_items(ticket, item_ids)
        cls._check_items(items, KitchenTicketItemStatus.CANCELLED)
        for item in items:
            item.status = KitchenTicketItemStatus.CANCELLED
            item.cancelled_at = now
            item.save()

        if not cls._open_items(ticket).exists():
            ticket.status = KitchenTicketStatus.CANCELLED
            ticket.cancelled_at = now
            ticket.save()
            KitchenEventPublisher.ticket_cancelled(ticket, reason)
            return ticket

        cls._promote_when_all_ready(ticket, now)
        ticket.save()
        KitchenEventPublisher.ticket_updated(ticket, 'items_cancelled', [item.id for item in items])
        return ticket

    @classmethod
    @transaction.atomic
    def cancel_ticket(cls, tenant, ticket_id, reason=None) -> KitchenTicket:
        now = timezone.now()
        ticket = cls.get_ticket(tenant, ticket_id, for_update=True)
        cls._check_ticket(ticket, KitchenTicketStatus.CANCELLED)
        KitchenTimerService.accrue(ticket, now)

        cls._open_items(ticket).update(status=KitchenTicketItemStatus.CANCELLED, cancelled_at=now)
        ticket.status = KitchenTicketStatus.CANCELLED
        ticket.cancelled_at = now
        ticket.save()

        logger.info(f"❌ Ticket {ticket.ticket_number} cancelled: {reason or 'no reason given'}")
        KitchenEventPublisher.ticket_cancelled(ticket, reason)
        return ticket

    @classmethod
    @transaction.atomic
    def cancel_tickets_for_order(cls, tenant, order_id, reason=None) -> int:
        """Cancel every open ticket of an order. Returns how many were cancelled."""
        ticket_ids = list(
            KitchenTicket.objects.filter(
                tenant=tenant, order_id=str(order_id), status__in=KitchenTicket.OPEN_STATUSES
            ).values_list('id', flat=True)
        )
        for ticket_id in ticket_ids:
            cls.cancel_ticket(tenant, ticket_id, reason=reason)
        return len(ticket_ids)

    @classmethod
    @transaction.atomic
    def drop_rejected_items(cls, tenant, order_id, order_item_ids, reason=None) -> int:
        """
        Remove order items the order service rejected from their open tickets.

        The ticket keeps cooking whatever is left; a ticket with nothing
        left is cancelled. Returns how many ticket items were dropped.
        """
        order_item_ids = [str(order_item_id) for order_item_id in order_item_ids or []]
        if not order_item_ids:
            return 0

        items = KitchenTicketItem.objects.filter(
            tenant=tenant,
            ticket__order_id=str(order_id),
            ticket__status__in=KitchenTicket.OPEN_STATUSES,
            order_item_id__in=order_item_ids,
        ).exclude(status=KitchenTicketItemStatus.CANCELLED)

        by_ticket = {}
        for item in items:
            by_ticket.setdefault(item.ticket_id, []).append(item.id)
        if not by_ticket:
            return 0

        KitchenTicketItem.objects.filter(
            id__in=[item_id for item_ids in by_ticket.values() for item_id in item_ids]
        ).update(order_item_status='REJECTED')
        for ticket_id, item_ids in by_ticket.items():
            cls.cancel_items(tenant, ticket_id, item_ids, reason=reason)

        dropped = sum(len(item_ids) for item_ids in by_ticket.values())
        logger.info(f"🚫 Dropped {dropped} rejected item(s) of order {order_id} from the kitchen")
        return dropped

    @classmethod
    @transaction.atomic
    def update_priority(cls, tenant, ticket_id, priority) -> KitchenTicket:
        priority = cls.parse_priority(priority)
        ticket = cls.get_ticket(tenant, ticket_id, for_update=True)
        if not ticket.is_open:
            raise InvalidStatusTransitionError(
                ticket.status,
                ticket.status,
                error_code=ErrorCodes.INVALID_KITCHEN_TICKET_STATUS,
                message=f"Cannot change the priority of a {ticket.status} ticket",
            )

        ticket.priority = priority
        ticket.save()
        ticket.items.update(is_rush=priority >= KitchenTicketPriority.URGENT)

        logger.info(f"Ticket {ticket.ticket_number} priority set to {KitchenTicketPriority(priority).label}")
        KitchenEventPublisher.ticket_updated(ticket, 'priority_changed')
        return ticket

    # ========== Reporting ==========

    @staticmethod
    def get_stats(tenant, date_from=None, date_to=None) -> Dict:
        """Ticket counts and timings for tickets created in the period (default: last 24h)."""
        date_to = date_to or timezone.now()
        date_from = date_from or date_to - timedelta(hours=24)

        tickets = KitchenTicket.objects.filter(
            tenant=tenant, created_at__gte=date_from, created_at__lte=date_to
        )
        counts = tickets.aggregate(
            total=Count('id'),
            pending=Count('id', filter=Q(status=KitchenTicketStatus.PENDING)),
            in_progress=Count('id', filter=Q(status=KitchenTicketStatus.IN_PROGRESS)),
            ready=Count('id', filter=Q(status=KitchenTicketStatus.READY)),
            completed=Count('id', filter=Q(status=KitchenTicketStatus.COMPLETED)),
            cancelled=Count('id', filter=Q(status=KitchenTicketStatus.CANCELLED)),
        )

        completed = tickets.filter(status=KitchenTicketStatus.COMPLETED, completed_at__isnull=False)
        prep_times = [
            (completed_at - created_at).total_seconds()
            for created_at, completed_at in completed.values_list('created_at', 'completed_at')
        ]
        wait_times = [
            (started_at - created_at).total_seconds()
            for created_at, started_at in tickets.filter(started_at__isnull=False).values_list(
                'created_at', 'started_at'
            )
        ]

        items = KitchenTicketItem.objects.filter(tenant=tenant, ticket__in=tickets)
        completed_items = items.filter(ticket__status=KitchenTicketStatus.COMPLETED)
        completed_item_count = completed_items.count()
        recalled_count = completed_items.filter(recall_count__gt=0).count()

        hours = max((date_to - date_from).total_seconds() / 3600, 1 / 3600)

        return {
            'period': {'from': date_from.isoformat(), 'to': date_to.isoformat()},
            'total_tickets': counts['total'],
            'pending': counts['pending'],
            'in_progress': counts['in_progress'],
            'ready': counts['ready'],
            'completed': counts['completed'],
            'cancelled': counts['cancelled'],
            'average_prep_time': round(sum(prep_times) / len(prep_times)) if prep_times else 0,
            'average_wait_time': round(sum(wait_times) / len(wait_times)) if wait_times else 0,
            'longest_prep_time': round(max(prep_times)) if prep_times else 0,
            'shortest_prep_time': round(min(prep_times)) if prep_times else 0,
            'tickets_per_hour': round(counts['total'] / hours, 2),
            'items_per_hour': round(items.count() / hours, 2),
            'recall_rate': round(recalled_count / completed_item_count * 100, 2) if completed_item_count else 0,
        }
