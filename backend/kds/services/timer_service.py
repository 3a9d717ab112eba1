"""
Ticket timers.

``elapsed_seconds`` is accrued from wall-clock deltas against a per-ticket
anchor rather than "+1 per tick", so overlapping or late beat runs never
double count. Paused tickets keep their anchor frozen until resume.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone

from core_backend.exceptions import ErrorCodes, InvalidStatusTransitionError
from kds.events.publishers import KitchenEventPublisher
from kds.models import KitchenTicket, KitchenTicketItem, KitchenTicketItemStatus

logger = logging.getLogger(__name__)

BROADCAST_CACHE_KEY = "kds:timer_broadcast:{tenant_id}"


def format_elapsed(seconds):
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


class KitchenTimerService:

    @staticmethod
    def accrue(ticket, now=None):
        """
        Add the whole seconds since the anchor to the ticket and its
        preparing items. The caller saves the ticket.
        """
        now = now or timezone.now()
        if not ticket.is_timer_running:
            return 0

        seconds = int((now - ticket.timer_anchor_at).total_seconds())
        if seconds <= 0:
            return 0

        ticket.elapsed_seconds += seconds
        # Keep the fractional remainder for the next tick
        ticket.timer_anchor_at += timedelta(seconds=seconds)
        KitchenTicketItem.all_objects.filter(
            ticket_id=ticket.id, status=KitchenTicketItemStatus.PREPARING
        ).update(elapsed_seconds=F('elapsed_seconds') + seconds)
        return seconds

    @staticmethod
    def tick(now=None):
        """
        Advance every running ticket across all tenants.

        Returns ``(advanced_count, tenant_ids)`` where ``tenant_ids`` are the
        tenants with open timers. A ticket that fails to persist is logged
        and picked up again on the next tick.
        """
        now = now or timezone.now()
        rows = KitchenTicket.all_objects.filter(
            status__in=KitchenTicket.ACTIVE_STATUSES
        ).values_list('id', 'tenant_id', 'is_timer_paused')

        advanced = 0
        tenant_ids = set()
        for ticket_id, tenant_id, is_paused in rows:
            tenant_ids.add(tenant_id)
            if is_paused:
                continue
            try:
                with transaction.atomic():
                    ticket = KitchenTicket.all_objects.select_for_update().filter(
                        id=ticket_id,
                        status__in=KitchenTicket.ACTIVE_STATUSES,
                        is_timer_paused=False,
                    ).first()
                    if ticket is None:
                        continue
                    if KitchenTimerService.accrue(ticket, now):
                        ticket.save(update_fields=['elapsed_seconds', 'timer_anchor_at', 'updated_at'])
                        advanced += 1
            except DatabaseError as e:
                logger.error(f"Timer tick failed for ticket {ticket_id}, retrying next tick: {e}")

        return advanced, tenant_ids

    @staticmethod
    def timer_snapshot(ticket):
        return {
            "ticketId": str(ticket.id),
            "ticketNumber": ticket.ticket_number,
            "status": ticket.status,
            "priority": ticket.priority,
            "elapsedSeconds": ticket.elapsed_seconds,
            "elapsedFormatted": format_elapsed(ticket.elapsed_seconds),
            "ageColor": ticket.age_color,
            "displayColor": ticket.display_color,
            "isTimerPaused": ticket.is_timer_paused,
        }

    @staticmethod
    def broadcast_timers(tenant_ids, now=None, force=False):
        """
        Publish one ``kitchen.timers.update`` per tenant, at most once per
        broadcast interval. Returns the tenants actually broadcast.
        """
        now = now or timezone.now()
        interval = getattr(settings, 'KITCHEN_TIMER_BROADCAST_INTERVAL', 5)
        sent = []

        for tenant_id in tenant_ids:
            key = BROADCAST_CACHE_KEY.format(tenant_id=tenant_id)
            if not force and not cache.add(key, 1, timeout=interval):
                continue

            tickets = KitchenTicket.all_objects.filter(
                tenant_id=tenant_id, status__in=KitchenTicket.ACTIVE_STATUSES
            ).order_by('-priority', 'created_at')
            snapshot = [KitchenTimerService.timer_snapshot(ticket) for ticket in tickets]

            try:
                KitchenEventPublisher.timers_update(tenant_id, snapshot, now)
            except Exception as e:
                logger.error(f"Timer broadcast failed for tenant {tenant_id}: {e}")
                continue
            sent.append(tenant_id)

        return sent

    @staticmethod
    @transaction.atomic
    def pause_timer(tenant, ticket_id, now=None):
        from .ticket_service import KitchenTicketService

        now = now or timezone.now()
        ticket = KitchenTicketService.get_ticket(tenant, ticket_id, for_update=True)
        if ticket.status not in KitchenTicket.ACTIVE_STATUSES:
            raise InvalidStatusTransitionError(
                ticket.status,
                ticket.status,
                error_code=ErrorCodes.INVALID_KITCHEN_TICKET_STATUS,
                message=f"Cannot pause the timer of a {ticket.status} ticket",
            )
        if ticket.is_timer_paused:
            return ticket

        KitchenTimerService.accrue(ticket, now)
        ticket.is_timer_paused = True
        ticket.timer_paused_at = now
        ticket.save(update_fields=[
            'elapsed_seconds', 'timer_anchor_at', 'is_timer_paused', 'timer_paused_at', 'updated_at',
        ])
        logger.info(f"⏸️ Timer paused for ticket {ticket.ticket_number}")
        return ticket

    @staticmethod
    @transaction.atomic
    def resume_timer(tenant, ticket_id, now=None):
        from .ticket_service import KitchenTicketService

        now = now or timezone.now()
        ticket = KitchenTicketService.get_ticket(tenant, ticket_id, for_update=True)
        if not ticket.is_timer_paused:
            return ticket

        paused_seconds = 0
        if ticket.timer_paused_at:
            paused_seconds = max(0, int((now - ticket.timer_paused_at).total_seconds()))

        ticket.total_paused_seconds += paused_seconds
        ticket.is_timer_paused = False
        ticket.timer_paused_at = None
        ticket.timer_anchor_at = now
        ticket.save(update_fields=[
            'total_paused_seconds', 'is_timer_paused', 'timer_paused_at', 'timer_anchor_at', 'updated_at',
        ])
        logger.info(f"▶️ Timer resumed for ticket {ticket.ticket_number} after {paused_seconds}s")
        return ticket
