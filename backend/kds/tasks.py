import logging

from celery import shared_task

from kds.services.timer_service import KitchenTimerService

logger = logging.getLogger(__name__)


@shared_task
def tick_ticket_timers():
    """
    Advance kitchen ticket timers and broadcast them per tenant.

    Scheduled every second by celery beat. Accrual is idempotent against
    overlapping runs, so more than one beat does not double count.
    """
    advanced, tenant_ids = KitchenTimerService.tick()
    broadcast = KitchenTimerService.broadcast_timers(tenant_ids)
    if advanced:
        logger.debug(f"Advanced {advanced} ticket timer(s), broadcast to {len(broadcast)} tenant(s)")
    return advanced
