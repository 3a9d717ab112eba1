from datetime import datetime

from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
import logging

from core_backend.exceptions import ValidationError
from core_backend.responses import paginated, success_response
from .serializers import (
    CancelItemsSerializer,
    CancelSerializer,
    ItemIdsSerializer,
    KitchenTicketSerializer,
    ReadyItemsSerializer,
    RecallItemsSerializer,
    StartTicketSerializer,
    UpdatePrioritySerializer,
)
from .services import KitchenTicketService, KitchenTimerService

logger = logging.getLogger(__name__)


def _ticket_data(request, ticket):
    return KitchenTicketSerializer(KitchenTicketService.get_ticket(request.tenant, ticket.id)).data


def _parse_datetime(value, name):
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        raise ValidationError(f"Invalid {name}: {value}")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


@api_view(['GET'])
@permission_classes([AllowAny])
def ticket_list(request):
    """
    Query parameters:
    - status: Ticket status filter (repeatable)
    - priority: 0-3 or NORMAL / HIGH / URGENT / FIRE
    - station: Only tickets with an item at this station
    - page / limit: Pagination (default 1 / 20)
    """
    try:
        page = max(int(request.GET.get('page', 1)), 1)
        limit = min(max(int(request.GET.get('limit', 20)), 1), 100)
    except ValueError:
        page, limit = 1, 20

    tickets, total = KitchenTicketService.get_tickets(
        request.tenant,
        status=request.GET.getlist('status') or None,
        priority=request.GET.get('priority'),
        station=request.GET.get('station'),
        page=page,
        limit=limit,
    )
    return success_response(paginated(KitchenTicketSerializer(tickets, many=True).data, total, page, limit))


@api_view(['GET'])
@permission_classes([AllowAny])
def kitchen_display(request):
    """Open tickets grouped into fire / urgent / active / pending / ready lanes."""
    display = KitchenTicketService.get_display(request.tenant)
    data = {
        lane: KitchenTicketSerializer(tickets, many=True).data
        for lane, tickets in display['lanes'].items()
    }
    data['summary'] = display['summary']
    return success_response(data)


@api_view(['GET'])
@permission_classes([AllowAny])
def kitchen_stats(request):
    """
    Query parameters:
    - date_from / date_to: ISO datetimes (default: the last 24 hours)
    """
    stats = KitchenTicketService.get_stats(
        request.tenant,
        date_from=_parse_datetime(request.GET.get('date_from'), 'date_from'),
        date_to=_parse_datetime(request.GET.get('date_to'), 'date_to'),
    )
    return success_response(stats)


@api_view(['GET'])
@permission_classes([AllowAny])
def ticket_detail(request, ticket_id):
    ticket = KitchenTicketService.get_ticket(request.tenant, ticket_id)
    return success_response(KitchenTicketSerializer(ticket).data)


@api_view(['POST'])
@permission_classes([AllowAny])
def start_ticket(request, ticket_id):
    serializer = StartTicketSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    ticket = KitchenTicketService.start_ticket(
        request.tenant,
        ticket_id,
        cook_id=request.actor_id,
        cook_name=serializer.validated_data.get('cook_name'),
    )
    return success_response(_ticket_data(request, ticket), message="Ticket started")


@api_view(['POST'])
@permission_classes([AllowAny])
def start_items(request, ticket_id):
    serializer = ItemIdsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    ticket = KitchenTicketService.start_items(
        request.tenant, ticket_id, serializer.validated_data['item_ids'], cook_id=request.actor_id
    )
    return success_response(_ticket_data(request, ticket), message="Items started")


@api_view(['POST'])
@permission_classes([AllowAny])
def ready_items(request, ticket_id):
    serializer = ReadyItemsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    ticket = KitchenTicketService.mark_items_ready(
        request.tenant,
        ticket_id,
        item_ids=serializer.validated_data.get('item_ids'),
        actor_id=request.actor_id,
    )
    return success_response(_ticket_data(request, ticket), message="Items ready")


@api_view(['POST'])
@permission_classes([AllowAny])
def bump_ticket(request, ticket_id):
    ticket = KitchenTicketService.bump_ticket(request.tenant, ticket_id)
    return success_response(_ticket_data(request, ticket), message="Ticket bumped")


@api_view(['POST'])
@permission_classes([AllowAny])
def recall_items(request, ticket_id):
    serializer = RecallItemsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    ticket = KitchenTicketService.recall_items(
        request.tenant,
        ticket_id,
        serializer.validated_data['item_ids'],
        serializer.validated_data.get('reason'),
    )
    return success_response(_ticket_data(request, ticket), message="Items recalled")


@api_view(['POST'])
@permission_classes([AllowAny])
def requeue_items(request, ticket_id):
    serializer = ItemIdsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    ticket = KitchenTicketService.requeue_items(request.tenant, ticket_id, serializer.validated_data['item_ids'])
    return success_response(_ticket_data(request, ticket), message="Items requeued")


@api_view(['POST'])
@permission_classes([AllowAny])
def cancel_items(request, ticket_id):
    serializer = CancelItemsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    ticket = KitchenTicketService.cancel_items(
        request.tenant,
        ticket_id,
        serializer.validated_data['item_ids'],
        reason=serializer.validated_data.get('reason'),
    )
    return success_response(_ticket_data(request, ticket), message="Items cancelled")


@api_view(['POST'])
@permission_classes([AllowAny])
def cancel_ticket(request, ticket_id):
    serializer = CancelSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    ticket = KitchenTicketService.cancel_ticket(
        request.tenant, ticket_id, reason=serializer.validated_data.get('reason')
    )
    return success_response(_ticket_data(request, ticket), message="Ticket cancelled")


@api_view(['PATCH'])
@permission_classes([AllowAny])
def update_priority(request, ticket_id):
    serializer = UpdatePrioritySerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    ticket = KitchenTicketService.update_priority(
        request.tenant, ticket_id, serializer.validated_data['priority']
    )
    return success_response(_ticket_data(request, ticket), message="Priority updated")


@api_view(['POST'])
@permission_classes([AllowAny])
def pause_timer(request, ticket_id):
    ticket = KitchenTimerService.pause_timer(request.tenant, ticket_id)
    return success_response(_ticket_data(request, ticket), message="Timer paused")


@api_view(['POST'])
@permission_classes([AllowAny])
def resume_timer(request, ticket_id):
    ticket = KitchenTimerService.resume_timer(request.tenant, ticket_id)
    return success_response(_ticket_data(request, ticket), message="Timer resumed")
