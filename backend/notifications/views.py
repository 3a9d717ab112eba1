from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
import logging

from core_backend.responses import paginated, success_response
from .serializers import OrderNotificationSerializer
from .services import WaiterNotificationService

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([AllowAny])
def pending_notifications(request):
    """
    Query parameters:
    - table_id: Only this table's notifications
    - page / limit: Pagination (default 1 / 20)
    """
    try:
        page = max(int(request.GET.get('page', 1)), 1)
        limit = min(max(int(request.GET.get('limit', 20)), 1), 100)
    except ValueError:
        page, limit = 1, 20

    notifications, total = WaiterNotificationService.get_pending(
        request.tenant, table_id=request.GET.get('table_id'), page=page, limit=limit
    )
    return success_response(
        paginated(OrderNotificationSerializer(notifications, many=True).data, total, page, limit)
    )


@api_view(['GET'])
@permission_classes([AllowAny])
def unread_count(request):
    count = WaiterNotificationService.unread_count(request.tenant, table_id=request.GET.get('table_id'))
    return success_response({'unread': count})


@api_view(['GET'])
@permission_classes([AllowAny])
def notification_detail(request, notification_id):
    notification = WaiterNotificationService.get_notification(request.tenant, notification_id)
    return success_response(OrderNotificationSerializer(notification).data)


@api_view(['POST'])
@permission_classes([AllowAny])
def mark_read(request, notification_id):
    notification = WaiterNotificationService.mark_read(
        request.tenant, notification_id, waiter_id=request.actor_id
    )
    return success_response(OrderNotificationSerializer(notification).data, message="Notification read")


@api_view(['POST'])
@permission_classes([AllowAny])
def archive(request, notification_id):
    notification = WaiterNotificationService.archive(request.tenant, notification_id)
    return success_response(OrderNotificationSerializer(notification).data, message="Notification archived")
