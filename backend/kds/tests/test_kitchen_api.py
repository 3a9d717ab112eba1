"""
Kitchen API Tests

The middleware clears tenant context after every request, so assertions
read the response or go through ``all_objects``.
"""
import pytest

from core_backend.exceptions import ErrorCodes
from kds.models import KitchenTicket, KitchenTicketStatus
from orders.models import OrderItem


def url(ticket, suffix=''):
    return f'/api/kitchen/tickets/{ticket.id}/{suffix}'


@pytest.mark.django_db
class TestKitchenAPI:

    def test_ticket_list(self, tenant_client, kitchen_ticket):
        response = tenant_client.get('/api/kitchen/tickets/?status=PENDING')

        assert response.status_code == 200
        data = response.json()['data']
        assert data['total'] == 1
        ticket = data['items'][0]
        assert ticket['ticket_number'] == '#001'
        assert ticket['priority_label'] == 'NORMAL'
        assert ticket['elapsed_formatted'] == '00:00'
        assert len(ticket['items']) == 2

    def test_invalid_priority_filter(self, tenant_client, kitchen_ticket):
        response = tenant_client.get('/api/kitchen/tickets/?priority=SOON')
        assert response.status_code == 400
        assert response.json()['code'] == ErrorCodes.VALIDATION_FAILED.code

    def test_ticket_detail_not_found(self, tenant_client, db):
        response = tenant_client.get('/api/kitchen/tickets/00000000-0000-0000-0000-000000000000/')

        assert response.status_code == 404
        assert response.json()['code'] == ErrorCodes.KITCHEN_TICKET_NOT_FOUND.code

    def test_start_ready_bump_flow(self, tenant_client, kitchen_ticket, accepted_order):
        response = tenant_client.post(url(kitchen_ticket, 'start/'), {'cook_name': 'Minh'}, format='json')
        data = response.json()['data']
        assert data['status'] == KitchenTicketStatus.IN_PROGRESS
        assert data['assigned_cook_id'] == 'waiter-1'
        assert data['assigned_cook_name'] == 'Minh'

        response = tenant_client.post(url(kitchen_ticket, 'items/ready/'), {}, format='json')
        assert response.json()['data']['status'] == KitchenTicketStatus.READY

        response = tenant_client.post(url(kitchen_ticket, 'bump/'))
        assert response.json()['data']['status'] == KitchenTicketStatus.COMPLETED

        statuses = set(OrderItem.all_objects.filter(order_id=accepted_order.id).values_list('status', flat=True))
        assert statuses == {OrderItem.ItemStatus.READY}

    def test_start_items_requires_ids(self, tenant_client, kitchen_ticket):
        response = tenant_client.post(url(kitchen_ticket, 'items/start/'), {}, format='json')

        assert response.status_code == 400
        assert 'item_ids' in response.json()['details']

    def test_recall_without_reason(self, tenant_client, kitchen_ticket):
        item_id = str(kitchen_ticket.items.first().id)
        tenant_client.post(url(kitchen_ticket, 'start/'), {}, format='json')

        response = tenant_client.post(url(kitchen_ticket, 'items/recall/'), {'item_ids': [item_id]}, format='json')

        assert response.status_code == 400
        assert response.json()['code'] == ErrorCodes.KITCHEN_RECALL_REASON_REQUIRED.code

    def test_recall_and_requeue(self, tenant_client, kitchen_ticket):
        item_id = str(kitchen_ticket.items.first().id)
        tenant_client.post(url(kitchen_ticket, 'start/'), {}, format='json')

        response = tenant_client.post(
            url(kitchen_ticket, 'items/recall/'), {'item_ids': [item_id], 'reason': 'Burnt'}, format='json'
        )
        item = next(i for i in response.json()['data']['items'] if i['id'] == item_id)
        assert item['status'] == 'RECALLED'
        assert item['recall_count'] == 1

        response = tenant_client.post(url(kitchen_ticket, 'items/requeue/'), {'item_ids': [item_id]}, format='json')
        item = next(i for i in response.json()['data']['items'] if i['id'] == item_id)
        assert item['status'] == 'PENDING'

    def test_invalid_ticket_transition(self, tenant_client, kitchen_ticket):
        response = tenant_client.post(url(kitchen_ticket, 'bump/'))

        assert response.status_code == 400
        body = response.json()
        assert body['code'] == ErrorCodes.INVALID_KITCHEN_TICKET_STATUS.code
        assert body['details'] == {'currentStatus': 'PENDING', 'targetStatus': 'COMPLETED'}

    def test_cancel_items_and_ticket(self, tenant_client, kitchen_ticket):
        item_id = str(kitchen_ticket.items.first().id)

        response = tenant_client.post(url(kitchen_ticket, 'items/cancel/'), {'item_ids': [item_id]}, format='json')
        assert response.json()['data']['status'] == KitchenTicketStatus.PENDING

        response = tenant_client.post(url(kitchen_ticket, 'cancel/'), {'reason': 'Guest left'}, format='json')
        assert response.json()['data']['status'] == KitchenTicketStatus.CANCELLED

    def test_update_priority(self, tenant_client, kitchen_ticket):
        response = tenant_client.patch(url(kitchen_ticket, 'priority/'), {'priority': 'FIRE'}, format='json')

        data = response.json()['data']
        assert data['priority'] == 3
        assert data['priority_label'] == 'FIRE'
        assert all(item['is_rush'] for item in data['items'])

    def test_pause_and_resume(self, tenant_client, kitchen_ticket):
        response = tenant_client.post(url(kitchen_ticket, 'timer/pause/'))
        assert response.json()['data']['is_timer_paused'] is True

        response = tenant_client.post(url(kitchen_ticket, 'timer/resume/'))
        assert response.json()['data']['is_timer_paused'] is False

    def test_display_lanes(self, tenant_client, kitchen_ticket):
        KitchenTicket.all_objects.filter(id=kitchen_ticket.id).update(priority=3)

        data = tenant_client.get('/api/kitchen/display/').json()['data']

        assert [t['id'] for t in data['fire']] == [str(kitchen_ticket.id)]
        assert data['pending'] == []
        assert data['summary']['total_pending'] == 1

    def test_stats(self, tenant_client, kitchen_ticket):
        tenant_client.post(url(kitchen_ticket, 'start/'), {}, format='json')
        tenant_client.post(url(kitchen_ticket, 'items/ready/'), {}, format='json')
        tenant_client.post(url(kitchen_ticket, 'bump/'))

        data = tenant_client.get('/api/kitchen/stats/').json()['data']

        assert data['total_tickets'] == 1
        assert data['completed'] == 1
        assert data['recall_rate'] == 0
        assert data['items_per_hour'] > 0

    def test_stats_rejects_bad_dates(self, tenant_client, db):
        response = tenant_client.get('/api/kitchen/stats/?date_from=yesterday')
        assert response.status_code == 400

    def test_tickets_are_isolated_by_tenant(self, api_client, tenant_b, kitchen_ticket):
        """
        CRITICAL: A kitchen screen only ever shows its own restaurant's tickets
        """
        api_client.credentials(HTTP_X_TENANT_ID=str(tenant_b.id))

        assert api_client.get(url(kitchen_ticket)).status_code == 404
        assert api_client.get('/api/kitchen/tickets/').json()['data']['total'] == 0
