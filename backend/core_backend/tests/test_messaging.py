"""
Messaging Fabric Tests

Topology naming, publisher envelopes and the RPC client's timeout.
"""
import pytest
from unittest.mock import MagicMock, patch

from django.core.management import CommandError, call_command

from core_backend.exceptions import RpcTimeoutError, UnauthorizedError
from core_backend.messaging.publisher import EventPublisher, publish_event, publish_event_on_commit
from core_backend.messaging.rpc import RpcClient, RpcServer
from core_backend.messaging.topology import ServiceTopology


class TestTopology:

    def test_queue_names_and_arguments(self):
        topology = ServiceTopology('kitchen', exchange_name='order_events_exchange', retry_delay_ms=5000)

        assert topology.events_exchange.type == 'fanout'
        assert topology.dead_letter_exchange.name == 'kitchen_dlx_exchange'
        assert topology.queue.name == 'kitchen_queue'
        assert topology.queue.queue_arguments == {
            'x-dead-letter-exchange': 'kitchen_dlx_exchange',
            'x-dead-letter-routing-key': 'kitchen_retry',
        }
        assert topology.retry_queue.queue_arguments == {
            'x-message-ttl': 5000,
            'x-dead-letter-exchange': '',
            'x-dead-letter-routing-key': 'kitchen_queue',
        }
        assert topology.dead_letter_queue.routing_key == 'kitchen_dlq'
        assert topology.rpc_queue.name == 'kitchen_rpc'

    def test_for_service_uses_queue_settings(self, settings):
        settings.QUEUE_NAME_OF_WAITER = 'prod_waiter'
        assert ServiceTopology.for_service('waiter').queue_name == 'prod_waiter_queue'

    def test_unknown_service(self):
        with pytest.raises(ValueError):
            ServiceTopology.for_service('billing')


class TestPublisher:

    def test_envelope_mirrors_message_id(self):
        publisher = EventPublisher(connection_url='memory://', exchange_name='order_events_exchange')

        with patch('core_backend.messaging.publisher.Connection') as connection:
            producer = connection.return_value.__enter__.return_value.Producer.return_value
            message_id = publisher.publish('order.new_items', {'orderId': 'o-1'}, message_id='msg-9')

        assert message_id == 'msg-9'
        body = producer.publish.call_args.args[0]
        kwargs = producer.publish.call_args.kwargs
        assert body == {'pattern': 'order.new_items', 'data': {'orderId': 'o-1', 'messageId': 'msg-9'}}
        assert kwargs['message_id'] == 'msg-9'
        assert kwargs['headers'] == {'pattern': 'order.new_items'}
        assert kwargs['delivery_mode'] == 2

    def test_disabled_messaging_only_logs(self, settings):
        settings.MESSAGING_ENABLED = False
        with patch('core_backend.messaging.publisher.get_publisher') as get_publisher:
            message_id = publish_event('order.cancelled', {'orderId': 'o-1'})

        assert message_id
        get_publisher.assert_not_called()

    @pytest.mark.django_db
    def test_on_commit_waits_for_commit(self, django_capture_on_commit_callbacks):
        with patch('core_backend.messaging.publisher.publish_event') as mock_publish:
            with django_capture_on_commit_callbacks() as callbacks:
                publish_event_on_commit('order.cancelled', {'orderId': 'o-1'}, message_id='msg-3')
                mock_publish.assert_not_called()

            for callback in callbacks:
                callback()

        mock_publish.assert_called_once_with('order.cancelled', {'orderId': 'o-1'}, message_id='msg-3')


class TestRpc:

    def test_call_times_out_without_reply(self):
        """
        CRITICAL: A caller never blocks forever on a missing service
        """
        topology = ServiceTopology('order', exchange_name='order_events_exchange', retry_delay_ms=5000)
        client = RpcClient(topology, api_key='order-key', connection_url='memory://', timeout=0.2)

        with pytest.raises(RpcTimeoutError) as exc_info:
            client.call('orders:get', {'tenantId': 't-1', 'orderId': 'o-1'})

        assert exc_info.value.code == 9002

    def test_error_reply_is_reraised(self):
        topology = ServiceTopology('order', exchange_name='order_events_exchange', retry_delay_ms=5000)
        client = RpcClient(topology, api_key='order-key', connection_url='memory://', timeout=1)
        producer = MagicMock()
        callbacks = []

        def make_consumer(*args, **kwargs):
            callbacks.extend(kwargs['callbacks'])
            return MagicMock()

        def deliver(timeout=None):
            message = MagicMock()
            message.properties = {'correlation_id': producer.publish.call_args.kwargs['correlation_id']}
            callbacks[0]({'code': 1004, 'message': 'Invalid API key', 'details': None}, message)

        with patch('core_backend.messaging.rpc.Connection') as connection, \
                patch('core_backend.messaging.rpc.Producer', return_value=producer), \
                patch('core_backend.messaging.rpc.Consumer', side_effect=make_consumer):
            connection.return_value.__enter__.return_value.drain_events.side_effect = deliver
            with pytest.raises(UnauthorizedError):
                client.call('orders:get', {'orderId': 'o-1'})

    def test_server_rejects_unknown_pattern(self):
        server = RpcServer(MagicMock(), MagicMock(), {}, 'order-key')

        reply = server.dispatch({'pattern': 'orders:explode', 'data': {'apiKey': 'order-key'}})

        assert reply['code'] == 1007


class TestConsumeEventsCommand:

    def test_kitchen_has_no_rpc_handlers(self, settings):
        settings.CONNECTION_AMQP = 'memory://'
        with pytest.raises(CommandError):
            call_command('consume_events', service='kitchen', rpc=True)

    def test_runs_event_consumer_with_service_handlers(self, settings):
        settings.CONNECTION_AMQP = 'memory://'
        with patch('core_backend.management.commands.consume_events.EventConsumer') as consumer:
            call_command('consume_events', service='waiter')

        handlers = consumer.call_args.args[2]
        assert 'order.new_items' in handlers
        consumer.return_value.run.assert_called_once()
