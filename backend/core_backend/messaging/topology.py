"""
Broker topology for one consuming service.

Every service binds its own durable queue to the shared fanout exchange so
each event reaches every service once. Failed deliveries are rejected into
the service's dead-letter exchange, parked on a TTL retry queue, and flow
back into the main queue; deliveries that exhausted their retries are
published to the service's DLQ by the consumer.

    order_events_exchange (fanout)
        └── <name>_queue  ──reject──▶ <name>_dlx_exchange (direct)
                                         ├── <name>_retry ──ttl──▶ <name>_queue
                                         └── <name>_dlq
    (default exchange) ── <name>_rpc
"""
from django.conf import settings
from kombu import Exchange, Queue


SERVICE_QUEUE_SETTINGS = {
    'order': 'QUEUE_NAME_OF_ORDER',
    'kitchen': 'QUEUE_NAME_OF_KITCHEN',
    'waiter': 'QUEUE_NAME_OF_WAITER',
}


def events_exchange(name=None):
    return Exchange(name or settings.ORDER_EVENTS_EXCHANGE, type='fanout', durable=True)


class ServiceTopology:
    """Exchanges and queues a single service declares on the broker."""

    def __init__(self, name, exchange_name=None, retry_delay_ms=None):
        self.name = name
        self.retry_delay_ms = retry_delay_ms if retry_delay_ms is not None else settings.RETRY_DELAY_MS

        self.events_exchange = events_exchange(exchange_name)
        self.dead_letter_exchange = Exchange(f'{name}_dlx_exchange', type='direct', durable=True)

        self.queue_name = f'{name}_queue'
        self.retry_routing_key = f'{name}_retry'
        self.dlq_routing_key = f'{name}_dlq'

        self.queue = Queue(
            self.queue_name,
            exchange=self.events_exchange,
            durable=True,
            queue_arguments={
                'x-dead-letter-exchange': self.dead_letter_exchange.name,
                'x-dead-letter-routing-key': self.retry_routing_key,
            },
        )
        self.retry_queue = Queue(
            f'{name}_retry',
            exchange=self.dead_letter_exchange,
            routing_key=self.retry_routing_key,
            durable=True,
            queue_arguments={
                'x-message-ttl': self.retry_delay_ms,
                # Empty exchange name is the broker's default exchange
                'x-dead-letter-exchange': '',
                'x-dead-letter-routing-key': self.queue_name,
            },
        )
        self.dead_letter_queue = Queue(
            f'{name}_dlq',
            exchange=self.dead_letter_exchange,
            routing_key=self.dlq_routing_key,
            durable=True,
        )
        self.rpc_queue = Queue(f'{name}_rpc', durable=True)

    @classmethod
    def for_service(cls, service):
        """Build the topology for 'order', 'kitchen' or 'waiter' from settings."""
        try:
            setting_name = SERVICE_QUEUE_SETTINGS[service]
        except KeyError:
            raise ValueError(
                f"Unknown service '{service}'. Expected one of: {', '.join(SERVICE_QUEUE_SETTINGS)}"
            )
        return cls(getattr(settings, setting_name))

    @property
    def entities(self):
        return [self.queue, self.retry_queue, self.dead_letter_queue, self.rpc_queue]

    def declare(self, channel):
        """Declare every exchange, queue and binding. Safe to repeat."""
        for entity in self.entities:
            bound = entity.bind(channel)
            bound.declare()

    def __repr__(self):
        return f"<ServiceTopology {self.name}>"
