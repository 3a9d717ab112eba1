import logging
import uuid

from django.conf import settings
from django.db import transaction
from kombu import Connection

from .topology import events_exchange

logger = logging.getLogger(__name__)

PERSISTENT_DELIVERY_MODE = 2

RETRY_POLICY = {
    'interval_start': 0,
    'interval_step': 1,
    'interval_max': 5,
    'max_retries': 3,
}


class EventPublisher:
    """
    Fire-and-forget publisher for the shared fanout exchange.

    Envelope on the wire: ``{"pattern": str, "data": {...}}`` (JSON,
    persistent). The pattern is repeated as a header for routing and the
    message id is both the AMQP ``message_id`` property and ``data.messageId``
    so consumers can deduplicate redeliveries.
    """

    def __init__(self, connection_url=None, exchange_name=None):
        self.connection_url = connection_url or settings.CONNECTION_AMQP
        self.exchange = events_exchange(exchange_name)

    def build_envelope(self, pattern, data, message_id):
        return {
            'pattern': pattern,
            'data': {**data, 'messageId': message_id},
        }

    def publish(self, pattern, data, message_id=None):
        """Publish an event and return its message id. No reply is awaited."""
        message_id = message_id or str(uuid.uuid4())
        envelope = self.build_envelope(pattern, data, message_id)

        with Connection(self.connection_url) as conn:
            producer = conn.Producer(serializer='json')
            producer.publish(
                envelope,
                exchange=self.exchange,
                routing_key=pattern,
                declare=[self.exchange],
                delivery_mode=PERSISTENT_DELIVERY_MODE,
                headers={'pattern': pattern},
                message_id=message_id,
                retry=True,
                retry_policy=RETRY_POLICY,
            )

        logger.info(f"📢 Published {pattern} ({message_id})")
        return message_id


_publisher = None


def get_publisher():
    global _publisher
    if _publisher is None:
        _publisher = EventPublisher()
    return _publisher


def publish_event(pattern, data, message_id=None):
    """
    Publish an event on the fanout exchange.

    Returns the message id. When MESSAGING_ENABLED is off the event is only
    logged, which keeps local development and tests broker-free.
    """
    message_id = message_id or str(uuid.uuid4())
    if not getattr(settings, 'MESSAGING_ENABLED', True):
        logger.debug(f"Messaging disabled, not publishing {pattern} ({message_id})")
        return message_id
    return get_publisher().publish(pattern, data, message_id=message_id)


def publish_event_on_commit(pattern, data, message_id=None):
    """
    Publish once the surrounding database transaction commits.

    Consumers must never see an event for rows that were rolled back.
    The message id is assigned up front so callers can record it.
    """
    message_id = message_id or str(uuid.uuid4())

    def _send():
        try:
            publish_event(pattern, data, message_id=message_id)
        except Exception as e:
            logger.error(f"Error publishing {pattern} ({message_id}): {e}")

    if transaction.get_connection().in_atomic_block:
        transaction.on_commit(_send)
    else:
        _send()
    return message_id
