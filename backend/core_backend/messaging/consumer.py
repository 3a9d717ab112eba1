import logging
from datetime import datetime, timezone as dt_timezone

from django.conf import settings
from kombu import Producer
from kombu.mixins import ConsumerMixin

logger = logging.getLogger(__name__)

PERSISTENT_DELIVERY_MODE = 2


def get_death_count(headers, queue_name=None):
    """
    Number of times the broker has dead-lettered this message.

    Reads the ``x-death`` header. The entry for the service's main queue is
    preferred, since the retry queue adds its own ``expired`` entry on every
    cycle; otherwise the first entry is used.
    """
    deaths = (headers or {}).get('x-death') or []
    if not deaths:
        return 0
    if queue_name:
        for death in deaths:
            if death.get('queue') == queue_name and death.get('reason') == 'rejected':
                return int(death.get('count', 0))
    return int(deaths[0].get('count', 0))


def _as_text(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return str(value)


class EventConsumer(ConsumerMixin):
    """
    Consumes one service's main queue and dispatches by ``pattern``.

    Prefetch is 1 so each consumer handles a single message at a time.
    A handler that returns normally gets its message acked. A handler that
    raises gets the message rejected without requeue (the broker parks it
    on the retry queue and redelivers it) until the ``x-death`` count
    reaches ``max_retries``; the next failure publishes it to the DLQ with
    the failure envelope and acks the original.
    """

    def __init__(self, connection, topology, handlers, max_retries=None, producer=None):
        self.connection = connection
        self.topology = topology
        self.handlers = handlers
        self.max_retries = max_retries if max_retries is not None else settings.LIMIT_REQUEUE
        self._producer = producer

    @property
    def producer(self):
        if self._producer is None:
            self._producer = Producer(self.connection)
        return self._producer

    def get_consumers(self, Consumer, channel):
        self.topology.declare(channel)
        return [
            Consumer(
                queues=[self.topology.queue],
                callbacks=[self.on_message],
                accept=['json'],
                prefetch_count=1,
            )
        ]

    def on_consume_ready(self, connection, channel, consumers, **kwargs):
        logger.info(f"🎧 {self.topology.name} listening on {self.topology.queue_name} ({len(self.handlers)} patterns)")

    def on_message(self, body, message):
        try:
            pattern, data = self.parse_envelope(body, message)
        except Exception as e:
            self.handle_failure(body, message, e)
            return
        message_id = data.get('messageId')

        handler = self.handlers.get(pattern)
        if handler is None:
            logger.debug(f"{self.topology.name}: no handler for {pattern}, acking")
            message.ack()
            return

        try:
            handler(data)
        except Exception as e:
            self.handle_failure(body, message, e)
            return

        message.ack()
        logger.info(f"✅ {self.topology.name} handled {pattern} ({message_id})")

    @staticmethod
    def parse_envelope(body, message):
        """Split a ``{pattern, data}`` envelope; the broker message id is mirrored into data."""
        if not isinstance(body, dict):
            raise ValueError(f"Message body must be a JSON object, got {type(body).__name__}")
        headers = message.headers or {}
        pattern = body.get('pattern') or headers.get('pattern')
        data = dict(body.get('data') or {})
        message_id = message.properties.get('message_id') or data.get('messageId')
        if message_id and not data.get('messageId'):
            data['messageId'] = message_id
        return pattern, data

    def handle_failure(self, body, message, error):
        pattern = body.get('pattern') if isinstance(body, dict) else None
        count = get_death_count(message.headers, self.topology.queue_name)

        if count < self.max_retries:
            logger.warning(
                f"⚠️ {self.topology.name} failed {pattern}: {error}. Retry {count + 1}/{self.max_retries}",
                exc_info=True,
            )
            message.reject(requeue=False)
            return

        attempts = count + 1
        logger.error(
            f"❌ {self.topology.name} failed {pattern} after {attempts} attempts. Sending to DLQ.",
            exc_info=True,
        )
        self.dead_letter(body, message, error, attempts)
        message.ack()

    def dead_letter(self, body, message, error, attempts):
        headers = dict(message.headers or {})
        deaths = headers.get('x-death') or []
        last_death = deaths[0] if deaths else {}
        delivery_info = getattr(message, 'delivery_info', None) or {}

        headers.update({
            'x-attempts': attempts,
            'x-original-queue': self.topology.queue_name,
            'x-original-exchange': _as_text(
                last_death.get('exchange') or delivery_info.get('exchange') or self.topology.events_exchange.name
            ),
            'x-failure-reason': f"{error.__class__.__name__}: {error}",
            'x-routing-keys': [_as_text(key) for key in last_death.get('routing-keys', [])] or [
                _as_text(delivery_info.get('routing_key'))
            ],
            'x-failed-at': datetime.now(dt_timezone.utc).isoformat(),
        })
        headers.pop('x-death', None)

        self.producer.publish(
            body,
            exchange=self.topology.dead_letter_exchange,
            routing_key=self.topology.dlq_routing_key,
            declare=[self.topology.dead_letter_queue],
            serializer='json',
            delivery_mode=PERSISTENT_DELIVERY_MODE,
            headers=headers,
            message_id=message.properties.get('message_id'),
        )


def build_failure_envelope(body, message):
    """Describe why a message ended up on the DLQ."""
    headers = message.headers or {}
    properties = message.properties or {}
    deaths = headers.get('x-death') or []
    death = deaths[0] if deaths else {}

    attempts = headers.get('x-attempts')
    if attempts is None:
        attempts = int(death.get('count', 0))

    return {
        'payload': body,
        'failureDetails': {
            'attempts': attempts,
            'originalQueue': headers.get('x-original-queue') or _as_text(death.get('queue')) or 'unknown',
            'originalExchange': headers.get('x-original-exchange') or _as_text(death.get('exchange')) or 'unknown',
            'reason': headers.get('x-failure-reason') or _as_text(death.get('reason')) or 'unknown',
            'routingKeys': headers.get('x-routing-keys') or [_as_text(key) for key in death.get('routing-keys', [])],
            'time': headers.get('x-failed-at') or _as_text(death.get('time')),
        },
        'messageProperties': {
            'messageId': properties.get('message_id'),
            'timestamp': _as_text(properties.get('timestamp')),
            'correlationId': properties.get('correlation_id'),
        },
        'droppedAt': datetime.now(dt_timezone.utc).isoformat(),
    }


class DeadLetterConsumer(ConsumerMixin):
    """
    Logs every message on a service's DLQ and acks it.

    There is no automatic replay; the log line carries everything needed to
    replay by hand.
    """

    def __init__(self, connection, topology):
        self.connection = connection
        self.topology = topology

    def get_consumers(self, Consumer, channel):
        self.topology.declare(channel)
        return [
            Consumer(
                queues=[self.topology.dead_letter_queue],
                callbacks=[self.on_message],
                accept=['json'],
                prefetch_count=1,
            )
        ]

    def on_message(self, body, message):
        envelope = build_failure_envelope(body, message)
        details = envelope['failureDetails']
        logger.error(
            f"💀 Message dropped to DLQ - failed permanently: pattern={body.get('pattern')} "
            f"attempts={details['attempts']} queue={details['originalQueue']} reason={details['reason']}",
            extra={'failure': envelope},
        )
        message.ack()
        return envelope
