"""
Blocking request/response over the broker.

``RpcClient.call`` is deliberately separate from event publishing: it
targets one service's ``<name>_rpc`` queue, blocks for the correlated
reply, and raises ``RpcTimeoutError`` after a fixed timeout. There is no
retry at this layer.
"""
import logging
import socket
import time
import uuid

from django.conf import settings
from kombu import Connection, Consumer, Producer, Queue
from kombu.mixins import ConsumerMixin

from core_backend.exceptions import (
    AppError,
    ErrorCodes,
    NotFoundError,
    RpcTimeoutError,
    ServiceUnavailableError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)


def success_reply(data, message="Success"):
    return {
        'code': ErrorCodes.SUCCESS.code,
        'message': message,
        'data': data,
    }


class RpcClient:
    """Client side of the RPC channel for one target service."""

    def __init__(self, topology, api_key, connection_url=None, timeout=None):
        self.topology = topology
        self.api_key = api_key
        self.connection_url = connection_url or settings.CONNECTION_AMQP
        self.timeout = timeout if timeout is not None else settings.RPC_TIMEOUT_SECONDS

    def call(self, pattern, data, timeout=None):
        """
        Send ``{pattern, data}`` and block until the reply arrives.

        Returns the reply's ``data`` on success. Error replies are re-raised
        as the matching ``AppError`` subclass.

        Raises:
            RpcTimeoutError: no reply within the timeout
            ServiceUnavailableError: the broker could not be reached
        """
        timeout = timeout if timeout is not None else self.timeout
        correlation_id = str(uuid.uuid4())
        request = {'pattern': pattern, 'data': {**data, 'apiKey': self.api_key}}
        replies = []

        def on_reply(body, message):
            if message.properties.get('correlation_id') == correlation_id:
                replies.append(body)
            message.ack()

        try:
            with Connection(self.connection_url) as conn:
                reply_queue = Queue(
                    f'rpc.reply.{correlation_id}',
                    exclusive=True,
                    auto_delete=True,
                    durable=False,
                )
                producer = Producer(conn)
                producer.publish(
                    request,
                    exchange='',
                    routing_key=self.topology.rpc_queue.name,
                    declare=[reply_queue, self.topology.rpc_queue],
                    serializer='json',
                    reply_to=reply_queue.name,
                    correlation_id=correlation_id,
                    headers={'pattern': pattern},
                )
                logger.debug(f"RPC {pattern} -> {self.topology.rpc_queue.name} ({correlation_id})")

                deadline = time.monotonic() + timeout
                with Consumer(conn, queues=[reply_queue], callbacks=[on_reply], accept=['json']):
                    while not replies:
                        remaining = deadline - time.monotonic()
                        if remaining <= 0:
                            raise RpcTimeoutError(pattern, timeout)
                        try:
                            conn.drain_events(timeout=remaining)
                        except socket.timeout:
                            raise RpcTimeoutError(pattern, timeout)
        except AppError:
            raise
        except (OSError, ConnectionError) as e:
            logger.error(f"RPC {pattern} failed: broker unavailable: {e}")
            raise ServiceUnavailableError(f"Broker unavailable for '{pattern}': {e}")

        reply = replies[0]
        if reply.get('code') != ErrorCodes.SUCCESS.code:
            raise AppError.from_payload(reply)
        return reply.get('data')


class RpcServer(ConsumerMixin):
    """
    Serves ``<name>_rpc`` for one service.

    Each request is validated against the service API key, dispatched to
    the handler registered for its pattern and answered on ``reply_to``.
    Failures become error replies; requests are never redelivered.
    """

    def __init__(self, connection, topology, handlers, api_key, producer=None):
        self.connection = connection
        self.topology = topology
        self.handlers = handlers
        self.api_key = api_key
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
                queues=[self.topology.rpc_queue],
                callbacks=[self.on_request],
                accept=['json'],
                prefetch_count=1,
            )
        ]

    def on_consume_ready(self, connection, channel, consumers, **kwargs):
        logger.info(f"🎧 {self.topology.name} serving RPC on {self.topology.rpc_queue.name}")

    def dispatch(self, body):
        pattern = body.get('pattern')
        data = dict(body.get('data') or {})
        try:
            if data.pop('apiKey', None) != self.api_key:
                raise UnauthorizedError()
            handler = self.handlers.get(pattern)
            if handler is None:
                raise NotFoundError('RPC pattern', pattern)
            return success_reply(handler(data))
        except AppError as e:
            logger.info(f"RPC {pattern} rejected [{e.code}]: {e.message}")
            return e.to_dict()
        except Exception as e:
            logger.exception(f"RPC {pattern} failed unexpectedly: {e}")
            return AppError(str(e)).to_dict()

    def on_request(self, body, message):
        reply = self.dispatch(body)
        reply_to = message.properties.get('reply_to')
        if reply_to:
            self.producer.publish(
                reply,
                exchange='',
                routing_key=reply_to,
                serializer='json',
                correlation_id=message.properties.get('correlation_id'),
            )
        message.ack()
