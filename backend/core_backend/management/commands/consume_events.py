"""
Django management command running one service's broker consumer.

    python manage.py consume_events --service kitchen
    python manage.py consume_events --service order --rpc
    python manage.py consume_events --service waiter --dlq
"""

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from kombu import Connection

from core_backend.messaging.consumer import DeadLetterConsumer, EventConsumer
from core_backend.messaging.registry import get_event_handlers, get_rpc_handlers
from core_backend.messaging.rpc import RpcServer
from core_backend.messaging.topology import SERVICE_QUEUE_SETTINGS, ServiceTopology

SERVICE_API_KEY_SETTINGS = {
    'order': 'ORDER_API_KEY',
    'kitchen': 'KITCHEN_API_KEY',
    'waiter': 'WAITER_API_KEY',
}


class Command(BaseCommand):
    help = 'Consume events, dead letters or RPC requests for one service'

    def add_arguments(self, parser):
        parser.add_argument(
            '--service',
            required=True,
            choices=sorted(SERVICE_QUEUE_SETTINGS),
            help='Service whose queue to consume',
        )
        mode = parser.add_mutually_exclusive_group()
        mode.add_argument(
            '--dlq',
            action='store_true',
            help='Consume the dead-letter queue instead of the main queue',
        )
        mode.add_argument(
            '--rpc',
            action='store_true',
            help='Serve blocking RPC requests instead of events',
        )

    def handle(self, *args, **options):
        service = options['service']
        topology = ServiceTopology.for_service(service)

        with Connection(settings.CONNECTION_AMQP) as connection:
            if options['dlq']:
                worker = DeadLetterConsumer(connection, topology)
                label = topology.dead_letter_queue.name
            elif options['rpc']:
                handlers = get_rpc_handlers(service)
                if not handlers:
                    raise CommandError(f"No RPC handlers registered for '{service}'")
                api_key = getattr(settings, SERVICE_API_KEY_SETTINGS[service])
                worker = RpcServer(connection, topology, handlers, api_key)
                label = topology.rpc_queue.name
            else:
                handlers = get_event_handlers(service)
                worker = EventConsumer(connection, topology, handlers)
                label = topology.queue_name

            self.stdout.write(self.style.SUCCESS(f'🎧 Consuming {label} for {service}...'))
            try:
                worker.run()
            except KeyboardInterrupt:
                self.stdout.write(self.style.WARNING('Stopped'))
