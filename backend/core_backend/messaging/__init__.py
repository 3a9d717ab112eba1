from .publisher import EventPublisher, publish_event, publish_event_on_commit
from .registry import event_handler, rpc_handler, get_event_handlers, get_rpc_handlers
from .topology import ServiceTopology

__all__ = [
    'EventPublisher',
    'ServiceTopology',
    'event_handler',
    'get_event_handlers',
    'get_rpc_handlers',
    'publish_event',
    'publish_event_on_commit',
    'rpc_handler',
]
