"""
Pattern -> handler registries for broker traffic.

Event handlers (fire-and-forget, at-least-once) and RPC handlers (blocking
request/response) are registered separately per service so the two kinds
of traffic never share a dispatch path.

Handlers receive the resolved tenant and the message data; tenant context
is set for the duration of the call:

    @event_handler('kitchen', 'order.items_accepted')
    def on_items_accepted(tenant, data):
        ...
"""
import logging
from collections import defaultdict
from functools import wraps

logger = logging.getLogger(__name__)

_event_handlers = defaultdict(dict)
_rpc_handlers = defaultdict(dict)


def _with_tenant(func):
    @wraps(func)
    def wrapper(data):
        from tenant.managers import tenant_context
        from tenant.models import Tenant

        tenant = Tenant.resolve(data.get('tenantId'))
        with tenant_context(tenant):
            return func(tenant, data)
    return wrapper


def _register(registry, service, pattern):
    def decorator(func):
        if pattern in registry[service]:
            logger.warning(f"Replacing handler for {service}:{pattern}")
        registry[service][pattern] = _with_tenant(func)
        return func
    return decorator


def event_handler(service, pattern):
    """Register ``func(tenant, data)`` for events with ``pattern`` on ``service``."""
    return _register(_event_handlers, service, pattern)


def rpc_handler(service, pattern):
    """Register ``func(tenant, data) -> result`` for RPC calls with ``pattern`` on ``service``."""
    return _register(_rpc_handlers, service, pattern)


def get_event_handlers(service):
    return dict(_event_handlers[service])


def get_rpc_handlers(service):
    return dict(_rpc_handlers[service])
