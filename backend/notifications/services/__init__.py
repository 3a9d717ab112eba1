"""
Notifications services package.

- WaiterNotificationService: the waiter's alert inbox for new order items
"""

from .waiter_service import WaiterNotificationService

__all__ = [
    'WaiterNotificationService',
]
