"""
Orders services package.

- OrderService: item state machine, order cancellation and payment
- CheckoutService: cart -> order consolidation with catalog re-pricing
- OrderCalculationService: item and order totals
- OrderStatusUpdater: how other services change order item status
"""

from .order_service import OrderService

from .checkout_service import CheckoutService

from .calculation_service import OrderCalculationService

from .status_updater import (
    OrderStatusUpdater,
    LocalOrderStatusUpdater,
    RpcOrderStatusUpdater,
    get_order_status_updater,
)

__all__ = [
    'OrderService',
    'CheckoutService',
    'OrderCalculationService',
    'OrderStatusUpdater',
    'LocalOrderStatusUpdater',
    'RpcOrderStatusUpdater',
    'get_order_status_updater',
]
