"""
Error taxonomy shared by the order, kitchen and waiter services.

Every error carries a stable numeric code from ``ErrorCodes`` so that HTTP
responses, RPC replies and log lines all speak the same language.
Code ranges:
    1000       success
    1001-1999  authentication & authorization
    2900-2999  request validation
    4000-4099  orders
    4500-4599  cart
    4600-4699  waiter notifications
    4700-4799  kitchen
    9000-9999  system & infrastructure
"""
import logging
from typing import NamedTuple, Optional

from rest_framework import exceptions as drf_exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ErrorCode(NamedTuple):
    code: int
    message: str
    http_status: int


class ErrorCodes:
    """Registry of every numeric code the services can return."""

    SUCCESS = ErrorCode(1000, "Success", 200)

    UNAUTHORIZED = ErrorCode(1004, "Unauthorized access", 401)
    NOT_FOUND_RESOURCE = ErrorCode(1007, "Requested resource not found", 404)

    VALIDATION_FAILED = ErrorCode(2901, "Validation failed", 400)

    ORDER_NOT_FOUND = ErrorCode(4010, "Order not found", 404)
    INVALID_ORDER_STATUS_TRANSITION = ErrorCode(4011, "Invalid order status transition", 400)
    ORDER_ITEM_NOT_FOUND = ErrorCode(4015, "Order item not found", 404)
    INVALID_STATUS_TRANSITION = ErrorCode(4016, "Invalid status transition", 400)

    CART_EMPTY = ErrorCode(4501, "Cart is empty", 400)
    CART_ITEM_NOT_FOUND = ErrorCode(4502, "Cart item not found", 404)
    INVALID_CART_OPERATION = ErrorCode(4503, "Invalid cart operation", 400)
    INVALID_CART_QUANTITY = ErrorCode(4505, "Invalid quantity. Must be greater than 0", 400)
    MENU_ITEM_NOT_AVAILABLE = ErrorCode(4506, "Menu item is not available", 400)

    NOTIFICATION_NOT_FOUND = ErrorCode(4601, "Notification not found", 404)
    INVALID_NOTIFICATION_STATUS = ErrorCode(4604, "Invalid notification status", 400)

    KITCHEN_TICKET_NOT_FOUND = ErrorCode(4701, "Kitchen ticket not found", 404)
    KITCHEN_TICKET_ITEM_NOT_FOUND = ErrorCode(4702, "Kitchen ticket item not found", 404)
    INVALID_KITCHEN_TICKET_STATUS = ErrorCode(4703, "Invalid kitchen ticket status transition", 400)
    INVALID_KITCHEN_ITEM_STATUS = ErrorCode(4704, "Invalid kitchen item status transition", 400)
    KITCHEN_RECALL_REASON_REQUIRED = ErrorCode(4708, "Recall reason is required", 400)

    INTERNAL_SERVER_ERROR = ErrorCode(9001, "Internal server error", 500)
    SERVICE_UNAVAILABLE = ErrorCode(9002, "Service temporarily unavailable", 503)

    @classmethod
    def by_code(cls, code) -> Optional[ErrorCode]:
        for value in vars(cls).values():
            if isinstance(value, ErrorCode) and value.code == code:
                return value
        return None


class AppError(Exception):
    """Base exception for every error surfaced to callers."""

    error_code = ErrorCodes.INTERNAL_SERVER_ERROR

    def __init__(self, message=None, error_code=None, details=None):
        if error_code is not None:
            self.error_code = error_code
        self.message = message or self.error_code.message
        self.details = details
        super().__init__(self.message)

    @property
    def code(self):
        return self.error_code.code

    @property
    def http_status(self):
        return self.error_code.http_status

    def to_dict(self):
        return {
            'code': self.code,
            'message': self.message,
            'details': self.details,
        }

    @classmethod
    def from_payload(cls, payload):
        """
        Rebuild an error from a serialized ``{code, message, details}`` reply.

        Used by the RPC client so callers catch the same exception classes
        whether the work ran in-process or in another service.
        """
        error_code = ErrorCodes.by_code(payload.get('code')) or ErrorCodes.INTERNAL_SERVER_ERROR
        error_class = _error_class_for(error_code)
        error = Exception.__new__(error_class)
        AppError.__init__(
            error,
            payload.get('message'),
            error_code=error_code,
            details=payload.get('details'),
        )
        return error


class ValidationError(AppError):
    """Raised when a request is malformed."""

    error_code = ErrorCodes.VALIDATION_FAILED


class UnauthorizedError(AppError):
    """Raised when a tenant or service API key does not match."""

    error_code = ErrorCodes.UNAUTHORIZED

    def __init__(self, message="Invalid API key", **kwargs):
        super().__init__(message, **kwargs)


class NotFoundError(AppError):
    """Raised when an id is unknown within the current tenant."""

    error_code = ErrorCodes.NOT_FOUND_RESOURCE

    def __init__(self, resource, identifier, error_code=None, message=None):
        self.resource = resource
        self.identifier = identifier
        if message is None:
            message = f"{resource} {identifier} not found"
        super().__init__(message, error_code=error_code)


class InvalidStatusTransitionError(AppError):
    """Raised when a requested status change is not an edge of the transition table."""

    error_code = ErrorCodes.INVALID_STATUS_TRANSITION

    def __init__(self, current_status, target_status, error_code=None, message=None, subject=None):
        self.current_status = current_status
        self.target_status = target_status
        if message is None:
            subject_info = f"{subject} " if subject else ""
            message = f"Cannot transition {subject_info}from {current_status} to {target_status}"
        super().__init__(
            message,
            error_code=error_code,
            details={'currentStatus': str(current_status), 'targetStatus': str(target_status)},
        )


class CartEmptyError(AppError):
    """Raised when checking out a cart with no items."""

    error_code = ErrorCodes.CART_EMPTY


class ItemUnavailableError(AppError):
    """Raised when the catalog marks a menu item as not available."""

    error_code = ErrorCodes.MENU_ITEM_NOT_AVAILABLE

    def __init__(self, menu_item_id, name=None):
        self.menu_item_id = menu_item_id
        label = f"'{name}'" if name else str(menu_item_id)
        super().__init__(
            f"Menu item {label} is not available",
            details={'menuItemId': str(menu_item_id)},
        )


class ServiceUnavailableError(AppError):
    """Raised when a collaborating service cannot be reached."""

    error_code = ErrorCodes.SERVICE_UNAVAILABLE


class RpcTimeoutError(ServiceUnavailableError):
    """Raised when a blocking call gets no reply within its timeout."""

    def __init__(self, pattern, timeout):
        self.pattern = pattern
        self.timeout = timeout
        super().__init__(f"No reply to '{pattern}' within {timeout}s")


_ERRORS_BY_CODE = {
    ErrorCodes.UNAUTHORIZED.code: UnauthorizedError,
    ErrorCodes.NOT_FOUND_RESOURCE.code: NotFoundError,
    ErrorCodes.ORDER_NOT_FOUND.code: NotFoundError,
    ErrorCodes.ORDER_ITEM_NOT_FOUND.code: NotFoundError,
    ErrorCodes.CART_ITEM_NOT_FOUND.code: NotFoundError,
    ErrorCodes.NOTIFICATION_NOT_FOUND.code: NotFoundError,
    ErrorCodes.KITCHEN_TICKET_NOT_FOUND.code: NotFoundError,
    ErrorCodes.KITCHEN_TICKET_ITEM_NOT_FOUND.code: NotFoundError,
    ErrorCodes.VALIDATION_FAILED.code: ValidationError,
    ErrorCodes.INVALID_CART_OPERATION.code: ValidationError,
    ErrorCodes.INVALID_CART_QUANTITY.code: ValidationError,
    ErrorCodes.KITCHEN_RECALL_REASON_REQUIRED.code: ValidationError,
    ErrorCodes.INVALID_ORDER_STATUS_TRANSITION.code: InvalidStatusTransitionError,
    ErrorCodes.INVALID_STATUS_TRANSITION.code: InvalidStatusTransitionError,
    ErrorCodes.INVALID_NOTIFICATION_STATUS.code: InvalidStatusTransitionError,
    ErrorCodes.INVALID_KITCHEN_TICKET_STATUS.code: InvalidStatusTransitionError,
    ErrorCodes.INVALID_KITCHEN_ITEM_STATUS.code: InvalidStatusTransitionError,
    ErrorCodes.CART_EMPTY.code: CartEmptyError,
    ErrorCodes.MENU_ITEM_NOT_AVAILABLE.code: ItemUnavailableError,
    ErrorCodes.SERVICE_UNAVAILABLE.code: ServiceUnavailableError,
}


def _error_class_for(error_code):
    return _ERRORS_BY_CODE.get(error_code.code, AppError)


def app_exception_handler(exc, context):
    """
    DRF exception handler rendering every error as ``{code, message, details}``.
    """
    if isinstance(exc, AppError):
        if exc.http_status >= 500:
            logger.error(f"{exc.__class__.__name__} [{exc.code}]: {exc.message}")
        else:
            logger.info(f"{exc.__class__.__name__} [{exc.code}]: {exc.message}")
        return Response(exc.to_dict(), status=exc.http_status)

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, drf_exceptions.ValidationError):
        response.data = {
            'code': ErrorCodes.VALIDATION_FAILED.code,
            'message': ErrorCodes.VALIDATION_FAILED.message,
            'details': response.data,
        }
    elif isinstance(exc, (drf_exceptions.NotAuthenticated, drf_exceptions.AuthenticationFailed)):
        response.data = {
            'code': ErrorCodes.UNAUTHORIZED.code,
            'message': str(exc.detail),
            'details': None,
        }
    return response
