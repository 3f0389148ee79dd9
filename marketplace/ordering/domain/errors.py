"""
Checkout error taxonomy.

Every failure of order placement or cancellation is raised as a
``CheckoutError`` subclass. Each kind carries a stable ``code`` for API
clients, the HTTP status it maps to and whether retrying the whole operation
can succeed. Business-rule violations map to 4xx, infrastructure failures to
409/5xx.
"""

from typing import Any, Dict

from rest_framework import status

from marketplace.services.base import ErrorCodes, ServiceResult, service_err


class CheckoutError(Exception):
    """Base class for all checkout failures."""

    code = ErrorCodes.INTERNAL_ERROR
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable = False

    def __init__(self, message: str = "", **context: Any):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.context: Dict[str, Any] = context

    def to_result(self) -> ServiceResult:
        return service_err(self.code, self.message)

    def __repr__(self):
        return f"{self.__class__.__name__}({self.message!r}, {self.context!r})"


class InvalidInput(CheckoutError):
    """Malformed request, rejected before any row is locked."""

    code = ErrorCodes.INVALID_INPUT
    http_status = status.HTTP_400_BAD_REQUEST


class MissingField(InvalidInput):
    code = ErrorCodes.MISSING_FIELD

    def __init__(self, field: str):
        super().__init__(f"{field} is required", field=field)
        self.field = field


class InvalidQuantity(InvalidInput):
    code = ErrorCodes.INVALID_QUANTITY

    def __init__(self, product_id, quantity):
        super().__init__(
            f"Quantity for product {product_id} must be a positive integer, got {quantity!r}",
            product_id=product_id,
            quantity=quantity,
        )
        self.product_id = product_id
        self.quantity = quantity


class EmptyOrder(CheckoutError):
    code = ErrorCodes.EMPTY_ORDER
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Order must have at least one item"):
        super().__init__(message)


class NotFound(CheckoutError):
    http_status = status.HTTP_404_NOT_FOUND


class ProductNotFound(NotFound):
    code = ErrorCodes.PRODUCT_NOT_FOUND

    def __init__(self, product_id):
        super().__init__(f"Product with ID {product_id} not found", product_id=product_id)
        self.product_id = product_id


class OrderNotFound(NotFound):
    code = ErrorCodes.ORDER_NOT_FOUND

    def __init__(self, order_id):
        # Same message whether the order is missing or belongs to someone else
        super().__init__(f"Order {order_id} not found", order_id=order_id)
        self.order_id = order_id


class InsufficientStock(CheckoutError):
    code = ErrorCodes.INSUFFICIENT_STOCK
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, product_id, available: int, requested: int, product_name: str = ""):
        label = product_name or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}. Available: {available}, Requested: {requested}",
            product_id=product_id,
            available=available,
            requested=requested,
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class AlreadyCanceled(CheckoutError):
    code = ErrorCodes.ORDER_ALREADY_CANCELED
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, order_id):
        super().__init__(f"Order {order_id} is already canceled", order_id=order_id)
        self.order_id = order_id


class NotCancelable(CheckoutError):
    code = ErrorCodes.ORDER_CANNOT_CANCEL
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, order_id, order_status: str):
        super().__init__(f"Cannot cancel order with status: {order_status}", order_id=order_id, status=order_status)
        self.order_id = order_id
        self.status = order_status


class LockTimeout(CheckoutError):
    """Product rows stayed locked by other checkouts past the timeout."""

    code = ErrorCodes.LOCK_TIMEOUT
    http_status = status.HTTP_409_CONFLICT
    retryable = True


class Unexpected(CheckoutError):
    code = ErrorCodes.INTERNAL_ERROR
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
