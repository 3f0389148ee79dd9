"""
Base classes and utilities for the service layer.

This module provides the ServiceResult pattern (inspired by Rust's Result type)
and BaseService class for all marketplace services.
"""

import logging
import time
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    A result type that encapsulates success or failure from service operations.

    Read-side services return it for expected failures. Transactional
    services raise instead (an exception is what rolls the transaction back)
    and the API layer converts the exception with ``CheckoutError.to_result()``.

    Attributes:
        ok: True if operation succeeded, False otherwise
        value: The success value (present if ok=True)
        error: Error code (present if ok=False)
        error_detail: Human-readable error message (present if ok=False)

    Examples:
        >>> result = service_ok(order)
        >>> if result.ok:
        ...     return Response(OrderSerializer(result.value).data, 200)

        >>> result = service_err("order_not_found", "Order 12 not found")
        >>> print(result.error)  # "order_not_found"
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_detail: Optional[str] = None

    def to_dict(self) -> dict:
        """
        Convert to dictionary for JSON serialization.

        Returns:
            Dictionary with 'success' and either 'data' or 'error'
        """
        if self.ok:
            return {"success": True, "data": self.value}
        return {
            "success": False,
            "error": {"code": self.error, "message": self.error_detail},
        }


def service_ok(value: T) -> ServiceResult[T]:
    """Wrap a successful read (an order, a page of orders, a summary dict)."""
    return ServiceResult(ok=True, value=value)


def service_err(error: str, error_detail: str = "") -> ServiceResult:
    """
    Wrap an expected failure. ``error`` is one of ``ErrorCodes``; the detail
    falls back to the code so API clients always get a message.
    """
    return ServiceResult(ok=False, error=error, error_detail=error_detail or error)


class BaseService:
    """
    Common base for checkout and order services: a logger named after the
    concrete class and a timing decorator for public operations.

    Usage:
        class OrderQueryService(BaseService):
            def __init__(self, order_repository):
                super().__init__()
                self.orders = order_repository

            @BaseService.log_performance
            def list_orders(self, user_id):
                self.logger.info(f"Listing orders for user {user_id}")
    """

    def __init__(self):
        """Initialize base service with logger."""
        self.logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)

    @staticmethod
    def log_performance(func: Callable) -> Callable:
        """
        Decorator to log performance of service methods.

        Logs execution time and any errors that occur. Exceptions carrying an
        ``http_status`` below 500 are expected business outcomes and are
        logged at warning level without a traceback.

        Args:
            func: The service method to wrap

        Returns:
            Wrapped function with performance logging
        """

        @wraps(func)
        def wrapper(self, *args, **kwargs):
            start_time = time.time()
            method_name = f"{self.__class__.__name__}.{func.__name__}"

            try:
                self.logger.debug(f"{method_name} started")
                result = func(self, *args, **kwargs)
                elapsed_time = (time.time() - start_time) * 1000  # Convert to ms

                if isinstance(result, ServiceResult) and not result.ok:
                    self.logger.warning(f"{method_name} failed with error '{result.error}' in {elapsed_time:.2f}ms")
                else:
                    self.logger.info(f"{method_name} completed in {elapsed_time:.2f}ms")

                return result

            except Exception as e:
                elapsed_time = (time.time() - start_time) * 1000
                if getattr(e, "http_status", 500) < 500:
                    self.logger.warning(f"{method_name} rejected after {elapsed_time:.2f}ms: {e}")
                else:
                    self.logger.error(
                        f"{method_name} raised exception after {elapsed_time:.2f}ms: {str(e)}",
                        exc_info=True,
                    )
                raise

        return wrapper


# Common error codes for marketplace services
class ErrorCodes:
    """Standard error codes used across marketplace services."""

    # Product errors
    PRODUCT_NOT_FOUND = "product_not_found"

    # Inventory errors
    INSUFFICIENT_STOCK = "insufficient_stock"
    INVALID_QUANTITY = "invalid_quantity"

    # Order errors
    ORDER_NOT_FOUND = "order_not_found"
    EMPTY_ORDER = "empty_order"
    ORDER_ALREADY_CANCELED = "order_already_canceled"
    ORDER_CANNOT_CANCEL = "order_cannot_cancel"

    # Validation errors
    INVALID_INPUT = "invalid_input"
    MISSING_FIELD = "missing_field"

    # Infrastructure errors
    LOCK_TIMEOUT = "lock_timeout"
    INTERNAL_ERROR = "internal_error"
