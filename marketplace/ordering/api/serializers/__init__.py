from .order_serializers import (
    CancelOrderRequestSerializer,
    ErrorResponseSerializer,
    OrderDetailSerializer,
    OrderListResponseSerializer,
    OrderSerializer,
    OrderSummarySerializer,
    PlaceOrderRequestSerializer,
    PlaceOrderResponseSerializer,
)


__all__ = [
    "CancelOrderRequestSerializer",
    "ErrorResponseSerializer",
    "OrderDetailSerializer",
    "OrderListResponseSerializer",
    "OrderSerializer",
    "OrderSummarySerializer",
    "PlaceOrderRequestSerializer",
    "PlaceOrderResponseSerializer",
]
