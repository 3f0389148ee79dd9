from .fulfillment import Payment, Shipment
from .order import Order, OrderItem


__all__ = [
    "Order",
    "OrderItem",
    "Payment",
    "Shipment",
]
