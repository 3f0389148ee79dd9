from marketplace.catalog.domain.models import Product
from marketplace.ordering.domain.models import Order, OrderItem, Payment, Shipment


__all__ = [
    "Product",
    "Order",
    "OrderItem",
    "Payment",
    "Shipment",
]
