from .checkout_service import CheckoutService
from .fulfillment_service import FulfillmentInitiator
from .inventory_guard import InventoryGuard
from .order_assembler import OrderAssembler
from .order_query_service import OrderQueryService


__all__ = [
    "CheckoutService",
    "FulfillmentInitiator",
    "InventoryGuard",
    "OrderAssembler",
    "OrderQueryService",
]
