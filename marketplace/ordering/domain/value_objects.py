from dataclasses import dataclass
from typing import Optional

from marketplace.ordering.domain.models import Order, Payment, Shipment

# Largest values the PositiveIntegerField / PositiveBigIntegerField columns hold
MAX_QUANTITY = 2_147_483_647
MAX_AMOUNT = 9_223_372_036_854_775_807


@dataclass(frozen=True)
class LineItem:
    """A requested (product, quantity) pair."""

    product_id: int
    quantity: int


@dataclass(frozen=True)
class ProductSnapshot:
    """Product fields captured under lock, copied onto the order item."""

    product_id: int
    name: str
    price: int
    quantity: int

    @property
    def subtotal(self) -> int:
        return self.price * self.quantity


@dataclass(frozen=True)
class PaymentInput:
    method: Optional[str]
    provider: Optional[str] = None

    @property
    def resolved_provider(self) -> Optional[str]:
        return self.provider or self.method


@dataclass(frozen=True)
class ShipmentInput:
    courier: Optional[str]
    tracking_number: Optional[str] = None
    shipping_cost: int = 0


@dataclass
class OrderResult:
    order: Order
    payment: Payment
    shipment: Shipment
