"""
Repository Interfaces
=====================

Persistence contracts the checkout services depend on. Every method that
reads or writes inside a transaction takes the UnitOfWork handle first, so a
service never reaches for a global connection or model manager.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from marketplace.catalog.domain.models import Product
from marketplace.ordering.domain.models import Order, OrderItem, Payment, Shipment
from marketplace.ordering.domain.value_objects import ProductSnapshot
from utils.transaction_utils import UnitOfWork


class ProductRepository(ABC):
    @abstractmethod
    def get_for_update(self, uow: UnitOfWork, product_id: int) -> Optional[Product]:
        """Read a product holding an exclusive row lock until the transaction ends."""
        pass

    @abstractmethod
    def save_stock(self, uow: UnitOfWork, product: Product) -> None:
        pass


class OrderRepository(ABC):
    @abstractmethod
    def create(
        self, uow: UnitOfWork, user_id, total_amount: int, shipping_cost: int, payment_method: str
    ) -> Order:
        pass

    @abstractmethod
    def get_for_user(self, uow: UnitOfWork, order_id, user_id, for_update: bool = False) -> Optional[Order]:
        """Return the order only if it belongs to ``user_id``."""
        pass

    @abstractmethod
    def save_status(self, uow: UnitOfWork, order: Order) -> None:
        pass

    @abstractmethod
    def list_for_user(self, using: str, user_id, status: Optional[str], offset: int, limit: int) -> List[Order]:
        pass

    @abstractmethod
    def count_for_user(self, using: str, user_id, status: Optional[str]) -> int:
        pass

    @abstractmethod
    def get_detail_for_user(self, using: str, order_id, user_id) -> Optional[Order]:
        """Order with items, payment and shipment loaded, scoped to its owner."""
        pass


class OrderItemRepository(ABC):
    @abstractmethod
    def create_from_snapshot(self, uow: UnitOfWork, order: Order, snapshot: ProductSnapshot) -> OrderItem:
        pass

    @abstractmethod
    def list_for_order(self, uow: UnitOfWork, order: Order) -> List[OrderItem]:
        pass


class PaymentRepository(ABC):
    @abstractmethod
    def create(
        self, uow: UnitOfWork, order: Order, provider: str, transaction_id: str, amount: int, status: str
    ) -> Payment:
        pass

    @abstractmethod
    def get_for_order(self, uow: UnitOfWork, order: Order) -> Optional[Payment]:
        pass

    @abstractmethod
    def save_status(self, uow: UnitOfWork, payment: Payment) -> None:
        pass


class ShipmentRepository(ABC):
    @abstractmethod
    def create(self, uow: UnitOfWork, order: Order, courier: str, tracking_number: str, status: str) -> Shipment:
        pass

    @abstractmethod
    def tracking_number_taken(self, uow: UnitOfWork, tracking_number: str) -> bool:
        pass
