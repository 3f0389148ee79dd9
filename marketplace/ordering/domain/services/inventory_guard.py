"""
InventoryGuard - Stock Validation Under Row Locks

Locks the product rows an order touches, validates stock against the locked
values and, as a separate step, applies the decrement. Cancellation uses the
same locks to hand stock back.

Validation never mutates: if item N fails, items 1..N-1 are untouched and the
enclosing transaction simply rolls back.
"""

from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from marketplace.infra.observability.metrics import stock_reservation_failures
from marketplace.ordering.domain.errors import InsufficientStock, InvalidQuantity, ProductNotFound
from marketplace.ordering.domain.models import OrderItem
from marketplace.ordering.domain.repositories import ProductRepository
from marketplace.ordering.domain.value_objects import LineItem, ProductSnapshot
from marketplace.ordering.infra.repositories import DjangoProductRepository
from marketplace.services.base import BaseService
from utils.transaction_utils import TransactionError, UnitOfWork


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class InventoryGuard(BaseService):
    """
    Service for locking, validating and adjusting product stock.
    """

    def __init__(self, product_repository: Optional[ProductRepository] = None):
        super().__init__()
        self.products = product_repository or DjangoProductRepository()

    @BaseService.log_performance
    def reserve(self, uow: UnitOfWork, items: Iterable[LineItem]) -> List[ProductSnapshot]:
        """
        Lock and validate every line item, in the order given.

        Callers pass items sorted by product id so that concurrent checkouts
        over overlapping products acquire locks in the same order.

        Args:
            uow: Open transaction; locks are held until it ends
            items: Requested (product_id, quantity) pairs

        Returns:
            One snapshot per line item, same order as ``items``

        Raises:
            ProductNotFound: a referenced product does not exist
            InvalidQuantity: a quantity is not a positive integer
            InsufficientStock: locked stock cannot cover the request
        """
        self._require_active(uow)

        snapshots: List[ProductSnapshot] = []
        # Repeated product ids are checked against their combined quantity
        requested_so_far: Dict[int, int] = {}

        for item in items:
            product = self.products.get_for_update(uow, item.product_id)

            if product is None:
                stock_reservation_failures.labels(reason="not_found").inc()
                raise ProductNotFound(item.product_id)

            if not _is_positive_int(item.quantity):
                stock_reservation_failures.labels(reason="invalid_quantity").inc()
                raise InvalidQuantity(item.product_id, item.quantity)

            requested = requested_so_far.get(product.pk, 0) + item.quantity
            if product.stock_quantity < requested:
                stock_reservation_failures.labels(reason="insufficient_stock").inc()
                raise InsufficientStock(
                    product.pk, available=product.stock_quantity, requested=requested, product_name=product.name
                )
            requested_so_far[product.pk] = requested

            snapshots.append(
                ProductSnapshot(product_id=product.pk, name=product.name, price=product.price, quantity=item.quantity)
            )

            self.logger.debug(
                f"Validated product {product.pk}: requested={requested}, available={product.stock_quantity}"
            )

        return snapshots

    @BaseService.log_performance
    def commit_decrement(self, uow: UnitOfWork, snapshots: Iterable[ProductSnapshot]) -> None:
        """
        Subtract reserved quantities from stock.

        Must follow a successful ``reserve`` in the same transaction; the rows
        are already locked, so re-reading them only returns this
        transaction's view.
        """
        self._require_active(uow)

        for product_id, quantity in self._totals_by_product((s.product_id, s.quantity) for s in snapshots).items():
            product = self.products.get_for_update(uow, product_id)
            if product is None:
                raise ProductNotFound(product_id)
            if product.stock_quantity < quantity:
                raise InsufficientStock(
                    product_id, available=product.stock_quantity, requested=quantity, product_name=product.name
                )

            old_quantity = product.stock_quantity
            product.stock_quantity -= quantity
            self.products.save_stock(uow, product)

            self.logger.info(
                f"Stock decremented: product={product_id}, quantity={quantity}, "
                f"stock: {old_quantity} -> {product.stock_quantity}"
            )

    @BaseService.log_performance
    def restore(self, uow: UnitOfWork, order_items: Iterable[OrderItem]) -> List[int]:
        """
        Add each order item's quantity back to its product.

        Best effort per product: a product that no longer exists is skipped
        and the rest are still restored.

        Returns:
            Ids of the products whose stock was restored
        """
        self._require_active(uow)

        restored = []
        pairs = []
        for item in order_items:
            if item.product_id is None:
                self.logger.warning(f"Order item {item.pk} has no product anymore, skipping stock restore")
                continue
            pairs.append((item.product_id, item.quantity))

        for product_id, quantity in self._totals_by_product(pairs).items():
            product = self.products.get_for_update(uow, product_id)
            if product is None:
                self.logger.warning(f"Product {product_id} not found, skipping stock restore")
                continue

            old_quantity = product.stock_quantity
            product.stock_quantity += quantity
            self.products.save_stock(uow, product)
            restored.append(product_id)

            self.logger.info(
                f"Stock restored: product={product_id}, quantity={quantity}, "
                f"stock: {old_quantity} -> {product.stock_quantity}"
            )

        return restored

    @staticmethod
    def _totals_by_product(pairs) -> "OrderedDict[int, int]":
        """Sum quantities per product id, ascending by id (lock order)."""
        totals: Dict[int, int] = {}
        for product_id, quantity in pairs:
            totals[product_id] = totals.get(product_id, 0) + quantity
        return OrderedDict(sorted(totals.items()))

    @staticmethod
    def _require_active(uow: UnitOfWork) -> None:
        if not uow.is_active:
            raise TransactionError(f"Inventory changes need an open transaction, got {uow.state.value}")
