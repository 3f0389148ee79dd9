"""
OrderAssembler - Order Aggregate Creation

Turns validated product snapshots into an Order plus its OrderItems. Totals
are integer minor currency units; order items copy the snapshotted name and
price so later catalog edits never change a placed order.
"""

from typing import Optional, Sequence

from marketplace.ordering.domain.errors import EmptyOrder, InvalidInput
from marketplace.ordering.domain.models import Order
from marketplace.ordering.domain.repositories import OrderItemRepository, OrderRepository
from marketplace.ordering.domain.value_objects import MAX_AMOUNT, ProductSnapshot
from marketplace.ordering.infra.repositories import DjangoOrderItemRepository, DjangoOrderRepository
from marketplace.services.base import BaseService
from utils.transaction_utils import UnitOfWork


def calculate_subtotal(snapshots: Sequence[ProductSnapshot]) -> int:
    return sum(snapshot.subtotal for snapshot in snapshots)


class OrderAssembler(BaseService):
    def __init__(
        self,
        order_repository: Optional[OrderRepository] = None,
        order_item_repository: Optional[OrderItemRepository] = None,
    ):
        super().__init__()
        self.orders = order_repository or DjangoOrderRepository()
        self.order_items = order_item_repository or DjangoOrderItemRepository()

    @BaseService.log_performance
    def assemble(
        self,
        uow: UnitOfWork,
        user_id,
        snapshots: Sequence[ProductSnapshot],
        shipping_cost: int,
        payment_method: str,
    ) -> Order:
        """
        Persist a PENDING order and one order item per snapshot.

        Args:
            uow: Open transaction
            user_id: Owner of the new order
            snapshots: Output of InventoryGuard.reserve
            shipping_cost: Non-negative shipping charge
            payment_method: Payment method label stored on the order

        Returns:
            The persisted Order (items are not attached to the instance)

        Raises:
            EmptyOrder: no snapshots were given
            InvalidInput: bad shipping cost, or a total too large to store
        """
        if not snapshots:
            raise EmptyOrder()
        if isinstance(shipping_cost, bool) or not isinstance(shipping_cost, int) or shipping_cost < 0:
            raise InvalidInput(f"shipping_cost must be a non-negative integer, got {shipping_cost!r}")

        subtotal = calculate_subtotal(snapshots)
        grand_total = subtotal + shipping_cost
        if grand_total > MAX_AMOUNT:
            raise InvalidInput(f"Order total {grand_total} exceeds the largest storable amount {MAX_AMOUNT}")

        order = self.orders.create(
            uow,
            user_id=user_id,
            total_amount=grand_total,
            shipping_cost=shipping_cost,
            payment_method=payment_method,
        )

        for snapshot in snapshots:
            self.order_items.create_from_snapshot(uow, order, snapshot)

        self.logger.info(
            f"Assembled order {order.pk} for user {user_id}: {len(snapshots)} items, "
            f"subtotal={subtotal}, shipping={shipping_cost}, total={grand_total}"
        )

        return order
