"""
OrderQueryService - Buyer Order Reads

Read-only access to a buyer's orders. Every lookup is scoped to the
requesting user; someone else's order is reported exactly like a missing one.
"""

from typing import Dict, Optional

from django.db import DEFAULT_DB_ALIAS

from marketplace.ordering.domain.models import Order, Payment
from marketplace.ordering.domain.repositories import OrderRepository
from marketplace.ordering.infra.repositories import DjangoOrderRepository
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

MAX_PAGE_SIZE = 100


class OrderQueryService(BaseService):
    def __init__(self, order_repository: Optional[OrderRepository] = None, using: str = DEFAULT_DB_ALIAS):
        super().__init__()
        self.orders = order_repository or DjangoOrderRepository()
        self.using = using

    @BaseService.log_performance
    def get_order(self, user_id, order_id) -> ServiceResult[Order]:
        """
        Get order details (owner only), with items, payment and shipment loaded.

        Example:
            >>> result = order_query_service.get_order(user.id, order_id)
            >>> if result.ok:
            ...     order = result.value
        """
        order = self.orders.get_detail_for_user(self.using, order_id, user_id)
        if order is None:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, f"Order {order_id} not found")

        self.logger.info(f"Retrieved order {order_id} for user {user_id}")
        return service_ok(order)

    @BaseService.log_performance
    def list_orders(
        self, user_id, status: Optional[str] = None, page: int = 1, page_size: int = 20
    ) -> ServiceResult[Dict]:
        """
        List user's orders, newest first, with optional status filtering.

        Returns:
            ServiceResult with paginated order list
        """
        if page < 1 or page_size < 1:
            return service_err(ErrorCodes.INVALID_INPUT, "page and page_size must be positive")
        if status and status not in dict(Order.STATUS_CHOICES):
            return service_err(ErrorCodes.INVALID_INPUT, f"Unknown order status '{status}'")

        page_size = min(page_size, MAX_PAGE_SIZE)
        offset = (page - 1) * page_size
        total_count = self.orders.count_for_user(self.using, user_id, status)
        orders = self.orders.list_for_user(self.using, user_id, status, offset, page_size)

        self.logger.info(f"Listed orders for user {user_id}: {total_count} total, page {page}")

        return service_ok(
            {
                "results": orders,
                "count": total_count,
                "page": page,
                "page_size": page_size,
                "num_pages": (total_count + page_size - 1) // page_size,
            }
        )

    @BaseService.log_performance
    def get_order_summary(self, user_id, order_id) -> ServiceResult[Dict]:
        """Totals, payment and shipment state of one order, recomputed from its items."""
        result = self.get_order(user_id, order_id)
        if not result.ok:
            return result

        order = result.value
        items = list(order.items.all())
        payment = getattr(order, "payment", None)
        shipment = getattr(order, "shipment", None)

        return service_ok(
            {
                "order_id": order.pk,
                "status": order.status,
                "items_count": len(items),
                "subtotal": sum(item.subtotal for item in items),
                "shipping_cost": order.shipping_cost,
                "total": order.total_amount,
                "payment": {
                    "method": order.payment_method,
                    "status": payment.status if payment else Payment.PENDING,
                },
                "shipment": {
                    "courier": shipment.courier if shipment else None,
                    "tracking_number": shipment.tracking_number if shipment else None,
                    "status": shipment.status if shipment else None,
                },
                "created_at": order.created_at,
            }
        )
