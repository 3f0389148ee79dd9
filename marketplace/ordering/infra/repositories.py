"""Django ORM implementations of the ordering repositories."""

from typing import List, Optional

from marketplace.catalog.domain.models import Product
from marketplace.ordering.domain.models import Order, OrderItem, Payment, Shipment
from marketplace.ordering.domain.repositories import (
    OrderItemRepository,
    OrderRepository,
    PaymentRepository,
    ProductRepository,
    ShipmentRepository,
)
from marketplace.ordering.domain.value_objects import ProductSnapshot
from utils.transaction_utils import UnitOfWork


class DjangoProductRepository(ProductRepository):
    def get_for_update(self, uow: UnitOfWork, product_id: int) -> Optional[Product]:
        # SELECT ... FOR UPDATE; blocks while another transaction holds the row
        return Product.objects.using(uow.using).select_for_update().filter(pk=product_id).first()

    def save_stock(self, uow: UnitOfWork, product: Product) -> None:
        product.save(using=uow.using, update_fields=["stock_quantity", "updated_at"])


class DjangoOrderRepository(OrderRepository):
    def create(
        self, uow: UnitOfWork, user_id, total_amount: int, shipping_cost: int, payment_method: str
    ) -> Order:
        return Order.objects.using(uow.using).create(
            buyer_id=user_id,
            status=Order.PENDING,
            total_amount=total_amount,
            shipping_cost=shipping_cost,
            payment_method=payment_method,
        )

    def get_for_user(self, uow: UnitOfWork, order_id, user_id, for_update: bool = False) -> Optional[Order]:
        queryset = Order.objects.using(uow.using)
        if for_update:
            queryset = queryset.select_for_update()
        return queryset.filter(pk=order_id, buyer_id=user_id).first()

    def save_status(self, uow: UnitOfWork, order: Order) -> None:
        order.save(using=uow.using, update_fields=["status", "cancellation_reason", "canceled_at", "updated_at"])

    def _user_queryset(self, using: str, user_id, status: Optional[str]):
        queryset = Order.objects.using(using).filter(buyer_id=user_id)
        if status:
            queryset = queryset.filter(status=status)
        return queryset

    def list_for_user(self, using: str, user_id, status: Optional[str], offset: int, limit: int) -> List[Order]:
        queryset = (
            self._user_queryset(using, user_id, status)
            .select_related("payment", "shipment")
            .prefetch_related("items")
            .order_by("-created_at", "-id")
        )
        return list(queryset[offset : offset + limit])

    def count_for_user(self, using: str, user_id, status: Optional[str]) -> int:
        return self._user_queryset(using, user_id, status).count()

    def get_detail_for_user(self, using: str, order_id, user_id) -> Optional[Order]:
        return (
            Order.objects.using(using)
            .select_related("payment", "shipment")
            .prefetch_related("items")
            .filter(pk=order_id, buyer_id=user_id)
            .first()
        )


class DjangoOrderItemRepository(OrderItemRepository):
    def create_from_snapshot(self, uow: UnitOfWork, order: Order, snapshot: ProductSnapshot) -> OrderItem:
        return OrderItem.objects.using(uow.using).create(
            order=order,
            product_id=snapshot.product_id,
            quantity=snapshot.quantity,
            product_name_snapshot=snapshot.name,
            price_snapshot=snapshot.price,
        )

    def list_for_order(self, uow: UnitOfWork, order: Order) -> List[OrderItem]:
        return list(OrderItem.objects.using(uow.using).filter(order=order).order_by("id"))


class DjangoPaymentRepository(PaymentRepository):
    def create(
        self, uow: UnitOfWork, order: Order, provider: str, transaction_id: str, amount: int, status: str
    ) -> Payment:
        return Payment.objects.using(uow.using).create(
            order=order, provider=provider, transaction_id=transaction_id, amount=amount, status=status
        )

    def get_for_order(self, uow: UnitOfWork, order: Order) -> Optional[Payment]:
        return Payment.objects.using(uow.using).select_for_update().filter(order=order).first()

    def save_status(self, uow: UnitOfWork, payment: Payment) -> None:
        payment.save(using=uow.using, update_fields=["status", "updated_at"])


class DjangoShipmentRepository(ShipmentRepository):
    def create(self, uow: UnitOfWork, order: Order, courier: str, tracking_number: str, status: str) -> Shipment:
        return Shipment.objects.using(uow.using).create(
            order=order, courier=courier, tracking_number=tracking_number, status=status
        )

    def tracking_number_taken(self, uow: UnitOfWork, tracking_number: str) -> bool:
        return Shipment.objects.using(uow.using).filter(tracking_number=tracking_number).exists()
