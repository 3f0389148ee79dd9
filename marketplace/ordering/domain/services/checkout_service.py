"""
CheckoutService - Order Placement Transaction

Coordinates the inventory guard, order assembler and fulfillment initiator
inside one database transaction:

    STARTED -> VALIDATING -> DECREMENTING -> PERSISTING -> COMMITTED
                      (any failure) -> ROLLED_BACK

and exposes the cancellation counterpart that hands stock back. Nothing is
committed unless every step succeeds; failures are re-raised to the caller
after the rollback.
"""

from contextlib import contextmanager
from typing import Iterable, List, Mapping, Optional, Union

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, DatabaseError
from django.utils import timezone

from marketplace.infra.observability.metrics import (
    checkout_duration,
    checkout_lock_timeouts_total,
    order_value,
    orders_canceled_total,
    orders_placed_total,
)
from marketplace.infra.observability.tracing import add_span_attributes, get_tracer
from marketplace.ordering.domain.errors import (
    AlreadyCanceled,
    CheckoutError,
    InvalidInput,
    InvalidQuantity,
    LockTimeout,
    MissingField,
    NotCancelable,
    OrderNotFound,
    Unexpected,
)
from marketplace.ordering.domain.models import Order, Payment
from marketplace.ordering.domain.repositories import OrderItemRepository, OrderRepository, PaymentRepository
from marketplace.ordering.domain.services.fulfillment_service import FulfillmentInitiator
from marketplace.ordering.domain.services.inventory_guard import InventoryGuard
from marketplace.ordering.domain.services.order_assembler import OrderAssembler
from marketplace.ordering.domain.value_objects import (
    MAX_AMOUNT,
    MAX_QUANTITY,
    LineItem,
    OrderResult,
    PaymentInput,
    ShipmentInput,
)
from marketplace.ordering.infra.repositories import (
    DjangoOrderItemRepository,
    DjangoOrderRepository,
    DjangoPaymentRepository,
)
from marketplace.services.base import BaseService
from utils.transaction_utils import (
    DeadlockError,
    LockTimeoutError,
    TransactionError,
    TransactionState,
    rollback_safe_operation,
    unit_of_work,
)

tracer = get_tracer(__name__)

ItemInput = Union[LineItem, Mapping]


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class CheckoutService(BaseService):
    """
    Transaction coordinator for placing and canceling orders.
    """

    def __init__(
        self,
        inventory_guard: Optional[InventoryGuard] = None,
        order_assembler: Optional[OrderAssembler] = None,
        fulfillment_initiator: Optional[FulfillmentInitiator] = None,
        order_repository: Optional[OrderRepository] = None,
        order_item_repository: Optional[OrderItemRepository] = None,
        payment_repository: Optional[PaymentRepository] = None,
        using: str = DEFAULT_DB_ALIAS,
        lock_timeout: Optional[float] = None,
    ):
        """
        Initialize CheckoutService.

        Args:
            inventory_guard: Stock locking/validation (injected)
            order_assembler: Order + order item creation (injected)
            fulfillment_initiator: Payment + shipment creation (injected)
            order_repository: Order persistence used by cancellation (injected)
            order_item_repository: Order item reads used by cancellation (injected)
            payment_repository: Payment persistence used by cancellation (injected)
            using: Database alias transactions are opened on
            lock_timeout: Seconds to wait for row locks; defaults to
                settings.CHECKOUT_LOCK_TIMEOUT_SECONDS
        """
        super().__init__()
        self.inventory_guard = inventory_guard or InventoryGuard()
        self.order_assembler = order_assembler or OrderAssembler()
        self.fulfillment = fulfillment_initiator or FulfillmentInitiator()
        self.orders = order_repository or DjangoOrderRepository()
        self.order_items = order_item_repository or DjangoOrderItemRepository()
        self.payments = payment_repository or DjangoPaymentRepository()
        self.using = using
        self.lock_timeout = (
            lock_timeout if lock_timeout is not None else getattr(settings, "CHECKOUT_LOCK_TIMEOUT_SECONDS", None)
        )

    @BaseService.log_performance
    def place_order(
        self,
        user_id,
        items: Iterable[ItemInput],
        payment_input: Optional[PaymentInput],
        shipment_input: Optional[ShipmentInput],
    ) -> OrderResult:
        """
        Place an order atomically.

        Locks every product (ascending id), validates all stock before any
        decrement, then creates the order, its items, the payment and the
        shipment, and commits.

        Args:
            user_id: Authenticated buyer id
            items: LineItem objects or {"product_id", "quantity"} mappings
            payment_input: Payment method and optional provider
            shipment_input: Courier, optional tracking number and shipping cost

        Returns:
            OrderResult with the committed order, payment and shipment

        Raises:
            CheckoutError: any failure, after the transaction rolled back
        """
        line_items = self._validate_order_input(items, payment_input, shipment_input)

        with tracer.start_as_current_span("place_order") as span:
            add_span_attributes(span, **{"user.id": user_id, "order.line_items": len(line_items)})

            try:
                with rollback_safe_operation(f"place_order user={user_id}"), checkout_duration.time():
                    with self._translate_failures("place_order"), self._transaction() as uow:
                        uow.advance(TransactionState.VALIDATING)
                        with tracer.start_as_current_span("reserve_inventory"):
                            snapshots = self.inventory_guard.reserve(uow, line_items)

                        uow.advance(TransactionState.DECREMENTING)
                        with tracer.start_as_current_span("decrement_stock"):
                            self.inventory_guard.commit_decrement(uow, snapshots)

                        uow.advance(TransactionState.PERSISTING)
                        with tracer.start_as_current_span("assemble_order"):
                            order = self.order_assembler.assemble(
                                uow,
                                user_id=user_id,
                                snapshots=snapshots,
                                shipping_cost=shipment_input.shipping_cost,
                                payment_method=payment_input.method,
                            )

                        with tracer.start_as_current_span("initiate_fulfillment"):
                            payment = self.fulfillment.initiate_payment(uow, order, payment_input.resolved_provider)
                            shipment = self.fulfillment.initiate_shipment(
                                uow, order, shipment_input.courier, shipment_input.tracking_number
                            )
            except CheckoutError as e:
                orders_placed_total.labels(status="failure").inc()
                span.set_attribute("checkout.error", e.code)
                raise

            orders_placed_total.labels(status="success").inc()
            order_value.observe(order.total_amount)
            add_span_attributes(span, **{"order.id": order.pk, "order.total": order.total_amount})

        self.logger.info(
            f"Placed order {order.pk} for user {user_id}: {len(snapshots)} items, total {order.total_amount}"
        )

        return OrderResult(order=order, payment=payment, shipment=shipment)

    @BaseService.log_performance
    def cancel_order(self, user_id, order_id, reason: str = "") -> Order:
        """
        Cancel an order owned by ``user_id`` and restore its stock.

        The order row is locked for the duration so concurrent cancellations
        cannot restore stock twice.

        Raises:
            OrderNotFound: no such order for this user (also for other users' orders)
            AlreadyCanceled: the order is already CANCELED
            NotCancelable: the order has SHIPPED, been DELIVERED or COMPLETED
        """
        with tracer.start_as_current_span("cancel_order") as span:
            add_span_attributes(span, **{"user.id": user_id, "order.id": order_id})

            try:
                with rollback_safe_operation(f"cancel_order order={order_id}"):
                    with self._translate_failures("cancel_order"), self._transaction() as uow:
                        uow.advance(TransactionState.VALIDATING)
                        order = self.orders.get_for_user(uow, order_id, user_id, for_update=True)
                        if order is None:
                            raise OrderNotFound(order_id)
                        if order.status == Order.CANCELED:
                            raise AlreadyCanceled(order_id)
                        if order.status in Order.NON_CANCELABLE_STATUSES:
                            raise NotCancelable(order_id, order.status)

                        uow.advance(TransactionState.DECREMENTING)
                        with tracer.start_as_current_span("restore_stock"):
                            self.inventory_guard.restore(uow, self.order_items.list_for_order(uow, order))

                        uow.advance(TransactionState.PERSISTING)
                        order.status = Order.CANCELED
                        order.cancellation_reason = reason or ""
                        order.canceled_at = timezone.now()
                        self.orders.save_status(uow, order)

                        payment = self.payments.get_for_order(uow, order)
                        if payment is not None and payment.status == Payment.PENDING:
                            payment.status = Payment.CANCELED
                            self.payments.save_status(uow, payment)
            except CheckoutError as e:
                orders_canceled_total.labels(status="failure").inc()
                span.set_attribute("checkout.error", e.code)
                raise

        orders_canceled_total.labels(status="success").inc()
        self.logger.info(f"Canceled order {order_id} for user {user_id}: {reason}")

        return order

    def _transaction(self):
        return unit_of_work(using=self.using, lock_timeout=self.lock_timeout)

    @contextmanager
    def _translate_failures(self, operation: str):
        """Re-raise anything escaping a rolled-back transaction as a CheckoutError."""
        try:
            yield
        except CheckoutError:
            raise
        except (LockTimeoutError, DeadlockError) as e:
            checkout_lock_timeouts_total.inc()
            raise LockTimeout(f"{operation} could not lock product rows in time, retry the request") from e
        except (TransactionError, DatabaseError) as e:
            raise Unexpected(f"{operation} failed: {e}") from e
        except Exception as e:
            raise Unexpected(f"{operation} failed: {e.__class__.__name__}: {e}") from e

    @staticmethod
    def _validate_order_input(
        items: Optional[Iterable[ItemInput]],
        payment_input: Optional[PaymentInput],
        shipment_input: Optional[ShipmentInput],
    ) -> List[LineItem]:
        """
        Reject malformed input before any transaction is opened.

        Returns:
            Line items sorted by product id (the lock order)
        """
        line_items = [CheckoutService._to_line_item(item) for item in (items or [])]
        if not line_items:
            raise InvalidInput("Order must have at least one item")

        if payment_input is None or not payment_input.method:
            raise MissingField("payment.method")
        if shipment_input is None or not shipment_input.courier:
            raise MissingField("shipment.courier")

        shipping_cost = shipment_input.shipping_cost
        if not _is_int(shipping_cost) or shipping_cost < 0:
            raise InvalidInput(f"shipping_cost must be a non-negative integer, got {shipping_cost!r}")
        if shipping_cost > MAX_AMOUNT:
            raise InvalidInput(f"shipping_cost must not exceed {MAX_AMOUNT}, got {shipping_cost}")

        for item in line_items:
            if not _is_int(item.product_id):
                raise InvalidInput(f"product_id must be an integer, got {item.product_id!r}")
            if not _is_int(item.quantity) or not 0 < item.quantity <= MAX_QUANTITY:
                raise InvalidQuantity(item.product_id, item.quantity)

        # Stable sort: duplicate product ids keep their relative order
        return sorted(line_items, key=lambda item: item.product_id)

    @staticmethod
    def _to_line_item(item: ItemInput) -> LineItem:
        if isinstance(item, LineItem):
            return item
        if isinstance(item, Mapping):
            return LineItem(product_id=item.get("product_id"), quantity=item.get("quantity"))
        raise InvalidInput(f"Invalid line item: {item!r}")
