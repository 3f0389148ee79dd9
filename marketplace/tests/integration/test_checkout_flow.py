import threading

import pytest
from django.db import connection

from marketplace.models import Order, OrderItem, Payment, Product, Shipment
from marketplace.ordering.domain.errors import (
    AlreadyCanceled,
    InsufficientStock,
    InvalidInput,
    NotCancelable,
    NotFound,
    OrderNotFound,
    ProductNotFound,
)
from marketplace.ordering.domain.services import CheckoutService
from marketplace.ordering.domain.value_objects import MAX_AMOUNT, LineItem, PaymentInput, ShipmentInput
from marketplace.tests.factories import OrderFactory, ProductFactory, UserFactory

PAYMENT = PaymentInput(method="bank_transfer")
SHIPMENT = ShipmentInput(courier="JNE")


def assert_no_order_rows():
    assert Order.objects.count() == 0
    assert OrderItem.objects.count() == 0
    assert Payment.objects.count() == 0
    assert Shipment.objects.count() == 0


@pytest.mark.django_db
class TestPlaceOrder:
    def setup_method(self):
        self.service = CheckoutService()

    def test_total_is_sum_of_snapshots_plus_shipping(self, buyer):
        mug = ProductFactory(price=100, stock_quantity=5)
        lamp = ProductFactory(price=250, stock_quantity=5)

        result = self.service.place_order(buyer.id, [LineItem(mug.id, 2), LineItem(lamp.id, 1)], PAYMENT, SHIPMENT)

        assert result.order.total_amount == 450
        assert result.order.status == Order.PENDING
        assert result.order.buyer_id == buyer.id
        assert result.payment.amount == 450
        assert result.payment.status == Payment.PENDING
        assert result.shipment.status == Shipment.WAITING_PICKUP
        mug.refresh_from_db()
        lamp.refresh_from_db()
        assert mug.stock_quantity == 3
        assert lamp.stock_quantity == 4

    def test_shipping_cost_is_added_to_total(self, buyer):
        product = ProductFactory(price=1000, stock_quantity=1)

        result = self.service.place_order(
            buyer.id, [LineItem(product.id, 1)], PAYMENT, ShipmentInput(courier="DHL", shipping_cost=150)
        )

        assert result.order.total_amount == 1150
        assert result.order.shipping_cost == 150
        assert result.order.subtotal == 1000

    def test_exact_stock_can_be_bought(self, buyer):
        product = ProductFactory(stock_quantity=3)

        self.service.place_order(buyer.id, [LineItem(product.id, 3)], PAYMENT, SHIPMENT)

        product.refresh_from_db()
        assert product.stock_quantity == 0

    def test_one_payment_and_one_shipment_per_order(self, buyer):
        product = ProductFactory(stock_quantity=10)

        result = self.service.place_order(
            buyer.id,
            [LineItem(product.id, 1)],
            PaymentInput(method="credit_card", provider="midtrans"),
            ShipmentInput(courier="JNE", tracking_number="JNE-123"),
        )

        order = Order.objects.get(pk=result.order.pk)
        assert order.payment.provider == "midtrans"
        assert order.payment_method == "credit_card"
        assert order.payment.transaction_id.startswith("TXN-")
        assert order.shipment.tracking_number == "JNE-123"
        assert order.shipment.courier == "JNE"

    def test_provider_defaults_to_method(self, buyer):
        product = ProductFactory(stock_quantity=10)

        result = self.service.place_order(buyer.id, [LineItem(product.id, 1)], PAYMENT, SHIPMENT)

        assert result.payment.provider == "bank_transfer"

    def test_order_items_follow_product_id_order(self, buyer):
        first = ProductFactory(stock_quantity=10)
        second = ProductFactory(stock_quantity=10)

        result = self.service.place_order(
            buyer.id, [LineItem(second.id, 1), LineItem(first.id, 2)], PAYMENT, SHIPMENT
        )

        items = list(result.order.items.order_by("id"))
        assert [item.product_id for item in items] == [first.id, second.id]

    def test_insufficient_stock_changes_nothing(self, buyer):
        in_stock = ProductFactory(stock_quantity=5)
        sold_out = ProductFactory(stock_quantity=0)

        with pytest.raises(InsufficientStock) as exc_info:
            self.service.place_order(buyer.id, [LineItem(in_stock.id, 2), LineItem(sold_out.id, 1)], PAYMENT, SHIPMENT)

        assert exc_info.value.product_id == sold_out.id
        in_stock.refresh_from_db()
        assert in_stock.stock_quantity == 5
        assert_no_order_rows()

    def test_failure_after_decrement_rolls_stock_back(self, buyer):
        product = ProductFactory(stock_quantity=5)
        self.service.place_order(
            buyer.id, [LineItem(product.id, 1)], PAYMENT, ShipmentInput(courier="JNE", tracking_number="TAKEN-1")
        )

        # Stock is decremented before the shipment step rejects the reused tracking number
        with pytest.raises(InvalidInput):
            self.service.place_order(
                buyer.id, [LineItem(product.id, 2)], PAYMENT, ShipmentInput(courier="JNE", tracking_number="TAKEN-1")
            )

        product.refresh_from_db()
        assert product.stock_quantity == 4
        assert Order.objects.count() == 1
        assert Payment.objects.count() == 1

    def test_unknown_product(self, buyer):
        with pytest.raises(ProductNotFound):
            self.service.place_order(buyer.id, [LineItem(999999, 1)], PAYMENT, SHIPMENT)

        assert_no_order_rows()

    def test_oversized_shipping_cost_is_rejected(self, buyer):
        product = ProductFactory(stock_quantity=5)

        with pytest.raises(InvalidInput):
            self.service.place_order(
                buyer.id, [LineItem(product.id, 1)], PAYMENT, ShipmentInput(courier="JNE", shipping_cost=2**64)
            )

        product.refresh_from_db()
        assert product.stock_quantity == 5
        assert_no_order_rows()

    def test_total_too_large_to_store_rolls_back(self, buyer):
        product = ProductFactory(stock_quantity=5, price=MAX_AMOUNT)

        with pytest.raises(InvalidInput):
            self.service.place_order(buyer.id, [LineItem(product.id, 2)], PAYMENT, SHIPMENT)

        product.refresh_from_db()
        assert product.stock_quantity == 5
        assert_no_order_rows()

    def test_split_duplicate_lines_cannot_oversell(self, buyer):
        product = ProductFactory(stock_quantity=3)

        with pytest.raises(InsufficientStock):
            self.service.place_order(buyer.id, [LineItem(product.id, 2), LineItem(product.id, 2)], PAYMENT, SHIPMENT)

        product.refresh_from_db()
        assert product.stock_quantity == 3

    def test_snapshots_are_immutable(self, buyer):
        product = ProductFactory(name="Original", price=500, stock_quantity=5)
        result = self.service.place_order(buyer.id, [LineItem(product.id, 1)], PAYMENT, SHIPMENT)

        Product.objects.filter(pk=product.pk).update(name="Renamed", price=9999)

        item = OrderItem.objects.get(order=result.order)
        assert item.product_name_snapshot == "Original"
        assert item.price_snapshot == 500
        assert Order.objects.get(pk=result.order.pk).total_amount == 500

    def test_sequential_oversell_is_rejected(self, buyer, other_buyer):
        product = ProductFactory(stock_quantity=1)

        self.service.place_order(buyer.id, [LineItem(product.id, 1)], PAYMENT, SHIPMENT)
        with pytest.raises(InsufficientStock):
            self.service.place_order(other_buyer.id, [LineItem(product.id, 1)], PAYMENT, SHIPMENT)

        product.refresh_from_db()
        assert product.stock_quantity == 0
        assert Order.objects.count() == 1


@pytest.mark.django_db
class TestCancelOrder:
    def setup_method(self):
        self.service = CheckoutService()

    def place(self, user, *lines):
        return self.service.place_order(user.id, [LineItem(p.id, q) for p, q in lines], PAYMENT, SHIPMENT)

    def test_cancel_restores_stock_exactly(self, buyer):
        mug = ProductFactory(stock_quantity=5)
        lamp = ProductFactory(stock_quantity=2)
        result = self.place(buyer, (mug, 3), (lamp, 2))

        order = self.service.cancel_order(buyer.id, result.order.pk, reason="Changed my mind")

        assert order.status == Order.CANCELED
        assert order.cancellation_reason == "Changed my mind"
        assert order.canceled_at is not None
        mug.refresh_from_db()
        lamp.refresh_from_db()
        assert mug.stock_quantity == 5
        assert lamp.stock_quantity == 2
        assert Payment.objects.get(order_id=order.pk).status == Payment.CANCELED

    def test_cancel_twice_fails(self, buyer):
        product = ProductFactory(stock_quantity=5)
        result = self.place(buyer, (product, 1))
        self.service.cancel_order(buyer.id, result.order.pk)

        with pytest.raises(AlreadyCanceled):
            self.service.cancel_order(buyer.id, result.order.pk)

        product.refresh_from_db()
        assert product.stock_quantity == 5

    @pytest.mark.parametrize("status", [Order.SHIPPED, Order.DELIVERED, Order.COMPLETED])
    def test_cannot_cancel_after_shipping(self, buyer, status):
        product = ProductFactory(stock_quantity=5)
        result = self.place(buyer, (product, 2))
        Order.objects.filter(pk=result.order.pk).update(status=status)

        with pytest.raises(NotCancelable) as exc_info:
            self.service.cancel_order(buyer.id, result.order.pk)

        assert exc_info.value.status == status
        product.refresh_from_db()
        assert product.stock_quantity == 3
        assert Order.objects.get(pk=result.order.pk).status == status
        assert Payment.objects.get(order_id=result.order.pk).status == Payment.PENDING

    def test_paid_order_can_be_canceled(self, buyer):
        product = ProductFactory(stock_quantity=5)
        result = self.place(buyer, (product, 2))
        Order.objects.filter(pk=result.order.pk).update(status=Order.PAID)
        Payment.objects.filter(order_id=result.order.pk).update(status=Payment.SUCCESS)

        self.service.cancel_order(buyer.id, result.order.pk)

        product.refresh_from_db()
        assert product.stock_quantity == 5
        # Settled payments are left for refund handling
        assert Payment.objects.get(order_id=result.order.pk).status == Payment.SUCCESS

    def test_other_users_order_is_not_found(self, buyer, other_buyer):
        product = ProductFactory(stock_quantity=5)
        result = self.place(other_buyer, (product, 1))

        with pytest.raises(NotFound) as exc_info:
            self.service.cancel_order(buyer.id, result.order.pk)

        assert isinstance(exc_info.value, OrderNotFound)
        assert str(exc_info.value) == f"Order {result.order.pk} not found"
        assert Order.objects.get(pk=result.order.pk).status == Order.PENDING

    def test_missing_order_has_same_error(self, buyer):
        with pytest.raises(OrderNotFound) as exc_info:
            self.service.cancel_order(buyer.id, 424242)

        assert str(exc_info.value) == "Order 424242 not found"

    def test_cancel_skips_deleted_products(self, buyer):
        kept = ProductFactory(stock_quantity=4)
        removed = ProductFactory(stock_quantity=4)
        result = self.place(buyer, (kept, 1), (removed, 1))
        removed.delete()

        order = self.service.cancel_order(buyer.id, result.order.pk)

        assert order.status == Order.CANCELED
        kept.refresh_from_db()
        assert kept.stock_quantity == 4

    def test_cancel_order_without_payment(self, buyer):
        order = OrderFactory(buyer=buyer)

        canceled = self.service.cancel_order(buyer.id, order.pk)

        assert canceled.status == Order.CANCELED


@pytest.mark.django_db(transaction=True)
@pytest.mark.skipif(
    not connection.features.has_select_for_update,
    reason="Concurrent checkout needs SELECT ... FOR UPDATE row locks",
)
def test_concurrent_checkouts_cannot_oversell():
    product = ProductFactory(stock_quantity=1)
    buyers = [UserFactory(), UserFactory()]
    outcomes = []
    barrier = threading.Barrier(len(buyers))

    def checkout(user):
        try:
            barrier.wait()
            CheckoutService().place_order(user.id, [LineItem(product.id, 1)], PAYMENT, SHIPMENT)
            outcomes.append("ok")
        except InsufficientStock:
            outcomes.append("insufficient_stock")
        finally:
            connection.close()

    threads = [threading.Thread(target=checkout, args=(user,)) for user in buyers]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["insufficient_stock", "ok"]
    product.refresh_from_db()
    assert product.stock_quantity == 0
    assert Order.objects.count() == 1
