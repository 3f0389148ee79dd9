import pytest

from marketplace.models import Order, Payment
from marketplace.ordering.domain.services import CheckoutService, OrderQueryService
from marketplace.ordering.domain.value_objects import LineItem, PaymentInput, ShipmentInput
from marketplace.services import ErrorCodes
from marketplace.tests.factories import OrderFactory, ProductFactory


@pytest.mark.django_db
class TestOrderQueryService:
    def setup_method(self):
        self.service = OrderQueryService()

    def test_get_order_loads_payment_and_shipment(self, buyer):
        product = ProductFactory(price=300, stock_quantity=5)
        placed = CheckoutService().place_order(
            buyer.id, [LineItem(product.id, 2)], PaymentInput(method="bank_transfer"), ShipmentInput(courier="JNE")
        )

        result = self.service.get_order(buyer.id, placed.order.pk)

        assert result.ok
        assert result.value.payment.pk == placed.payment.pk
        assert result.value.shipment.pk == placed.shipment.pk
        assert len(result.value.items.all()) == 1

    def test_get_order_of_other_user_is_not_found(self, buyer, other_buyer):
        order = OrderFactory(buyer=other_buyer)

        result = self.service.get_order(buyer.id, order.pk)

        assert not result.ok
        assert result.error == ErrorCodes.ORDER_NOT_FOUND

    def test_list_orders_is_scoped_and_paginated(self, buyer, other_buyer):
        for _ in range(3):
            OrderFactory(buyer=buyer)
        OrderFactory(buyer=other_buyer)

        result = self.service.list_orders(buyer.id, page=1, page_size=2)

        assert result.ok
        assert result.value["count"] == 3
        assert result.value["num_pages"] == 2
        assert len(result.value["results"]) == 2
        assert all(order.buyer_id == buyer.id for order in result.value["results"])

    def test_list_orders_newest_first(self, buyer):
        first = OrderFactory(buyer=buyer)
        second = OrderFactory(buyer=buyer)

        result = self.service.list_orders(buyer.id)

        assert [order.pk for order in result.value["results"]] == [second.pk, first.pk]

    def test_list_orders_filters_by_status(self, buyer):
        OrderFactory(buyer=buyer, status=Order.PENDING)
        canceled = OrderFactory(buyer=buyer, status=Order.CANCELED)

        result = self.service.list_orders(buyer.id, status=Order.CANCELED)

        assert [order.pk for order in result.value["results"]] == [canceled.pk]

    @pytest.mark.parametrize("kwargs", [{"status": "LOST"}, {"page": 0}, {"page_size": 0}])
    def test_list_orders_rejects_bad_arguments(self, buyer, kwargs):
        result = self.service.list_orders(buyer.id, **kwargs)

        assert not result.ok
        assert result.error == ErrorCodes.INVALID_INPUT

    def test_list_orders_caps_page_size(self, buyer):
        result = self.service.list_orders(buyer.id, page_size=1000)

        assert result.value["page_size"] == 100

    def test_summary_recomputes_subtotal_from_items(self, buyer):
        mug = ProductFactory(price=100, stock_quantity=5)
        lamp = ProductFactory(price=250, stock_quantity=5)
        placed = CheckoutService().place_order(
            buyer.id,
            [LineItem(mug.id, 2), LineItem(lamp.id, 1)],
            PaymentInput(method="e_wallet"),
            ShipmentInput(courier="DHL", shipping_cost=40),
        )

        result = self.service.get_order_summary(buyer.id, placed.order.pk)

        assert result.ok
        summary = result.value
        assert summary["items_count"] == 2
        assert summary["subtotal"] == 450
        assert summary["shipping_cost"] == 40
        assert summary["total"] == 490
        assert summary["payment"] == {"method": "e_wallet", "status": Payment.PENDING}
        assert summary["shipment"]["courier"] == "DHL"
        assert summary["shipment"]["tracking_number"] == placed.shipment.tracking_number

    def test_summary_of_missing_order(self, buyer):
        result = self.service.get_order_summary(buyer.id, 987654)

        assert result.error == ErrorCodes.ORDER_NOT_FOUND
