from rest_framework import serializers

from marketplace.ordering.domain.models import Order, OrderItem, Payment, Shipment
from marketplace.ordering.domain.value_objects import MAX_AMOUNT, MAX_QUANTITY, LineItem, PaymentInput, ShipmentInput


# ===== Request Serializers =====
# Shape and type checks only. Business rules (non-empty items, positive
# quantities, required method/courier) are enforced by CheckoutService so
# every caller gets the same error codes.


class LineItemRequestSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(help_text="Product to buy")
    quantity = serializers.IntegerField(max_value=MAX_QUANTITY, help_text="Units to buy (must be positive)")


class PaymentRequestSerializer(serializers.Serializer):
    method = serializers.CharField(max_length=50, required=False, allow_blank=True, help_text="e.g. bank_transfer")
    provider = serializers.CharField(
        max_length=50, required=False, allow_blank=True, help_text="Payment provider; defaults to method"
    )


class ShipmentRequestSerializer(serializers.Serializer):
    courier = serializers.CharField(max_length=50, required=False, allow_blank=True, help_text="e.g. JNE, DHL")
    tracking_number = serializers.CharField(
        max_length=100, required=False, allow_blank=True, help_text="Generated when omitted"
    )
    shipping_cost = serializers.IntegerField(
        default=0, max_value=MAX_AMOUNT, help_text="Shipping charge in minor currency units"
    )


class PlaceOrderRequestSerializer(serializers.Serializer):
    """Request body for placing an order"""

    items = LineItemRequestSerializer(many=True, allow_empty=True)
    payment = PaymentRequestSerializer(required=False)
    shipment = ShipmentRequestSerializer(required=False)

    def to_checkout_arguments(self):
        """Convert validated data into CheckoutService.place_order arguments."""
        data = self.validated_data
        payment = data.get("payment") or {}
        shipment = data.get("shipment") or {}

        items = [LineItem(product_id=item["product_id"], quantity=item["quantity"]) for item in data["items"]]
        payment_input = PaymentInput(method=payment.get("method") or None, provider=payment.get("provider") or None)
        shipment_input = ShipmentInput(
            courier=shipment.get("courier") or None,
            tracking_number=shipment.get("tracking_number") or None,
            shipping_cost=shipment.get("shipping_cost", 0),
        )
        return items, payment_input, shipment_input


class CancelOrderRequestSerializer(serializers.Serializer):
    """Request body for canceling an order"""

    reason = serializers.CharField(help_text="Reason for cancellation", required=False, allow_blank=True)


# ===== Response Serializers =====


class OrderItemSerializer(serializers.ModelSerializer):
    subtotal = serializers.IntegerField(read_only=True)

    class Meta:
        model = OrderItem
        fields = ["id", "product", "product_name_snapshot", "price_snapshot", "quantity", "subtotal"]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = ["id", "order", "provider", "status", "transaction_id", "amount", "created_at", "paid_at"]
        read_only_fields = fields


class ShipmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Shipment
        fields = [
            "id",
            "order",
            "courier",
            "tracking_number",
            "status",
            "created_at",
            "shipped_at",
            "delivered_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    subtotal = serializers.IntegerField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "buyer",
            "status",
            "subtotal",
            "shipping_cost",
            "total_amount",
            "payment_method",
            "items",
            "cancellation_reason",
            "canceled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderDetailSerializer(OrderSerializer):
    payment = PaymentSerializer(read_only=True)
    shipment = ShipmentSerializer(read_only=True)

    class Meta(OrderSerializer.Meta):
        fields = OrderSerializer.Meta.fields + ["payment", "shipment"]
        read_only_fields = fields


class PlaceOrderResponseSerializer(serializers.Serializer):
    order = OrderSerializer()
    payment = PaymentSerializer()
    shipment = ShipmentSerializer()


class OrderListResponseSerializer(serializers.Serializer):
    """Paginated order list response"""

    count = serializers.IntegerField(help_text="Total number of orders")
    page = serializers.IntegerField(help_text="Current page number")
    page_size = serializers.IntegerField(help_text="Items per page")
    num_pages = serializers.IntegerField(help_text="Total number of pages")
    results = OrderSerializer(many=True)


class OrderSummarySerializer(serializers.Serializer):
    order_id = serializers.IntegerField()
    status = serializers.CharField()
    items_count = serializers.IntegerField()
    subtotal = serializers.IntegerField()
    shipping_cost = serializers.IntegerField()
    total = serializers.IntegerField()
    payment = serializers.DictField()
    shipment = serializers.DictField()
    created_at = serializers.DateTimeField()


class ErrorDetailSerializer(serializers.Serializer):
    code = serializers.CharField(help_text="Error code identifier")
    message = serializers.CharField(help_text="Human-readable error message")


class ErrorResponseSerializer(serializers.Serializer):
    """Standard error response"""

    success = serializers.BooleanField(default=False)
    error = ErrorDetailSerializer()
