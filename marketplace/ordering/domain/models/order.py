from django.conf import settings
from django.db import models

from marketplace.catalog.domain.models.catalog import Product


class Order(models.Model):
    PENDING = "PENDING"
    PAID = "PAID"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"

    STATUS_CHOICES = [
        (PENDING, "Pending"),  # Only status an order is ever created with
        (PAID, "Paid"),
        (SHIPPED, "Shipped"),
        (DELIVERED, "Delivered"),
        (COMPLETED, "Completed"),
        (CANCELED, "Canceled"),
    ]

    # Statuses past the point where stock can be handed back
    NON_CANCELABLE_STATUSES = (SHIPPED, DELIVERED, COMPLETED)

    buyer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="orders")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)

    # Pricing (minor currency units)
    total_amount = models.PositiveBigIntegerField()
    shipping_cost = models.PositiveBigIntegerField(default=0)
    payment_method = models.CharField(max_length=50)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Cancellation
    cancellation_reason = models.TextField(blank=True)
    canceled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        app_label = "marketplace"
        indexes = [
            models.Index(fields=["buyer", "-created_at"], name="order_buyer_created_idx"),
            models.Index(fields=["buyer", "status"], name="order_buyer_status_idx"),
        ]

    @property
    def subtotal(self) -> int:
        return self.total_amount - self.shipping_cost

    def __str__(self):
        return f"Order {self.pk} ({self.status})"


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    # Product rows may be deleted later; the snapshot columns keep the line readable
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, related_name="order_items")

    quantity = models.PositiveIntegerField()

    # Product snapshot at time of purchase
    product_name_snapshot = models.CharField(max_length=200)
    price_snapshot = models.PositiveBigIntegerField()

    class Meta:
        ordering = ["id"]
        app_label = "marketplace"

    @property
    def subtotal(self) -> int:
        return self.price_snapshot * self.quantity

    def __str__(self):
        return f"{self.quantity}x {self.product_name_snapshot} in order {self.order_id}"
