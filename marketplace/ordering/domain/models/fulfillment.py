from django.db import models

from .order import Order


class Payment(models.Model):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (SUCCESS, "Success"),
        (FAILED, "Failed"),
        (CANCELED, "Canceled"),
    ]

    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name="payment")
    provider = models.CharField(max_length=50)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    transaction_id = models.CharField(max_length=100, unique=True)
    amount = models.PositiveBigIntegerField(help_text="Equals order.total_amount at creation")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        app_label = "marketplace"

    def __str__(self):
        return f"Payment {self.transaction_id} ({self.status})"


class Shipment(models.Model):
    WAITING_PICKUP = "waiting_pickup"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    RETURNED = "returned"

    STATUS_CHOICES = [
        (WAITING_PICKUP, "Waiting Pickup"),
        (IN_TRANSIT, "In Transit"),
        (DELIVERED, "Delivered"),
        (RETURNED, "Returned"),
    ]

    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name="shipment")
    courier = models.CharField(max_length=50)
    tracking_number = models.CharField(max_length=100, unique=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=WAITING_PICKUP)

    created_at = models.DateTimeField(auto_now_add=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        app_label = "marketplace"

    def __str__(self):
        return f"Shipment {self.tracking_number} via {self.courier}"
