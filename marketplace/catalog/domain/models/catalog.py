from django.db import models


class Product(models.Model):
    """
    Catalog entry read and written by checkout.

    Prices are integer minor currency units (cents). ``stock_quantity`` is only
    decremented under a row lock taken in the same transaction.
    """

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)

    # Pricing and Inventory
    price = models.PositiveBigIntegerField(help_text="Unit price in minor currency units")
    stock_quantity = models.PositiveIntegerField(default=0)

    is_active = models.BooleanField(default=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "marketplace"
        indexes = [
            models.Index(fields=["is_active", "-created_at"], name="product_active_created_idx"),
            models.Index(fields=["stock_quantity", "is_active"], name="product_stock_active_idx"),  # Stock availability
        ]

    def __str__(self):
        return self.name
