from django.contrib import admin

from .models import Order, OrderItem, Payment, Product, Shipment


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "price", "stock_quantity", "is_active", "created_at")
    list_filter = ("is_active", "created_at")
    search_fields = ("name", "description")
    readonly_fields = ("created_at", "updated_at")

    fieldsets = (
        ("Basic Information", {"fields": ("name", "description")}),
        ("Pricing & Inventory", {"fields": ("price", "stock_quantity")}),
        ("Status", {"fields": ("is_active",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at"), "classes": ("collapse",)}),
    )

    actions = ["activate_products", "deactivate_products"]

    @admin.action(description="Activate selected products")
    def activate_products(self, request, queryset):
        updated = queryset.update(is_active=True)
        self.message_user(request, f"{updated} products activated.")

    @admin.action(description="Deactivate selected products")
    def deactivate_products(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f"{updated} products deactivated.")


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ("product", "product_name_snapshot", "price_snapshot", "quantity")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


class PaymentInline(admin.StackedInline):
    model = Payment
    extra = 0
    readonly_fields = ("provider", "status", "transaction_id", "amount", "created_at", "paid_at")


class ShipmentInline(admin.StackedInline):
    model = Shipment
    extra = 0
    readonly_fields = ("courier", "tracking_number", "status", "created_at", "shipped_at", "delivered_at")


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "buyer", "status", "total_amount", "payment_method", "created_at", "item_count")
    list_filter = ("status", "payment_method", "created_at")
    search_fields = ("id", "buyer__username", "buyer__email")
    readonly_fields = ("total_amount", "shipping_cost", "created_at", "updated_at", "canceled_at", "item_count")

    inlines = [OrderItemInline, PaymentInline, ShipmentInline]

    fieldsets = (
        ("Order Information", {"fields": ("buyer", "status", "payment_method")}),
        ("Pricing", {"fields": ("shipping_cost", "total_amount")}),
        ("Cancellation", {"fields": ("cancellation_reason", "canceled_at"), "classes": ("collapse",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at"), "classes": ("collapse",)}),
    )

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("buyer")

    @admin.display(description="Items")
    def item_count(self, obj):
        return obj.items.count()


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("transaction_id", "order", "provider", "status", "amount", "created_at")
    list_filter = ("status", "provider", "created_at")
    search_fields = ("transaction_id", "order__id")
    readonly_fields = ("transaction_id", "amount", "created_at", "updated_at")


@admin.register(Shipment)
class ShipmentAdmin(admin.ModelAdmin):
    list_display = ("tracking_number", "order", "courier", "status", "created_at")
    list_filter = ("status", "courier", "created_at")
    search_fields = ("tracking_number", "order__id")
    readonly_fields = ("tracking_number", "created_at")
