from prometheus_client import Counter, Histogram


# Order Metrics
orders_placed_total = Counter("marketplace_orders_placed_total", "Total orders placed", ["status"])
orders_canceled_total = Counter("marketplace_orders_canceled_total", "Total order cancellations", ["status"])
order_value = Histogram(
    "marketplace_order_value",
    "Order value distribution in minor currency units",
    buckets=[1000, 5000, 10000, 20000, 50000, 100000, 200000, 500000, float("inf")],
)

# Stock Metrics
stock_reservation_failures = Counter(
    "marketplace_stock_reservation_failure", "Stock reservation failures", ["reason"]
)
checkout_lock_timeouts_total = Counter(
    "marketplace_checkout_lock_timeouts_total", "Checkouts that gave up waiting for product row locks"
)

# Performance Metrics
checkout_duration = Histogram("marketplace_checkout_seconds", "Order placement transaction time")
