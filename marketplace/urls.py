from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .infra.observability.views import marketplace_prometheus_metrics
from .ordering.api.views import OrderViewSet

# Create the main router
router = DefaultRouter()
router.register(r"orders", OrderViewSet, basename="order")

app_name = "marketplace"

urlpatterns = [
    # Main API routes
    path("", include(router.urls)),
    # Prometheus metrics endpoint
    path("metrics/", marketplace_prometheus_metrics, name="marketplace-metrics"),
]
