"""
Service Container Tests
========================

Unit tests for dependency injection container.
"""

from django.test import SimpleTestCase

from infrastructure.container import ServiceContainer, container, get_checkout_service, get_order_query_service
from marketplace.ordering.domain.services import CheckoutService, OrderQueryService
from marketplace.ordering.infra.repositories import DjangoOrderRepository, DjangoProductRepository


class ServiceContainerTest(SimpleTestCase):
    """Test ServiceContainer implementation."""

    def setUp(self):
        """Set up test fixtures."""
        # Reset container before each test
        container.reset()

    def test_container_is_singleton(self):
        """Test that ServiceContainer is a singleton."""
        container1 = ServiceContainer()
        container2 = ServiceContainer()

        self.assertIs(container1, container2)
        self.assertIs(container1, container)

    def test_checkout_service_is_cached(self):
        checkout = container.checkout_service()

        self.assertIsInstance(checkout, CheckoutService)
        # Second call should return cached instance
        self.assertIs(checkout, container.checkout_service())
        self.assertIs(checkout, get_checkout_service())

    def test_checkout_collaborators_share_repositories(self):
        checkout = container.checkout_service()

        self.assertIs(checkout.inventory_guard, container.inventory_guard())
        self.assertIs(checkout.order_assembler, container.order_assembler())
        self.assertIs(checkout.fulfillment, container.fulfillment_initiator())
        self.assertIs(checkout.orders, container.order_repository())
        self.assertIs(checkout.order_assembler.orders, container.order_repository())
        self.assertIsInstance(checkout.inventory_guard.products, DjangoProductRepository)

    def test_order_query_service(self):
        service = get_order_query_service()

        self.assertIsInstance(service, OrderQueryService)
        self.assertIsInstance(service.orders, DjangoOrderRepository)

    def test_reset_container(self):
        """Test resetting container clears cached instances."""
        checkout = container.checkout_service()

        container.reset()

        self.assertIsNot(checkout, container.checkout_service())
