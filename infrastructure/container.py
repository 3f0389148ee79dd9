"""
Dependency Injection Container
================================

Simple service locator pattern for wiring the ordering services.
Implements the Dependency Inversion Principle: services depend on the
repository interfaces, the container decides which implementations they get.

Usage:
    from infrastructure.container import container

    # In your view
    checkout = container.checkout_service()
    orders = container.order_query_service()
"""

import logging
from typing import Optional

from marketplace.ordering.domain.repositories import (
    OrderItemRepository,
    OrderRepository,
    PaymentRepository,
    ProductRepository,
    ShipmentRepository,
)

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Service container for repositories and ordering services.

    Implements lazy initialization and caching of service instances.
    Singleton pattern.
    """

    _instance: Optional["ServiceContainer"] = None
    _initialized: bool = False

    def __new__(cls):
        """Ensure only one instance exists (singleton pattern)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize container (only once)."""
        if not self._initialized:
            self._reset_instances()
            self._initialized = True
            logger.info("Service container initialized")

    def _reset_instances(self):
        # Repositories
        self._product_repository: Optional[ProductRepository] = None
        self._order_repository: Optional[OrderRepository] = None
        self._order_item_repository: Optional[OrderItemRepository] = None
        self._payment_repository: Optional[PaymentRepository] = None
        self._shipment_repository: Optional[ShipmentRepository] = None

        # Domain Services
        self._inventory_guard = None
        self._order_assembler = None
        self._fulfillment_initiator = None
        self._checkout_service = None
        self._order_query_service = None

    # ===== Repositories =====

    def product_repository(self) -> ProductRepository:
        if self._product_repository is None:
            from marketplace.ordering.infra.repositories import DjangoProductRepository

            self._product_repository = DjangoProductRepository()
        return self._product_repository

    def order_repository(self) -> OrderRepository:
        if self._order_repository is None:
            from marketplace.ordering.infra.repositories import DjangoOrderRepository

            self._order_repository = DjangoOrderRepository()
        return self._order_repository

    def order_item_repository(self) -> OrderItemRepository:
        if self._order_item_repository is None:
            from marketplace.ordering.infra.repositories import DjangoOrderItemRepository

            self._order_item_repository = DjangoOrderItemRepository()
        return self._order_item_repository

    def payment_repository(self) -> PaymentRepository:
        if self._payment_repository is None:
            from marketplace.ordering.infra.repositories import DjangoPaymentRepository

            self._payment_repository = DjangoPaymentRepository()
        return self._payment_repository

    def shipment_repository(self) -> ShipmentRepository:
        if self._shipment_repository is None:
            from marketplace.ordering.infra.repositories import DjangoShipmentRepository

            self._shipment_repository = DjangoShipmentRepository()
        return self._shipment_repository

    # ===== Domain Services =====

    def inventory_guard(self):
        """Get InventoryGuard instance."""
        if self._inventory_guard is None:
            from marketplace.ordering.domain.services import InventoryGuard

            self._inventory_guard = InventoryGuard(product_repository=self.product_repository())
            logger.debug("Created InventoryGuard")
        return self._inventory_guard

    def order_assembler(self):
        """Get OrderAssembler instance."""
        if self._order_assembler is None:
            from marketplace.ordering.domain.services import OrderAssembler

            self._order_assembler = OrderAssembler(
                order_repository=self.order_repository(), order_item_repository=self.order_item_repository()
            )
            logger.debug("Created OrderAssembler")
        return self._order_assembler

    def fulfillment_initiator(self):
        """Get FulfillmentInitiator instance."""
        if self._fulfillment_initiator is None:
            from marketplace.ordering.domain.services import FulfillmentInitiator

            self._fulfillment_initiator = FulfillmentInitiator(
                payment_repository=self.payment_repository(), shipment_repository=self.shipment_repository()
            )
            logger.debug("Created FulfillmentInitiator")
        return self._fulfillment_initiator

    def checkout_service(self):
        """Get CheckoutService instance."""
        if self._checkout_service is None:
            from marketplace.ordering.domain.services import CheckoutService

            # CheckoutService coordinates the three checkout collaborators
            self._checkout_service = CheckoutService(
                inventory_guard=self.inventory_guard(),
                order_assembler=self.order_assembler(),
                fulfillment_initiator=self.fulfillment_initiator(),
                order_repository=self.order_repository(),
                order_item_repository=self.order_item_repository(),
                payment_repository=self.payment_repository(),
            )
            logger.debug("Created CheckoutService")
        return self._checkout_service

    def order_query_service(self):
        """Get OrderQueryService instance."""
        if self._order_query_service is None:
            from marketplace.ordering.domain.services import OrderQueryService

            self._order_query_service = OrderQueryService(order_repository=self.order_repository())
            logger.debug("Created OrderQueryService")
        return self._order_query_service

    def reset(self):
        """
        Reset all cached service instances.

        Useful for testing or when switching between environments.
        """
        self._reset_instances()
        logger.info("Service container reset")


# Global singleton instance
container = ServiceContainer()


def get_checkout_service():
    """Get checkout service from global container."""
    return container.checkout_service()


def get_order_query_service():
    """Get order query service from global container."""
    return container.order_query_service()
