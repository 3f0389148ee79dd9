"""
FulfillmentInitiator - Payment and Shipment Records

Creates the single Payment and single Shipment that belong to a freshly
assembled order.
"""

from typing import Optional

from django.db import IntegrityError
from django.utils import timezone

from marketplace.ordering.domain.errors import InvalidInput, MissingField
from marketplace.ordering.domain.models import Order, Payment, Shipment
from marketplace.ordering.domain.repositories import PaymentRepository, ShipmentRepository
from marketplace.ordering.infra.repositories import DjangoPaymentRepository, DjangoShipmentRepository
from marketplace.services.base import BaseService
from utils.transaction_utils import UnitOfWork


def _epoch_millis() -> int:
    return int(timezone.now().timestamp() * 1000)


def generate_transaction_id(order: Order) -> str:
    # The order id makes it unique; the timestamp only aids support lookups
    return f"TXN-{_epoch_millis()}-{order.pk}"


GENERATED_TRACKING_PREFIX = "TRK-"


def generate_tracking_number(order: Order) -> str:
    return f"{GENERATED_TRACKING_PREFIX}{_epoch_millis()}-{order.pk}"


def _tracking_number_in_use(tracking_number: str) -> InvalidInput:
    return InvalidInput(f"Tracking number {tracking_number} is already in use", tracking_number=tracking_number)


class FulfillmentInitiator(BaseService):
    def __init__(
        self,
        payment_repository: Optional[PaymentRepository] = None,
        shipment_repository: Optional[ShipmentRepository] = None,
    ):
        super().__init__()
        self.payments = payment_repository or DjangoPaymentRepository()
        self.shipments = shipment_repository or DjangoShipmentRepository()

    @BaseService.log_performance
    def initiate_payment(self, uow: UnitOfWork, order: Order, provider: Optional[str]) -> Payment:
        """Create the pending payment for the full order total."""
        if not provider:
            raise MissingField("payment.provider")

        payment = self.payments.create(
            uow,
            order=order,
            provider=provider,
            transaction_id=generate_transaction_id(order),
            amount=order.total_amount,
            status=Payment.PENDING,
        )
        self.logger.info(f"Payment {payment.transaction_id} created for order {order.pk}: amount={payment.amount}")
        return payment

    @BaseService.log_performance
    def initiate_shipment(
        self, uow: UnitOfWork, order: Order, courier: Optional[str], tracking_number: Optional[str] = None
    ) -> Shipment:
        """Create the shipment awaiting pickup, generating a tracking number if none was given."""
        if not courier:
            raise MissingField("shipment.courier")
        if tracking_number:
            if tracking_number.startswith(GENERATED_TRACKING_PREFIX):
                raise InvalidInput(
                    f"Tracking numbers starting with {GENERATED_TRACKING_PREFIX} are reserved for generated ones",
                    tracking_number=tracking_number,
                )
            if self.shipments.tracking_number_taken(uow, tracking_number):
                raise _tracking_number_in_use(tracking_number)

        try:
            shipment = self.shipments.create(
                uow,
                order=order,
                courier=courier,
                tracking_number=tracking_number or generate_tracking_number(order),
                status=Shipment.WAITING_PICKUP,
            )
        except IntegrityError as e:
            # A concurrent checkout inserted the same number after our check
            if tracking_number:
                raise _tracking_number_in_use(tracking_number) from e
            raise

        self.logger.info(f"Shipment {shipment.tracking_number} ({courier}) created for order {order.pk}")
        return shipment
