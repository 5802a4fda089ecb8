"""
Domain service: lifecycle state machines for devices and produce orders.

Both machines are table driven: every (state, event) pair maps to at most
one successor. Anything not in the table is an InvalidTransitionError.
"""
from datetime import datetime
from typing import Dict, Generic, Optional, Tuple, TypeVar
import logging

from farm_engine.domain.errors import InvalidTransitionError
from farm_engine.domain.models import (
    DeviceEvent,
    DeviceLifecycle,
    DeviceStatus,
    OrderEvent,
    OrderLifecycle,
    OrderStatus,
    TransitionRecord,
)
from farm_engine.config import settings

logger = logging.getLogger(__name__)

S = TypeVar("S")
E = TypeVar("E")


class StateMachine(Generic[S, E]):
    """Pure transition lookup over a fixed successor table."""

    entity = "entity"

    def __init__(self, table: Dict[Tuple[S, E], S]):
        self.table = table

    def transition(self, current: S, event: E) -> S:
        """
        Return the documented successor of ``current`` under ``event``.

        Raises:
            InvalidTransitionError: If the pair is not in the table
        """
        try:
            return self.table[(current, event)]
        except KeyError:
            raise InvalidTransitionError(self.entity, current.value, event.value) from None

    def allowed_events(self, current: S) -> list[E]:
        """Events the caller may offer from ``current``."""
        return [event for (state, event) in self.table if state == current]

    def is_terminal(self, current: S) -> bool:
        return not self.allowed_events(current)


class DeviceLifecycleMachine(StateMachine[DeviceStatus, DeviceEvent]):
    """
    Farmer onboarding and device connectivity.

    With ``instant_payment`` (the default) a purchase lands
    directly on PendingShipment; otherwise it waits in PendingPayment for
    a ConfirmPayment event.
    """

    entity = "device"

    def __init__(self, instant_payment: Optional[bool] = None):
        if instant_payment is None:
            instant_payment = settings.instant_payment
        self.instant_payment = instant_payment

        purchase_target = (
            DeviceStatus.PENDING_SHIPMENT if instant_payment else DeviceStatus.PENDING_PAYMENT
        )
        table = {
            (DeviceStatus.REGISTERED, DeviceEvent.PURCHASE): purchase_target,
            (DeviceStatus.PENDING_SHIPMENT, DeviceEvent.CONFIRM_SHIPMENT): DeviceStatus.SHIPPING,
            (DeviceStatus.SHIPPING, DeviceEvent.CONFIRM_DELIVERY): DeviceStatus.DELIVERED,
            (DeviceStatus.DELIVERED, DeviceEvent.REPORT_INSTALLATION):
                DeviceStatus.PENDING_INSTALL_CONFIRMATION,
            (DeviceStatus.DELIVERED, DeviceEvent.CONFIRM_INSTALLATION): DeviceStatus.ACTIVE,
            (DeviceStatus.PENDING_INSTALL_CONFIRMATION, DeviceEvent.CONFIRM_INSTALLATION):
                DeviceStatus.ACTIVE,
            (DeviceStatus.ACTIVE, DeviceEvent.CONNECT_DEVICE): DeviceStatus.DEVICE_ONLINE,
            (DeviceStatus.DEVICE_OFFLINE, DeviceEvent.CONNECT_DEVICE): DeviceStatus.DEVICE_ONLINE,
            (DeviceStatus.DEVICE_ONLINE, DeviceEvent.DISCONNECT): DeviceStatus.DEVICE_OFFLINE,
        }
        if not instant_payment:
            table[(DeviceStatus.PENDING_PAYMENT, DeviceEvent.CONFIRM_PAYMENT)] = (
                DeviceStatus.PENDING_SHIPMENT
            )
        super().__init__(table)

    def apply(
        self,
        lifecycle: DeviceLifecycle,
        event: DeviceEvent,
        now: datetime,
    ) -> DeviceLifecycle:
        """Apply ``event`` and return the new, timestamped lifecycle."""
        next_status = self.transition(lifecycle.status, event)
        record = TransitionRecord(
            event=event.value,
            from_status=lifecycle.status.value,
            to_status=next_status.value,
            at=now,
        )
        logger.info(
            f"Device {lifecycle.farmer_id}: {lifecycle.status.value} -> {next_status.value} ({event.value})"
        )
        return lifecycle.model_copy(update={
            "status": next_status,
            "updated_at": now,
            "transitions": [*lifecycle.transitions, record],
        })


class OrderLifecycleMachine(StateMachine[OrderStatus, OrderEvent]):
    """Forward-only produce order fulfilment; Completed and Canceled are terminal."""

    entity = "order"

    def __init__(self):
        table = {
            (OrderStatus.PENDING_PAYMENT, OrderEvent.PAY): OrderStatus.PROCESSING,
            (OrderStatus.PROCESSING, OrderEvent.SHIP): OrderStatus.SHIPPING,
            (OrderStatus.SHIPPING, OrderEvent.COMPLETE): OrderStatus.COMPLETED,
        }
        for status in (OrderStatus.PENDING_PAYMENT, OrderStatus.PROCESSING, OrderStatus.SHIPPING):
            table[(status, OrderEvent.CANCEL)] = OrderStatus.CANCELED
        super().__init__(table)

    def apply(
        self,
        order: OrderLifecycle,
        event: OrderEvent,
        now: datetime,
    ) -> OrderLifecycle:
        """Apply ``event`` and return the new, timestamped order."""
        next_status = self.transition(order.status, event)
        record = TransitionRecord(
            event=event.value,
            from_status=order.status.value,
            to_status=next_status.value,
            at=now,
        )
        logger.info(f"Order {order.order_id}: {order.status.value} -> {next_status.value}")
        return order.model_copy(update={
            "status": next_status,
            "updated_at": now,
            "transitions": [*order.transitions, record],
        })
