"""
Unit tests for the device and order lifecycle state machines.

Tests cover:
- Exhaustive (state, event) tables
- Payment policy (instant vs observable PendingPayment)
- Timestamped transition records
- Terminal order states
"""
import pytest

from farm_engine.domain.errors import InvalidTransitionError
from farm_engine.domain.models import (
    DeviceEvent,
    DeviceLifecycle,
    DeviceStatus,
    OrderEvent,
    OrderLifecycle,
    OrderItem,
    OrderStatus,
)
from farm_engine.services.domain.lifecycle import (
    DeviceLifecycleMachine,
    OrderLifecycleMachine,
)
from conftest import BASE_TIME


DEVICE_SUCCESSORS = {
    (DeviceStatus.REGISTERED, DeviceEvent.PURCHASE): DeviceStatus.PENDING_SHIPMENT,
    (DeviceStatus.PENDING_SHIPMENT, DeviceEvent.CONFIRM_SHIPMENT): DeviceStatus.SHIPPING,
    (DeviceStatus.SHIPPING, DeviceEvent.CONFIRM_DELIVERY): DeviceStatus.DELIVERED,
    (DeviceStatus.DELIVERED, DeviceEvent.REPORT_INSTALLATION): DeviceStatus.PENDING_INSTALL_CONFIRMATION,
    (DeviceStatus.DELIVERED, DeviceEvent.CONFIRM_INSTALLATION): DeviceStatus.ACTIVE,
    (DeviceStatus.PENDING_INSTALL_CONFIRMATION, DeviceEvent.CONFIRM_INSTALLATION): DeviceStatus.ACTIVE,
    (DeviceStatus.ACTIVE, DeviceEvent.CONNECT_DEVICE): DeviceStatus.DEVICE_ONLINE,
    (DeviceStatus.DEVICE_OFFLINE, DeviceEvent.CONNECT_DEVICE): DeviceStatus.DEVICE_ONLINE,
    (DeviceStatus.DEVICE_ONLINE, DeviceEvent.DISCONNECT): DeviceStatus.DEVICE_OFFLINE,
}

ORDER_SUCCESSORS = {
    (OrderStatus.PENDING_PAYMENT, OrderEvent.PAY): OrderStatus.PROCESSING,
    (OrderStatus.PROCESSING, OrderEvent.SHIP): OrderStatus.SHIPPING,
    (OrderStatus.SHIPPING, OrderEvent.COMPLETE): OrderStatus.COMPLETED,
    (OrderStatus.PENDING_PAYMENT, OrderEvent.CANCEL): OrderStatus.CANCELED,
    (OrderStatus.PROCESSING, OrderEvent.CANCEL): OrderStatus.CANCELED,
    (OrderStatus.SHIPPING, OrderEvent.CANCEL): OrderStatus.CANCELED,
}


def make_order(status: OrderStatus) -> OrderLifecycle:
    return OrderLifecycle(
        order_id="ord-1",
        buyer_id="buyer-1",
        farmer_id="farmer-1",
        items=[OrderItem(product_id="prod-1", product_name="Tomat Ceri Organik", quantity=1, price=25000)],
        total=25000,
        ordered_at=BASE_TIME,
        updated_at=BASE_TIME,
        status=status,
    )


# ============================================================
# Device Lifecycle Tests
# ============================================================

class TestDeviceLifecycleTable:
    """Every (state, event) pair yields its one successor or InvalidTransition."""

    @pytest.mark.parametrize("current", list(DeviceStatus))
    @pytest.mark.parametrize("event", list(DeviceEvent))
    def test_exhaustive_table(self, current, event):
        machine = DeviceLifecycleMachine(instant_payment=True)
        expected = DEVICE_SUCCESSORS.get((current, event))

        if expected is None:
            with pytest.raises(InvalidTransitionError):
                machine.transition(current, event)
        else:
            assert machine.transition(current, event) == expected

    def test_offline_online_toggle(self):
        """Once active, the device toggles freely between online and offline."""
        machine = DeviceLifecycleMachine(instant_payment=True)
        status = machine.transition(DeviceStatus.ACTIVE, DeviceEvent.CONNECT_DEVICE)

        for _ in range(3):
            status = machine.transition(status, DeviceEvent.DISCONNECT)
            assert status == DeviceStatus.DEVICE_OFFLINE
            status = machine.transition(status, DeviceEvent.CONNECT_DEVICE)
            assert status == DeviceStatus.DEVICE_ONLINE

    def test_error_names_state_and_event(self):
        machine = DeviceLifecycleMachine(instant_payment=True)

        with pytest.raises(InvalidTransitionError) as exc_info:
            machine.transition(DeviceStatus.REGISTERED, DeviceEvent.CONNECT_DEVICE)

        assert exc_info.value.current == "registered"
        assert exc_info.value.event == "connect_device"

    def test_allowed_events(self):
        machine = DeviceLifecycleMachine(instant_payment=True)

        assert machine.allowed_events(DeviceStatus.DELIVERED) == [
            DeviceEvent.REPORT_INSTALLATION,
            DeviceEvent.CONFIRM_INSTALLATION,
        ]
        assert machine.allowed_events(DeviceStatus.DEVICE_ONLINE) == [DeviceEvent.DISCONNECT]


class TestPaymentPolicy:
    """Purchase skips or passes through PendingPayment."""

    def test_instant_payment_skips_pending_payment(self):
        machine = DeviceLifecycleMachine(instant_payment=True)

        assert machine.transition(DeviceStatus.REGISTERED, DeviceEvent.PURCHASE) == DeviceStatus.PENDING_SHIPMENT
        with pytest.raises(InvalidTransitionError):
            machine.transition(DeviceStatus.PENDING_PAYMENT, DeviceEvent.CONFIRM_PAYMENT)

    def test_observable_payment(self):
        machine = DeviceLifecycleMachine(instant_payment=False)

        status = machine.transition(DeviceStatus.REGISTERED, DeviceEvent.PURCHASE)
        assert status == DeviceStatus.PENDING_PAYMENT

        status = machine.transition(status, DeviceEvent.CONFIRM_PAYMENT)
        assert status == DeviceStatus.PENDING_SHIPMENT

    def test_pending_payment_cannot_ship(self):
        machine = DeviceLifecycleMachine(instant_payment=False)

        with pytest.raises(InvalidTransitionError):
            machine.transition(DeviceStatus.PENDING_PAYMENT, DeviceEvent.CONFIRM_SHIPMENT)


class TestDeviceApply:
    """Applying events returns a new, timestamped lifecycle."""

    def test_apply_records_transition(self):
        machine = DeviceLifecycleMachine(instant_payment=True)
        lifecycle = DeviceLifecycle(farmer_id="farmer-1", updated_at=BASE_TIME)

        updated = machine.apply(lifecycle, DeviceEvent.PURCHASE, BASE_TIME)

        assert updated.status == DeviceStatus.PENDING_SHIPMENT
        assert updated.updated_at == BASE_TIME
        assert len(updated.transitions) == 1
        record = updated.transitions[0]
        assert record.event == "purchase"
        assert record.from_status == "registered"
        assert record.to_status == "pending_shipment"

    def test_apply_does_not_mutate_input(self):
        machine = DeviceLifecycleMachine(instant_payment=True)
        lifecycle = DeviceLifecycle(farmer_id="farmer-1", updated_at=BASE_TIME)

        machine.apply(lifecycle, DeviceEvent.PURCHASE, BASE_TIME)

        assert lifecycle.status == DeviceStatus.REGISTERED
        assert lifecycle.transitions == []

    def test_failed_apply_leaves_state(self):
        machine = DeviceLifecycleMachine(instant_payment=True)
        lifecycle = DeviceLifecycle(farmer_id="farmer-1", updated_at=BASE_TIME)

        with pytest.raises(InvalidTransitionError):
            machine.apply(lifecycle, DeviceEvent.CONFIRM_DELIVERY, BASE_TIME)

        assert lifecycle.status == DeviceStatus.REGISTERED


# ============================================================
# Order Lifecycle Tests
# ============================================================

class TestOrderLifecycleTable:
    """Forward-only order transitions with cancellation."""

    @pytest.mark.parametrize("current", list(OrderStatus))
    @pytest.mark.parametrize("event", list(OrderEvent))
    def test_exhaustive_table(self, current, event):
        machine = OrderLifecycleMachine()
        expected = ORDER_SUCCESSORS.get((current, event))

        if expected is None:
            with pytest.raises(InvalidTransitionError):
                machine.transition(current, event)
        else:
            assert machine.transition(current, event) == expected

    @pytest.mark.parametrize("terminal", [OrderStatus.COMPLETED, OrderStatus.CANCELED])
    def test_terminal_states_reject_everything(self, terminal):
        machine = OrderLifecycleMachine()
        order = make_order(terminal)

        assert machine.is_terminal(terminal)
        for event in OrderEvent:
            with pytest.raises(InvalidTransitionError):
                machine.apply(order, event, BASE_TIME)

    def test_full_fulfilment(self):
        machine = OrderLifecycleMachine()
        order = make_order(OrderStatus.PROCESSING)

        order = machine.apply(order, OrderEvent.SHIP, BASE_TIME)
        order = machine.apply(order, OrderEvent.COMPLETE, BASE_TIME)

        assert order.status == OrderStatus.COMPLETED
        assert [t.to_status for t in order.transitions] == ["shipping", "completed"]
