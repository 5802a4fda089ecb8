"""
Application service: Orchestration layer for farm automation operations.
"""
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple
import logging
import threading
import uuid

from farm_engine.config import settings
from farm_engine.domain.errors import DeviceNotOnlineError, InvalidInputError
from farm_engine.domain.models import (
    ControlMode,
    DeviceEvent,
    DeviceLifecycle,
    DevicePlan,
    DevicePurchase,
    DeviceStatus,
    EcoInputs,
    EcoScore,
    FarmRecord,
    ForecastSeries,
    HumidityBand,
    IrrigationState,
    MistState,
    OrderEvent,
    OrderItem,
    OrderLifecycle,
    OrderStatus,
    SensorSample,
    Spraying,
)
from farm_engine.infrastructure.repository import FarmRepository
from farm_engine.infrastructure.timers import TimerService
from farm_engine.services.domain.eco_score import EcoScoreEngine, sustainability_report
from farm_engine.services.domain.forecast_engine import ForecastEngine
from farm_engine.services.domain.irrigation_controller import IrrigationController
from farm_engine.services.domain.lifecycle import DeviceLifecycleMachine, OrderLifecycleMachine
from farm_engine.services.domain.mist_controller import MistController

logger = logging.getLogger(__name__)

PLAN_PRICES = {
    DevicePlan.STANDARD: 350000,
    DevicePlan.PREMIUM: 450000,
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FarmService:
    """
    Application service for farm automation.

    Orchestrates the repository, the lifecycle machines and the controllers.
    Every operation loads the entities it needs, runs the pure domain logic
    and saves the result; no business rules live here. Operations on one
    farmer are serialized by a per-farmer lock.
    """

    def __init__(
        self,
        repository: FarmRepository,
        timers: TimerService,
        clock: Callable[[], datetime] = utc_now,
        device_machine: Optional[DeviceLifecycleMachine] = None,
        order_machine: Optional[OrderLifecycleMachine] = None,
        irrigation: Optional[IrrigationController] = None,
        mist: Optional[MistController] = None,
        eco_engine: Optional[EcoScoreEngine] = None,
        forecaster: Optional[ForecastEngine] = None,
        sensor_buffer_size: Optional[int] = None,
        cancel_spray_on_disconnect: Optional[bool] = None,
    ):
        """
        Initialize the service with dependencies.

        Args:
            repository: Persistence for farms and orders
            timers: Single-shot timer service for spray completion
            clock: Source of "now" for operator actions
        """
        self.repository = repository
        self.timers = timers
        self.clock = clock
        self.device_machine = device_machine or DeviceLifecycleMachine()
        self.order_machine = order_machine or OrderLifecycleMachine()
        self.irrigation = irrigation or IrrigationController()
        self.mist = mist or MistController()
        self.eco_engine = eco_engine or EcoScoreEngine()
        self.forecaster = forecaster or ForecastEngine()
        self.sensor_buffer_size = sensor_buffer_size or settings.sensor_buffer_size
        if cancel_spray_on_disconnect is None:
            cancel_spray_on_disconnect = settings.cancel_spray_on_disconnect
        self.cancel_spray_on_disconnect = cancel_spray_on_disconnect
        self._locks = {}
        self._order_lock = threading.RLock()

    @contextmanager
    def _farm_lock(self, farmer_id: str) -> Iterator[None]:
        lock = self._locks.get(farmer_id)
        if lock is None:
            # Only farmers that exist get a lock
            self.repository.get_farm(farmer_id)
            lock = self._locks.setdefault(farmer_id, threading.RLock())
        with lock:
            yield

    # ------------------------------------------------------------
    # Farmers and device lifecycle
    # ------------------------------------------------------------

    def register_farmer(self, name: str, farmer_id: Optional[str] = None) -> FarmRecord:
        """Create a farmer session at Registered with default controller state."""
        farmer_id = farmer_id or f"farmer-{uuid.uuid4().hex[:12]}"
        if any(farm.farmer_id == farmer_id for farm in self.repository.list_farms()):
            raise InvalidInputError(f"Farmer '{farmer_id}' already exists")

        now = self.clock()
        farm = FarmRecord(
            farmer_id=farmer_id,
            name=name,
            lifecycle=DeviceLifecycle(farmer_id=farmer_id, updated_at=now),
            mist=MistState(target_band=HumidityBand(
                min=settings.mist_target_min_percent,
                max=settings.mist_target_max_percent,
            )),
        )
        self.repository.save_farm(farm)
        logger.info(f"Registered farmer {farmer_id}")
        return farm

    def get_farm(self, farmer_id: str) -> FarmRecord:
        return self.repository.get_farm(farmer_id)

    def get_lifecycle_state(self, farmer_id: str) -> DeviceLifecycle:
        return self.repository.get_farm(farmer_id).lifecycle

    def apply_lifecycle_event(
        self,
        farmer_id: str,
        event: DeviceEvent,
        plan: DevicePlan = DevicePlan.STANDARD,
    ) -> DeviceLifecycle:
        """
        Advance a farmer's device lifecycle.

        A successful Purchase records the device purchase. Disconnect stops
        sample production; an in-flight spray is left to complete unless
        ``cancel_spray_on_disconnect`` is set.

        Raises:
            InvalidTransitionError: If the event is not valid from the current state
            NotFoundError: If the farmer does not exist
        """
        with self._farm_lock(farmer_id):
            farm = self.repository.get_farm(farmer_id)
            now = self._operator_now(farm)
            lifecycle = self.device_machine.apply(farm.lifecycle, event, now)
            updates = {"lifecycle": lifecycle}

            if event == DeviceEvent.PURCHASE:
                updates["purchase"] = DevicePurchase(
                    purchase_id=f"dev-{uuid.uuid4().hex[:12]}",
                    farmer_id=farmer_id,
                    plan=plan,
                    amount=PLAN_PRICES[plan],
                    purchased_at=now,
                )
            elif event == DeviceEvent.DISCONNECT and self.cancel_spray_on_disconnect:
                self.timers.cancel(self._timer_key(farmer_id))
                farm = self._with_mist(farm, self.mist.abort(farm.mist, now))

            farm = farm.model_copy(update=updates)
            self.repository.save_farm(farm)
            return farm.lifecycle

    # ------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------

    def create_order(
        self,
        buyer_id: str,
        farmer_id: str,
        items: Sequence[OrderItem],
        paid: bool = True,
    ) -> OrderLifecycle:
        """Place a produce order; a paid order starts at Processing."""
        if not items:
            raise InvalidInputError("An order needs at least one item")
        now = self.clock()
        order = OrderLifecycle(
            order_id=f"ord-{uuid.uuid4().hex[:12]}",
            buyer_id=buyer_id,
            farmer_id=farmer_id,
            items=list(items),
            total=round(sum(item.price * item.quantity for item in items), 2),
            ordered_at=now,
            updated_at=now,
            status=OrderStatus.PROCESSING if paid else OrderStatus.PENDING_PAYMENT,
        )
        self.repository.save_order(order)
        logger.info(f"Order {order.order_id} placed by {buyer_id} ({order.status.value})")
        return order

    def get_order(self, order_id: str) -> OrderLifecycle:
        return self.repository.get_order(order_id)

    def list_orders(
        self,
        farmer_id: Optional[str] = None,
        buyer_id: Optional[str] = None,
    ) -> List[OrderLifecycle]:
        return self.repository.list_orders(farmer_id=farmer_id, buyer_id=buyer_id)

    def apply_order_event(self, order_id: str, event: OrderEvent) -> OrderLifecycle:
        """
        Advance an order.

        Raises:
            InvalidTransitionError: If the order is terminal or the event is out of order
        """
        with self._order_lock:
            order = self.repository.get_order(order_id)
            order = self.order_machine.apply(order, event, self.clock())
            self.repository.save_order(order)
            return order

    # ------------------------------------------------------------
    # Sensor ticks and controllers
    # ------------------------------------------------------------

    def tick(self, farmer_id: str, sample: SensorSample) -> Tuple[IrrigationState, MistState]:
        """
        Feed one sensor sample through both controllers.

        Order within a tick: record the sample and usage, complete any spray
        that is already due, then evaluate irrigation and mist.

        Raises:
            DeviceNotOnlineError: If the device is not online
            InvalidInputError: If the sample is not newer than the last sample,
                log entry or spray on the farm's timeline
        """
        with self._farm_lock(farmer_id):
            farm = self.repository.get_farm(farmer_id)
            if farm.lifecycle.status != DeviceStatus.DEVICE_ONLINE:
                raise DeviceNotOnlineError(farmer_id, farm.lifecycle.status.value)

            previous = farm.latest_sample
            latest = self._latest_event(farm)
            if latest is not None and sample.timestamp <= latest:
                raise InvalidInputError(
                    f"Sample at {sample.timestamp.isoformat()} is not newer than the "
                    f"farm's last recorded event at {latest.isoformat()}"
                )

            usage = farm.usage.model_copy(update={"observations": farm.usage.observations + 1})
            if previous is not None and farm.irrigation.pump_on:
                elapsed_minutes = (sample.timestamp - previous.timestamp).total_seconds() / 60
                usage.pump_minutes_on += elapsed_minutes

            farm = farm.model_copy(update={
                "samples": [*farm.samples, sample][-self.sensor_buffer_size:],
                "usage": usage,
            })
            farm = self._with_mist(farm, self.mist.complete_if_due(farm.mist, sample.timestamp))

            irrigation = self.irrigation.evaluate(
                sample.temperature_celsius, farm.irrigation, sample.timestamp
            )
            before = farm.mist
            mist = self.mist.evaluate(sample.humidity_percent, before, sample.timestamp)
            farm = self._with_mist(farm.model_copy(update={"irrigation": irrigation}), mist)
            self.repository.save_farm(farm)

            started = self.mist.started_spray(before, mist)
            if started is not None:
                self._schedule_completion(farmer_id, started.started_at)

            return farm.irrigation, farm.mist

    def complete_spray(self, farmer_id: str, started_at: datetime) -> MistState:
        """Timer callback: finish the automatic spray that began at ``started_at``."""
        with self._farm_lock(farmer_id):
            farm = self.repository.get_farm(farmer_id)
            farm = self._with_mist(farm, self.mist.on_spray_complete(farm.mist, started_at))
            self.repository.save_farm(farm)
            return farm.mist

    def get_samples(self, farmer_id: str) -> List[SensorSample]:
        return self.repository.get_farm(farmer_id).samples

    def get_irrigation(self, farmer_id: str) -> IrrigationState:
        return self.repository.get_farm(farmer_id).irrigation

    def get_mist(self, farmer_id: str) -> MistState:
        return self.repository.get_farm(farmer_id).mist

    def toggle_manual_pump(self, farmer_id: str, on: bool) -> IrrigationState:
        """
        Raises:
            AutoModeActiveError: If irrigation is in automatic mode
        """
        with self._farm_lock(farmer_id):
            farm = self.repository.get_farm(farmer_id)
            irrigation = self.irrigation.toggle_manual(farm.irrigation, on, self._operator_now(farm))
            farm = farm.model_copy(update={"irrigation": irrigation})
            self.repository.save_farm(farm)
            return irrigation

    def toggle_manual_sprayer(self, farmer_id: str, on: bool) -> MistState:
        """
        Raises:
            AutoModeActiveError: If the mist sprayer is in automatic mode
        """
        with self._farm_lock(farmer_id):
            farm = self.repository.get_farm(farmer_id)
            mist = self.mist.toggle_manual(farm.mist, on, self._operator_now(farm))
            farm = self._with_mist(farm, mist)
            self.repository.save_farm(farm)
            return farm.mist

    def set_irrigation_mode(self, farmer_id: str, mode: ControlMode) -> IrrigationState:
        with self._farm_lock(farmer_id):
            farm = self.repository.get_farm(farmer_id)
            irrigation = self.irrigation.set_mode(farm.irrigation, mode)
            self.repository.save_farm(farm.model_copy(update={"irrigation": irrigation}))
            return irrigation

    def set_mist_mode(self, farmer_id: str, mode: ControlMode) -> MistState:
        with self._farm_lock(farmer_id):
            farm = self.repository.get_farm(farmer_id)
            mist = self.mist.set_mode(farm.mist, mode, self._operator_now(farm))
            farm = self._with_mist(farm, mist)
            self.repository.save_farm(farm)
            return farm.mist

    def set_mist_target_band(self, farmer_id: str, band: HumidityBand) -> MistState:
        with self._farm_lock(farmer_id):
            farm = self.repository.get_farm(farmer_id)
            farm = self._with_mist(farm, self.mist.set_target_band(farm.mist, band))
            self.repository.save_farm(farm)
            return farm.mist

    def online_farmers(self) -> List[FarmRecord]:
        return [
            farm for farm in self.repository.list_farms()
            if farm.lifecycle.status == DeviceStatus.DEVICE_ONLINE
        ]

    # ------------------------------------------------------------
    # Eco-score and forecast
    # ------------------------------------------------------------

    def compute_eco_score(self, farmer_id: str, usage: EcoInputs) -> EcoScore:
        """
        Raises:
            NoSensorDataError: If no sensor sample has been observed for the farmer
        """
        totals = self.repository.get_farm(farmer_id).usage
        return self.eco_engine.score(usage, totals)

    def sustainability_report(self, farmer_id: str, usage: EcoInputs) -> str:
        """Eco-score for ``usage`` rendered as a downloadable text report."""
        farm = self.repository.get_farm(farmer_id)
        score = self.eco_engine.score(usage, farm.usage)
        return sustainability_report(farm.name, score, self.clock())

    def run_forecast(
        self,
        commodity: str,
        history: Sequence[Any],
        horizon: Optional[int] = None,
    ) -> ForecastSeries:
        """
        Raises:
            InvalidInputError: If the history is malformed
        """
        return self.forecaster.forecast(commodity, history, horizon)

    # ------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------

    @staticmethod
    def _latest_event(farm: FarmRecord) -> Optional[datetime]:
        """Most recent timestamp on the farm's timeline (samples, pump log, sprays)."""
        stamps = [entry.timestamp for entry in farm.irrigation.log[-1:]]
        stamps += [record.timestamp for record in farm.mist.history[-1:]]
        if farm.latest_sample is not None:
            stamps.append(farm.latest_sample.timestamp)
        if isinstance(farm.mist.activity, Spraying):
            stamps.append(farm.mist.activity.started_at)
        return max(stamps, default=None)

    def _operator_now(self, farm: FarmRecord) -> datetime:
        """Clock reading for an operator action, kept strictly after the farm's last event."""
        now = self.clock()
        latest = self._latest_event(farm)
        if latest is not None and now <= latest:
            now = latest + timedelta(microseconds=1)
        return now

    @staticmethod
    def _timer_key(farmer_id: str) -> str:
        return f"mist:{farmer_id}"

    def _schedule_completion(self, farmer_id: str, started_at: datetime) -> None:
        self.timers.schedule(
            self._timer_key(farmer_id),
            self.mist.config.spray_duration_seconds,
            lambda: self.complete_spray(farmer_id, started_at),
        )

    @staticmethod
    def _with_mist(farm: FarmRecord, mist: MistState) -> FarmRecord:
        """Attach a new mist state, crediting newly recorded sprays to usage totals."""
        if mist is farm.mist:
            return farm
        new_records = mist.history[len(farm.mist.history):]
        usage = farm.usage
        if new_records:
            sprayed = sum(record.duration_seconds for record in new_records)
            usage = usage.model_copy(update={"sprayer_seconds_on": usage.sprayer_seconds_on + sprayed})
        return farm.model_copy(update={"mist": mist, "usage": usage})
