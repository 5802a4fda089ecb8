"""
Domain models for farm devices, orders, sensors and controllers.

These models represent the core domain entities and should be independent
of any infrastructure concerns (HTTP, storage, timers, etc.). State enums
carry opaque identifiers only; display labels live in the API layer.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator


class DeviceStatus(str, Enum):
    """Farmer onboarding / device lifecycle states, in advancing order."""
    REGISTERED = "registered"
    PENDING_PAYMENT = "pending_payment"
    PENDING_SHIPMENT = "pending_shipment"
    SHIPPING = "shipping"
    DELIVERED = "delivered"
    PENDING_INSTALL_CONFIRMATION = "pending_install_confirmation"
    ACTIVE = "active"
    DEVICE_OFFLINE = "device_offline"
    DEVICE_ONLINE = "device_online"


class DeviceEvent(str, Enum):
    PURCHASE = "purchase"
    CONFIRM_PAYMENT = "confirm_payment"
    CONFIRM_SHIPMENT = "confirm_shipment"
    CONFIRM_DELIVERY = "confirm_delivery"
    REPORT_INSTALLATION = "report_installation"
    CONFIRM_INSTALLATION = "confirm_installation"
    CONNECT_DEVICE = "connect_device"
    DISCONNECT = "disconnect"


class OrderStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    PROCESSING = "processing"
    SHIPPING = "shipping"
    COMPLETED = "completed"
    CANCELED = "canceled"


class OrderEvent(str, Enum):
    PAY = "pay"
    SHIP = "ship"
    COMPLETE = "complete"
    CANCEL = "cancel"


class ControlMode(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class DevicePlan(str, Enum):
    STANDARD = "standard"
    PREMIUM = "premium"


class TransitionRecord(BaseModel):
    """A single applied lifecycle transition."""
    event: str
    from_status: str
    to_status: str
    at: datetime


# ============================================================
# Lifecycles
# ============================================================

class DeviceLifecycle(BaseModel):
    """Onboarding and connectivity state of one farmer's device."""
    farmer_id: str
    status: DeviceStatus = DeviceStatus.REGISTERED
    updated_at: datetime
    transitions: List[TransitionRecord] = Field(default_factory=list)


class DevicePurchase(BaseModel):
    """Purchase record created by a successful Purchase event."""
    purchase_id: str
    farmer_id: str
    plan: DevicePlan
    amount: int = Field(description="Package price in rupiah")
    purchased_at: datetime


class OrderItem(BaseModel):
    product_id: str
    product_name: str
    quantity: int = Field(ge=1)
    price: float = Field(ge=0)


class OrderLifecycle(BaseModel):
    """A produce order and its fulfilment state."""
    order_id: str
    buyer_id: str
    farmer_id: str
    items: List[OrderItem]
    total: float
    ordered_at: datetime
    status: OrderStatus = OrderStatus.PROCESSING
    updated_at: datetime
    transitions: List[TransitionRecord] = Field(default_factory=list)


# ============================================================
# Sensors and controllers
# ============================================================

class SensorSample(BaseModel):
    """One humidity/temperature reading from the device."""
    timestamp: datetime
    humidity_percent: float = Field(ge=0, le=100)
    temperature_celsius: float

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class LogEntry(BaseModel):
    timestamp: datetime
    message: str


class IrrigationState(BaseModel):
    """
    Pump control state.

    The log is stored oldest-first; most-recent-first ordering is a
    display concern.
    """
    mode: ControlMode = ControlMode.MANUAL
    pump_on: bool = False
    log: List[LogEntry] = Field(default_factory=list)


class HumidityBand(BaseModel):
    """Target humidity band in percent."""
    min: float = Field(ge=0, le=100)
    max: float = Field(ge=0, le=100)

    @model_validator(mode="after")
    def _check_order(self) -> "HumidityBand":
        if self.min >= self.max:
            raise ValueError(f"Humidity band min ({self.min}) must be below max ({self.max})")
        return self


class SprayIdle(BaseModel):
    kind: Literal["idle"] = "idle"


class Spraying(BaseModel):
    """
    An in-flight spray.

    Automatic sprays carry a fixed ``until``; manual sprays run until the
    operator turns them off and have no ``until``.
    """
    kind: Literal["spraying"] = "spraying"
    trigger: ControlMode
    started_at: datetime
    until: Optional[datetime] = None


SprayActivity = Union[SprayIdle, Spraying]


class SprayRecord(BaseModel):
    timestamp: datetime
    duration_seconds: float
    trigger: ControlMode


class MistState(BaseModel):
    """Mist sprayer control state."""
    mode: ControlMode = ControlMode.MANUAL
    activity: SprayActivity = Field(default_factory=SprayIdle, discriminator="kind")
    target_band: HumidityBand = Field(default_factory=lambda: HumidityBand(min=60.0, max=70.0))
    history: List[SprayRecord] = Field(default_factory=list)

    @property
    def sprayer_on(self) -> bool:
        return isinstance(self.activity, Spraying)


# ============================================================
# Eco-score
# ============================================================

class EcoInputs(BaseModel):
    """Manually entered daily resource usage."""
    fertilizer_kg_per_day: float = Field(default=0.0, ge=0)
    pesticide_kg_per_day: float = Field(default=0.0, ge=0)
    energy_kwh_per_day: float = Field(default=0.0, ge=0)
    waste_kg_per_day: float = Field(default=0.0, ge=0)


class UsageTotals(BaseModel):
    """Actuator usage accumulated from sensor ticks and completed sprays."""
    pump_minutes_on: float = 0.0
    sprayer_seconds_on: float = 0.0
    observations: int = 0


class EcoScore(BaseModel):
    composite: float
    water: float
    fertilizer: float
    pesticide: float
    energy: float
    waste: float
    total_water_liters: float
    category: str
    description: str
    recommendation: str


# ============================================================
# Forecast
# ============================================================

class ForecastSeries(BaseModel):
    commodity: str
    history: List[float]
    projected_values: List[float]
    series: List[float]
    average_growth_rate: float
    summary: str


# ============================================================
# Aggregate
# ============================================================

class FarmRecord(BaseModel):
    """Everything the engine owns for one farmer session."""
    farmer_id: str
    name: str
    lifecycle: DeviceLifecycle
    purchase: Optional[DevicePurchase] = None
    irrigation: IrrigationState = Field(default_factory=IrrigationState)
    mist: MistState = Field(default_factory=MistState)
    samples: List[SensorSample] = Field(default_factory=list)
    usage: UsageTotals = Field(default_factory=UsageTotals)

    @property
    def latest_sample(self) -> Optional[SensorSample]:
        return self.samples[-1] if self.samples else None
