"""
API response models using Pydantic.

Log and history lists are returned most-recent-first; the engine stores
them oldest-first.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from farm_engine.api.v1.labels import (
    DEVICE_STATUS_LABELS,
    ECO_CATEGORY_LABELS,
    MODE_LABELS,
    ORDER_STATUS_LABELS,
)
from farm_engine.domain.models import (
    DeviceLifecycle,
    DevicePurchase,
    EcoScore,
    HumidityBand,
    IrrigationState,
    LogEntry,
    MistState,
    OrderItem,
    OrderLifecycle,
    SensorSample,
    SprayRecord,
    Spraying,
    TransitionRecord,
)


class LifecycleResponse(BaseModel):
    """Device lifecycle for one farmer."""
    farmer_id: str
    status: str = Field(description="Opaque lifecycle state id")
    status_label: str
    allowed_events: List[str] = Field(
        description="Events valid from the current state"
    )
    updated_at: datetime
    transitions: List[TransitionRecord]
    purchase: Optional[DevicePurchase] = None

    @classmethod
    def build(
        cls,
        lifecycle: DeviceLifecycle,
        allowed_events: List[str],
        purchase: Optional[DevicePurchase] = None,
    ) -> "LifecycleResponse":
        return cls(
            farmer_id=lifecycle.farmer_id,
            status=lifecycle.status.value,
            status_label=DEVICE_STATUS_LABELS[lifecycle.status],
            allowed_events=allowed_events,
            updated_at=lifecycle.updated_at,
            transitions=lifecycle.transitions,
            purchase=purchase,
        )


class OrderResponse(BaseModel):
    order_id: str
    buyer_id: str
    farmer_id: str
    items: List[OrderItem]
    total: float
    ordered_at: datetime
    status: str
    status_label: str
    allowed_events: List[str]
    updated_at: datetime
    transitions: List[TransitionRecord]

    @classmethod
    def build(cls, order: OrderLifecycle, allowed_events: List[str]) -> "OrderResponse":
        return cls(
            **order.model_dump(exclude={"status"}),
            status=order.status.value,
            status_label=ORDER_STATUS_LABELS[order.status],
            allowed_events=allowed_events,
        )


class IrrigationResponse(BaseModel):
    mode: str
    mode_label: str
    pump_on: bool
    log: List[LogEntry]

    @classmethod
    def build(cls, state: IrrigationState) -> "IrrigationResponse":
        return cls(
            mode=state.mode.value,
            mode_label=MODE_LABELS[state.mode],
            pump_on=state.pump_on,
            log=list(reversed(state.log)),
        )


class MistResponse(BaseModel):
    mode: str
    mode_label: str
    sprayer_on: bool
    spraying_since: Optional[datetime] = None
    spraying_until: Optional[datetime] = None
    target_band: HumidityBand
    history: List[SprayRecord]

    @classmethod
    def build(cls, state: MistState) -> "MistResponse":
        activity = state.activity
        spraying = isinstance(activity, Spraying)
        return cls(
            mode=state.mode.value,
            mode_label=MODE_LABELS[state.mode],
            sprayer_on=spraying,
            spraying_since=activity.started_at if spraying else None,
            spraying_until=activity.until if spraying else None,
            target_band=state.target_band,
            history=list(reversed(state.history)),
        )


class TickResponse(BaseModel):
    irrigation: IrrigationResponse
    mist: MistResponse


class SamplesResponse(BaseModel):
    farmer_id: str
    samples: List[SensorSample] = Field(description="Recent samples, oldest first")


class EcoScoreResponse(EcoScore):
    category_label: str

    @classmethod
    def build(cls, score: EcoScore) -> "EcoScoreResponse":
        return cls(**score.model_dump(), category_label=ECO_CATEGORY_LABELS[score.category])
