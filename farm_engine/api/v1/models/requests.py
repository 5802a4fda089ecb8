"""
API request models using Pydantic.
"""
from typing import Any, List, Optional
from pydantic import BaseModel, Field

from farm_engine.domain.models import (
    ControlMode,
    DeviceEvent,
    DevicePlan,
    OrderEvent,
    OrderItem,
)


class RegisterFarmerRequest(BaseModel):
    """Request body for registering a farmer-role account."""
    name: str = Field(min_length=1, description="Farmer display name")
    farmer_id: Optional[str] = Field(
        default=None,
        description="Explicit farmer id (generated when omitted)"
    )


class LifecycleEventRequest(BaseModel):
    event: DeviceEvent
    plan: DevicePlan = Field(
        default=DevicePlan.STANDARD,
        description="Device package, only used by the purchase event"
    )


class CreateOrderRequest(BaseModel):
    buyer_id: str
    farmer_id: str
    items: List[OrderItem] = Field(min_length=1)
    paid: bool = Field(
        default=True,
        description="Paid orders start at processing, unpaid ones at pending_payment"
    )


class OrderEventRequest(BaseModel):
    event: OrderEvent


class ModeRequest(BaseModel):
    mode: ControlMode


class ToggleRequest(BaseModel):
    on: bool


class ForecastRequest(BaseModel):
    """Historical values are validated by the forecast engine, not the schema."""
    commodity: str = Field(examples=["Padi"])
    history: List[Any] = Field(
        description="Historical yields, oldest first",
        examples=[[10, 12, 14.4]],
    )
    horizon: Optional[int] = Field(default=None, ge=1, le=24)
