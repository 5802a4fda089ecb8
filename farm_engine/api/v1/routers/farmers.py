"""
API router for farmer endpoints: device lifecycle, sensor ticks,
irrigation, mist sprayer and eco-score.

Domain errors propagate to the error handling middleware, which maps them
to HTTP status codes.
"""
from fastapi import APIRouter, Path, status
from fastapi.responses import PlainTextResponse
from typing import Annotated

from farm_engine.api.dependencies import FarmServiceDep
from farm_engine.api.v1.models.requests import (
    LifecycleEventRequest,
    ModeRequest,
    RegisterFarmerRequest,
    ToggleRequest,
)
from farm_engine.api.v1.models.responses import (
    EcoScoreResponse,
    IrrigationResponse,
    LifecycleResponse,
    MistResponse,
    SamplesResponse,
    TickResponse,
)
from farm_engine.domain.models import EcoInputs, HumidityBand, SensorSample


router = APIRouter(
    prefix="/farmers",
    tags=["farmers"],
    responses={
        404: {"description": "Farmer not found"},
        429: {"description": "Rate limit exceeded"},
    },
)

FarmerId = Annotated[str, Path(description="Unique identifier for the farmer")]


def _lifecycle_response(service, farmer_id: str) -> LifecycleResponse:
    farm = service.get_farm(farmer_id)
    allowed = [e.value for e in service.device_machine.allowed_events(farm.lifecycle.status)]
    return LifecycleResponse.build(farm.lifecycle, allowed, farm.purchase)


# ============================================================
# Lifecycle
# ============================================================

@router.post(
    "",
    response_model=LifecycleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a farmer",
)
async def register_farmer(
    body: RegisterFarmerRequest,
    farm_service: FarmServiceDep,
) -> LifecycleResponse:
    farm = farm_service.register_farmer(body.name, body.farmer_id)
    return _lifecycle_response(farm_service, farm.farmer_id)


@router.get(
    "/{farmer_id}/lifecycle",
    response_model=LifecycleResponse,
    summary="Get device lifecycle state",
)
async def get_lifecycle(farmer_id: FarmerId, farm_service: FarmServiceDep) -> LifecycleResponse:
    return _lifecycle_response(farm_service, farmer_id)


@router.post(
    "/{farmer_id}/lifecycle/events",
    response_model=LifecycleResponse,
    summary="Apply a lifecycle event",
    description="""
    Advance the farmer's onboarding / device lifecycle.

    Events: purchase, confirm_payment (only when payment is not instantaneous),
    confirm_shipment, confirm_delivery, report_installation,
    confirm_installation, connect_device, disconnect.
    An event that is not valid from the current state returns 409.
    """,
    responses={409: {"description": "Invalid transition"}},
)
async def apply_lifecycle_event(
    farmer_id: FarmerId,
    body: LifecycleEventRequest,
    farm_service: FarmServiceDep,
) -> LifecycleResponse:
    farm_service.apply_lifecycle_event(farmer_id, body.event, body.plan)
    return _lifecycle_response(farm_service, farmer_id)


# ============================================================
# Sensor ticks
# ============================================================

@router.post(
    "/{farmer_id}/tick",
    response_model=TickResponse,
    summary="Process one sensor sample",
    description="""
    Feed the latest humidity/temperature sample through the irrigation and
    mist controllers. Invoked once per polling interval.
    """,
    responses={
        409: {"description": "Device is not online"},
        422: {"description": "Sample is not newer than the previous one"},
    },
)
async def tick(
    farmer_id: FarmerId,
    sample: SensorSample,
    farm_service: FarmServiceDep,
) -> TickResponse:
    irrigation, mist = farm_service.tick(farmer_id, sample)
    return TickResponse(
        irrigation=IrrigationResponse.build(irrigation),
        mist=MistResponse.build(mist),
    )


@router.get(
    "/{farmer_id}/samples",
    response_model=SamplesResponse,
    summary="Recent sensor samples",
)
async def get_samples(farmer_id: FarmerId, farm_service: FarmServiceDep) -> SamplesResponse:
    return SamplesResponse(farmer_id=farmer_id, samples=farm_service.get_samples(farmer_id))


# ============================================================
# Irrigation
# ============================================================

@router.get("/{farmer_id}/irrigation", response_model=IrrigationResponse)
async def get_irrigation(farmer_id: FarmerId, farm_service: FarmServiceDep) -> IrrigationResponse:
    return IrrigationResponse.build(farm_service.get_irrigation(farmer_id))


@router.put("/{farmer_id}/irrigation/mode", response_model=IrrigationResponse)
async def set_irrigation_mode(
    farmer_id: FarmerId,
    body: ModeRequest,
    farm_service: FarmServiceDep,
) -> IrrigationResponse:
    return IrrigationResponse.build(farm_service.set_irrigation_mode(farmer_id, body.mode))


@router.post(
    "/{farmer_id}/irrigation/pump",
    response_model=IrrigationResponse,
    summary="Manual pump toggle",
    responses={409: {"description": "Automatic mode active"}},
)
async def toggle_pump(
    farmer_id: FarmerId,
    body: ToggleRequest,
    farm_service: FarmServiceDep,
) -> IrrigationResponse:
    return IrrigationResponse.build(farm_service.toggle_manual_pump(farmer_id, body.on))


# ============================================================
# Mist sprayer
# ============================================================

@router.get("/{farmer_id}/mist", response_model=MistResponse)
async def get_mist(farmer_id: FarmerId, farm_service: FarmServiceDep) -> MistResponse:
    return MistResponse.build(farm_service.get_mist(farmer_id))


@router.put("/{farmer_id}/mist/mode", response_model=MistResponse)
async def set_mist_mode(
    farmer_id: FarmerId,
    body: ModeRequest,
    farm_service: FarmServiceDep,
) -> MistResponse:
    return MistResponse.build(farm_service.set_mist_mode(farmer_id, body.mode))


@router.put("/{farmer_id}/mist/target-band", response_model=MistResponse)
async def set_mist_target_band(
    farmer_id: FarmerId,
    band: HumidityBand,
    farm_service: FarmServiceDep,
) -> MistResponse:
    return MistResponse.build(farm_service.set_mist_target_band(farmer_id, band))


@router.post(
    "/{farmer_id}/mist/sprayer",
    response_model=MistResponse,
    summary="Manual sprayer toggle",
    responses={409: {"description": "Automatic mode active"}},
)
async def toggle_sprayer(
    farmer_id: FarmerId,
    body: ToggleRequest,
    farm_service: FarmServiceDep,
) -> MistResponse:
    return MistResponse.build(farm_service.toggle_manual_sprayer(farmer_id, body.on))


# ============================================================
# Eco-score
# ============================================================

@router.post(
    "/{farmer_id}/eco-score",
    response_model=EcoScoreResponse,
    summary="Compute the sustainability eco-score",
    description="""
    Combine manually entered fertilizer, pesticide, energy and waste usage
    with the pump and sprayer usage accumulated from sensor ticks into a
    weighted 0-100 score with a Poor / Moderate / Good interpretation.
    """,
    responses={422: {"description": "No sensor data collected yet"}},
)
async def compute_eco_score(
    farmer_id: FarmerId,
    usage: EcoInputs,
    farm_service: FarmServiceDep,
) -> EcoScoreResponse:
    return EcoScoreResponse.build(farm_service.compute_eco_score(farmer_id, usage))


@router.post(
    "/{farmer_id}/eco-score/report",
    response_class=PlainTextResponse,
    summary="Download a sustainability report",
    responses={422: {"description": "No sensor data collected yet"}},
)
async def download_sustainability_report(
    farmer_id: FarmerId,
    usage: EcoInputs,
    farm_service: FarmServiceDep,
) -> PlainTextResponse:
    report = farm_service.sustainability_report(farmer_id, usage)
    return PlainTextResponse(
        report,
        headers={
            "Content-Disposition": f'attachment; filename="sustainability_report_{farmer_id}.txt"'
        },
    )
