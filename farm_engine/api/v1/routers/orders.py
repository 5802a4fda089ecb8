"""
API router for produce order endpoints.
"""
from fastapi import APIRouter, Path, Query, status
from typing import Annotated, List, Optional

from farm_engine.api.dependencies import FarmServiceDep
from farm_engine.api.v1.models.requests import CreateOrderRequest, OrderEventRequest
from farm_engine.api.v1.models.responses import OrderResponse
from farm_engine.domain.models import OrderLifecycle


router = APIRouter(
    prefix="/orders",
    tags=["orders"],
    responses={429: {"description": "Rate limit exceeded"}},
)

OrderId = Annotated[str, Path(description="Unique identifier for the order")]


def _order_response(service, order: OrderLifecycle) -> OrderResponse:
    allowed = [e.value for e in service.order_machine.allowed_events(order.status)]
    return OrderResponse.build(order, allowed)


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place a produce order",
)
async def create_order(body: CreateOrderRequest, farm_service: FarmServiceDep) -> OrderResponse:
    order = farm_service.create_order(body.buyer_id, body.farmer_id, body.items, body.paid)
    return _order_response(farm_service, order)


@router.get(
    "",
    response_model=List[OrderResponse],
    summary="List orders, most recent first",
)
async def list_orders(
    farm_service: FarmServiceDep,
    farmer_id: Annotated[Optional[str], Query()] = None,
    buyer_id: Annotated[Optional[str], Query()] = None,
) -> List[OrderResponse]:
    orders = farm_service.list_orders(farmer_id=farmer_id, buyer_id=buyer_id)
    return [_order_response(farm_service, order) for order in orders]


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses={404: {"description": "Order not found"}},
)
async def get_order(order_id: OrderId, farm_service: FarmServiceDep) -> OrderResponse:
    return _order_response(farm_service, farm_service.get_order(order_id))


@router.post(
    "/{order_id}/events",
    response_model=OrderResponse,
    summary="Apply an order lifecycle event",
    description="""
    Events: pay, ship, complete, cancel. Completed and canceled orders are
    terminal; any further event returns 409.
    """,
    responses={
        404: {"description": "Order not found"},
        409: {"description": "Invalid transition"},
    },
)
async def apply_order_event(
    order_id: OrderId,
    body: OrderEventRequest,
    farm_service: FarmServiceDep,
) -> OrderResponse:
    order = farm_service.apply_order_event(order_id, body.event)
    return _order_response(farm_service, order)
