"""
API router for yield forecasts.
"""
from fastapi import APIRouter

from farm_engine.api.dependencies import FarmServiceDep
from farm_engine.api.v1.models.requests import ForecastRequest
from farm_engine.domain.models import ForecastSeries


router = APIRouter(
    prefix="/forecasts",
    tags=["forecasts"],
    responses={429: {"description": "Rate limit exceeded"}},
)


@router.post(
    "",
    response_model=ForecastSeries,
    summary="Run a yield forecast",
    description="""
    Project future yields from a short history by compound growth.

    1. Compute the growth rate between each consecutive pair (0 when the
       earlier value is 0)
    2. Average the rates
    3. Compound forward from the last value, rounding each step to 3 decimals

    This is a simple extrapolation with no confidence interval or seasonality.
    """,
    responses={422: {"description": "History missing or not numeric"}},
)
async def run_forecast(body: ForecastRequest, farm_service: FarmServiceDep) -> ForecastSeries:
    return farm_service.run_forecast(body.commodity, body.history, body.horizon)
