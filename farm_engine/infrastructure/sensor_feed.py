"""
Infrastructure layer: sensor feed adapters.

A feed produces the next humidity/temperature sample for an online device.
The simulated feed reproduces the dashboard's random readings; the HTTP
feed polls a device gateway with retry logic.
"""
from datetime import datetime
from typing import Any, Dict, Optional, Protocol
import logging
import random

import httpx
from pydantic import BaseModel, Field, ValidationError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from farm_engine.config import settings
from farm_engine.domain.models import SensorSample
from farm_engine.infrastructure.api_constants import APIConstants, GatewayEndpoints

logger = logging.getLogger(__name__)


class SensorFeedError(Exception):
    """The sensor gateway could not supply a reading."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SensorFeed(Protocol):
    async def next_sample(
        self,
        farmer_id: str,
        previous: Optional[SensorSample],
        pump_on: bool,
        now: datetime,
    ) -> SensorSample: ...

    async def close(self) -> None: ...


class SimulatedSensorFeed:
    """
    Random readings in the dashboard's ranges.

    Idle readings: humidity 40-70 %, temperature 20-30 °C. While the pump
    runs, each reading raises the previous humidity by 0.2-1.0 points
    (capped at 100) and keeps the previous temperature.
    """

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)

    async def next_sample(
        self,
        farmer_id: str,
        previous: Optional[SensorSample],
        pump_on: bool,
        now: datetime,
    ) -> SensorSample:
        if pump_on:
            return self.watering_sample(previous, now)
        return SensorSample(
            timestamp=now,
            humidity_percent=round(40 + self._random.random() * 30, 1),
            temperature_celsius=round(20 + self._random.random() * 10, 1),
        )

    def watering_sample(self, previous: Optional[SensorSample], now: datetime) -> SensorSample:
        if previous is None:
            return SensorSample(timestamp=now, humidity_percent=50.0, temperature_celsius=25.0)
        humidity = min(100.0, previous.humidity_percent + 0.2 + self._random.random() * 0.8)
        return SensorSample(
            timestamp=now,
            humidity_percent=round(humidity, 1),
            temperature_celsius=previous.temperature_celsius,
        )

    async def close(self) -> None:
        return None


class GatewayReading(BaseModel):
    """Reading payload returned by the device gateway."""
    timestamp: Optional[datetime] = None
    humidity: float = Field(ge=0, le=100, description="Relative humidity in %")
    temperature: float = Field(description="Temperature in °C")


class HttpSensorFeed:
    """
    Client for a device gateway exposing the latest reading per device.
    Implements retry logic with exponential backoff.
    """

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None):
        self.base_url = base_url or settings.sensor_gateway_base_url
        self.api_key = api_key if api_key is not None else settings.sensor_gateway_api_key
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "accept": APIConstants.CONTENT_TYPE_JSON,
            },
            timeout=APIConstants.DEFAULT_TIMEOUT,
        )

    async def __aenter__(self) -> "HttpSensorFeed":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    @retry(
        stop=stop_after_attempt(settings.max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_backoff_multiplier,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.RequestError)),
        reraise=True,
    )
    async def _make_request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """
        Make an HTTP request with retry logic.

        Server errors (5xx) and transport errors are retried; client errors
        (4xx) fail immediately with SensorFeedError.
        """
        try:
            response = await self.client.request(method, endpoint, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code >= 500:
                raise
            raise SensorFeedError(
                f"Gateway request failed: {e.response.status_code} - {e.response.text}",
                status_code=e.response.status_code,
            )

    async def next_sample(
        self,
        farmer_id: str,
        previous: Optional[SensorSample],
        pump_on: bool,
        now: datetime,
    ) -> SensorSample:
        """
        Fetch the latest reading for a farmer's device.

        Raises:
            SensorFeedError: If the gateway fails after retries
        """
        try:
            data = await self._make_request("GET", GatewayEndpoints.latest_reading(farmer_id))
        except httpx.HTTPStatusError as e:
            raise SensorFeedError(f"Gateway unavailable: {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise SensorFeedError(f"Gateway request error: {str(e)}") from e
        except ValueError as e:
            raise SensorFeedError(f"Gateway returned invalid JSON: {str(e)}") from e

        try:
            reading = GatewayReading.model_validate(data)
        except ValidationError as e:
            raise SensorFeedError(
                f"Malformed gateway reading for {farmer_id}: {e.error_count()} invalid field(s)"
            ) from e
        logger.debug(f"Gateway reading for {farmer_id}: {reading.humidity}% {reading.temperature}°C")
        return SensorSample(
            timestamp=reading.timestamp or now,
            humidity_percent=reading.humidity,
            temperature_celsius=reading.temperature,
        )


def create_sensor_feed(mode: Optional[str] = None) -> SensorFeed:
    """Build the feed selected by ``settings.sensor_feed_mode``."""
    mode = (mode or settings.sensor_feed_mode).lower()
    if mode == "http":
        return HttpSensorFeed()
    if mode == "simulated":
        return SimulatedSensorFeed()
    raise ValueError(f"Unknown sensor feed mode: {mode}")
