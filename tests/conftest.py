"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- A controllable clock and timer service
- An in-memory FarmService
- A farmer whose device is online
- FastAPI test client wired to the test service
"""
import os

# Keep the API surface deterministic under test
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Tuple
from fastapi.testclient import TestClient

from farm_engine.main import app
from farm_engine.api.dependencies import get_farm_service
from farm_engine.domain.models import DeviceEvent, SensorSample
from farm_engine.infrastructure.repository import InMemoryFarmRepository
from farm_engine.services.application.farm_service import FarmService


BASE_TIME = datetime(2026, 1, 1, 8, 0, 0, tzinfo=timezone.utc)

ONBOARDING_EVENTS = [
    DeviceEvent.PURCHASE,
    DeviceEvent.CONFIRM_SHIPMENT,
    DeviceEvent.CONFIRM_DELIVERY,
    DeviceEvent.CONFIRM_INSTALLATION,
    DeviceEvent.CONNECT_DEVICE,
]


# ============================================================
# Test Doubles
# ============================================================

class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = BASE_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now

    def set(self, when: datetime) -> None:
        self.now = when


class ManualTimerService:
    """Timer service whose callbacks fire only when the test says so."""

    def __init__(self):
        self.pending: Dict[str, Tuple[float, Callable[[], None]]] = {}
        self.scheduled: List[Tuple[str, float]] = []
        self.cancelled: List[str] = []

    def schedule(self, key: str, delay_seconds: float, callback: Callable[[], None]) -> None:
        self.pending[key] = (delay_seconds, callback)
        self.scheduled.append((key, delay_seconds))

    def cancel(self, key: str) -> bool:
        if key in self.pending:
            del self.pending[key]
            self.cancelled.append(key)
            return True
        return False

    def fire(self, key: str) -> None:
        _, callback = self.pending.pop(key)
        callback()


def make_sample(
    seconds: float,
    humidity: float = 65.0,
    temperature: float = 25.0,
) -> SensorSample:
    """Sample taken ``seconds`` after BASE_TIME."""
    return SensorSample(
        timestamp=BASE_TIME + timedelta(seconds=seconds),
        humidity_percent=humidity,
        temperature_celsius=temperature,
    )


# ============================================================
# Service Fixtures
# ============================================================

@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def timers() -> ManualTimerService:
    return ManualTimerService()


@pytest.fixture
def repository() -> InMemoryFarmRepository:
    return InMemoryFarmRepository()


@pytest.fixture
def farm_service(repository, timers, clock) -> FarmService:
    """FarmService with in-memory storage, manual timers and a fixed clock."""
    return FarmService(repository=repository, timers=timers, clock=clock)


@pytest.fixture
def online_farmer(farm_service) -> str:
    """A registered farmer walked through onboarding to device_online."""
    farm = farm_service.register_farmer("Budi Santoso", farmer_id="farmer-1")
    for event in ONBOARDING_EVENTS:
        farm_service.apply_lifecycle_event(farm.farmer_id, event)
    return farm.farmer_id


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def test_client(farm_service) -> TestClient:
    """Synchronous test client backed by the test FarmService."""
    app.dependency_overrides[get_farm_service] = lambda: farm_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
