"""
Dependency injection for FastAPI.
"""
from typing import Annotated, Optional
from fastapi import Depends

from farm_engine.infrastructure.repository import InMemoryFarmRepository
from farm_engine.infrastructure.timers import AsyncioTimerService
from farm_engine.services.application.farm_service import FarmService


# Singleton instance
_farm_service: Optional[FarmService] = None


def get_farm_service() -> FarmService:
    """
    Get or create the singleton FarmService.

    The service owns the in-memory repository and the spray timers, so it
    must live as long as the application.

    Returns:
        FarmService instance
    """
    global _farm_service
    if _farm_service is None:
        _farm_service = FarmService(
            repository=InMemoryFarmRepository(),
            timers=AsyncioTimerService(),
        )
    return _farm_service


# Type aliases for cleaner route signatures
FarmServiceDep = Annotated[FarmService, Depends(get_farm_service)]
