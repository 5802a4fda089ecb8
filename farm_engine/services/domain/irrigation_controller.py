"""
Domain service: hysteresis-based irrigation pump control.

The pump switches on above one temperature and off below a lower one, so
readings between the two thresholds never cause chatter. Boundary values
are sticky: exactly the on-threshold does not start the pump and exactly
the off-threshold does not stop it.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import logging

from farm_engine.domain.errors import AutoModeActiveError
from farm_engine.domain.models import ControlMode, IrrigationState, LogEntry
from farm_engine.config import settings

logger = logging.getLogger(__name__)


@dataclass
class IrrigationConfig:
    """Thresholds for the irrigation controller."""

    on_above_celsius: float = 30.0
    """Pump turns on when temperature > this value"""

    off_below_celsius: float = 27.0
    """Pump turns off when temperature < this value"""

    log_capacity: int = 50
    """Maximum log entries kept (oldest dropped first)"""

    @classmethod
    def from_settings(cls) -> "IrrigationConfig":
        return cls(
            on_above_celsius=settings.irrigation_on_above_celsius,
            off_below_celsius=settings.irrigation_off_below_celsius,
            log_capacity=settings.irrigation_log_capacity,
        )


class IrrigationController:
    """Pure state-in/state-out pump controller."""

    def __init__(self, config: Optional[IrrigationConfig] = None):
        self.config = config or IrrigationConfig.from_settings()
        if self.config.off_below_celsius > self.config.on_above_celsius:
            raise ValueError("off threshold must not exceed on threshold")

    def evaluate(
        self,
        temperature: float,
        state: IrrigationState,
        now: datetime,
    ) -> IrrigationState:
        """
        Decide the pump state for the latest temperature sample.

        Args:
            temperature: Latest temperature in °C
            state: Current irrigation state
            now: Timestamp of the sample driving this decision

        Returns:
            The new irrigation state (``state`` itself when nothing changes)
        """
        if state.mode != ControlMode.AUTOMATIC:
            return state

        if not state.pump_on and temperature > self.config.on_above_celsius:
            logger.info(f"Auto irrigation: pump on at {temperature:.1f}°C")
            return self._switch(state, True, now, f"Pump on: temperature {temperature:.1f}°C")

        if state.pump_on and temperature < self.config.off_below_celsius:
            logger.info(f"Auto irrigation: pump off at {temperature:.1f}°C")
            return self._switch(state, False, now, f"Pump off: temperature {temperature:.1f}°C")

        return state

    def toggle_manual(self, state: IrrigationState, on: bool, now: datetime) -> IrrigationState:
        """
        Operator pump switch.

        Raises:
            AutoModeActiveError: If the pump is under automatic control
        """
        if state.mode == ControlMode.AUTOMATIC:
            logger.warning("Manual pump toggle rejected: automatic mode active")
            raise AutoModeActiveError("pump")
        if state.pump_on == on:
            return state
        message = "Pump on: manual" if on else "Pump off: manual"
        return self._switch(state, on, now, message)

    def set_mode(self, state: IrrigationState, mode: ControlMode) -> IrrigationState:
        """Change control mode; the pump keeps its current state."""
        if state.mode == mode:
            return state
        logger.info(f"Irrigation mode: {state.mode.value} -> {mode.value}")
        return state.model_copy(update={"mode": mode})

    def _switch(self, state: IrrigationState, on: bool, now: datetime, message: str) -> IrrigationState:
        log = [*state.log, LogEntry(timestamp=now, message=message)]
        return state.model_copy(update={
            "pump_on": on,
            "log": log[-self.config.log_capacity:],
        })
