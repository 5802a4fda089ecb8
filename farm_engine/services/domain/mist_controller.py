"""
Domain service: threshold-based mist sprayer control.

An automatic spray is single-shot: once humidity drops below the target
band it runs for a fixed duration and completes on its own. While a spray
is in flight the activity is ``Spraying``, which makes re-triggering
structurally impossible rather than a matter of caller discipline.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import logging

from farm_engine.domain.errors import AutoModeActiveError
from farm_engine.domain.models import (
    ControlMode,
    HumidityBand,
    MistState,
    SprayIdle,
    SprayRecord,
    Spraying,
)
from farm_engine.config import settings

logger = logging.getLogger(__name__)


@dataclass
class MistConfig:
    """Configuration for the mist controller."""

    spray_duration_seconds: float = 5.0
    """Length of one automatic spray"""

    @classmethod
    def from_settings(cls) -> "MistConfig":
        return cls(spray_duration_seconds=settings.mist_spray_duration_seconds)


class MistController:
    """Pure state-in/state-out sprayer controller."""

    def __init__(self, config: Optional[MistConfig] = None):
        self.config = config or MistConfig.from_settings()

    @property
    def spray_duration(self) -> timedelta:
        return timedelta(seconds=self.config.spray_duration_seconds)

    def evaluate(self, humidity: float, state: MistState, now: datetime) -> MistState:
        """
        Start an automatic spray if humidity is below the target band.

        Returns ``state`` unchanged in manual mode, while any spray is in
        flight, or when humidity is within or above the band. The caller is
        responsible for arranging ``on_spray_complete`` at ``activity.until``
        when a spray starts.
        """
        if state.mode != ControlMode.AUTOMATIC or state.sprayer_on:
            return state
        if humidity >= state.target_band.min:
            return state

        spray = Spraying(
            trigger=ControlMode.AUTOMATIC,
            started_at=now,
            until=now + self.spray_duration,
        )
        logger.info(
            f"Auto mist: spraying for {self.config.spray_duration_seconds:g}s "
            f"(humidity {humidity:.1f}% < {state.target_band.min:g}%)"
        )
        return state.model_copy(update={"activity": spray})

    def started_spray(self, before: MistState, after: MistState) -> Optional[Spraying]:
        """Return the automatic spray that ``after`` started relative to ``before``, if any."""
        if before.sprayer_on or not after.sprayer_on:
            return None
        activity = after.activity
        if activity.trigger != ControlMode.AUTOMATIC:
            return None
        return activity

    def on_spray_complete(
        self,
        state: MistState,
        started_at: Optional[datetime] = None,
    ) -> MistState:
        """
        Finish an automatic spray and record it in the history.

        ``started_at`` identifies the spray the completion belongs to; a
        completion for any other spray (or when idle) is ignored so that
        late timers cannot end a newer spray. Manual sprays are not ended here.
        """
        activity = state.activity
        if not isinstance(activity, Spraying) or activity.until is None:
            return state
        if started_at is not None and activity.started_at != started_at:
            logger.debug("Ignoring completion for a spray that is no longer active")
            return state

        duration = (activity.until - activity.started_at).total_seconds()
        record = SprayRecord(
            timestamp=activity.until,
            duration_seconds=duration,
            trigger=activity.trigger,
        )
        logger.info(f"Mist spray complete after {duration:g}s")
        return state.model_copy(update={
            "activity": SprayIdle(),
            "history": [*state.history, record],
        })

    def complete_if_due(self, state: MistState, now: datetime) -> MistState:
        """Complete an automatic spray whose end time has passed."""
        activity = state.activity
        if isinstance(activity, Spraying) and activity.until is not None and now >= activity.until:
            return self.on_spray_complete(state, activity.started_at)
        return state

    def abort(self, state: MistState, now: datetime) -> MistState:
        """Stop any in-flight spray immediately, recording the elapsed time."""
        activity = state.activity
        if not isinstance(activity, Spraying):
            return state
        end = now if activity.until is None else min(now, activity.until)
        duration = max(0.0, (end - activity.started_at).total_seconds())
        logger.info(f"Mist spray aborted after {duration:g}s")
        return state.model_copy(update={
            "activity": SprayIdle(),
            "history": [*state.history, SprayRecord(
                timestamp=end,
                duration_seconds=round(duration, 1),
                trigger=activity.trigger,
            )],
        })

    def toggle_manual(self, state: MistState, on: bool, now: datetime) -> MistState:
        """
        Operator sprayer switch.

        Raises:
            AutoModeActiveError: If the sprayer is under automatic control
        """
        if state.mode == ControlMode.AUTOMATIC:
            logger.warning("Manual sprayer toggle rejected: automatic mode active")
            raise AutoModeActiveError("sprayer")
        if on == state.sprayer_on:
            return state
        if on:
            logger.info("Manual mist: sprayer on")
            return state.model_copy(update={
                "activity": Spraying(trigger=ControlMode.MANUAL, started_at=now),
            })
        return self.abort(state, now)

    def set_mode(self, state: MistState, mode: ControlMode, now: datetime) -> MistState:
        """
        Change control mode.

        An automatic spray in flight is left to finish. A manual spray is
        stopped when handing over to automatic control, since nothing would
        ever end it otherwise.
        """
        if state.mode == mode:
            return state
        logger.info(f"Mist mode: {state.mode.value} -> {mode.value}")
        activity = state.activity
        if (
            mode == ControlMode.AUTOMATIC
            and isinstance(activity, Spraying)
            and activity.trigger == ControlMode.MANUAL
        ):
            state = self.abort(state, now)
        return state.model_copy(update={"mode": mode})

    def set_target_band(self, state: MistState, band: HumidityBand) -> MistState:
        return state.model_copy(update={"target_band": band})
