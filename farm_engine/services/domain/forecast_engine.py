"""
Domain service: naive compound-growth yield forecasting.

Projects forward from the last historical value using the mean of the
consecutive growth rates. There is no confidence interval and no
seasonality.
"""
from dataclasses import dataclass
from typing import Any, Optional, Sequence
import logging
import math

import numpy as np

from farm_engine.domain.errors import InvalidInputError
from farm_engine.domain.models import ForecastSeries
from farm_engine.config import settings

logger = logging.getLogger(__name__)


@dataclass
class ForecastConfig:
    history_points: Optional[int] = 3
    """Exact number of historical values required (None accepts any length >= 1)"""

    horizon: int = 3
    """Default number of projected steps"""

    decimals: int = 3
    """Rounding applied to each projected step"""

    @classmethod
    def from_settings(cls) -> "ForecastConfig":
        return cls(
            history_points=settings.forecast_history_points,
            horizon=settings.forecast_horizon,
        )


def growth_rates(values: Sequence[float]) -> list[float]:
    """
    Consecutive growth rates ``(v[i] - v[i-1]) / v[i-1]``.

    A zero predecessor yields a rate of 0.
    """
    rates = []
    for prev, cur in zip(values, values[1:]):
        rates.append(0.0 if prev == 0 else (cur - prev) / prev)
    return rates


def _to_number(value: Any, index: int) -> float:
    if value is None or isinstance(value, bool):
        raise InvalidInputError(f"History value #{index + 1} is missing or not numeric")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise InvalidInputError(f"History value #{index + 1} is missing")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidInputError(f"History value #{index + 1} is not numeric: {value!r}") from None
    if not math.isfinite(number):
        raise InvalidInputError(f"History value #{index + 1} is not a finite number")
    return number


class ForecastEngine:
    """Compound-growth extrapolation over a short history."""

    def __init__(self, config: Optional[ForecastConfig] = None):
        self.config = config or ForecastConfig.from_settings()

    def validate(self, commodity: str, history: Sequence[Any]) -> list[float]:
        if not commodity or not str(commodity).strip():
            raise InvalidInputError("Commodity is required")
        if history is None or len(history) == 0:
            raise InvalidInputError("History must contain at least one value")
        expected = self.config.history_points
        if expected is not None and len(history) != expected:
            raise InvalidInputError(f"History must contain exactly {expected} values (got {len(history)})")
        return [_to_number(value, i) for i, value in enumerate(history)]

    def forecast(
        self,
        commodity: str,
        history: Sequence[Any],
        horizon: Optional[int] = None,
    ) -> ForecastSeries:
        """
        Project ``horizon`` future values from ``history``.

        Args:
            commodity: Commodity name, e.g. "Padi"
            history: Historical values, oldest first
            horizon: Steps to project (defaults to the configured horizon)

        Returns:
            ForecastSeries with historical + projected values

        Raises:
            InvalidInputError: If any value is missing or non-numeric,
                or the projection overflows
        """
        values = self.validate(commodity, history)
        commodity = commodity.strip()
        horizon = self.config.horizon if horizon is None else horizon
        if horizon < 1:
            raise InvalidInputError("Horizon must be at least 1")

        rates = growth_rates(values)
        avg_rate = float(np.mean(rates)) if rates else 0.0

        projected = []
        current = values[-1]
        for _ in range(horizon):
            current = round(current * (1 + avg_rate), self.config.decimals)
            if not math.isfinite(current):
                raise InvalidInputError(f"Projection for {commodity} exceeds the representable range")
            projected.append(current)

        logger.info(f"Forecast for {commodity}: avg growth {avg_rate:.4f}, projected {projected}")

        summary = f"Projected {commodity} yield for the next {horizon} months: " + " | ".join(
            f"Month +{i + 1}: {value:g} t/ha" for i, value in enumerate(projected)
        )
        return ForecastSeries(
            commodity=commodity,
            history=values,
            projected_values=projected,
            series=[*values, *projected],
            average_growth_rate=avg_rate,
            summary=summary,
        )
