"""
Domain service: multi-factor sustainability ("eco-score") scoring.

Water is scored by linear deviation from an ideal volume. Fertilizer,
pesticide, energy and waste are scored by logarithmic deviation from their
ideals, which penalises under- and over-use symmetrically and treats an
order-of-magnitude miss the same regardless of the ideal's scale.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
import logging
import math

import numpy as np

from farm_engine.domain.errors import NoSensorDataError
from farm_engine.domain.models import EcoInputs, EcoScore, UsageTotals
from farm_engine.config import settings

logger = logging.getLogger(__name__)

USAGE_FLOOR = 0.1

CATEGORY_ORDER = ("water", "fertilizer", "pesticide", "energy", "waste")

DEFAULT_WEIGHTS = {
    "water": 0.25,
    "fertilizer": 0.20,
    "pesticide": 0.20,
    "energy": 0.20,
    "waste": 0.15,
}

INTERPRETATIONS = {
    "poor": (
        "Environmental impact is very high.",
        "Reduce chemical fertilizer and pesticide use. Improve water and energy efficiency.",
    ),
    "moderate": (
        "There is still room for improvement.",
        "Optimise resource use and reduce waste to improve sustainability.",
    ),
    "good": (
        "Your farming practice is environmentally friendly.",
        "Keep up this practice and keep improving efficiency.",
    ),
}


@dataclass
class EcoScoreConfig:
    """Ideals, flow rates and weights for eco-scoring."""

    ideal_water_liters: float = 5000.0
    ideal_fertilizer_kg: float = 5.0
    ideal_pesticide_kg: float = 2.0
    ideal_energy_kwh: float = 10.0
    ideal_waste_kg: float = 3.0

    pump_flow_liters_per_minute: float = 5.0
    mist_flow_liters_per_second: float = 0.5

    weights: dict = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))

    @classmethod
    def from_settings(cls) -> "EcoScoreConfig":
        return cls(
            ideal_water_liters=settings.eco_ideal_water_liters,
            ideal_fertilizer_kg=settings.eco_ideal_fertilizer_kg,
            ideal_pesticide_kg=settings.eco_ideal_pesticide_kg,
            ideal_energy_kwh=settings.eco_ideal_energy_kwh,
            ideal_waste_kg=settings.eco_ideal_waste_kg,
            pump_flow_liters_per_minute=settings.pump_flow_liters_per_minute,
            mist_flow_liters_per_second=settings.mist_flow_liters_per_second,
        )


def interpret(score: float) -> str:
    """Map a composite score to its category id."""
    if score <= 30:
        return "poor"
    if score <= 60:
        return "moderate"
    return "good"


def _clamp(value: float) -> float:
    return min(100.0, max(0.0, value))


def linear_score(used: float, ideal: float) -> float:
    return _clamp(100 - abs(used - ideal) / ideal * 100)


def log_score(used: float, ideal: float) -> float:
    return _clamp(100 - abs(math.log10(used / ideal)) * 100)


class EcoScoreEngine:
    """Weighted composite of five independently normalised sub-scores."""

    def __init__(self, config: Optional[EcoScoreConfig] = None):
        self.config = config or EcoScoreConfig.from_settings()
        total_weight = sum(self.config.weights[name] for name in CATEGORY_ORDER)
        if not math.isclose(total_weight, 1.0):
            raise ValueError(f"Eco-score weights must sum to 1.0 (got {total_weight})")

    def total_water(self, totals: UsageTotals) -> float:
        pump_minutes = max(totals.pump_minutes_on, USAGE_FLOOR)
        spray_seconds = max(totals.sprayer_seconds_on, USAGE_FLOOR)
        return (
            self.config.pump_flow_liters_per_minute * pump_minutes
            + self.config.mist_flow_liters_per_second * spray_seconds
        )

    def score(self, usage: EcoInputs, totals: UsageTotals) -> EcoScore:
        """
        Compute the eco-score for one farmer.

        Args:
            usage: Manually entered daily usage
            totals: Actuator usage accumulated from sensor observations

        Returns:
            EcoScore with composite, sub-scores and interpretation

        Raises:
            NoSensorDataError: If no sensor observation has been recorded yet
        """
        if totals.observations <= 0:
            raise NoSensorDataError("Sensor data is not available yet; connect the device first")

        cfg = self.config
        total_water = self.total_water(totals)

        sub_scores = {
            "water": linear_score(total_water, cfg.ideal_water_liters),
            "fertilizer": log_score(max(usage.fertilizer_kg_per_day, USAGE_FLOOR), cfg.ideal_fertilizer_kg),
            "pesticide": log_score(max(usage.pesticide_kg_per_day, USAGE_FLOOR), cfg.ideal_pesticide_kg),
            "energy": log_score(max(usage.energy_kwh_per_day, USAGE_FLOOR), cfg.ideal_energy_kwh),
            "waste": log_score(max(usage.waste_kg_per_day, USAGE_FLOOR), cfg.ideal_waste_kg),
        }

        scores = np.array([sub_scores[name] for name in CATEGORY_ORDER])
        weights = np.array([cfg.weights[name] for name in CATEGORY_ORDER])
        composite = round(_clamp(float(np.dot(scores, weights))), 2)

        category = interpret(composite)
        description, recommendation = INTERPRETATIONS[category]
        logger.info(f"Eco-score {composite:.2f} ({category}), water {total_water:.1f} L")

        return EcoScore(
            composite=composite,
            total_water_liters=round(total_water, 2),
            category=category,
            description=description,
            recommendation=recommendation,
            **{name: round(value, 2) for name, value in sub_scores.items()},
        )


def sustainability_report(farmer_name: str, score: EcoScore, generated_at: datetime) -> str:
    """
    Plain-text sustainability report for one eco-score result.

    Args:
        farmer_name: Display name printed in the header
        score: The computed eco-score
        generated_at: Report timestamp

    Returns:
        Newline-separated report text
    """
    lines = [
        "Sustainability Report - Teman Tani",
        f"Farmer: {farmer_name or '-'}",
        f"Date: {generated_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}",
        f"Eco-Score: {score.composite:.2f} ({score.category})",
        "",
        "Sub-scores:",
    ]
    lines += [f"- {name.capitalize()}: {getattr(score, name):.2f}" for name in CATEGORY_ORDER]
    lines += [
        f"- Total water: {score.total_water_liters:.2f} L",
        "",
        "Summary:",
        f"- {score.description}",
        f"- Recommendation: {score.recommendation}",
    ]
    return "\n".join(lines)
