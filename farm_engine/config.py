"""
Application configuration using Pydantic settings.
"""
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Irrigation Controller
    irrigation_on_above_celsius: float = Field(
        default=30.0,
        description="Pump turns on when temperature rises strictly above this value"
    )
    irrigation_off_below_celsius: float = Field(
        default=27.0,
        description="Pump turns off when temperature falls strictly below this value"
    )
    irrigation_log_capacity: int = Field(
        default=50,
        description="Maximum number of pump log entries retained"
    )

    # Mist Controller
    mist_spray_duration_seconds: float = Field(
        default=5.0,
        description="Duration of a single automatic spray"
    )
    mist_target_min_percent: float = Field(
        default=60.0,
        description="Default lower bound of the target humidity band"
    )
    mist_target_max_percent: float = Field(
        default=70.0,
        description="Default upper bound of the target humidity band"
    )

    # Sensor Feed
    sensor_buffer_size: int = Field(
        default=60,
        description="Number of recent sensor samples retained per farmer"
    )
    sensor_interval_seconds: float = Field(
        default=5.0,
        description="Polling interval while the pump is idle"
    )
    pump_active_interval_seconds: float = Field(
        default=3.0,
        description="Polling interval while the pump is running"
    )
    sensor_feed_mode: str = Field(
        default="simulated",
        description="Sensor feed source: 'simulated' or 'http'"
    )
    sensor_gateway_base_url: str = Field(
        default="http://localhost:8080",
        description="Base URL of the device gateway used by the HTTP sensor feed"
    )
    sensor_gateway_api_key: str = Field(
        default="",
        description="API key for the device gateway"
    )

    # Retry Configuration
    max_retry_attempts: int = Field(
        default=3,
        description="Maximum number of retry attempts for gateway calls"
    )
    retry_backoff_multiplier: int = Field(
        default=1,
        description="Multiplier for exponential backoff"
    )
    retry_min_wait: int = Field(
        default=1,
        description="Minimum wait time in seconds between retries"
    )
    retry_max_wait: int = Field(
        default=5,
        description="Maximum wait time in seconds between retries"
    )

    # Water usage
    pump_flow_liters_per_minute: float = Field(
        default=5.0,
        description="Irrigation pump discharge rate"
    )
    mist_flow_liters_per_second: float = Field(
        default=0.5,
        description="Mist sprayer flow rate"
    )

    # Eco-Score ideals
    eco_ideal_water_liters: float = Field(default=5000.0, description="Ideal water usage")
    eco_ideal_fertilizer_kg: float = Field(default=5.0, description="Ideal fertilizer per day")
    eco_ideal_pesticide_kg: float = Field(default=2.0, description="Ideal pesticide per day")
    eco_ideal_energy_kwh: float = Field(default=10.0, description="Ideal energy per day")
    eco_ideal_waste_kg: float = Field(default=3.0, description="Ideal waste per day")

    # Forecast
    forecast_history_points: Optional[int] = Field(
        default=3,
        description="Number of historical values a forecast request must supply (unset accepts any length)"
    )
    forecast_horizon: int = Field(
        default=3,
        description="Number of steps projected forward"
    )

    # Lifecycle policy
    instant_payment: bool = Field(
        default=True,
        description="Purchase moves straight to PendingShipment (payment simulated as instantaneous)"
    )
    cancel_spray_on_disconnect: bool = Field(
        default=False,
        description="Abort an in-flight spray when the device disconnects"
    )

    # Scheduler
    scheduler_enabled: bool = Field(
        default=True,
        description="Run the sensor polling scheduler inside the application"
    )
    scheduler_resolution_seconds: float = Field(
        default=1.0,
        description="How often the scheduler checks for due polls"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_enabled: bool = Field(
        default=True,
        description="Whether per-client rate limiting is applied"
    )
    rate_limit_requests: int = Field(
        default=100,
        description="Maximum requests per minute per client"
    )

    # Application Settings
    app_name: str = Field(
        default="Teman Tani Farm Automation Engine",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
