"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from farm_engine.config import settings
from farm_engine.middleware.error_handler import ErrorHandlerMiddleware
from farm_engine.api.dependencies import get_farm_service
from farm_engine.api.v1.routers import farmers, forecasts, orders
from farm_engine.infrastructure.scheduler import SensorPollingScheduler
from farm_engine.infrastructure.sensor_feed import create_sensor_feed

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Rate limiter
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_requests}/minute"],
    enabled=settings.rate_limit_enabled,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Starts the sensor polling scheduler on startup and stops it, its feed
    and any pending spray timers on shutdown.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Irrigation hysteresis: on > {settings.irrigation_on_above_celsius}°C, "
                f"off < {settings.irrigation_off_below_celsius}°C")
    logger.info(f"Mist spray duration: {settings.mist_spray_duration_seconds}s, "
                f"cancel on disconnect: {settings.cancel_spray_on_disconnect}")
    logger.info(f"Rate limit: {settings.rate_limit_requests} requests/minute "
                f"(enabled={settings.rate_limit_enabled})")

    service = get_farm_service()
    scheduler = None
    feed = None
    if settings.scheduler_enabled:
        feed = create_sensor_feed()
        scheduler = SensorPollingScheduler(service, feed)
        scheduler.start()
        logger.info(f"Sensor polling enabled ({settings.sensor_feed_mode} feed)")
    else:
        logger.info("Sensor polling disabled; ticks must be pushed via the API")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if scheduler is not None:
        await scheduler.stop()
    if feed is not None:
        await feed.close()
    cancel_all = getattr(service.timers, "cancel_all", None)
    if cancel_all is not None:
        cancel_all()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Farm Automation & Lifecycle Engine

    Rule-driven state for a farm IoT dashboard: what state an entity is in
    and what action to take next.

    ## Features

    - **Device Lifecycle**: Farmer onboarding from registration through
      purchase, shipping, installation and connectivity
    - **Order Lifecycle**: Forward-only produce order fulfilment with cancellation
    - **Irrigation Control**: Hysteresis pump control (on above 30°C, off below 27°C)
    - **Mist Control**: Single-shot timed sprays when humidity drops below the target band
    - **Eco-Score**: Weighted sustainability score over water, fertilizer,
      pesticide, energy and waste
    - **Yield Forecast**: Compound-growth extrapolation from recent harvests
    - **Rate Limiting**: Protects the API from abuse
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# Add CORS middleware with configurable origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add global error handling middleware
app.add_middleware(ErrorHandlerMiddleware)

# Include routers
app.include_router(farmers.router, prefix="/api/v1")
app.include_router(orders.router, prefix="/api/v1")
app.include_router(forecasts.router, prefix="/api/v1")


@app.get("/", tags=["health"])
async def root():
    """
    Root endpoint for health check.

    Returns:
        Status message
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
    }
