"""
Global error handling middleware.
"""
import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable

from farm_engine.domain.errors import (
    AutoModeActiveError,
    DeviceNotOnlineError,
    FarmEngineError,
    InvalidInputError,
    InvalidTransitionError,
    NoSensorDataError,
    NotFoundError,
)
from farm_engine.infrastructure.sensor_feed import SensorFeedError


logger = logging.getLogger(__name__)

HTTP_422_UNPROCESSABLE = 422

# (status code, error title) per domain error, checked in order
DOMAIN_ERROR_RESPONSES = [
    (NotFoundError, status.HTTP_404_NOT_FOUND, "Not found"),
    (InvalidTransitionError, status.HTTP_409_CONFLICT, "Invalid transition"),
    (AutoModeActiveError, status.HTTP_409_CONFLICT, "Automatic mode active"),
    (DeviceNotOnlineError, status.HTTP_409_CONFLICT, "Device not online"),
    (NoSensorDataError, HTTP_422_UNPROCESSABLE, "No sensor data"),
    (InvalidInputError, HTTP_422_UNPROCESSABLE, "Invalid input"),
]


def domain_error_response(error: FarmEngineError) -> tuple[int, str]:
    for error_type, status_code, title in DOMAIN_ERROR_RESPONSES:
        if isinstance(error, error_type):
            return status_code, title
    return status.HTTP_400_BAD_REQUEST, "Request rejected"


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Catches domain and unhandled exceptions and returns consistent error responses.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        """
        Process the request and handle any exceptions.

        Args:
            request: The incoming request
            call_next: The next middleware or route handler

        Returns:
            Response object
        """
        try:
            response = await call_next(request)
            return response

        except FarmEngineError as e:
            status_code, title = domain_error_response(e)
            logger.warning(
                f"{title}: {e.message}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                }
            )
            return JSONResponse(
                status_code=status_code,
                content={
                    "error": title,
                    "detail": e.message,
                }
            )

        except SensorFeedError as e:
            logger.error(
                f"Sensor gateway error: {e.message}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": e.status_code,
                }
            )
            return JSONResponse(
                status_code=status.HTTP_502_BAD_GATEWAY,
                content={
                    "error": "Sensor gateway error",
                    "detail": e.message,
                }
            )

        except ValueError as e:
            logger.warning(
                f"Validation error: {str(e)}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                }
            )
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={
                    "error": "Invalid request",
                    "detail": str(e),
                }
            )

        except Exception as e:
            logger.exception(
                f"Unhandled exception: {str(e)}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                }
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": "Internal server error",
                    "detail": "An unexpected error occurred",
                }
            )
