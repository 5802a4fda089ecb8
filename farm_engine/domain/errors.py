"""
Domain error taxonomy.

All errors are local and recoverable: they are raised to the caller and
never retried by the engine.
"""


class FarmEngineError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidTransitionError(FarmEngineError):
    """A lifecycle event is not valid from the current state."""

    def __init__(self, entity: str, current: str, event: str):
        super().__init__(f"Cannot apply '{event}' to {entity} in state '{current}'")
        self.entity = entity
        self.current = current
        self.event = event


class AutoModeActiveError(FarmEngineError):
    """Manual override attempted while automatic control owns the actuator."""

    def __init__(self, actuator: str):
        super().__init__(f"{actuator} is under automatic control; switch to manual mode first")
        self.actuator = actuator


class NoSensorDataError(FarmEngineError):
    """A computation needs sensor history that has not been collected yet."""
    pass


class InvalidInputError(FarmEngineError):
    """Malformed or missing input values."""
    pass


class DeviceNotOnlineError(FarmEngineError):
    """Sensor samples were supplied for a device that is not online."""

    def __init__(self, farmer_id: str, status: str):
        super().__init__(f"Device for farmer '{farmer_id}' is not online (status: {status})")
        self.farmer_id = farmer_id
        self.status = status


class NotFoundError(FarmEngineError):
    """Unknown farmer or order."""
    pass
