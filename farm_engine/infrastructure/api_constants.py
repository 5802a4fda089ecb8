"""
Device gateway endpoint constants.

Centralizing these values makes it easy to point the HTTP sensor feed at a
different gateway version.
"""


class GatewayEndpoints:
    """Device gateway endpoint paths."""

    DEVICES_BASE = "/devices"

    LATEST_READING = f"{DEVICES_BASE}/{{device_id}}/readings/latest"

    @classmethod
    def latest_reading(cls, device_id: str) -> str:
        """
        Latest reading endpoint for one device.

        Args:
            device_id: Device identifier (the owning farmer's id)

        Returns:
            Formatted endpoint path
        """
        return cls.LATEST_READING.format(device_id=device_id)


class APIConstants:
    """General gateway configuration constants."""

    CONTENT_TYPE_JSON = "application/json"

    # Timeouts (in seconds)
    DEFAULT_TIMEOUT = 10.0
