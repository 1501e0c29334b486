"""
Exceptions raised by the SSFR client and recommendation aggregator.

Per-layer faults (everything deriving from LayerFetchError, plus
InvalidArgumentError raised for a single fetch) are recorded as gaps by the
aggregator. Only UnsupportedRegionError and InsufficientDataError escape
from a recommendation request.
"""

from typing import Dict, Optional


class SSFRError(Exception):
    """Base class for all SSFR errors."""


class InvalidArgumentError(SSFRError, ValueError):
    """A layer id, coordinate or date failed local validation."""


class LayerFetchError(SSFRError):
    """A single layer lookup failed."""

    def __init__(self, layer_id: str, message: str):
        super().__init__(f"{layer_id}: {message}")
        self.layer_id = layer_id
        self.message = message


class UpstreamTimeoutError(LayerFetchError):
    """No response arrived within the configured ceiling."""

    def __init__(self, layer_id: str, timeout: float):
        super().__init__(layer_id, f"no response within {timeout:g}s")
        self.timeout = timeout


class UpstreamError(LayerFetchError):
    """The advisory service answered with a failure status or was unreachable."""

    def __init__(self, layer_id: str, message: str, status: Optional[int] = None):
        if status is not None:
            message = f"HTTP {status} - {message}"
        super().__init__(layer_id, message)
        self.status = status


class MalformedResponseError(LayerFetchError):
    """The response body is not a recognized layer payload."""


class UnsupportedRegionError(SSFRError):
    """The coordinate lies outside the supported bounding box."""

    def __init__(self, latitude: float, longitude: float, bounds: Dict[str, float]):
        super().__init__(
            f"Coordinates ({latitude}, {longitude}) are outside Ethiopia. "
            "SSFR is only available for Ethiopian locations."
        )
        self.latitude = latitude
        self.longitude = longitude
        self.bounds = bounds


class InsufficientDataError(SSFRError):
    """None of the advisory layers produced a usable value."""
