"""
Next-gen Agro Advisory client: fetches one SSFR layer value for a point.

Each call reads a single layer:
    GET {base}/coordinates/{layer}/{urlencoded [{"lat":..,"lon":..}]}/{date}

Responses look like:
    {"layer": "...", "date": "2024-07",
     "coordinates": [{"lat": 9.1, "lon": 38.7, "value": "265.67"}]}

API: https://webapi.nextgenagroadvisory.com
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Union
from urllib.parse import quote

import requests

from src.ssfr.config import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_SECONDS
from src.ssfr.errors import (
    InvalidArgumentError, MalformedResponseError, UpstreamError,
    UpstreamTimeoutError,
)
from src.ssfr.region import Coordinate, in_absolute_range

logger = logging.getLogger(__name__)

RawValue = Union[float, int, str, None]


@dataclass(frozen=True)
class CoordinateRecord:
    """One point in a layer response."""
    lat: Optional[float]
    lon: Optional[float]
    value: RawValue = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LayerPayload:
    """A layer response that passed shape checks."""
    layer: Optional[str]
    date: Optional[str]
    coordinates: List[CoordinateRecord]

    def first_value(self) -> RawValue:
        """Value of the first coordinate record, or None if there is none."""
        if not self.coordinates:
            return None
        return self.coordinates[0].value


class LayerFetcher(Protocol):
    """Anything that can look up one advisory layer for a coordinate."""

    def fetch(self, layer_id: str, coord: Coordinate, date: str) -> LayerPayload:
        ...


def parse_layer_payload(layer_id: str, data: Any) -> LayerPayload:
    """
    Check a decoded JSON body and convert it into a LayerPayload.

    A missing 'coordinates' key is treated as an empty result.

    Raises:
        MalformedResponseError: If the body is not an object, or the
            coordinates entry is not a list of objects.
    """
    if not isinstance(data, dict):
        raise MalformedResponseError(
            layer_id, f"expected a JSON object, got {type(data).__name__}"
        )

    raw_coords = data.get("coordinates")
    if raw_coords is None:
        raw_coords = []
    if not isinstance(raw_coords, list):
        raise MalformedResponseError(layer_id, "'coordinates' is not a list")

    records = []
    for entry in raw_coords:
        if not isinstance(entry, dict):
            raise MalformedResponseError(layer_id, "coordinate entry is not an object")
        value = entry.get("value")
        if value is not None and not isinstance(value, (int, float, str)):
            # Nested structures are not a scalar reading
            value = None
        records.append(CoordinateRecord(
            lat=entry.get("lat"),
            lon=entry.get("lon"),
            value=value,
            extra={k: v for k, v in entry.items() if k not in ("lat", "lon", "value")},
        ))

    return LayerPayload(
        layer=data.get("layer"),
        date=data.get("date"),
        coordinates=records,
    )


class SSFRClient:
    """
    HTTP LayerFetcher backed by the Next-gen Agro Advisory API.

    Usage:
        client = SSFRClient(timeout=30)
        payload = client.fetch(
            "et_wheat_urea_probabilistic_dominant",
            Coordinate(9.145, 38.7617), "2024-07",
        )
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def layer_url(self, layer_id: str, coord: Coordinate, date: str) -> str:
        coordinates = json.dumps(
            [{"lat": coord.latitude, "lon": coord.longitude}], separators=(",", ":")
        )
        return f"{self.base_url}/coordinates/{layer_id}/{quote(coordinates, safe='')}/{date}"

    def fetch(self, layer_id: str, coord: Coordinate, date: str) -> LayerPayload:
        """
        Fetch one layer for a coordinate.

        Args:
            layer_id: Upstream layer name (e.g. 'et_wheat_urea_probabilistic_dominant')
            coord: Point to query
            date: Query date (YYYY-MM)

        Returns:
            Parsed LayerPayload.

        Raises:
            InvalidArgumentError: Empty layer/date or out-of-range coordinate.
            UpstreamTimeoutError: No response within self.timeout seconds.
            UpstreamError: Non-success status or transport failure.
            MalformedResponseError: Body is not a recognized payload.
        """
        if not layer_id:
            raise InvalidArgumentError("layer_id must not be empty")
        if not date:
            raise InvalidArgumentError("date must not be empty")
        if not in_absolute_range(coord):
            raise InvalidArgumentError(
                f"Coordinates ({coord.latitude}, {coord.longitude}) out of range "
                "[-90, 90] / [-180, 180]"
            )

        url = self.layer_url(layer_id, coord, date)
        logger.info("Fetching: %s for (%s, %s)", layer_id, coord.latitude, coord.longitude)

        try:
            resp = requests.get(
                url, timeout=self.timeout,
                headers={"Accept": "application/json"},
            )
            resp.raise_for_status()
        except requests.exceptions.Timeout:
            logger.warning("Advisory API timed out for %s after %ss", layer_id, self.timeout)
            raise UpstreamTimeoutError(layer_id, self.timeout) from None
        except requests.exceptions.HTTPError as e:
            response = e.response
            status = getattr(response, "status_code", None)
            reason = getattr(response, "reason", "") or ""
            body = getattr(response, "text", "") or ""
            logger.warning("Advisory API error for %s: %s %s", layer_id, status, reason)
            raise UpstreamError(layer_id, f"{reason} {body}".strip(), status=status) from e
        except requests.exceptions.RequestException as e:
            logger.warning("Advisory API request failed for %s: %s", layer_id, e)
            raise UpstreamError(layer_id, str(e)) from e

        try:
            data = resp.json()
        except ValueError as e:
            raise MalformedResponseError(layer_id, f"body is not valid JSON: {e}") from e

        return parse_layer_payload(layer_id, data)
