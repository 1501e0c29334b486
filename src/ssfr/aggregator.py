"""
Recommendation aggregator: checks the location, reads the five SSFR layers
for a crop in parallel, and merges them into one fertilizer recommendation.

Pipeline per request:
    Validate → Fan-out(5) → Fan-in → Extract → Sufficiency check

A failed layer never aborts its siblings; it becomes a gap in the result.
The request only fails outright when the location is outside Ethiopia or
when no layer produced a usable number.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from src.ssfr.client import LayerFetcher, LayerPayload, SSFRClient
from src.ssfr.config import AdvisoryConfig
from src.ssfr.errors import InsufficientDataError, SSFRError, UnsupportedRegionError
from src.ssfr.layers import (
    CATEGORIES, COMPOST, NPS, UNITS, UREA, VERMICOMPOST, YIELD,
    Crop, LayerSpec, layer_specs, parse_crop,
)
from src.ssfr.region import ETHIOPIA_BOUNDS, Coordinate, RegionBounds, is_supported

logger = logging.getLogger(__name__)

DATA_SOURCE = "Next-gen Agro Advisory Service"


@dataclass(frozen=True)
class LayerResult:
    """Outcome of one layer fetch: a payload, or the reason there is none."""
    category: str
    payload: Optional[LayerPayload] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class OrganicFertilizers:
    compost: Optional[float] = None       # tons/ha
    vermicompost: Optional[float] = None  # tons/ha

    def to_dict(self) -> Dict[str, float]:
        return _present(compost=self.compost, vermicompost=self.vermicompost)


@dataclass(frozen=True)
class InorganicFertilizers:
    urea: Optional[float] = None  # kg/ha
    nps: Optional[float] = None   # kg/ha

    def to_dict(self) -> Dict[str, float]:
        return _present(urea=self.urea, nps=self.nps)


@dataclass(frozen=True)
class Recommendation:
    """Merged fertilizer advice for one crop at one location."""
    crop: Crop
    location: Coordinate
    organic: OrganicFertilizers = field(default_factory=OrganicFertilizers)
    inorganic: InorganicFertilizers = field(default_factory=InorganicFertilizers)
    expected_yield: Optional[float] = None  # kg/ha
    data_source: str = DATA_SOURCE
    missing: Tuple[str, ...] = ()

    def to_dict(self) -> Dict:
        """Response shape, with unit tags attached."""
        data = {
            "crop": self.crop.value,
            "location": {
                "latitude": self.location.latitude,
                "longitude": self.location.longitude,
            },
            "fertilizers": {
                "organic": self.organic.to_dict(),
                "inorganic": self.inorganic.to_dict(),
            },
            "data_source": self.data_source,
            "units": dict(UNITS),
            "missing": list(self.missing),
        }
        if self.expected_yield is not None:
            data["expected_yield"] = self.expected_yield
        return data


def _present(**values) -> Dict[str, float]:
    return {k: v for k, v in values.items() if v is not None}


def coerce_value(value) -> Optional[float]:
    """
    Convert an upstream layer value to float.

    Numbers and numeric strings ('123.45') convert; None, booleans, NaN/inf,
    integers too large for a float and anything unparseable ('abc', '')
    come back as None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
    elif not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except (ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return number


class RecommendationAggregator:
    """
    Build SSFR recommendations from five concurrently fetched layers.

    Usage:
        aggregator = RecommendationAggregator(SSFRClient())
        rec = aggregator.recommend("wheat", Coordinate(9.145, 38.7617))
    """

    def __init__(
        self,
        fetcher: LayerFetcher,
        config: Optional[AdvisoryConfig] = None,
        bounds: RegionBounds = ETHIOPIA_BOUNDS,
    ):
        self.fetcher = fetcher
        self.config = config or AdvisoryConfig()
        self.bounds = bounds

    @classmethod
    def from_config(cls, config: AdvisoryConfig) -> "RecommendationAggregator":
        """Aggregator backed by the HTTP client described by config."""
        return cls(SSFRClient(config.base_url, timeout=config.timeout), config=config)

    def recommend(self, crop, coord: Coordinate) -> Recommendation:
        """
        Produce a fertilizer recommendation for a crop at a location.

        Args:
            crop: Crop member or name ('wheat' / 'maize')
            coord: Farm location

        Returns:
            Recommendation; fields whose layer failed or had no value are None
            and listed in `missing`.

        Raises:
            ValueError: Unknown crop.
            UnsupportedRegionError: Location outside the supported box. No
                layer is fetched.
            InsufficientDataError: No layer produced a usable value.
        """
        crop = parse_crop(crop)

        if not is_supported(coord, self.bounds):
            logger.info(
                "Rejecting (%s, %s): outside supported region",
                coord.latitude, coord.longitude,
            )
            raise UnsupportedRegionError(coord.latitude, coord.longitude, self.bounds.to_dict())

        specs = layer_specs(
            crop, date=self.config.query_date, date_overrides=self.config.date_overrides,
        )
        logger.info(
            "Fetching %d layers for %s at (%s, %s)",
            len(specs), crop.value, coord.latitude, coord.longitude,
        )
        results = self._fetch_all(specs, coord)

        values = self._extract(results)
        if not values:
            logger.warning(
                "No usable layer values for %s at (%s, %s)",
                crop.value, coord.latitude, coord.longitude,
            )
            raise InsufficientDataError(
                "No fertilizer recommendation data is available for this location"
            )

        missing = tuple(c for c in CATEGORIES if c not in values)
        recommendation = Recommendation(
            crop=crop,
            location=coord,
            organic=OrganicFertilizers(
                compost=values.get(COMPOST),
                vermicompost=values.get(VERMICOMPOST),
            ),
            inorganic=InorganicFertilizers(
                urea=values.get(UREA),
                nps=values.get(NPS),
            ),
            expected_yield=values.get(YIELD),
            missing=missing,
        )
        logger.info(
            "Recommendation ready for %s: %d/%d layers", crop.value,
            len(values), len(CATEGORIES),
        )
        return recommendation

    def _fetch_all(self, specs: Dict[str, LayerSpec], coord: Coordinate) -> Dict[str, LayerResult]:
        """Run every layer fetch in parallel and wait for all outcomes."""
        with ThreadPoolExecutor(max_workers=len(specs), thread_name_prefix="ssfr-layer") as pool:
            futures = {
                category: pool.submit(self._fetch_one, spec, coord)
                for category, spec in specs.items()
            }
            return {category: future.result() for category, future in futures.items()}

    def _fetch_one(self, spec: LayerSpec, coord: Coordinate) -> LayerResult:
        """Fetch a single layer, capturing any failure as a LayerResult."""
        try:
            payload = self.fetcher.fetch(spec.layer_id, coord, spec.date)
        except SSFRError as e:
            logger.warning("Layer %s failed: %s", spec.category, e)
            return LayerResult(category=spec.category, error=str(e))
        except Exception as e:
            logger.exception("Unexpected error fetching layer %s", spec.category)
            return LayerResult(category=spec.category, error=f"unexpected error: {e}")
        return LayerResult(category=spec.category, payload=payload)

    def _extract(self, results: Dict[str, LayerResult]) -> Dict[str, float]:
        """Pull the first coordinate value of each successful layer as a float."""
        values = {}
        for category, result in results.items():
            if not result.ok or result.payload is None:
                continue
            number = coerce_value(result.payload.first_value())
            if number is None:
                logger.debug("Layer %s returned no usable value", category)
                continue
            values[category] = number
        return values
