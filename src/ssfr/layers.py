"""
Advisory layer catalogue: which upstream layer answers which fertilizer
question for each supported crop.

The advisory service publishes one raster layer per (crop, category). All five
categories are queried with the same date; per-category dates can be supplied
as overrides.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional


class Crop(str, Enum):
    """Crops covered by the advisory service."""
    WHEAT = "wheat"
    MAIZE = "maize"


SUPPORTED_CROPS: List[str] = [c.value for c in Crop]

# Categories, in the order results are reported
COMPOST = "compost"
NPS = "nps"
UREA = "urea"
VERMICOMPOST = "vermicompost"
YIELD = "yield"

CATEGORIES: List[str] = [COMPOST, NPS, UREA, VERMICOMPOST, YIELD]

ORGANIC_CATEGORIES = (COMPOST, VERMICOMPOST)    # tons/ha
INORGANIC_CATEGORIES = (UREA, NPS)              # kg/ha

UNITS = {
    "organic": "tons/ha",
    "inorganic": "kg/ha",
    "yield": "kg/ha",
}

# Upstream layer names, keyed by crop then category
SSFR_LAYERS: Dict[Crop, Dict[str, str]] = {
    Crop.WHEAT: {
        COMPOST: "et_wheat_compost_probabilistic_dominant",
        NPS: "et_wheat_nps_probabilistic_dominant",
        UREA: "et_wheat_urea_probabilistic_dominant",
        VERMICOMPOST: "et_wheat_vcompost_probabilistic_dominant",
        YIELD: "et_wheat_yieldtypes_optimal_dominant",
    },
    Crop.MAIZE: {
        COMPOST: "et_maize_compost_probabilistic_dominant",
        NPS: "et_maize_nps_probabilistic_dominant",
        UREA: "et_maize_urea_probabilistic_dominant",
        VERMICOMPOST: "et_maize_vcompost_probabilistic_dominant",
        YIELD: "et_maize_yieldtypes_optimal_dominant",
    },
}

DEFAULT_QUERY_DATE = "2024-07"


@dataclass(frozen=True)
class LayerSpec:
    """One category lookup: which layer to read and for which date."""
    category: str
    layer_id: str
    date: str


def parse_crop(crop) -> Crop:
    """
    Normalize a crop name or Crop member.

    Raises:
        ValueError: If the crop is not supported.
    """
    if isinstance(crop, Crop):
        return crop
    try:
        return Crop(str(crop).strip().lower())
    except ValueError:
        raise ValueError(
            f"Unsupported crop '{crop}'. Choose one of: {', '.join(SUPPORTED_CROPS)}"
        ) from None


def layer_specs(
    crop,
    date: str = DEFAULT_QUERY_DATE,
    date_overrides: Optional[Dict[str, str]] = None,
) -> Dict[str, LayerSpec]:
    """
    Build the five LayerSpecs for a crop.

    Args:
        crop: Crop member or name ('wheat' / 'maize')
        date: Shared query date (YYYY-MM)
        date_overrides: Optional category -> date mapping

    Returns:
        Dict of category -> LayerSpec, one entry per category.
    """
    crop = parse_crop(crop)
    overrides = date_overrides or {}
    unknown = set(overrides) - set(CATEGORIES)
    if unknown:
        raise ValueError(f"Unknown layer categories in date overrides: {sorted(unknown)}")

    return {
        category: LayerSpec(
            category=category,
            layer_id=layer_id,
            date=overrides.get(category, date),
        )
        for category, layer_id in SSFR_LAYERS[crop].items()
    }
