"""
Pydantic request/response schemas for the SSFR fertilizer recommendation service.
"""

from typing import List, Optional, Dict
from pydantic import BaseModel, Field

from src.ssfr.layers import Crop


class RecommendationRequest(BaseModel):
    """Input schema for /recommend endpoint."""
    crop: Crop = Field(..., description="Crop type: wheat or maize")
    latitude: Optional[float] = Field(
        None, ge=-90, le=90,
        description="Latitude coordinate. Optional if sent in the X-Farm-Latitude header.",
    )
    longitude: Optional[float] = Field(
        None, ge=-180, le=180,
        description="Longitude coordinate. Optional if sent in the X-Farm-Longitude header.",
    )

    model_config = {"json_schema_extra": {
        "examples": [{
            "crop": "wheat", "latitude": 9.145, "longitude": 38.7617,
        }]
    }}


class Location(BaseModel):
    latitude: float
    longitude: float


class Fertilizers(BaseModel):
    """Fertilizer quantities; keys are omitted when a layer had no value."""
    organic: Dict[str, float]
    inorganic: Dict[str, float]


class Units(BaseModel):
    organic: str = "tons/ha"
    inorganic: str = "kg/ha"
    yield_: str = Field("kg/ha", alias="yield")

    model_config = {"populate_by_name": True}


class RecommendationResponse(BaseModel):
    """Output schema for /recommend endpoint."""
    crop: str
    location: Location
    fertilizers: Fertilizers
    expected_yield: Optional[float] = None
    data_source: str
    units: Units
    missing: List[str] = []


class RegionBoundsModel(BaseModel):
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float


class UnsupportedRegionDetail(BaseModel):
    """Returned (as `detail`) when the location is outside Ethiopia."""
    error: str = "Location not supported"
    message: str
    location: Location
    ethiopia_bounds: RegionBoundsModel


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    timestamp: str
    version: str
    supported_crops: List[str]
    supported_region: str


class ServiceInfo(BaseModel):
    """Root endpoint description."""
    service: str
    version: str
    description: str
    endpoints: Dict[str, str]
    tools: List[str]
    supported_crops: List[str]
    supported_region: str
