"""
FastAPI application for Site-Specific Fertilizer Recommendations (SSFR).

Endpoints:
    POST /recommend  — Fertilizer quantities and expected yield for wheat/maize in Ethiopia
    GET  /health     — Health check
    GET  /metrics    — Prometheus metrics
    GET  /           — Service description
"""

import logging
import math
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response as PrometheusResponse
from prometheus_client import Counter, Histogram, generate_latest

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.api.schemas import (
    RecommendationRequest, RecommendationResponse, UnsupportedRegionDetail,
    HealthResponse, ServiceInfo,
)
from src.ssfr.aggregator import RecommendationAggregator
from src.ssfr.config import AdvisoryConfig
from src.ssfr.errors import InsufficientDataError, UnsupportedRegionError
from src.ssfr.layers import SUPPORTED_CROPS
from src.ssfr.region import SUPPORTED_REGION, Coordinate

logger = logging.getLogger(__name__)

load_dotenv()

SERVICE_NAME = "ssfr-mcp-server"
SERVICE_VERSION = "1.0.0"
TOOL_NAME = "get_fertilizer_recommendation"

MISSING_LOCATION_MESSAGE = (
    "I need to know your farm location to provide fertilizer recommendations. "
    "Please provide your latitude and longitude coordinates."
)
UNSUPPORTED_REGION_MESSAGE = (
    "Site-Specific Fertilizer Recommendations are only available for locations "
    "in Ethiopia. Your coordinates are outside the supported region."
)
TRY_AGAIN_MESSAGE = (
    "I'm having trouble getting fertilizer recommendations right now. "
    "Try again in a moment?"
)

# ---- App setup ----
config = AdvisoryConfig.from_env()

app = FastAPI(
    title="SSFR Fertilizer Recommendations API",
    description=(
        "Site-Specific Fertilizer Recommendations for Ethiopian farmers via the "
        "Next-gen Agro Advisory Service"
    ),
    version=SERVICE_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins,
    expose_headers=["Mcp-Session-Id"],
    allow_headers=[
        "Content-Type", "mcp-session-id", "Authorization",
        "X-Farm-Latitude", "X-Farm-Longitude",
    ],
    allow_methods=["*"],
)

# ---- Prometheus metrics ----
REQUEST_COUNT = Counter(
    "recommend_requests_total", "Total recommendation requests",
    ["crop", "outcome"],
)
REQUEST_LATENCY = Histogram(
    "recommend_latency_seconds", "Recommendation latency",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)
MISSING_LAYERS = Counter(
    "recommend_missing_layers_total", "Layers absent from successful recommendations",
    ["layer"],
)

# ---- Global aggregator reference ----
aggregator: RecommendationAggregator = None


def build_aggregator():
    """Create the aggregator from environment configuration."""
    global aggregator
    aggregator = RecommendationAggregator.from_config(config)
    logger.info(
        "SSFR aggregator ready (upstream=%s, timeout=%ss, date=%s)",
        config.base_url, config.timeout, config.query_date,
    )


@app.on_event("startup")
async def startup_event():
    build_aggregator()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy" if aggregator is not None else "degraded",
        service=SERVICE_NAME,
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=SERVICE_VERSION,
        supported_crops=SUPPORTED_CROPS,
        supported_region=SUPPORTED_REGION,
    )


@app.get("/", response_model=ServiceInfo)
async def service_info():
    """Describe the service and its endpoints."""
    return ServiceInfo(
        service="SSFR Fertilizer Recommendations",
        version=SERVICE_VERSION,
        description=(
            "Site-Specific Fertilizer Recommendations for Ethiopian farmers via "
            "Next-gen Agro Advisory Service"
        ),
        endpoints={
            "health": "/health",
            "recommend": "/recommend (POST)",
            "metrics": "/metrics",
        },
        tools=[TOOL_NAME],
        supported_crops=SUPPORTED_CROPS,
        supported_region=f"{SUPPORTED_REGION} only",
    )


@app.get("/metrics")
async def metrics():
    return PrometheusResponse(
        content=generate_latest(),
        media_type="text/plain",
    )


def _header_coordinate(raw: Optional[str], name: str, limit: float) -> Optional[float]:
    """
    Parse a default coordinate header.

    Non-numeric, non-finite or out-of-range values (|value| > limit) are
    ignored, leaving the location unset.
    """
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s header: %r", name, raw)
        return None
    if not math.isfinite(value) or not -limit <= value <= limit:
        logger.warning("Ignoring out-of-range %s header: %r", name, raw)
        return None
    return value


@app.post("/recommend", response_model=RecommendationResponse, response_model_exclude_none=True)
def recommend(
    request: RecommendationRequest,
    x_farm_latitude: Optional[str] = Header(None),
    x_farm_longitude: Optional[str] = Header(None),
):
    """
    Site-Specific Fertilizer Recommendation for wheat or maize in Ethiopia.

    Returns organic (compost, vermicompost) and inorganic (urea, NPS)
    fertilizer quantities plus expected yield. Latitude/longitude default to
    the X-Farm-Latitude / X-Farm-Longitude headers when omitted.
    """
    if aggregator is None:
        raise HTTPException(status_code=503, detail="Service not initialised")

    lat = request.latitude
    if lat is None:
        lat = _header_coordinate(x_farm_latitude, "X-Farm-Latitude", 90)
    lon = request.longitude
    if lon is None:
        lon = _header_coordinate(x_farm_longitude, "X-Farm-Longitude", 180)

    crop = request.crop.value
    logger.info("%s called: crop=%s, lat=%s, lon=%s", TOOL_NAME, crop, lat, lon)

    if lat is None or lon is None:
        REQUEST_COUNT.labels(crop=crop, outcome="missing_location").inc()
        raise HTTPException(status_code=422, detail=MISSING_LOCATION_MESSAGE)

    start_time = time.time()
    try:
        rec = aggregator.recommend(request.crop, Coordinate(latitude=lat, longitude=lon))
    except UnsupportedRegionError as e:
        REQUEST_COUNT.labels(crop=crop, outcome="unsupported_region").inc()
        detail = UnsupportedRegionDetail(
            message=UNSUPPORTED_REGION_MESSAGE,
            location={"latitude": e.latitude, "longitude": e.longitude},
            ethiopia_bounds=e.bounds,
        )
        raise HTTPException(status_code=422, detail=detail.model_dump())
    except InsufficientDataError:
        REQUEST_COUNT.labels(crop=crop, outcome="insufficient_data").inc()
        raise HTTPException(status_code=502, detail=TRY_AGAIN_MESSAGE)
    except Exception:
        logger.exception("Error in %s", TOOL_NAME)
        REQUEST_COUNT.labels(crop=crop, outcome="error").inc()
        raise HTTPException(status_code=500, detail=TRY_AGAIN_MESSAGE)
    finally:
        REQUEST_LATENCY.observe(time.time() - start_time)

    REQUEST_COUNT.labels(crop=crop, outcome="ok").inc()
    for layer in rec.missing:
        MISSING_LAYERS.labels(layer=layer).inc()

    return RecommendationResponse(**rec.to_dict())


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    uvicorn.run(app, host="0.0.0.0", port=config.port)
