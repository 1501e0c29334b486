"""
CLI for Site-Specific Fertilizer Recommendations.

Usage:
    python scripts/recommend.py --crop wheat --lat 9.145 --lon 38.7617
    python scripts/recommend.py --crop maize --lat 7.05 --lon 38.47 --date 2024-07 -v
"""

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.ssfr.aggregator import RecommendationAggregator
from src.ssfr.config import AdvisoryConfig
from src.ssfr.errors import InsufficientDataError, UnsupportedRegionError
from src.ssfr.layers import SUPPORTED_CROPS
from src.ssfr.region import Coordinate


def main(argv=None):
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Get a fertilizer recommendation for a farm in Ethiopia",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/recommend.py --crop wheat --lat 9.145 --lon 38.7617
  python scripts/recommend.py --crop maize --lat 7.05 --lon 38.47 --timeout 10
        """,
    )
    parser.add_argument("--crop", required=True, choices=SUPPORTED_CROPS, help="Crop type")
    parser.add_argument("--lat", required=True, type=float, help="Latitude (decimal degrees)")
    parser.add_argument("--lon", required=True, type=float, help="Longitude (decimal degrees)")
    parser.add_argument(
        "--date", default=None,
        help="Query date YYYY-MM (default: SSFR_QUERY_DATE or 2024-07)",
    )
    parser.add_argument(
        "--base-url", default=None,
        help="Advisory API base URL (default: SSFR_API_BASE_URL)",
    )
    parser.add_argument(
        "--timeout", type=float, default=None,
        help="Per-layer timeout in seconds (default: SSFR_TIMEOUT_SECONDS or 30)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    overrides = {}
    if args.date:
        overrides["query_date"] = args.date
    if args.base_url:
        overrides["base_url"] = args.base_url
    if args.timeout is not None:
        overrides["timeout"] = args.timeout
    try:
        config = dataclasses.replace(AdvisoryConfig.from_env(), **overrides)
    except ValueError as e:
        parser.error(str(e))

    aggregator = RecommendationAggregator.from_config(config)

    try:
        rec = aggregator.recommend(args.crop, Coordinate(latitude=args.lat, longitude=args.lon))
    except UnsupportedRegionError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        print(json.dumps({"ethiopia_bounds": e.bounds}, indent=2), file=sys.stderr)
        return 1
    except InsufficientDataError:
        print(
            "ERROR: No recommendation data is available right now. Try again in a moment.",
            file=sys.stderr,
        )
        return 1

    print(json.dumps(rec.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
