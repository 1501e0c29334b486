"""Tests for the FastAPI /recommend, /health and / endpoints."""

import sys
import pytest
from pathlib import Path
from unittest.mock import MagicMock

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture
def recommendation():
    """A partial wheat recommendation (urea layer missing)."""
    from src.ssfr.aggregator import InorganicFertilizers, OrganicFertilizers, Recommendation
    from src.ssfr.layers import Crop
    from src.ssfr.region import Coordinate

    return Recommendation(
        crop=Crop.WHEAT,
        location=Coordinate(9.145, 38.7617),
        organic=OrganicFertilizers(compost=20.0, vermicompost=16.0),
        inorganic=InorganicFertilizers(nps=0.0),
        expected_yield=3580.53,
        missing=("urea",),
    )


@pytest.fixture
def client(recommendation):
    """Create test client with a mocked aggregator."""
    mock_aggregator = MagicMock()
    mock_aggregator.recommend.return_value = recommendation

    import src.api.app as app_module
    app_module.aggregator = mock_aggregator

    from fastapi.testclient import TestClient
    return TestClient(app_module.app), mock_aggregator


class TestHealthEndpoint:
    def test_health(self, client):
        test_client, _ = client
        response = test_client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "ssfr-mcp-server"
        assert data["supported_crops"] == ["wheat", "maize"]
        assert data["supported_region"] == "Ethiopia"

    def test_health_degraded_without_aggregator(self, client):
        test_client, _ = client
        import src.api.app as app_module
        app_module.aggregator = None

        response = test_client.get("/health")

        assert response.json()["status"] == "degraded"

    def test_service_info(self, client):
        test_client, _ = client
        data = test_client.get("/").json()
        assert data["tools"] == ["get_fertilizer_recommendation"]
        assert data["supported_region"] == "Ethiopia only"
        assert "/recommend (POST)" in data["endpoints"].values()


class TestRecommendEndpoint:
    def test_recommend_returns_correct_schema(self, client):
        test_client, mock_aggregator = client

        response = test_client.post(
            "/recommend",
            json={"crop": "wheat", "latitude": 9.145, "longitude": 38.7617},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["crop"] == "wheat"
        assert data["location"] == {"latitude": 9.145, "longitude": 38.7617}
        assert data["fertilizers"]["organic"] == {"compost": 20.0, "vermicompost": 16.0}
        assert data["fertilizers"]["inorganic"] == {"nps": 0.0}
        assert data["expected_yield"] == 3580.53
        assert data["data_source"] == "Next-gen Agro Advisory Service"
        assert data["units"] == {"organic": "tons/ha", "inorganic": "kg/ha", "yield": "kg/ha"}
        assert data["missing"] == ["urea"]

        from src.ssfr.layers import Crop
        from src.ssfr.region import Coordinate
        mock_aggregator.recommend.assert_called_once_with(Crop.WHEAT, Coordinate(9.145, 38.7617))

    def test_header_coordinates_used_as_default(self, client):
        test_client, mock_aggregator = client

        response = test_client.post(
            "/recommend",
            json={"crop": "maize"},
            headers={"X-Farm-Latitude": "7.05", "X-Farm-Longitude": "38.47"},
        )

        assert response.status_code == 200
        coord = mock_aggregator.recommend.call_args[0][1]
        assert (coord.latitude, coord.longitude) == (7.05, 38.47)

    def test_body_coordinates_override_headers(self, client):
        test_client, mock_aggregator = client

        test_client.post(
            "/recommend",
            json={"crop": "wheat", "latitude": 9.0, "longitude": 39.0},
            headers={"X-Farm-Latitude": "7.05", "X-Farm-Longitude": "38.47"},
        )

        coord = mock_aggregator.recommend.call_args[0][1]
        assert (coord.latitude, coord.longitude) == (9.0, 39.0)

    def test_missing_location(self, client):
        test_client, mock_aggregator = client

        response = test_client.post(
            "/recommend",
            json={"crop": "wheat"},
            headers={"X-Farm-Latitude": "not-a-number"},
        )

        assert response.status_code == 422
        assert "farm location" in response.json()["detail"]
        mock_aggregator.recommend.assert_not_called()

    @pytest.mark.parametrize("lat_header,lon_header", [
        ("nan", "38.7"),
        ("inf", "38.7"),
        ("9.0", "-inf"),
        ("95", "38.7"),
        ("9.0", "181"),
    ])
    def test_unusable_header_coordinates(self, client, lat_header, lon_header):
        """Non-finite or out-of-range header values count as no location."""
        test_client, mock_aggregator = client

        response = test_client.post(
            "/recommend",
            json={"crop": "wheat"},
            headers={"X-Farm-Latitude": lat_header, "X-Farm-Longitude": lon_header},
        )

        assert response.status_code == 422
        assert "farm location" in response.json()["detail"]
        mock_aggregator.recommend.assert_not_called()

    def test_missing_yield_omitted_from_response(self, client):
        from src.ssfr.aggregator import OrganicFertilizers, Recommendation
        from src.ssfr.layers import Crop
        from src.ssfr.region import Coordinate

        test_client, mock_aggregator = client
        mock_aggregator.recommend.return_value = Recommendation(
            crop=Crop.MAIZE,
            location=Coordinate(7.05, 38.47),
            organic=OrganicFertilizers(compost=12.0),
            missing=("nps", "urea", "vermicompost", "yield"),
        )

        response = test_client.post(
            "/recommend",
            json={"crop": "maize", "latitude": 7.05, "longitude": 38.47},
        )

        assert response.status_code == 200
        data = response.json()
        assert "expected_yield" not in data
        assert data["fertilizers"] == {"organic": {"compost": 12.0}, "inorganic": {}}

    def test_unsupported_region(self, client):
        from src.ssfr.errors import UnsupportedRegionError
        from src.ssfr.region import ETHIOPIA_BOUNDS

        test_client, mock_aggregator = client
        mock_aggregator.recommend.side_effect = UnsupportedRegionError(
            51.5074, -0.1278, ETHIOPIA_BOUNDS.to_dict(),
        )

        response = test_client.post(
            "/recommend",
            json={"crop": "wheat", "latitude": 51.5074, "longitude": -0.1278},
        )

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["error"] == "Location not supported"
        assert detail["location"] == {"latitude": 51.5074, "longitude": -0.1278}
        assert detail["ethiopia_bounds"] == {
            "min_lat": 3.0, "max_lat": 15.0, "min_lon": 32.0, "max_lon": 48.0,
        }

    def test_insufficient_data_is_generic(self, client):
        from src.ssfr.errors import InsufficientDataError

        test_client, mock_aggregator = client
        mock_aggregator.recommend.side_effect = InsufficientDataError("all layers failed")

        response = test_client.post(
            "/recommend",
            json={"crop": "wheat", "latitude": 9.145, "longitude": 38.7617},
        )

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert "Try again" in detail
        assert "all layers failed" not in detail

    def test_unexpected_error(self, client):
        test_client, mock_aggregator = client
        mock_aggregator.recommend.side_effect = RuntimeError("pool exploded")

        response = test_client.post(
            "/recommend",
            json={"crop": "wheat", "latitude": 9.145, "longitude": 38.7617},
        )

        assert response.status_code == 500
        assert "pool exploded" not in response.json()["detail"]

    def test_invalid_crop_returns_422(self, client):
        test_client, _ = client
        response = test_client.post(
            "/recommend",
            json={"crop": "teff", "latitude": 9.145, "longitude": 38.7617},
        )
        assert response.status_code == 422

    def test_latitude_out_of_range_returns_422(self, client):
        test_client, _ = client
        response = test_client.post(
            "/recommend",
            json={"crop": "wheat", "latitude": 95.0, "longitude": 38.7617},
        )
        assert response.status_code == 422


class TestEndToEnd:
    def test_real_aggregator_with_mocked_http(self):
        """Full request path with only requests.get mocked."""
        from unittest.mock import patch
        from fastapi.testclient import TestClient
        import src.api.app as app_module
        from src.ssfr.aggregator import RecommendationAggregator
        from src.ssfr.config import AdvisoryConfig

        values = {
            "compost": "20", "vcompost": "16", "urea": "265.67",
            "nps": "0", "yieldtypes": "3580.53",
        }

        def fake_get(url, timeout=None, headers=None):
            layer = url.split("/coordinates/")[1].split("/")[0]
            key = layer.split("_")[2]
            resp = MagicMock()
            resp.raise_for_status = MagicMock()
            resp.json.return_value = {
                "layer": layer, "date": "2024-07",
                "coordinates": [{"lat": 9.145, "lon": 38.7617, "value": values[key]}],
            }
            return resp

        app_module.aggregator = RecommendationAggregator.from_config(
            AdvisoryConfig(base_url="https://api.example"),
        )
        with patch("src.ssfr.client.requests.get", side_effect=fake_get) as mock_get:
            response = TestClient(app_module.app).post(
                "/recommend",
                json={"crop": "wheat", "latitude": 9.145, "longitude": 38.7617},
            )

        assert response.status_code == 200
        assert mock_get.call_count == 5
        data = response.json()
        assert data["fertilizers"] == {
            "organic": {"compost": 20.0, "vermicompost": 16.0},
            "inorganic": {"urea": 265.67, "nps": 0.0},
        }
        assert data["expected_yield"] == 3580.53
        assert data["missing"] == []
