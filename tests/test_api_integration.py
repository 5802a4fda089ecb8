"""
Integration tests for API endpoints.

Tests the full HTTP request/response cycle against an in-memory service.
"""
import pytest

from conftest import make_sample


def sample_body(seconds: float, humidity: float = 65.0, temperature: float = 25.0) -> dict:
    return make_sample(seconds, humidity, temperature).model_dump(mode="json")


# ============================================================
# Health Check Tests
# ============================================================

class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, test_client):
        """Root endpoint should return healthy status."""
        response = test_client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "service" in data
        assert "version" in data

    def test_health_endpoint(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


# ============================================================
# Lifecycle Endpoint Tests
# ============================================================

class TestLifecycleEndpoints:
    """Registration and device lifecycle events."""

    def test_register_farmer(self, test_client):
        response = test_client.post("/api/v1/farmers", json={"name": "Siti Aminah", "farmer_id": "farmer-9"})

        assert response.status_code == 201
        data = response.json()
        assert data["farmer_id"] == "farmer-9"
        assert data["status"] == "registered"
        assert data["status_label"] == "Terdaftar"
        assert data["allowed_events"] == ["purchase"]

    def test_register_requires_name(self, test_client):
        response = test_client.post("/api/v1/farmers", json={"name": ""})

        assert response.status_code == 422

    def test_purchase_premium(self, test_client):
        test_client.post("/api/v1/farmers", json={"name": "Budi", "farmer_id": "farmer-2"})

        response = test_client.post(
            "/api/v1/farmers/farmer-2/lifecycle/events",
            json={"event": "purchase", "plan": "premium"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "pending_shipment"
        assert data["purchase"]["amount"] == 450000
        assert data["transitions"][0]["from_status"] == "registered"

    def test_invalid_transition_returns_409(self, test_client):
        test_client.post("/api/v1/farmers", json={"name": "Budi", "farmer_id": "farmer-2"})

        response = test_client.post(
            "/api/v1/farmers/farmer-2/lifecycle/events",
            json={"event": "connect_device"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "Invalid transition"
        assert test_client.get("/api/v1/farmers/farmer-2/lifecycle").json()["status"] == "registered"

    def test_unknown_event_rejected(self, test_client):
        test_client.post("/api/v1/farmers", json={"name": "Budi", "farmer_id": "farmer-2"})

        response = test_client.post(
            "/api/v1/farmers/farmer-2/lifecycle/events",
            json={"event": "teleport"},
        )

        assert response.status_code == 422

    def test_unknown_farmer_returns_404(self, test_client):
        response = test_client.get("/api/v1/farmers/nobody/lifecycle")

        assert response.status_code == 404
        assert response.json()["error"] == "Not found"


# ============================================================
# Controller Endpoint Tests
# ============================================================

class TestControllerEndpoints:
    """Ticks, irrigation and mist control."""

    def test_tick_requires_online_device(self, test_client):
        test_client.post("/api/v1/farmers", json={"name": "Budi", "farmer_id": "farmer-2"})

        response = test_client.post("/api/v1/farmers/farmer-2/tick", json=sample_body(0))

        assert response.status_code == 409
        assert response.json()["error"] == "Device not online"

    def test_tick_drives_pump(self, test_client, online_farmer):
        test_client.put(f"/api/v1/farmers/{online_farmer}/irrigation/mode", json={"mode": "automatic"})

        response = test_client.post(
            f"/api/v1/farmers/{online_farmer}/tick",
            json=sample_body(0, temperature=31.5),
        )

        assert response.status_code == 200
        irrigation = response.json()["irrigation"]
        assert irrigation["pump_on"] is True
        assert irrigation["mode_label"] == "Otomatis"
        assert irrigation["log"][0]["message"] == "Pump on: temperature 31.5°C"

    def test_tick_starts_spray(self, test_client, timers, online_farmer):
        test_client.put(f"/api/v1/farmers/{online_farmer}/mist/mode", json={"mode": "automatic"})

        response = test_client.post(
            f"/api/v1/farmers/{online_farmer}/tick",
            json=sample_body(0, humidity=52.0),
        )

        mist = response.json()["mist"]
        assert mist["sprayer_on"] is True
        assert mist["spraying_since"] is not None
        assert list(timers.pending) == [f"mist:{online_farmer}"]

    def test_stale_tick_returns_422(self, test_client, online_farmer):
        test_client.post(f"/api/v1/farmers/{online_farmer}/tick", json=sample_body(10))

        response = test_client.post(f"/api/v1/farmers/{online_farmer}/tick", json=sample_body(5))

        assert response.status_code == 422
        assert response.json()["error"] == "Invalid input"

    def test_manual_pump_in_auto_returns_409(self, test_client, online_farmer):
        test_client.put(f"/api/v1/farmers/{online_farmer}/irrigation/mode", json={"mode": "automatic"})

        response = test_client.post(f"/api/v1/farmers/{online_farmer}/irrigation/pump", json={"on": True})

        assert response.status_code == 409
        assert response.json()["error"] == "Automatic mode active"

    def test_manual_sprayer(self, test_client, online_farmer):
        response = test_client.post(f"/api/v1/farmers/{online_farmer}/mist/sprayer", json={"on": True})

        assert response.status_code == 200
        assert response.json()["sprayer_on"] is True
        assert response.json()["spraying_until"] is None

    def test_invalid_target_band_rejected(self, test_client, online_farmer):
        response = test_client.put(
            f"/api/v1/farmers/{online_farmer}/mist/target-band",
            json={"min": 80, "max": 60},
        )

        assert response.status_code == 422

    def test_samples_listed(self, test_client, online_farmer):
        test_client.post(f"/api/v1/farmers/{online_farmer}/tick", json=sample_body(0))
        test_client.post(f"/api/v1/farmers/{online_farmer}/tick", json=sample_body(5))

        response = test_client.get(f"/api/v1/farmers/{online_farmer}/samples")

        assert len(response.json()["samples"]) == 2


# ============================================================
# Eco-score & Forecast Endpoint Tests
# ============================================================

class TestScoringEndpoints:
    """Eco-score and yield forecast."""

    def test_eco_score_without_samples_returns_422(self, test_client, online_farmer):
        response = test_client.post(f"/api/v1/farmers/{online_farmer}/eco-score", json={})

        assert response.status_code == 422
        assert response.json()["error"] == "No sensor data"

    def test_eco_score(self, test_client, online_farmer):
        test_client.post(f"/api/v1/farmers/{online_farmer}/tick", json=sample_body(0))

        response = test_client.post(f"/api/v1/farmers/{online_farmer}/eco-score", json={
            "fertilizer_kg_per_day": 5,
            "pesticide_kg_per_day": 2,
            "energy_kwh_per_day": 10,
            "waste_kg_per_day": 3,
        })

        assert response.status_code == 200
        data = response.json()
        assert data["fertilizer"] == 100.0
        assert data["category_label"] in ("Buruk", "Sedang", "Baik")

    def test_negative_usage_rejected(self, test_client, online_farmer):
        response = test_client.post(
            f"/api/v1/farmers/{online_farmer}/eco-score",
            json={"fertilizer_kg_per_day": -1},
        )

        assert response.status_code == 422

    def test_forecast(self, test_client):
        response = test_client.post("/api/v1/forecasts", json={"commodity": "Padi", "history": [10, 12, 14.4]})

        assert response.status_code == 200
        data = response.json()
        assert data["projected_values"] == pytest.approx([17.28, 20.736, 24.883])
        assert len(data["series"]) == 6

    def test_forecast_non_numeric_returns_422(self, test_client):
        response = test_client.post("/api/v1/forecasts", json={"commodity": "Padi", "history": [10, "abc", 12]})

        assert response.status_code == 422
        assert response.json()["error"] == "Invalid input"

    def test_forecast_overflowing_value_returns_422(self, test_client):
        history = [int("9" * 400), 1, 2]

        response = test_client.post("/api/v1/forecasts", json={"commodity": "Padi", "history": history})

        assert response.status_code == 422
        assert response.json()["error"] == "Invalid input"

    def test_sustainability_report_download(self, test_client, online_farmer):
        test_client.post(f"/api/v1/farmers/{online_farmer}/tick", json=sample_body(0))

        response = test_client.post(
            f"/api/v1/farmers/{online_farmer}/eco-score/report",
            json={"fertilizer_kg_per_day": 5},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert f'filename="sustainability_report_{online_farmer}.txt"' in response.headers["content-disposition"]
        assert response.text.startswith("Sustainability Report - Teman Tani")
        assert "Farmer: Budi Santoso" in response.text

    def test_sustainability_report_without_samples_returns_422(self, test_client, online_farmer):
        response = test_client.post(f"/api/v1/farmers/{online_farmer}/eco-score/report", json={})

        assert response.status_code == 422
        assert response.json()["error"] == "No sensor data"


# ============================================================
# Order Endpoint Tests
# ============================================================

class TestOrderEndpoints:
    """Produce orders."""

    ORDER = {
        "buyer_id": "buyer-1",
        "farmer_id": "farmer-1",
        "items": [{"product_id": "p-1", "product_name": "Cabai Merah", "quantity": 2, "price": 35000}],
    }

    def test_order_flow(self, test_client):
        created = test_client.post("/api/v1/orders", json=self.ORDER)
        assert created.status_code == 201
        order_id = created.json()["order_id"]
        assert created.json()["status_label"] == "Pesanan Diproses"

        test_client.post(f"/api/v1/orders/{order_id}/events", json={"event": "ship"})
        response = test_client.post(f"/api/v1/orders/{order_id}/events", json={"event": "complete"})

        assert response.json()["status"] == "completed"
        assert response.json()["allowed_events"] == []

    def test_completed_order_cannot_cancel(self, test_client):
        order_id = test_client.post("/api/v1/orders", json=self.ORDER).json()["order_id"]
        test_client.post(f"/api/v1/orders/{order_id}/events", json={"event": "ship"})
        test_client.post(f"/api/v1/orders/{order_id}/events", json={"event": "complete"})

        response = test_client.post(f"/api/v1/orders/{order_id}/events", json={"event": "cancel"})

        assert response.status_code == 409

    def test_order_requires_items(self, test_client):
        response = test_client.post("/api/v1/orders", json={**self.ORDER, "items": []})

        assert response.status_code == 422

    def test_list_orders_by_farmer(self, test_client):
        test_client.post("/api/v1/orders", json=self.ORDER)
        test_client.post("/api/v1/orders", json={**self.ORDER, "farmer_id": "farmer-2"})

        response = test_client.get("/api/v1/orders", params={"farmer_id": "farmer-1"})

        assert len(response.json()) == 1

    def test_unknown_order_returns_404(self, test_client):
        assert test_client.get("/api/v1/orders/ord-missing").status_code == 404


# ============================================================
# Response Format Tests
# ============================================================

class TestResponseFormats:
    """Tests for API response formats."""

    def test_openapi_schema_available(self, test_client):
        response = test_client.get("/openapi.json")

        assert response.status_code == 200
        paths = response.json()["paths"]
        assert "/api/v1/farmers/{farmer_id}/tick" in paths
        assert "/api/v1/orders/{order_id}/events" in paths
        assert "/api/v1/forecasts" in paths

    def test_docs_endpoint_available(self, test_client):
        response = test_client.get("/docs")

        assert response.status_code == 200


# ============================================================
# Rate Limiting Tests
# ============================================================

class TestRateLimiting:
    """Tests for rate limiting functionality."""

    def test_rate_limit_documented_in_openapi(self, test_client):
        data = test_client.get("/openapi.json").json()

        tick_path = data["paths"]["/api/v1/farmers/{farmer_id}/tick"]
        assert "429" in tick_path["post"]["responses"]
        forecast_path = data["paths"]["/api/v1/forecasts"]
        assert "429" in forecast_path["post"]["responses"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
