"""Tests for public API endpoints."""

from fastapi.testclient import TestClient

from recycling_assistant.api.app import create_app
from recycling_assistant.domain.errors import ProviderTransient
from tests.conftest import PNG_BASE64, FakeVisionProvider


def test_health(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_identify_info_lists_chain(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/api/identify")

    assert response.status_code == 200
    data = response.json()
    assert data["vision_providers"] == ["fake-vision"]
    assert data["interpreters"] == ["rules"]
    assert "image/png" in data["allowed_types"]


def test_identify_returns_recommendation(container) -> None:
    client = TestClient(create_app(container))

    response = client.post("/api/identify", json={"image": PNG_BASE64})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["item"]["bin_color"] == "Blue"
    assert data["identified_items"][0]["confidence"] == 100


def test_identify_requires_image(container) -> None:
    client = TestClient(create_app(container))

    assert client.post("/api/identify", json={}).status_code == 400
    assert client.post("/api/identify", json={"image": ""}).status_code == 400


def test_identify_rejects_invalid_image(container) -> None:
    client = TestClient(create_app(container))

    response = client.post("/api/identify", json={"image": "%%%"})

    assert response.status_code == 400
    assert "base64" in response.json()["detail"]


def test_identify_rate_limit_returns_429(container) -> None:
    client = TestClient(create_app(container))
    headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}

    for _ in range(3):
        assert client.post(
            "/api/identify", json={"image": PNG_BASE64}, headers=headers
        ).status_code == 200
    response = client.post("/api/identify", json={"image": PNG_BASE64}, headers=headers)

    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) >= 1
    assert "reset_at" in response.json()["detail"]
    windows = container.usage_limiter.rate_limiter.stats()
    assert [entry["client_id"] for entry in windows] == ["203.0.113.7"]


def test_identify_daily_limit_returns_429(container) -> None:
    client = TestClient(create_app(container))

    for _ in range(2):
        client.post("/api/identify", json={"image": PNG_BASE64})
        container.cache.clear()
    response = client.post("/api/identify", json={"image": PNG_BASE64})

    assert response.status_code == 429
    assert "Daily limit" in response.json()["detail"]["error"]
    assert "Retry-After" in response.headers


def test_identify_reports_unidentified_when_providers_fail(
    container, vision_provider: FakeVisionProvider
) -> None:
    vision_provider.outcomes = [ProviderTransient("fake-vision")]
    container.vision_service.retry_attempts = 0
    client = TestClient(create_app(container))

    response = client.post("/api/identify", json={"image": PNG_BASE64})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["services"]["attempted"] == [
        {"provider": "fake-vision", "error": "transient"}
    ]


def test_scenario_listing_and_run(container) -> None:
    client = TestClient(create_app(container))

    listing = client.get("/api/identify/test")
    result = client.post("/api/identify/test", json={"scenario": "plastic-bottle"})

    assert "battery" in listing.json()["scenarios"]
    assert result.status_code == 200
    data = result.json()
    assert data["test_mode"] is True
    assert data["identified_items"][0]["name"] == "Plastic Bottle (#1 or #2)"
    assert data["vision_result_summary"]["texts_found"] is True


def test_battery_scenario_is_special_disposal(container) -> None:
    client = TestClient(create_app(container))

    data = client.post("/api/identify/test", json={"scenario": "battery"}).json()

    assert data["identified_items"][0]["name"] == "Battery"
    assert data["identified_items"][0]["bin_type"] == "special"


def test_unknown_scenario_returns_404(container) -> None:
    client = TestClient(create_app(container))

    response = client.post("/api/identify/test", json={"scenario": "nope"})

    assert response.status_code == 404
    assert "plastic-bottle" in response.json()["detail"]["available"]


def test_search_endpoint(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/api/search", params={"q": "glass"})

    assert response.status_code == 200
    data = response.json()
    assert data["fuzzy"] is False
    assert data["count"] == 2
    assert {item["name"] for item in data["results"]} == {"Glass Bottle", "Glass Jar"}


def test_search_requires_query(container) -> None:
    client = TestClient(create_app(container))

    assert client.get("/api/search").status_code == 400
    assert client.get("/api/search", params={"q": "  "}).status_code == 400
