import time

import pytest
from fastapi.testclient import TestClient

from analysis.sample_data import generate_wave_klines
from backend import main
from backend.main import app, get_rate_limit_seconds
from ingest.adapters import DataAdapter


class StubAdapter(DataAdapter):
    """Returns canned klines instead of calling the exchange."""
    def __init__(self, klines):
        super().__init__("BTCUSDT", "1h")
        self.klines = klines
        self.requested_limits = []

    async def fetch_klines(self, limit=500, start_time=None, end_time=None):
        self.requested_limits.append(limit)
        return self.klines[-limit:] if self.klines else []


@pytest.fixture(name="test_client")
def _test_client():
    """Provides a TestClient instance with a clean rate limit store."""
    main.rate_limit_store.clear()
    main.latest_analysis_results.clear()
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def no_rate_limit():
    app.dependency_overrides[get_rate_limit_seconds] = lambda: 0


@pytest.fixture
def stub_adapter(monkeypatch):
    adapter = StubAdapter(generate_wave_klines())
    monkeypatch.setattr(main.adapter_factory, "get_adapter",
                        lambda symbol, interval=None, source_preference=None: adapter)
    return adapter


def test_health(test_client: TestClient):
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_symbols(test_client: TestClient):
    data = test_client.get("/symbols").json()
    assert "BTCUSDT" in data["pairs"]
    assert data["intervals"]["1h"] == "1 hour"


def test_rate_limit_success_first_request(test_client: TestClient):
    """
    Test that the first request to /analyze succeeds.
    """
    response = test_client.post("/analyze", json={"klines": generate_wave_klines(), "symbol": "btcusdt"})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    assert data["symbol"] == "BTCUSDT"
    assert data["patterns"]


def test_rate_limit_exceeded(test_client: TestClient):
    """
    Test that making two requests within the rate limit interval results in a 429 error.
    """
    body = {"klines": generate_wave_klines()}

    response1 = test_client.post("/analyze", json=body)
    assert response1.status_code == 200

    # Second request immediately after should fail due to rate limit
    response2 = test_client.post("/analyze", json=body)
    assert response2.status_code == 429
    assert "Rate limit exceeded" in response2.json()["detail"]


def test_rate_limit_window_expiry(test_client: TestClient):
    """
    Test that after the rate limit window, a new request succeeds.
    """
    app.dependency_overrides[get_rate_limit_seconds] = lambda: 0.2
    body = {"klines": generate_wave_klines()}

    assert test_client.post("/analyze", json=body).status_code == 200
    assert test_client.post("/analyze", json=body).status_code == 429

    time.sleep(0.3)

    response3 = test_client.post("/analyze", json=body)
    assert response3.status_code == 200


def test_analyze_reports_insufficient_data(test_client: TestClient):
    response = test_client.post("/analyze", json={"klines": generate_wave_klines()[:10]})

    assert response.status_code == 200, "Analysis failures are reported in the body"
    assert response.json()["status"] == "insufficient_data"


def test_analyze_rejects_malformed_body(test_client: TestClient):
    response = test_client.post("/analyze", json={"candles": []})
    assert response.status_code == 422


def test_symbol_analysis(test_client: TestClient, no_rate_limit, stub_adapter):
    response = test_client.get("/analysis/btcusdt", params={"interval": "1h", "limit": 36})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    assert data["symbol"] == "BTCUSDT"
    assert data["interval"] == "1h"
    assert stub_adapter.requested_limits == [36]

    latest = test_client.get("/analysis/BTCUSDT/latest")
    assert latest.status_code == 200
    assert latest.json()["current_price"] == data["current_price"]


def test_symbol_analysis_without_data(test_client: TestClient, no_rate_limit, stub_adapter):
    stub_adapter.klines = []
    response = test_client.get("/analysis/ETHUSDT")

    assert response.status_code == 503
    assert "ETHUSDT" not in main.latest_analysis_results


@pytest.mark.parametrize("path, params", [
    ("/analysis/NOT-A-PAIR", {}),
    ("/analysis/BTCUSDT", {"interval": "7m"}),
    ("/analysis/BTCUSDT", {"source": "yahoo"}),
])
def test_symbol_analysis_bad_request(test_client: TestClient, no_rate_limit, path, params):
    response = test_client.get(path, params=params)
    assert response.status_code == 400


def test_latest_analysis_missing(test_client: TestClient):
    response = test_client.get("/analysis/DOGEUSDT/latest")
    assert response.status_code == 404


def test_current_price(test_client: TestClient, no_rate_limit, stub_adapter):
    response = test_client.get("/price/btcusdt")

    assert response.status_code == 200
    assert response.json() == {"symbol": "BTCUSDT", "price": 150.0, "formatted": "150.0000"}


def test_current_price_unavailable(test_client: TestClient, no_rate_limit, stub_adapter):
    stub_adapter.klines = []
    assert test_client.get("/price/BTCUSDT").status_code == 503


@pytest.mark.parametrize("path", ["/price/NOT-A-PAIR", "/price/BTCUSDT?source=yahoo"])
def test_current_price_bad_request(test_client: TestClient, no_rate_limit, path):
    assert test_client.get(path).status_code == 400
