from fastapi.testclient import TestClient

from tick_analyzer.api.server import create_app
from tick_analyzer.app.analyzer import AnalyzerService
from tick_analyzer.infrastructure.utils.config import AnalyzerConfig
from tick_analyzer.models.market_models import Tick


def _client() -> tuple:
    config = AnalyzerConfig.model_validate({})
    service = AnalyzerService.from_config(config)
    app = create_app(config, service, autostart=False)
    return TestClient(app), service


def _fill(service: AnalyzerService, prices) -> None:
    for i, p in enumerate(prices):
        service.session.window.push(Tick("R_100", 1_700_000_000 + i, float(p)))


def test_health_and_markets() -> None:
    client, _ = _client()
    with client:
        assert client.get("/health").json() == {"ok": True}

        markets = client.get("/markets").json()
        assert {"value": "R_100", "label": "Volatility 100 Index"} in markets
        assert len(markets) == 8


def test_status_reports_disconnected_session() -> None:
    client, _ = _client()
    with client:
        body = client.get("/status").json()

    assert body["state"] == "disconnected"
    assert body["connected"] is False
    assert body["symbol"] == "R_100"
    assert body["ticks"] == 0
    assert body["window_capacity"] == 100


def test_analyze_insufficient_then_ok() -> None:
    client, service = _client()
    with client:
        assert client.get("/analysis").status_code == 404

        body = client.post("/analyze").json()
        assert body["status"] == "insufficient_data"
        assert body["available"] == 0

        _fill(service, range(10, 30))
        body = client.post("/analyze").json()
        assert body["status"] == "ok"
        assert body["recommendation"]["action"] == "BUY"
        assert body["recommendation"]["indicators"]["sma20"] == 19.5

        last = client.get("/analysis")
        assert last.status_code == 200
        assert last.json()["action"] == "BUY"

        ticks = client.get("/ticks", params={"limit": 3}).json()
        assert [t["price"] for t in ticks] == [27.0, 28.0, 29.0]


def test_select_market() -> None:
    client, service = _client()
    with client:
        _fill(service, range(10, 30))

        bad = client.post("/market", json={"symbol": "EURUSD"})
        assert bad.status_code == 400

        ok = client.post("/market", json={"symbol": "R_75"})
        assert ok.status_code == 200
        assert ok.json()["symbol"] == "R_75"
        assert ok.json()["ticks"] == 0


def test_events_feed() -> None:
    client, service = _client()
    with client:
        service.session.events.add("hello")
        events = client.get("/events").json()["events"]

    assert events[-1].endswith("hello")
