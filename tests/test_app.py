import logging
from datetime import datetime, timezone
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.reading_store import ReadingStore
from models.records import DeltaStrategy, IngestionMode
from services.aggregator import Aggregator
from services.container import ServiceContainer
from services.ingestion import IngestionService
from services.trigger import StaticDeviceTrigger, TriggerService

_NOW = datetime(2024, 6, 2, 15, 0, tzinfo=timezone.utc)

def _container(
    store: ReadingStore,
    mode: IngestionMode = IngestionMode.consumption_delta,
    device=None,
) -> ServiceContainer:
    ingestion = IngestionService(store=store, mode=mode)
    return ServiceContainer(
        store=store,
        ingestion=ingestion,
        aggregator=Aggregator(
            store, strategy=DeltaStrategy.recomputed, tz=timezone.utc, clock=lambda: _NOW
        ),
        trigger=TriggerService(device, ingestion, timeout=0.5),
    )

@pytest.fixture
def store(tmp_path) -> ReadingStore:
    return ReadingStore(persistence_path=tmp_path / "readings.json", clock=lambda: _NOW)

@pytest.fixture
def api_client(store: ReadingStore) -> Iterator[TestClient]:
    app = create_app(_container(store, device=StaticDeviceTrigger(3.0)))
    with TestClient(app) as client:
        yield client

def _client_for(container: ServiceContainer) -> TestClient:
    return TestClient(create_app(container))

def _post(client: TestClient, value, when: str):
    return client.post("/reading", json={"value": value, "recordedAt": when})

def test_post_reading_logs_and_returns_reading(api_client: TestClient) -> None:
    response = _post(api_client, 10.0, "2024-06-01T08:00:00Z")

    assert response.status_code == 200
    body = response.json()
    assert body["outcome"] == "logged"
    assert body["message"]
    assert body["reading"] == {
        "id": 1,
        "value": 10.0,
        "recordedAt": "2024-06-01T08:00:00Z",
        "derived": 0.0,
    }

def test_post_reading_defaults_timestamp_to_now(api_client: TestClient) -> None:
    response = api_client.post("/reading", json={"weight": 4})

    assert response.status_code == 200
    assert response.json()["reading"]["recordedAt"] == "2024-06-02T15:00:00Z"

def test_refill_is_skipped_with_informational_message(api_client: TestClient) -> None:
    _post(api_client, 10.0, "2024-06-01T08:00:00Z")

    response = _post(api_client, 12.0, "2024-06-01T09:00:00Z")

    assert response.status_code == 200
    body = response.json()
    assert body["outcome"] == "skipped"
    assert body["reading"] is None
    assert "not logged" in body["message"]

    latest = api_client.get("/readings/latest")
    assert latest.status_code == 200
    assert latest.json()["value"] == 10.0

@pytest.mark.parametrize(
    "payload",
    [{}, {"value": None}, {"value": "abc"}, {"value": True}, {"value": 1, "recordedAt": "soon"}],
)
def test_malformed_reading_returns_bad_request(api_client: TestClient, payload) -> None:
    response = api_client.post("/reading", json=payload)

    assert response.status_code == 400
    assert response.json()["message"]

def test_non_json_body_returns_bad_request(api_client: TestClient) -> None:
    response = api_client.post(
        "/reading", content=b"value=3", headers={"content-type": "application/json"}
    )

    assert response.status_code == 400
    assert "message" in response.json()

def test_missing_body_returns_bad_request(api_client: TestClient) -> None:
    response = api_client.post("/reading")

    assert response.status_code == 400
    assert response.json() == {"message": "Missing reading value."}

def test_monotonic_rejection_returns_bad_request(store: ReadingStore) -> None:
    with _client_for(_container(store, mode=IngestionMode.monotonic_reject)) as client:
        _post(client, 10.0, "2024-06-01T08:00:00Z")
        response = _post(client, 10.0, "2024-06-01T09:00:00Z")

    assert response.status_code == 400
    body = response.json()
    assert body["outcome"] == "rejected"
    assert "rejected" in body["message"]
    assert store.count() == 1

def test_storage_failure_returns_server_error(tmp_path) -> None:
    path = tmp_path / "readings.json"
    store = ReadingStore(persistence_path=path)
    path.mkdir()

    with _client_for(_container(store)) as client:
        response = client.post("/reading", json={"value": 1.0})

    assert response.status_code == 500
    assert "Could not write reading" in response.json()["message"]

def test_storage_failure_is_logged_once(tmp_path, caplog) -> None:
    path = tmp_path / "readings.json"
    store = ReadingStore(persistence_path=path)
    path.mkdir()

    with _client_for(_container(store)) as client:
        with caplog.at_level(logging.INFO, logger="app.api"):
            client.post("/reading", json={"value": 1.0})

    records = [record for record in caplog.records if record.name == "app.api"]
    assert len(records) == 1
    assert getattr(records[0], "status", None) == 500

def test_summary_endpoints_agree(api_client: TestClient) -> None:
    for value, when in [
        (10.0, "2024-06-01T08:00:00Z"),
        (8.0, "2024-06-01T09:00:00Z"),
        (8.0, "2024-06-01T10:00:00Z"),
        (5.0, "2024-06-01T11:00:00Z"),
        (4.0, "2024-06-02T07:00:00Z"),
        (1.5, "2024-06-02T08:00:00Z"),
    ]:
        assert _post(api_client, value, when).status_code == 200

    summary_all = api_client.get("/summary-all").json()
    chart = api_client.get("/summary-chart").json()

    assert list(summary_all) == ["2024-06-01", "2024-06-02"]
    assert summary_all["2024-06-01"]["daySummary"] == 5.0
    assert summary_all["2024-06-01"]["logs"][0] == {
        "value": 10.0,
        "time": "2024-06-01T08:00:00Z",
    }
    assert chart == [
        {"date": "2024-06-01", "daySummary": 5.0},
        {"date": "2024-06-02", "daySummary": 2.5},
    ]
    for point in chart:
        assert summary_all[point["date"]]["daySummary"] == point["daySummary"]

def test_summary_for_date_and_default_today(api_client: TestClient) -> None:
    _post(api_client, 6.0, "2024-06-01T08:00:00Z")
    _post(api_client, 5.0, "2024-06-02T08:00:00Z")
    _post(api_client, 2.0, "2024-06-02T09:00:00Z")

    first = api_client.get("/summary", params={"date": "2024-06-01"}).json()
    today = api_client.get("/summary").json()

    assert first == {"daySummary": 0.0, "logs": [{"value": 6.0, "time": "2024-06-01T08:00:00Z"}]}
    assert today["daySummary"] == 3.0
    assert [entry["value"] for entry in today["logs"]] == [5.0, 2.0]

def test_summary_is_idempotent(api_client: TestClient) -> None:
    _post(api_client, 6.0, "2024-06-01T08:00:00Z")
    _post(api_client, 5.5, "2024-06-01T08:30:00Z")

    first = api_client.get("/summary", params={"date": "2024-06-01"})
    second = api_client.get("/summary", params={"date": "2024-06-01"})

    assert first.content == second.content

def test_summary_rejects_bad_date(api_client: TestClient) -> None:
    response = api_client.get("/summary", params={"date": "June 1st"})

    assert response.status_code == 400
    assert "date" in response.json()["message"]

def test_empty_summaries(api_client: TestClient) -> None:
    assert api_client.get("/summary-all").json() == {}
    assert api_client.get("/summary-chart").json() == []
    assert api_client.get("/summary").json() == {"daySummary": 0.0, "logs": []}
    assert api_client.get("/readings/latest").status_code == 404

def test_trigger_ingests_device_value(api_client: TestClient, store: ReadingStore) -> None:
    _post(api_client, 10.0, "2024-06-02T08:00:00Z")

    response = api_client.post("/trigger")

    assert response.status_code == 200
    body = response.json()
    assert body["outcome"] == "logged"
    assert body["reading"]["value"] == 3.0
    assert body["reading"]["derived"] == 7.0
    assert store.count() == 2

def test_trigger_timeout_returns_gateway_timeout(store: ReadingStore) -> None:
    device = StaticDeviceTrigger(1.0, delay=5.0)
    with _client_for(_container(store, device=device)) as client:
        response = client.post("/trigger")

    assert response.status_code == 504
    assert "within" in response.json()["message"]
    assert store.count() == 0

def test_trigger_disabled_returns_service_unavailable(store: ReadingStore) -> None:
    with _client_for(_container(store, device=None)) as client:
        response = client.post("/trigger")

    assert response.status_code == 503
    assert response.json()["message"]

def test_health_reports_store_state(api_client: TestClient) -> None:
    _post(api_client, 1.0, "2024-06-01T08:00:00Z")

    body = api_client.get("/health").json()

    assert body == {"status": "ok", "readings": 1, "mode": "consumption_delta"}

def test_unknown_route_uses_message_shape(api_client: TestClient) -> None:
    response = api_client.get("/nope")

    assert response.status_code == 404
    assert "message" in response.json()

def test_lifespan_builds_default_services(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("READINGS_STORE_PATH", str(tmp_path / "default.json"))
    monkeypatch.setenv("TRIGGER_MODE", "disabled")
    from datastore.reading_store import build_default_store
    from settings import get_settings

    get_settings.cache_clear()
    build_default_store.cache_clear()
    try:
        with TestClient(create_app()) as client:
            assert client.post("/reading", json={"value": 2.0}).status_code == 200
            assert client.app.state.services.store.persistence_path == tmp_path / "default.json"
        assert (tmp_path / "default.json").exists()
    finally:
        build_default_store.cache_clear()
        get_settings.cache_clear()
