"""
HTTP request channel tests.
"""

from pathlib import Path

from fastapi.testclient import TestClient

from app.main import create_app


def test_receive_data_example_batch(client):
    """The reference batch is stored and echoed back."""
    response = client.post(
        "/data/receive",
        json={
            "mac": "AA:BB:CC:DD:EE:FF",
            "data": [{"ts": 1700000000000, "power": 120.5, "voltage": 230.1}],
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "success"
    assert data["mac"] == "AA:BB:CC:DD:EE:FF"
    assert data["dataPoints"] == 1
    assert len(data["id"]) == 24
    assert data["receivedAt"].endswith("Z")
    assert data["timestamp"] == data["receivedAt"]


def test_receive_data_without_mac(client):
    """A batch without mac is a client error naming the MAC."""
    response = client.post("/data/receive", json={"data": []})

    assert response.status_code == 400
    data = response.json()
    assert data["status"] == "error"
    assert data["message"] == "MAC address is required"


def test_receive_data_without_data_array(client):
    """A batch whose data is not an array is a client error."""
    response = client.post(
        "/data/receive", json={"mac": "AA:BB:CC:DD:EE:FF", "data": {"ts": 1}}
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Data array is required"


def test_receive_data_invalid_sample(client):
    """A sample with a bad timestamp is a client error."""
    response = client.post(
        "/data/receive", json={"mac": "AA:BB:CC:DD:EE:FF", "data": [{"ts": -1}]}
    )

    assert response.status_code == 400
    assert response.json()["reason"] == "invalid_sample"


def test_receive_data_out_of_range_measurement(client, store):
    """An integer too large for a float is rejected, not a server error."""
    body = '{"mac": "AA:BB", "data": [{"ts": 1700000000000, "power": 1' + "0" * 400 + "}]}"

    response = client.post(
        "/data/receive", content=body, headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["reason"] == "invalid_sample"
    assert response.json()["message"] == "Sample 0: 'power' must be finite"
    assert store.records == []


def test_receive_data_malformed_json(client, store):
    """A body that is not JSON is rejected and nothing is stored."""
    response = client.post(
        "/data/receive",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid JSON payload"
    assert store.records == []


def test_receive_data_empty_samples(client):
    """An empty data array is accepted."""
    response = client.post(
        "/data/receive", json={"mac": "AA:BB:CC:DD:EE:FF", "data": []}
    )

    assert response.status_code == 201
    assert response.json()["dataPoints"] == 0


def test_receive_data_store_down(client, store, unique_mac):
    """A store outage is a server error with a generic message."""
    store.connected = False

    response = client.post(
        "/data/receive", json={"mac": unique_mac, "data": [{"ts": 1}]}
    )

    assert response.status_code == 500
    data = response.json()
    assert data["status"] == "error"
    assert data["message"] == "Failed to process data"


def test_receive_data_stores_http_record(client, store, batch):
    """Request-origin records are tagged as http."""
    client.post("/data/receive", json=batch)

    [record] = store.records
    assert record.source.value == "http"
    assert record.mac == batch["mac"]


def test_receive_data_writes_audit_file(client, settings, batch, read_json_lines):
    """Committed batches land in the daily data audit file."""
    client.post("/data/receive", json=batch)

    [path] = (Path(settings.log_dir) / "data").glob("data-*.json")
    [entry] = read_json_lines(path)
    assert entry["source"] == "http"
    assert entry["data"] == batch


def test_unknown_endpoint(client):
    """Unknown paths return the JSON not-found body."""
    response = client.get("/nope")

    assert response.status_code == 404
    assert response.json() == {"status": "error", "message": "Endpoint not found"}


def test_root_lists_endpoints(client):
    """The root banner lists the service endpoints."""
    response = client.get("/")

    assert response.status_code == 200
    endpoints = response.json()["endpoints"]
    assert endpoints["health"] == "/health (GET)"
    assert endpoints["receive_data"] == "/data/receive (POST)"
    assert endpoints["mqtt_port"] == 1883


def test_api_prefix(settings, store):
    """Routes move under the configured prefix."""
    settings = settings.model_copy(update={"api_prefix": "/api"})

    with TestClient(create_app(settings, store=store)) as prefixed:
        response = prefixed.post(
            "/api/data/receive", json={"mac": "AA:BB:CC:DD:EE:FF", "data": []}
        )
        assert response.status_code == 201
        assert prefixed.post("/data/receive", json={}).status_code == 404
