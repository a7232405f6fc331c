"""
Health reporting tests.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.services.health_service import HealthReporter
from app.storage.redis_store import RedisRecordStore


def test_health_empty_store(client):
    """Health reports a connected, empty store."""
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    assert data["server"]["status"] == "running"
    assert data["server"]["uptime"] >= 0
    assert data["server"]["memory"]["rss"] > 0
    assert data["database"]["status"] == "connected"
    assert data["database"]["totalRecords"] == 0
    assert data["database"]["latestRecordTime"] is None
    assert data["mqtt"]["status"] == "disabled"
    assert data["error"] is None


def test_health_counts_records(client, batch):
    """Ingested records show up in the totals and latest time."""
    client.post("/data/receive", json=batch)
    created = client.post("/data/receive", json=batch).json()

    data = client.get("/health").json()

    assert data["database"]["totalRecords"] == 2
    assert data["database"]["latestRecordTime"] is not None
    assert data["database"]["latestRecordTime"][:19] == created["receivedAt"][:19]


def test_health_store_disconnected(client, store):
    """A disconnected store gives a degraded snapshot, not an error response."""
    store.connected = False

    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["database"]["connected"] is False
    assert data["database"]["status"] == "disconnected"
    assert data["database"]["totalRecords"] is None
    assert "disconnected" in data["error"]


@pytest.mark.asyncio
async def test_report_never_raises_on_store_failure(store):
    """report() returns a snapshot while the store is down."""
    store.connected = False
    reporter = HealthReporter(store)

    snapshot = await reporter.report()

    assert snapshot.store_connected is False
    assert snapshot.error is not None


@pytest.mark.asyncio
async def test_report_includes_pubsub_stats(store):
    """Broker channel counters are included when a channel is wired in."""
    stats = {
        "connected": True,
        "clients": ["wattmon-ingest"],
        "received": 3,
        "committed": 2,
        "rejected": 1,
        "failed": 0,
    }
    reporter = HealthReporter(store, pubsub_stats=lambda: stats)

    snapshot = await reporter.report()

    assert snapshot.mqtt.status == "active"
    assert snapshot.mqtt.received == 3
    assert snapshot.mqtt.rejected == 1
    assert snapshot.to_response()["mqtt"]["clients"] == ["wattmon-ingest"]


@pytest.mark.asyncio
async def test_report_degrades_on_unreadable_record():
    """A corrupt latest record gives a degraded snapshot instead of raising."""
    client = MagicMock()
    client.zcard = AsyncMock(return_value=1)
    client.zrevrange = AsyncMock(return_value=[b"abc"])
    client.get = AsyncMock(return_value=b"not json")
    reporter = HealthReporter(RedisRecordStore(client))

    snapshot = await reporter.report()

    assert snapshot.status == "degraded"
    assert snapshot.database.total_records == 1
    assert snapshot.database.latest_record_time is None
    assert "unreadable record document" in snapshot.error
