import json
import uuid
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.config.settings import Settings
from app.main import create_app
from app.services.ingestion_service import IngestionPipeline
from app.storage.audit_log import DataAuditLog
from app.storage.memory_store import InMemoryRecordStore


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        log_dir=str(tmp_path / "logs"),
        store_backend="memory",
        mqtt_enabled=False,
    )


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def audit_log(settings):
    return DataAuditLog(Path(settings.log_dir))


@pytest.fixture
def pipeline(store, audit_log):
    return IngestionPipeline(store, audit_log)


@pytest.fixture
def client(settings, store):
    with TestClient(create_app(settings, store=store)) as test_client:
        yield test_client


@pytest.fixture
def unique_mac():
    suffix = uuid.uuid4().hex[:6].upper()
    return f"AA:BB:CC:{suffix[0:2]}:{suffix[2:4]}:{suffix[4:6]}"


@pytest.fixture
def batch(unique_mac):
    return {
        "mac": unique_mac,
        "data": [
            {"ts": 1700000000000, "power": 120.5, "voltage": 230.1},
            {"ts": 1700000060000, "power": 118.0, "current": 0.51},
        ],
    }


@pytest.fixture
def read_json_lines():
    def _read(path: Path) -> list[dict]:
        return [json.loads(line) for line in path.read_text().splitlines() if line]

    return _read
