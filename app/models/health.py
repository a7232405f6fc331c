from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class MemoryUsage(_CamelModel):
    rss: int
    vms: int


class ServerHealth(_CamelModel):
    status: str = "running"
    uptime: float
    memory: MemoryUsage


class DatabaseHealth(_CamelModel):
    status: str
    connected: bool
    total_records: Optional[int] = Field(default=None, alias="totalRecords")
    latest_record_time: Optional[datetime] = Field(
        default=None, alias="latestRecordTime"
    )
    backend: Optional[str] = None
    circuit: Optional[str] = None


class MqttHealth(_CamelModel):
    status: str
    connected: bool
    clients: list[str] = Field(default_factory=list)
    received: int = 0
    committed: int = 0
    rejected: int = 0
    failed: int = 0


class HealthSnapshot(_CamelModel):
    status: str
    timestamp: datetime
    server: ServerHealth
    database: DatabaseHealth
    mqtt: MqttHealth
    error: Optional[str] = None

    @property
    def store_connected(self) -> bool:
        return self.database.connected

    def to_response(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
