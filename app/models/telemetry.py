from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

MEASUREMENT_FIELDS = (
    "power",
    "voltage",
    "current",
    "energy",
    "frequency",
    "temperature",
)


class Source(str, Enum):
    MQTT = "mqtt"
    HTTP = "http"


class TelemetrySample(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    ts: int
    power: Optional[float] = None
    voltage: Optional[float] = None
    current: Optional[float] = None
    energy: Optional[float] = None
    frequency: Optional[float] = None
    temperature: Optional[float] = None


class TelemetryBatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    mac: str
    data: list[TelemetrySample]


@dataclass(frozen=True)
class Origin:
    source: Source
    client_id: Optional[str] = None
    topic: Optional[str] = None

    @classmethod
    def pubsub(cls, client_id: str, topic: str) -> "Origin":
        return cls(Source.MQTT, client_id=client_id, topic=topic)

    @classmethod
    def request(cls) -> "Origin":
        return cls(Source.HTTP)

    def describe(self) -> dict[str, Any]:
        info: dict[str, Any] = {"source": self.source.value}
        if self.client_id is not None:
            info["clientId"] = self.client_id
        if self.topic is not None:
            info["topic"] = self.topic
        return info


class IngestedRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    mac: str
    client_id: Optional[str] = Field(default=None, alias="clientId")
    topic: Optional[str] = None
    data: list[TelemetrySample]
    source: Source

    @classmethod
    def from_batch(cls, batch: TelemetryBatch, origin: Origin) -> "IngestedRecord":
        return cls(
            mac=batch.mac,
            client_id=origin.client_id,
            topic=origin.topic,
            data=list(batch.data),
            source=origin.source,
        )

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StoredRecord(IngestedRecord):
    id: str
    received_at: datetime = Field(alias="receivedAt")

    @classmethod
    def commit(
        cls, record: IngestedRecord, record_id: str, received_at: datetime
    ) -> "StoredRecord":
        return cls(
            **dict(record),
            id=record_id,
            received_at=received_at,
        )

    @property
    def sample_count(self) -> int:
        return len(self.data)
