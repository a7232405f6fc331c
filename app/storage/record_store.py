import secrets
import time
from abc import ABC, abstractmethod
from typing import Optional

from app.models.telemetry import IngestedRecord, StoredRecord


def new_record_id() -> str:
    """24 hex chars: 4 bytes of epoch seconds followed by 8 random bytes."""
    return f"{int(time.time()):08x}{secrets.token_hex(8)}"


class RecordStore(ABC):
    """Primary store for committed telemetry records.

    Implementations must be safe for concurrent use by many ingestion
    tasks. Failures surface as ``StoreError`` and are never retried here.
    """

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    @abstractmethod
    async def save(self, record: IngestedRecord) -> StoredRecord:
        ...

    @abstractmethod
    async def count(self) -> int:
        ...

    @abstractmethod
    async def latest(self) -> Optional[StoredRecord]:
        ...

    @abstractmethod
    def is_connected(self) -> bool:
        ...

    def describe(self) -> dict:
        return {}
