from typing import Optional

from app.core.errors import StoreUnavailableError
from app.core.timeutil import utc_now
from app.models.telemetry import IngestedRecord, StoredRecord
from app.storage.record_store import RecordStore, new_record_id


class InMemoryRecordStore(RecordStore):
    def __init__(self):
        self.records: list[StoredRecord] = []
        self.connected = True

    def _ensure_connected(self) -> None:
        if not self.connected:
            raise StoreUnavailableError("In-memory store is disconnected")

    async def save(self, record: IngestedRecord) -> StoredRecord:
        self._ensure_connected()
        stored = StoredRecord.commit(record, new_record_id(), utc_now())
        self.records.append(stored)
        return stored

    async def count(self) -> int:
        self._ensure_connected()
        return len(self.records)

    async def latest(self) -> Optional[StoredRecord]:
        self._ensure_connected()
        if not self.records:
            return None
        return max(reversed(self.records), key=lambda r: r.received_at)

    def is_connected(self) -> bool:
        return self.connected

    def describe(self) -> dict:
        return {"backend": "memory"}
