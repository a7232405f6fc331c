import logging
import time
from typing import Callable, Optional

import psutil

from app.core.errors import StoreError
from app.core.timeutil import utc_now
from app.models.health import (
    DatabaseHealth,
    HealthSnapshot,
    MemoryUsage,
    MqttHealth,
    ServerHealth,
)
from app.storage.record_store import RecordStore

logger = logging.getLogger(__name__)


class HealthReporter:
    def __init__(
        self,
        store: RecordStore,
        pubsub_stats: Optional[Callable[[], dict]] = None,
        started_at: Optional[float] = None,
    ):
        self.store = store
        self.pubsub_stats = pubsub_stats
        self.started_at = started_at if started_at is not None else time.monotonic()
        self._process = psutil.Process()

    def _server(self) -> ServerHealth:
        memory = self._process.memory_info()
        return ServerHealth(
            uptime=round(time.monotonic() - self.started_at, 3),
            memory=MemoryUsage(rss=memory.rss, vms=memory.vms),
        )

    def _mqtt(self) -> MqttHealth:
        if self.pubsub_stats is None:
            return MqttHealth(status="disabled", connected=False)

        stats = self.pubsub_stats()
        return MqttHealth(
            status="active" if stats["connected"] else "inactive",
            **stats,
        )

    async def report(self) -> HealthSnapshot:
        connected = self.store.is_connected()
        database = DatabaseHealth(
            status="connected" if connected else "disconnected",
            connected=connected,
            **self.store.describe(),
        )
        error = None

        try:
            database.total_records = await self.store.count()
            latest = await self.store.latest()
            database.latest_record_time = latest.received_at if latest else None
        except StoreError as e:
            error = str(e)
            logger.warning(f"Health check store query failed: {e}")

        database.connected = self.store.is_connected()
        database.status = "connected" if database.connected else "disconnected"

        return HealthSnapshot(
            status="success" if error is None else "degraded",
            timestamp=utc_now(),
            server=self._server(),
            database=database,
            mqtt=self._mqtt(),
            error=error,
        )
