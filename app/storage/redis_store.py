import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from app.core.circuit_breaker import CircuitBreaker, CircuitBreakerOpenError
from app.core.errors import StoreError
from app.core.timeutil import utc_now
from app.models.telemetry import IngestedRecord, StoredRecord
from app.storage.record_store import RecordStore, new_record_id

logger = logging.getLogger(__name__)


class RedisRecordStore(RecordStore):
    def __init__(
        self,
        client: redis.Redis,
        key_prefix: str = "wattmon",
        write_timeout: float = 5.0,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self.redis = client
        self.prefix = key_prefix
        self.write_timeout = write_timeout
        self.breaker = breaker or CircuitBreaker("record-store")
        self._connected = False

    @property
    def records_key(self) -> str:
        return f"{self.prefix}:records"

    def record_key(self, record_id: str) -> str:
        return f"{self.prefix}:record:{record_id}"

    def mac_key(self, mac: str) -> str:
        return f"{self.prefix}:mac:{mac}"

    @property
    def sample_ts_key(self) -> str:
        return f"{self.prefix}:sample-ts"

    async def connect(self) -> None:
        try:
            await asyncio.wait_for(self.redis.ping(), self.write_timeout)
            self._connected = True
            logger.info("Connected to Redis record store")
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            self._connected = False
            logger.error(
                f"Redis connection failed: {e}",
                extra={"data": {"error": str(e)}},
            )

    async def close(self) -> None:
        await self.redis.aclose()
        self._connected = False

    def is_connected(self) -> bool:
        return self._connected

    def describe(self) -> dict:
        return {"backend": "redis", "circuit": self.breaker.get_state().value}

    async def _guarded(self, func: Callable[..., Awaitable[Any]], *args) -> Any:
        try:
            result = await self.breaker.call(self._bounded, func, *args)
        except CircuitBreakerOpenError:
            raise
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            self._connected = False
            raise StoreError(f"Record store error: {str(e) or type(e).__name__}") from e

        self._connected = True
        return result

    async def _bounded(self, func: Callable[..., Awaitable[Any]], *args) -> Any:
        return await asyncio.wait_for(func(*args), self.write_timeout)

    async def save(self, record: IngestedRecord) -> StoredRecord:
        stored = StoredRecord.commit(record, new_record_id(), utc_now())
        await self._guarded(self._write, stored)
        return stored

    async def _write(self, stored: StoredRecord) -> None:
        score = int(stored.received_at.timestamp() * 1000)

        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.set(
                self.record_key(stored.id),
                stored.model_dump_json(by_alias=True, exclude_none=True),
            )
            pipe.zadd(self.records_key, {stored.id: score})
            pipe.zadd(self.mac_key(stored.mac), {stored.id: score})
            if stored.data:
                pipe.zadd(
                    self.sample_ts_key,
                    {stored.id: max(sample.ts for sample in stored.data)},
                )
            await pipe.execute()

    async def count(self) -> int:
        return await self._guarded(self.redis.zcard, self.records_key)

    async def latest(self) -> Optional[StoredRecord]:
        raw = await self._guarded(self._fetch_latest)
        if not raw:
            return None

        try:
            return StoredRecord.model_validate_json(raw)
        except ValidationError as e:
            logger.error(
                f"Unreadable record document: {e.error_count()} errors",
                extra={"data": {"key": self.records_key}},
            )
            raise StoreError("Record store error: unreadable record document") from e

    async def _fetch_latest(self) -> Optional[bytes]:
        ids = await self.redis.zrevrange(self.records_key, 0, 0)
        if not ids:
            return None
        return await self.redis.get(self.record_key(ids[0].decode()))
