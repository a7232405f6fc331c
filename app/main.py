import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import data, health
from app.channels.mqtt_transport import MqttTransport
from app.channels.pubsub import PubSubChannel
from app.config.settings import Settings, get_settings
from app.core.circuit_breaker import CircuitBreaker
from app.core.log_handlers import configure_logging
from app.core.redis_client import create_redis_client
from app.core.timeutil import iso_z, utc_now
from app.services.health_service import HealthReporter
from app.services.ingestion_service import IngestionPipeline
from app.storage.audit_log import DataAuditLog
from app.storage.memory_store import InMemoryRecordStore
from app.storage.record_store import RecordStore
from app.storage.redis_store import RedisRecordStore

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> RecordStore:
    if settings.store_backend == "memory":
        return InMemoryRecordStore()

    breaker = CircuitBreaker(
        "record-store",
        failure_threshold=settings.circuit_breaker_failure_threshold,
        timeout_seconds=settings.circuit_breaker_timeout_seconds,
        half_open_max_calls=settings.circuit_breaker_half_open_max_calls,
    )
    return RedisRecordStore(
        create_redis_client(settings),
        key_prefix=settings.redis_key_prefix,
        write_timeout=settings.store_write_timeout_seconds,
        breaker=breaker,
    )


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[RecordStore] = None,
    transport: Optional[MqttTransport] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    store = store or build_store(settings)
    audit_log = DataAuditLog(Path(settings.log_dir))
    pipeline = IngestionPipeline(store, audit_log, settings.audit_failed_writes)
    pubsub = PubSubChannel(pipeline)
    if transport is None and settings.mqtt_enabled:
        transport = MqttTransport.from_settings(settings)
    reporter = HealthReporter(store, pubsub.stats if transport else None)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await store.connect()
        if transport:
            transport.register_handler(pubsub.handle_publish)
            transport.register_connection_listener(
                pubsub.handle_connect, pubsub.handle_disconnect
            )
            transport.start(asyncio.get_running_loop())
        logger.info(f"{settings.app_name} started on port {settings.http_port}")
        yield
        logger.info("Server shutting down gracefully")
        if transport:
            transport.stop()
        await store.close()
        logger.info(f"{settings.app_name} stopped")

    app = FastAPI(title=settings.app_name, version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.audit_log = audit_log
    app.state.pipeline = pipeline
    app.state.pubsub = pubsub
    app.state.transport = transport
    app.state.health_reporter = reporter

    app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
    app.include_router(data.router, prefix=settings.api_prefix, tags=["data"])

    @app.get("/")
    async def root():
        return {
            "status": "success",
            "message": f"{settings.app_name} server is running",
            "timestamp": iso_z(utc_now()),
            "endpoints": {
                "health": f"{settings.api_prefix}/health (GET)",
                "receive_data": f"{settings.api_prefix}/data/receive (POST)",
                "mqtt_port": settings.mqtt_port,
            },
        }

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = "Endpoint not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": "error", "message": message},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(
            f"Global error: {exc}",
            exc_info=exc,
            extra={"data": {"url": str(request.url), "method": request.method}},
        )
        return JSONResponse(
            status_code=500,
            content={"status": "error", "message": "Internal server error"},
        )

    return app
