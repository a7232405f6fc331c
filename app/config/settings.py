from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Wattmon Ingest"
    http_host: str = "0.0.0.0"
    http_port: int = 3000
    api_prefix: str = ""

    log_dir: str = "logs"
    log_level: str = "INFO"

    store_backend: Literal["redis", "memory"] = "redis"
    redis_url: str = "redis://localhost:6379"
    redis_max_connections: int = 50
    redis_socket_timeout: int = 5
    redis_key_prefix: str = "wattmon"
    store_write_timeout_seconds: float = 5.0

    circuit_breaker_failure_threshold: int = 6
    circuit_breaker_timeout_seconds: int = 60
    circuit_breaker_half_open_max_calls: int = 3

    mqtt_enabled: bool = True
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_topic: str = "wattmon/+/data"
    mqtt_client_id: str = "wattmon-ingest"
    mqtt_username: Optional[str] = None
    mqtt_password: Optional[str] = None
    mqtt_keepalive: int = 60

    audit_failed_writes: bool = False

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
