import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from app.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpenError(StoreUnavailableError):
    pass


class CircuitBreaker:
    def __init__(
        self,
        name: str,
        failure_threshold: int = 6,
        timeout_seconds: float = 60,
        half_open_max_calls: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.timeout_seconds = timeout_seconds
        self.half_open_max_calls = half_open_max_calls
        self._clock = clock

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.half_open_calls = 0
        self.last_failure_at: Optional[float] = None

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        self._before_call()

        try:
            result = await func(*args, **kwargs)
        except Exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def _before_call(self) -> None:
        if self.state == CircuitState.OPEN:
            if not self._should_attempt_reset():
                raise CircuitBreakerOpenError(f"Circuit breaker {self.name} is open")
            logger.info(f"Circuit breaker {self.name} half-open, probing")
            self.state = CircuitState.HALF_OPEN
            self.half_open_calls = 0
            self.success_count = 0

        if self.state == CircuitState.HALF_OPEN:
            if self.half_open_calls >= self.half_open_max_calls:
                raise CircuitBreakerOpenError(
                    f"Circuit breaker {self.name} half-open limit reached"
                )
            self.half_open_calls += 1

    def _on_success(self) -> None:
        if self.state == CircuitState.HALF_OPEN:
            self.success_count += 1
            if self.success_count >= self.half_open_max_calls:
                logger.info(f"Circuit breaker {self.name} closed")
                self.state = CircuitState.CLOSED
                self.success_count = 0
                self.failure_count = 0
        else:
            self.failure_count = 0

    def _on_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_at = self._clock()

        if self.state == CircuitState.HALF_OPEN:
            self._open()
        elif (
            self.state == CircuitState.CLOSED
            and self.failure_count >= self.failure_threshold
        ):
            self._open()

    def _open(self) -> None:
        logger.warning(
            f"Circuit breaker {self.name} opened after {self.failure_count} failures"
        )
        self.state = CircuitState.OPEN
        self.success_count = 0
        self.half_open_calls = 0

    def _should_attempt_reset(self) -> bool:
        if self.last_failure_at is None:
            return True
        return self._clock() - self.last_failure_at > self.timeout_seconds

    def get_state(self) -> CircuitState:
        return self.state
