"""
Circuit Breaker Pattern Implementation

Protects calls to Telegram, API-Football, YouTube and Reddit so a failing
upstream is skipped quickly instead of stalling every poll cycle and callback.

Only upstream outages trip a breaker. A 4xx caused by the request itself (a
stale message edit, a bad query) is raised to the caller but not counted.
"""
import asyncio
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, ParamSpec, TypeVar

from footbot.core.exceptions import CircuitBreakerOpenError, ExternalServiceException
from footbot.core.logging import get_logger

logger = get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

# 401/403: מפתח שגוי או quota שנגמרה; 429: rate limit - הספק לא זמין בפועל
_OUTAGE_CLIENT_STATUSES = frozenset({401, 403, 429})


def is_upstream_failure(error: Exception) -> bool:
    """
    True for errors that mean the service is unavailable.

    Client errors other than auth/quota/rate-limit are the caller's problem
    and leave the breaker alone.
    """
    if isinstance(error, ExternalServiceException):
        status_code = error.details.get("status_code")
        if isinstance(status_code, int) and 400 <= status_code < 500:
            return status_code in _OUTAGE_CLIENT_STATUSES
    return True


class CircuitState(Enum):
    CLOSED = "closed"        # requests pass through
    OPEN = "open"            # failing, requests blocked
    HALF_OPEN = "half_open"  # probing whether the service recovered


@dataclass
class CircuitBreakerConfig:
    failure_threshold: int = 5
    success_threshold: int = 2        # successes in half-open before closing
    timeout_seconds: float = 30.0     # open → half-open after this long
    half_open_max_calls: int = 3
    counts_as_failure: Callable[[Exception], bool] = field(default=is_upstream_failure)


@dataclass
class CircuitBreakerState:
    state: CircuitState = CircuitState.CLOSED
    failure_count: int = 0
    success_count: int = 0
    last_failure_time: float = 0.0
    half_open_calls: int = 0


class CircuitBreaker:
    """
    Per-service circuit breaker.

    One instance per service name lives in a process-wide registry
    (``get_instance``), shared by the web app and every Celery task loop.
    """

    _instances: dict[str, "CircuitBreaker"] = {}
    _instances_lock = threading.Lock()

    def __init__(
        self,
        service_name: str,
        config: CircuitBreakerConfig | None = None
    ):
        self.service_name = service_name
        self.config = config or CircuitBreakerConfig()
        self._state = CircuitBreakerState()
        # threading.Lock ולא asyncio.Lock - ה-breaker משותף ל-event loops שונים של Celery
        self._lock = threading.Lock()

    @classmethod
    def get_instance(
        cls,
        service_name: str,
        config: CircuitBreakerConfig | None = None
    ) -> "CircuitBreaker":
        with cls._instances_lock:
            breaker = cls._instances.get(service_name)
            if breaker is None:
                breaker = cls._instances[service_name] = cls(service_name, config)
        return breaker

    @classmethod
    def reset_all(cls) -> None:
        """Drop every registered breaker (tests)"""
        with cls._instances_lock:
            cls._instances.clear()

    @property
    def state(self) -> CircuitState:
        return self._state.state

    @property
    def is_closed(self) -> bool:
        return self._state.state == CircuitState.CLOSED

    @property
    def is_open(self) -> bool:
        return self._state.state == CircuitState.OPEN

    @property
    def is_half_open(self) -> bool:
        return self._state.state == CircuitState.HALF_OPEN

    def _seconds_since_failure(self) -> float:
        return time.time() - self._state.last_failure_time

    def _transition_to(self, new_state: CircuitState) -> None:
        """Caller holds ``self._lock``"""
        old_state = self._state.state
        self._state.state = new_state
        if new_state == CircuitState.HALF_OPEN:
            self._state.half_open_calls = 0
            self._state.success_count = 0
        elif new_state == CircuitState.CLOSED:
            self._state.failure_count = 0
            self._state.success_count = 0

        log = logger.warning if new_state == CircuitState.OPEN else logger.info
        log(
            f"Circuit breaker '{self.service_name}' transitioned",
            extra_data={
                "service": self.service_name,
                "old_state": old_state.value,
                "new_state": new_state.value,
            }
        )

    async def record_success(self) -> None:
        with self._lock:
            if self._state.state == CircuitState.HALF_OPEN:
                self._state.success_count += 1
                if self._state.success_count >= self.config.success_threshold:
                    self._transition_to(CircuitState.CLOSED)
            elif self._state.state == CircuitState.CLOSED:
                self._state.failure_count = 0

    async def record_failure(self, error: Exception | None = None) -> None:
        with self._lock:
            self._state.failure_count += 1
            self._state.last_failure_time = time.time()

            logger.warning(
                f"Circuit breaker '{self.service_name}' recorded failure",
                extra_data={
                    "service": self.service_name,
                    "failure_count": self._state.failure_count,
                    "threshold": self.config.failure_threshold,
                    "error": str(error) if error else None,
                }
            )

            if (
                self._state.state == CircuitState.HALF_OPEN
                or self._state.failure_count >= self.config.failure_threshold
            ):
                self._transition_to(CircuitState.OPEN)

    async def can_execute(self) -> bool:
        with self._lock:
            match self._state.state:
                case CircuitState.CLOSED:
                    return True
                case CircuitState.OPEN:
                    if self._seconds_since_failure() >= self.config.timeout_seconds:
                        self._transition_to(CircuitState.HALF_OPEN)
                        return True
                    return False
                case CircuitState.HALF_OPEN:
                    if self._state.half_open_calls < self.config.half_open_max_calls:
                        self._state.half_open_calls += 1
                        return True
                    return False

    def get_retry_after(self) -> float:
        """Seconds until the open circuit lets a probe through"""
        if self._state.state != CircuitState.OPEN:
            return 0.0
        return max(0.0, self.config.timeout_seconds - self._seconds_since_failure())

    async def execute(
        self,
        func: Callable[P, Awaitable[T] | T],
        *args: P.args,
        **kwargs: P.kwargs
    ) -> T:
        """
        Run ``func`` under the breaker.

        Raises:
            CircuitBreakerOpenError: the circuit is open; ``func`` is not called
        """
        if not await self.can_execute():
            raise CircuitBreakerOpenError(self.service_name, self.get_retry_after())

        try:
            if asyncio.iscoroutinefunction(func):
                result = await func(*args, **kwargs)
            else:
                result = func(*args, **kwargs)
        except Exception as e:
            if self.config.counts_as_failure(e):
                await self.record_failure(e)
            else:
                await self.record_success()
            raise

        await self.record_success()
        return result


# Telegram ו-API-Football קריטיים למחזור; ספקי החיפוש רק מעשירים - נפתחים מהר יותר ונחים יותר
_SERVICE_CONFIGS: dict[str, CircuitBreakerConfig] = {
    "telegram": CircuitBreakerConfig(failure_threshold=5, timeout_seconds=30.0),
    "api_football": CircuitBreakerConfig(failure_threshold=5, timeout_seconds=30.0),
    "youtube": CircuitBreakerConfig(failure_threshold=3, timeout_seconds=60.0),
    "reddit": CircuitBreakerConfig(failure_threshold=3, timeout_seconds=60.0),
}


def _service_breaker(service_name: str) -> CircuitBreaker:
    return CircuitBreaker.get_instance(service_name, _SERVICE_CONFIGS[service_name])


def get_telegram_circuit_breaker() -> CircuitBreaker:
    """Telegram Bot API"""
    return _service_breaker("telegram")


def get_football_api_circuit_breaker() -> CircuitBreaker:
    """API-Football"""
    return _service_breaker("api_football")


def get_youtube_circuit_breaker() -> CircuitBreaker:
    """YouTube Data API"""
    return _service_breaker("youtube")


def get_reddit_circuit_breaker() -> CircuitBreaker:
    """Reddit search"""
    return _service_breaker("reddit")
