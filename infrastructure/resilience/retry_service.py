"""
Provider resilience: a circuit breaker plus exponential back-off retries
around the chat-completion round trip.

Only transient provider errors are retried and only they count against the
breaker. Anything else propagates on the first attempt.
"""

import random
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

import openai

from utils.logging_config import get_logger

logger = get_logger(__name__)

# Transient provider errors, worth another attempt
RETRIABLE_ERRORS = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.InternalServerError,
)

# Permanent provider errors
NON_RETRIABLE_ERRORS = (
    openai.AuthenticationError,
    openai.PermissionDeniedError,
    openai.BadRequestError,
    openai.ContentFilterFinishReasonError,
)


def is_retriable(error: BaseException) -> bool:
    return isinstance(error, RETRIABLE_ERRORS)


@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential delay with proportional jitter"""
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter_ratio: float = 0.1

    def delay(self, attempt: int, rng: Optional[random.Random] = None) -> float:
        """
        Delay before retry number attempt + 1

        Args:
            attempt: Failed attempt index, starting at 0
            rng: Random source for the jitter

        Returns:
            Seconds to wait, between the capped exponential delay and
            jitter_ratio above it
        """
        capped = min(self.base_delay * (2 ** attempt), self.max_delay)
        return capped + (rng or random).uniform(0, self.jitter_ratio * capped)


class CircuitBreakerState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerError(Exception):
    """The breaker is open and the provider call was not attempted"""

    def __init__(self, name: str, retry_in: float):
        super().__init__(f"Circuit breaker '{name}' is OPEN. Provider appears to be down. Retry in {retry_in:.0f}s.")
        self.retry_in = retry_in


class CircuitBreaker:
    """
    Fails fast while the provider is known to be down.

    CLOSED counts consecutive tracked failures and opens at the threshold.
    OPEN rejects calls until recovery_timeout seconds have passed, then lets
    one probe through as HALF_OPEN. The probe closes the breaker on success
    and reopens it on failure.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 60,
        tracked_errors: tuple = RETRIABLE_ERRORS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.tracked_errors = tracked_errors
        self._clock = clock

        self.state = CircuitBreakerState.CLOSED
        self.failure_count = 0
        self.opened_at: Optional[float] = None
        self._lock = threading.Lock()

    def _retry_in(self) -> float:
        if self.opened_at is None:
            return 0.0
        return max(0.0, self.recovery_timeout - (self._clock() - self.opened_at))

    def _open(self) -> None:
        self.state = CircuitBreakerState.OPEN
        self.opened_at = self._clock()

    def allow_request(self) -> bool:
        with self._lock:
            if self.state == CircuitBreakerState.OPEN and self._retry_in() <= 0:
                self.state = CircuitBreakerState.HALF_OPEN
                logger.info(f"CircuitBreaker '{self.name}' probing provider - state: HALF_OPEN")
            return self.state != CircuitBreakerState.OPEN

    def record_success(self) -> None:
        with self._lock:
            if self.state == CircuitBreakerState.HALF_OPEN:
                logger.info(f"CircuitBreaker '{self.name}' recovered - state: CLOSED")
            self.state = CircuitBreakerState.CLOSED
            self.failure_count = 0
            self.opened_at = None

    def record_failure(self, error: BaseException) -> None:
        with self._lock:
            self.failure_count += 1
            if self.state == CircuitBreakerState.HALF_OPEN:
                self._open()
                logger.warning(f"CircuitBreaker '{self.name}' probe failed - state: OPEN")
            elif self.failure_count >= self.failure_threshold and self.state == CircuitBreakerState.CLOSED:
                self._open()
                logger.warning(
                    f"CircuitBreaker '{self.name}' opened after {self.failure_count} failures "
                    f"(last: {error.__class__.__name__})"
                )

    def call(self, func: Callable[[], Any]) -> Any:
        """
        Run func unless the breaker is open

        Raises:
            CircuitBreakerError: If the breaker is open
        """
        if not self.allow_request():
            raise CircuitBreakerError(self.name, self._retry_in())

        try:
            result = func()
        except self.tracked_errors as e:
            self.record_failure(e)
            raise

        self.record_success()
        return result

    def snapshot(self) -> Dict[str, Any]:
        """State for status pages and logs"""
        with self._lock:
            return {
                "name": self.name,
                "state": self.state.value,
                "failure_count": self.failure_count,
                "failure_threshold": self.failure_threshold,
                "retry_in": self._retry_in() if self.state == CircuitBreakerState.OPEN else 0.0,
            }

    def reset(self) -> None:
        with self._lock:
            self.state = CircuitBreakerState.CLOSED
            self.failure_count = 0
            self.opened_at = None
        logger.info(f"CircuitBreaker '{self.name}' manually reset - state: CLOSED")


class RetryService:
    """Retries provider calls through the shared provider breaker"""

    PROVIDER_BREAKER = "chat_provider"

    def __init__(
        self,
        policy: Optional[BackoffPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.logger = get_logger(__name__)
        self.policy = policy or BackoffPolicy()
        self._sleep = sleep
        self._clock = clock
        self._rng = rng
        self._breakers: Dict[str, CircuitBreaker] = {}
        self._lock = threading.Lock()

    def provider_breaker(self, failure_threshold: int = 5, recovery_timeout: float = 60) -> CircuitBreaker:
        """The breaker guarding the chat provider, created on first use"""
        with self._lock:
            breaker = self._breakers.get(self.PROVIDER_BREAKER)
            if breaker is None:
                breaker = CircuitBreaker(
                    self.PROVIDER_BREAKER,
                    failure_threshold=failure_threshold,
                    recovery_timeout=recovery_timeout,
                )
                self._breakers[self.PROVIDER_BREAKER] = breaker
                logger.info(
                    f"CircuitBreaker '{breaker.name}' initialized with threshold={failure_threshold}, "
                    f"timeout={recovery_timeout}s"
                )
            return breaker

    def call(
        self,
        func: Callable[[], Any],
        max_retries: int = 2,
        breaker: Optional[CircuitBreaker] = None,
        on_retry: Optional[Callable[[int, BaseException], None]] = None,
        deadline: Optional[float] = None,
        attempt_timeout: float = 0.0
    ) -> Any:
        """
        Call func, retrying transient provider errors with back-off

        Args:
            func: Zero-argument provider call
            max_retries: Retries after the first attempt
            breaker: Breaker to run each attempt through (None for no breaker)
            on_retry: Called with (retry_number, error) before each wait
            deadline: Total seconds the call may take across all attempts
                (None for no limit)
            attempt_timeout: Longest a single attempt can run. A retry only
                starts when back-off plus one full attempt still fits the deadline

        Returns:
            Whatever func returns

        Raises:
            CircuitBreakerError: If the breaker is open
            The last provider error once retries or the deadline are exhausted,
            or the first non-transient error
        """
        attempt_call = (lambda: breaker.call(func)) if breaker is not None else func
        started = self._clock()

        for attempt in range(max_retries + 1):
            try:
                result = attempt_call()
            except Exception as e:
                if isinstance(e, (CircuitBreakerError,) + NON_RETRIABLE_ERRORS):
                    self.logger.warning(f"Non-retriable error encountered: {e.__class__.__name__}: {e}")
                    raise
                if not is_retriable(e):
                    self.logger.error(f"Unknown exception encountered (not retrying): {e.__class__.__name__}: {e}")
                    raise
                if attempt == max_retries:
                    self.logger.error(f"Provider call failed after {max_retries} retries: {e}")
                    raise

                delay = self.policy.delay(attempt, self._rng)
                if deadline is not None:
                    elapsed = self._clock() - started
                    if elapsed + delay + attempt_timeout > deadline:
                        self.logger.error(
                            f"Provider call failed after {elapsed:.1f}s, no time left for another attempt: {e}"
                        )
                        raise
                self.logger.warning(f"Attempt {attempt + 1} failed ({e.__class__.__name__}), retrying in {delay:.2f}s")
                if on_retry:
                    on_retry(attempt + 1, e)
                self._sleep(delay)
                continue

            if attempt > 0:
                self.logger.info(f"Provider call succeeded after {attempt} retries")
            return result


_retry_service: Optional[RetryService] = None


def get_retry_service() -> RetryService:
    """Get the global retry service instance"""
    global _retry_service
    if _retry_service is None:
        _retry_service = RetryService()
    return _retry_service
