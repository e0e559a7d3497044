"""
Resilience service for retry logic, circuit breakers, and fault tolerance.
Works on coroutine factories so back-off sleeps stay cancellable.
"""

import asyncio
import random
from typing import Any, Awaitable, Callable, Optional, Tuple, Type
from datetime import datetime
from enum import Enum
import openai

from utils.logging_config import get_logger

logger = get_logger(__name__)


class TransientServiceError(Exception):
    """Base class for service errors worth retrying (busy, unreachable, timed out)"""
    pass


# Define which errors should trigger retries (transient errors)
RETRIABLE_ERRORS: Tuple[Type[BaseException], ...] = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.InternalServerError,  # Server-side issues
    TransientServiceError,
)

# Define which errors should NOT be retried (permanent errors)
NON_RETRIABLE_ERRORS: Tuple[Type[BaseException], ...] = (
    openai.AuthenticationError,  # API key issues
    openai.BadRequestError,      # User input issues
    openai.ContentFilterFinishReasonError,  # Content policy violations
)

AsyncCallable = Callable[[], Awaitable[Any]]


def exponential_backoff_delay(attempt: int, base_delay: float = 1.0, max_delay: float = 60.0) -> float:
    """
    Calculate exponential backoff delay with jitter

    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Base delay in seconds
        max_delay: Maximum delay in seconds

    Returns:
        Delay in seconds
    """
    delay = min(base_delay * (2 ** attempt), max_delay)

    # Add jitter to avoid thundering herd effect
    jitter = random.uniform(0, 0.1 * delay)

    return delay + jitter


class CircuitBreakerState(Enum):
    """Circuit breaker states"""
    CLOSED = "closed"      # Normal operation, requests pass through
    OPEN = "open"          # Circuit is open, requests are blocked
    HALF_OPEN = "half_open"  # Testing if service has recovered


class CircuitBreakerError(Exception):
    """Custom exception for circuit breaker failures"""

    def __init__(self, message: str, remaining_timeout: float = 0.0):
        super().__init__(message)
        self.remaining_timeout = remaining_timeout


class CircuitBreaker:
    """
    Circuit breaker for external API calls

    States:
    - CLOSED: Normal operation, all requests pass through
    - OPEN: Circuit is open, requests fail fast without hitting the API
    - HALF_OPEN: Testing recovery, limited requests allowed through
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        expected_exception: tuple = RETRIABLE_ERRORS,
        name: str = "CircuitBreaker"
    ):
        """
        Initialize circuit breaker

        Args:
            failure_threshold: Number of failures before opening circuit
            recovery_timeout: Seconds to wait before attempting recovery
            expected_exception: Exceptions that count as failures
            name: Name for logging and identification
        """
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception
        self.name = name

        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time: Optional[datetime] = None
        self.state = CircuitBreakerState.CLOSED

        logger.info(f"CircuitBreaker '{name}' initialized with threshold={failure_threshold}, timeout={recovery_timeout}s")

    def _should_attempt_reset(self) -> bool:
        """Check if enough time has passed to attempt recovery"""
        if self.last_failure_time is None:
            return False

        time_since_failure = datetime.now() - self.last_failure_time
        return time_since_failure.total_seconds() >= self.recovery_timeout

    def _remaining_timeout(self) -> float:
        if self.last_failure_time is None or self.state != CircuitBreakerState.OPEN:
            return 0.0
        elapsed = (datetime.now() - self.last_failure_time).total_seconds()
        return max(0.0, self.recovery_timeout - elapsed)

    def _record_success(self):
        """Record a successful operation"""
        self.failure_count = 0
        self.success_count += 1

        if self.state == CircuitBreakerState.HALF_OPEN:
            self.state = CircuitBreakerState.CLOSED
            logger.info(f"CircuitBreaker '{self.name}' recovered - state: CLOSED")

    def _record_failure(self, exception: BaseException):
        """Record a failed operation"""
        self.failure_count += 1
        self.last_failure_time = datetime.now()

        if self.state == CircuitBreakerState.HALF_OPEN:
            self.state = CircuitBreakerState.OPEN
            logger.warning(f"CircuitBreaker '{self.name}' recovery failed - state: OPEN")

        elif self.state == CircuitBreakerState.CLOSED and self.failure_count >= self.failure_threshold:
            self.state = CircuitBreakerState.OPEN
            logger.warning(f"CircuitBreaker '{self.name}' opened - failures: {self.failure_count}")

    def can_execute(self) -> bool:
        """Check if a request can be executed"""
        if self.state == CircuitBreakerState.CLOSED:
            return True

        if self.state == CircuitBreakerState.OPEN:
            if self._should_attempt_reset():
                self.state = CircuitBreakerState.HALF_OPEN
                logger.info(f"CircuitBreaker '{self.name}' attempting recovery - state: HALF_OPEN")
                return True
            return False

        # HALF_OPEN lets one trial request through
        return True

    async def call(self, func: AsyncCallable) -> Any:
        """
        Await a coroutine factory with circuit breaker protection

        Raises:
            CircuitBreakerError: If circuit is open
            Original exception: If the call fails
        """
        if not self.can_execute():
            remaining_time = self._remaining_timeout()
            raise CircuitBreakerError(
                f"Circuit breaker '{self.name}' is OPEN. "
                f"Service appears to be down. Retry in {remaining_time:.0f}s.",
                remaining_timeout=remaining_time
            )

        try:
            result = await func()
        except self.expected_exception as e:
            self._record_failure(e)
            raise
        except Exception as e:
            # Non-expected exceptions don't count as circuit failures
            logger.warning(f"CircuitBreaker '{self.name}' encountered non-tracked exception: {e.__class__.__name__}")
            raise

        self._record_success()
        return result

    def get_state(self) -> dict:
        """Get current circuit breaker state for monitoring"""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "success_count": self.success_count,
            "failure_threshold": self.failure_threshold,
            "remaining_timeout": self._remaining_timeout(),
            "last_failure_time": self.last_failure_time.isoformat() if self.last_failure_time else None
        }

    def reset(self):
        """Manually reset the circuit breaker to CLOSED state"""
        self.state = CircuitBreakerState.CLOSED
        self.failure_count = 0
        self.last_failure_time = None
        logger.info(f"CircuitBreaker '{self.name}' manually reset - state: CLOSED")


class RetryService:
    """
    Service for handling retry logic and circuit breakers.
    Provides infrastructure-level fault tolerance capabilities.
    """

    def __init__(self):
        self.logger = get_logger(__name__)
        self._circuit_breakers: dict[str, CircuitBreaker] = {}

    def create_circuit_breaker(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        expected_exception: tuple = RETRIABLE_ERRORS
    ) -> CircuitBreaker:
        """Create a new circuit breaker"""
        circuit_breaker = CircuitBreaker(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            expected_exception=expected_exception,
            name=name
        )
        self._circuit_breakers[name] = circuit_breaker
        return circuit_breaker

    def get_circuit_breaker(self, name: str) -> Optional[CircuitBreaker]:
        """Get an existing circuit breaker by name"""
        return self._circuit_breakers.get(name)

    async def retry_with_backoff(
        self,
        func: AsyncCallable,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        on_retry: Optional[Callable[[int, Exception], None]] = None
    ) -> Any:
        """
        Await a coroutine factory with retry logic and exponential backoff

        Args:
            func: Zero-argument callable returning a fresh awaitable per attempt
            max_retries: Maximum number of retry attempts
            base_delay: Base delay between retries in seconds
            max_delay: Maximum delay between retries in seconds
            on_retry: Optional callback for retry events (attempt_number, exception)

        Returns:
            Result of the first successful attempt

        Raises:
            The last exception if all retries are exhausted
        """
        for attempt in range(max_retries + 1):  # +1 for initial attempt
            try:
                result = await func()

                if attempt > 0:
                    self.logger.info(f"Call succeeded after {attempt} retries")

                return result

            except NON_RETRIABLE_ERRORS as e:
                self.logger.warning(f"Non-retriable error encountered: {e.__class__.__name__}: {str(e)}")
                raise

            except RETRIABLE_ERRORS as e:
                if attempt == max_retries:
                    self.logger.error(f"Call failed after {max_retries} retries: {str(e)}")
                    raise

                delay = exponential_backoff_delay(attempt, base_delay, max_delay)
                self.logger.warning(f"Attempt {attempt + 1} failed ({e.__class__.__name__}), retrying in {delay:.2f}s")

                if on_retry:
                    on_retry(attempt + 1, e)

                await asyncio.sleep(delay)

    async def retry_with_circuit_breaker(
        self,
        func: AsyncCallable,
        circuit_breaker: CircuitBreaker,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        on_retry: Optional[Callable[[int, Exception], None]] = None
    ) -> Any:
        """
        Await a coroutine factory with both retry logic and circuit breaker protection

        Raises:
            CircuitBreakerError: If circuit breaker is open (never retried)
            The last exception if all retries are exhausted
        """
        async def wrapped_func():
            return await circuit_breaker.call(func)

        return await self.retry_with_backoff(
            wrapped_func,
            max_retries=max_retries,
            base_delay=base_delay,
            max_delay=max_delay,
            on_retry=on_retry
        )

    def get_image_service_circuit_breaker(
        self,
        failure_threshold: int = 5,
        recovery_timeout: int = 60
    ) -> CircuitBreaker:
        """Get or create the image generation circuit breaker"""
        if "image_generation" not in self._circuit_breakers:
            self._circuit_breakers["image_generation"] = CircuitBreaker(
                failure_threshold=failure_threshold,
                recovery_timeout=recovery_timeout,
                expected_exception=RETRIABLE_ERRORS,
                name="Image_Generation_API"
            )
        return self._circuit_breakers["image_generation"]


# Global retry service instance
_retry_service: Optional[RetryService] = None


def get_retry_service() -> RetryService:
    """Get the global retry service instance"""
    global _retry_service
    if _retry_service is None:
        _retry_service = RetryService()
    return _retry_service
