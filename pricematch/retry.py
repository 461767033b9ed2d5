"""
Retry with exponential backoff, bounded by a time budget.

Connector calls run under the aggregation deadline, so a retry loop must give
up rather than sleep past the time its caller is still waiting.
"""

import threading
import time
import functools
from typing import Callable, Optional, Tuple, Type


class RetryError(Exception):
    """Raised when all retry attempts, or the time budget, are exhausted."""
    pass


class CircuitOpenError(Exception):
    """Raised when a call is refused because the circuit is open."""
    pass


def exponential_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    retry_if: Optional[Callable[[Exception], bool]] = None,
    budget_arg: Optional[str] = None,
    on_retry: Optional[Callable] = None,
):
    """
    Retry the wrapped call, doubling (by default) the pause after each failure.

    Args:
        max_retries: Extra attempts after the first one (0 disables retrying)
        base_delay: Pause before the first retry, in seconds
        max_delay: Upper bound for any single pause
        exponential_base: Factor applied to the pause after every retry
        exceptions: Exception types that may be retried
        retry_if: Optional predicate; a caught exception it rejects is re-raised as is
        budget_arg: Name of a keyword argument holding the total seconds allowed.
            A retry that would sleep past the budget is not attempted.
        on_retry: Called as on_retry(attempt, exception, delay) before each pause

    Usage:
        @exponential_backoff(max_retries=2, base_delay=0.5, budget_arg="timeout")
        def search(url, params, timeout):
            return requests.get(url, params=params, timeout=timeout)
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            started = time.monotonic()
            budget = kwargs.get(budget_arg) if budget_arg else None
            delay = base_delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if retry_if is not None and not retry_if(e):
                        raise
                    if attempt == max_retries:
                        raise RetryError(
                            f"Failed after {max_retries + 1} attempts: {e}"
                        ) from e

                    current_delay = min(delay, max_delay)
                    if budget is not None:
                        elapsed = time.monotonic() - started
                        if elapsed + current_delay >= budget:
                            raise RetryError(
                                f"Gave up after {attempt + 1} attempts, "
                                f"time budget of {budget}s exhausted: {e}"
                            ) from e

                    if on_retry:
                        on_retry(attempt + 1, e, current_delay)
                    time.sleep(current_delay)
                    delay *= exponential_base

        return wrapper
    return decorator


class CircuitBreaker:
    """
    Stops calling a source that keeps failing.

    CLOSED passes calls through, OPEN refuses them until recovery_timeout has
    passed, HALF_OPEN lets one call probe whether the source recovered.
    State changes happen under a lock; the wrapped call itself runs outside it,
    so a straggler from an earlier aggregation may overlap a newer call.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        expected_exception: Type[Exception] = Exception,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception
        self.clock = clock

        self._lock = threading.Lock()
        self.failure_count = 0
        self.opened_at: Optional[float] = None
        self.state = self.CLOSED

    def call(self, func: Callable, *args, **kwargs):
        """
        Run func(*args, **kwargs) unless the circuit is open.

        Raises:
            CircuitOpenError: While open and the recovery timeout has not passed
            Whatever func raises, after counting it as a failure
        """
        with self._lock:
            if self.state == self.OPEN:
                remaining = self._remaining()
                if remaining > 0:
                    raise CircuitOpenError(
                        f"Circuit breaker is OPEN. Retry after {remaining:.0f}s"
                    )
                self.state = self.HALF_OPEN

        try:
            result = func(*args, **kwargs)
        except self.expected_exception:
            self._on_failure()
            raise
        self.reset()
        return result

    def seconds_until_probe(self) -> float:
        with self._lock:
            return self._remaining()

    def _remaining(self) -> float:
        if self.opened_at is None:
            return 0.0
        return max(0.0, self.recovery_timeout - (self.clock() - self.opened_at))

    def _on_failure(self):
        with self._lock:
            self.failure_count += 1
            if self.state == self.HALF_OPEN or self.failure_count >= self.failure_threshold:
                self.state = self.OPEN
                self.opened_at = self.clock()

    def reset(self):
        with self._lock:
            self.failure_count = 0
            self.opened_at = None
            self.state = self.CLOSED


def should_retry_http_status(status_code: int) -> bool:
    """Server errors, timeouts and rate limiting are worth another attempt."""
    return status_code in {408, 429, 500, 502, 503, 504}


TRANSIENT_MARKERS = ("timeout", "timed out", "connection", "temporary failure", "service unavailable")


def is_transient_error(exception: Exception) -> bool:
    """
    Guess whether another attempt could succeed.

    An HTTP status on the exception decides when present; otherwise the
    message is searched for TRANSIENT_MARKERS.
    """
    response = getattr(exception, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return should_retry_http_status(status)
    message = str(exception).lower()
    return any(marker in message for marker in TRANSIENT_MARKERS)
