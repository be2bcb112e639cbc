"""
Resilience primitives for remote sources: circuit breaker and retry with
exponential backoff.

A remote lookup is made at most once per request by default (max_retries=1);
the breaker stops a source that keeps failing from being called at all until
its cooldown elapses.
"""
from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BreakerState(str, enum.Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitOpenError(RuntimeError):
    """Raised by resilient_call when the breaker short-circuits the call."""


@dataclass
class RetryConfig:
    """Attempts per call and the backoff between them."""
    max_retries: int = 1
    base_delay_s: float = 0.5
    max_delay_s: float = 10.0
    backoff_factor: float = 1.5

    @property
    def attempts(self) -> int:
        return max(1, self.max_retries)

    def delay_after(self, attempt: int) -> float:
        """Sleep before attempt+1 (attempt counts from 1)."""
        return min(self.base_delay_s * self.backoff_factor ** (attempt - 1), self.max_delay_s)


@dataclass
class CircuitBreaker:
    """
    Per-source breaker shared by all request threads.

    CLOSED   calls pass; `failure_threshold` failures in a row -> OPEN
    OPEN     calls are refused until `cooldown_seconds` have passed -> HALF_OPEN
    HALF_OPEN exactly one caller is let through as a trial call (allow_request);
             its success -> CLOSED, its failure -> OPEN again
    """
    source_name: str
    failure_threshold: int = 3
    cooldown_seconds: float = 60.0
    _failures: int = field(default=0, init=False, repr=False)
    _state: BreakerState = field(default=BreakerState.CLOSED, init=False, repr=False)
    _opened_at: Optional[float] = field(default=None, init=False, repr=False)
    _last_error: Optional[str] = field(default=None, init=False, repr=False)
    _trial_in_flight: bool = field(default=False, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def _refresh(self) -> BreakerState:
        # caller holds the lock
        if (
            self._state is BreakerState.OPEN
            and self._opened_at is not None
            and time.monotonic() - self._opened_at >= self.cooldown_seconds
        ):
            self._state = BreakerState.HALF_OPEN
        return self._state

    @property
    def state(self) -> BreakerState:
        with self._lock:
            return self._refresh()

    @property
    def is_open(self) -> bool:
        return self.state is BreakerState.OPEN

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def allow_request(self) -> bool:
        """True if a call may go out now. In HALF_OPEN only the first caller gets True."""
        with self._lock:
            state = self._refresh()
            if state is BreakerState.CLOSED:
                return True
            if state is BreakerState.HALF_OPEN and not self._trial_in_flight:
                self._trial_in_flight = True
                return True
            return False

    def record_success(self) -> None:
        with self._lock:
            self._failures = 0
            self._state = BreakerState.CLOSED
            self._last_error = None
            self._trial_in_flight = False

    def record_failure(self, error: str) -> None:
        with self._lock:
            probing = self._refresh() is BreakerState.HALF_OPEN
            self._failures += 1
            self._last_error = error[:500]
            self._trial_in_flight = False
            if probing or self._failures >= self.failure_threshold:
                self._state = BreakerState.OPEN
                self._opened_at = time.monotonic()
                logger.warning(
                    "Circuit breaker OPEN for %s after %d failures: %s",
                    self.source_name, self._failures, error[:200],
                )

    def reset(self) -> None:
        with self._lock:
            self._failures = 0
            self._state = BreakerState.CLOSED
            self._opened_at = None
            self._last_error = None
            self._trial_in_flight = False


def resilient_call(
    func: Callable[..., T],
    *args: Any,
    retry_config: Optional[RetryConfig] = None,
    circuit_breaker: Optional[CircuitBreaker] = None,
    **kwargs: Any,
) -> T:
    """
    Call func(*args, **kwargs) under the breaker, retrying per retry_config.

    Raises CircuitOpenError without calling func when the breaker refuses
    the call (open, or half-open with its trial call already out);
    otherwise re-raises the last error once every attempt has failed. The
    breaker sees one success or one failure per resilient_call.
    """
    cfg = retry_config or RetryConfig()
    breaker = circuit_breaker

    if breaker is not None and not breaker.allow_request():
        raise CircuitOpenError(
            f"Circuit breaker {breaker.state.value} for {breaker.source_name}: {breaker.last_error}"
        )

    for attempt in range(1, cfg.attempts + 1):
        try:
            result = func(*args, **kwargs)
        except Exception as exc:
            logger.debug(
                "Attempt %d/%d failed: %s: %s", attempt, cfg.attempts, type(exc).__name__, exc
            )
            if attempt == cfg.attempts:
                if breaker is not None:
                    breaker.record_failure(f"{type(exc).__name__}: {exc}")
                raise
            time.sleep(cfg.delay_after(attempt))
        else:
            if breaker is not None:
                breaker.record_success()
            return result
    raise AssertionError("unreachable")  # pragma: no cover
