"""
Tests for remote-source resilience: circuit breaker state machine and
resilient_call retry behavior.
"""

from __future__ import annotations

import sys
import threading
import time
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from barcode_cache.sources.resilience import (
    CircuitBreaker,
    CircuitOpenError,
    RetryConfig,
    resilient_call,
)


class TestCircuitBreaker:
    def test_starts_closed(self):
        cb = CircuitBreaker(source_name="test")
        assert cb.state == "CLOSED"
        assert not cb.is_open

    def test_opens_after_threshold(self):
        cb = CircuitBreaker(source_name="test", failure_threshold=3)
        cb.record_failure("e1")
        cb.record_failure("e2")
        assert not cb.is_open
        cb.record_failure("e3")
        assert cb.is_open
        assert cb.last_error == "e3"

    def test_half_open_after_cooldown(self):
        cb = CircuitBreaker(source_name="test", failure_threshold=1, cooldown_seconds=0.05)
        cb.record_failure("boom")
        assert cb.state == "OPEN"
        time.sleep(0.1)
        assert cb.state == "HALF_OPEN"

    def test_half_open_trial_failure_reopens(self):
        cb = CircuitBreaker(source_name="test", failure_threshold=5, cooldown_seconds=0.05)
        for _ in range(5):
            cb.record_failure("boom")
        time.sleep(0.1)
        assert cb.state == "HALF_OPEN"
        cb.record_failure("still down")
        assert cb.state == "OPEN"

    def test_success_closes(self):
        cb = CircuitBreaker(source_name="test", failure_threshold=1, cooldown_seconds=0.05)
        cb.record_failure("boom")
        time.sleep(0.1)
        cb.record_success()
        assert cb.state == "CLOSED"
        assert cb.last_error is None

    def test_reset(self):
        cb = CircuitBreaker(source_name="test", failure_threshold=1)
        cb.record_failure("boom")
        cb.reset()
        assert cb.state == "CLOSED"

    def test_half_open_admits_single_caller(self):
        cb = CircuitBreaker(source_name="test", failure_threshold=1, cooldown_seconds=0.05)
        cb.record_failure("boom")
        assert not cb.allow_request()
        time.sleep(0.1)
        assert cb.allow_request()
        assert not cb.allow_request()
        assert not cb.allow_request()

    def test_half_open_slot_freed_after_failure_and_cooldown(self):
        cb = CircuitBreaker(source_name="test", failure_threshold=1, cooldown_seconds=0.05)
        cb.record_failure("boom")
        time.sleep(0.1)
        assert cb.allow_request()
        cb.record_failure("still down")
        assert cb.state == "OPEN"
        assert not cb.allow_request()
        time.sleep(0.1)
        assert cb.allow_request()

    def test_closed_always_allows(self):
        cb = CircuitBreaker(source_name="test")
        assert all(cb.allow_request() for _ in range(5))

    def test_half_open_single_caller_under_threads(self):
        cb = CircuitBreaker(source_name="test", failure_threshold=1, cooldown_seconds=0.05)
        cb.record_failure("boom")
        time.sleep(0.1)
        granted = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            granted.append(cb.allow_request())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert granted.count(True) == 1


class TestResilientCall:
    def test_default_is_single_attempt(self):
        calls = []

        def fail():
            calls.append(1)
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            resilient_call(fail)
        assert len(calls) == 1

    def test_retries_until_success(self):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError("down")
            return "ok"

        cfg = RetryConfig(max_retries=3, base_delay_s=0.0)
        assert resilient_call(flaky, retry_config=cfg) == "ok"
        assert len(calls) == 3

    def test_passes_arguments(self):
        assert resilient_call(lambda a, b=0: a + b, 1, b=2) == 3

    def test_failure_recorded_once_per_call(self):
        cb = CircuitBreaker(source_name="test", failure_threshold=2)
        cfg = RetryConfig(max_retries=3, base_delay_s=0.0)

        def fail():
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            resilient_call(fail, retry_config=cfg, circuit_breaker=cb)
        assert cb.state == "CLOSED"
        with pytest.raises(ConnectionError):
            resilient_call(fail, retry_config=cfg, circuit_breaker=cb)
        assert cb.state == "OPEN"

    def test_open_breaker_short_circuits(self):
        cb = CircuitBreaker(source_name="test", failure_threshold=1)
        cb.record_failure("boom")
        calls = []
        with pytest.raises(CircuitOpenError):
            resilient_call(lambda: calls.append(1), circuit_breaker=cb)
        assert calls == []

    def test_success_resets_breaker(self):
        cb = CircuitBreaker(source_name="test", failure_threshold=3)
        cb.record_failure("boom")
        assert resilient_call(lambda: 42, circuit_breaker=cb) == 42
        assert cb.last_error is None

    def test_second_caller_refused_while_trial_call_out(self):
        cb = CircuitBreaker(source_name="test", failure_threshold=1, cooldown_seconds=0.05)
        cb.record_failure("boom")
        time.sleep(0.1)
        inner_outcome = []

        def first_call():
            # a concurrent request arriving while this one is still in flight
            try:
                resilient_call(lambda: "second", circuit_breaker=cb)
            except CircuitOpenError as exc:
                inner_outcome.append(exc)
            return "first"

        assert resilient_call(first_call, circuit_breaker=cb) == "first"
        assert len(inner_outcome) == 1
        assert "HALF_OPEN" in str(inner_outcome[0])
        assert cb.state == "CLOSED"
        assert resilient_call(lambda: "after", circuit_breaker=cb) == "after"
