from __future__ import annotations

import pytest

from pyassist.llm.retry import RetryOptions, backoff_delay_ms, is_retryable, with_retry


class _StatusError(Exception):
    def __init__(self, status: int, msg: str = "http error"):
        super().__init__(msg)
        self.status = status


class TestIsRetryable:
    @pytest.mark.parametrize("status", [408, 429, 500, 503, 599])
    def test_retryable_status(self, status):
        assert is_retryable(_StatusError(status))

    @pytest.mark.parametrize("status", [400, 401, 404])
    def test_client_errors_not_retryable(self, status):
        assert not is_retryable(_StatusError(status))

    def test_network_messages(self):
        assert is_retryable(RuntimeError("ECONNRESET by peer"))
        assert is_retryable(RuntimeError("Request timed out"))
        assert not is_retryable(ValueError("bad input"))


class TestBackoff:
    def test_exponential_without_jitter(self):
        opts = RetryOptions(base_delay_ms=1000, max_delay_ms=30000)
        mid = lambda: 0.5  # noqa: E731
        assert [backoff_delay_ms(a, opts, mid) for a in range(4)] == [1000, 2000, 4000, 8000]

    def test_jitter_bounds(self):
        opts = RetryOptions(base_delay_ms=1000)
        assert backoff_delay_ms(0, opts, lambda: 0.0) == 750
        assert backoff_delay_ms(0, opts, lambda: 1.0) == 1250

    def test_capped(self):
        opts = RetryOptions(base_delay_ms=1000, max_delay_ms=5000)
        assert backoff_delay_ms(10, opts, lambda: 1.0) == 5000


class TestWithRetry:
    def test_rate_limited_twice_then_ok(self):
        calls = {"n": 0}
        slept: list[float] = []
        retries: list[tuple[int, int]] = []

        def op():
            calls["n"] += 1
            if calls["n"] <= 2:
                raise _StatusError(429)
            return "done"

        opts = RetryOptions(max_retries=3, base_delay_ms=100, on_retry=lambda a, d, e: retries.append((a, d)))
        assert with_retry(op, opts, sleep=slept.append, rng=lambda: 0.5) == "done"
        assert calls["n"] == 3
        assert [a for a, _ in retries] == [1, 2]
        assert slept == [0.1, 0.2]

    def test_non_retryable_raises_immediately(self):
        calls = {"n": 0}

        def op():
            calls["n"] += 1
            raise _StatusError(400)

        with pytest.raises(_StatusError):
            with_retry(op, RetryOptions(max_retries=3), sleep=lambda s: None)
        assert calls["n"] == 1

    def test_exhausted_reraises_last(self):
        calls = {"n": 0}

        def op():
            calls["n"] += 1
            raise _StatusError(503, f"attempt {calls['n']}")

        with pytest.raises(_StatusError, match="attempt 3"):
            with_retry(op, RetryOptions(max_retries=2, base_delay_ms=1), sleep=lambda s: None)
        assert calls["n"] == 3

    def test_custom_predicate(self):
        calls = {"n": 0}

        def op():
            calls["n"] += 1
            raise _StatusError(429)

        opts = RetryOptions(max_retries=3, retry_on=lambda e: e.status >= 500)
        with pytest.raises(_StatusError):
            with_retry(op, opts, sleep=lambda s: None)
        assert calls["n"] == 1
