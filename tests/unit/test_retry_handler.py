"""Tests for retry handler."""

from unittest.mock import patch

import pytest

from zoneprobe.retry_handler import retry_with_exponential_backoff


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("zoneprobe.retry_handler.time.sleep") as mock_sleep:
        yield mock_sleep


class TestRetryWithExponentialBackoff:
    """Tests for retry_with_exponential_backoff decorator."""

    def test_succeeds_on_first_attempt(self, no_sleep):
        """Should return immediately on success."""
        call_count = 0

        @retry_with_exponential_backoff(max_attempts=3)
        def successful_operation():
            nonlocal call_count
            call_count += 1
            return "ok"

        assert successful_operation() == "ok"
        assert call_count == 1
        no_sleep.assert_not_called()

    def test_retries_until_success(self, no_sleep):
        """Should retry retryable exceptions and return the eventual result."""
        call_count = 0

        @retry_with_exponential_backoff(max_attempts=3, jitter=False)
        def flaky_operation():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise TimeoutError("slow")
            return "ok"

        assert flaky_operation() == "ok"
        assert call_count == 3
        assert [c.args[0] for c in no_sleep.call_args_list] == [1.0, 2.0]

    def test_raises_after_max_attempts(self, no_sleep):
        """Should re-raise the last exception once attempts are exhausted."""

        @retry_with_exponential_backoff(max_attempts=2)
        def always_fails():
            raise ConnectionError("down")

        with pytest.raises(ConnectionError, match="down"):
            always_fails()
        assert no_sleep.call_count == 1

    def test_non_retryable_exception_propagates_immediately(self, no_sleep):
        """Should not retry exceptions outside retryable_exceptions."""
        call_count = 0

        @retry_with_exponential_backoff(max_attempts=3)
        def bad_input():
            nonlocal call_count
            call_count += 1
            raise ValueError("bad")

        with pytest.raises(ValueError):
            bad_input()
        assert call_count == 1
        no_sleep.assert_not_called()

    def test_delay_capped_at_max_delay(self, no_sleep):
        """Should never sleep longer than max_delay."""

        @retry_with_exponential_backoff(
            max_attempts=4, initial_delay=10.0, max_delay=15.0, jitter=False
        )
        def always_fails():
            raise TimeoutError

        with pytest.raises(TimeoutError):
            always_fails()
        assert [c.args[0] for c in no_sleep.call_args_list] == [10.0, 15.0, 15.0]

    def test_jitter_stays_within_bounds(self, no_sleep):
        """Jittered delay stays within +/-25% of the base delay."""

        @retry_with_exponential_backoff(max_attempts=2, initial_delay=4.0)
        def always_fails():
            raise TimeoutError

        with pytest.raises(TimeoutError):
            always_fails()
        assert 3.0 <= no_sleep.call_args.args[0] <= 5.0

    def test_preserves_function_name(self):
        @retry_with_exponential_backoff()
        def list_zones():
            return []

        assert list_zones.__name__ == "list_zones"
