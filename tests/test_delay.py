"""
Tests for fetch_trials delay strategies.
"""

import random
from unittest.mock import patch

import pytest

from fetch_trials.delay import no_delay, exponential_delay, create_exponential_delay


class TestNoDelay:
    """Tests for no_delay."""

    def test_always_returns_zero(self):
        """Should never wait."""
        assert no_delay(1, None) == 0
        assert no_delay(10, RuntimeError("boom")) == 0


class TestExponentialDelay:
    """Tests for exponential_delay."""

    @pytest.mark.parametrize("attempt", [1, 2, 3, 5, 8])
    def test_stays_within_jitter_bounds(self, attempt):
        """Should lie in [2^n * 0.1, 2^n * 0.1 * 1.2] for any seed."""
        base = (2 ** attempt) * 0.1
        for seed in range(25):
            rng = random.Random(seed)
            delay = exponential_delay(attempt, None, random_fn=rng.random)
            assert base <= delay <= base * 1.2 + 1e-12

    def test_lower_bound_without_jitter(self):
        """Should return the bare exponential delay when random is 0."""
        assert exponential_delay(3, None, random_fn=lambda: 0.0) == pytest.approx(0.8)

    def test_near_upper_bound_with_max_jitter(self):
        """Should add up to 20% jitter."""
        assert exponential_delay(1, None, random_fn=lambda: 0.999) == pytest.approx(0.2 * 1.1998)

    def test_uses_module_random_by_default(self):
        """Should draw jitter from random.random by default."""
        with patch("fetch_trials.delay.random.random", return_value=0.5) as mock_random:
            assert exponential_delay(2) == pytest.approx(0.4 * 1.1)
        mock_random.assert_called_once()

    def test_doubles_per_attempt(self):
        """Should double the base delay for each retry."""
        no_jitter = lambda: 0.0
        delays = [exponential_delay(n, None, random_fn=no_jitter) for n in range(1, 5)]
        assert delays == pytest.approx([0.2, 0.4, 0.8, 1.6])


class TestCreateExponentialDelay:
    """Tests for create_exponential_delay."""

    def test_is_deterministic_for_seeded_source(self):
        """Should produce the same sequence for the same seed."""
        first = create_exponential_delay(random.Random(7).random)
        second = create_exponential_delay(random.Random(7).random)
        assert [first(n, None) for n in range(1, 4)] == [second(n, None) for n in range(1, 4)]

    def test_matches_delay_fn_signature(self):
        """Should accept (attempt, error) like any delay_fn."""
        delay_fn = create_exponential_delay(lambda: 0.0)
        assert delay_fn(1, RuntimeError("boom")) == pytest.approx(0.2)
