"""Tests for the resolution of `RangeOrFixed` parameters."""

import numpy as np
import pytest
from unittest.mock import MagicMock

from ocr_synth.config.schemas import RangeOrFixed
from ocr_synth.synthetic_data_generator.params import resolve


def test_fixed_value_ignores_rng():
    """A fixed parameter returns its value without drawing from the generator."""
    rng = np.random.default_rng(0)
    state = rng.bit_generator.state
    assert resolve(RangeOrFixed.of(7.5), rng) == 7.5
    assert rng.bit_generator.state == state


def test_fixed_value_ignores_bounds():
    param = RangeOrFixed(use_range=False, fixed=3, min=10, max=20)
    assert resolve(param, np.random.default_rng(0)) == 3.0


def test_range_draws_within_bounds():
    rng = np.random.default_rng(42)
    param = RangeOrFixed.between(-5, 15)
    values = np.array([resolve(param, rng) for _ in range(5000)])
    assert values.min() >= -5
    assert values.max() < 15
    # The mean of a uniform draw converges to the midpoint.
    assert abs(values.mean() - 5) < 0.05 * 20


def test_degenerate_range_returns_bound():
    rng = np.random.default_rng(1)
    assert resolve(RangeOrFixed.between(4, 4), rng) == 4.0


def test_inverted_range_uses_same_arithmetic():
    rng = MagicMock()
    rng.random.return_value = 0.25
    assert resolve(RangeOrFixed.between(10, 0), rng) == pytest.approx(7.5)


def test_inverted_range_stays_between_bounds():
    rng = np.random.default_rng(3)
    values = [resolve(RangeOrFixed.between(10, 0), rng) for _ in range(1000)]
    assert all(0 < v <= 10 for v in values)


def test_same_seed_gives_same_sequence():
    param = RangeOrFixed.between(0, 100)
    rng1 = np.random.default_rng(9)
    rng2 = np.random.default_rng(9)
    assert [resolve(param, rng1) for _ in range(10)] == [resolve(param, rng2) for _ in range(10)]
