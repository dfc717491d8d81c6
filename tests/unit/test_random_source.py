"""Unit tests for the random variate library."""

import math

import numpy as np
import pytest

from edgelab.core.random_source import (
    NumpyRandomSource,
    RandomVariates,
    SequenceRandomSource,
)


class TestNumpyRandomSource:
    """Tests for the numpy-backed uniform source."""

    def test_values_in_unit_interval(self) -> None:
        """Every draw lies in [0, 1)."""
        source = NumpyRandomSource(seed=1, block_size=16)
        draws = [source.uniform() for _ in range(1000)]
        assert all(0.0 <= d < 1.0 for d in draws)

    def test_seed_is_reproducible(self) -> None:
        """Same seed yields the same sequence, across block refills."""
        a = NumpyRandomSource(seed=99, block_size=8)
        b = NumpyRandomSource(seed=99, block_size=8)
        assert [a.uniform() for _ in range(50)] == [b.uniform() for _ in range(50)]

    def test_invalid_block_size(self) -> None:
        with pytest.raises(ValueError, match="block_size"):
            NumpyRandomSource(block_size=0)


class TestSequenceRandomSource:
    """Tests for the replayable source."""

    def test_replays_and_cycles(self) -> None:
        source = SequenceRandomSource([0.1, 0.5])
        assert [source.uniform() for _ in range(5)] == [0.1, 0.5, 0.1, 0.5, 0.1]
        assert source.draws == 5

    def test_rejects_out_of_range(self) -> None:
        with pytest.raises(ValueError, match=r"\[0, 1\)"):
            SequenceRandomSource([0.2, 1.0])

    def test_rejects_empty(self) -> None:
        with pytest.raises(ValueError, match="at least one value"):
            SequenceRandomSource([])


class TestRandomVariates:
    """Tests for distributions built on the uniform primitive."""

    def test_bernoulli_threshold(self) -> None:
        """A draw of u wins when u * 100 < p."""
        variates = RandomVariates(SequenceRandomSource([0.3]))
        assert variates.bernoulli(31.0) is True
        assert variates.bernoulli(30.0) is False

    def test_bernoulli_extremes(self, variates: RandomVariates) -> None:
        assert not any(variates.bernoulli(0.0) for _ in range(500))
        assert all(variates.bernoulli(100.0) for _ in range(500))

    def test_bernoulli_frequency(self, variates: RandomVariates) -> None:
        wins = sum(variates.bernoulli(40.0) for _ in range(20000))
        assert wins / 20000 == pytest.approx(0.40, abs=0.02)

    def test_normal_box_muller_value(self) -> None:
        """Known draws map through the Box-Muller formula."""
        variates = RandomVariates(SequenceRandomSource([0.5, 0.0]))
        expected = math.sqrt(-2.0 * math.log(0.5))
        assert variates.normal(0.0, 1.0) == pytest.approx(expected)

    def test_normal_zero_draw_is_finite(self) -> None:
        """A uniform draw of exactly 0 does not produce an infinite value."""
        variates = RandomVariates(SequenceRandomSource([0.0, 0.25]))
        assert math.isfinite(variates.normal(10.0, 2.0))

    def test_normal_moments(self, variates: RandomVariates) -> None:
        """Sample mean and std match the requested distribution."""
        draws = np.array([variates.normal(50.0, 4.0) for _ in range(5000)])
        assert draws.mean() == pytest.approx(50.0, abs=0.3)
        assert draws.std() == pytest.approx(4.0, abs=0.3)

    def test_bounded_normal_clamps(self, variates: RandomVariates) -> None:
        draws = [variates.bounded_normal(50.0, 40.0, 1.0, 99.0) for _ in range(2000)]
        assert min(draws) >= 1.0
        assert max(draws) <= 99.0
        assert 1.0 in draws and 99.0 in draws

    def test_bounded_normal_invalid_bounds(self, variates: RandomVariates) -> None:
        with pytest.raises(ValueError, match="lo must be"):
            variates.bounded_normal(0.0, 1.0, 5.0, 1.0)

    def test_poissonish_counts_multiplications(self) -> None:
        """Three draws multiply to below exp(-1) on the third: count is 2."""
        variates = RandomVariates(SequenceRandomSource([0.9, 0.8, 0.1]))
        assert variates.poissonish(1.0) == 2

    def test_poissonish_zero_lambda(self, variates: RandomVariates) -> None:
        assert all(variates.poissonish(0.0) == 0 for _ in range(100))

    def test_poissonish_mean(self, variates: RandomVariates) -> None:
        draws = [variates.poissonish(3.0) for _ in range(10000)]
        assert min(draws) >= 0
        assert np.mean(draws) == pytest.approx(3.0, abs=0.1)

    def test_poissonish_negative_lambda(self, variates: RandomVariates) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            variates.poissonish(-1.0)

    def test_bounded_normal_mean(self, variates: RandomVariates) -> None:
        rates = [variates.bounded_normal(50.0, 4.5, 5.0, 95.0) for _ in range(1000)]
        assert all(5.0 <= r <= 95.0 for r in rates)
        assert np.mean(rates) == pytest.approx(50.0, abs=0.5)
