"""Random variate generation on top of an injectable uniform source.

Every simulator draws through a ``RandomVariates`` instance, which builds all
of its distributions from a single primitive: a uniform draw in [0, 1). Tests
swap the numpy-backed source for a ``SequenceRandomSource`` to replay a fixed
sequence of draws.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Iterable, Protocol

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)


class RandomSource(Protocol):
    """Anything that can produce independent uniform draws in [0, 1)."""

    def uniform(self) -> float:
        ...


class NumpyRandomSource:
    """Uniform source backed by a numpy ``Generator``.

    Draws are pulled from the generator in blocks so that per-trade calls stay
    cheap inside the simulation loops.

    Example:
        >>> source = NumpyRandomSource(seed=42)
        >>> 0.0 <= source.uniform() < 1.0
        True
    """

    def __init__(self, seed: int | None = None, block_size: int = 4096) -> None:
        """Initialize the source.

        Args:
            seed: Seed for reproducible runs. None draws fresh OS entropy.
            block_size: Number of uniforms fetched from the generator at once.
        """
        if block_size < 1:
            raise ValueError("block_size must be positive")
        self._rng = np.random.default_rng(seed)
        self._block_size = block_size
        self._buffer: NDArray[np.float64] = np.empty(0, dtype=np.float64)
        self._pos = 0

    def uniform(self) -> float:
        if self._pos >= len(self._buffer):
            self._buffer = self._rng.random(self._block_size)
            self._pos = 0
        value = self._buffer[self._pos]
        self._pos += 1
        return float(value)


class SequenceRandomSource:
    """Replays a fixed sequence of uniform draws, cycling when exhausted."""

    def __init__(self, values: Iterable[float]) -> None:
        self._values = [float(v) for v in values]
        if not self._values:
            raise ValueError("SequenceRandomSource needs at least one value")
        for v in self._values:
            if not 0.0 <= v < 1.0:
                raise ValueError(f"Uniform draws must lie in [0, 1), got {v}")
        self._pos = 0

    def uniform(self) -> float:
        value = self._values[self._pos % len(self._values)]
        self._pos += 1
        return value

    @property
    def draws(self) -> int:
        """Number of values consumed so far."""
        return self._pos


class RandomVariates:
    """Distributions used by the simulators.

    Attributes:
        source: The uniform source every draw is built from.
    """

    def __init__(self, source: RandomSource | None = None) -> None:
        self.source: RandomSource = source if source is not None else NumpyRandomSource()

    @classmethod
    def seeded(cls, seed: int | None) -> RandomVariates:
        """Build variates over a numpy source with the given seed."""
        return cls(NumpyRandomSource(seed))

    def uniform01(self) -> float:
        return self.source.uniform()

    def bernoulli(self, p_pct: float) -> bool:
        """Return True with probability ``p_pct / 100``."""
        return self.source.uniform() * 100.0 < p_pct

    def normal(self, mean: float, std_dev: float) -> float:
        """Draw from Normal(mean, std_dev) with the Box-Muller transform.

        ``1 - u1`` keeps the log argument in (0, 1] so a zero draw cannot
        produce an infinite value.
        """
        u1 = 1.0 - self.source.uniform()
        u2 = self.source.uniform()
        z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return z0 * std_dev + mean

    def bounded_normal(self, mean: float, std_dev: float, lo: float, hi: float) -> float:
        """Normal draw clamped into [lo, hi]."""
        if lo > hi:
            raise ValueError("lo must be less than or equal to hi")
        return max(lo, min(hi, self.normal(mean, std_dev)))

    def poissonish(self, lam: float) -> int:
        """Non-negative count with mean ``lam``.

        Inverse Poisson-process scheme: multiply uniform draws until the
        product drops to ``exp(-lam)`` or below, then return the number of
        multiplications minus one.
        """
        if lam < 0:
            raise ValueError("lam must be non-negative")
        limit = math.exp(-lam)
        k = 0
        p = 1.0
        while True:
            k += 1
            p *= self.source.uniform()
            if p <= limit:
                break
        return k - 1
