"""Monte Carlo equity path simulation under a fixed trading edge."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Literal, Sequence

import numpy as np

from edgelab.core.config import (
    EQUITY_PERCENTILES,
    EQUITY_WIN_RATE_BOUNDS,
    EQUITY_WIN_RATE_STD,
)
from edgelab.core.equity import EquityTracker
from edgelab.core.exceptions import ConfigurationError
from edgelab.core.models import EdgeConfig, EquityPath, TrialStats
from edgelab.core.random_source import RandomVariates

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)

# How each TrialStats field is reduced across trials: the typical outcome for
# balances, drawdown and profit factor, the worst-case exposure for streaks.
AGGREGATION_POLICY: dict[str, Literal["mean", "max"]] = {
    "final_balance": "mean",
    "return_pct": "mean",
    "max_drawdown_pct": "mean",
    "profit_factor": "mean",
    "max_win_streak": "max",
    "max_loss_streak": "max",
}


def summarize_trials(stats: Sequence[TrialStats]) -> TrialStats:
    """Reduce per-trial statistics with ``AGGREGATION_POLICY``.

    Args:
        stats: Statistics of every trial.

    Returns:
        A single TrialStats holding the reduced values.

    Raises:
        ConfigurationError: If ``stats`` is empty.
    """
    if not stats:
        raise ConfigurationError("Cannot summarize an empty list of trials")

    reduced: dict[str, float | int] = {}
    for name, rule in AGGREGATION_POLICY.items():
        values = np.array([getattr(s, name) for s in stats])
        if rule == "mean":
            reduced[name] = float(np.mean(values))
        else:
            reduced[name] = int(np.max(values))
    return TrialStats(**reduced)  # type: ignore[arg-type]


@dataclass
class MarketSimulationResult:
    """Results from an equity path simulation.

    Attributes:
        edge: Edge used for the run.
        starting_capital: Equity at step 0 of every trial.
        equity_curves: Array of shape (trial_count, trade_count + 1).
        stats: Statistics of every trial, in trial order.
    """

    edge: EdgeConfig
    starting_capital: float
    equity_curves: NDArray[np.float64]
    stats: list[TrialStats]

    @property
    def trial_count(self) -> int:
        return len(self.stats)

    @property
    def trade_count(self) -> int:
        return self.equity_curves.shape[1] - 1

    def paths(self, limit: int | None = None) -> list[EquityPath]:
        """Equity paths for charting, optionally only the first ``limit`` trials."""
        count = self.trial_count if limit is None else min(limit, self.trial_count)
        return [EquityPath(trial=i, equity=self.equity_curves[i]) for i in range(count)]

    def summary(self) -> TrialStats:
        return summarize_trials(self.stats)

    def equity_percentiles(
        self, percentiles: Sequence[float] = EQUITY_PERCENTILES
    ) -> NDArray[np.float64]:
        """Percentile bands of equity per step.

        Returns:
            Array of shape (trade_count + 1, len(percentiles)).
        """
        return np.percentile(self.equity_curves, list(percentiles), axis=0).T


class MarketSimulator:
    """Simulate independent trade sequences under a fixed edge.

    Each trial draws its own win rate around the configured one to model
    month-to-month performance variance.

    Example:
        >>> simulator = MarketSimulator(RandomVariates.seeded(7))
        >>> result = simulator.run(EdgeConfig(50, 2, 1), 100000, 100, 10)
        >>> result.equity_curves.shape
        (10, 101)
    """

    def __init__(self, variates: RandomVariates | None = None) -> None:
        self.variates = variates if variates is not None else RandomVariates()

    def trial_win_rate(self, edge: EdgeConfig) -> float:
        """Win rate of one trial, drawn around the configured edge.

        A configured win rate of exactly 0 or 100 describes a deterministic
        edge and is used as-is, so such paths stay monotonic.
        """
        if edge.win_rate <= 0.0 or edge.win_rate >= 100.0:
            return edge.win_rate
        lo, hi = EQUITY_WIN_RATE_BOUNDS
        return self.variates.bounded_normal(edge.win_rate, EQUITY_WIN_RATE_STD, lo, hi)

    def _simulate_trial(
        self,
        edge: EdgeConfig,
        starting_capital: float,
        curve: NDArray[np.float64],
    ) -> TrialStats:
        """Fill ``curve`` with one trial's equity and return its statistics."""
        variates = self.variates
        win_rate = self.trial_win_rate(edge)
        risk_fraction = edge.risk_per_trade_pct / 100.0

        tracker = EquityTracker(starting_capital)
        curve[0] = starting_capital
        for step in range(1, len(curve)):
            risk = tracker.equity * risk_fraction
            if variates.bernoulli(win_rate):
                tracker.record(risk * edge.reward_to_risk, won=True)
            else:
                tracker.record(-risk, won=False)
            curve[step] = tracker.equity
        return tracker.stats()

    def run(
        self,
        edge: EdgeConfig,
        starting_capital: float,
        trade_count: int,
        trial_count: int,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> MarketSimulationResult:
        """Run the simulation.

        Args:
            edge: Win rate, reward-to-risk and risk per trade.
            starting_capital: Equity at step 0.
            trade_count: Trades per trial.
            trial_count: Number of independent trials.
            progress_callback: Optional callback for progress updates (completed, total).

        Returns:
            MarketSimulationResult with every equity curve and trial statistics.

        Raises:
            ConfigurationError: If capital or counts are not positive.
        """
        if starting_capital <= 0:
            raise ConfigurationError("starting_capital must be positive")
        if trade_count < 1:
            raise ConfigurationError("trade_count must be at least 1")
        if trial_count < 1:
            raise ConfigurationError("trial_count must be at least 1")

        start_time = time.perf_counter()
        curves = np.zeros((trial_count, trade_count + 1), dtype=np.float64)
        stats: list[TrialStats] = []

        for i in range(trial_count):
            stats.append(self._simulate_trial(edge, starting_capital, curves[i]))

            if progress_callback and (i + 1) % 100 == 0:
                progress_callback(i + 1, trial_count)

        if progress_callback:
            progress_callback(trial_count, trial_count)

        elapsed = time.perf_counter() - start_time
        logger.info(
            "Market simulation completed in %.2fs (%d trials x %d trades)",
            elapsed,
            trial_count,
            trade_count,
        )
        return MarketSimulationResult(
            edge=edge,
            starting_capital=starting_capital,
            equity_curves=curves,
            stats=stats,
        )
