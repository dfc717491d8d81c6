"""Monte Carlo risk-of-ruin estimate."""

from __future__ import annotations

import logging
import time

from edgelab.core.config import (
    RUIN_START_CAPITAL,
    RUIN_THRESHOLD_FRACTION,
    RUIN_TRADE_HORIZON,
    RUIN_TRIALS,
    RUIN_WIN_RATE_BOUNDS,
    RUIN_WIN_RATE_STD,
)
from edgelab.core.exceptions import ConfigurationError
from edgelab.core.models import EdgeConfig
from edgelab.core.random_source import RandomVariates

logger = logging.getLogger(__name__)


class RiskOfRuinEstimator:
    """Estimate the chance of equity falling to a ruin threshold.

    A trial is ruined the first time its equity drops to or below
    ``start_capital * ruin_fraction`` within ``trade_horizon`` compounding
    trades.
    """

    def __init__(
        self,
        variates: RandomVariates | None = None,
        trial_count: int = RUIN_TRIALS,
        trade_horizon: int = RUIN_TRADE_HORIZON,
        start_capital: float = RUIN_START_CAPITAL,
        ruin_fraction: float = RUIN_THRESHOLD_FRACTION,
    ) -> None:
        if trial_count < 1:
            raise ConfigurationError("trial_count must be at least 1")
        if trade_horizon < 1:
            raise ConfigurationError("trade_horizon must be at least 1")
        if start_capital <= 0:
            raise ConfigurationError("start_capital must be positive")
        if not 0 < ruin_fraction < 1:
            raise ConfigurationError("ruin_fraction must be between 0 and 1")
        self.variates = variates if variates is not None else RandomVariates()
        self.trial_count = trial_count
        self.trade_horizon = trade_horizon
        self.start_capital = start_capital
        self.ruin_threshold = start_capital * ruin_fraction

    def trial_win_rate(self, edge: EdgeConfig) -> float:
        lo, hi = RUIN_WIN_RATE_BOUNDS
        return self.variates.bounded_normal(edge.win_rate, RUIN_WIN_RATE_STD, lo, hi)

    def _is_ruined(self, edge: EdgeConfig) -> bool:
        variates = self.variates
        win_rate = self.trial_win_rate(edge)
        risk_fraction = edge.risk_per_trade_pct / 100.0
        equity = self.start_capital

        for _ in range(self.trade_horizon):
            risk = equity * risk_fraction
            if variates.bernoulli(win_rate):
                equity += risk * edge.reward_to_risk
            else:
                equity -= risk
            if equity <= self.ruin_threshold:
                return True
        return False

    def estimate(self, win_rate: float, reward_to_risk: float, risk_per_trade_pct: float) -> float:
        """Percentage of trials that hit the ruin threshold.

        Raises:
            ConfigurationError: If the edge parameters are invalid.
        """
        edge = EdgeConfig(
            win_rate=win_rate,
            reward_to_risk=reward_to_risk,
            risk_per_trade_pct=risk_per_trade_pct,
        )
        start_time = time.perf_counter()
        ruined = sum(1 for _ in range(self.trial_count) if self._is_ruined(edge))
        risk_of_ruin = ruined / self.trial_count * 100.0

        elapsed = time.perf_counter() - start_time
        logger.info(
            "Risk of ruin completed in %.2fs (%d trials): %.2f%%",
            elapsed,
            self.trial_count,
            risk_of_ruin,
        )
        return risk_of_ruin
