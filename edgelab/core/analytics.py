"""Closed-form risk and cost analytics.

All functions here are deterministic; none of them touch a random source.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Sequence

import numpy as np
import pandas as pd

from edgelab.core.config import (
    DEFAULT_RECOVERY_LEVELS,
    DEFAULT_STREAK_LENGTHS,
    STREAK_PROBABILITY_CAP,
)
from edgelab.core.exceptions import ConfigurationError
from edgelab.core.models import FeeConfig, FeePreset, FeeProjection

logger = logging.getLogger(__name__)


ASSET_PRESETS: dict[str, FeePreset] = {
    "EURUSD": FeePreset("EUR/USD (Forex)", "FOREX", point_value=10.0, commission_per_unit=3.5, spread=0.8),
    "ES": FeePreset("E-Mini S&P 500 (Futures)", "FUTURES", point_value=50.0, commission_per_unit=2.25, spread=0.25),
    "NQ": FeePreset("E-Mini Nasdaq (Futures)", "FUTURES", point_value=20.0, commission_per_unit=2.25, spread=0.5),
    "US500": FeePreset("US 500 (CFD/Indices)", "INDICES_CFD", point_value=1.0, commission_per_unit=0.0, spread=0.4),
    "GOLD": FeePreset("Gold (XAUUSD)", "FOREX", point_value=100.0, commission_per_unit=3.5, spread=0.15),
    "BTCUSD": FeePreset("Bitcoin (CFD)", "CRYPTO", point_value=1.0, commission_per_unit=0.0, spread=15.0),
}


def streak_probability(win_rate: float, trade_count: int, streak_length: int) -> float:
    """Chance of at least one losing streak of ``streak_length`` in ``trade_count`` trades.

    Uses ``1 - (1 - loss_rate**L)**n``, which treats every trade as an
    independent streak start. This overstates the exact combinatorial
    probability and is kept as-is; the result is capped at 99.99%.

    Args:
        win_rate: Win probability as percentage (0-100).
        trade_count: Number of trades in the sample.
        streak_length: Losing-streak length L (>= 1).

    Returns:
        Probability in percent.
    """
    if not 0 <= win_rate <= 100:
        raise ConfigurationError("win_rate must be between 0 and 100")
    if trade_count < 0:
        raise ConfigurationError("trade_count must not be negative")
    if streak_length < 1:
        raise ConfigurationError("streak_length must be at least 1")

    loss_rate = 1.0 - win_rate / 100.0
    p_streak = loss_rate**streak_length
    chance = 1.0 - (1.0 - p_streak) ** trade_count
    return min(chance * 100.0, STREAK_PROBABILITY_CAP)


def streak_table(
    win_rate: float,
    trade_count: int,
    lengths: Sequence[int] = DEFAULT_STREAK_LENGTHS,
) -> pd.DataFrame:
    """Streak probability for several streak lengths.

    Returns:
        DataFrame with columns: length, probability
    """
    return pd.DataFrame(
        {
            "length": list(lengths),
            "probability": [streak_probability(win_rate, trade_count, n) for n in lengths],
        }
    )


def recovery_pct(drawdown_pct: float) -> float:
    """Gain in percent needed to get back to the peak after ``drawdown_pct``.

    Returns ``math.inf`` for a drawdown of 100% or more.
    """
    if drawdown_pct < 0:
        raise ConfigurationError("drawdown_pct must not be negative")
    if drawdown_pct >= 100:
        return math.inf
    return (100.0 / (100.0 - drawdown_pct) - 1.0) * 100.0


def recovery_table(levels: Sequence[float] = DEFAULT_RECOVERY_LEVELS) -> pd.DataFrame:
    """Required recovery gain for each drawdown level.

    Returns:
        DataFrame with columns: loss, gain
    """
    return pd.DataFrame({"loss": list(levels), "gain": [recovery_pct(d) for d in levels]})


def fee_projection(config: FeeConfig) -> FeeProjection:
    """Project cumulative gross and net expectancy over ``config.trades`` trades.

    The per-trade cost is paid on both winning and losing trades.
    """
    cost = (
        config.commission_per_unit * config.lot_size
        + config.spread * config.point_value * config.lot_size
    )
    p_win = config.win_rate / 100.0
    win_amount = config.risk_per_trade * config.reward_risk
    loss_amount = config.risk_per_trade

    ev_gross = p_win * win_amount - (1.0 - p_win) * loss_amount
    ev_net = p_win * (win_amount - cost) - (1.0 - p_win) * (loss_amount + cost)

    trades = np.arange(config.trades + 1)
    data = pd.DataFrame(
        {
            "trade": trades,
            "gross": trades * ev_gross,
            "net": trades * ev_net,
            "fees": trades * (ev_gross - ev_net),
        }
    )
    logger.debug(
        "Fee projection: cost/trade=%.2f, ev_gross=%.2f, ev_net=%.2f",
        cost,
        ev_gross,
        ev_net,
    )
    return FeeProjection(cost_per_trade=cost, ev_gross=ev_gross, ev_net=ev_net, data=data)


class ExpectancyGrade(str, Enum):
    """Qualitative band of an edge's expectancy in R multiples."""

    NEGATIVE = "negative"
    THIN = "thin"
    INSTITUTIONAL = "institutional"
    OUTLIER = "outlier"


# (marginal, solid) thresholds in R; net figures already have costs paid
_GROSS_THRESHOLDS = (0.2, 0.6)
_NET_THRESHOLDS = (0.12, 0.5)


def expectancy_r(win_rate: float, reward_to_risk: float) -> float:
    """Expected result per trade in units of risk."""
    p_win = win_rate / 100.0
    return p_win * reward_to_risk - (1.0 - p_win)


def classify_expectancy(win_rate: float, reward_to_risk: float, net: bool = False) -> ExpectancyGrade:
    """Grade an edge by its expectancy.

    Args:
        win_rate: Win probability as percentage (0-100).
        reward_to_risk: Reward multiple on a win.
        net: True when the inputs already include trading costs.
    """
    expectancy = expectancy_r(win_rate, reward_to_risk)
    marginal, solid = _NET_THRESHOLDS if net else _GROSS_THRESHOLDS
    if expectancy <= 0:
        return ExpectancyGrade.NEGATIVE
    if expectancy < marginal:
        return ExpectancyGrade.THIN
    if expectancy < solid:
        return ExpectancyGrade.INSTITUTIONAL
    return ExpectancyGrade.OUTLIER
