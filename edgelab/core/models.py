"""Data models for Edgelab."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Iterator

import numpy as np
import pandas as pd

from edgelab.core.config import (
    CALENDAR_DAYS_PER_TRADING_DAY,
    MAX_CHALLENGE_STEPS,
    MAX_TRADES_PER_WEEK,
)
from edgelab.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from numpy.typing import NDArray


def _require_win_rate(value: float, name: str = "win_rate") -> None:
    if not 0 <= value <= 100:
        raise ConfigurationError(f"{name} must be between 0 and 100")


def _require_positive(value: float, name: str) -> None:
    if not value > 0:
        raise ConfigurationError(f"{name} must be positive")


def _require_risk_pct(value: float) -> None:
    if not 0 < value <= 100:
        raise ConfigurationError("risk_per_trade_pct must be greater than 0 and at most 100")


@dataclass(frozen=True)
class EdgeConfig:
    """Statistical edge of a strategy.

    Attributes:
        win_rate: Win probability as percentage (0-100).
        reward_to_risk: Multiple of the risked amount won on a winning trade.
        risk_per_trade_pct: Percentage of current equity risked per trade.
    """

    win_rate: float
    reward_to_risk: float
    risk_per_trade_pct: float

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        _require_win_rate(self.win_rate)
        _require_positive(self.reward_to_risk, "reward_to_risk")
        _require_risk_pct(self.risk_per_trade_pct)

    def to_dict(self) -> dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, float]) -> EdgeConfig:
        return cls(
            win_rate=data.get("win_rate", 50.0),
            reward_to_risk=data.get("reward_to_risk", 2.0),
            risk_per_trade_pct=data.get("risk_per_trade_pct", 1.0),
        )


@dataclass(frozen=True)
class EquityPath:
    """Equity after every step of one trial.

    ``equity[0]`` is the starting capital; ``equity[i]`` the equity after
    trade ``i``.
    """

    trial: int
    equity: NDArray[np.float64]

    def __len__(self) -> int:
        return len(self.equity)

    @property
    def starting_capital(self) -> float:
        return float(self.equity[0])

    @property
    def final_equity(self) -> float:
        return float(self.equity[-1])

    def points(self) -> Iterator[tuple[int, float]]:
        """Yield ``(step, equity)`` pairs in order."""
        for step, value in enumerate(self.equity):
            yield step, float(value)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"step": np.arange(len(self.equity)), "equity": self.equity})


@dataclass(frozen=True)
class TrialStats:
    """Summary statistics of one equity path.

    Attributes:
        final_balance: Equity after the last step.
        return_pct: Return on the starting capital, percent.
        max_drawdown_pct: Largest peak-to-trough decline relative to the
            running peak, percent.
        profit_factor: Gross profit / gross loss; gross profit when there
            was no loss.
        max_win_streak: Longest run of consecutive wins.
        max_loss_streak: Longest run of consecutive losses.
    """

    final_balance: float
    return_pct: float
    max_drawdown_pct: float
    profit_factor: float
    max_win_streak: int
    max_loss_streak: int

    def to_dict(self) -> dict[str, float | int]:
        return asdict(self)


@dataclass(frozen=True)
class PhaseRule:
    """Rules of one challenge stage, all as percent of account size.

    The daily limit is applied to start-of-day equity instead.
    """

    profit_target_pct: float
    max_total_drawdown_pct: float
    max_daily_drawdown_pct: float

    def __post_init__(self) -> None:
        if self.profit_target_pct < 0:
            raise ConfigurationError("profit_target_pct must not be negative")
        _require_positive(self.max_total_drawdown_pct, "max_total_drawdown_pct")
        _require_positive(self.max_daily_drawdown_pct, "max_daily_drawdown_pct")


def default_phases(step_count: int) -> tuple[PhaseRule, ...]:
    """Stock rule set: 10% target on phase 1, 5% on later phases."""
    if not 1 <= step_count <= MAX_CHALLENGE_STEPS:
        raise ConfigurationError(f"step_count must be between 1 and {MAX_CHALLENGE_STEPS}")
    first = PhaseRule(profit_target_pct=10.0, max_total_drawdown_pct=10.0, max_daily_drawdown_pct=5.0)
    later = PhaseRule(profit_target_pct=5.0, max_total_drawdown_pct=10.0, max_daily_drawdown_pct=5.0)
    return (first,) + (later,) * (step_count - 1)


@dataclass(frozen=True)
class ChallengeConfig:
    """Configuration of a staged prop-firm challenge.

    Attributes:
        account_size: Starting balance of every phase.
        phases: Ordered phase rules, one per step (1-3).
        win_rate: Win probability as percentage (0-100).
        reward_to_risk: Reward multiple on a win.
        risk_per_trade_pct: Percent of current equity risked per trade.
        trades_per_week: Average number of trades over 5 trading days.
        is_trailing_drawdown: Whether the total-drawdown floor trails the
            high-water mark.
        time_limit_days: Optional trading-day limit per phase.
    """

    account_size: float = 100000.0
    phases: tuple[PhaseRule, ...] = field(default_factory=lambda: default_phases(1))
    win_rate: float = 45.0
    reward_to_risk: float = 2.0
    risk_per_trade_pct: float = 1.0
    trades_per_week: float = 15.0
    is_trailing_drawdown: bool = False
    time_limit_days: int | None = None

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        object.__setattr__(self, "phases", tuple(self.phases))
        _require_positive(self.account_size, "account_size")
        if not 1 <= len(self.phases) <= MAX_CHALLENGE_STEPS:
            raise ConfigurationError(f"step_count must be between 1 and {MAX_CHALLENGE_STEPS}")
        _require_win_rate(self.win_rate)
        _require_positive(self.reward_to_risk, "reward_to_risk")
        _require_risk_pct(self.risk_per_trade_pct)
        if not 0 <= self.trades_per_week <= MAX_TRADES_PER_WEEK:
            raise ConfigurationError(f"trades_per_week must be between 0 and {MAX_TRADES_PER_WEEK}")
        if self.time_limit_days is not None and self.time_limit_days < 1:
            raise ConfigurationError("time_limit_days must be at least 1")

    @property
    def step_count(self) -> int:
        return len(self.phases)

    def with_steps(self, step_count: int) -> ChallengeConfig:
        """Resize the phase list, keeping existing phases and padding with defaults."""
        padding = default_phases(step_count)[1:]
        phases = (self.phases + padding)[:step_count]
        return replace(self, phases=phases)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["phases"] = [asdict(p) for p in self.phases]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> ChallengeConfig:
        phases = tuple(PhaseRule(**p) for p in data.get("phases", [])) or default_phases(1)
        return cls(
            account_size=data.get("account_size", 100000.0),
            phases=phases,
            win_rate=data.get("win_rate", 45.0),
            reward_to_risk=data.get("reward_to_risk", 2.0),
            risk_per_trade_pct=data.get("risk_per_trade_pct", 1.0),
            trades_per_week=data.get("trades_per_week", 15.0),
            is_trailing_drawdown=data.get("is_trailing_drawdown", False),
            time_limit_days=data.get("time_limit_days"),
        )


class ChallengeOutcome(str, Enum):
    """Terminal outcome of one challenge trial."""

    PASS = "pass"
    FAIL_MAX_DRAWDOWN = "fail_max_drawdown"
    FAIL_DAILY_DRAWDOWN = "fail_daily_drawdown"
    FAIL_TIME = "fail_time"


@dataclass(frozen=True)
class ChallengeTrialResult:
    """Outcome of one challenge trial and the days it took."""

    outcome: ChallengeOutcome
    trading_days: int

    @property
    def calendar_days(self) -> float:
        return self.trading_days * CALENDAR_DAYS_PER_TRADING_DAY


@dataclass(frozen=True)
class AggregateResult:
    """Outcome counts across challenge trials.

    Attributes:
        trial_count: Number of trials run.
        counts: Trials per outcome; every outcome is present, possibly 0.
        mean_trading_days_to_pass: Mean trading days over passing trials only.
    """

    trial_count: int
    counts: dict[ChallengeOutcome, int]
    mean_trading_days_to_pass: float

    @property
    def passed(self) -> int:
        return self.counts[ChallengeOutcome.PASS]

    @property
    def pass_rate(self) -> float:
        """Passing trials as percent of all trials."""
        if self.trial_count == 0:
            return 0.0
        return self.passed / self.trial_count * 100.0

    @property
    def mean_calendar_days_to_pass(self) -> float:
        return self.mean_trading_days_to_pass * CALENDAR_DAYS_PER_TRADING_DAY

    def outcome_rates(self) -> dict[ChallengeOutcome, float]:
        """Percent of trials per outcome."""
        if self.trial_count == 0:
            return {outcome: 0.0 for outcome in ChallengeOutcome}
        return {
            outcome: count / self.trial_count * 100.0 for outcome, count in self.counts.items()
        }


@dataclass(frozen=True)
class ParsedTrade:
    """One row of a normalized trade log.

    Attributes:
        index: 0-based position; 0 is the starting point with zero P&L.
        pnl: Realized profit or loss of the trade.
        equity: Running equity after the trade.
        timestamp: Close time, when the report provides one.
    """

    index: int
    pnl: float
    equity: float
    timestamp: datetime | None = None


@dataclass(frozen=True)
class ReplayStats:
    """Statistics of a replayed trade log.

    Attributes:
        total_trades: Number of trades, excluding the starting point.
        win_rate: Percent of trades with positive P&L.
        avg_rr: Average win / average loss; 0 without losses.
        max_drawdown_pct: Largest decline from the running peak, percent.
        net_profit: Final equity minus starting balance.
        trades_per_week: Trade frequency over the timestamped span; 0 when
            fewer than two timestamps are known.
        trial: The same summary the simulator produces for its paths.
    """

    total_trades: int
    win_rate: float
    avg_rr: float
    max_drawdown_pct: float
    net_profit: float
    trades_per_week: float
    trial: TrialStats


@dataclass(frozen=True)
class FeePreset:
    """Cost profile of a tradable instrument."""

    label: str
    asset_type: str
    point_value: float
    commission_per_unit: float
    spread: float


@dataclass(frozen=True)
class FeeConfig:
    """Inputs of the fee-erosion projection.

    Attributes:
        win_rate: Win probability as percentage (0-100).
        reward_risk: Reward multiple on a win.
        risk_per_trade: Dollar amount risked per trade.
        trades: Number of trades to project.
        commission_per_unit: Round-turn commission per lot/contract.
        spread: Spread in pips/points.
        point_value: Dollar value of a 1.0 move per lot.
        lot_size: Lots or contracts per trade.
        asset_type: Informational asset class tag.
    """

    win_rate: float = 50.0
    reward_risk: float = 2.0
    risk_per_trade: float = 200.0
    trades: int = 100
    commission_per_unit: float = 7.0
    spread: float = 1.0
    point_value: float = 10.0
    lot_size: float = 1.0
    asset_type: str = "FOREX"

    def __post_init__(self) -> None:
        _require_win_rate(self.win_rate)
        _require_positive(self.reward_risk, "reward_risk")
        _require_positive(self.risk_per_trade, "risk_per_trade")
        if self.trades < 1:
            raise ConfigurationError("trades must be at least 1")
        for name in ("commission_per_unit", "spread", "point_value", "lot_size"):
            value = getattr(self, name)
            if value < 0 or math.isnan(value):
                raise ConfigurationError(f"{name} must not be negative")

    def with_preset(self, preset: FeePreset) -> FeeConfig:
        """Copy with the instrument costs of ``preset``."""
        return replace(
            self,
            asset_type=preset.asset_type,
            point_value=preset.point_value,
            commission_per_unit=preset.commission_per_unit,
            spread=preset.spread,
        )

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> FeeConfig:
        defaults = cls()
        return cls(**{k: data.get(k, getattr(defaults, k)) for k in asdict(defaults)})


@dataclass(frozen=True)
class FeeProjection:
    """Deterministic cumulative projection of gross and net expectancy.

    Attributes:
        cost_per_trade: Commission plus spread cost of one trade.
        ev_gross: Expected value per trade before costs.
        ev_net: Expected value per trade after costs.
        data: DataFrame with columns trade, gross, net, fees for trades 0..n.
    """

    cost_per_trade: float
    ev_gross: float
    ev_net: float
    data: pd.DataFrame

    @property
    def total_fees(self) -> float:
        return float(self.data["fees"].iloc[-1])
