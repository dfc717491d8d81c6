"""Prop-firm challenge simulation.

A trial is a small state machine::

    IN_PHASE(0) -> IN_PHASE(1) -> ... -> PASSED
         |              |
         +--------------+--> FAILED_DAILY_DD | FAILED_MAX_DD | FAILED_TIME

Each phase restarts from the account size. A trading day draws a
Poisson-distributed number of trades; after every trade the breach checks in
``ChallengeSimulator.CHECK_ORDER`` run in order, and the first one that fires
decides the trade.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from edgelab.core.config import (
    CHALLENGE_WIN_RATE_BOUNDS,
    CHALLENGE_WIN_RATE_STD,
    DEFAULT_CHALLENGE_TRIALS,
    MAX_CHALLENGE_DAYS,
    TRADING_DAYS_PER_WEEK,
)
from edgelab.core.exceptions import ConfigurationError
from edgelab.core.models import (
    AggregateResult,
    ChallengeConfig,
    ChallengeOutcome,
    ChallengeTrialResult,
    PhaseRule,
)
from edgelab.core.random_source import RandomVariates

logger = logging.getLogger(__name__)


class ChallengeState(str, Enum):
    """States of one challenge trial."""

    IN_PHASE = "in_phase"
    PASSED = "passed"
    FAILED_MAX_DD = "failed_max_dd"
    FAILED_DAILY_DD = "failed_daily_dd"
    FAILED_TIME = "failed_time"


TERMINAL_OUTCOMES: dict[ChallengeState, ChallengeOutcome] = {
    ChallengeState.PASSED: ChallengeOutcome.PASS,
    ChallengeState.FAILED_MAX_DD: ChallengeOutcome.FAIL_MAX_DRAWDOWN,
    ChallengeState.FAILED_DAILY_DD: ChallengeOutcome.FAIL_DAILY_DRAWDOWN,
    ChallengeState.FAILED_TIME: ChallengeOutcome.FAIL_TIME,
}


@dataclass
class _PhaseLimits:
    """Dollar limits of one phase, derived from the account size."""

    profit_target: float
    max_total_loss: float
    static_floor: float
    daily_pct: float

    @classmethod
    def from_rule(cls, rule: PhaseRule, account_size: float) -> _PhaseLimits:
        max_total_loss = account_size * rule.max_total_drawdown_pct / 100.0
        return cls(
            profit_target=account_size * rule.profit_target_pct / 100.0,
            max_total_loss=max_total_loss,
            static_floor=account_size - max_total_loss,
            daily_pct=rule.max_daily_drawdown_pct,
        )


@dataclass
class _Trial:
    """Mutable state of one trial while it runs."""

    state: ChallengeState
    phase: int
    equity: float
    high_water_mark: float
    start_of_day_equity: float
    daily_floor: float
    total_days: int = 0
    phase_days: int = 0


class ChallengeSimulator:
    """Monte Carlo estimate of a challenge's pass probability.

    Example:
        >>> simulator = ChallengeSimulator(RandomVariates.seeded(1))
        >>> result = simulator.run(ChallengeConfig(), trial_count=200)
        >>> 0 <= result.pass_rate <= 100
        True
    """

    # Checked after every trade; the first breach wins.
    CHECK_ORDER: tuple[ChallengeState, ...] = (
        ChallengeState.FAILED_DAILY_DD,
        ChallengeState.FAILED_MAX_DD,
        ChallengeState.PASSED,
    )

    def __init__(
        self,
        variates: RandomVariates | None = None,
        max_days: int = MAX_CHALLENGE_DAYS,
    ) -> None:
        """Initialize the simulator.

        Args:
            variates: Random variates to draw from.
            max_days: Global trading-day cap per trial; exceeding it is FAIL_TIME.
        """
        if max_days < 1:
            raise ConfigurationError("max_days must be at least 1")
        self.variates = variates if variates is not None else RandomVariates()
        self.max_days = max_days

    def _enter_phase(self, trial: _Trial, config: ChallengeConfig, phase: int) -> None:
        trial.phase = phase
        trial.phase_days = 0
        trial.equity = config.account_size
        trial.high_water_mark = config.account_size

    def _breached(
        self,
        check: ChallengeState,
        trial: _Trial,
        config: ChallengeConfig,
        limits: _PhaseLimits,
    ) -> bool:
        if check is ChallengeState.FAILED_DAILY_DD:
            return trial.equity <= trial.daily_floor
        if check is ChallengeState.FAILED_MAX_DD:
            floor = limits.static_floor
            if config.is_trailing_drawdown:
                floor = trial.high_water_mark - limits.max_total_loss
            return trial.equity <= floor
        return trial.equity >= config.account_size + limits.profit_target

    def _advance_phase(self, trial: _Trial, config: ChallengeConfig) -> None:
        """Move to the next phase, or to PASSED after the last one."""
        if trial.phase + 1 >= config.step_count:
            trial.state = ChallengeState.PASSED
        else:
            self._enter_phase(trial, config, trial.phase + 1)

    def _trade(self, trial: _Trial, config: ChallengeConfig, win_rate: float) -> None:
        risk = trial.equity * config.risk_per_trade_pct / 100.0
        if self.variates.bernoulli(win_rate):
            trial.equity += risk * config.reward_to_risk
            if trial.equity > trial.high_water_mark:
                trial.high_water_mark = trial.equity
        else:
            trial.equity -= risk

    def _run_day(
        self,
        trial: _Trial,
        config: ChallengeConfig,
        limits: _PhaseLimits,
        win_rate: float,
    ) -> None:
        """Simulate one trading day of the current phase."""
        trial.total_days += 1
        trial.phase_days += 1
        trial.start_of_day_equity = trial.equity
        trial.daily_floor = trial.equity - trial.equity * limits.daily_pct / 100.0

        trades_today = self.variates.poissonish(config.trades_per_week / TRADING_DAYS_PER_WEEK)
        for _ in range(trades_today):
            self._trade(trial, config, win_rate)
            for check in self.CHECK_ORDER:
                if self._breached(check, trial, config, limits):
                    if check is ChallengeState.PASSED:
                        self._advance_phase(trial, config)
                    else:
                        trial.state = check
                    return

    def trial_win_rate(self, config: ChallengeConfig) -> float:
        """Win rate of one trial, always clamped into the challenge bounds."""
        lo, hi = CHALLENGE_WIN_RATE_BOUNDS
        return self.variates.bounded_normal(config.win_rate, CHALLENGE_WIN_RATE_STD, lo, hi)

    def simulate_trial(self, config: ChallengeConfig) -> ChallengeTrialResult:
        """Run one trial to a terminal state."""
        win_rate = self.trial_win_rate(config)
        trial = _Trial(
            state=ChallengeState.IN_PHASE,
            phase=0,
            equity=config.account_size,
            high_water_mark=config.account_size,
            start_of_day_equity=config.account_size,
            daily_floor=config.account_size,
        )
        self._enter_phase(trial, config, 0)

        while trial.state is ChallengeState.IN_PHASE:
            phase = trial.phase
            limits = _PhaseLimits.from_rule(config.phases[phase], config.account_size)

            # A zero target is met on entry, before any trade is taken
            if limits.profit_target <= 0:
                self._advance_phase(trial, config)
                continue

            if trial.total_days >= self.max_days:
                trial.state = ChallengeState.FAILED_TIME
                break
            if config.time_limit_days is not None and trial.phase_days >= config.time_limit_days:
                trial.state = ChallengeState.FAILED_TIME
                break

            self._run_day(trial, config, limits, win_rate)

        return ChallengeTrialResult(
            outcome=TERMINAL_OUTCOMES[trial.state],
            trading_days=trial.total_days,
        )

    def run(
        self,
        config: ChallengeConfig,
        trial_count: int = DEFAULT_CHALLENGE_TRIALS,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> AggregateResult:
        """Run independent trials and aggregate their outcomes.

        Args:
            config: Challenge rules and trading edge.
            trial_count: Number of trials.
            progress_callback: Optional callback for progress updates (completed, total).

        Returns:
            AggregateResult with outcome counts and mean days to pass.

        Raises:
            ConfigurationError: If ``trial_count`` is not positive.
        """
        if trial_count < 1:
            raise ConfigurationError("trial_count must be at least 1")

        start_time = time.perf_counter()
        counts = {outcome: 0 for outcome in ChallengeOutcome}
        days_to_pass = 0

        for i in range(trial_count):
            result = self.simulate_trial(config)
            counts[result.outcome] += 1
            if result.outcome is ChallengeOutcome.PASS:
                days_to_pass += result.trading_days

            if progress_callback and (i + 1) % 100 == 0:
                progress_callback(i + 1, trial_count)

        if progress_callback:
            progress_callback(trial_count, trial_count)

        passed = counts[ChallengeOutcome.PASS]
        aggregate = AggregateResult(
            trial_count=trial_count,
            counts=counts,
            mean_trading_days_to_pass=days_to_pass / passed if passed > 0 else 0.0,
        )

        elapsed = time.perf_counter() - start_time
        logger.info(
            "Challenge simulation completed in %.2fs (%d trials, pass rate %.1f%%)",
            elapsed,
            trial_count,
            aggregate.pass_rate,
        )
        logger.debug("Challenge outcome counts: %s", {k.value: v for k, v in counts.items()})
        return aggregate
