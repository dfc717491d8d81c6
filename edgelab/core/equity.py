"""Equity, drawdown and streak bookkeeping shared by simulation and replay.

``EquityTracker`` is the single place where running peak, drawdown percent,
gross profit/loss and streaks are accumulated. The market simulator feeds it
simulated trades; ``replay_trades`` feeds it the P&L of a parsed trade log,
so both paths produce identical statistics for identical sequences.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from edgelab.core.exceptions import ConfigurationError
from edgelab.core.models import EquityPath, ParsedTrade, ReplayStats, TrialStats

logger = logging.getLogger(__name__)

SECONDS_PER_WEEK = 7 * 24 * 60 * 60


class EquityTracker:
    """Accumulate trial statistics one trade at a time.

    Example:
        >>> tracker = EquityTracker(1000.0)
        >>> tracker.record(100.0, won=True)
        >>> tracker.record(-50.0, won=False)
        >>> round(tracker.max_drawdown_pct, 2)
        4.55
    """

    def __init__(self, starting_capital: float) -> None:
        self.starting_capital = starting_capital
        self.equity = starting_capital
        self.peak = starting_capital
        self.max_drawdown_pct = 0.0
        self.gross_profit = 0.0
        self.gross_loss = 0.0
        self.win_count = 0
        self.loss_count = 0
        self.max_win_streak = 0
        self.max_loss_streak = 0
        self._win_streak = 0
        self._loss_streak = 0

    def record(self, pnl: float, won: bool) -> None:
        """Apply one trade result.

        Args:
            pnl: Change in equity caused by the trade.
            won: Whether the trade counts as a win for streaks and gross totals.
        """
        self.equity += pnl
        if won:
            self.gross_profit += pnl
            self.win_count += 1
            self._win_streak += 1
            self._loss_streak = 0
            if self._win_streak > self.max_win_streak:
                self.max_win_streak = self._win_streak
        else:
            self.gross_loss -= pnl
            self.loss_count += 1
            self._loss_streak += 1
            self._win_streak = 0
            if self._loss_streak > self.max_loss_streak:
                self.max_loss_streak = self._loss_streak

        if self.equity > self.peak:
            self.peak = self.equity
        # A non-positive peak has no meaningful percentage drawdown
        if self.peak > 0:
            drawdown = (self.peak - self.equity) / self.peak * 100.0
            if drawdown > self.max_drawdown_pct:
                self.max_drawdown_pct = drawdown

    @property
    def trade_count(self) -> int:
        return self.win_count + self.loss_count

    @property
    def profit_factor(self) -> float:
        if self.gross_loss == 0:
            return self.gross_profit
        return self.gross_profit / self.gross_loss

    def stats(self) -> TrialStats:
        if self.starting_capital != 0:
            return_pct = (self.equity - self.starting_capital) / self.starting_capital * 100.0
        else:
            return_pct = 0.0
        return TrialStats(
            final_balance=self.equity,
            return_pct=return_pct,
            max_drawdown_pct=self.max_drawdown_pct,
            profit_factor=self.profit_factor,
            max_win_streak=self.max_win_streak,
            max_loss_streak=self.max_loss_streak,
        )


@dataclass(frozen=True)
class ReplayResult:
    """Replayed trade log: re-based trades, their equity path and statistics."""

    trades: list[ParsedTrade]
    path: EquityPath
    stats: ReplayStats


def rebase_trades(trades: Sequence[ParsedTrade], starting_balance: float) -> list[ParsedTrade]:
    """Recompute running equity from a new starting balance.

    Only ``pnl`` and ``timestamp`` of the input are used, so re-basing an
    already re-based list gives the same result.
    """
    rebased: list[ParsedTrade] = []
    running = starting_balance
    for i, trade in enumerate(trades):
        if i == 0:
            rebased.append(ParsedTrade(index=0, pnl=0.0, equity=starting_balance, timestamp=trade.timestamp))
            continue
        running += trade.pnl
        rebased.append(ParsedTrade(index=i, pnl=trade.pnl, equity=running, timestamp=trade.timestamp))
    return rebased


def trades_per_week(trades: Sequence[ParsedTrade]) -> float:
    """Trade frequency over the timestamped span of a log.

    The span is floored at one day. Returns 0 when fewer than two trades
    carry a timestamp.
    """
    timestamps = [t.timestamp for t in trades[1:] if t.timestamp is not None]
    if len(timestamps) < 2:
        return 0.0
    duration = (max(timestamps) - min(timestamps)).total_seconds()
    weeks = max(duration / SECONDS_PER_WEEK, 1 / 7)
    return (len(trades) - 1) / weeks


def replay_trades(trades: Sequence[ParsedTrade], starting_balance: float) -> ReplayResult:
    """Recompute equity and statistics of a parsed trade log.

    Args:
        trades: Normalized trades, element 0 being the starting point.
        starting_balance: Balance the equity curve starts from.

    Returns:
        ReplayResult with the re-based trades, equity path and statistics.

    Raises:
        ConfigurationError: If ``trades`` is empty.
    """
    if not trades:
        raise ConfigurationError("Trade log is empty")

    rebased = rebase_trades(trades, starting_balance)
    tracker = EquityTracker(starting_balance)
    total_win = 0.0
    total_loss = 0.0
    for trade in rebased[1:]:
        won = trade.pnl > 0
        tracker.record(trade.pnl, won=won)
        if won:
            total_win += trade.pnl
        else:
            total_loss += abs(trade.pnl)

    wins = tracker.win_count
    losses = tracker.loss_count
    total = tracker.trade_count
    avg_win = total_win / wins if wins > 0 else 0.0
    avg_loss = total_loss / losses if losses > 0 else 0.0

    stats = ReplayStats(
        total_trades=total,
        win_rate=wins / total * 100.0 if total > 0 else 0.0,
        avg_rr=avg_win / avg_loss if avg_loss > 0 else 0.0,
        max_drawdown_pct=tracker.max_drawdown_pct,
        net_profit=rebased[-1].equity - starting_balance,
        trades_per_week=trades_per_week(rebased),
        trial=tracker.stats(),
    )
    path = EquityPath(trial=0, equity=np.array([t.equity for t in rebased], dtype=np.float64))

    logger.debug(
        "Replayed %d trades: net=%.2f, win_rate=%.1f%%, max_dd=%.2f%%",
        total,
        stats.net_profit,
        stats.win_rate,
        stats.max_drawdown_pct,
    )
    return ReplayResult(trades=rebased, path=path, stats=stats)
