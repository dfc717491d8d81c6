"""Edgelab MCP Server.

Provides tools for projecting equity paths under a trading edge, estimating
prop-firm challenge pass rates and risk of ruin, closed-form risk analytics,
and replaying uploaded trade logs.
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import BaseModel, ConfigDict, Field

from edgelab.__version__ import __version__
from edgelab.core.analytics import (
    ASSET_PRESETS,
    classify_expectancy,
    expectancy_r,
    fee_projection,
    recovery_table,
    streak_table,
)
from edgelab.core.challenge import ChallengeSimulator
from edgelab.core.config import (
    DEFAULT_CHALLENGE_TRIALS,
    DEFAULT_RECOVERY_LEVELS,
    DEFAULT_STREAK_LENGTHS,
    MAX_TRADES_PER_WEEK,
    RUIN_TRIALS,
)
from edgelab.core.equity import replay_trades
from edgelab.core.exceptions import EdgeLabError
from edgelab.core.file_loader import TradeLogLoader
from edgelab.core.market_simulator import MarketSimulator
from edgelab.core.models import ChallengeConfig, EdgeConfig, FeeConfig, ParsedTrade, PhaseRule
from edgelab.core.random_source import RandomVariates
from edgelab.core.risk_of_ruin import RiskOfRuinEstimator
from edgelab.core.trade_log import TradeLogFormat

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# MCP Server
# ---------------------------------------------------------------------------

mcp = FastMCP("edgelab")

# ---------------------------------------------------------------------------
# Session State
# ---------------------------------------------------------------------------

MAX_CHART_PATHS = 10


class LoadedTradeLog:
    """In-memory trade log parsed from a report file."""

    def __init__(
        self,
        trades: list[ParsedTrade],
        file_path: str,
        fmt: TradeLogFormat,
        alias: str,
    ) -> None:
        self.trades = trades
        self.file_path = file_path
        self.fmt = fmt
        self.alias = alias

    @property
    def trade_count(self) -> int:
        return len(self.trades) - 1

    @property
    def date_range(self) -> str:
        stamps = [t.timestamp for t in self.trades if t.timestamp is not None]
        if stamps:
            return f"{min(stamps).date()} to {max(stamps).date()}"
        return "unknown"


# Global session state; persists for the MCP session lifetime
_trade_logs: dict[str, LoadedTradeLog] = {}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_trade_log(alias: str) -> LoadedTradeLog:
    """Retrieve a loaded trade log by alias, raising a clear error if not found."""
    if alias not in _trade_logs:
        available = ", ".join(_trade_logs.keys()) if _trade_logs else "(none)"
        raise ValueError(f"No trade log loaded with alias '{alias}'. Available: {available}")
    return _trade_logs[alias]


def _finite(value: float) -> float | None:
    """JSON-safe float: infinities become null."""
    return value if math.isfinite(value) else None


def _round(value: float, digits: int = 4) -> float | None:
    finite = _finite(value)
    return round(finite, digits) if finite is not None else None


# ---------------------------------------------------------------------------
# Pydantic Input Models
# ---------------------------------------------------------------------------


class EdgeInput(BaseModel):
    """Shared edge parameters."""

    model_config = ConfigDict(str_strip_whitespace=True)

    win_rate: float = Field(default=50.0, ge=0, le=100, description="Win rate in percent (0-100).")
    reward_to_risk: float = Field(default=2.0, gt=0, description="Reward multiple of the risked amount.")
    risk_per_trade_pct: float = Field(
        default=1.0, gt=0, le=100, description="Percent of current equity risked per trade."
    )
    seed: Optional[int] = Field(default=None, description="Seed for a reproducible run.")


class SimulateEquityInput(EdgeInput):
    """Input for equity path simulation."""

    starting_capital: float = Field(default=100000.0, gt=0, description="Equity at trade 0.")
    trade_count: int = Field(default=100, ge=1, le=10000, description="Trades per simulated path.")
    trial_count: int = Field(default=10, ge=1, le=10000, description="Number of simulated paths.")
    include_paths: int = Field(
        default=0,
        ge=0,
        le=MAX_CHART_PATHS,
        description="Number of raw equity paths to include in the output.",
    )


class PhaseInput(BaseModel):
    """Rules of one challenge phase."""

    profit_target_pct: float = Field(default=10.0, ge=0, description="Profit target, percent of account.")
    max_total_drawdown_pct: float = Field(default=10.0, gt=0, description="Total drawdown limit, percent.")
    max_daily_drawdown_pct: float = Field(default=5.0, gt=0, description="Daily drawdown limit, percent.")


class SimulateChallengeInput(EdgeInput):
    """Input for prop-firm challenge simulation."""

    win_rate: float = Field(default=45.0, ge=0, le=100, description="Win rate in percent (0-100).")
    account_size: float = Field(default=100000.0, gt=0, description="Account size of every phase.")
    phases: list[PhaseInput] = Field(
        default_factory=lambda: [PhaseInput()],
        min_length=1,
        max_length=3,
        description="Ordered phase rules (1-3 steps).",
    )
    trades_per_week: float = Field(
        default=15.0, ge=0, le=MAX_TRADES_PER_WEEK, description="Average trades per 5-day week."
    )
    is_trailing_drawdown: bool = Field(default=False, description="Trail the total drawdown floor.")
    time_limit_days: Optional[int] = Field(
        default=None, ge=1, description="Optional trading-day limit per phase."
    )
    trial_count: int = Field(default=DEFAULT_CHALLENGE_TRIALS, ge=1, le=20000)


class RiskOfRuinInput(EdgeInput):
    """Input for the risk-of-ruin estimate."""

    trial_count: int = Field(default=RUIN_TRIALS, ge=1, le=20000)


class StreakProbabilityInput(BaseModel):
    """Input for losing-streak probabilities."""

    win_rate: float = Field(default=50.0, ge=0, le=100)
    trade_count: int = Field(default=100, ge=0)
    lengths: list[int] = Field(default_factory=lambda: list(DEFAULT_STREAK_LENGTHS))


class RecoveryInput(BaseModel):
    """Input for drawdown recovery requirements."""

    levels: list[float] = Field(default_factory=lambda: list(DEFAULT_RECOVERY_LEVELS))


class FeeProjectionInput(BaseModel):
    """Input for the fee-erosion projection."""

    model_config = ConfigDict(str_strip_whitespace=True)

    preset: Optional[str] = Field(
        default=None,
        description=f"Instrument preset: {', '.join(ASSET_PRESETS)}. Overrides cost fields.",
    )
    win_rate: float = Field(default=50.0, ge=0, le=100)
    reward_risk: float = Field(default=2.0, gt=0)
    risk_per_trade: float = Field(default=200.0, gt=0, description="Dollar risk per trade.")
    trades: int = Field(default=100, ge=1, le=100000)
    commission_per_unit: float = Field(default=7.0, ge=0, description="Round-turn commission per lot.")
    spread: float = Field(default=1.0, ge=0, description="Spread in pips/points.")
    point_value: float = Field(default=10.0, ge=0, description="Dollar value per 1.0 move per lot.")
    lot_size: float = Field(default=1.0, ge=0)


class LoadTradeLogInput(BaseModel):
    """Input for loading a broker trade log."""

    model_config = ConfigDict(str_strip_whitespace=True)

    file_path: str = Field(..., description="Absolute path to the exported report.")
    fmt: TradeLogFormat = Field(
        default=TradeLogFormat.GENERIC_CSV,
        description="Report format: generic_csv, mt4_mt5 or ctrader.",
    )
    alias: Optional[str] = Field(
        default=None,
        description="Short alias to reference this log later. Defaults to filename stem.",
    )


class ReplayStatsInput(BaseModel):
    """Input for replaying a loaded trade log."""

    model_config = ConfigDict(str_strip_whitespace=True)

    alias: str = Field(..., description="Alias of the loaded trade log.")
    starting_balance: float = Field(default=10000.0, description="Balance the equity curve starts from.")


# ---------------------------------------------------------------------------
# Tool Implementations
# ---------------------------------------------------------------------------


@mcp.tool(
    name="edgelab_simulate_equity",
    annotations={
        "title": "Simulate Equity Paths",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": False,
    },
)
async def edgelab_simulate_equity(params: SimulateEquityInput) -> str:
    """Simulate equity paths under a fixed edge.

    Returns:
        str: JSON with the aggregated summary (mean balances/drawdown/profit
        factor, max streaks), percentile bands of final equity and, if
        requested, raw paths.
    """
    try:
        edge = EdgeConfig(params.win_rate, params.reward_to_risk, params.risk_per_trade_pct)
        simulator = MarketSimulator(RandomVariates.seeded(params.seed))
        result = simulator.run(edge, params.starting_capital, params.trade_count, params.trial_count)
    except EdgeLabError as e:
        return f"Error: {e}"

    bands = result.equity_percentiles()[-1]
    output: dict[str, Any] = {
        "trials": result.trial_count,
        "trades": result.trade_count,
        "summary": result.summary().to_dict(),
        "final_equity_percentiles": {
            "p5": round(float(bands[0]), 2),
            "p25": round(float(bands[1]), 2),
            "p50": round(float(bands[2]), 2),
            "p75": round(float(bands[3]), 2),
            "p95": round(float(bands[4]), 2),
        },
        "expectancy_r": round(expectancy_r(params.win_rate, params.reward_to_risk), 4),
        "expectancy_grade": classify_expectancy(params.win_rate, params.reward_to_risk).value,
    }
    if params.include_paths:
        output["paths"] = [
            [round(v, 2) for _, v in path.points()] for path in result.paths(params.include_paths)
        ]
    return json.dumps(output, indent=2)


@mcp.tool(
    name="edgelab_simulate_challenge",
    annotations={
        "title": "Simulate Prop-Firm Challenge",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": False,
    },
)
async def edgelab_simulate_challenge(params: SimulateChallengeInput) -> str:
    """Estimate pass probability and time-to-pass of a staged challenge.

    Returns:
        str: JSON with outcome counts and rates, pass rate and mean
        trading/calendar days to pass.
    """
    try:
        config = ChallengeConfig(
            account_size=params.account_size,
            phases=tuple(PhaseRule(**p.model_dump()) for p in params.phases),
            win_rate=params.win_rate,
            reward_to_risk=params.reward_to_risk,
            risk_per_trade_pct=params.risk_per_trade_pct,
            trades_per_week=params.trades_per_week,
            is_trailing_drawdown=params.is_trailing_drawdown,
            time_limit_days=params.time_limit_days,
        )
        simulator = ChallengeSimulator(RandomVariates.seeded(params.seed))
        result = simulator.run(config, trial_count=params.trial_count)
    except EdgeLabError as e:
        return f"Error: {e}"

    return json.dumps(
        {
            "trials": result.trial_count,
            "steps": config.step_count,
            "counts": {k.value: v for k, v in result.counts.items()},
            "rates_pct": {k.value: round(v, 2) for k, v in result.outcome_rates().items()},
            "pass_rate_pct": round(result.pass_rate, 2),
            "mean_trading_days_to_pass": round(result.mean_trading_days_to_pass, 2),
            "mean_calendar_days_to_pass": round(result.mean_calendar_days_to_pass, 2),
        },
        indent=2,
    )


@mcp.tool(
    name="edgelab_risk_of_ruin",
    annotations={
        "title": "Risk of Ruin",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": False,
    },
)
async def edgelab_risk_of_ruin(params: RiskOfRuinInput) -> str:
    """Estimate the chance of losing 90% of the account within 1000 trades.

    Returns:
        str: JSON with the ruin probability in percent.
    """
    try:
        estimator = RiskOfRuinEstimator(
            RandomVariates.seeded(params.seed), trial_count=params.trial_count
        )
        ruin = estimator.estimate(params.win_rate, params.reward_to_risk, params.risk_per_trade_pct)
    except EdgeLabError as e:
        return f"Error: {e}"

    return json.dumps(
        {
            "win_rate": params.win_rate,
            "reward_to_risk": params.reward_to_risk,
            "risk_per_trade_pct": params.risk_per_trade_pct,
            "trials": params.trial_count,
            "risk_of_ruin_pct": round(ruin, 2),
        },
        indent=2,
    )


@mcp.tool(
    name="edgelab_streak_probability",
    annotations={
        "title": "Losing Streak Probability",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
async def edgelab_streak_probability(params: StreakProbabilityInput) -> str:
    """Probability of at least one losing streak of each length.

    Returns:
        str: JSON mapping streak length to probability in percent.
    """
    try:
        table = streak_table(params.win_rate, params.trade_count, params.lengths)
    except EdgeLabError as e:
        return f"Error: {e}"

    return json.dumps(
        {
            "win_rate": params.win_rate,
            "trade_count": params.trade_count,
            "probabilities": {
                str(int(row.length)): round(float(row.probability), 4)
                for row in table.itertuples(index=False)
            },
        },
        indent=2,
    )


@mcp.tool(
    name="edgelab_recovery",
    annotations={
        "title": "Drawdown Recovery",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
async def edgelab_recovery(params: RecoveryInput) -> str:
    """Gain required to recover from each drawdown level.

    Returns:
        str: JSON list of {loss, gain}; gain is null for a 100% loss.
    """
    try:
        table = recovery_table(params.levels)
    except EdgeLabError as e:
        return f"Error: {e}"

    return json.dumps(
        {
            "recovery": [
                {"loss": float(row.loss), "gain": _round(float(row.gain), 2)}
                for row in table.itertuples(index=False)
            ]
        },
        indent=2,
    )


@mcp.tool(
    name="edgelab_fee_projection",
    annotations={
        "title": "Fee Erosion Projection",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
async def edgelab_fee_projection(params: FeeProjectionInput) -> str:
    """Project gross vs. net expectancy after commissions and spread.

    Returns:
        str: JSON with cost per trade, per-trade expectancy and totals after
        the last trade.
    """
    try:
        config = FeeConfig(**params.model_dump(exclude={"preset"}))
        if params.preset is not None:
            key = params.preset.upper()
            if key not in ASSET_PRESETS:
                return f"Error: Unknown preset '{params.preset}'. Available: {', '.join(ASSET_PRESETS)}"
            config = config.with_preset(ASSET_PRESETS[key])
        projection = fee_projection(config)
    except EdgeLabError as e:
        return f"Error: {e}"

    last = projection.data.iloc[-1]
    return json.dumps(
        {
            "asset_type": config.asset_type,
            "cost_per_trade": round(projection.cost_per_trade, 2),
            "ev_gross": round(projection.ev_gross, 2),
            "ev_net": round(projection.ev_net, 2),
            "trades": int(last["trade"]),
            "total_gross": round(float(last["gross"]), 2),
            "total_net": round(float(last["net"]), 2),
            "total_fees": round(float(last["fees"]), 2),
        },
        indent=2,
    )


@mcp.tool(
    name="edgelab_load_trade_log",
    annotations={
        "title": "Load Trade Log",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
async def edgelab_load_trade_log(params: LoadTradeLogInput) -> str:
    """Load a broker report (generic CSV, MT4/MT5 HTML or cTrader) into memory.

    Returns:
        str: JSON with alias, trade count and date range.
    """
    path = Path(params.file_path)
    if not path.exists():
        return f"Error: File not found: {params.file_path}"

    try:
        trades = TradeLogLoader().load(path, params.fmt)
    except EdgeLabError as e:
        return f"Error: {e}"

    alias = params.alias or path.stem
    if alias in _trade_logs:
        # Append numeric suffix to avoid collision
        i = 2
        while f"{alias}_{i}" in _trade_logs:
            i += 1
        alias = f"{alias}_{i}"

    log = LoadedTradeLog(trades=trades, file_path=str(path), fmt=params.fmt, alias=alias)
    _trade_logs[alias] = log

    return json.dumps(
        {
            "alias": alias,
            "file": str(path),
            "format": params.fmt.value,
            "trades": log.trade_count,
            "date_range": log.date_range,
        },
        indent=2,
    )


@mcp.tool(
    name="edgelab_replay_stats",
    annotations={
        "title": "Replay Trade Log Statistics",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
async def edgelab_replay_stats(params: ReplayStatsInput) -> str:
    """Recompute equity and statistics of a loaded trade log.

    Returns:
        str: JSON with win rate, average R:R, max drawdown, net profit,
        trades per week, profit factor and streaks.
    """
    try:
        log = _get_trade_log(params.alias)
        result = replay_trades(log.trades, params.starting_balance)
    except (ValueError, EdgeLabError) as e:
        return f"Error: {e}"

    stats = result.stats
    return json.dumps(
        {
            "alias": log.alias,
            "starting_balance": params.starting_balance,
            "total_trades": stats.total_trades,
            "win_rate": round(stats.win_rate, 2),
            "avg_rr": round(stats.avg_rr, 2),
            "max_drawdown_pct": round(stats.max_drawdown_pct, 2),
            "net_profit": round(stats.net_profit, 2),
            "trades_per_week": round(stats.trades_per_week, 2),
            "profit_factor": round(stats.trial.profit_factor, 2),
            "max_win_streak": stats.trial.max_win_streak,
            "max_loss_streak": stats.trial.max_loss_streak,
            "final_equity": round(result.path.final_equity, 2),
        },
        indent=2,
    )


@mcp.tool(
    name="edgelab_list_trade_logs",
    annotations={
        "title": "List Loaded Trade Logs",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
async def edgelab_list_trade_logs() -> str:
    """List every trade log loaded in this session.

    Returns:
        str: JSON list with alias, file, format and trade count.
    """
    if not _trade_logs:
        return json.dumps({"trade_logs": [], "hint": "Use edgelab_load_trade_log first."}, indent=2)

    return json.dumps(
        {
            "trade_logs": [
                {
                    "alias": log.alias,
                    "file": log.file_path,
                    "format": log.fmt.value,
                    "trades": log.trade_count,
                    "date_range": log.date_range,
                }
                for log in _trade_logs.values()
            ]
        },
        indent=2,
    )


def main() -> None:
    """Server entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Starting Edgelab MCP server %s", __version__)
    mcp.run()


if __name__ == "__main__":
    main()
