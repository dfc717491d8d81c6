"""Core simulation and statistics modules."""

from .analytics import (
    ASSET_PRESETS,
    ExpectancyGrade,
    classify_expectancy,
    fee_projection,
    recovery_pct,
    streak_probability,
)
from .challenge import ChallengeSimulator
from .equity import EquityTracker, rebase_trades, replay_trades
from .file_loader import TradeLogLoader
from .market_simulator import MarketSimulationResult, MarketSimulator, summarize_trials
from .models import (
    AggregateResult,
    ChallengeConfig,
    ChallengeOutcome,
    EdgeConfig,
    EquityPath,
    FeeConfig,
    ParsedTrade,
    PhaseRule,
    TrialStats,
)
from .random_source import NumpyRandomSource, RandomVariates, SequenceRandomSource
from .risk_of_ruin import RiskOfRuinEstimator
from .scenario_manager import ScenarioConfigManager, Scenarios
from .trade_log import TradeLogFormat, parse_trade_log

__all__ = [
    "ASSET_PRESETS",
    "ExpectancyGrade",
    "classify_expectancy",
    "fee_projection",
    "recovery_pct",
    "streak_probability",
    "ChallengeSimulator",
    "EquityTracker",
    "rebase_trades",
    "replay_trades",
    "TradeLogLoader",
    "MarketSimulationResult",
    "MarketSimulator",
    "summarize_trials",
    "AggregateResult",
    "ChallengeConfig",
    "ChallengeOutcome",
    "EdgeConfig",
    "EquityPath",
    "FeeConfig",
    "ParsedTrade",
    "PhaseRule",
    "TrialStats",
    "NumpyRandomSource",
    "RandomVariates",
    "SequenceRandomSource",
    "RiskOfRuinEstimator",
    "ScenarioConfigManager",
    "Scenarios",
    "TradeLogFormat",
    "parse_trade_log",
]
