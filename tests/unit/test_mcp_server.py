"""Unit tests for MCP server functions."""

import asyncio
import json

import pytest

from mcp_server.server import (
    FeeProjectionInput,
    LoadedTradeLog,
    LoadTradeLogInput,
    PhaseInput,
    RecoveryInput,
    ReplayStatsInput,
    RiskOfRuinInput,
    SimulateChallengeInput,
    SimulateEquityInput,
    StreakProbabilityInput,
    _trade_logs,
    edgelab_fee_projection,
    edgelab_list_trade_logs,
    edgelab_load_trade_log,
    edgelab_recovery,
    edgelab_replay_stats,
    edgelab_risk_of_ruin,
    edgelab_simulate_challenge,
    edgelab_simulate_equity,
    edgelab_streak_probability,
)
from edgelab.core.models import ParsedTrade
from edgelab.core.trade_log import TradeLogFormat


@pytest.fixture(autouse=True)
def clear_trade_logs():
    """Keep the global session store empty between tests."""
    _trade_logs.clear()
    yield
    _trade_logs.clear()


@pytest.fixture
def loaded_log():
    """Register a small trade log in the global store."""
    alias = "sample"
    trades = [
        ParsedTrade(0, 0.0, 0.0),
        ParsedTrade(1, 100.0, 100.0),
        ParsedTrade(2, -50.0, 50.0),
        ParsedTrade(3, 100.0, 150.0),
    ]
    _trade_logs[alias] = LoadedTradeLog(
        trades=trades, file_path="sample.csv", fmt=TradeLogFormat.GENERIC_CSV, alias=alias
    )
    return alias


class TestSimulationTools:
    """Tests for the Monte Carlo tools."""

    def test_simulate_equity(self):
        params = SimulateEquityInput(win_rate=50, reward_to_risk=2, trade_count=20, trial_count=30,
                                     include_paths=2, seed=1)
        data = json.loads(asyncio.run(edgelab_simulate_equity(params)))

        assert data["trials"] == 30
        assert data["trades"] == 20
        assert set(data["summary"]) == {
            "final_balance", "return_pct", "max_drawdown_pct",
            "profit_factor", "max_win_streak", "max_loss_streak",
        }
        bands = data["final_equity_percentiles"]
        assert bands["p5"] <= bands["p50"] <= bands["p95"]
        assert data["expectancy_grade"] == "institutional"
        assert len(data["paths"]) == 2
        assert len(data["paths"][0]) == 21

    def test_simulate_equity_is_seeded(self):
        params = SimulateEquityInput(trade_count=10, trial_count=5, seed=42)
        first = asyncio.run(edgelab_simulate_equity(params))
        second = asyncio.run(edgelab_simulate_equity(params))
        assert first == second

    def test_simulate_equity_without_paths(self):
        params = SimulateEquityInput(trade_count=5, trial_count=2, seed=3)
        data = json.loads(asyncio.run(edgelab_simulate_equity(params)))
        assert "paths" not in data

    def test_simulate_challenge(self):
        params = SimulateChallengeInput(
            phases=[PhaseInput(), PhaseInput(profit_target_pct=5.0)],
            trial_count=100,
            seed=7,
        )
        data = json.loads(asyncio.run(edgelab_simulate_challenge(params)))

        assert data["steps"] == 2
        assert sum(data["counts"].values()) == 100
        assert set(data["counts"]) == {"pass", "fail_max_drawdown", "fail_daily_drawdown", "fail_time"}
        assert 0 <= data["pass_rate_pct"] <= 100

    def test_simulate_challenge_zero_target(self):
        params = SimulateChallengeInput(
            phases=[PhaseInput(profit_target_pct=0.0, max_total_drawdown_pct=100.0)],
            trial_count=50,
            seed=7,
        )
        data = json.loads(asyncio.run(edgelab_simulate_challenge(params)))
        assert data["pass_rate_pct"] == 100.0

    def test_too_many_phases_rejected(self):
        with pytest.raises(ValueError):
            SimulateChallengeInput(phases=[PhaseInput()] * 4)

    def test_trades_per_week_bounded(self):
        with pytest.raises(ValueError):
            SimulateChallengeInput(trades_per_week=5000)

    def test_risk_of_ruin(self):
        params = RiskOfRuinInput(win_rate=0, risk_per_trade_pct=10, trial_count=20, seed=1)
        data = json.loads(asyncio.run(edgelab_risk_of_ruin(params)))
        assert data["risk_of_ruin_pct"] == 100.0
        assert data["trials"] == 20


class TestAnalyticsTools:
    """Tests for the closed-form tools."""

    def test_streak_probability(self):
        params = StreakProbabilityInput(win_rate=50, trade_count=100, lengths=[1, 20])
        data = json.loads(asyncio.run(edgelab_streak_probability(params)))
        assert data["probabilities"]["1"] == 99.99
        assert data["probabilities"]["20"] < 1.0

    def test_streak_probability_invalid_length(self):
        params = StreakProbabilityInput(lengths=[0])
        result = asyncio.run(edgelab_streak_probability(params))
        assert result.startswith("Error:")

    def test_recovery(self):
        params = RecoveryInput(levels=[50, 100])
        data = json.loads(asyncio.run(edgelab_recovery(params)))
        assert data["recovery"] == [{"loss": 50.0, "gain": 100.0}, {"loss": 100.0, "gain": None}]

    def test_fee_projection(self):
        params = FeeProjectionInput(trades=10)
        data = json.loads(asyncio.run(edgelab_fee_projection(params)))
        assert data["cost_per_trade"] == 17.0
        assert data["ev_gross"] == 100.0
        assert data["ev_net"] == 83.0
        assert data["total_fees"] == 170.0

    def test_fee_projection_preset(self):
        params = FeeProjectionInput(preset=" es ")
        data = json.loads(asyncio.run(edgelab_fee_projection(params)))
        assert data["asset_type"] == "FUTURES"
        assert data["cost_per_trade"] == 14.75

    def test_fee_projection_unknown_preset(self):
        params = FeeProjectionInput(preset="DOGE")
        result = asyncio.run(edgelab_fee_projection(params))
        assert result.startswith("Error: Unknown preset")


class TestTradeLogTools:
    """Tests for loading and replaying trade logs."""

    def test_load_trade_log(self, write_file, generic_csv_text):
        path = write_file("journal.csv", generic_csv_text)
        params = LoadTradeLogInput(file_path=str(path))
        data = json.loads(asyncio.run(edgelab_load_trade_log(params)))

        assert data["alias"] == "journal"
        assert data["trades"] == 3
        assert data["format"] == "generic_csv"
        assert data["date_range"] == "2024-01-02 to 2024-01-09"
        assert "journal" in _trade_logs

    def test_duplicate_alias_gets_suffix(self, write_file, generic_csv_text):
        path = write_file("journal.csv", generic_csv_text)
        params = LoadTradeLogInput(file_path=str(path), alias="mine")
        asyncio.run(edgelab_load_trade_log(params))
        data = json.loads(asyncio.run(edgelab_load_trade_log(params)))
        assert data["alias"] == "mine_2"

    def test_load_missing_file(self, tmp_path):
        params = LoadTradeLogInput(file_path=str(tmp_path / "nope.csv"))
        result = asyncio.run(edgelab_load_trade_log(params))
        assert result.startswith("Error: File not found")

    def test_load_unparseable_file(self, write_file):
        path = write_file("bad.csv", "Date,Symbol\n2024.01.01,EURUSD\n")
        result = asyncio.run(edgelab_load_trade_log(LoadTradeLogInput(file_path=str(path))))
        assert result.startswith("Error: Could not find")

    def test_replay_stats(self, loaded_log):
        params = ReplayStatsInput(alias=loaded_log, starting_balance=1000)
        data = json.loads(asyncio.run(edgelab_replay_stats(params)))

        assert data["total_trades"] == 3
        assert data["win_rate"] == 66.67
        assert data["net_profit"] == 150.0
        assert data["final_equity"] == 1150.0
        assert data["avg_rr"] == 2.0
        assert data["max_drawdown_pct"] == 4.55

    def test_replay_unknown_alias(self):
        result = asyncio.run(edgelab_replay_stats(ReplayStatsInput(alias="ghost")))
        assert "No trade log loaded with alias 'ghost'" in result

    def test_list_trade_logs(self, loaded_log):
        data = json.loads(asyncio.run(edgelab_list_trade_logs()))
        assert [log["alias"] for log in data["trade_logs"]] == [loaded_log]
        assert data["trade_logs"][0]["date_range"] == "unknown"

    def test_list_trade_logs_empty(self):
        data = json.loads(asyncio.run(edgelab_list_trade_logs()))
        assert data["trade_logs"] == []
