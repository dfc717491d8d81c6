"""Unit tests for closed-form analytics."""

import math

import pytest

from edgelab.core.analytics import (
    ASSET_PRESETS,
    ExpectancyGrade,
    classify_expectancy,
    expectancy_r,
    fee_projection,
    recovery_pct,
    recovery_table,
    streak_probability,
    streak_table,
)
from edgelab.core.exceptions import ConfigurationError
from edgelab.core.models import FeeConfig


class TestStreakProbability:
    """Tests for losing-streak probability."""

    def test_capped(self) -> None:
        assert streak_probability(50.0, 100, 1) == 99.99

    def test_never_loses(self) -> None:
        assert streak_probability(100.0, 1000, 3) == 0.0

    def test_formula(self) -> None:
        expected = (1 - (1 - 0.5**3) ** 10) * 100
        assert streak_probability(50.0, 10, 3) == pytest.approx(expected)

    def test_longer_streaks_less_likely(self) -> None:
        assert streak_probability(45.0, 100, 8) < streak_probability(45.0, 100, 4)

    def test_zero_trades(self) -> None:
        assert streak_probability(40.0, 0, 3) == 0.0

    @pytest.mark.parametrize("args", [(101.0, 10, 3), (50.0, -1, 3), (50.0, 10, 0)])
    def test_invalid(self, args: tuple) -> None:
        with pytest.raises(ConfigurationError):
            streak_probability(*args)

    def test_table(self) -> None:
        table = streak_table(50.0, 100, lengths=(3, 5))
        assert list(table.columns) == ["length", "probability"]
        assert table["length"].tolist() == [3, 5]
        assert table["probability"].iloc[1] == pytest.approx(streak_probability(50.0, 100, 5))


class TestRecovery:
    """Tests for drawdown recovery math."""

    @pytest.mark.parametrize(
        "drawdown,gain",
        [(0.0, 0.0), (10.0, 11.1111), (50.0, 100.0), (90.0, 900.0)],
    )
    def test_recovery_pct(self, drawdown: float, gain: float) -> None:
        assert recovery_pct(drawdown) == pytest.approx(gain, abs=1e-3)

    def test_total_loss_is_infinite(self) -> None:
        assert math.isinf(recovery_pct(100.0))

    def test_negative_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            recovery_pct(-5.0)

    def test_table_default_levels(self) -> None:
        table = recovery_table()
        assert list(table.columns) == ["loss", "gain"]
        assert table["loss"].tolist() == [10, 20, 30, 40, 50, 60, 70, 80, 90]
        assert table["gain"].is_monotonic_increasing


class TestFeeProjection:
    """Tests for fee projection."""

    def test_default_costs(self) -> None:
        projection = fee_projection(FeeConfig())
        # 7 commission + 1 spread * 10 point value
        assert projection.cost_per_trade == pytest.approx(17.0)
        assert projection.ev_gross == pytest.approx(0.5 * 400 - 0.5 * 200)
        assert projection.ev_net == pytest.approx(projection.ev_gross - 17.0)

    def test_cumulative_frame(self) -> None:
        projection = fee_projection(FeeConfig(trades=10))
        data = projection.data
        assert list(data.columns) == ["trade", "gross", "net", "fees"]
        assert len(data) == 11
        assert data.iloc[0].tolist() == [0, 0.0, 0.0, 0.0]
        assert data["net"].iloc[-1] == pytest.approx(10 * projection.ev_net)
        assert projection.total_fees == pytest.approx(10 * 17.0)

    def test_lot_size_scales_costs(self) -> None:
        projection = fee_projection(FeeConfig(lot_size=2.0))
        assert projection.cost_per_trade == pytest.approx(34.0)

    def test_zero_costs(self) -> None:
        projection = fee_projection(FeeConfig(commission_per_unit=0.0, spread=0.0))
        assert projection.ev_net == pytest.approx(projection.ev_gross)
        assert projection.total_fees == 0.0

    def test_preset(self) -> None:
        config = FeeConfig().with_preset(ASSET_PRESETS["ES"])
        projection = fee_projection(config)
        assert projection.cost_per_trade == pytest.approx(2.25 + 0.25 * 50.0)


class TestExpectancy:
    """Tests for expectancy grading."""

    def test_expectancy_r(self) -> None:
        assert expectancy_r(50.0, 2.0) == pytest.approx(0.5)
        assert expectancy_r(40.0, 1.0) == pytest.approx(-0.2)

    @pytest.mark.parametrize(
        "win_rate,rr,grade",
        [
            (40.0, 1.0, ExpectancyGrade.NEGATIVE),
            (50.0, 1.0, ExpectancyGrade.NEGATIVE),
            (55.0, 1.0, ExpectancyGrade.THIN),
            (50.0, 2.0, ExpectancyGrade.INSTITUTIONAL),
            (55.0, 1.5, ExpectancyGrade.INSTITUTIONAL),
            (60.0, 2.0, ExpectancyGrade.OUTLIER),
            (70.0, 2.0, ExpectancyGrade.OUTLIER),
        ],
    )
    def test_gross_grades(self, win_rate: float, rr: float, grade: ExpectancyGrade) -> None:
        assert classify_expectancy(win_rate, rr) is grade

    def test_net_thresholds_lower(self) -> None:
        # 0.15R is thin gross but institutional net
        assert classify_expectancy(57.5, 1.0) is ExpectancyGrade.THIN
        assert classify_expectancy(57.5, 1.0, net=True) is ExpectancyGrade.INSTITUTIONAL


class TestAssetPresets:
    """Tests for the instrument presets."""

    def test_known_instruments(self) -> None:
        assert set(ASSET_PRESETS) == {"EURUSD", "ES", "NQ", "US500", "GOLD", "BTCUSD"}

    def test_costs_non_negative(self) -> None:
        for preset in ASSET_PRESETS.values():
            assert preset.point_value > 0
            assert preset.commission_per_unit >= 0
            assert preset.spread >= 0
